from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path

from sunday.automations_lib.catalog import ActionKind, TriggerKind
from sunday.automations_lib.models import ActionConfig, Automation, AutomationLog, LogStatus
from sunday.config import Settings
from sunday.main import main


def write_rule(tmp_path: Path, payload: dict) -> str:
    path = tmp_path / "rule.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def make_settings(tmp_path: Path) -> Settings:
    return Settings(
        api_base_url="https://tools.example.com",
        api_username="ana",
        state_db_path=str(tmp_path / "state.db"),
    )


def test_validate_accepts_a_valid_rule(tmp_path: Path, capsys) -> None:
    path = write_rule(
        tmp_path,
        {
            "board_id": 3,
            "name": "Done mover",
            "trigger_type": "statusChangesTo",
            "trigger_config": {"column_key": "status", "value": "Done"},
            "actions": [{"action_type": "moveItem", "action_config": {"group_id": 5}, "order": 0}],
        },
    )

    code = main(["validate", path, "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["ok"] is True
    assert payload["issues"] == []


def test_validate_reports_issues(tmp_path: Path, capsys) -> None:
    path = write_rule(
        tmp_path,
        {
            "board_id": 3,
            "name": "Weekly digest",
            "trigger_type": "recurring",
            "trigger_config": {"value": "hourly"},
            "actions": [{"action_type": "send_notification", "action_config": {"message": "hi"}}],
        },
    )

    code = main(["validate", path])

    out = capsys.readouterr().out
    assert code == 1
    assert "INVALID trigger_config" in out
    assert "INVALID actions[0]" in out


def test_validate_unknown_trigger_is_an_error(tmp_path: Path, capsys) -> None:
    path = write_rule(tmp_path, {"board_id": 3, "name": "x", "trigger_type": "moon_phase"})

    code = main(["validate", path, "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert code == 1
    assert payload["ok"] is False
    assert "moon_phase" in payload["error"]


def test_templates_lists_builtin_catalog(capsys) -> None:
    code = main(["templates", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert "notify_status_done" in [template["id"] for template in payload["templates"]]


def test_list_uses_the_api_client(tmp_path: Path, monkeypatch, capsys) -> None:
    settings = make_settings(tmp_path)

    class FakeClient:
        def __init__(self, **kwargs) -> None:
            assert kwargs["username"] == "ana"

        async def list_automations(self, board_id: int) -> list[Automation]:
            return [
                Automation(id=1, board_id=board_id, name="New items", trigger=TriggerKind.ITEM_CREATED)
            ]

    monkeypatch.setattr("sunday.main.load_settings", lambda: settings)
    monkeypatch.setattr("sunday.main.configure_logging", lambda level: None)
    monkeypatch.setattr("sunday.app.AutomationApiClient", FakeClient)

    code = main(["list", "3"])

    out = capsys.readouterr().out
    assert code == 0
    assert "#1 [on] New items" in out


def test_missing_settings_exit_with_error(monkeypatch, capsys) -> None:
    def fail() -> Settings:
        raise ValueError("Missing SUNDAY_API_BASE_URL in environment.")

    monkeypatch.setattr("sunday.main.load_settings", fail)

    code = main(["logs", "5"])

    assert code == 1
    assert "SUNDAY_API_BASE_URL" in capsys.readouterr().err


def test_logs_use_configured_limit(tmp_path: Path, monkeypatch, capsys) -> None:
    limits: list[int] = []

    class FakeClient:
        def __init__(self, **kwargs) -> None:
            del kwargs

        async def get_logs(self, automation_id: int, limit: int = 50) -> list[AutomationLog]:
            limits.append(limit)
            return [
                AutomationLog(
                    id=1,
                    automation_id=automation_id,
                    item_id=None,
                    status=LogStatus.FAILED,
                    executed_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
                    error_message="Board locked",
                )
            ]

    monkeypatch.setattr("sunday.main.load_settings", lambda: make_settings(tmp_path))
    monkeypatch.setattr("sunday.main.configure_logging", lambda level: None)
    monkeypatch.setattr("sunday.app.AutomationApiClient", FakeClient)

    code = main(["logs", "5"])

    out = capsys.readouterr().out
    assert code == 0
    assert limits == [50]
    assert "| failed | item=- | error=Board locked" in out


def test_run_replays_an_event_once(tmp_path: Path, monkeypatch, capsys) -> None:
    executed: list[tuple[str, int]] = []

    class FakeClient:
        def __init__(self, **kwargs) -> None:
            del kwargs

        async def list_automations(self, board_id: int) -> list[Automation]:
            return [
                Automation(
                    id=8,
                    board_id=board_id,
                    name="Archive new items",
                    trigger=TriggerKind.ITEM_CREATED,
                    actions=(ActionConfig(action=ActionKind.ARCHIVE_ITEM, order=0),),
                )
            ]

    class FakeBoard:
        def __init__(self, **kwargs) -> None:
            del kwargs

        async def execute(self, action, event, context) -> dict:
            executed.append((action.kind.value, event.item.item_id))
            return {}

    monkeypatch.setattr("sunday.main.load_settings", lambda: make_settings(tmp_path))
    monkeypatch.setattr("sunday.main.configure_logging", lambda level: None)
    monkeypatch.setattr("sunday.app.AutomationApiClient", FakeClient)
    monkeypatch.setattr("sunday.app.BoardApiClient", FakeBoard)
    path = write_rule(
        tmp_path,
        {
            "event_id": "evt-1",
            "kind": "item_created",
            "item": {"item_id": 21, "board_id": 3, "name": "Roof check"},
        },
    )

    first = main(["run", path, "--json"])
    first_logs = json.loads(capsys.readouterr().out)["logs"]
    second = main(["run", path, "--json"])
    second_logs = json.loads(capsys.readouterr().out)["logs"]

    assert first == 0 and second == 0
    assert [(log["automation_id"], log["status"]) for log in first_logs] == [(8, "success")]
    assert second_logs == []
    assert executed == [("archive_item", 21)]
