from __future__ import annotations

from pathlib import Path

import pytest

from sunday.automation_service import AutomationService
from sunday.automations_lib.catalog import ActionKind, TriggerKind
from sunday.automations_lib.errors import AutomationApiError
from sunday.automations_lib.models import ActionConfig, Automation
from sunday.automations_lib.providers.automations_api import CreatedAutomation
from sunday.automations_lib.registry import AutomationRegistry
from sunday.state_store import AutomationStateStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def automation(automation_id: int = 0, board_id: int = 4, **overrides) -> Automation:
    return Automation(
        id=automation_id,
        board_id=board_id,
        name=overrides.pop("name", f"rule {automation_id}"),
        trigger=overrides.pop("trigger", TriggerKind.ITEM_CREATED),
        trigger_config=overrides.pop("trigger_config", {}),
        actions=overrides.pop(
            "actions", (ActionConfig(action=ActionKind.ARCHIVE_ITEM, order=0),)
        ),
        **overrides,
    )


class FakeAutomationClient:
    def __init__(self) -> None:
        self.fail = False
        self.list_calls = 0
        self.saved: list[tuple[str, int]] = []
        self.board_rules: list[Automation] = [automation(1), automation(2)]

    def _maybe_fail(self) -> None:
        if self.fail:
            raise AutomationApiError("HTTP error 500", status_code=500)

    async def list_automations(self, board_id: int) -> list[Automation]:
        self.list_calls += 1
        self._maybe_fail()
        return [rule for rule in self.board_rules if rule.board_id == board_id]

    async def create_automation(self, rule: Automation) -> CreatedAutomation:
        self._maybe_fail()
        self.saved.append(("create", rule.board_id))
        return CreatedAutomation(id=40, warnings=("1 action skipped",))

    async def update_automation(self, rule: Automation) -> None:
        self._maybe_fail()
        self.saved.append(("update", rule.id))

    async def delete_automation(self, automation_id: int) -> None:
        self._maybe_fail()
        self.saved.append(("delete", automation_id))

    async def toggle_automation(self, automation_id: int) -> None:
        self._maybe_fail()
        self.saved.append(("toggle", automation_id))

    async def get_logs(self, automation_id: int, limit: int = 50) -> list:
        self.saved.append(("logs", limit))
        return []

    async def create_from_template(self, board_id: int, template_id: str, name=None) -> CreatedAutomation:
        self._maybe_fail()
        self.saved.append(("template", board_id))
        return CreatedAutomation(id=41)


def build(tmp_path: Path, ttl: int = 300):
    client = FakeAutomationClient()
    store = AutomationStateStore(str(tmp_path / "state.db"))
    clock = FakeClock()
    service = AutomationService(
        client, store, username="ana", cache_ttl_seconds=ttl, logs_limit=25, clock=clock
    )
    return service, client, store, clock


@pytest.mark.asyncio
async def test_list_is_cached_until_ttl(tmp_path: Path) -> None:
    service, client, _, clock = build(tmp_path, ttl=60)

    await service.list_automations(4)
    await service.list_automations(4)
    assert client.list_calls == 1

    clock.now += 61
    await service.list_automations(4)
    assert client.list_calls == 2

    await service.list_automations(4, force_refresh=True)
    assert client.list_calls == 3


@pytest.mark.asyncio
async def test_invalid_rule_is_rejected_before_any_request(tmp_path: Path) -> None:
    service, client, store, _ = build(tmp_path)

    result = await service.save(
        automation(trigger=TriggerKind.STATUS_CHANGES_TO, trigger_config={"column_key": "status"})
    )

    assert result.ok is False
    assert [issue.field for issue in result.issues] == ["trigger_config"]
    assert client.saved == []
    assert store.list_audit_events() == []


@pytest.mark.asyncio
async def test_create_invalidates_cache_and_audits(tmp_path: Path) -> None:
    service, client, store, _ = build(tmp_path)
    await service.list_automations(4)

    result = await service.save(automation())

    assert result.ok is True
    assert result.automation_id == 40
    assert result.warnings == ("1 action skipped",)
    await service.list_automations(4)
    assert client.list_calls == 2
    events = store.list_audit_events()
    assert events[0]["event_type"] == "create"
    assert events[0]["status"] == "ok"
    assert events[0]["username"] == "ana"


@pytest.mark.asyncio
async def test_api_failure_becomes_generic_message(tmp_path: Path) -> None:
    service, client, store, _ = build(tmp_path)
    client.fail = True

    created = await service.save(automation())
    updated = await service.save(automation(9))

    assert created.ok is False
    assert created.error == "Failed to create automation"
    assert updated.error == "Failed to update automation"
    assert created.automation_id is None
    assert [event["status"] for event in store.list_audit_events()] == ["error", "error"]


@pytest.mark.asyncio
async def test_delete_toggle_template_and_logs(tmp_path: Path) -> None:
    service, client, _, _ = build(tmp_path)

    assert await service.delete(1, 4) is True
    assert await service.toggle(2, 4) is True
    from_template = await service.create_from_template(4, "notify_status_done")
    await service.logs(2)
    await service.logs(2, limit=5)

    assert from_template.automation_id == 41
    assert client.saved == [
        ("delete", 1),
        ("toggle", 2),
        ("template", 4),
        ("logs", 25),
        ("logs", 5),
    ]

    client.fail = True
    assert await service.delete(1, 4) is False
    assert (await service.create_from_template(4, "x")).error == "Failed to create automation"


@pytest.mark.asyncio
async def test_sync_registry_skips_invalid_rules(tmp_path: Path) -> None:
    service, client, _, _ = build(tmp_path)
    client.board_rules.append(automation(3, name=" "))
    registry = AutomationRegistry()

    count = await service.sync_registry(4, registry)

    assert count == 2
    assert [rule.automation_id for rule in registry.get_for_board(4)] == [1, 2]
