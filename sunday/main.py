from __future__ import annotations

from argparse import ArgumentParser, Namespace
import asyncio
import json
from pathlib import Path
import sys
import uuid

from sunday.app import AutomationApp, build_app
from sunday.automations_lib.models import Automation, AutomationLog, BoardEvent, LogStatus
from sunday.automations_lib.templates import STANDARD_TEMPLATES
from sunday.automations_lib.validation import collect_issues
from sunday.config import load_settings
from sunday.logging_utils import configure_logging


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(description="Sunday board automation tool.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate an automation JSON file.")
    validate.add_argument("file")
    validate.add_argument("--json", action="store_true", dest="as_json")

    list_cmd = subparsers.add_parser("list", help="List the automations of a board.")
    list_cmd.add_argument("board_id", type=int)
    list_cmd.add_argument("--json", action="store_true", dest="as_json")

    logs = subparsers.add_parser("logs", help="Read the execution history of an automation.")
    logs.add_argument("automation_id", type=int)
    logs.add_argument("--limit", type=int, default=None)
    logs.add_argument("--json", action="store_true", dest="as_json")

    run = subparsers.add_parser("run", help="Replay a board event JSON file against the board rules.")
    run.add_argument("file")
    run.add_argument("--json", action="store_true", dest="as_json")

    templates = subparsers.add_parser("templates", help="List automation templates.")
    templates.add_argument("--remote", action="store_true")
    templates.add_argument("--json", action="store_true", dest="as_json")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    as_json = getattr(args, "as_json", False)
    try:
        if args.command == "validate":
            return _validate(Path(args.file), as_json=as_json)
        if args.command == "templates" and not args.remote:
            _print_templates([template.to_payload() for template in STANDARD_TEMPLATES], as_json)
            return 0

        settings = load_settings()
        configure_logging(settings.log_level)
        app = build_app(settings)
        try:
            return _run_remote(app, args, as_json=as_json)
        finally:
            app.close()
    except Exception as exc:
        return _print_error_and_exit(exc, as_json=as_json)


def entrypoint() -> None:
    raise SystemExit(main())


def _run_remote(app: AutomationApp, args: Namespace, *, as_json: bool) -> int:
    if args.command == "list":
        automations = asyncio.run(app.service.list_automations(args.board_id))
        if as_json:
            print(json.dumps(
                {"automations": [item.to_payload() for item in automations]},
                ensure_ascii=False,
            ))
        else:
            for item in automations:
                state = "on" if item.is_active else "off"
                print(f"#{item.id} [{state}] {item.name} | {item.readable_description}")
        return 0

    if args.command == "logs":
        logs = asyncio.run(app.service.logs(args.automation_id, args.limit))
        _print_logs(logs, as_json)
        return 0

    if args.command == "run":
        payload = json.loads(Path(args.file).read_text(encoding="utf-8"))
        event = BoardEvent.from_payload(payload)
        logs = asyncio.run(app.replay_event(event, trace_id=uuid.uuid4().hex[:12]))
        _print_logs(logs, as_json)
        return 1 if any(item.status is LogStatus.FAILED for item in logs) else 0

    if args.command == "templates":
        _print_templates(asyncio.run(app.client.list_templates()), as_json)
        return 0

    return _print_error_and_exit("invalid command", as_json=as_json)


def _validate(path: Path, *, as_json: bool) -> int:
    payload = json.loads(path.read_text(encoding="utf-8"))
    automation = Automation.from_payload(payload)
    issues = collect_issues(automation)
    if as_json:
        print(json.dumps(
            {
                "ok": not issues,
                "name": automation.name,
                "description": automation.readable_description,
                "issues": [{"field": i.field, "message": i.message} for i in issues],
            },
            ensure_ascii=False,
        ))
    elif issues:
        for issue in issues:
            print(f"INVALID {issue}")
    else:
        print(f"OK {automation.name}: {automation.readable_description}")
    return 1 if issues else 0


def _print_logs(logs: list[AutomationLog], as_json: bool) -> None:
    if as_json:
        print(json.dumps({"logs": [item.to_payload() for item in logs]}, ensure_ascii=False))
        return
    for item in logs:
        print(
            f"{item.executed_at.isoformat()} | {item.status.value} | "
            f"item={item.item_id or '-'} | error={item.error_message or '-'}"
        )


def _print_templates(templates: list[dict], as_json: bool) -> None:
    if as_json:
        print(json.dumps({"templates": templates}, ensure_ascii=False))
        return
    for template in templates:
        print(
            f"{template.get('id')} | {template.get('category') or '-'} | "
            f"{template.get('name')} | {template.get('description') or ''}"
        )


def _print_error_and_exit(exc: Exception | str, *, as_json: bool) -> int:
    message = str(exc)
    if as_json:
        print(json.dumps({"ok": False, "error": message}, ensure_ascii=False))
    else:
        print(f"ERROR: {message}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
