from __future__ import annotations

from dataclasses import dataclass

from sunday.automations_lib.actions import ActionSpec, parse_action
from sunday.automations_lib.errors import (
    ConfigError,
    RuleValidationError,
    UnknownKindError,
    ValidationIssue,
)
from sunday.automations_lib.models import Automation
from sunday.automations_lib.triggers import TriggerSpec, parse_trigger


@dataclass(frozen=True)
class PlannedAction:
    order: int
    spec: ActionSpec


@dataclass(frozen=True)
class ValidatedRule:
    automation: Automation
    trigger: TriggerSpec
    actions: tuple[PlannedAction, ...]

    @property
    def automation_id(self) -> int:
        return self.automation.id

    @property
    def board_id(self) -> int:
        return self.automation.board_id


def _build(automation: Automation) -> tuple[
    list[ValidationIssue], TriggerSpec | None, list[PlannedAction]
]:
    issues: list[ValidationIssue] = []
    if not automation.name.strip():
        issues.append(ValidationIssue("name", "name is required"))
    if automation.board_id <= 0:
        issues.append(ValidationIssue("board_id", "board_id is required"))

    trigger: TriggerSpec | None = None
    try:
        trigger = parse_trigger(automation.trigger, automation.trigger_config)
    except ConfigError as exc:
        for problem in exc.problems:
            issues.append(ValidationIssue("trigger_config", problem))
    except UnknownKindError as exc:
        issues.append(ValidationIssue("trigger", str(exc)))

    planned: list[PlannedAction] = []
    actions = automation.sorted_actions()
    if not actions:
        issues.append(ValidationIssue("actions", "at least one action is required"))
    seen_orders: set[int] = set()
    for action in actions:
        field_name = f"actions[{action.order}]"
        if action.order in seen_orders:
            issues.append(ValidationIssue(field_name, "duplicate action order"))
        seen_orders.add(action.order)
        try:
            spec = parse_action(action.action, action.config)
        except ConfigError as exc:
            for problem in exc.problems:
                issues.append(ValidationIssue(field_name, f"{exc.kind}: {problem}"))
            continue
        except UnknownKindError as exc:
            issues.append(ValidationIssue(field_name, str(exc)))
            continue
        planned.append(PlannedAction(order=action.order, spec=spec))

    for index, condition in enumerate(automation.conditions):
        if not condition.column_key.strip():
            issues.append(
                ValidationIssue(f"conditions[{index}]", "column_key is required")
            )
    return issues, trigger, planned


def collect_issues(automation: Automation) -> list[ValidationIssue]:
    issues, _, _ = _build(automation)
    return issues


def validate_automation(automation: Automation) -> ValidatedRule:
    issues, trigger, planned = _build(automation)
    if issues or trigger is None:
        raise RuleValidationError(issues)
    return ValidatedRule(automation=automation, trigger=trigger, actions=tuple(planned))


def is_persistable(automation: Automation) -> bool:
    return not collect_issues(automation)
