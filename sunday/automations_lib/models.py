from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import json
from typing import Any, Mapping

from sunday.automations_lib.catalog import (
    ActionKind,
    TriggerKind,
    implied_action_config,
    parse_action_kind,
    parse_trigger_kind,
)
from sunday.automations_lib.conditions import AutomationCondition


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_json_object(raw: Any, *, field_name: str) -> dict[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return {}
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid {field_name}: expected a JSON object.") from exc
        if isinstance(payload, dict):
            return payload
        raw = payload
    # PHP encodes an empty map as [].
    if raw == []:
        return {}
    raise ValueError(f"Invalid {field_name}: expected a JSON object.")


def parse_json_list(raw: Any, *, field_name: str) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return []
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid {field_name}: expected a JSON list.") from exc
    if not isinstance(raw, list):
        raise ValueError(f"Invalid {field_name}: expected a JSON list.")
    return raw


def parse_int(*candidates: Any, default: int = 0) -> int:
    for value in candidates:
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        text = str(value).strip()
        if text.lstrip("-").isdigit():
            return int(text)
    return default


def parse_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ActionConfig:
    action: ActionKind
    config: dict[str, Any] = field(default_factory=dict)
    order: int = 0
    id: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ActionConfig:
        raw_kind = payload.get("action_type") or payload.get("action") or ""
        raw_config = payload.get("action_config")
        if raw_config is None:
            raw_config = payload.get("config")
        return cls(
            action=parse_action_kind(raw_kind),
            config={
                **implied_action_config(raw_kind),
                **parse_json_object(raw_config, field_name="action_config"),
            },
            order=parse_int(payload.get("order"), payload.get("position")),
            id=parse_int(payload.get("id")),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action_type": self.action.value,
            "action_config": dict(self.config),
            "config": dict(self.config),
            "order": self.order,
        }

    @property
    def readable_description(self) -> str:
        config = self.config
        if self.action is ActionKind.CHANGE_STATUS:
            status = config.get("value") or config.get("target_status") or "value"
            return f'change status to "{status}"'
        if self.action is ActionKind.ASSIGN_PERSON:
            return f"assign {config.get('person') or 'someone'}"
        if self.action is ActionKind.SEND_NOTIFICATION:
            return "send notification" if config.get("message") else "notify user"
        if self.action is ActionKind.MOVE_ITEM:
            has_group = config.get("group_id") or config.get("target_group")
            return "move to group" if has_group else "move item"
        if self.action is ActionKind.SET_COLUMN_VALUE:
            return f"set {config.get('column_key') or 'column'} value"
        return self.action.value.replace("_", " ")


@dataclass(frozen=True)
class Automation:
    id: int
    board_id: int
    name: str
    trigger: TriggerKind
    trigger_config: dict[str, Any] = field(default_factory=dict)
    actions: tuple[ActionConfig, ...] = ()
    conditions: tuple[AutomationCondition, ...] = ()
    description: str | None = None
    is_active: bool = True
    created_by: str = ""
    created_at: datetime | None = None
    last_triggered_at: datetime | None = None
    trigger_count: int = 0

    @property
    def is_new(self) -> bool:
        return self.id <= 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Automation:
        actions = [
            ActionConfig.from_payload(item)
            for item in parse_json_list(payload.get("actions"), field_name="actions")
        ]
        conditions = [
            AutomationCondition.from_payload(item)
            for item in parse_json_list(payload.get("conditions"), field_name="conditions")
        ]
        description = payload.get("description")
        return cls(
            id=parse_int(payload.get("id")),
            board_id=parse_int(payload.get("board_id")),
            name=str(payload.get("name") or "").strip(),
            trigger=parse_trigger_kind(payload.get("trigger_type") or ""),
            trigger_config=parse_json_object(
                payload.get("trigger_config"), field_name="trigger_config"
            ),
            actions=tuple(sorted(actions, key=lambda item: item.order)),
            conditions=tuple(conditions),
            description=str(description) if description else None,
            is_active=parse_bool(payload.get("is_active"), default=True),
            created_by=str(payload.get("created_by") or ""),
            created_at=parse_datetime(payload.get("created_at")),
            last_triggered_at=parse_datetime(payload.get("last_triggered_at")),
            trigger_count=parse_int(payload.get("trigger_count")),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "board_id": self.board_id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "trigger_type": self.trigger.value,
            "trigger_config": dict(self.trigger_config),
            "actions": [action.to_payload() for action in self.sorted_actions()],
            "conditions": [condition.to_payload() for condition in self.conditions],
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_triggered_at": (
                self.last_triggered_at.isoformat() if self.last_triggered_at else None
            ),
            "trigger_count": self.trigger_count,
        }

    def sorted_actions(self) -> tuple[ActionConfig, ...]:
        return tuple(sorted(self.actions, key=lambda item: item.order))

    @property
    def readable_description(self) -> str:
        steps = ", then ".join(
            action.readable_description for action in self.sorted_actions()
        )
        return f"When {self._trigger_description()}, {steps or 'do nothing'}"

    def _trigger_description(self) -> str:
        config = self.trigger_config
        if self.trigger is TriggerKind.STATUS_CHANGES:
            return "status changes"
        if self.trigger is TriggerKind.STATUS_CHANGES_TO:
            value = config.get("value") or config.get("target_status") or "value"
            return f'status changes to "{value}"'
        if self.trigger is TriggerKind.COLUMN_CHANGES:
            return f"{config.get('column_key') or 'column'} changes"
        if self.trigger is TriggerKind.DATE_ARRIVES:
            return f"{config.get('column_key') or 'date'} arrives"
        if self.trigger is TriggerKind.DATE_APPROACHING:
            days = config.get("value") or config.get("days_before") or "some"
            return f"{config.get('column_key') or 'date'} is {days} days away"
        if self.trigger is TriggerKind.RECURRING:
            return f"every {config.get('value') or config.get('schedule') or 'day'}"
        labels = {
            TriggerKind.ITEM_CREATED: "item is created",
            TriggerKind.ITEM_UPDATED: "item is updated",
            TriggerKind.ITEM_DELETED: "item is deleted",
            TriggerKind.ITEM_MOVED: "item is moved",
            TriggerKind.PERSON_ASSIGNED: "person is assigned",
            TriggerKind.PERSON_UNASSIGNED: "person is unassigned",
        }
        return labels.get(self.trigger, self.trigger.value.replace("_", " "))


class LogStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class AutomationLog:
    automation_id: int
    status: LogStatus
    executed_at: datetime
    item_id: int | None = None
    error_message: str | None = None
    trigger_data: dict[str, Any] | None = None
    action_results: dict[str, Any] | None = None
    id: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> AutomationLog:
        item_id = payload.get("item_id")
        trigger_data = payload.get("trigger_data")
        action_results = payload.get("action_results")
        return cls(
            id=parse_int(payload.get("id")),
            automation_id=parse_int(payload.get("automation_id")),
            item_id=parse_int(item_id) if item_id is not None else None,
            status=LogStatus(str(payload.get("status") or "").strip().lower()),
            error_message=payload.get("error_message") or None,
            trigger_data=(
                parse_json_object(trigger_data, field_name="trigger_data")
                if trigger_data is not None
                else None
            ),
            action_results=(
                parse_json_object(action_results, field_name="action_results")
                if action_results is not None
                else None
            ),
            executed_at=parse_datetime(payload.get("executed_at")) or utc_now(),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "automation_id": self.automation_id,
            "item_id": self.item_id,
            "status": self.status.value,
            "error_message": self.error_message,
            "trigger_data": self.trigger_data,
            "action_results": self.action_results,
            "executed_at": self.executed_at.isoformat(),
        }


class EventKind(str, Enum):
    ITEM_CREATED = "item_created"
    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"
    ITEM_MOVED = "item_moved"
    COLUMN_CHANGED = "column_changed"
    SUBITEM_CREATED = "subitem_created"
    ALL_SUBITEMS_COMPLETED = "all_subitems_completed"
    DATE_REACHED = "date_reached"
    SCHEDULE_TICK = "schedule_tick"


@dataclass(frozen=True)
class ItemSnapshot:
    item_id: int
    board_id: int
    name: str
    group_id: int | None = None
    created_by: str | None = None
    assignees: tuple[str, ...] = ()
    column_values: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ItemSnapshot:
        group_id = payload.get("group_id")
        created_by = payload.get("created_by")
        assignees = payload.get("assignees") or ()
        if isinstance(assignees, str):
            assignees = assignees.split(",")
        return cls(
            item_id=parse_int(payload.get("item_id"), payload.get("id")),
            board_id=parse_int(payload.get("board_id")),
            name=str(payload.get("name") or ""),
            group_id=parse_int(group_id) if group_id is not None else None,
            created_by=str(created_by) if created_by else None,
            assignees=tuple(str(user).strip() for user in assignees if str(user).strip()),
            column_values=parse_json_object(
                payload.get("column_values"), field_name="column_values"
            ),
        )

    def value(self, column_key: str) -> Any:
        return self.column_values.get(column_key)


@dataclass(frozen=True)
class BoardEvent:
    """A mutation or clock signal observed on one board item."""

    event_id: str
    kind: EventKind
    item: ItemSnapshot
    column_key: str | None = None
    column_type: str | None = None
    previous: Any = None
    current: Any = None
    days_until: int | None = None
    frequency: str | None = None
    occurred_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> BoardEvent:
        event_id = str(payload.get("event_id") or "").strip()
        if not event_id:
            raise ValueError("Invalid event: event_id is required.")
        item = payload.get("item")
        if not isinstance(item, Mapping):
            raise ValueError("Invalid event: item must be a JSON object.")
        days_until = payload.get("days_until")
        return cls(
            event_id=event_id,
            kind=EventKind(str(payload.get("kind") or "").strip().lower()),
            item=ItemSnapshot.from_payload(item),
            column_key=payload.get("column_key"),
            column_type=payload.get("column_type"),
            previous=payload.get("previous"),
            current=payload.get("current"),
            days_until=parse_int(days_until) if days_until is not None else None,
            frequency=payload.get("frequency"),
            occurred_at=parse_datetime(payload.get("occurred_at")) or utc_now(),
        )

    @property
    def board_id(self) -> int:
        return self.item.board_id

    def summary(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "kind": self.kind.value,
            "item_id": self.item.item_id,
            "column_key": self.column_key,
            "previous": self.previous,
            "current": self.current,
            "days_until": self.days_until,
            "frequency": self.frequency,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class ExecutionContext:
    trace_id: str = "-"
    acting_username: str = "automation"
    board_name: str = ""

    @staticmethod
    def utc_now() -> datetime:
        return utc_now()
