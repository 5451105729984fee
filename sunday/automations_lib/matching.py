from __future__ import annotations

from typing import Any

from sunday.automations_lib.catalog import TriggerKind
from sunday.automations_lib.conditions import is_empty_value
from sunday.automations_lib.models import BoardEvent, EventKind
from sunday.automations_lib.triggers import (
    ColumnTrigger,
    DateApproaching,
    DateArrives,
    PersonTrigger,
    Recurring,
    SimpleTrigger,
    StatusChangeTrigger,
    StatusChangesTo,
    TriggerSpec,
)


_SIMPLE_EVENTS: dict[TriggerKind, frozenset[EventKind]] = {
    TriggerKind.ITEM_CREATED: frozenset({EventKind.ITEM_CREATED}),
    TriggerKind.ITEM_UPDATED: frozenset({EventKind.ITEM_UPDATED, EventKind.COLUMN_CHANGED}),
    TriggerKind.ITEM_DELETED: frozenset({EventKind.ITEM_DELETED}),
    TriggerKind.ITEM_MOVED: frozenset({EventKind.ITEM_MOVED}),
    TriggerKind.SUBITEM_CREATED: frozenset({EventKind.SUBITEM_CREATED}),
    TriggerKind.ALL_SUBITEMS_COMPLETED: frozenset({EventKind.ALL_SUBITEMS_COMPLETED}),
}

_STATUS_COLUMN_TYPES = frozenset({"status", "label"})


def people(value: Any) -> set[str]:
    if value is None:
        return set()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = list(value)
    else:
        items = [value]
    return {str(item).strip().lower() for item in items if str(item).strip()}


def _same(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is right
    return str(left).strip() == str(right).strip()


def _column_changed(event: BoardEvent, column_key: str | None = None) -> bool:
    if event.kind is not EventKind.COLUMN_CHANGED:
        return False
    if column_key is not None and event.column_key != column_key:
        return False
    return not _same(event.previous, event.current)


def trigger_matches(trigger: TriggerSpec, event: BoardEvent) -> bool:
    if isinstance(trigger, SimpleTrigger):
        return event.kind in _SIMPLE_EVENTS.get(trigger.kind, frozenset())

    if isinstance(trigger, StatusChangesTo):
        if not _column_changed(event, trigger.column_key):
            return False
        if not _same(event.current, trigger.value):
            return False
        if trigger.from_value is not None:
            return _same(event.previous, trigger.from_value)
        return True

    if isinstance(trigger, StatusChangeTrigger):
        if trigger.column_key is not None:
            return _column_changed(event, trigger.column_key)
        return (
            _column_changed(event)
            and (event.column_type or "").lower() in _STATUS_COLUMN_TYPES
        )

    if isinstance(trigger, PersonTrigger):
        if not _column_changed(event, trigger.column_key):
            return False
        before = people(event.previous)
        after = people(event.current)
        if trigger.kind is TriggerKind.PERSON_ASSIGNED:
            return bool(after - before)
        return bool(before - after)

    if isinstance(trigger, ColumnTrigger):
        if not _column_changed(event, trigger.column_key):
            return False
        if trigger.kind is TriggerKind.COLUMN_IS_EMPTY:
            return is_empty_value(event.current) and not is_empty_value(event.previous)
        if trigger.kind is TriggerKind.COLUMN_IS_NOT_EMPTY:
            return not is_empty_value(event.current) and is_empty_value(event.previous)
        return True

    if isinstance(trigger, DateArrives):
        return (
            event.kind is EventKind.DATE_REACHED
            and event.column_key == trigger.column_key
            and event.days_until == 0
        )

    if isinstance(trigger, DateApproaching):
        return (
            event.kind is EventKind.DATE_REACHED
            and event.column_key == trigger.column_key
            and event.days_until == trigger.days_before
        )

    if isinstance(trigger, Recurring):
        return (
            event.kind is EventKind.SCHEDULE_TICK
            and (event.frequency or "").strip().lower() == trigger.frequency.value
        )

    return False
