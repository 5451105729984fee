from __future__ import annotations

import pytest

from sunday.automations_lib.catalog import TriggerKind
from sunday.automations_lib.matching import trigger_matches
from sunday.automations_lib.models import BoardEvent, EventKind, ItemSnapshot
from sunday.automations_lib.triggers import parse_trigger


ITEM = ItemSnapshot(item_id=1, board_id=1, name="Job")


def event(kind: EventKind = EventKind.COLUMN_CHANGED, **fields) -> BoardEvent:
    return BoardEvent(event_id="e1", kind=kind, item=ITEM, **fields)


def test_status_changes_to_target_and_origin() -> None:
    trigger = parse_trigger(
        "status_changes_to", {"column_key": "status", "value": "Done", "from_value": "Working"}
    )

    assert trigger_matches(trigger, event(column_key="status", previous="Working", current="Done"))
    assert not trigger_matches(trigger, event(column_key="status", previous="Stuck", current="Done"))
    assert not trigger_matches(trigger, event(column_key="status", previous="Working", current="Stuck"))
    assert not trigger_matches(trigger, event(column_key="stage", previous="Working", current="Done"))


def test_unchanged_value_never_matches() -> None:
    trigger = parse_trigger("column_changes", {"column_key": "notes"})

    assert not trigger_matches(trigger, event(column_key="notes", previous="a", current="a"))
    assert trigger_matches(trigger, event(column_key="notes", previous="a", current="b"))


def test_any_status_change_uses_column_type() -> None:
    trigger = parse_trigger("status_changes", {})

    assert trigger_matches(
        trigger, event(column_key="stage", column_type="status", previous="A", current="B")
    )
    assert not trigger_matches(
        trigger, event(column_key="notes", column_type="text", previous="A", current="B")
    )


def test_person_triggers_follow_gained_and_lost_users() -> None:
    assigned = parse_trigger("person_assigned", {"column_key": "owner"})
    unassigned = parse_trigger("person_unassigned", {"column_key": "owner"})
    added = event(column_key="owner", previous=["ana"], current=["ana", "Ben"])
    removed = event(column_key="owner", previous="ana,ben", current="ana")

    assert trigger_matches(assigned, added)
    assert not trigger_matches(unassigned, added)
    assert trigger_matches(unassigned, removed)
    assert not trigger_matches(assigned, removed)


def test_empty_transitions() -> None:
    empty = parse_trigger("column_is_empty", {"column_key": "notes"})
    filled = parse_trigger("column_is_not_empty", {"column_key": "notes"})

    assert trigger_matches(empty, event(column_key="notes", previous="x", current=""))
    assert not trigger_matches(filled, event(column_key="notes", previous="x", current=""))
    assert trigger_matches(filled, event(column_key="notes", previous=None, current="x"))
    assert not trigger_matches(filled, event(column_key="notes", previous="y", current="x"))


@pytest.mark.parametrize(
    ("kind", "config", "days_until", "expected"),
    [
        ("date_arrives", {"column_key": "due"}, 0, True),
        ("date_arrives", {"column_key": "due"}, 1, False),
        ("date_approaching", {"column_key": "due", "value": 2}, 2, True),
        ("date_approaching", {"column_key": "due", "value": 2}, 1, False),
    ],
)
def test_date_triggers(kind: str, config: dict, days_until: int, expected: bool) -> None:
    trigger = parse_trigger(kind, config)
    signal = event(EventKind.DATE_REACHED, column_key="due", days_until=days_until)

    assert trigger_matches(trigger, signal) is expected


def test_recurring_and_simple_triggers() -> None:
    weekly = parse_trigger(TriggerKind.RECURRING, {"value": "weekly"})
    updated = parse_trigger(TriggerKind.ITEM_UPDATED, {})

    assert trigger_matches(weekly, event(EventKind.SCHEDULE_TICK, frequency="Weekly"))
    assert not trigger_matches(weekly, event(EventKind.SCHEDULE_TICK, frequency="daily"))
    assert trigger_matches(updated, event(EventKind.ITEM_UPDATED))
    assert trigger_matches(updated, event(column_key="notes", previous="a", current="b"))
    assert not trigger_matches(updated, event(EventKind.ITEM_CREATED))
