from __future__ import annotations

from enum import Enum

from sunday.automations_lib.errors import UnknownKindError


class TriggerKind(str, Enum):
    STATUS_CHANGES_TO = "status_changes_to"
    STATUS_CHANGES = "status_changes"
    ITEM_CREATED = "item_created"
    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"
    ITEM_MOVED = "item_moved"
    PERSON_ASSIGNED = "person_assigned"
    PERSON_UNASSIGNED = "person_unassigned"
    COLUMN_CHANGES = "column_changes"
    COLUMN_IS_EMPTY = "column_is_empty"
    COLUMN_IS_NOT_EMPTY = "column_is_not_empty"
    DATE_ARRIVES = "date_arrives"
    DATE_APPROACHING = "date_approaching"
    SUBITEM_CREATED = "subitem_created"
    ALL_SUBITEMS_COMPLETED = "all_subitems_completed"
    RECURRING = "recurring"


class ActionKind(str, Enum):
    MOVE_ITEM = "move_item"
    CHANGE_STATUS = "change_status"
    CLEAR_STATUS = "clear_status"
    ASSIGN_PERSON = "assign_person"
    UNASSIGN_PERSON = "unassign_person"
    ASSIGN_CREATOR = "assign_creator"
    SEND_NOTIFICATION = "send_notification"
    SEND_ALERT = "send_alert"
    SEND_EMAIL = "send_email"
    SET_COLUMN_VALUE = "set_column_value"
    CLEAR_COLUMN_VALUE = "clear_column_value"
    CREATE_SUBITEM = "create_subitem"
    POST_UPDATE = "post_update"
    ARCHIVE_ITEM = "archive_item"
    DUPLICATE_ITEM = "duplicate_item"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# Names emitted by the backend and by older clients.
_TRIGGER_ALIASES: dict[str, TriggerKind] = {
    "status_changed": TriggerKind.STATUS_CHANGES_TO,
    "column_changed": TriggerKind.ITEM_UPDATED,
}

_ACTION_ALIASES: dict[str, ActionKind] = {
    "move_to_group": ActionKind.MOVE_ITEM,
    "create_update": ActionKind.POST_UPDATE,
    "notify_assignee": ActionKind.SEND_NOTIFICATION,
    "notify_board_members": ActionKind.SEND_NOTIFICATION,
}

# Legacy notification names carry their recipient source in the name.
_ACTION_ALIAS_FLAGS: dict[str, str] = {
    "notify_assignee": "notify_assignee",
    "notify_board_members": "notify_board_members",
}

TRIGGER_REQUIRED_FIELDS: dict[TriggerKind, tuple[str, ...]] = {
    TriggerKind.STATUS_CHANGES_TO: ("column_key", "value"),
    TriggerKind.STATUS_CHANGES: (),
    TriggerKind.ITEM_CREATED: (),
    TriggerKind.ITEM_UPDATED: (),
    TriggerKind.ITEM_DELETED: (),
    TriggerKind.ITEM_MOVED: (),
    TriggerKind.PERSON_ASSIGNED: ("column_key",),
    TriggerKind.PERSON_UNASSIGNED: ("column_key",),
    TriggerKind.COLUMN_CHANGES: ("column_key",),
    TriggerKind.COLUMN_IS_EMPTY: ("column_key",),
    TriggerKind.COLUMN_IS_NOT_EMPTY: ("column_key",),
    TriggerKind.DATE_ARRIVES: ("column_key",),
    TriggerKind.DATE_APPROACHING: ("column_key", "value"),
    TriggerKind.SUBITEM_CREATED: (),
    TriggerKind.ALL_SUBITEMS_COMPLETED: (),
    TriggerKind.RECURRING: ("value",),
}

# Notification kinds need at least one recipient source instead of a fixed key.
ACTION_REQUIRED_FIELDS: dict[ActionKind, tuple[str, ...]] = {
    ActionKind.MOVE_ITEM: ("group_id",),
    ActionKind.CHANGE_STATUS: ("column_key", "value"),
    ActionKind.CLEAR_STATUS: ("column_key",),
    ActionKind.ASSIGN_PERSON: ("column_key", "person"),
    ActionKind.UNASSIGN_PERSON: ("column_key",),
    ActionKind.ASSIGN_CREATOR: ("column_key",),
    ActionKind.SEND_NOTIFICATION: (),
    ActionKind.SEND_ALERT: (),
    ActionKind.SEND_EMAIL: ("to",),
    ActionKind.SET_COLUMN_VALUE: ("column_key",),
    ActionKind.CLEAR_COLUMN_VALUE: ("column_key",),
    ActionKind.CREATE_SUBITEM: (),
    ActionKind.POST_UPDATE: ("message",),
    ActionKind.ARCHIVE_ITEM: (),
    ActionKind.DUPLICATE_ITEM: (),
}

RECIPIENT_SOURCES = (
    "to_users",
    "notify_assignee",
    "notify_creator",
    "notify_board_members",
)

TRIGGER_LABELS: dict[TriggerKind, str] = {
    TriggerKind.STATUS_CHANGES_TO: "Status changes to...",
    TriggerKind.STATUS_CHANGES: "Any status/label change",
    TriggerKind.ITEM_CREATED: "Item is created",
    TriggerKind.ITEM_UPDATED: "Item is updated",
    TriggerKind.ITEM_DELETED: "Item is deleted",
    TriggerKind.ITEM_MOVED: "Item is moved to group",
    TriggerKind.PERSON_ASSIGNED: "Person is assigned",
    TriggerKind.PERSON_UNASSIGNED: "Person is unassigned",
    TriggerKind.COLUMN_CHANGES: "Column value changes",
    TriggerKind.COLUMN_IS_EMPTY: "Column becomes empty",
    TriggerKind.COLUMN_IS_NOT_EMPTY: "Column is no longer empty",
    TriggerKind.DATE_ARRIVES: "Date arrives",
    TriggerKind.DATE_APPROACHING: "Date is approaching",
    TriggerKind.SUBITEM_CREATED: "Subitem is created",
    TriggerKind.ALL_SUBITEMS_COMPLETED: "All subitems completed",
    TriggerKind.RECURRING: "On a recurring schedule",
}

ACTION_LABELS: dict[ActionKind, str] = {
    ActionKind.MOVE_ITEM: "Move item to group",
    ActionKind.CHANGE_STATUS: "Change status",
    ActionKind.CLEAR_STATUS: "Clear status",
    ActionKind.ASSIGN_PERSON: "Assign person",
    ActionKind.UNASSIGN_PERSON: "Unassign person",
    ActionKind.ASSIGN_CREATOR: "Assign to item creator",
    ActionKind.SEND_NOTIFICATION: "Send notification",
    ActionKind.SEND_ALERT: "Send alert",
    ActionKind.SEND_EMAIL: "Send email",
    ActionKind.SET_COLUMN_VALUE: "Set column value",
    ActionKind.CLEAR_COLUMN_VALUE: "Clear column value",
    ActionKind.CREATE_SUBITEM: "Create subitem",
    ActionKind.POST_UPDATE: "Post an update",
    ActionKind.ARCHIVE_ITEM: "Archive item",
    ActionKind.DUPLICATE_ITEM: "Duplicate item",
}


def _normalize_name(raw: str) -> str:
    value = raw.strip()
    if not value:
        return value
    if "_" in value or value.islower() or value.isupper():
        return value.lower()
    # camelCase -> snake_case
    chars: list[str] = []
    for char in value:
        if char.isupper():
            chars.append("_")
            chars.append(char.lower())
        else:
            chars.append(char)
    return "".join(chars).lstrip("_")


def parse_trigger_kind(raw: str | TriggerKind) -> TriggerKind:
    if isinstance(raw, TriggerKind):
        return raw
    name = _normalize_name(str(raw or ""))
    if name in _TRIGGER_ALIASES:
        return _TRIGGER_ALIASES[name]
    try:
        return TriggerKind(name)
    except ValueError:
        raise UnknownKindError(f"Unknown trigger type: {raw!r}") from None


def parse_action_kind(raw: str | ActionKind) -> ActionKind:
    if isinstance(raw, ActionKind):
        return raw
    name = _normalize_name(str(raw or ""))
    if name in _ACTION_ALIASES:
        return _ACTION_ALIASES[name]
    try:
        return ActionKind(name)
    except ValueError:
        raise UnknownKindError(f"Unknown action type: {raw!r}") from None


def implied_action_config(raw: str | ActionKind) -> dict[str, bool]:
    if isinstance(raw, ActionKind):
        return {}
    flag = _ACTION_ALIAS_FLAGS.get(_normalize_name(str(raw or "")))
    return {flag: True} if flag else {}
