from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from sunday.automations_lib.catalog import ActionKind, parse_action_kind
from sunday.automations_lib.errors import ConfigError
from sunday.automations_lib.triggers import as_text, is_blank, read_field


@dataclass(frozen=True)
class MoveItem:
    group_id: int
    kind: ActionKind = ActionKind.MOVE_ITEM

    def to_config(self) -> dict[str, Any]:
        return {"group_id": self.group_id}


@dataclass(frozen=True)
class ChangeStatus:
    column_key: str
    value: str
    kind: ActionKind = ActionKind.CHANGE_STATUS

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key, "value": self.value}


@dataclass(frozen=True)
class ClearStatus:
    column_key: str
    kind: ActionKind = ActionKind.CLEAR_STATUS

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key}


@dataclass(frozen=True)
class AssignPerson:
    column_key: str
    person: str
    kind: ActionKind = ActionKind.ASSIGN_PERSON

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key, "person": self.person}


@dataclass(frozen=True)
class UnassignPerson:
    column_key: str
    person: str | None = None
    kind: ActionKind = ActionKind.UNASSIGN_PERSON

    def to_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {"column_key": self.column_key}
        if self.person:
            config["person"] = self.person
        return config


@dataclass(frozen=True)
class AssignCreator:
    column_key: str
    kind: ActionKind = ActionKind.ASSIGN_CREATOR

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key}


@dataclass(frozen=True)
class Notify:
    kind: ActionKind
    message: str = ""
    title: str = ""
    to_users: tuple[str, ...] = ()
    notify_assignee: bool = False
    notify_creator: bool = False
    notify_board_members: bool = False

    def to_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {
            "message": self.message,
            "to_users": list(self.to_users),
            "notify_assignee": self.notify_assignee,
            "notify_creator": self.notify_creator,
            "notify_board_members": self.notify_board_members,
        }
        if self.title:
            config["title"] = self.title
        return config


@dataclass(frozen=True)
class SendEmail:
    to: str
    subject: str = ""
    message: str = ""
    kind: ActionKind = ActionKind.SEND_EMAIL

    def to_config(self) -> dict[str, Any]:
        return {"to": self.to, "subject": self.subject, "message": self.message}


@dataclass(frozen=True)
class SetColumnValue:
    column_key: str
    value: Any = None
    kind: ActionKind = ActionKind.SET_COLUMN_VALUE

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key, "value": self.value}


@dataclass(frozen=True)
class ClearColumnValue:
    column_key: str
    kind: ActionKind = ActionKind.CLEAR_COLUMN_VALUE

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key}


@dataclass(frozen=True)
class CreateSubitem:
    name: str = "New subitem"
    kind: ActionKind = ActionKind.CREATE_SUBITEM

    def to_config(self) -> dict[str, Any]:
        return {"name": self.name}


@dataclass(frozen=True)
class PostUpdate:
    message: str
    kind: ActionKind = ActionKind.POST_UPDATE

    def to_config(self) -> dict[str, Any]:
        return {"message": self.message}


@dataclass(frozen=True)
class SimpleAction:
    kind: ActionKind

    def to_config(self) -> dict[str, Any]:
        return {}


ActionSpec = Union[
    MoveItem,
    ChangeStatus,
    ClearStatus,
    AssignPerson,
    UnassignPerson,
    AssignCreator,
    Notify,
    SendEmail,
    SetColumnValue,
    ClearColumnValue,
    CreateSubitem,
    PostUpdate,
    SimpleAction,
]


def _read_flag(config: Mapping[str, Any], key: str) -> bool:
    value = config.get(key)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return value is True or value == 1


def _read_users(config: Mapping[str, Any], problems: list[str]) -> tuple[str, ...]:
    raw = config.get("to_users")
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = raw.split(",")
    elif not isinstance(raw, (list, tuple)):
        problems.append("to_users must be a list of usernames")
        return ()
    users: list[str] = []
    for item in raw:
        if is_blank(item):
            continue
        users.append(as_text(item))
    return tuple(users)


def _parse_group_id(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    text = as_text(raw)
    if not text.isdigit():
        return None
    return int(text)


def _require(config: Mapping[str, Any], problems: list[str], key: str, *fallbacks: str) -> Any:
    value = read_field(config, key, *fallbacks)
    if value is None:
        problems.append(f"{key} is required")
    return value


def parse_action(
    kind: str | ActionKind, config: Mapping[str, Any] | None = None
) -> ActionSpec:
    action_kind = parse_action_kind(kind)
    config = config or {}
    problems: list[str] = []

    if action_kind in (ActionKind.ARCHIVE_ITEM, ActionKind.DUPLICATE_ITEM):
        return SimpleAction(kind=action_kind)

    if action_kind is ActionKind.CREATE_SUBITEM:
        name = read_field(config, "name")
        return CreateSubitem(name=as_text(name)) if name is not None else CreateSubitem()

    if action_kind in (ActionKind.SEND_NOTIFICATION, ActionKind.SEND_ALERT):
        action = Notify(
            kind=action_kind,
            message=as_text(config.get("message") or ""),
            title=as_text(config.get("title") or ""),
            to_users=_read_users(config, problems),
            notify_assignee=_read_flag(config, "notify_assignee"),
            notify_creator=_read_flag(config, "notify_creator"),
            notify_board_members=_read_flag(config, "notify_board_members"),
        )
        if problems:
            raise ConfigError(action_kind.value, problems)
        if not (
            action.to_users
            or action.notify_assignee
            or action.notify_creator
            or action.notify_board_members
        ):
            raise ConfigError(
                action_kind.value,
                [
                    "at least one recipient is required "
                    "(to_users, notify_assignee, notify_creator or notify_board_members)"
                ],
            )
        return action

    if action_kind is ActionKind.MOVE_ITEM:
        raw = _require(config, problems, "group_id", "target_group")
        group_id = _parse_group_id(raw) if raw is not None else None
        if raw is not None and group_id is None:
            problems.append(f"group_id must be an integer (got {raw!r})")
        if problems or group_id is None:
            raise ConfigError(action_kind.value, problems)
        return MoveItem(group_id=group_id)

    if action_kind is ActionKind.SEND_EMAIL:
        to = _require(config, problems, "to")
        if problems:
            raise ConfigError(action_kind.value, problems)
        return SendEmail(
            to=as_text(to),
            subject=as_text(config.get("subject") or ""),
            message=as_text(config.get("message") or ""),
        )

    if action_kind is ActionKind.POST_UPDATE:
        message = _require(config, problems, "message")
        if problems:
            raise ConfigError(action_kind.value, problems)
        return PostUpdate(message=str(message))

    column_key = _require(config, problems, "column_key")

    if action_kind is ActionKind.CHANGE_STATUS:
        value = _require(config, problems, "value", "target_status")
        if problems:
            raise ConfigError(action_kind.value, problems)
        return ChangeStatus(column_key=as_text(column_key), value=as_text(value))

    if action_kind is ActionKind.ASSIGN_PERSON:
        person = _require(config, problems, "person")
        if problems:
            raise ConfigError(action_kind.value, problems)
        return AssignPerson(column_key=as_text(column_key), person=as_text(person))

    if problems:
        raise ConfigError(action_kind.value, problems)
    column_key = as_text(column_key)

    if action_kind is ActionKind.UNASSIGN_PERSON:
        person = read_field(config, "person")
        return UnassignPerson(
            column_key=column_key,
            person=as_text(person) if person is not None else None,
        )
    if action_kind is ActionKind.ASSIGN_CREATOR:
        return AssignCreator(column_key=column_key)
    if action_kind is ActionKind.SET_COLUMN_VALUE:
        return SetColumnValue(column_key=column_key, value=config.get("value"))
    if action_kind is ActionKind.CLEAR_COLUMN_VALUE:
        return ClearColumnValue(column_key=column_key)
    return ClearStatus(column_key=column_key)
