from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from sunday.automations_lib.catalog import Frequency, TriggerKind, parse_trigger_kind
from sunday.automations_lib.errors import ConfigError


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def read_field(config: Mapping[str, Any], key: str, *fallbacks: str) -> Any:
    for name in (key, *fallbacks):
        value = config.get(name)
        if not is_blank(value):
            return value
    return None


def as_text(value: Any) -> str:
    return str(value).strip()


@dataclass(frozen=True)
class SimpleTrigger:
    kind: TriggerKind

    def to_config(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class StatusChangeTrigger:
    column_key: str | None = None
    kind: TriggerKind = TriggerKind.STATUS_CHANGES

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key} if self.column_key else {}


@dataclass(frozen=True)
class StatusChangesTo:
    column_key: str
    value: str
    from_value: str | None = None
    kind: TriggerKind = TriggerKind.STATUS_CHANGES_TO

    def to_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {"column_key": self.column_key, "value": self.value}
        if self.from_value is not None:
            config["from_value"] = self.from_value
        return config


@dataclass(frozen=True)
class PersonTrigger:
    kind: TriggerKind
    column_key: str

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key}


@dataclass(frozen=True)
class ColumnTrigger:
    kind: TriggerKind
    column_key: str

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key}


@dataclass(frozen=True)
class DateArrives:
    column_key: str
    kind: TriggerKind = TriggerKind.DATE_ARRIVES

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key}


@dataclass(frozen=True)
class DateApproaching:
    column_key: str
    days_before: int
    kind: TriggerKind = TriggerKind.DATE_APPROACHING

    def to_config(self) -> dict[str, Any]:
        return {"column_key": self.column_key, "value": self.days_before}


@dataclass(frozen=True)
class Recurring:
    frequency: Frequency
    kind: TriggerKind = TriggerKind.RECURRING

    def to_config(self) -> dict[str, Any]:
        return {"value": self.frequency.value}


TriggerSpec = Union[
    SimpleTrigger,
    StatusChangeTrigger,
    StatusChangesTo,
    PersonTrigger,
    ColumnTrigger,
    DateArrives,
    DateApproaching,
    Recurring,
]

_SIMPLE_KINDS = frozenset(
    {
        TriggerKind.ITEM_CREATED,
        TriggerKind.ITEM_UPDATED,
        TriggerKind.ITEM_DELETED,
        TriggerKind.ITEM_MOVED,
        TriggerKind.SUBITEM_CREATED,
        TriggerKind.ALL_SUBITEMS_COMPLETED,
    }
)
_PERSON_KINDS = frozenset({TriggerKind.PERSON_ASSIGNED, TriggerKind.PERSON_UNASSIGNED})
_COLUMN_KINDS = frozenset(
    {
        TriggerKind.COLUMN_CHANGES,
        TriggerKind.COLUMN_IS_EMPTY,
        TriggerKind.COLUMN_IS_NOT_EMPTY,
    }
)


def _parse_days(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() and raw >= 0 else None
    text = as_text(raw)
    if not text.isdigit():
        return None
    return int(text)


def parse_trigger(
    kind: str | TriggerKind, config: Mapping[str, Any] | None = None
) -> TriggerSpec:
    trigger_kind = parse_trigger_kind(kind)
    config = config or {}
    problems: list[str] = []

    if trigger_kind in _SIMPLE_KINDS:
        return SimpleTrigger(kind=trigger_kind)

    if trigger_kind is TriggerKind.STATUS_CHANGES:
        column_key = read_field(config, "column_key")
        return StatusChangeTrigger(column_key=as_text(column_key) if column_key else None)

    if trigger_kind is TriggerKind.RECURRING:
        raw = read_field(config, "value", "schedule", "frequency")
        if raw is None:
            raise ConfigError(trigger_kind.value, ["value is required"])
        try:
            frequency = Frequency(raw)
        except ValueError:
            raise ConfigError(
                trigger_kind.value,
                [f"value must be one of daily, weekly, monthly (got {raw!r})"],
            ) from None
        return Recurring(frequency=frequency)

    column_key = read_field(config, "column_key")
    if column_key is None:
        problems.append("column_key is required")

    if trigger_kind is TriggerKind.STATUS_CHANGES_TO:
        value = read_field(config, "value", "target_status")
        if value is None:
            problems.append("value is required")
        if problems:
            raise ConfigError(trigger_kind.value, problems)
        from_value = read_field(config, "from_value")
        return StatusChangesTo(
            column_key=as_text(column_key),
            value=as_text(value),
            from_value=as_text(from_value) if from_value is not None else None,
        )

    if trigger_kind is TriggerKind.DATE_APPROACHING:
        raw_days = read_field(config, "value", "days_before")
        days: int | None = None
        if raw_days is None:
            problems.append("value (days before) is required")
        else:
            days = _parse_days(raw_days)
            if days is None:
                problems.append(f"value must be a non-negative integer (got {raw_days!r})")
        if problems or days is None:
            raise ConfigError(trigger_kind.value, problems)
        return DateApproaching(column_key=as_text(column_key), days_before=days)

    if problems:
        raise ConfigError(trigger_kind.value, problems)

    if trigger_kind in _PERSON_KINDS:
        return PersonTrigger(kind=trigger_kind, column_key=as_text(column_key))
    if trigger_kind in _COLUMN_KINDS:
        return ColumnTrigger(kind=trigger_kind, column_key=as_text(column_key))
    return DateArrives(column_key=as_text(column_key))
