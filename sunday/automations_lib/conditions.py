from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_ANY_OF = "is_any_of"
    IS_NONE_OF = "is_none_of"


_CAMEL_OPERATORS = {
    "notEquals": ConditionOperator.NOT_EQUALS,
    "notContains": ConditionOperator.NOT_CONTAINS,
    "isEmpty": ConditionOperator.IS_EMPTY,
    "isNotEmpty": ConditionOperator.IS_NOT_EMPTY,
    "greaterThan": ConditionOperator.GREATER_THAN,
    "lessThan": ConditionOperator.LESS_THAN,
    "isAnyOf": ConditionOperator.IS_ANY_OF,
    "isNoneOf": ConditionOperator.IS_NONE_OF,
}


def parse_operator(raw: str | ConditionOperator) -> ConditionOperator:
    if isinstance(raw, ConditionOperator):
        return raw
    text = str(raw or "").strip()
    if text in _CAMEL_OPERATORS:
        return _CAMEL_OPERATORS[text]
    try:
        return ConditionOperator(text.lower())
    except ValueError:
        raise ValueError(f"Unknown condition operator: {raw!r}") from None


def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class AutomationCondition:
    column_key: str
    operator: ConditionOperator
    value: Any = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> AutomationCondition:
        column_key = str(payload.get("column_key") or "").strip()
        if not column_key:
            raise ValueError("Condition column_key is required.")
        return cls(
            column_key=column_key,
            operator=parse_operator(payload.get("operator", ConditionOperator.EQUALS)),
            value=payload.get("value"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "column_key": self.column_key,
            "operator": self.operator.value,
            "value": self.value,
        }

    def evaluate(self, actual: Any) -> bool:
        op = self.operator
        if op is ConditionOperator.EQUALS:
            return actual == self.value
        if op is ConditionOperator.NOT_EQUALS:
            return actual != self.value
        if op is ConditionOperator.CONTAINS:
            if actual is None:
                return False
            return str(self.value) in str(actual)
        if op is ConditionOperator.NOT_CONTAINS:
            if actual is None:
                return False
            return str(self.value) not in str(actual)
        if op is ConditionOperator.IS_EMPTY:
            return is_empty_value(actual)
        if op is ConditionOperator.IS_NOT_EMPTY:
            return not is_empty_value(actual)
        if op is ConditionOperator.GREATER_THAN:
            return _is_number(actual) and _is_number(self.value) and actual > self.value
        if op is ConditionOperator.LESS_THAN:
            return _is_number(actual) and _is_number(self.value) and actual < self.value
        # Misconfigured list conditions never pass.
        if not isinstance(self.value, (list, tuple)):
            return False
        if op is ConditionOperator.IS_ANY_OF:
            return actual in self.value
        return actual not in self.value
