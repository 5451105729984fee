from __future__ import annotations

import pytest

from sunday.automations_lib.conditions import (
    AutomationCondition,
    ConditionOperator,
    parse_operator,
)


def condition(operator: ConditionOperator, value=None) -> AutomationCondition:
    return AutomationCondition(column_key="priority", operator=operator, value=value)


@pytest.mark.parametrize(
    ("operator", "value", "actual", "expected"),
    [
        (ConditionOperator.EQUALS, "High", "High", True),
        (ConditionOperator.EQUALS, "High", "Low", False),
        (ConditionOperator.NOT_EQUALS, "High", "Low", True),
        (ConditionOperator.CONTAINS, "urg", "urgent", True),
        (ConditionOperator.CONTAINS, "urg", None, False),
        (ConditionOperator.NOT_CONTAINS, "urg", "calm", True),
        (ConditionOperator.NOT_CONTAINS, "urg", None, False),
        (ConditionOperator.IS_EMPTY, None, "  ", True),
        (ConditionOperator.IS_EMPTY, None, [], True),
        (ConditionOperator.IS_NOT_EMPTY, None, ["ana"], True),
        (ConditionOperator.GREATER_THAN, 3, 5, True),
        (ConditionOperator.GREATER_THAN, 3, "5", False),
        (ConditionOperator.LESS_THAN, 3, 1.5, True),
        (ConditionOperator.LESS_THAN, 3, True, False),
        (ConditionOperator.IS_ANY_OF, ["High", "Critical"], "High", True),
        (ConditionOperator.IS_ANY_OF, "High", "High", False),
        (ConditionOperator.IS_NONE_OF, ["High"], "Low", True),
        (ConditionOperator.IS_NONE_OF, None, "Low", False),
    ],
)
def test_evaluate(operator, value, actual, expected) -> None:
    assert condition(operator, value).evaluate(actual) is expected


def test_parse_operator_accepts_camel_case() -> None:
    assert parse_operator("greaterThan") is ConditionOperator.GREATER_THAN
    assert parse_operator("IS_EMPTY") is ConditionOperator.IS_EMPTY
    with pytest.raises(ValueError):
        parse_operator("between")


def test_from_payload_defaults_to_equals() -> None:
    parsed = AutomationCondition.from_payload({"column_key": "status", "value": "Done"})

    assert parsed.operator is ConditionOperator.EQUALS
    assert parsed.to_payload() == {"column_key": "status", "operator": "equals", "value": "Done"}
    with pytest.raises(ValueError):
        AutomationCondition.from_payload({"operator": "equals"})
