"""Automation rules for Sunday boards."""

from sunday.automations_lib.catalog import ActionKind, TriggerKind
from sunday.automations_lib.evaluator import ActionExecutor, RuleEvaluator
from sunday.automations_lib.models import (
    ActionConfig,
    Automation,
    AutomationLog,
    BoardEvent,
    ExecutionContext,
    ItemSnapshot,
)
from sunday.automations_lib.registry import AutomationRegistry
from sunday.automations_lib.validation import ValidatedRule, validate_automation

__all__ = [
    "ActionConfig",
    "ActionExecutor",
    "ActionKind",
    "Automation",
    "AutomationLog",
    "AutomationRegistry",
    "BoardEvent",
    "ExecutionContext",
    "ItemSnapshot",
    "RuleEvaluator",
    "TriggerKind",
    "ValidatedRule",
    "validate_automation",
]
