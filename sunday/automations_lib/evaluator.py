from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Protocol

from sunday.automations_lib.actions import ActionSpec
from sunday.automations_lib.matching import trigger_matches
from sunday.automations_lib.models import (
    AutomationLog,
    BoardEvent,
    ExecutionContext,
    LogStatus,
)
from sunday.automations_lib.registry import AutomationRegistry
from sunday.automations_lib.validation import ValidatedRule


logger = logging.getLogger(__name__)


class ActionExecutor(Protocol):
    async def execute(
        self, action: ActionSpec, event: BoardEvent, context: ExecutionContext
    ) -> dict[str, Any]:
        """Apply one action to the event's item and return a result payload."""


class ExecutionLedger(Protocol):
    def claim_execution(self, automation_id: int, event_id: str) -> bool: ...

    def record_log(self, log: AutomationLog) -> int: ...


class RuleEvaluator:
    def __init__(
        self,
        registry: AutomationRegistry,
        executor: ActionExecutor,
        ledger: ExecutionLedger,
        timeout_seconds: int,
    ) -> None:
        self._registry = registry
        self._executor = executor
        self._ledger = ledger
        self._timeout_seconds = timeout_seconds

    async def handle_event(
        self, event: BoardEvent, context: ExecutionContext | None = None
    ) -> list[AutomationLog]:
        context = context or ExecutionContext()
        logger.info(
            "event evaluation started",
            extra={
                "event": "evaluation_start",
                "trace_id": context.trace_id,
                "board_id": event.board_id,
                "item_id": event.item.item_id,
                "trigger": event.kind.value,
            },
        )
        logs: list[AutomationLog] = []
        for rule in self._registry.get_for_board(event.board_id):
            if not rule.automation.is_active:
                continue
            if not trigger_matches(rule.trigger, event):
                continue
            if not self._ledger.claim_execution(rule.automation_id, event.event_id):
                logger.info(
                    "automation already executed for event",
                    extra={
                        "event": "automation_duplicate",
                        "trace_id": context.trace_id,
                        "automation_id": rule.automation_id,
                        "item_id": event.item.item_id,
                    },
                )
                continue
            log = await self._run_rule(rule, event, context)
            log_id = self._ledger.record_log(log)
            logs.append(
                AutomationLog(
                    id=log_id,
                    automation_id=log.automation_id,
                    status=log.status,
                    executed_at=log.executed_at,
                    item_id=log.item_id,
                    error_message=log.error_message,
                    trigger_data=log.trigger_data,
                    action_results=log.action_results,
                )
            )
        logger.info(
            "event evaluation finished",
            extra={
                "event": "evaluation_end",
                "trace_id": context.trace_id,
                "board_id": event.board_id,
                "status": "ok",
                "result_count": len(logs),
            },
        )
        return logs

    async def _run_rule(
        self, rule: ValidatedRule, event: BoardEvent, context: ExecutionContext
    ) -> AutomationLog:
        failed_condition = next(
            (
                condition
                for condition in rule.automation.conditions
                if not condition.evaluate(event.item.value(condition.column_key))
            ),
            None,
        )
        if failed_condition is not None:
            logger.info(
                "automation conditions not met",
                extra={
                    "event": "automation_skipped",
                    "trace_id": context.trace_id,
                    "automation_id": rule.automation_id,
                    "item_id": event.item.item_id,
                    "status": "skipped",
                },
            )
            return AutomationLog(
                automation_id=rule.automation_id,
                status=LogStatus.SKIPPED,
                executed_at=context.utc_now(),
                item_id=event.item.item_id,
                error_message=(
                    f"Condition on {failed_condition.column_key} "
                    f"({failed_condition.operator.value}) not met"
                ),
                trigger_data=event.summary(),
            )

        results: list[dict[str, Any]] = []
        error_message: str | None = None
        for planned in rule.actions:
            action_name = planned.spec.kind.value
            start = perf_counter()
            try:
                outcome = await asyncio.wait_for(
                    self._executor.execute(planned.spec, event, context),
                    timeout=self._timeout_seconds,
                )
            except Exception as exc:
                error_message = (
                    f"Action {action_name} (order {planned.order}) failed: "
                    f"{str(exc) or exc.__class__.__name__}"
                )
                logger.exception(
                    "automation action failed",
                    extra={
                        "event": "action_error",
                        "trace_id": context.trace_id,
                        "automation_id": rule.automation_id,
                        "item_id": event.item.item_id,
                        "action": action_name,
                        "status": "error",
                    },
                )
                results.append(
                    {"order": planned.order, "action": action_name, "ok": False,
                     "error": error_message}
                )
                break
            elapsed_ms = int((perf_counter() - start) * 1000)
            logger.info(
                "automation action finished",
                extra={
                    "event": "action_ok",
                    "trace_id": context.trace_id,
                    "automation_id": rule.automation_id,
                    "item_id": event.item.item_id,
                    "action": action_name,
                    "status": "ok",
                    "latency_ms": elapsed_ms,
                },
            )
            results.append(
                {"order": planned.order, "action": action_name, "ok": True,
                 "result": outcome}
            )

        return AutomationLog(
            automation_id=rule.automation_id,
            status=LogStatus.FAILED if error_message else LogStatus.SUCCESS,
            executed_at=context.utc_now(),
            item_id=event.item.item_id,
            error_message=error_message,
            trigger_data=event.summary(),
            action_results={"actions": results},
        )
