from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable

from sunday.automations_lib.cache import TtlCache
from sunday.automations_lib.errors import AutomationApiError, RuleValidationError, ValidationIssue
from sunday.automations_lib.models import Automation, AutomationLog
from sunday.automations_lib.providers.automations_api import AutomationApiClient
from sunday.automations_lib.registry import AutomationRegistry
from sunday.automations_lib.validation import collect_issues, validate_automation
from sunday.state_store import AutomationStateStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    automation_id: int | None = None
    warnings: tuple[str, ...] = ()
    issues: tuple[ValidationIssue, ...] = ()
    error: str | None = None


class AutomationService:
    def __init__(
        self,
        client: AutomationApiClient,
        state_store: AutomationStateStore,
        *,
        username: str,
        cache_ttl_seconds: int = 300,
        logs_limit: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._state_store = state_store
        self._username = username
        self._logs_limit = logs_limit
        self._cache: TtlCache[list[Automation]] = TtlCache(cache_ttl_seconds, clock=clock)

    async def list_automations(
        self, board_id: int, *, force_refresh: bool = False
    ) -> list[Automation]:
        if not force_refresh:
            cached = self._cache.get(board_id)
            if cached is not None:
                return list(cached)
        automations = await self._client.list_automations(board_id)
        self._cache.put(board_id, list(automations))
        return automations

    async def save(self, automation: Automation, *, trace_id: str = "-") -> SaveResult:
        creating = automation.is_new
        issues = collect_issues(automation)
        if issues:
            logger.info(
                "automation rejected by validation",
                extra={
                    "event": "automation_invalid",
                    "trace_id": trace_id,
                    "board_id": automation.board_id,
                    "automation_id": automation.id or None,
                    "status": "invalid",
                },
            )
            return SaveResult(ok=False, issues=tuple(issues), error="Automation is not valid")

        failure = "Failed to create automation" if creating else "Failed to update automation"
        try:
            if creating:
                created = await self._client.create_automation(automation)
                automation_id, warnings = created.id, created.warnings
            else:
                await self._client.update_automation(automation)
                automation_id, warnings = automation.id, ()
        except AutomationApiError:
            logger.exception(
                failure,
                extra={
                    "event": "automation_save_error",
                    "trace_id": trace_id,
                    "board_id": automation.board_id,
                    "automation_id": automation.id or None,
                    "status": "error",
                },
            )
            self._audit(
                trace_id, "create" if creating else "update", automation.id or None,
                automation.board_id, "error", {"name": automation.name},
            )
            return SaveResult(ok=False, error=failure)

        self._cache.invalidate(automation.board_id)
        self._audit(
            trace_id, "create" if creating else "update", automation_id,
            automation.board_id, "ok",
            {"name": automation.name, "trigger_type": automation.trigger.value,
             "warnings": list(warnings)},
        )
        return SaveResult(ok=True, automation_id=automation_id, warnings=warnings)

    async def delete(self, automation_id: int, board_id: int, *, trace_id: str = "-") -> bool:
        return await self._mutate("delete", automation_id, board_id, trace_id)

    async def toggle(self, automation_id: int, board_id: int, *, trace_id: str = "-") -> bool:
        return await self._mutate("toggle", automation_id, board_id, trace_id)

    async def create_from_template(
        self,
        board_id: int,
        template_id: str,
        name: str | None = None,
        *,
        trace_id: str = "-",
    ) -> SaveResult:
        try:
            created = await self._client.create_from_template(board_id, template_id, name)
        except AutomationApiError:
            logger.exception(
                "Failed to create automation",
                extra={
                    "event": "automation_template_error",
                    "trace_id": trace_id,
                    "board_id": board_id,
                    "status": "error",
                },
            )
            self._audit(trace_id, "create_from_template", None, board_id, "error",
                        {"template_id": template_id})
            return SaveResult(ok=False, error="Failed to create automation")
        self._cache.invalidate(board_id)
        self._audit(trace_id, "create_from_template", created.id, board_id, "ok",
                    {"template_id": template_id, "name": name})
        return SaveResult(ok=True, automation_id=created.id, warnings=created.warnings)

    async def logs(self, automation_id: int, limit: int | None = None) -> list[AutomationLog]:
        return await self._client.get_logs(automation_id, limit or self._logs_limit)

    async def sync_registry(self, board_id: int, registry: AutomationRegistry) -> int:
        automations = await self.list_automations(board_id, force_refresh=True)
        rules = []
        for automation in automations:
            try:
                rules.append(validate_automation(automation))
            except RuleValidationError as exc:
                logger.warning(
                    "skipping invalid automation",
                    extra={
                        "event": "registry_skip",
                        "board_id": board_id,
                        "automation_id": automation.id,
                        "status": str(exc),
                    },
                )
        registry.replace_board(board_id, rules)
        logger.info(
            "registry synchronized",
            extra={"event": "registry_sync", "board_id": board_id, "result_count": len(rules)},
        )
        return len(rules)

    async def _mutate(
        self, operation: str, automation_id: int, board_id: int, trace_id: str
    ) -> bool:
        try:
            if operation == "delete":
                await self._client.delete_automation(automation_id)
            else:
                await self._client.toggle_automation(automation_id)
        except AutomationApiError:
            logger.exception(
                f"Failed to {operation} automation",
                extra={
                    "event": f"automation_{operation}_error",
                    "trace_id": trace_id,
                    "board_id": board_id,
                    "automation_id": automation_id,
                    "status": "error",
                },
            )
            self._audit(trace_id, operation, automation_id, board_id, "error")
            return False
        self._cache.invalidate(board_id)
        self._audit(trace_id, operation, automation_id, board_id, "ok")
        return True

    def _audit(
        self,
        trace_id: str,
        event_type: str,
        automation_id: int | None,
        board_id: int,
        status: str,
        payload: dict | None = None,
    ) -> None:
        self._state_store.record_audit_event(
            trace_id=trace_id,
            event_type=event_type,
            automation_id=automation_id,
            board_id=board_id,
            username=self._username,
            status=status,
            payload=payload,
        )
