from __future__ import annotations

from dataclasses import dataclass
import logging

from sunday.automation_service import AutomationService
from sunday.automations_lib.evaluator import RuleEvaluator
from sunday.automations_lib.models import AutomationLog, BoardEvent, ExecutionContext
from sunday.automations_lib.providers.automations_api import AutomationApiClient
from sunday.automations_lib.providers.board_api import BoardApiClient
from sunday.automations_lib.registry import AutomationRegistry
from sunday.config import Settings
from sunday.state_store import AutomationStateStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutomationApp:
    settings: Settings
    state_store: AutomationStateStore
    client: AutomationApiClient
    service: AutomationService
    registry: AutomationRegistry
    evaluator: RuleEvaluator

    async def replay_event(
        self, event: BoardEvent, *, trace_id: str = "-"
    ) -> list[AutomationLog]:
        """Load the board's rules and run them against one event."""
        registered = await self.service.sync_registry(event.board_id, self.registry)
        logger.info(
            "event replay",
            extra={
                "event": "event_replay",
                "trace_id": trace_id,
                "board_id": event.board_id,
                "item_id": event.item.item_id,
                "result_count": registered,
            },
        )
        context = ExecutionContext(
            trace_id=trace_id, acting_username=self.settings.api_username
        )
        return await self.evaluator.handle_event(event, context)

    def close(self) -> None:
        self.state_store.close()


def build_app(settings: Settings) -> AutomationApp:
    state_store = AutomationStateStore(settings.state_db_path)
    client = AutomationApiClient(
        base_url=settings.api_base_url,
        username=settings.api_username,
        timeout_seconds=settings.request_timeout_seconds,
        token=settings.api_token,
    )
    service = AutomationService(
        client,
        state_store,
        username=settings.api_username,
        cache_ttl_seconds=settings.automation_cache_ttl_seconds,
        logs_limit=settings.automation_logs_limit,
    )
    board = BoardApiClient(
        base_url=settings.api_base_url,
        timeout_seconds=settings.request_timeout_seconds,
        token=settings.api_token,
    )
    registry = AutomationRegistry()
    evaluator = RuleEvaluator(
        registry, board, state_store, settings.automation_timeout_seconds
    )
    return AutomationApp(
        settings=settings,
        state_store=state_store,
        client=client,
        service=service,
        registry=registry,
        evaluator=evaluator,
    )
