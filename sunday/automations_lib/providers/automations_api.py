from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any, Mapping

import httpx

from sunday.automations_lib.errors import AutomationApiError
from sunday.automations_lib.models import Automation, AutomationLog, parse_int
from sunday.automations_lib.validation import validate_automation


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreatedAutomation:
    id: int
    warnings: tuple[str, ...] = ()


def _read_warnings(data: Mapping[str, Any]) -> tuple[str, ...]:
    raw = data.get("warnings")
    if isinstance(raw, list):
        return tuple(str(item) for item in raw if item)
    if isinstance(raw, str) and raw.strip():
        return (raw.strip(),)
    if data.get("warning") is True:
        return (str(data.get("message") or "Unknown warning"),)
    return ()


def _rule_form(automation: Automation) -> dict[str, str]:
    return {
        "board_id": str(automation.board_id),
        "name": automation.name,
        "description": automation.description or "",
        "trigger_type": automation.trigger.value,
        "trigger_config": json.dumps(automation.trigger_config),
        "actions": json.dumps(
            [
                {
                    "action_type": action.action.value,
                    "action_config": action.config,
                    "order": action.order,
                }
                for action in automation.sorted_actions()
            ]
        ),
        "conditions": json.dumps(
            [condition.to_payload() for condition in automation.conditions]
        ),
    }


class AutomationApiClient:
    def __init__(
        self,
        base_url: str,
        username: str,
        timeout_seconds: int,
        token: str | None = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/sunday/automations.php"
        self._username = username
        self._timeout_seconds = timeout_seconds
        self._token = token

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def list_automations(self, board_id: int) -> list[Automation]:
        data = await self._get({"action": "list", "board_id": board_id})
        automations: list[Automation] = []
        for raw in data.get("automations") or []:
            try:
                automations.append(Automation.from_payload(raw))
            except ValueError as exc:
                logger.warning(
                    "skipping unreadable automation",
                    extra={
                        "event": "automation_parse_error",
                        "board_id": board_id,
                        "automation_id": parse_int(raw.get("id")) or None,
                        "status": str(exc),
                    },
                )
        return automations

    async def get_automation(self, automation_id: int) -> Automation:
        data = await self._get({"action": "get", "id": automation_id})
        try:
            return Automation.from_payload(data)
        except ValueError as exc:
            raise AutomationApiError(
                f"Automation {automation_id} could not be read: {exc}"
            ) from exc

    async def create_automation(self, automation: Automation) -> CreatedAutomation:
        validate_automation(automation)
        form = {"action": "create", **_rule_form(automation)}
        data = await self._post(form)
        automation_id = parse_int(data.get("id"))
        if automation_id <= 0:
            raise AutomationApiError("Failed to parse automation ID")
        warnings = _read_warnings(data)
        if warnings:
            logger.warning(
                "automation created with warnings",
                extra={
                    "event": "automation_create_warning",
                    "board_id": automation.board_id,
                    "automation_id": automation_id,
                    "status": "; ".join(warnings),
                },
            )
        return CreatedAutomation(id=automation_id, warnings=warnings)

    async def update_automation(self, automation: Automation) -> None:
        if automation.is_new:
            raise ValueError("Automation has no id; create it first.")
        validate_automation(automation)
        form = {
            "action": "update",
            "id": str(automation.id),
            "is_active": "1" if automation.is_active else "0",
            **_rule_form(automation),
        }
        await self._post(form)

    async def delete_automation(self, automation_id: int) -> None:
        await self._post({"action": "delete", "id": str(automation_id)})

    async def toggle_automation(self, automation_id: int) -> None:
        await self._post({"action": "toggle", "id": str(automation_id)})

    async def get_logs(self, automation_id: int, limit: int = 50) -> list[AutomationLog]:
        data = await self._get(
            {"action": "logs", "automation_id": automation_id, "limit": limit}
        )
        logs: list[AutomationLog] = []
        for raw in data.get("logs") or []:
            try:
                if not isinstance(raw, dict):
                    raise ValueError("expected a JSON object")
                logs.append(AutomationLog.from_payload(raw))
            except ValueError as exc:
                logger.warning(
                    "skipping unreadable automation log",
                    extra={
                        "event": "automation_log_parse_error",
                        "automation_id": automation_id,
                        "status": str(exc),
                    },
                )
        return logs

    async def list_templates(self) -> list[dict[str, Any]]:
        data = await self._get({"action": "templates"})
        return [dict(item) for item in data.get("templates") or []]

    async def create_from_template(
        self, board_id: int, template_id: str, name: str | None = None
    ) -> CreatedAutomation:
        form = {
            "action": "create_from_template",
            "board_id": str(board_id),
            "template_id": template_id,
        }
        if name:
            form["name"] = name
        data = await self._post(form)
        automation_id = parse_int(data.get("id"))
        if automation_id <= 0:
            raise AutomationApiError("Failed to parse automation ID")
        return CreatedAutomation(id=automation_id, warnings=_read_warnings(data))

    def _headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.get(
                    self._endpoint, params=params, headers=self._headers()
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise AutomationApiError(
                f"HTTP error {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise AutomationApiError(f"Request failed: {exc}") from exc
        except ValueError as exc:
            raise AutomationApiError("Malformed JSON response") from exc
        return self._unwrap(payload)

    async def _post(self, form: dict[str, str]) -> dict[str, Any]:
        body = {**form, "username": self._username}
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                response = await client.post(
                    self._endpoint, data=body, headers=self._headers()
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise AutomationApiError(
                f"HTTP error {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise AutomationApiError(f"Request failed: {exc}") from exc
        except ValueError as exc:
            raise AutomationApiError("Malformed JSON response") from exc
        return self._unwrap(payload)

    @staticmethod
    def _unwrap(payload: Any) -> dict[str, Any]:
        if not isinstance(payload, dict):
            raise AutomationApiError("Malformed JSON response")
        if payload.get("success") is not True:
            raise AutomationApiError(str(payload.get("error") or "Unknown error"))
        data = payload.get("data")
        return data if isinstance(data, dict) else {}
