from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from sunday.automations_lib.actions import (
    ActionSpec,
    AssignCreator,
    AssignPerson,
    ChangeStatus,
    ClearColumnValue,
    ClearStatus,
    CreateSubitem,
    MoveItem,
    Notify,
    PostUpdate,
    SendEmail,
    SetColumnValue,
    SimpleAction,
    UnassignPerson,
)
from sunday.automations_lib.catalog import ActionKind
from sunday.automations_lib.errors import AutomationApiError
from sunday.automations_lib.models import BoardEvent, ExecutionContext
from sunday.automations_lib.placeholders import render_message
from sunday.automations_lib.recipients import resolve_recipients


logger = logging.getLogger(__name__)


def encode_column_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(list(value) if isinstance(value, tuple) else value)
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def people_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                value = json.loads(text)
            except json.JSONDecodeError:
                value = text.split(",")
        else:
            value = text.split(",")
    if not isinstance(value, (list, tuple)):
        value = [value]
    return [str(item).strip() for item in value if str(item).strip()]


def _with_person(current: Any, person: str) -> list[str]:
    users = people_list(current)
    if person.lower() not in {user.lower() for user in users}:
        users.append(person)
    return users


def _without_person(current: Any, person: str) -> list[str]:
    return [user for user in people_list(current) if user.lower() != person.lower()]


class BoardApiClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: int,
        token: str | None = None,
        status_column: str = "status",
    ) -> None:
        root = base_url.rstrip("/")
        self._items_url = f"{root}/sunday/items.php"
        self._boards_url = f"{root}/sunday/boards.php"
        self._email_url = f"{root}/sunday/notifications.php"
        self._push_url = f"{root}/push_notifications.php"
        self._alerts_url = f"{root}/alerts.php"
        self._timeout_seconds = timeout_seconds
        self._token = token
        self._status_column = status_column

    async def list_board_members(self, board_id: int) -> list[str]:
        data = await self._request(
            "GET", self._boards_url, params={"action": "members", "board_id": board_id}
        )
        members: list[str] = []
        for member in data.get("members") or []:
            username = member.get("username") if isinstance(member, dict) else member
            if username:
                members.append(str(username))
        return members

    async def execute(
        self, action: ActionSpec, event: BoardEvent, context: ExecutionContext
    ) -> dict[str, Any]:
        item = event.item
        username = context.acting_username

        if isinstance(action, MoveItem):
            await self._post_item("move", item_id=item.item_id, group_id=action.group_id,
                                  username=username)
            return {"group_id": action.group_id}

        if isinstance(action, ChangeStatus):
            return await self._update_value(item.item_id, action.column_key, action.value, username)
        if isinstance(action, (ClearStatus, ClearColumnValue)):
            return await self._update_value(item.item_id, action.column_key, None, username)
        if isinstance(action, SetColumnValue):
            return await self._update_value(item.item_id, action.column_key, action.value, username)

        if isinstance(action, AssignPerson):
            users = _with_person(item.value(action.column_key), action.person)
            return await self._update_value(item.item_id, action.column_key, users, username)
        if isinstance(action, AssignCreator):
            if not item.created_by:
                raise ValueError(f"Item {item.item_id} has no creator to assign.")
            users = _with_person(item.value(action.column_key), item.created_by)
            return await self._update_value(item.item_id, action.column_key, users, username)
        if isinstance(action, UnassignPerson):
            users = (
                _without_person(item.value(action.column_key), action.person)
                if action.person
                else []
            )
            return await self._update_value(item.item_id, action.column_key, users, username)

        if isinstance(action, Notify):
            return await self._notify(action, event, context)

        if isinstance(action, SendEmail):
            body = render_message(action.message, item, context.board_name, self._status_column)
            subject = render_message(action.subject, item, context.board_name, self._status_column)
            await self._request(
                "POST",
                self._email_url,
                data={
                    "action": "send_email",
                    "to": action.to,
                    "subject": subject,
                    "body": body,
                    "username": username,
                },
            )
            return {"to": action.to}

        if isinstance(action, CreateSubitem):
            name = render_message(action.name, item, context.board_name, self._status_column)
            data = await self._post_item("create_subitem", parent_item_id=item.item_id,
                                         name=name, username=username)
            return {"subitem_id": data.get("id"), "name": name}

        if isinstance(action, PostUpdate):
            body = render_message(action.message, item, context.board_name, self._status_column)
            data = await self._post_item("post_update", item_id=item.item_id, body=body,
                                         username=username)
            return {"update_id": data.get("id")}

        if isinstance(action, SimpleAction) and action.kind is ActionKind.ARCHIVE_ITEM:
            await self._post_item("update", id=item.item_id, is_archived="1", username=username)
            return {"archived": True}
        if isinstance(action, SimpleAction) and action.kind is ActionKind.DUPLICATE_ITEM:
            data = await self._post_item("duplicate", id=item.item_id, username=username)
            return {"duplicate_id": data.get("id")}

        raise ValueError(f"Unsupported action: {action.kind.value}")

    async def _notify(
        self, action: Notify, event: BoardEvent, context: ExecutionContext
    ) -> dict[str, Any]:
        item = event.item
        members: list[str] = []
        if action.notify_board_members:
            members = await self.list_board_members(item.board_id)
        recipients = resolve_recipients(action, item, members)
        if not recipients:
            logger.info(
                "notification has no recipients",
                extra={
                    "event": "notify_no_recipients",
                    "trace_id": context.trace_id,
                    "item_id": item.item_id,
                    "action": action.kind.value,
                },
            )
            return {"recipients": [], "sent": False}

        message = render_message(
            action.message or "Automation update on {item_name}",
            item,
            context.board_name,
            self._status_column,
        )
        title = action.title or (context.board_name or "Sunday automation")
        if action.kind is ActionKind.SEND_ALERT:
            await self._request(
                "POST",
                self._alerts_url,
                json_body={
                    "action": "send",
                    "usernames": list(recipients),
                    "title": title,
                    "message": message,
                    "sent_by": context.acting_username,
                },
            )
        else:
            await self._request(
                "POST",
                self._push_url,
                json_body={
                    "action": "send_notification",
                    "usernames": list(recipients),
                    "title": title,
                    "body": message,
                    "type": "sunday_automation",
                    "data": {"item_id": item.item_id, "board_id": item.board_id},
                    "sent_by": context.acting_username,
                },
            )
        return {"recipients": list(recipients), "sent": True}

    async def _update_value(
        self, item_id: int, column_key: str, value: Any, username: str
    ) -> dict[str, Any]:
        await self._post_item(
            "update_value",
            item_id=item_id,
            column_key=column_key,
            value=encode_column_value(value),
            username=username,
        )
        return {"column_key": column_key, "value": value}

    async def _post_item(self, action: str, **fields: Any) -> dict[str, Any]:
        form = {"action": action, **{key: str(value) for key, value in fields.items()}}
        return await self._request("POST", self._items_url, data=form)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                if method == "GET":
                    response = await client.get(url, params=params, headers=headers)
                elif json_body is not None:
                    response = await client.post(url, json=json_body, headers=headers)
                else:
                    response = await client.post(url, data=data, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise AutomationApiError(
                f"HTTP error {exc.response.status_code} from {url}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise AutomationApiError(f"Request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise AutomationApiError(f"Malformed JSON response from {url}") from exc
        if not isinstance(payload, dict) or payload.get("success") is not True:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise AutomationApiError(str(error or "Unknown error"))
        result = payload.get("data")
        return result if isinstance(result, dict) else {}
