from __future__ import annotations

from typing import Any

from sunday.automations_lib.models import ItemSnapshot


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def render_message(
    template: str,
    item: ItemSnapshot,
    board_name: str = "",
    status_column: str = "status",
) -> str:
    # Unknown placeholders stay untouched.
    values = {
        "{item_name}": item.name,
        "{status}": _text(item.value(status_column)),
        "{assignee}": _text(item.assignees),
        "{creator}": item.created_by or "",
        "{board_name}": board_name,
    }
    message = template
    for placeholder, value in values.items():
        message = message.replace(placeholder, value)
    return message
