from __future__ import annotations

from typing import Iterable

from sunday.automations_lib.actions import Notify
from sunday.automations_lib.models import ItemSnapshot


def resolve_recipients(
    action: Notify,
    item: ItemSnapshot,
    board_members: Iterable[str] = (),
) -> tuple[str, ...]:
    """Return the deduplicated audience of a notification or alert action.

    Sources are merged in this order: explicit ``to_users``, the item's
    assignees, the item's creator and the board members. A username reached
    through several sources is kept once, with the spelling it was first seen
    with. Comparison ignores case and surrounding whitespace.
    """
    candidates: list[str] = list(action.to_users)
    if action.notify_assignee:
        candidates.extend(item.assignees)
    if action.notify_creator and item.created_by:
        candidates.append(item.created_by)
    if action.notify_board_members:
        candidates.extend(board_members)

    seen: set[str] = set()
    recipients: list[str] = []
    for raw in candidates:
        username = (raw or "").strip()
        key = username.lower()
        if not username or key in seen:
            continue
        seen.add(key)
        recipients.append(username)
    return tuple(recipients)
