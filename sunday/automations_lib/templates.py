from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from sunday.automations_lib.catalog import ActionKind, TriggerKind
from sunday.automations_lib.models import ActionConfig, Automation


@dataclass(frozen=True)
class AutomationTemplate:
    id: str
    name: str
    description: str
    category: str
    trigger: TriggerKind
    actions: tuple[ActionConfig, ...]
    trigger_config: dict[str, Any] = field(default_factory=dict)

    def instantiate(
        self,
        board_id: int,
        created_by: str,
        name: str | None = None,
        action_overrides: Mapping[int, Mapping[str, Any]] | None = None,
    ) -> Automation:
        overrides = action_overrides or {}
        actions = tuple(
            ActionConfig(
                action=action.action,
                config={**action.config, **overrides.get(action.order, {})},
                order=action.order,
            )
            for action in self.actions
        )
        return Automation(
            id=0,
            board_id=board_id,
            name=(name or self.name).strip(),
            description=self.description,
            trigger=self.trigger,
            trigger_config=dict(self.trigger_config),
            actions=actions,
            created_by=created_by,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "trigger_type": self.trigger.value,
            "trigger_config": dict(self.trigger_config),
            "actions": [action.to_payload() for action in self.actions],
        }


# IDs match the server-side template ids used by create_from_template.
STANDARD_TEMPLATES: tuple[AutomationTemplate, ...] = (
    AutomationTemplate(
        id="notify_status_done",
        name="Notify when Done",
        description="Notify assignee when status changes to Done",
        category="Status",
        trigger=TriggerKind.STATUS_CHANGES_TO,
        trigger_config={"column_key": "status", "value": "Done"},
        actions=(
            ActionConfig(
                action=ActionKind.SEND_NOTIFICATION,
                config={
                    "message": "Item {item_name} has been marked as Done",
                    "notify_assignee": True,
                },
            ),
        ),
    ),
    AutomationTemplate(
        id="notify_assignee_on_create",
        name="Notify on Assignment",
        description="Send notification when someone is assigned",
        category="Assignment",
        trigger=TriggerKind.PERSON_ASSIGNED,
        trigger_config={"column_key": "person"},
        actions=(
            ActionConfig(
                action=ActionKind.SEND_NOTIFICATION,
                config={
                    "message": 'You have been assigned to "{item_name}" in {board_name}.',
                    "notify_assignee": True,
                },
            ),
        ),
    ),
    AutomationTemplate(
        id="notify_overdue",
        name="Due Date Reminder",
        description="Send reminder 1 day before due date",
        category="Dates",
        trigger=TriggerKind.DATE_APPROACHING,
        trigger_config={"column_key": "due_date", "value": 1},
        actions=(
            ActionConfig(
                action=ActionKind.SEND_NOTIFICATION,
                config={
                    "message": "Reminder: {item_name} is due tomorrow",
                    "notify_assignee": True,
                },
            ),
        ),
    ),
    AutomationTemplate(
        id="move_when_done",
        name="Move Item on Status Change",
        description="Move item to another group when status changes",
        category="Status",
        trigger=TriggerKind.STATUS_CHANGES_TO,
        trigger_config={"column_key": "status", "value": "Done"},
        # group_id is board specific and supplied on instantiate.
        actions=(ActionConfig(action=ActionKind.MOVE_ITEM, config={}),),
    ),
)


def get_template(template_id: str) -> AutomationTemplate:
    for template in STANDARD_TEMPLATES:
        if template.id == template_id:
            return template
    raise KeyError(f"Unknown automation template: {template_id}")
