from __future__ import annotations

from typing import Iterable

from sunday.automations_lib.validation import ValidatedRule


class AutomationRegistry:
    def __init__(self) -> None:
        self._rules: dict[int, ValidatedRule] = {}

    def register(self, rule: ValidatedRule) -> None:
        self._rules[rule.automation_id] = rule

    def remove(self, automation_id: int) -> bool:
        return self._rules.pop(automation_id, None) is not None

    def replace_board(self, board_id: int, rules: Iterable[ValidatedRule]) -> None:
        self._rules = {
            key: rule for key, rule in self._rules.items() if rule.board_id != board_id
        }
        for rule in rules:
            if rule.board_id != board_id:
                raise ValueError(
                    f"Automation {rule.automation_id} belongs to board {rule.board_id}, "
                    f"not {board_id}."
                )
            self.register(rule)

    def get_for_board(self, board_id: int) -> list[ValidatedRule]:
        rules = [rule for rule in self._rules.values() if rule.board_id == board_id]
        return sorted(rules, key=lambda rule: rule.automation_id)

    def __len__(self) -> int:
        return len(self._rules)
