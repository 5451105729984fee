from __future__ import annotations

import pytest

from sunday.automations_lib.cache import TtlCache
from sunday.automations_lib.catalog import ActionKind, TriggerKind
from sunday.automations_lib.models import ActionConfig, Automation
from sunday.automations_lib.registry import AutomationRegistry
from sunday.automations_lib.templates import STANDARD_TEMPLATES, get_template
from sunday.automations_lib.validation import is_persistable, validate_automation


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_cache_entries_expire_with_the_clock() -> None:
    clock = FakeClock()
    cache: TtlCache[str] = TtlCache(ttl_seconds=60, clock=clock)
    cache.put("board:1", "rules")

    clock.now += 59
    assert cache.get("board:1") == "rules"

    clock.now += 1
    assert cache.get("board:1") is None
    assert len(cache) == 0


def test_cache_invalidation() -> None:
    cache: TtlCache[int] = TtlCache(ttl_seconds=60, clock=FakeClock())
    cache.put(1, 10)
    cache.put(2, 20)

    cache.invalidate(1)
    assert cache.get(1) is None
    assert cache.get(2) == 20

    cache.invalidate_all()
    assert len(cache) == 0


def test_zero_ttl_disables_caching() -> None:
    cache: TtlCache[int] = TtlCache(ttl_seconds=0, clock=FakeClock())
    cache.put(1, 10)

    assert cache.get(1) is None


def test_standard_templates_instantiate_valid_rules() -> None:
    for template in STANDARD_TEMPLATES:
        overrides = {0: {"group_id": 42}} if template.id == "move_when_done" else None
        automation = template.instantiate(board_id=8, created_by="ana", action_overrides=overrides)
        assert automation.is_new
        assert automation.board_id == 8
        assert automation.name == template.name
        assert is_persistable(automation), template.id


def test_move_template_needs_a_group() -> None:
    automation = get_template("move_when_done").instantiate(board_id=8, created_by="ana")

    assert not is_persistable(automation)


def test_get_template_unknown_id() -> None:
    with pytest.raises(KeyError):
        get_template("does_not_exist")


def _rule(automation_id: int, board_id: int):
    return validate_automation(
        Automation(
            id=automation_id,
            board_id=board_id,
            name=f"rule {automation_id}",
            trigger=TriggerKind.ITEM_CREATED,
            actions=(ActionConfig(action=ActionKind.ARCHIVE_ITEM),),
        )
    )


def test_registry_orders_rules_by_id_per_board() -> None:
    registry = AutomationRegistry()
    registry.register(_rule(9, 1))
    registry.register(_rule(2, 1))
    registry.register(_rule(5, 2))

    assert [rule.automation_id for rule in registry.get_for_board(1)] == [2, 9]
    assert registry.remove(9) is True
    assert registry.remove(9) is False
    assert len(registry) == 2


def test_replace_board_keeps_other_boards() -> None:
    registry = AutomationRegistry()
    registry.register(_rule(1, 1))
    registry.register(_rule(2, 2))

    registry.replace_board(1, [_rule(3, 1)])

    assert [rule.automation_id for rule in registry.get_for_board(1)] == [3]
    assert [rule.automation_id for rule in registry.get_for_board(2)] == [2]
    with pytest.raises(ValueError):
        registry.replace_board(1, [_rule(4, 2)])
