"""
Tests for controllers/strategy_controller.py: single-enabled-strategy rule.
"""

import threading

import pytest

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.enums.trading import RiskLevel
from dex_autotrader.errors import TradingError


def _enabled(registry):
    return [s for s in registry.list() if s.enabled]


class TestToggle:

    def test_seeded_in_id_order_all_disabled(self, ctx):
        strategies = ctx.strategies.list()
        assert [s.id for s in strategies] == sorted(s.id for s in strategies)
        assert len(strategies) == 4
        assert _enabled(ctx.strategies) == []

    def test_enable_disables_all_others(self, ctx):
        first, second = ctx.strategies.list()[:2]
        ctx.strategies.toggle(first.id, True)
        updated = ctx.strategies.toggle(second.id, True)

        assert updated.enabled
        assert [s.id for s in _enabled(ctx.strategies)] == [second.id]
        assert ctx.strategies.active().id == second.id

    def test_disable_does_not_cascade(self, ctx):
        first, second = ctx.strategies.list()[:2]
        ctx.strategies.set_active(first.id)
        ctx.strategies.toggle(second.id, False)
        assert [s.id for s in _enabled(ctx.strategies)] == [first.id]

        ctx.strategies.toggle(first.id, False)
        assert _enabled(ctx.strategies) == []
        assert ctx.strategies.active() is None

    def test_unknown_strategy(self, ctx):
        with pytest.raises(TradingError) as exc:
            ctx.strategies.toggle(999, True)
        assert exc.value.kind == ErrorKind.NOT_FOUND

    def test_concurrent_enables_leave_one(self, ctx):
        ids = [s.id for s in ctx.strategies.list()]
        barrier = threading.Barrier(len(ids) * 3)
        errors = []

        def worker(strategy_id):
            try:
                barrier.wait()
                ctx.strategies.toggle(strategy_id, True)
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in ids * 3]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(_enabled(ctx.strategies)) == 1


class TestRiskLevel:

    def test_disables_other_tiers(self, ctx):
        low = next(s for s in ctx.strategies.list() if s.risk_level == RiskLevel.LOW)
        ctx.strategies.set_active(low.id)
        ctx.strategies.apply_risk_level(RiskLevel.HIGH)
        assert _enabled(ctx.strategies) == []

    def test_keeps_matching_strategy(self, ctx):
        medium = next(s for s in ctx.strategies.list() if s.risk_level == RiskLevel.MEDIUM)
        ctx.strategies.set_active(medium.id)
        ctx.strategies.apply_risk_level(RiskLevel.MEDIUM)
        assert [s.id for s in _enabled(ctx.strategies)] == [medium.id]

    def test_first_in_list_order_wins_on_tie(self, ctx):
        highs = [s for s in ctx.strategies.list() if s.risk_level == RiskLevel.HIGH]
        # bypass the registry to build the inconsistent state a tie-break must repair
        ctx.strategy_repo.set_enabled(highs[0].id, True)
        ctx.strategy_repo.set_enabled(highs[1].id, True)

        ctx.strategies.apply_risk_level(RiskLevel.HIGH)
        assert [s.id for s in _enabled(ctx.strategies)] == [highs[0].id]

    def test_memecoin_bracket_only_visible_under_high(self, ctx):
        assert all(not s.is_memecoin for s in ctx.strategies.visible_for(RiskLevel.LOW))
        assert all(not s.is_memecoin for s in ctx.strategies.visible_for(RiskLevel.MEDIUM))
        assert any(s.is_memecoin for s in ctx.strategies.visible_for(RiskLevel.HIGH))
        assert {s.risk_level for s in ctx.strategies.visible_for("medium")} == {RiskLevel.MEDIUM}
