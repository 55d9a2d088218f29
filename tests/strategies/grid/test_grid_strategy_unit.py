from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from strategies.grid.config import GridConfig
from strategies.grid.models import GridState, TradeDirection
from strategies.grid.strategy import GridStrategy


def make_config(**overrides) -> GridConfig:
    values = dict(
        lower_price=Decimal("0.5"),
        upper_price=Decimal("2.0"),
        levels=10,
        amount_per_grid=Decimal("10"),
        slippage_bps=50,
    )
    values.update(overrides)
    return GridConfig(**values)


class TestGridConfig:
    def test_defaults_and_step(self):
        config = make_config()

        assert config.coin_type_a == "0x2::sui::SUI"
        assert config.grid_step == Decimal("0.15")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"levels": 1},
            {"levels": 101},
            {"lower_price": Decimal("2.0"), "upper_price": Decimal("2.0")},
            {"lower_price": Decimal("3"), "upper_price": Decimal("2")},
            {"amount_per_grid": Decimal("0")},
            {"slippage_bps": 10_000},
            {"coin_type_b": "0x2::sui::SUI"},
            {"coin_type_a": "  "},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            make_config(**overrides)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            make_config(take_profit=Decimal("1"))

    def test_with_updates_revalidates(self):
        config = make_config()

        updated = config.with_updates(levels=20)
        assert updated.levels == 20
        assert config.levels == 10

        with pytest.raises(ValidationError):
            config.with_updates(lower_price=Decimal("5"))

    def test_geometry_differs(self):
        config = make_config()

        assert not config.geometry_differs(config.with_updates(slippage_bps=10))
        assert config.geometry_differs(config.with_updates(levels=5))

    def test_snapshot_is_json_friendly(self):
        snapshot = make_config().to_snapshot()

        assert snapshot["lower_price"] == "0.5"
        assert snapshot["levels"] == 10
        assert GridConfig.model_validate(snapshot) == make_config()


class TestGridStrategy:
    def test_get_state_returns_copy(self):
        strategy = GridStrategy(make_config(), GridState(last_band=3))

        state = strategy.get_state()
        state.last_band = 9

        assert strategy.get_state().last_band == 3

    def test_decide_and_complete_cycle(self):
        strategy = GridStrategy(make_config(), GridState(last_band=3))

        decision = strategy.decide(Decimal("1.30"))
        strategy.update_state(decision.next_state)

        assert decision.intent.direction is TradeDirection.SELL
        assert decision.intent.grid_steps == 2
        assert strategy.get_state().in_flight is True

        strategy.mark_trade_complete(True)
        state = strategy.get_state()
        assert state.in_flight is False
        assert state.last_band == 5
        assert state.last_trade_time is not None

    def test_failed_trade_keeps_band_without_trade_time(self):
        strategy = GridStrategy(make_config(), GridState(last_band=5, in_flight=True))

        strategy.mark_trade_complete(False)

        state = strategy.get_state()
        assert state == GridState(last_band=5, in_flight=False, last_trade_time=None)

    def test_update_config_geometry_change_clears_baseline(self):
        strategy = GridStrategy(make_config(), GridState(last_band=4))

        strategy.update_config(upper_price=Decimal("3"))

        assert strategy.get_state().last_band is None
        assert strategy.get_config().upper_price == Decimal("3")

    def test_update_config_keeps_baseline_for_sizing_change(self):
        strategy = GridStrategy(make_config(), GridState(last_band=4))

        strategy.update_config(amount_per_grid=Decimal("25"), slippage_bps=100)

        assert strategy.get_state().last_band == 4
        assert strategy.get_config().amount_per_grid == Decimal("25")

    def test_invalid_update_leaves_config_untouched(self):
        strategy = GridStrategy(make_config(), GridState(last_band=4))

        with pytest.raises(ValidationError):
            strategy.update_config(levels=200)

        assert strategy.get_config() == make_config()
        assert strategy.get_state().last_band == 4

    def test_grid_lines_and_current_band(self):
        strategy = GridStrategy(make_config(levels=4, lower_price=Decimal("90"), upper_price=Decimal("110")))

        assert strategy.get_grid_lines()[2] == Decimal("100")
        assert strategy.get_current_band(Decimal("106")) == 3

    def test_reset_baseline(self):
        strategy = GridStrategy(make_config(), GridState(last_band=4))

        strategy.reset_baseline()

        assert strategy.get_state().last_band is None


def test_trade_direction_swap_side():
    assert TradeDirection.SELL.swap_side == "A2B"
    assert TradeDirection.BUY.swap_side == "B2A"
