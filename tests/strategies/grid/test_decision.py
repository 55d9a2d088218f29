from decimal import Decimal

import pytest

from strategies.grid.config import GridConfig
from strategies.grid.decision import decide_grid_action
from strategies.grid.models import GridState, TradeDirection


def make_config(**overrides) -> GridConfig:
    values = dict(
        lower_price=Decimal("90"),
        upper_price=Decimal("110"),
        levels=4,
        amount_per_grid=Decimal("10"),
    )
    values.update(overrides)
    return GridConfig(**values)


class TestBaseline:
    def test_first_observation_records_band_without_trading(self):
        decision = decide_grid_action(make_config(), GridState(), Decimal("101"))

        assert decision.intent is None
        assert not decision.has_action
        assert decision.next_state.last_band == 2
        assert decision.next_state.in_flight is False

    def test_out_of_range_band_is_rebaselined(self):
        state = GridState(last_band=7)

        decision = decide_grid_action(make_config(), state, Decimal("96"))

        assert decision.intent is None
        assert decision.next_state.last_band == 1

    def test_same_band_is_idempotent(self):
        config = make_config()
        state = GridState(last_band=2)

        first = decide_grid_action(config, state, Decimal("103"))
        second = decide_grid_action(config, first.next_state, Decimal("103"))

        assert first.intent is None and second.intent is None
        assert second.next_state == state


class TestCrossings:
    def test_sell_when_price_rises_two_bands(self):
        decision = decide_grid_action(make_config(), GridState(last_band=1), Decimal("106"))

        intent = decision.intent
        assert intent.direction is TradeDirection.SELL
        assert intent.grid_steps == 2
        assert intent.trigger_price == Decimal("100")
        assert intent.amount_in == Decimal("20")
        assert decision.next_state.last_band == 3
        assert decision.next_state.in_flight is True

    def test_buy_when_price_falls_two_bands(self):
        decision = decide_grid_action(make_config(), GridState(last_band=2), Decimal("94"))

        intent = decision.intent
        assert intent.direction is TradeDirection.BUY
        assert intent.grid_steps == 2
        assert intent.trigger_price == Decimal("100")
        assert decision.next_state.last_band == 0
        assert decision.next_state.in_flight is True

    def test_single_band_buy_uses_lower_boundary_of_last_band(self):
        decision = decide_grid_action(make_config(), GridState(last_band=3), Decimal("104"))

        assert decision.intent.direction is TradeDirection.BUY
        assert decision.intent.grid_steps == 1
        assert decision.intent.trigger_price == Decimal("105")

    @pytest.mark.parametrize("last_band,price", [(0, Decimal("200")), (3, Decimal("1"))])
    def test_steps_match_band_distance(self, last_band, price):
        decision = decide_grid_action(make_config(), GridState(last_band=last_band), price)

        assert decision.intent.grid_steps == 3

    def test_crossing_does_not_retrigger_at_same_price(self):
        config = make_config()
        decision = decide_grid_action(config, GridState(last_band=1), Decimal("106"))
        settled = GridState(last_band=decision.next_state.last_band, in_flight=False)

        again = decide_grid_action(config, settled, Decimal("106"))

        assert again.intent is None


class TestInFlight:
    def test_no_intent_while_in_flight(self):
        state = GridState(last_band=1, in_flight=True)

        decision = decide_grid_action(make_config(), state, Decimal("106"))

        assert decision.intent is None
        assert decision.next_state == GridState(last_band=1, in_flight=True)

    def test_in_flight_without_baseline_is_left_alone(self):
        state = GridState(last_band=None, in_flight=True)

        decision = decide_grid_action(make_config(), state, Decimal("100"))

        assert decision.intent is None
        assert decision.next_state.last_band is None
