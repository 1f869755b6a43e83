"""
Unit tests for per-trade impact and flow drift.
"""

import math

import pytest

from market_sim.models.instrument import InstrumentConfig, Side
from market_sim.services.impact import flow_impact, liquidity_value, trade_impact

TCS = InstrumentConfig(start_price=4100.0, daily_volume=1_800_000, impact_sensitivity=1.15)


class TestTradeImpact:

    def test_liquidity_value(self):
        assert liquidity_value(TCS, 4100.0, 0.02) == pytest.approx(147_600_000)

    def test_large_buy_saturates(self):
        imp = trade_impact(TCS, 4100.0, Side.BUY, 5000, 4100.0, 0.02, 0.025)
        assert imp.trade_value == pytest.approx(20_500_000)
        assert imp.raw_pct == pytest.approx(1.15 * math.sqrt(20_500_000 / 147_600_000))
        assert imp.raw_pct == pytest.approx(0.4287, abs=5e-4)
        assert imp.clamped_pct == 0.025
        assert imp.raw_pct > imp.clamped_pct

    def test_large_sell_saturates_negative(self):
        imp = trade_impact(TCS, 4100.0, Side.SELL, 5000, 4100.0, 0.02, 0.025)
        assert imp.clamped_pct == -0.025

    def test_small_trade_not_clamped(self):
        imp = trade_impact(TCS, 4100.0, Side.BUY, 1, 4100.0, 0.02, 0.025)
        expected = 1.15 * math.sqrt(4100.0 / 147_600_000)
        assert imp.clamped_pct == pytest.approx(expected)
        assert imp.raw_pct == imp.clamped_pct

    @pytest.mark.parametrize("qty", [1, 10, 1_000, 100_000, 10_000_000])
    def test_impact_bounded_for_any_size(self, qty):
        for side in (Side.BUY, Side.SELL):
            imp = trade_impact(TCS, 4100.0, side, qty, 4100.0, 0.02, 0.025)
            assert abs(imp.clamped_pct) <= 0.025

    def test_impact_is_sublinear(self):
        a = trade_impact(TCS, 4100.0, Side.BUY, 1, 4100.0, 0.02, 0.025).raw_pct
        b = trade_impact(TCS, 4100.0, Side.BUY, 4, 4100.0, 0.02, 0.025).raw_pct
        assert b == pytest.approx(2 * a)


class TestFlowImpact:

    def test_zero_flow(self):
        assert flow_impact(TCS, 4100.0, 0.0, 0.02, 50, 0.002) == 0.0

    def test_small_flow_unclamped(self):
        f = flow_impact(TCS, 4100.0, 1_000_000, 0.02, 50, 0.002)
        assert f == pytest.approx(1_000_000 / (147_600_000 * 50))

    @pytest.mark.parametrize("flow", [1e9, -1e9, 2.05e7, -2.05e7])
    def test_flow_clamped(self, flow):
        f = flow_impact(TCS, 4100.0, flow, 0.02, 50, 0.002)
        assert abs(f) <= 0.002
        assert math.copysign(1, f) == math.copysign(1, flow)
