import math
from dataclasses import dataclass

from market_sim.models.instrument import InstrumentConfig, Side

def _clamp(x: float, limit: float) -> float:
    return max(-limit, min(limit, x))

def liquidity_value(cfg: InstrumentConfig, price: float, depth_factor: float) -> float:
    """Notional depth available to absorb a trade at the current price."""
    return cfg.daily_volume * price * depth_factor

@dataclass(frozen=True)
class Impact:
    trade_value: float
    liquidity_value: float
    raw_pct: float
    clamped_pct: float

def trade_impact(
    cfg: InstrumentConfig,
    current_price: float,
    side: Side,
    quantity: int,
    exec_price: float,
    depth_factor: float,
    impact_clamp: float,
) -> Impact:
    """
    Square-root impact law:
        impact = direction * K * sqrt(trade_value / liquidity_value)
    clamped to +/- impact_clamp so no single trade moves price more than that.
    """
    trade_value = quantity * exec_price
    liq = liquidity_value(cfg, current_price, depth_factor)
    raw = side.direction * cfg.impact_sensitivity * math.sqrt(trade_value / liq)
    return Impact(
        trade_value=trade_value,
        liquidity_value=liq,
        raw_pct=raw,
        clamped_pct=_clamp(raw, impact_clamp),
    )

def flow_impact(
    cfg: InstrumentConfig,
    current_price: float,
    net_flow_value: float,
    depth_factor: float,
    flow_divisor: float,
    max_flow_pct: float,
) -> float:
    # Slow persistent drift from accumulated signed order flow.
    liq = liquidity_value(cfg, current_price, depth_factor)
    return _clamp(net_flow_value / (liq * flow_divisor), max_flow_pct)
