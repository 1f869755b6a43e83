import math
from datetime import datetime
from typing import Mapping

from market_sim.services.market_tables import MarketTables

LN2 = math.log(2.0)

def decay_factor(age_seconds: float, half_life_seconds: float) -> float:
    """exp(-ln2 * age / half_life): 1.0 at activation, 0.5 after one half-life."""
    return math.exp(-LN2 * max(0.0, age_seconds) / half_life_seconds)

def session_drift_bias(
    tables: MarketTables,
    symbol: str,
    session_starts: Mapping[int, datetime],
    now: datetime,
    drift_window_seconds: float,
    half_life_seconds: float,
) -> float:
    """
    Per-second drift for `symbol` from every active news session.

    Each session contributes
        weight * (daily_target / drift_window_seconds) * decay(age)
    on its own clock; contributions are summed.
    """
    total = 0.0
    for sid, started in session_starts.items():
        target = tables.daily_target(sid, symbol)
        if target == 0.0:
            continue
        age = (now - started).total_seconds()
        per_second = (target / drift_window_seconds) * decay_factor(age, half_life_seconds)
        total += tables.session_weights[sid] * per_second
    return total

def apply_mean_reversion(
    price: float,
    open_price: float,
    drift: float,
    threshold: float = 0.02,
    factor: float = 0.4,
) -> float:
    # Dip buyers: once down more than `threshold`, damp further negative drift.
    # No upside counterpart.
    day_change = (price - open_price) / open_price
    if day_change < -threshold and drift < 0:
        return drift * factor
    return drift

def max_downward_drift(tables: MarketTables, drift_window_seconds: float) -> float:
    """Largest per-second fall news can cause: every session active, fresh, at its most negative target."""
    worst = 0.0
    for sid, weight in tables.session_weights.items():
        lowest = min(tables.drift_targets.get(sid, {}).values(), default=0.0)
        worst += weight * max(0.0, -lowest) / drift_window_seconds
    return worst
