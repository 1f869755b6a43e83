"""
Shared fixtures for market_sim tests.
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from market_sim.core.config import EngineParams
from market_sim.services.market_engine import MarketEngine


T0 = datetime(2026, 1, 5, 9, 15, tzinfo=timezone.utc)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FixedRng:
    """uniform() always returns `value` clipped into [a, b]."""

    def __init__(self, value: float = 0.0):
        self.value = value
        self.calls = []

    def uniform(self, a: float, b: float) -> float:
        self.calls.append((a, b))
        return max(a, min(b, self.value))


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def engine(clock):
    """Engine with noise pinned to zero; not ticking on its own."""
    return MarketEngine(rng=FixedRng(0.0), clock=clock)


@pytest.fixture
def noisy_engine(clock):
    """Engine with seeded noise."""
    return MarketEngine(rng=random.Random(42), clock=clock)


@pytest.fixture
def fast_params():
    return EngineParams(tick_interval_seconds=0.01)
