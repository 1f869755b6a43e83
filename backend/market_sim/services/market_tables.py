from dataclasses import dataclass, field
from typing import Dict, Mapping

from market_sim.core.errors import ConfigurationError
from market_sim.models.instrument import InstrumentConfig, SentimentLabel

PL, M, NL, N = (
    SentimentLabel.POSITIVE_LEAN,
    SentimentLabel.MIXED,
    SentimentLabel.NEGATIVE_LEAN,
    SentimentLabel.NEGATIVE,
)

INSTRUMENTS: Dict[str, InstrumentConfig] = {
    "ADANIPORTS": InstrumentConfig(start_price=850.00, daily_volume=2_500_000, impact_sensitivity=1.05),
    "LT":         InstrumentConfig(start_price=3400.00, daily_volume=3_200_000, impact_sensitivity=1.00),
    "JSWSTEEL":   InstrumentConfig(start_price=820.00, daily_volume=8_500_000, impact_sensitivity=0.85),
    "ONGC":       InstrumentConfig(start_price=260.00, daily_volume=12_800_000, impact_sensitivity=0.75),
    "TCS":        InstrumentConfig(start_price=4100.00, daily_volume=1_800_000, impact_sensitivity=1.15),
    "TITAN":      InstrumentConfig(start_price=3600.00, daily_volume=2_800_000, impact_sensitivity=1.05),
    "CEATLTD":    InstrumentConfig(start_price=2800.00, daily_volume=680_000, impact_sensitivity=1.60),
    "SBIN":       InstrumentConfig(start_price=720.00, daily_volume=18_500_000, impact_sensitivity=0.70),
}

NEWS_SENTIMENT: Dict[int, Dict[str, SentimentLabel]] = {
    1: {"ADANIPORTS": M, "LT": M, "TITAN": M, "JSWSTEEL": NL, "ONGC": M,
        "TCS": PL, "CEATLTD": N, "SBIN": PL},
    2: {"ADANIPORTS": N, "LT": M, "TITAN": PL, "JSWSTEEL": NL, "ONGC": NL,
        "TCS": N, "CEATLTD": M, "SBIN": N},
    3: {"ADANIPORTS": NL, "LT": N, "TITAN": N, "JSWSTEEL": PL, "ONGC": NL,
        "TCS": N, "CEATLTD": M, "SBIN": PL},
}

# Daily drift target per sentiment, by session (decimal, signed)
DRIFT_TARGETS: Dict[int, Dict[SentimentLabel, float]] = {
    1: {PL: 0.009, M: 0.002, NL: -0.007, N: -0.013},
    2: {PL: 0.013, M: 0.001, NL: -0.011, N: -0.018},
    3: {PL: 0.016, M: 0.000, NL: -0.014, N: -0.022},
}

SESSION_WEIGHTS: Dict[int, float] = {1: 0.15, 2: 0.35, 3: 0.50}

@dataclass(frozen=True)
class MarketTables:
    """Static configuration: instruments plus per-session sentiment / drift / weight lookups."""
    instruments: Mapping[str, InstrumentConfig] = field(default_factory=lambda: dict(INSTRUMENTS))
    sentiment: Mapping[int, Mapping[str, SentimentLabel]] = field(default_factory=lambda: dict(NEWS_SENTIMENT))
    drift_targets: Mapping[int, Mapping[SentimentLabel, float]] = field(default_factory=lambda: dict(DRIFT_TARGETS))
    session_weights: Mapping[int, float] = field(default_factory=lambda: dict(SESSION_WEIGHTS))

    def __post_init__(self):
        validate_tables(self)

    @property
    def sessions(self):
        return tuple(sorted(self.session_weights))

    def daily_target(self, session_id: int, symbol: str) -> float:
        """0.0 when the session says nothing about this symbol."""
        label = self.sentiment.get(session_id, {}).get(symbol)
        if label is None:
            return 0.0
        return self.drift_targets[session_id][label]

def validate_tables(t: MarketTables) -> None:
    if not t.instruments:
        raise ConfigurationError("at least one instrument is required")

    for sym, cfg in t.instruments.items():
        if cfg.start_price <= 0 or cfg.daily_volume <= 0 or cfg.impact_sensitivity <= 0:
            raise ConfigurationError(
                "instrument parameters must be > 0",
                {"symbol": sym, "start_price": cfg.start_price,
                 "daily_volume": cfg.daily_volume, "K": cfg.impact_sensitivity},
            )

    for sid, w in t.session_weights.items():
        if not (0 < w <= 1):
            raise ConfigurationError("session weight must be in (0, 1]", {"session_id": sid, "weight": w})
        if sid not in t.sentiment:
            raise ConfigurationError("session has no sentiment table", {"session_id": sid})

    for sid, per_symbol in t.sentiment.items():
        if sid not in t.session_weights:
            raise ConfigurationError("sentiment table for session without weight", {"session_id": sid})
        targets = t.drift_targets.get(sid)
        if targets is None:
            raise ConfigurationError("session has no drift targets", {"session_id": sid})
        for sym, label in per_symbol.items():
            if sym not in t.instruments:
                raise ConfigurationError("sentiment for unknown instrument", {"session_id": sid, "symbol": sym})
            if label not in targets:
                raise ConfigurationError(
                    "no drift target for sentiment label",
                    {"session_id": sid, "label": label.value},
                )
