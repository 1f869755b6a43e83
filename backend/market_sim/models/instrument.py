import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Tuple

from market_sim.services.ring_buffer import RingBuffer

class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    @property
    def direction(self) -> int:
        return 1 if self is Side.BUY else -1

class SentimentLabel(str, Enum):
    POSITIVE = "Positive"
    POSITIVE_LEAN = "Positive Lean"
    MIXED = "Mixed"
    NEGATIVE_LEAN = "Negative Lean"
    NEGATIVE = "Negative"

@dataclass(frozen=True)
class InstrumentConfig:
    start_price: float
    daily_volume: int
    impact_sensitivity: float  # K in the square-root impact law

@dataclass(frozen=True)
class Trade:
    side: Side
    quantity: int
    price: float            # execution price supplied by the caller
    timestamp: datetime
    resulting_price: float  # instrument price right after this trade

    def to_dict(self) -> Dict[str, Any]:
        return {
            "side": self.side.value,
            "qty": self.quantity,
            "price": self.price,
            "timestamp": self.timestamp.isoformat(),
            "resulting_price": self.resulting_price,
        }

@dataclass(frozen=True)
class TransactionRecord:
    symbol: str
    trade: Trade

    def to_dict(self) -> Dict[str, Any]:
        return {"symbol": self.symbol, **self.trade.to_dict()}

@dataclass
class InstrumentState:
    """
    Mutable per-symbol record. Callers must hold `lock` around any
    read-modify-write of price / extrema / flow / buffers.
    """
    symbol: str
    price: float
    open_price: float
    high: float
    low: float
    recent_trades: RingBuffer  # RingBuffer[Trade], oldest -> newest internally
    price_history: RingBuffer  # RingBuffer[float]
    volume_traded: int = 0
    net_flow_value: float = 0.0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    # set by engine reset once a fresh state object has replaced this one
    retired: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def fresh(cls, symbol: str, cfg: InstrumentConfig, max_trades: int = 10, max_history: int = 100) -> "InstrumentState":
        p = float(cfg.start_price)
        return cls(
            symbol=symbol,
            price=p,
            open_price=p,
            high=p,
            low=p,
            recent_trades=RingBuffer(max_trades),
            price_history=RingBuffer(max_history, [p]),
        )

    def move_to(self, new_price: float) -> None:
        self.price = new_price
        self.high = max(self.high, new_price)
        self.low = min(self.low, new_price)
        self.price_history.append(new_price)

    def snapshot(self) -> "InstrumentSnapshot":
        return InstrumentSnapshot(
            symbol=self.symbol,
            price=self.price,
            open_price=self.open_price,
            high=self.high,
            low=self.low,
            volume_traded=self.volume_traded,
            net_flow_value=self.net_flow_value,
            recent_trades=tuple(self.recent_trades.newest_first()),
            price_history=tuple(self.price_history),
        )

@dataclass(frozen=True)
class InstrumentSnapshot:
    symbol: str
    price: float
    open_price: float
    high: float
    low: float
    volume_traded: int
    net_flow_value: float
    recent_trades: Tuple[Trade, ...]   # newest first
    price_history: Tuple[float, ...]   # oldest first

    @property
    def change_pct(self) -> float:
        return (self.price - self.open_price) / self.open_price

    def to_dict(self, history: bool = True) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "symbol": self.symbol,
            "price": round(self.price, 2),
            "open": round(self.open_price, 2),
            "high": round(self.high, 2),
            "low": round(self.low, 2),
            "change_pct": round(100 * self.change_pct, 3),
            "volume": self.volume_traded,
            "net_flow_value": round(self.net_flow_value, 2),
            "last_trades": [t.to_dict() for t in self.recent_trades],
        }
        if history:
            out["price_history"] = [round(p, 2) for p in self.price_history]
        return out

def new_states(configs: Dict[str, InstrumentConfig], max_trades: int, max_history: int) -> Dict[str, InstrumentState]:
    return {
        sym: InstrumentState.fresh(sym, cfg, max_trades, max_history)
        for sym, cfg in configs.items()
    }
