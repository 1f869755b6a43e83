"""
Synthetic equity price engine.

Three forces move each instrument's price:
  * per-trade impact (square-root law, clamped) applied immediately on add_transaction
  * slow flow drift from cumulative signed order value, applied every tick
  * decaying news-session drift plus uniform noise, applied every tick

Trades and session activation are synchronous. A TickScheduler thread calls
tick() once per interval. Each instrument has its own lock, so a trade sees
either the full pre-tick or post-tick state of that instrument.
"""
import logging
import math
import random
import threading
from contextlib import ExitStack
from datetime import datetime, timezone
from numbers import Integral, Real
from typing import Callable, Dict, List, Optional, Tuple, Union

from market_sim.core.config import EngineParams
from market_sim.core.errors import ConfigurationError, InvalidInput, UnknownInstrument
from market_sim.models.instrument import (
    InstrumentSnapshot,
    InstrumentState,
    Side,
    Trade,
    TransactionRecord,
    new_states,
)
from market_sim.services.drift import apply_mean_reversion, max_downward_drift, session_drift_bias
from market_sim.services.impact import flow_impact, trade_impact
from market_sim.services.market_tables import MarketTables
from market_sim.services.scheduler import TickScheduler
from market_sim.services.sessions import SessionRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def _parse_side(side: Union[str, Side]) -> Side:
    if isinstance(side, Side):
        return side
    if isinstance(side, str):
        try:
            return Side(side.strip().upper())
        except ValueError:
            pass
    raise InvalidInput("side must be BUY or SELL", {"side": side})

def _validate_order(quantity, price) -> Tuple[int, float]:
    if isinstance(quantity, bool) or not isinstance(quantity, Integral) or quantity <= 0:
        raise InvalidInput("quantity must be a positive integer", {"quantity": quantity})
    if isinstance(price, bool) or not isinstance(price, Real):
        raise InvalidInput("price must be a number", {"price": price})
    p = float(price)
    if not math.isfinite(p) or p <= 0:
        raise InvalidInput("price must be finite and > 0", {"price": price})
    return int(quantity), p

class MarketEngine:
    def __init__(
        self,
        params: Optional[EngineParams] = None,
        tables: Optional[MarketTables] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None,
    ):
        self.params = params or EngineParams()
        self.tables = tables or MarketTables()
        self.rng = rng or random.Random(self.params.random_seed)
        self.clock = clock or utc_now

        worst_fall = (
            self.params.max_flow_pct
            + self.params.noise_range_pct
            + max_downward_drift(self.tables, self.params.drift_window_seconds)
        )
        if worst_fall >= 1:
            raise ConfigurationError(
                "a single tick could drive prices to zero",
                {"worst_tick_change": -worst_fall},
            )

        self.sessions = SessionRegistry(self.tables.session_weights)
        self._states: Dict[str, InstrumentState] = self._fresh_states()
        self._lifecycle_lock = threading.RLock()
        self._started = False
        self._scheduler = TickScheduler(self.tick, self.params.tick_interval_seconds)

    def _fresh_states(self) -> Dict[str, InstrumentState]:
        return new_states(
            dict(self.tables.instruments),
            self.params.max_recent_trades,
            self.params.max_price_history,
        )

    def _state(self, symbol: str) -> InstrumentState:
        st = self._states.get(symbol)
        if st is None:
            logger.warning("Unknown instrument: %s", symbol)
            raise UnknownInstrument(symbol)
        return st

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        with self._lifecycle_lock:
            self._started = True
            self._scheduler.start()

    init = start

    def stop_tick_loop(self) -> None:
        self._scheduler.stop()

    @property
    def ticking(self) -> bool:
        return self._scheduler.running

    def reset(self) -> None:
        """Stop ticking, drop sessions, rebuild every instrument from config, resume ticking."""
        with self._lifecycle_lock:
            self._scheduler.stop()
            old = self._states
            with ExitStack() as stack:
                # wait out in-flight trades / manual ticks on every instrument
                for st in old.values():
                    stack.enter_context(st.lock)
                self.sessions.clear()
                self._states = self._fresh_states()
                for st in old.values():
                    st.retired = True
            if self._started:
                self._scheduler.start()
        logger.info("Market engine reset (%d instruments)", len(self._states))

    # ------------------------------------------------------------------
    # trades
    # ------------------------------------------------------------------

    def add_transaction(self, symbol: str, side: Union[str, Side], qty: int, price: float) -> float:
        """
        Execute a trade against `symbol` and return the new instrument price.

        Raises UnknownInstrument / InvalidInput without touching any state.
        """
        st = self._state(symbol)
        try:
            s = _parse_side(side)
            qty, price = _validate_order(qty, price)
        except InvalidInput as e:
            logger.warning("Rejected trade on %s: %s", symbol, e)
            raise
        cfg = self.tables.instruments[symbol]
        p = self.params

        while True:
            with st.lock:
                if st.retired:
                    # reset swapped this instrument out; trade against the live state
                    st = self._state(symbol)
                    continue
                imp = trade_impact(cfg, st.price, s, qty, price, p.depth_factor, p.impact_clamp)
                new_price = st.price * (1 + imp.clamped_pct)
                st.move_to(new_price)
                st.volume_traded += qty
                st.net_flow_value += s.direction * imp.trade_value
                st.recent_trades.append(Trade(
                    side=s,
                    quantity=qty,
                    price=price,
                    timestamp=self.clock(),
                    resulting_price=new_price,
                ))
                break

        logger.info(
            "Trade executed: %s %s %d@%.2f -> price %.2f (impact: %.3f%%)",
            symbol, s.value, qty, price, new_price, imp.clamped_pct * 100,
        )
        return new_price

    # ------------------------------------------------------------------
    # sessions / drift
    # ------------------------------------------------------------------

    def activate_session(self, session_id: int) -> None:
        self.sessions.activate(session_id, self.clock())

    def session_drift_bias(self, symbol: str, now: Optional[datetime] = None) -> float:
        self._state(symbol)
        return session_drift_bias(
            self.tables,
            symbol,
            self.sessions.starts(),
            now or self.clock(),
            self.params.drift_window_seconds,
            self.params.drift_half_life_seconds,
        )

    def apply_mean_reversion(self, symbol: str, drift: float) -> float:
        st = self._state(symbol)
        with st.lock:
            price, open_price = st.price, st.open_price
        return apply_mean_reversion(
            price, open_price, drift,
            self.params.mean_reversion_threshold,
            self.params.mean_reversion_factor,
        )

    # ------------------------------------------------------------------
    # tick
    # ------------------------------------------------------------------

    def tick(self, now: Optional[datetime] = None) -> None:
        """One recomposition step: flow drift + news drift + noise, for every instrument."""
        now = now or self.clock()
        p = self.params
        starts = self.sessions.starts()
        for symbol, st in list(self._states.items()):
            cfg = self.tables.instruments[symbol]
            news = session_drift_bias(
                self.tables, symbol, starts, now,
                p.drift_window_seconds, p.drift_half_life_seconds,
            )
            noise = self.rng.uniform(-p.noise_range_pct, p.noise_range_pct)
            with st.lock:
                if st.retired:
                    continue
                flow = flow_impact(cfg, st.price, st.net_flow_value, p.depth_factor, p.flow_divisor, p.max_flow_pct)
                news_adj = apply_mean_reversion(
                    st.price, st.open_price, news,
                    p.mean_reversion_threshold, p.mean_reversion_factor,
                )
                st.move_to(st.price * (1 + flow + news_adj + noise))

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------

    def symbols(self) -> List[str]:
        return list(self.tables.instruments)

    def get_state(self, symbol: str) -> InstrumentSnapshot:
        st = self._state(symbol)
        with st.lock:
            return st.snapshot()

    def snapshot_all(self) -> Dict[str, InstrumentSnapshot]:
        out = {}
        for symbol, st in list(self._states.items()):
            with st.lock:
                out[symbol] = st.snapshot()
        return out

    def export_transactions(self) -> List[TransactionRecord]:
        """Recent trades of every instrument, most recent first."""
        log = [
            TransactionRecord(symbol, t)
            for symbol, snap in self.snapshot_all().items()
            for t in snap.recent_trades
        ]
        log.sort(key=lambda r: r.trade.timestamp, reverse=True)
        return log
