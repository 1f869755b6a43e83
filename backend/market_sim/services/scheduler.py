import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

class TickScheduler:
    """
    Runs `fn` every `interval` seconds on a daemon thread.

    stop() sets the stop signal and joins the thread, so once it returns no
    tick is in flight and none will fire. start() after stop() spins up a new
    thread.
    """

    def __init__(self, fn: Callable[[], None], interval: float = 1.0, name: str = "tick-loop"):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._fn = fn
        self.interval = interval
        self.name = name
        self.ticks = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        t = self._thread
        return t is not None and t.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                logger.warning("%s already running", self.name)
                return
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name=self.name, daemon=True
            )
            self._thread.start()
        logger.info("%s started (interval=%.3fs)", self.name, self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            t = self._thread
            self._stop_event.set()
            self._thread = None
        if t is None:
            return
        if t is not threading.current_thread():
            t.join(timeout)
        logger.info("%s stopped after %d ticks", self.name, self.ticks)

    def _run(self, stop_event: threading.Event) -> None:
        # wait() doubles as the sleep and returns early once stop is requested
        while not stop_event.wait(self.interval):
            try:
                self._fn()
                self.ticks += 1
            except Exception:
                logger.exception("%s: tick failed", self.name)
