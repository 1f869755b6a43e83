"""
Engine error hierarchy.

Every failure raised by the engine derives from EngineError, so callers (the
HTTP layer, tests) can tell "no trade happened" apart from "trade happened with
zero impact". A failed call never leaves state partially mutated.
"""
from typing import Any, Dict, Optional


class EngineError(Exception):
    error_code: str = "ENGINE_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        base = f"[{self.error_code}] {self.message}"
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx})"
        return base

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class UnknownInstrument(EngineError):
    """Symbol is not in the static instrument table."""
    error_code = "UNKNOWN_INSTRUMENT"

    def __init__(self, symbol: str):
        super().__init__(f"Unknown instrument: {symbol}", {"symbol": symbol})
        self.symbol = symbol


class UnknownSession(EngineError):
    """Session id has no weight / sentiment table."""
    error_code = "UNKNOWN_SESSION"

    def __init__(self, session_id: Any):
        super().__init__(f"Unknown session: {session_id}", {"session_id": session_id})
        self.session_id = session_id


class InvalidInput(EngineError):
    """Quantity, price or side rejected before any mutation."""
    error_code = "INVALID_INPUT"


class ConfigurationError(EngineError):
    """Static tables or tunables are inconsistent."""
    error_code = "CONFIGURATION_ERROR"
