from typing import List, Optional
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

load_dotenv()

def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default

def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default

def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")

class Settings(BaseModel):
    app_env: str = os.getenv("APP_ENV", "dev")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: List[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()
    ]
    autostart_ticks: bool = _env_bool("SIM_AUTOSTART", True)

class EngineParams(BaseModel):
    """
    Tunables for the price engine.
    Percentages are decimals (0.025 == 2.5%).
    """
    depth_factor: float = Field(0.02, gt=0)
    impact_clamp: float = Field(0.025, gt=0, lt=1)
    flow_divisor: float = Field(50.0, gt=0)
    max_flow_pct: float = Field(0.002, ge=0, lt=1)
    noise_range_pct: float = Field(0.0002, ge=0, lt=1)
    drift_window_seconds: float = Field(3600.0, gt=0)
    drift_half_life_seconds: float = Field(1200.0, gt=0)
    mean_reversion_threshold: float = Field(0.02, ge=0)
    mean_reversion_factor: float = Field(0.4, ge=0, le=1)
    tick_interval_seconds: float = Field(1.0, gt=0)
    max_recent_trades: int = Field(10, ge=1)
    max_price_history: int = Field(100, ge=1)
    random_seed: Optional[int] = None

    @model_validator(mode="after")
    def _tick_cannot_wipe_out_price(self) -> "EngineParams":
        # per-tick change is flow + news + noise; flow and noise alone must stay above -100%
        if self.max_flow_pct + self.noise_range_pct >= 1:
            raise ValueError("max_flow_pct + noise_range_pct must be < 1")
        return self

    @classmethod
    def from_env(cls) -> "EngineParams":
        # SIM_<FIELD> overrides, e.g. SIM_IMPACT_CLAMP=0.03
        d = cls()
        return cls(
            depth_factor=_env_float("SIM_DEPTH_FACTOR", d.depth_factor),
            impact_clamp=_env_float("SIM_IMPACT_CLAMP", d.impact_clamp),
            flow_divisor=_env_float("SIM_FLOW_DIVISOR", d.flow_divisor),
            max_flow_pct=_env_float("SIM_MAX_FLOW_PCT", d.max_flow_pct),
            noise_range_pct=_env_float("SIM_NOISE_RANGE_PCT", d.noise_range_pct),
            drift_window_seconds=_env_float("SIM_DRIFT_WINDOW_SECONDS", d.drift_window_seconds),
            drift_half_life_seconds=_env_float("SIM_DRIFT_HALF_LIFE_SECONDS", d.drift_half_life_seconds),
            mean_reversion_threshold=_env_float("SIM_MEAN_REVERSION_THRESHOLD", d.mean_reversion_threshold),
            mean_reversion_factor=_env_float("SIM_MEAN_REVERSION_FACTOR", d.mean_reversion_factor),
            tick_interval_seconds=_env_float("SIM_TICK_INTERVAL_SECONDS", d.tick_interval_seconds),
            max_recent_trades=_env_int("SIM_MAX_RECENT_TRADES", d.max_recent_trades),
            max_price_history=_env_int("SIM_MAX_PRICE_HISTORY", d.max_price_history),
            random_seed=_env_int("SIM_RANDOM_SEED", 0) if os.getenv("SIM_RANDOM_SEED") else None,
        )

settings = Settings()
