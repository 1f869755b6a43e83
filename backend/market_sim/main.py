from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from market_sim.core.config import EngineParams, settings
from market_sim.core.logging_config import configure_logging
from market_sim.routers import market
from market_sim.services.market_engine import MarketEngine

logger = logging.getLogger(__name__)

def create_app(engine: MarketEngine | None = None, autostart: bool | None = None) -> FastAPI:
    engine = engine or MarketEngine(params=EngineParams.from_env())
    start_ticks = settings.autostart_ticks if autostart is None else autostart

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        if start_ticks:
            engine.start()
        logger.info("market_sim up (env=%s, ticking=%s)", settings.app_env, start_ticks)
        try:
            yield
        finally:
            engine.stop_tick_loop()

    app = FastAPI(title="Market Sim API", version="0.1.0", lifespan=lifespan)
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(market.router, prefix="/api")
    return app

app = create_app()
