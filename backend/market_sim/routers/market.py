from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from typing import Literal
import asyncio
import csv
import io
import logging

from market_sim.core.errors import InvalidInput, UnknownInstrument, UnknownSession
from market_sim.services.market_engine import MarketEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["market"])

class TradeRequest(BaseModel):
    symbol: str = Field(..., min_length=1)
    side: Literal["BUY", "SELL", "buy", "sell"]
    qty: int = Field(..., ge=1)
    price: float = Field(..., gt=0)

def get_engine(request: Request) -> MarketEngine:
    return request.app.state.engine

@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/market/instruments")
def instruments(request: Request):
    return {"symbols": get_engine(request).symbols()}

@router.get("/market/quotes")
def quotes(request: Request):
    snaps = get_engine(request).snapshot_all()
    return [s.to_dict(history=False) for s in snaps.values()]

@router.get("/market/quote/{symbol}")
def quote(symbol: str, request: Request):
    try:
        return get_engine(request).get_state(symbol).to_dict()
    except UnknownInstrument as e:
        raise HTTPException(status_code=404, detail=e.message)

@router.post("/market/trades")
def submit_trade(req: TradeRequest, request: Request):
    try:
        new_price = get_engine(request).add_transaction(req.symbol, req.side, req.qty, req.price)
    except UnknownInstrument as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=e.message)
    return {"symbol": req.symbol, "price": round(new_price, 2)}

@router.get("/market/sessions")
def sessions(request: Request):
    reg = get_engine(request).sessions
    return {
        "active": list(reg.active()),
        "started_at": {str(k): v.isoformat() for k, v in reg.starts().items()},
    }

@router.post("/market/sessions/{session_id}")
def activate_session(session_id: int, request: Request):
    engine = get_engine(request)
    try:
        engine.activate_session(session_id)
    except UnknownSession as e:
        raise HTTPException(status_code=404, detail=e.message)
    return {"active": list(engine.sessions.active())}

@router.get("/market/trades/export")
def export_trades(request: Request):
    return [r.to_dict() for r in get_engine(request).export_transactions()]

@router.get("/market/trades/export.csv")
def export_trades_csv(request: Request):
    out = io.StringIO()
    w = csv.writer(out)
    w.writerow(["symbol", "side", "qty", "price", "timestamp", "resulting_price"])
    for r in get_engine(request).export_transactions():
        t = r.trade
        w.writerow([r.symbol, t.side.value, t.quantity, f"{t.price:.2f}", t.timestamp.isoformat(), f"{t.resulting_price:.2f}"])
    out.seek(0)

    return StreamingResponse(
        out,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"}
    )

@router.post("/market/reset")
def reset(request: Request):
    get_engine(request).reset()
    return {"reset": True}

@router.websocket("/ws/market")
async def ws_market(ws: WebSocket):
    await ws.accept()
    engine: MarketEngine = ws.app.state.engine
    try:
        while True:
            snaps = engine.snapshot_all()
            await ws.send_json([s.to_dict(history=False) for s in snaps.values()])
            # inbound frames (text or binary) are ignored; receiving is how a client close is noticed
            try:
                msg = await asyncio.wait_for(ws.receive(), timeout=engine.params.tick_interval_seconds)
            except asyncio.TimeoutError:
                continue
            if msg["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    logger.info("market stream client disconnected")
