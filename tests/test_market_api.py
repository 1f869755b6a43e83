"""
HTTP / WebSocket tests for the market router.
"""

import pytest
from fastapi.testclient import TestClient

from market_sim.core.config import EngineParams
from market_sim.main import create_app
from market_sim.services.market_engine import MarketEngine

from conftest import FixedRng


@pytest.fixture
def engine(clock):
    return MarketEngine(params=EngineParams(tick_interval_seconds=0.05), rng=FixedRng(0.0), clock=clock)


@pytest.fixture
def client(engine):
    app = create_app(engine=engine, autostart=False)
    with TestClient(app) as c:
        yield c


class TestMarketEndpoints:

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_instruments(self, client):
        symbols = client.get("/api/market/instruments").json()["symbols"]
        assert "TCS" in symbols
        assert len(symbols) == 8

    def test_quote(self, client):
        r = client.get("/api/market/quote/TCS")
        assert r.status_code == 200
        body = r.json()
        assert body["price"] == 4100.0
        assert body["price_history"] == [4100.0]
        assert body["last_trades"] == []

    def test_quote_unknown(self, client):
        assert client.get("/api/market/quote/NOPE").status_code == 404

    def test_quotes(self, client):
        body = client.get("/api/market/quotes").json()
        assert len(body) == 8
        assert "price_history" not in body[0]

    def test_trade(self, client, engine):
        r = client.post("/api/market/trades", json={"symbol": "TCS", "side": "BUY", "qty": 5000, "price": 4100})
        assert r.status_code == 200
        assert r.json() == {"symbol": "TCS", "price": 4202.5}
        assert engine.get_state("TCS").volume_traded == 5000

    def test_trade_unknown_symbol(self, client, engine):
        before = engine.snapshot_all()
        r = client.post("/api/market/trades", json={"symbol": "UNKNOWN", "side": "BUY", "qty": 100, "price": 10})
        assert r.status_code == 404
        assert engine.snapshot_all() == before

    @pytest.mark.parametrize("payload", [
        {"symbol": "TCS", "side": "BUY", "qty": 0, "price": 10},
        {"symbol": "TCS", "side": "BUY", "qty": 10, "price": -1},
        {"symbol": "TCS", "side": "HOLD", "qty": 10, "price": 10},
    ])
    def test_trade_schema_errors(self, client, payload):
        assert client.post("/api/market/trades", json=payload).status_code == 422

    def test_sessions(self, client):
        r = client.post("/api/market/sessions/2")
        assert r.status_code == 200
        assert r.json() == {"active": [2]}
        client.post("/api/market/sessions/2")
        body = client.get("/api/market/sessions").json()
        assert body["active"] == [2]
        assert "2" in body["started_at"]

    def test_unknown_session(self, client):
        assert client.post("/api/market/sessions/7").status_code == 404

    def test_export_json(self, client, clock):
        client.post("/api/market/trades", json={"symbol": "TCS", "side": "BUY", "qty": 10, "price": 4100})
        clock.advance(1)
        client.post("/api/market/trades", json={"symbol": "SBIN", "side": "sell", "qty": 20, "price": 720})
        log = client.get("/api/market/trades/export").json()
        assert [(r["symbol"], r["side"], r["qty"]) for r in log] == [("SBIN", "SELL", 20), ("TCS", "BUY", 10)]

    def test_export_csv(self, client):
        client.post("/api/market/trades", json={"symbol": "TCS", "side": "BUY", "qty": 10, "price": 4100})
        r = client.get("/api/market/trades/export.csv")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/csv")
        lines = r.text.strip().splitlines()
        assert lines[0] == "symbol,side,qty,price,timestamp,resulting_price"
        assert lines[1].startswith("TCS,BUY,10,4100.00,")

    def test_reset(self, client, engine):
        client.post("/api/market/trades", json={"symbol": "TCS", "side": "BUY", "qty": 5000, "price": 4100})
        client.post("/api/market/sessions/1")
        assert client.post("/api/market/reset").json() == {"reset": True}
        assert engine.get_state("TCS").price == 4100.0
        assert engine.sessions.active() == ()
        assert not engine.ticking

    def test_ws_streams_quotes(self, client):
        with client.websocket_connect("/api/ws/market") as ws:
            data = ws.receive_json()
            assert len(data) == 8
            assert {d["symbol"] for d in data} >= {"TCS", "SBIN"}

    def test_ws_ignores_binary_frames(self, client):
        with client.websocket_connect("/api/ws/market") as ws:
            ws.receive_json()
            ws.send_bytes(b"\x00\x01")
            data = ws.receive_json()
            assert len(data) == 8
