import sys
import time
import types

from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient

from storefront.utils.rate_limit import client_key, optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.post("/api/v1/checkout/details", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def details():
        return {"ok": True}

    @app.post("/api/v1/checkout/payment-intent", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def payment_intent():
        return {"ok": True}

    @app.get("/rl_key")
    def rl_key(request: Request):
        return {"key": client_key(request)}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    client = TestClient(_make_app(times=2, seconds=60))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/api/v1/checkout/details").status_code == 200
    assert client.post("/api/v1/checkout/details").status_code == 200
    assert client.post("/api/v1/checkout/details").status_code == 429


def test_rate_limit_is_per_path(monkeypatch):
    client = TestClient(_make_app(times=1, seconds=60))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/api/v1/checkout/details").status_code == 200
    assert client.post("/api/v1/checkout/details").status_code == 429
    # chemin différent: compteur indépendant
    assert client.post("/api/v1/checkout/payment-intent").status_code == 200


def test_client_key_hashes_token_and_falls_back_to_ip():
    client = TestClient(_make_app())
    guest = client.get("/rl_key").json()["key"]
    assert guest.startswith("ip:") and guest.endswith(":/rl_key")

    authed = client.get("/rl_key", headers={"Authorization": "Bearer secret-token"}).json()["key"]
    assert authed.startswith("user:")
    assert "secret-token" not in authed


def test_rate_limit_resets_after_window_sleep(monkeypatch):
    client = TestClient(_make_app(times=1, seconds=1))
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.post("/api/v1/checkout/details").status_code == 200
    assert client.post("/api/v1/checkout/details").status_code == 429
    time.sleep(1.1)
    assert client.post("/api/v1/checkout/details").status_code == 200


def test_rate_limit_disabled_flag_bypasses_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=1, seconds=60)
    app.state.rate_limit_enabled = False
    client = TestClient(app)

    for _ in range(3):
        assert client.post("/api/v1/checkout/details").status_code == 200


def test_rate_limit_health_info(monkeypatch):
    app = _make_app()
    app.state.rate_limit_enabled = True
    client = TestClient(app)

    dummy = types.ModuleType("fastapi_limiter")

    class FastAPILimiter:
        redis = None

    dummy.FastAPILimiter = FastAPILimiter
    monkeypatch.setitem(sys.modules, "fastapi_limiter", dummy)

    info = client.get("/rl_info").json()
    assert info == {"enabled": True, "ready": False, "backend": None}

    FastAPILimiter.redis = object()
    monkeypatch.setenv("RATE_LIMIT_REDIS_URL", "redis://localhost:6379/0")
    info2 = client.get("/rl_info").json()
    assert info2["ready"] is True
    assert info2["backend"] == "redis"
    assert info2["redis"] == {"scheme": "redis", "host": "localhost", "port": 6379}
