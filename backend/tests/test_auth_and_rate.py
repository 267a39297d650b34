r"""backend/tests/test_auth_and_rate.py"""

from __future__ import annotations

import sys
from collections import defaultdict, deque
from pathlib import Path

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.main import app  # noqa: E402

SHOPPER_HEADERS = {"X-User-Id": "4", "X-User-Role": "USER"}


def test_auth_and_rate_limit(monkeypatch):
    from backend.app.core import observability as obs

    monkeypatch.setenv("API_TOKEN", "X")
    monkeypatch.setenv("RATE_LIMIT_PER_MIN", "1")
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_token", "X", raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_per_minute", 1, raising=False)
    monkeypatch.setattr(
        obs.TokenAndRateLimitMiddleware,
        "_buckets",
        defaultdict(deque),
        raising=False,
    )

    client = TestClient(app)

    response = client.get("/api/v1/products", headers=SHOPPER_HEADERS)
    assert response.status_code == 401

    authed = client.get("/api/v1/products", headers={"Authorization": "Bearer X", **SHOPPER_HEADERS})
    assert authed.status_code == 200

    limited = client.get("/api/v1/products", headers={"Authorization": "Bearer X", **SHOPPER_HEADERS})
    assert limited.status_code == 429


def test_health_and_metrics_are_exempt(monkeypatch):
    from backend.app.core import observability as obs

    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_token", "X", raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_buckets", defaultdict(deque), raising=False)

    client = TestClient(app)

    health = client.get("/api/v1/health")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "http_requests_total" in metrics.text


def test_run_serves_on_configured_host_and_port(monkeypatch):
    from backend.app import main
    from backend.app.core.config import Settings

    calls = []
    monkeypatch.setattr(main, "settings", Settings(api_host="127.0.0.1", api_port=9001))
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))

    main.run()

    assert calls == [(main.app, {"host": "127.0.0.1", "port": 9001})]
