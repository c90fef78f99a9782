from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from mot_trainer.config import Settings
from mot_trainer.errors import AdapterError, ConfigurationError, EvaluationError
from mot_trainer.main import create_app


@pytest.fixture
def client(fake_adapter):
    app = create_app(Settings(provider="ollama"), adapter=fake_adapter)
    with TestClient(app) as c:
        yield c


def _start(client, **body):
    payload = {"industry_id": "telecom", "persona_id": "busy_pro", **body}
    r = client.post("/sessions", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def test_health_and_catalog(client):
    assert client.get("/health").json() == {"status": "ok", "provider": "fake"}
    data = client.get("/catalog").json()
    assert {i["id"] for i in data["industries"]} >= {"retail", "banking", "telecom"}
    assert data["personas"][0]["traits"]


def test_session_flow(client):
    session = _start(client, voice_id="v1")
    sid = session["id"]
    assert session["stage"] == "EXPLORE"
    assert session["turns"][0]["role"] == "customer"
    assert session["scenario"]["voice"]["id"] == "v1"

    r = client.post(f"/sessions/{sid}/turns", json={"text": "您好，我来帮您看看账单。"})
    assert r.status_code == 200
    body = r.json()
    assert body["customer_turn"]["role"] == "customer"
    assert body["advice"] == {"comment": "做得很好", "tags": ["同理心", "效率"]}
    assert len(body["turns"]) == 3

    r = client.post(f"/sessions/{sid}/finish")
    assert r.status_code == 200
    report = r.json()["report"]
    assert report["overall_score"] == 82
    assert report["key_moments"][0]["type"] == "positive"

    r = client.post(f"/sessions/{sid}/turns", json={"text": "还有别的问题吗？"})
    assert r.status_code == 409
    assert r.json()["detail"]["error"] == "session_finished"

    progress = client.get("/progress").json()
    assert progress["sessions_completed"] == 1
    assert progress["averages"]["empathy"] == 85
    assert progress["recent"][0]["session_id"] == sid


def test_unknown_catalog_ids(client):
    r = client.post("/sessions", json={"industry_id": "space", "persona_id": "busy_pro"})
    assert r.status_code == 404
    assert r.json()["detail"]["error"] == "unknown_catalog_id"


def test_blank_text_is_rejected(client):
    sid = _start(client)["id"]
    r = client.post(f"/sessions/{sid}/turns", json={"text": "   "})
    assert r.status_code == 400
    assert len(client.get(f"/sessions/{sid}").json()["turns"]) == 1


def test_adapter_failure_maps_to_bad_gateway(client, fake_adapter):
    sid = _start(client)["id"]
    fake_adapter.fail_reply = AdapterError("http_status", status_code=500)

    r = client.post(f"/sessions/{sid}/turns", json={"text": "请稍等"})
    assert r.status_code == 502
    assert r.json()["detail"]["reason"] == "http_status"

    # the trainee turn survives the failure
    turns = client.get(f"/sessions/{sid}").json()["turns"]
    assert [t["role"] for t in turns] == ["customer", "trainee"]


def test_timeout_maps_to_gateway_timeout(client, fake_adapter):
    sid = _start(client)["id"]
    fake_adapter.fail_reply = AdapterError("timeout")
    r = client.post(f"/sessions/{sid}/turns", json={"text": "请稍等"})
    assert r.status_code == 504


def test_start_failure_creates_no_session(client, fake_adapter):
    fake_adapter.fail_reply = AdapterError("network")
    r = client.post("/sessions", json={"industry_id": "retail", "persona_id": "angry_elder"})
    assert r.status_code == 502
    assert client.app.state.orchestrators == {}


def test_evaluation_failure_keeps_session_open(client, fake_adapter):
    sid = _start(client)["id"]
    client.post(f"/sessions/{sid}/turns", json={"text": "您好"})
    fake_adapter.fail_evaluation = EvaluationError("bad json")

    r = client.post(f"/sessions/{sid}/finish")
    assert r.status_code == 502
    assert r.json()["detail"]["error"] == "evaluation_error"

    state = client.get(f"/sessions/{sid}").json()
    assert state["finished"] is False
    r = client.post(f"/sessions/{sid}/turns", json={"text": "我们继续"})
    assert r.status_code == 200


def test_reset_is_idempotent(client):
    sid = _start(client)["id"]
    assert client.delete(f"/sessions/{sid}").status_code == 204
    assert client.delete(f"/sessions/{sid}").status_code == 204
    assert client.get(f"/sessions/{sid}").status_code == 404


def test_cancel_without_inflight_call(client):
    sid = _start(client)["id"]
    assert client.post(f"/sessions/{sid}/cancel").json() == {"cancelled": False}


def test_unknown_session(client):
    assert client.get("/sessions/nope").status_code == 404
    assert client.post("/sessions/nope/finish").status_code == 404


def test_missing_credential_fails_at_startup():
    with pytest.raises(ConfigurationError):
        create_app(Settings(provider="gemini", gemini_api_key=None))


def test_cancel_aborts_pending_opening_call(fake_adapter):
    app = create_app(Settings(provider="ollama"), adapter=fake_adapter)
    body = {"industry_id": "retail", "persona_id": "angry_elder", "session_id": "s-1"}

    async def scenario_run():
        fake_adapter.gate = asyncio.Event()
        fake_adapter.entered = asyncio.Event()
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://trainer.test") as c:
            start = asyncio.create_task(c.post("/sessions", json=body))
            await fake_adapter.entered.wait()
            assert "s-1" in app.state.orchestrators
            cancelled = await c.post("/sessions/s-1/cancel")
            return cancelled, await start

    cancelled, start = asyncio.run(scenario_run())
    assert cancelled.json() == {"cancelled": True}
    assert start.status_code == 409
    assert start.json()["detail"]["error"] == "cancelled"
    assert app.state.orchestrators == {}


def test_client_chosen_session_id(client):
    session = _start(client, session_id="trainee-42")
    assert session["id"] == "trainee-42"
    assert client.get("/sessions/trainee-42").status_code == 200

    r = client.post("/sessions", json={"industry_id": "telecom", "persona_id": "busy_pro", "session_id": "trainee-42"})
    assert r.status_code == 409
    assert r.json()["detail"]["error"] == "session_exists"


def test_oldest_idle_sessions_are_evicted(fake_adapter):
    app = create_app(Settings(provider="ollama", max_sessions=2), adapter=fake_adapter)
    with TestClient(app) as c:
        ids = [_start(c)["id"] for _ in range(3)]

        assert list(app.state.orchestrators) == ids[1:]
        assert c.get(f"/sessions/{ids[0]}").status_code == 404
        assert c.get(f"/sessions/{ids[2]}").status_code == 200
