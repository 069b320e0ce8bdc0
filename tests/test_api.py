"""HTTP API tests: FastAPI TestClient with stores and generator overridden."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from backend import deps
from backend.main import app
from ideagen.pipeline import GenerationEngine
from ideagen.schemas.models import ExtractedIdea, SessionStatus, utcnow

from conftest import OWNER, SAMPLE_IDEA


@pytest.fixture
def api_engine(session_store, generator, ok_fetcher, usage_store):
    return GenerationEngine(session_store, generator, fetcher=ok_fetcher, usage_store=usage_store)


@pytest.fixture
def client(api_engine, generator, session_store, idea_store, usage_store):
    app.dependency_overrides[deps.session_store_dep] = lambda: session_store
    app.dependency_overrides[deps.idea_store_dep] = lambda: idea_store
    app.dependency_overrides[deps.usage_store_dep] = lambda: usage_store
    app.dependency_overrides[deps.engine_dep] = lambda: api_engine
    app.dependency_overrides[deps.generator_dep] = lambda: generator
    yield TestClient(app)
    app.dependency_overrides.clear()


def _login(client, username="admin", password="changeme"):
    r = client.post("/api/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture
def auth(client):
    return _login(client)


def _generate(client, auth, **body):
    body.setdefault("email_preview", "AI scheduling tool for dentists")
    r = client.post("/api/generation-sessions", json=body, headers=auth)
    assert r.status_code == 201, r.text
    return r.json()


# --- Auth & health ---


def test_health_is_public(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_api_requires_token(client):
    assert client.get("/api/generation-sessions").status_code == 401
    r = client.get("/api/generation-sessions", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_login_rejects_bad_password(client):
    r = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
    assert r.status_code == 401


def test_me_and_logout(client, auth):
    assert client.get("/api/auth/me", headers=auth).json()["username"] == "admin"
    assert client.post("/api/auth/logout", headers=auth).status_code == 200
    assert client.get("/api/auth/me", headers=auth).status_code == 401


# --- Generation sessions ---


def test_start_runs_pipeline_in_background(client, auth, generator):
    started = _generate(client, auth)
    assert started["owner_id"] == OWNER
    assert started["message"]

    r = client.get(f"/api/generation-sessions/{started['id']}", headers=auth)
    session = r.json()
    assert session["status"] == "completed"
    assert session["current_step"] == 6
    assert session["extracted_idea"]["title"] == SAMPLE_IDEA["title"]
    assert session["message"] == "Complete! Documents ready."
    assert generator.calls == ["extract_idea", "generate_prd", "generate_gtm", "generate_marketing"]

    assert client.get("/api/generation-sessions/active", headers=auth).json() is None
    assert [s["id"] for s in client.get("/api/generation-sessions", headers=auth).json()] == [started["id"]]


def test_start_without_input_is_400(client, auth, session_store):
    r = client.post("/api/generation-sessions", json={"email_preview": "", "content_url": ""}, headers=auth)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "missing_input"
    assert session_store.list(OWNER) == []


def test_unfetchable_url_without_email_is_422(client, auth, api_engine, failing_fetcher):
    api_engine.fetcher = failing_fetcher
    r = client.post(
        "/api/generation-sessions",
        json={"email_preview": "", "content_url": "https://example.com/idea"},
        headers=auth,
    )
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "fetch_failed"


def test_resume_continues_from_checkpoint(client, auth, session_store, generator):
    s = session_store.create(OWNER, "AI scheduling tool for dentists", "")
    s = session_store.update(s.id, OWNER, {
        "extracted_idea": ExtractedIdea(**SAMPLE_IDEA),
        "prd_content": "# PRD",
        "status": SessionStatus.GENERATING_GTM,
        "current_step": 4,
    })
    active = client.get("/api/generation-sessions/active", headers=auth).json()
    assert active["id"] == s.id
    assert active["message"] == "Generating Go-to-Market Strategy..."

    r = client.post(f"/api/generation-sessions/{s.id}/resume", headers=auth)
    assert r.status_code == 202

    assert generator.calls == ["generate_gtm", "generate_marketing"]
    assert session_store.get(s.id, OWNER).status == SessionStatus.COMPLETED


def test_resume_completed_session_makes_no_calls(client, auth, generator):
    started = _generate(client, auth)
    generator.calls.clear()
    r = client.post(f"/api/generation-sessions/{started['id']}/resume", headers=auth)
    assert r.status_code == 202
    assert r.json()["status"] == "completed"
    assert generator.calls == []


def test_sessions_are_owner_scoped(client, auth):
    started = _generate(client, auth)
    alice = _login(client, "alice", "wonderland")
    assert client.get(f"/api/generation-sessions/{started['id']}", headers=alice).status_code == 404
    assert client.get("/api/generation-sessions", headers=alice).json() == []


def test_delete_and_sweep(client, auth):
    started = _generate(client, auth)
    assert client.post("/api/generation-sessions/sweep", headers=auth).json() == {"removed": 0}
    assert client.delete(f"/api/generation-sessions/{started['id']}", headers=auth).status_code == 204
    assert client.get(f"/api/generation-sessions/{started['id']}", headers=auth).status_code == 404


def test_sweep_only_touches_callers_sessions(client, auth, session_store):
    old = session_store.create("alice", "alice's idea", "")
    session_store.mark_failed(old.id, "alice", "boom")
    aged = session_store.get(old.id, "alice").model_copy(update={"started_at": utcnow() - timedelta(days=5)})
    session_store._write(aged)

    assert client.post("/api/generation-sessions/sweep", headers=auth).json() == {"removed": 0}
    assert session_store.get(old.id, "alice") is not None

    alice = _login(client, "alice", "wonderland")
    assert client.post("/api/generation-sessions/sweep", headers=alice).json() == {"removed": 1}
    assert session_store.get(old.id, "alice") is None


# --- Promotion, ideas & downloads ---


def test_promote_then_download(client, auth):
    started = _generate(client, auth)
    r = client.post(f"/api/generation-sessions/{started['id']}/promote", headers=auth)
    assert r.status_code == 200
    idea = r.json()
    assert idea["documents_generated"] is True

    ideas = client.get("/api/ideas", headers=auth, params={"search": "dentists"}).json()
    assert [i["id"] for i in ideas] == [idea["id"]]

    prd = client.get(f"/api/ideas/{idea['id']}/download/prd", headers=auth)
    assert prd.status_code == 200
    assert prd.headers["content-type"].startswith("text/markdown")
    assert "ai-scheduling-for-dentists-prd.md" in prd.headers["content-disposition"]
    assert prd.text == f"# PRD: {SAMPLE_IDEA['title']}"

    bundle = client.get(f"/api/ideas/{idea['id']}/download/zip", headers=auth)
    assert bundle.headers["content-type"] == "application/zip"
    assert "ai-scheduling-for-dentists-complete-analysis.zip" in bundle.headers["content-disposition"]

    assert client.get(f"/api/ideas/{idea['id']}/download/pdf", headers=auth).status_code == 400


def test_promote_unfinished_session_is_409(client, auth, session_store):
    s = session_store.create(OWNER, "preview", "")
    r = client.post(f"/api/generation-sessions/{s.id}/promote", headers=auth)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "session_not_ready"


def test_idea_patch_delete_and_csv(client, auth):
    started = _generate(client, auth)
    idea = client.post(f"/api/generation-sessions/{started['id']}/promote", headers=auth).json()

    r = client.patch(f"/api/ideas/{idea['id']}", json={"status": "building", "personal_notes": "MVP in May"}, headers=auth)
    assert r.status_code == 200
    assert r.json()["status"] == "building"

    export = client.get("/api/ideas/export.csv", headers=auth)
    assert export.headers["content-type"].startswith("text/csv")
    assert SAMPLE_IDEA["title"] in export.text

    assert client.delete(f"/api/ideas/{idea['id']}", headers=auth).status_code == 204
    assert client.get(f"/api/ideas/{idea['id']}", headers=auth).status_code == 404
    assert client.patch(f"/api/ideas/{idea['id']}", json={"title": "x"}, headers=auth).status_code == 404


def test_regenerate_idea_documents(client, auth, generator, usage_store):
    started = _generate(client, auth)
    idea = client.post(f"/api/generation-sessions/{started['id']}/promote", headers=auth).json()
    generator.calls.clear()

    r = client.post(f"/api/ideas/{idea['id']}/regenerate", headers=auth)

    assert r.status_code == 200, r.text
    assert r.json()["documents_generated"] is True
    assert generator.calls == ["generate_prd", "generate_gtm", "generate_marketing"]
    assert len([log for log in usage_store.list(OWNER) if log.idea_id == idea["id"]]) == 3
    assert client.post("/api/ideas/idea_missing/regenerate", headers=auth).status_code == 404


def test_regenerate_failure_is_502(client, auth, generator):
    started = _generate(client, auth)
    idea = client.post(f"/api/generation-sessions/{started['id']}/promote", headers=auth).json()
    generator.fail_on = {"generate_prd": RuntimeError("overloaded")}

    r = client.post(f"/api/ideas/{idea['id']}/regenerate", headers=auth)
    assert r.status_code == 502
    assert r.json()["detail"] == {"code": "generation_failed", "message": "overloaded"}


def test_founder_match(client, auth):
    started = _generate(client, auth)
    client.post(f"/api/generation-sessions/{started['id']}/promote", headers=auth)

    r = client.get("/api/ideas/match", params={"skills": "code,sales", "budget": "<$1K", "time": "full-time"}, headers=auth)
    assert r.status_code == 200, r.text
    [m] = r.json()
    assert m["idea"]["title"] == SAMPLE_IDEA["title"]
    assert m["match_score"] == 65
    assert "Founder fit: technical_founder" in m["reasons"]

    assert client.get("/api/ideas/match", params={"budget": "<$1K", "time": "full-time"}, headers=auth).status_code == 400
    r = client.get("/api/ideas/match", params={"skills": "code", "budget": "lots", "time": "full-time"}, headers=auth)
    assert r.status_code == 400


# --- Usage & balance ---


def test_usage_report_and_csv(client, auth):
    _generate(client, auth)
    report = client.get("/api/usage", headers=auth).json()
    assert len(report["logs"]) == 4
    assert report["by_operation"]["generate_prd"]["count"] == 1
    assert report["total_cost"] > 0

    export = client.get("/api/usage/export.csv", headers=auth)
    assert export.status_code == 200
    assert export.text.splitlines()[0].startswith("Date,Operation,Idea")
    assert len(export.text.splitlines()) == 5


def test_balance_set_and_read(client, auth):
    assert client.get("/api/usage/balance", headers=auth).json()["balance_not_set"] is True

    r = client.put("/api/usage/balance", json={"starting_balance_usd": 50.0}, headers=auth)
    assert r.status_code == 200
    assert r.json()["status"]["level"] == "healthy"

    _generate(client, auth)
    summary = client.get("/api/usage/balance", headers=auth).json()
    assert 0 < summary["total_spent_since_sync"] < 1
    assert summary["balance_usd"] == pytest.approx(50.0 - summary["total_spent_since_sync"])
    assert summary["low_balance_threshold"] == 10.0
