"""CLI tests using typer's CliRunner with stores and engine patched in."""

from datetime import timedelta

import pytest
from typer.testing import CliRunner

from ideagen import cli
from ideagen.schemas.models import utcnow

from conftest import OWNER

runner = CliRunner()


@pytest.fixture
def patched(monkeypatch, engine, session_store, idea_store):
    monkeypatch.setattr(cli, "_engine", lambda provider: engine)
    monkeypatch.setattr(cli, "get_session_store", lambda: session_store)
    monkeypatch.setattr(cli, "get_idea_store", lambda: idea_store)
    return engine


def test_generate_then_promote_with_zip(patched, session_store, idea_store, tmp_path):
    result = runner.invoke(cli.app, ["generate", "--email", "AI scheduling tool for dentists"])
    assert result.exit_code == 0, result.output
    assert "completed" in result.output

    [session] = session_store.list(OWNER)
    out_dir = tmp_path / "bundles"
    result = runner.invoke(cli.app, ["promote", session.id, "--zip", str(out_dir)])

    assert result.exit_code == 0, result.output
    assert "Saved idea" in result.output
    assert (out_dir / "ai-scheduling-for-dentists-complete-analysis.zip").exists()
    assert len(idea_store.list(OWNER)) == 1


def test_generate_without_input_exits_1(patched):
    result = runner.invoke(cli.app, ["generate"])
    assert result.exit_code == 1
    assert "Please provide at least email preview or content URL" in result.output


def test_promote_unknown_session_exits_1(patched):
    result = runner.invoke(cli.app, ["promote", "sess_missing"])
    assert result.exit_code == 1


def test_sessions_empty(patched):
    result = runner.invoke(cli.app, ["sessions"])
    assert result.exit_code == 0
    assert "No sessions." in result.output


def test_sweep_is_scoped_to_owner(patched, session_store):
    s = session_store.create("alice", "old idea", "")
    session_store.mark_failed(s.id, "alice", "boom")
    session_store._write(session_store.get(s.id, "alice").model_copy(update={"started_at": utcnow() - timedelta(days=5)}))

    result = runner.invoke(cli.app, ["sweep"])
    assert "Removed 0 session(s)." in result.output

    result = runner.invoke(cli.app, ["sweep", "--owner", "alice"])
    assert result.exit_code == 0, result.output
    assert "Removed 1 session(s)." in result.output


def test_regenerate_and_match(patched, monkeypatch, generator, session_store, idea_store):
    monkeypatch.setattr(cli, "generator_from_settings", lambda settings, provider=None: generator)
    monkeypatch.setattr(cli, "get_usage_store", lambda: None)
    runner.invoke(cli.app, ["generate", "--email", "AI scheduling tool for dentists"])
    [session] = session_store.list(OWNER)
    runner.invoke(cli.app, ["promote", session.id])
    [idea] = idea_store.list(OWNER)
    generator.calls.clear()

    result = runner.invoke(cli.app, ["regenerate", idea.id])
    assert result.exit_code == 0, result.output
    assert "Regenerated documents" in result.output
    assert generator.calls == ["generate_prd", "generate_gtm", "generate_marketing"]

    result = runner.invoke(cli.app, ["match", "--skill", "code", "--budget", "<$1K", "--time", "full-time"])
    assert result.exit_code == 0, result.output
    assert "65%" in result.output
    assert "Founder fit: technical_founder" in result.output


def test_match_rejects_unknown_budget(patched):
    result = runner.invoke(cli.app, ["match", "--skill", "code", "--budget", "lots", "--time", "full-time"])
    assert result.exit_code == 1
    assert "Unknown budget range" in result.output
