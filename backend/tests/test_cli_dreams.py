"""
Tests for the dreams CLI
"""
import json
import uuid

import httpx
import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cli import dreams as cli
from conftest import TUNNEL_ANALYSIS, TUNNEL_TEXT, moon_reply, ollama_reply
from dreammapper.core.database import build_engine, init_db
from dreammapper.services.dream_store import DreamStore


@pytest.fixture
def wired(monkeypatch, make_orchestrator, store):
    """Point the CLI at the in-memory store and mock transports"""
    def _wire(ollama_handler, moon_handler):
        orchestrator = make_orchestrator(ollama_handler, moon_handler)
        monkeypatch.setattr(cli, "init_db", lambda: None)
        monkeypatch.setattr(cli, "get_analysis_orchestrator", lambda: orchestrator)
        monkeypatch.setattr(cli, "get_dream_store", lambda: store)
        monkeypatch.setattr(cli, "get_ollama_client", lambda: orchestrator.inference)
        return orchestrator
    return _wire


def tunnel_llm(request):
    if request.url.path == "/api/tags":
        return httpx.Response(200, json={"models": [{"name": "test-model"}]})
    return ollama_reply(json.dumps(TUNNEL_ANALYSIS))


def test_parser_requires_text_for_analyze():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["analyze", "--title", "x"])


def test_no_command_prints_help(capsys):
    assert cli.main([]) == cli.EXIT_USAGE
    assert "usage" in capsys.readouterr().out


def test_analyze_prints_saved_record(wired, store, capsys):
    wired(tunnel_llm, lambda r: moon_reply("fullmoon"))

    code = cli.main(["analyze", "--title", "Tunnel", "--text", TUNNEL_TEXT, "--date", "2025-12-04"])

    assert code == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["moonPhase"] == "Full Moon"
    assert printed["sentiment"] == "hopeful"
    assert len(store.list_recent()) == 1


def test_analyze_failure_exit_code(wired, capsys):
    wired(lambda r: ollama_reply("no json here"), lambda r: moon_reply())
    assert cli.main(["analyze", "--text", TUNNEL_TEXT]) == cli.EXIT_PIPELINE_FAILED
    assert "malformed_inference_output" in capsys.readouterr().err


def test_analyze_bad_date_is_usage_error(wired):
    wired(tunnel_llm, lambda r: moon_reply())
    assert cli.main(["analyze", "--text", TUNNEL_TEXT, "--date", "someday"]) == cli.EXIT_USAGE


def test_list_show_delete(wired, store, capsys):
    wired(tunnel_llm, lambda r: moon_reply("newmoon"))
    cli.main(["analyze", "--title", "Tunnel", "--text", TUNNEL_TEXT])
    dream_id = json.loads(capsys.readouterr().out)["id"]

    assert cli.main(["list"]) == 0
    assert "Tunnel" in capsys.readouterr().out

    assert cli.main(["show", dream_id]) == 0
    assert json.loads(capsys.readouterr().out)["moonPhase"] == "New Moon"

    assert cli.main(["delete", dream_id]) == 0
    assert cli.main(["show", dream_id]) == 1


def test_purge_requires_confirmation(wired, store):
    wired(tunnel_llm, lambda r: moon_reply())
    cli.main(["analyze", "--text", TUNNEL_TEXT])

    assert cli.main(["purge"]) == cli.EXIT_USAGE
    assert len(store.list_recent()) == 1

    assert cli.main(["purge", "--yes"]) == 0
    assert store.list_recent() == []


def test_ping_models(wired, capsys):
    wired(tunnel_llm, lambda r: moon_reply())
    assert cli.main(["ping-models"]) == 0
    assert "test-model" in capsys.readouterr().out


def test_read_commands_create_tables_on_a_fresh_database(monkeypatch, capsys):
    engine = build_engine("sqlite://", poolclass=StaticPool)
    monkeypatch.setattr(cli, "init_db", lambda: init_db(engine))
    monkeypatch.setattr(cli, "get_dream_store", lambda: DreamStore(sessionmaker(bind=engine)))

    assert cli.main(["list"]) == 0
    assert "No saved dreams" in capsys.readouterr().out
    assert cli.main(["show", str(uuid.uuid4())]) == 1
    assert cli.main(["delete", str(uuid.uuid4())]) == 1
    assert cli.main(["purge", "--yes"]) == 0
    assert "Deleted 0 dreams" in capsys.readouterr().out
    engine.dispose()
