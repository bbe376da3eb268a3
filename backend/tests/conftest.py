"""
Pytest configuration and fixtures
"""
import os
import sys
from pathlib import Path

# Add backend directory to path for imports (main.py, cli/)
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Settings are cached on first use; pin test values before anything imports them
os.environ.setdefault("RUN_REAL_LLM_TESTS", "0")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_FILE_ENABLED"] = "false"
os.environ.setdefault("OLLAMA_URL", "http://ollama.test")
os.environ.setdefault("OLLAMA_MODEL", "test-model")

import httpx
import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dreammapper.core.database import Base, build_engine
from dreammapper.core.moon_client import MoonPhaseClient
from dreammapper.core.ollama_client import OllamaClient
from dreammapper.services.analysis_orchestrator import AnalysisOrchestrator
from dreammapper.services.dream_store import DreamStore

import dreammapper.models.dream  # noqa: F401  (register tables)

TUNNEL_TITLE = "Tunnel"
TUNNEL_TEXT = "I ran through a dark tunnel and came out into light."

TUNNEL_ANALYSIS = {
    "summary": "A passage from darkness into light.",
    "motifs": [
        {"symbol": "tunnel", "meaning": "a transition you are moving through"},
        {"symbol": "light", "meaning": "clarity or relief ahead"},
        {"symbol": "running", "meaning": "urgency to leave something behind"},
    ],
    "personalInterpretation": "You may be ending a difficult period.",
    "whatToDoNext": ["Write down what the tunnel reminds you of", "Notice what feels lighter this week"],
    "sentiment": "hopeful",
}


def ollama_reply(content: str, status_code: int = 200) -> httpx.Response:
    """Ollama /api/chat envelope wrapping the given message content"""
    return httpx.Response(
        status_code,
        json={
            "model": "test-model",
            "message": {"role": "assistant", "content": content},
            "done": True,
        },
    )


def moon_reply(phase: str = "fullmoon", status_code: int = 200) -> httpx.Response:
    """Astronomy API payload with a single moon object and day"""
    return httpx.Response(
        status_code,
        json={
            "version": 3,
            "locations": [
                {
                    "id": "187",
                    "geo": {"name": "Oslo"},
                    "astronomy": {
                        "objects": [
                            {
                                "name": "moon",
                                "days": [{"date": "2025-12-04", "moonphase": phase}],
                            }
                        ]
                    },
                }
            ],
        },
    )


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across threads for one test"""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def store(session_factory) -> DreamStore:
    return DreamStore(session_factory)


@pytest.fixture
def make_ollama():
    """Build an OllamaClient whose requests go to a handler instead of the network"""
    def _make(handler, timeout: float = 5.0) -> OllamaClient:
        return OllamaClient(
            base_url="http://ollama.test",
            model="test-model",
            temperature=0.2,
            timeout=timeout,
            transport=httpx.MockTransport(handler),
        )
    return _make


@pytest.fixture
def make_moon():
    """Build a MoonPhaseClient whose requests go to a handler instead of the network"""
    def _make(handler, timeout: float = 5.0, access_key: str = "test-access", secret_key: str = "test-secret") -> MoonPhaseClient:
        return MoonPhaseClient(
            api_url="https://astronomy.test/astronomy",
            access_key=access_key,
            secret_key=secret_key,
            default_place_id="norway/oslo",
            timeout=timeout,
            transport=httpx.MockTransport(handler),
        )
    return _make


@pytest.fixture
def make_orchestrator(make_ollama, make_moon, store):
    """Orchestrator wired to mock transports and the in-memory store"""
    def _make(ollama_handler, moon_handler, dream_store=None, ollama_kwargs=None, moon_kwargs=None, **kwargs) -> AnalysisOrchestrator:
        return AnalysisOrchestrator(
            inference=make_ollama(ollama_handler, **(ollama_kwargs or {})),
            moon=make_moon(moon_handler, **(moon_kwargs or {})),
            store=dream_store or store,
            **kwargs,
        )
    return _make


@pytest.fixture
def api_client(make_orchestrator, store):
    """
    FastAPI TestClient with pipeline dependencies overridden.

    Returns a factory taking the Ollama and moon handlers.
    """
    from fastapi.testclient import TestClient

    from dreammapper.core.moon_client import get_moon_client
    from dreammapper.core.ollama_client import get_ollama_client
    from dreammapper.services.analysis_orchestrator import get_analysis_orchestrator
    from dreammapper.services.dream_store import get_dream_store
    from main import app

    def _make(ollama_handler, moon_handler, **kwargs) -> TestClient:
        orchestrator = make_orchestrator(ollama_handler, moon_handler, **kwargs)
        app.dependency_overrides[get_analysis_orchestrator] = lambda: orchestrator
        app.dependency_overrides[get_dream_store] = lambda: orchestrator.store
        app.dependency_overrides[get_ollama_client] = lambda: orchestrator.inference
        app.dependency_overrides[get_moon_client] = lambda: orchestrator.moon
        client = TestClient(app)
        client.orchestrator = orchestrator
        return client

    yield _make
    app.dependency_overrides.clear()


def pytest_collection_modifyitems(config, items):
    """Skip real-LLM tests unless RUN_REAL_LLM_TESTS=1 is set in env."""
    if os.environ.get("RUN_REAL_LLM_TESTS", "0") == "1":
        return
    skip_marker = pytest.mark.skip(reason="Real LLM tests disabled. Set RUN_REAL_LLM_TESTS=1 to enable.")
    for item in items:
        if "real_llm" in item.keywords:
            item.add_marker(skip_marker)
