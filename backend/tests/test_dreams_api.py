"""
Tests for saved dream, model and moon diagnostic routes
"""
import json
import uuid

import httpx

from conftest import (TUNNEL_ANALYSIS, TUNNEL_TEXT, moon_reply, ollama_reply)


def tunnel_llm(request):
    if request.url.path == "/api/tags":
        return httpx.Response(200, json={"models": [{"name": "test-model"}]})
    return ollama_reply(json.dumps(TUNNEL_ANALYSIS))


def new_moon(request):
    return moon_reply("newmoon")


def submit(client, title="t"):
    response = client.post("/api/analyzeDream", json={"title": title, "text": TUNNEL_TEXT})
    assert response.status_code == 200
    return response.json()


def test_get_and_delete_dream(api_client):
    client = api_client(tunnel_llm, new_moon)
    created = submit(client, "Tunnel")

    fetched = client.get(f"/api/dreams/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "Tunnel"
    assert fetched.json()["moonPhase"] == "New Moon"

    deleted = client.delete(f"/api/dreams/{created['id']}")
    assert deleted.status_code == 204
    assert client.get(f"/api/dreams/{created['id']}").status_code == 404


def test_unknown_dream_is_404(api_client):
    client = api_client(tunnel_llm, new_moon)
    response = client.get(f"/api/dreams/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json()["error"] == "dream_not_found"
    assert client.delete(f"/api/dreams/{uuid.uuid4()}").status_code == 404


def test_invalid_dream_id_is_400(api_client):
    assert api_client(tunnel_llm, new_moon).get("/api/dreams/not-a-uuid").status_code == 400


def test_list_limit_and_delete_all(api_client):
    client = api_client(tunnel_llm, new_moon)
    for title in ("a", "b", "c"):
        submit(client, title)

    assert len(client.get("/api/dreams").json()) == 3
    assert len(client.get("/api/dreams", params={"limit": 2}).json()) == 2

    response = client.delete("/api/dreams")
    assert response.json() == {"deleted": 3}
    assert client.get("/api/dreams").json() == []


def test_models_route_lists_installed_models(api_client):
    response = api_client(tunnel_llm, new_moon).get("/api/models")
    assert response.status_code == 200
    body = response.json()
    assert body["reachable"] is True
    assert body["models"] == ["test-model"]
    assert body["configuredModel"] == "test-model"


def test_models_route_reports_unreachable_backend(api_client):
    def down(request):
        raise httpx.ConnectError("refused", request=request)

    body = api_client(down, new_moon).get("/api/models").json()
    assert body["reachable"] is False
    assert body["models"] == []


def test_moon_phase_route(api_client):
    response = api_client(tunnel_llm, lambda r: moon_reply("waxingcrescent")).get(
        "/api/moon-phase", params={"date": "2025-12-04", "placeId": "norway/oslo"}
    )
    assert response.status_code == 200
    assert response.json() == {"rawCode": "waxingcrescent", "moonPhase": "Waxing Crescent", "moonGlyph": "🌒"}


def test_moon_phase_route_bad_date_is_400(api_client):
    response = api_client(tunnel_llm, new_moon).get("/api/moon-phase", params={"date": "soon"})
    assert response.status_code == 400


def test_health_and_root(api_client):
    client = api_client(tunnel_llm, new_moon)
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/api").json()["status"] == "running"


def test_metrics_exposes_pipeline_counters(api_client):
    client = api_client(tunnel_llm, new_moon)
    submit(client)
    text = client.get("/metrics").text
    assert "dream_analyses_total" in text
    assert "llm_requests_total" in text
