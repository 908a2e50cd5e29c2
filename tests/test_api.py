import json

import httpx

from ollama_chat.app.router import CHAT_FAILED, MODELS_FAILED, NO_RESPONSE, UPSTREAM_DOWN


def test_chat_roundtrip(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.Response(200, json={"response": "hello", "done": True})

    r = client.post("/chat", json={"message": "hi", "model": "llama3:latest"})

    assert r.status_code == 200
    assert r.json() == {"response": "hello"}
    assert len(fake_ollama.requests) == 1
    sent = fake_ollama.requests[0]
    assert str(sent.url) == "http://127.0.0.1:11434/api/generate"
    body = json.loads(sent.content)
    assert body == {
        "model": "llama3:latest",
        "prompt": "hi",
        "stream": False,
        "options": {"temperature": 0.7, "top_p": 0.9, "top_k": 40},
    }


def test_chat_uses_default_model(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.Response(200, json={"response": "ok"})

    r = client.post("/chat", json={"message": "hi"})

    assert r.status_code == 200
    assert json.loads(fake_ollama.requests[0].content)["model"] == "llama3:latest"


def test_chat_forwards_message_unchanged(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.Response(200, json={"response": "ok"})

    client.post("/chat", json={"message": "  line one\nline two  ", "model": "mistral:7b"})

    body = json.loads(fake_ollama.requests[0].content)
    assert body["prompt"] == "  line one\nline two  "
    assert body["model"] == "mistral:7b"


def test_chat_requires_message(client, fake_ollama):
    for payload in ({"message": ""}, {}, {"message": None}, {"message": "   "}):
        r = client.post("/chat", json=payload)
        assert r.status_code == 400
        assert r.json() == {"error": "Message is required"}
    assert fake_ollama.requests == []


def test_chat_rejects_malformed_body(client, fake_ollama):
    r = client.post("/chat", content="not json", headers={"Content-Type": "application/json"})

    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request body"}
    assert fake_ollama.requests == []


def test_chat_upstream_error_status(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.Response(404, json={"error": "model 'nope' not found"})

    r = client.post("/chat", json={"message": "hi", "model": "nope"})

    assert r.status_code == 500
    assert r.json() == {"error": CHAT_FAILED}


def test_chat_upstream_unreachable(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.ConnectError("connection refused")

    r = client.post("/chat", json={"message": "hi"})

    assert r.status_code == 500
    assert r.json() == {"error": CHAT_FAILED}


def test_chat_upstream_timeout(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.ReadTimeout("timed out")

    r = client.post("/chat", json={"message": "hi"})

    assert r.status_code == 500
    assert r.json() == {"error": CHAT_FAILED}


def test_chat_missing_response_field(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.Response(200, json={"done": True})

    r = client.post("/chat", json={"message": "hi"})

    assert r.status_code == 200
    assert r.json() == {"response": NO_RESPONSE}


def test_routes_also_served_under_api_prefix(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.Response(200, json={"response": "hello"})

    r = client.post("/api/chat", json={"message": "hi"})

    assert r.status_code == 200
    assert r.json() == {"response": "hello"}


def test_health_ok(client, fake_ollama):
    fake_ollama.routes["GET /api/version"] = httpx.Response(200, json={"version": "0.5.7"})

    r = client.get("/health")

    assert r.status_code == 200
    assert r.json() == {"status": "ok", "upstream": "http://127.0.0.1:11434"}


def test_health_upstream_down(client, fake_ollama):
    fake_ollama.routes["GET /api/version"] = httpx.ConnectError("connection refused")

    r = client.get("/health")

    assert r.status_code == 503
    assert r.json() == {"error": UPSTREAM_DOWN}


def test_models_listing(client, fake_ollama):
    fake_ollama.routes["GET /api/tags"] = httpx.Response(200, json={"models": [
        {
            "name": "llama3:latest",
            "model": "llama3:latest",
            "size": 4661224676,
            "digest": "365c0bd3c000",
            "modified_at": "2024-05-01T10:00:00.000000+02:00",
        },
        {"name": "mistral:7b", "size": 4113301824, "modified_at": "2024-04-12T08:30:00Z"},
    ]})

    r = client.get("/models")

    assert r.status_code == 200
    assert r.json() == {"models": [
        {"name": "llama3:latest", "size": 4661224676, "modified_at": "2024-05-01T10:00:00.000000+02:00"},
        {"name": "mistral:7b", "size": 4113301824, "modified_at": "2024-04-12T08:30:00Z"},
    ]}


def test_models_upstream_failure(client, fake_ollama):
    fake_ollama.routes["GET /api/tags"] = httpx.Response(500, text="internal error")

    r = client.get("/models")

    assert r.status_code == 500
    assert r.json() == {"error": MODELS_FAILED}


def test_chat_upstream_body_not_an_object(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.Response(200, json=[])

    r = client.post("/chat", json={"message": "hi"})

    assert r.status_code == 500
    assert r.json() == {"error": CHAT_FAILED}


def test_chat_upstream_response_not_text(client, fake_ollama):
    fake_ollama.routes["POST /api/generate"] = httpx.Response(200, json={"response": 42})

    r = client.post("/chat", json={"message": "hi"})

    assert r.status_code == 500
    assert r.json() == {"error": CHAT_FAILED}


def test_models_upstream_body_not_an_object(client, fake_ollama):
    fake_ollama.routes["GET /api/tags"] = httpx.Response(200, json=["llama3:latest"])

    r = client.get("/models")

    assert r.status_code == 500
    assert r.json() == {"error": MODELS_FAILED}


def test_models_listing_not_a_list(client, fake_ollama):
    fake_ollama.routes["GET /api/tags"] = httpx.Response(200, json={"models": {"name": "llama3:latest"}})

    r = client.get("/models")

    assert r.status_code == 500
    assert r.json() == {"error": MODELS_FAILED}
