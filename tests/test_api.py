"""Tests for the HTTP endpoints."""

from completion_repair.config import settings


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Completion Repair API"


def test_repair_fenced_completion(client):
    response = client.post("/repair", json={"content": 'Sure!\n```json\n{"a": 1, "b": [1, 2,],}\n```'})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"a": 1, "b": [1, 2]}
    assert "Removed trailing comma" in body["repairs"]
    assert [step["sanitizer"] for step in body["pipeline_steps"]][0] == "fix_json_structure_and_noise"


def test_repair_uses_property_hints(client):
    response = client.post(
        "/repair",
        json={
            "content": '{ti": "A fairly long title for the report"}',
            "property_name_mappings": {"ti": "title"},
        },
    )
    assert response.json()["data"] == {"title": "A fairly long title for the report"}


def test_repair_plain_text_fails(client):
    response = client.post("/repair", json={"content": "I cannot answer that."})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert "appears to be plain text" in body["error"]


def test_repair_missing_content_rejected(client):
    response = client.post("/repair", json={"resource": "x"})
    assert response.status_code == 422
    assert response.json()["error"] == "Validation error"


def test_classify_empty_text(client):
    response = client.post("/repair/text", json={"content": "  "})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "invalid"
    assert body["error"] == "LLM returned empty TEXT response"


def test_classify_text(client):
    response = client.post("/repair/text", json={"content": "hi", "model_key": "m1", "resource": "doc.md"})
    body = response.json()
    assert body["status"] == "completed"
    assert body["generated"] == "hi"
    assert body["model_key"] == "m1"
    assert body["context"] == {"resource": "doc.md"}


def test_classify_non_string_content(client):
    response = client.post("/repair/text", json={"content": 5})
    assert response.status_code == 422
    assert response.json()["error"] == "Bad response content"


def test_request_id_header(client):
    response = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    generated = client.get("/health").headers["X-Request-ID"]
    assert generated and generated != "abc123"


def test_oversized_completion_rejected(client, monkeypatch):
    monkeypatch.setattr(settings, "max_content_chars", 10)
    for path in ("/repair", "/repair/text"):
        response = client.post(path, json={"content": '{"a": "more than ten characters"}'})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation error"
        assert "the limit is 10" in body["detail"]


def test_completion_at_size_limit_accepted(client, monkeypatch):
    monkeypatch.setattr(settings, "max_content_chars", 8)
    response = client.post("/repair", json={"content": '{"a": 1}'})
    assert response.status_code == 200
    assert response.json()["data"] == {"a": 1}
