"""HTTP boundary tests using FastAPI's TestClient with an injected assistant."""

import pytest
from fastapi.testclient import TestClient

from olly.api.chat import get_assistant
from olly.knowledge.cache import KnowledgeCache
from olly.knowledge.retriever import KnowledgeRetriever
from olly.main import app
from olly.pipeline.guards import RateLimiter
from olly.pipeline.messages import message
from olly.pipeline.orchestrator import HotelAssistant

from conftest import HOTEL, FakeLLM, FakeSource


@pytest.fixture
def make_client():
    def factory(source, llm=None, max_requests=12):
        assistant = HotelAssistant(
            retriever=KnowledgeRetriever(source, KnowledgeCache(ttl_seconds=60)),
            llm=llm or FakeLLM(),
            rate_limiter=RateLimiter(window_seconds=20, max_requests=max_requests),
            default_hotel=HOTEL,
        )
        app.dependency_overrides[get_assistant] = lambda: assistant
        return TestClient(app)

    yield factory
    app.dependency_overrides.clear()


def test_health():
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert "model" in body
    assert "knowledge_backend" in body


def test_chat_deterministic_answer(make_client, source):
    client = make_client(source)
    response = client.post("/api/v1/chat", json={"question": "What time is check-in?", "lang": "en"})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["answer"] == "Check-in: 14:00\nCheck-out: 11:00"
    assert body["meta"]["renderer"] == "hotel_core"


def test_missing_question_is_400(make_client, source):
    client = make_client(source)
    assert client.post("/api/v1/chat", json={"question": "  "}).status_code == 400
    assert client.post("/api/v1/chat", json={}).status_code == 400


def test_rate_limit_is_429_per_forwarded_caller(make_client, source):
    client = make_client(source, max_requests=2)
    payload = {"question": "What time is check-in?", "lang": "en"}
    first = client.post("/api/v1/chat", json=payload, headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"})
    second = client.post("/api/v1/chat", json=payload, headers={"X-Forwarded-For": "10.0.0.1"})
    other = client.post("/api/v1/chat", json=payload, headers={"X-Forwarded-For": "10.0.0.2"})

    assert first.status_code == 200
    assert second.status_code == 429
    assert second.json()["answer"] == message("rate_limited", "en")
    assert other.status_code == 200


def test_knowledge_outage_is_500_with_apology(make_client, tables):
    client = make_client(FakeSource(tables, fail=True))
    response = client.post("/api/v1/chat", json={"question": "Is breakfast included?", "lang": "en"})
    assert response.status_code == 500
    assert response.json()["answer"] == message("server_error", "en")


def test_overload_is_200_with_please_wait(make_client, source):
    from olly.errors import LanguageModelOverloaded

    client = make_client(source, llm=FakeLLM(text_error=LanguageModelOverloaded("busy")))
    response = client.post("/api/v1/chat", json={"question": "Is breakfast included?", "lang": "en"})
    assert response.status_code == 200
    assert response.json()["ok"] is False
    assert response.json()["answer"] == message("rate_limited", "en")
