import pytest
from fastapi.testclient import TestClient

from conftest import FakeHintProvider, FakeScorer, InMemoryStorage
from translation_practice.api.dependencies import get_practice_service, get_review_manager
from translation_practice.main import app
from translation_practice.services.practice_service import PracticeService
from translation_practice.services.review_service import ReviewQueueManager
from translation_practice.utils.database import get_db


@pytest.fixture
def scorer():
    return FakeScorer()


@pytest.fixture
def client(exercises, session_factory, scorer):
    storage = InMemoryStorage()
    review_manager = ReviewQueueManager(storage, lambda ids: {i: exercises[i] for i in ids if i in exercises})
    service = PracticeService(
        storage=storage,
        review_manager=review_manager,
        scorer=scorer,
        hint_provider=FakeHintProvider(),
        exercise_loader=exercises.get,
    )

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_practice_service] = lambda: service
    app.dependency_overrides[get_review_manager] = lambda: review_manager
    app.dependency_overrides[get_db] = override_get_db
    # 不进入上下文管理器，lifespan 不会执行
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_start_unknown_exercise(client):
    response = client.post("/api/v1/sessions/missing/start")
    assert response.status_code == 404
    assert "error" in response.json()


def test_session_not_started(client):
    response = client.post("/api/v1/sessions/cats/submit", json={"user_input": "I like cats"})
    assert response.status_code == 404


def test_practice_flow(client, scorer):
    scorer.scores = [70, 100, 100]

    response = client.post("/api/v1/sessions/morning/start")
    assert response.status_code == 200
    state = response.json()
    assert state["mode"] == "practice"
    assert state["total_sentences"] == 2
    assert state["has_more_hints"] is True

    response = client.post("/api/v1/sessions/morning/submit", json={"user_input": "I get up six"})
    data = response.json()
    assert data["status"] == "needs_retry"
    assert data["accuracy_score"] == 70
    assert data["feedback"][0]["type"] == "grammar"
    assert "start_index" in data["feedback"][0]

    response = client.post("/api/v1/sessions/morning/hint", json={"user_input": "I get up"})
    assert response.json() == {"status": "shown", "hint": "提示1", "hints_remaining": 2, "error": None}

    data = client.post("/api/v1/sessions/morning/submit", json={"user_input": "I get up at six"}).json()
    assert data["auto_advanced"] is True
    assert data["session"]["current_index"] == 1

    data = client.post("/api/v1/sessions/morning/submit", json={"user_input": "I drink water"}).json()
    assert data["session_complete"] is True
    assert data["completion"]["final_score"] == 96
    assert data["completion"]["attempt_number"] == 1
    assert data["completion"]["points_earned"] == 50

    attempt = client.get("/api/v1/sessions/morning/attempt").json()
    assert attempt["accuracy_score"] == 96
    assert len(attempt["sentence_attempts"]) == 2

    queue = client.get("/api/v1/review/queue").json()
    assert queue["total"] == 1
    assert queue["items"][0]["exercise_id"] == "morning"
    assert queue["items"][0]["urgency"] == "medium"
    assert queue["items"][0]["incorrect_question_count"] == 1

    response = client.post("/api/v1/sessions/morning/quick-review")
    data = response.json()
    assert data["started"] is True
    assert data["session"]["mode"] == "quick_review"
    assert data["session"]["quick_review_progress"]["total"] == 1


def test_empty_submission_rejected(client):
    client.post("/api/v1/sessions/cats/start")
    response = client.post("/api/v1/sessions/cats/submit", json={"user_input": "  "})
    assert response.status_code == 400
    assert response.json()["error"] == "译文不能为空"


def test_advance_unfinished_sentence_rejected(client):
    client.post("/api/v1/sessions/cats/start")
    response = client.post("/api/v1/sessions/cats/advance")
    assert response.status_code == 400


def test_scoring_failure_is_retryable(client, scorer):
    from translation_practice.practice.errors import ScoringError
    scorer.scores = [ScoringError("服务超时")]

    client.post("/api/v1/sessions/cats/start")
    data = client.post("/api/v1/sessions/cats/submit", json={"user_input": "I like cats"}).json()

    assert data["status"] == "error"
    assert data["retryable"] is True
    assert data["user_input"] == "I like cats."
    assert data["session"]["sentences"][0]["incorrect_attempts"] == 0


def test_abandon_session(client):
    client.post("/api/v1/sessions/cats/start")
    assert client.delete("/api/v1/sessions/cats").status_code == 200
    assert client.delete("/api/v1/sessions/cats").status_code == 404


def test_review_endpoints_when_empty(client):
    assert client.get("/api/v1/review/queue?sort=difficulty").json() == {"items": [], "total": 0}
    assert client.get("/api/v1/review/check").json() == {"count": 0, "urgent_count": 0}
    stats = client.get("/api/v1/review/stats").json()
    assert stats["exercises_in_review"] == 0
    assert client.post("/api/v1/review/cache/invalidate").status_code == 200


def test_exercise_crud(client):
    response = client.post("/api/v1/exercises", json={
        "title": "Pets", "source_text": "我有一只狗。它很可爱。", "level": "beginner", "exercise_id": "pets",
    })
    assert response.status_code == 201
    assert response.json()["sentence_count"] == 2

    listing = client.get("/api/v1/exercises").json()
    assert [e["exercise_id"] for e in listing["exercises"]] == ["pets"]

    assert client.get("/api/v1/exercises/pets").json()["title"] == "Pets"
    assert client.get("/api/v1/exercises/unknown").status_code == 404

    response = client.post("/api/v1/exercises", json={"title": "Bad", "source_text": "没有标点"})
    assert response.status_code == 400

    assert client.delete("/api/v1/exercises/pets").status_code == 200
    assert client.get("/api/v1/exercises").json()["total"] == 0


def test_storage_outage_is_retryable(client):
    service = app.dependency_overrides[get_practice_service]()
    service.storage.fail = True

    response = client.post("/api/v1/sessions/morning/attempt/open")
    assert response.status_code == 503
    assert response.json()["retryable"] is True

    response = client.post("/api/v1/sessions/morning/quick-review")
    assert response.status_code == 503
