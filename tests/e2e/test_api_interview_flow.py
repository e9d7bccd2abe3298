import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.deps import get_assistant, get_interviews
from api.errors import install_error_handlers
from api.routes import router
from services.assistant import AssistantService
from services.context_store import ContextStore
from services.interviews import InterviewService

HEADERS = {"X-User-Id": "user-1"}


@pytest.fixture
def client(fake_models, queue):
    contexts = ContextStore()
    app = FastAPI()
    app.include_router(router)
    install_error_handlers(app)
    app.dependency_overrides[get_interviews] = lambda: InterviewService(queue, contexts)
    app.dependency_overrides[get_assistant] = lambda: AssistantService(contexts)
    return TestClient(app)


def _start(client, n=5):
    res = client.post(
        "/api/interviews",
        json={"type": "technical", "difficulty": "mid", "numQuestions": n, "technology": ["python"]},
        headers=HEADERS,
    )
    assert res.status_code == 201, res.text
    return res.json()


def test_full_interview_flow(client, dispatcher):
    session = _start(client)
    sid = session["sessionId"]
    assert len(session["questions"]) == 5
    assert "expectedKeyPoints" not in session["questions"][0]

    answer_ids = []
    for question in session["questions"]:
        res = client.post(
            f"/api/interviews/{sid}/answers",
            json={"questionId": question["questionId"], "answerText": "Cache reads and paginate.", "duration": 40},
            headers=HEADERS,
        )
        assert res.status_code == 202, res.text
        answer_ids.append(res.json()["answerId"])

    pending = client.get(f"/api/interviews/{sid}/answers/{answer_ids[0]}/status", headers=HEADERS).json()
    assert pending["state"] == "processing"
    assert pending["retryAfterS"] == 5.0

    dispatcher.run_all()
    scored = client.get(f"/api/interviews/{sid}/answers/{answer_ids[0]}/status", headers=HEADERS).json()
    assert scored["state"] == "completed"
    assert scored["result"]["score"] == 7.5

    res = client.post(f"/api/interviews/{sid}/complete", headers=HEADERS)
    assert res.status_code == 200
    assert res.json()["status"] == "completed"
    assert client.get(f"/api/interviews/{sid}/feedback-status", headers=HEADERS).json()["state"] == "processing"

    dispatcher.run_all()
    status = client.get(f"/api/interviews/{sid}/feedback-status", headers=HEADERS).json()
    assert status["state"] == "completed"
    assert status["result"]["overallScore"] == 72

    detail = client.get(f"/api/interviews/{sid}", headers=HEADERS).json()
    assert detail["currentQuestionIndex"] == 5
    assert all(a["analyzed"] for a in detail["answers"])

    again = client.post(f"/api/interviews/{sid}/complete", headers=HEADERS)
    assert again.status_code == 400
    assert again.json()["detail"] == "Session is already completed."


def test_history_and_analytics(client):
    _start(client)
    history = client.get("/api/interviews?limit=5", headers=HEADERS).json()
    assert history["total"] == 1
    assert history["sessions"][0]["technology"] == ["python"]
    analytics = client.get("/api/interviews/analytics", headers=HEADERS).json()
    assert analytics["total_sessions"] == 1


def test_quota_and_validation_errors(client):
    bad = client.post("/api/interviews", json={"type": "technical", "difficulty": "mid", "numQuestions": 3}, headers=HEADERS)
    assert bad.status_code == 422
    for _ in range(3):
        _start(client)
    denied = client.post(
        "/api/interviews", json={"type": "technical", "difficulty": "mid", "numQuestions": 5}, headers=HEADERS
    )
    assert denied.status_code == 403
    assert "Monthly limit" in denied.json()["detail"]
    usage = client.get("/api/usage", headers=HEADERS).json()
    assert usage["usage"]["mock_interviews"] == {"used": 3, "limit": 3}


def test_missing_user_header(client):
    assert client.get("/api/interviews").status_code == 401


def test_other_user_gets_404(client):
    sid = _start(client)["sessionId"]
    res = client.get(f"/api/interviews/{sid}", headers={"X-User-Id": "someone-else"})
    assert res.status_code == 404
    assert res.json()["path"].endswith(f"/api/interviews/{sid}")


def test_pause_resume_and_index(client):
    sid = _start(client)["sessionId"]
    assert client.post(f"/api/interviews/{sid}/pause", headers=HEADERS).json()["status"] == "paused"
    assert client.post(f"/api/interviews/{sid}/pause", headers=HEADERS).status_code == 400
    assert client.post(f"/api/interviews/{sid}/resume", headers=HEADERS).json()["status"] == "active"
    moved = client.put(f"/api/interviews/{sid}/question-index", json={"index": 2}, headers=HEADERS)
    assert moved.json()["currentQuestionIndex"] == 2
    assert client.put(f"/api/interviews/{sid}/question-index", json={"index": 9}, headers=HEADERS).status_code == 400
    assert client.post(f"/api/interviews/{sid}/abandon", headers=HEADERS).json()["status"] == "abandoned"


def test_assistant_keeps_conversation(client):
    first = client.post(
        "/api/assistant/answers",
        json={"question": "Tell me about a time you resolved a conflict.", "variations": 2},
        headers=HEADERS,
    )
    assert first.status_code == 200, first.text
    body = first.json()
    assert len(body["answers"]) == 2
    assert body["answers"][0]["star"]["situation"] == "s"
    assert len(body["answers"][0]["followUps"]) >= 2

    second = client.post(
        "/api/assistant/answers",
        json={"question": "Tell me more about that", "contextId": body["contextId"]},
        headers=HEADERS,
    ).json()
    assert second["contextId"] == body["contextId"]
    assert second["isFollowUp"] is True


def test_user_settings_update(client):
    res = client.patch("/api/users/me", json={"language": "ru"}, headers=HEADERS)
    assert res.status_code == 200
    assert res.json()["plan"] == "free"


def test_plan_cannot_be_self_assigned(client):
    for _ in range(3):
        _start(client)
    res = client.patch("/api/users/me", json={"plan": "elite"}, headers=HEADERS)
    assert res.status_code == 422
    usage = client.get("/api/usage", headers=HEADERS).json()
    assert usage["plan"] == "free"
    assert usage["usage"]["mock_interviews"] == {"used": 3, "limit": 3}
    denied = client.post(
        "/api/interviews", json={"type": "technical", "difficulty": "mid", "numQuestions": 5}, headers=HEADERS
    )
    assert denied.status_code == 403
