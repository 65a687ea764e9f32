import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import MagicMock, patch

from src.assessment.errors import PersistenceError
from src.auth.dependencies import get_current_user
from src.auth.jwt import create_access_token
from src.db.repository import AssessmentRepository
from src.db.session import get_repository
from src.routers.assessment import router as assessment_router
from tests.fixtures.sample_users import COACH, NO_PROFILE, OTHER_RESPONDENT, PARTNER, RESPONDENT, TRAINER

# Create a FastAPI app instance and include the router for testing
app = FastAPI()
app.include_router(assessment_router, prefix="/api/v1")

client = TestClient(app)


@pytest.fixture
def api(repository, no_cache):
    """Routes requests to the seeded test database as RESPONDENT; call api(user) to switch users."""
    current = {"user": RESPONDENT}
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_current_user] = lambda: current["user"]

    def use(user):
        current["user"] = user

    with patch("src.routers.assessment.emit_assessment_completed") as mock_emit:
        use.emit = mock_emit
        yield use
    app.dependency_overrides.clear()


def start() -> dict:
    response = client.post("/api/v1/assessments")
    assert response.status_code == 201
    return response.json()


def answer(assessment_id: str, rating: int):
    return client.put(f"/api/v1/assessments/{assessment_id}/responses", json={"rating": rating})


def advance(assessment_id: str):
    return client.post(f"/api/v1/assessments/{assessment_id}/advance")


def complete(assessment_id: str, rating: int = 4) -> dict:
    body = None
    for _ in range(5):
        assert answer(assessment_id, rating).status_code == 200
        response = advance(assessment_id)
        assert response.status_code == 200
        body = response.json()
    return body


# --- Catalog ---

def test_list_harmonic_states(api):
    response = client.get("/api/v1/harmonic-states")
    assert response.status_code == 200
    states = response.json()
    assert [s["id"] for s in states] == ["boredom", "enthusiasm", "fear"]
    assert states[1]["color"] == "#FFB300"


def test_list_harmonic_states_store_unavailable():
    repo = MagicMock(spec=AssessmentRepository)
    repo.list_harmonic_states.side_effect = PersistenceError("database unavailable")
    app.dependency_overrides[get_repository] = lambda: repo
    response = client.get("/api/v1/harmonic-states")
    app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "PERSISTENCE_ERROR"


# --- Wizard ---

def test_start_assessment(api):
    body = start()
    assert body["state"] == "in_progress"
    assert body["question_count"] == 5
    assert body["current_question_index"] == 0
    assert body["current_rating"] is None
    assert body["progress"] == pytest.approx(20.0)
    assert body["current_question"]["color"].startswith("#")
    assert body["result"] is None


def test_start_assessment_without_profile(api):
    api(NO_PROFILE)
    response = client.post("/api/v1/assessments")
    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "PROFILE_NOT_FOUND"


def test_list_own_assessments(api):
    finished = start()["assessment_id"]
    complete(finished, rating=4)
    in_progress = start()["assessment_id"]
    api(OTHER_RESPONDENT)
    start()
    api(RESPONDENT)

    response = client.get("/api/v1/assessments")
    assert response.status_code == 200
    rows = {row["assessment_id"]: row for row in response.json()}
    assert set(rows) == {finished, in_progress}
    assert rows[finished]["completed"] is True
    assert rows[finished]["total_score"] == 20
    assert rows[finished]["dominant_state"] in ("fear", "enthusiasm")
    assert rows[in_progress]["completed"] is False
    assert rows[in_progress]["dominant_state"] is None
    assert rows[in_progress]["total_score"] is None


def test_list_assessments_empty(api):
    api(COACH)
    response = client.get("/api/v1/assessments")
    assert response.status_code == 200
    assert response.json() == []


def test_read_assessment(api):
    started = start()
    response = client.get(f"/api/v1/assessments/{started['assessment_id']}")
    assert response.status_code == 200
    assert response.json()["current_question"] == started["current_question"]


def test_read_assessment_not_found(api):
    response = client.get("/api/v1/assessments/missing")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "ASSESSMENT_NOT_FOUND"


def test_read_someone_elses_assessment(api):
    started = start()
    api(OTHER_RESPONDENT)
    response = client.get(f"/api/v1/assessments/{started['assessment_id']}")
    assert response.status_code == 403


def test_answer_and_overwrite(api):
    assessment_id = start()["assessment_id"]
    assert answer(assessment_id, 3).json()["current_rating"] == 3
    response = answer(assessment_id, 6)
    assert response.status_code == 200
    assert response.json()["current_rating"] == 6


@pytest.mark.parametrize("rating", [0, 8])
def test_answer_out_of_range(api, rating):
    assessment_id = start()["assessment_id"]
    response = answer(assessment_id, rating)
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "INVALID_RATING"


def test_answer_not_a_number(api):
    assessment_id = start()["assessment_id"]
    response = client.put(f"/api/v1/assessments/{assessment_id}/responses", json={"rating": "often"})
    assert response.status_code == 422


@pytest.mark.parametrize("rating", [True, "5", 4.5])
def test_answer_rating_must_be_a_json_integer(api, rating):
    assessment_id = start()["assessment_id"]
    response = client.put(f"/api/v1/assessments/{assessment_id}/responses", json={"rating": rating})
    assert response.status_code == 422

    reloaded = client.get(f"/api/v1/assessments/{assessment_id}").json()
    assert reloaded["current_rating"] is None


def test_advance_requires_answer(api):
    assessment_id = start()["assessment_id"]
    response = advance(assessment_id)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "UNANSWERED_QUESTION"


def test_retreat_survives_reload(api):
    assessment_id = start()["assessment_id"]
    answer(assessment_id, 5)
    assert advance(assessment_id).json()["current_question_index"] == 1

    response = client.post(f"/api/v1/assessments/{assessment_id}/retreat")
    assert response.status_code == 200
    assert response.json()["current_question_index"] == 0

    reloaded = client.get(f"/api/v1/assessments/{assessment_id}").json()
    assert reloaded["current_question_index"] == 0
    assert reloaded["current_rating"] == 5


def test_reload_after_first_answer_then_advance(api):
    assessment_id = start()["assessment_id"]
    assert answer(assessment_id, 5).status_code == 200

    reloaded = client.get(f"/api/v1/assessments/{assessment_id}").json()
    assert reloaded["current_question_index"] == 0
    assert reloaded["current_rating"] == 5

    response = advance(assessment_id)
    assert response.status_code == 200
    assert response.json()["current_question_index"] == 1


def test_complete_assessment(api):
    assessment_id = start()["assessment_id"]
    body = complete(assessment_id, rating=4)

    assert body["state"] == "completed"
    assert body["progress"] == 100.0
    assert body["current_question"] is None
    assert body["result"]["total_score"] == 20
    assert body["result"]["state_scores"] == {"fear": 8, "enthusiasm": 8, "boredom": 4}

    api.emit.assert_called_once()
    kwargs = api.emit.call_args.kwargs
    assert kwargs["assessment_id"] == assessment_id
    assert kwargs["user_id"] == RESPONDENT.id
    assert kwargs["dominant_state"] == body["result"]["dominant_state"]


def test_completed_assessment_redirects_to_results(api):
    assessment_id = start()["assessment_id"]
    complete(assessment_id)

    response = client.get(f"/api/v1/assessments/{assessment_id}", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"].endswith(f"/api/v1/assessments/{assessment_id}/results")


def test_advance_completed_assessment(api):
    assessment_id = start()["assessment_id"]
    complete(assessment_id)

    response = advance(assessment_id)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "DOUBLE_FINALIZATION"
    api.emit.assert_called_once()


def test_answer_completed_assessment(api):
    assessment_id = start()["assessment_id"]
    complete(assessment_id)
    response = answer(assessment_id, 2)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "ASSESSMENT_COMPLETED"


def test_unexpected_error_returns_500(api):
    repo = MagicMock(spec=AssessmentRepository)
    repo.get_profile.side_effect = RuntimeError("boom")
    app.dependency_overrides[get_repository] = lambda: repo

    response = client.post("/api/v1/assessments")
    assert response.status_code == 500
    assert response.json()["detail"] == "Internal Server Error"


# --- Results ---

def test_read_results(api):
    assessment_id = start()["assessment_id"]
    complete(assessment_id, rating=3)

    response = client.get(f"/api/v1/assessments/{assessment_id}/results")
    assert response.status_code == 200
    body = response.json()
    assert body["assessment_id"] == assessment_id
    assert body["total_score"] == 15
    assert body["results"] == {"fear": 6, "enthusiasm": 6, "boredom": 3}
    assert body["dominant_state"]["id"] in ("fear", "enthusiasm")
    assert len(body["breakdown"]) == 3
    assert sum(entry["percentage"] for entry in body["breakdown"]) == pytest.approx(100.0)


def test_read_results_before_completion(api):
    assessment_id = start()["assessment_id"]
    response = client.get(f"/api/v1/assessments/{assessment_id}/results")
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "ASSESSMENT_INCOMPLETE"


def test_coach_and_partner_read_client_results(api):
    assessment_id = start()["assessment_id"]
    complete(assessment_id)

    api(COACH)
    assert client.get(f"/api/v1/assessments/{assessment_id}/results").status_code == 200
    api(PARTNER)
    assert client.get(f"/api/v1/assessments/{assessment_id}/results").status_code == 200
    api(TRAINER)
    assert client.get(f"/api/v1/assessments/{assessment_id}/results").status_code == 403
    api(OTHER_RESPONDENT)
    assert client.get(f"/api/v1/assessments/{assessment_id}/results").status_code == 403


# --- Authentication ---

def test_requests_without_token_are_rejected(repository):
    app.dependency_overrides[get_repository] = lambda: repository
    response = client.post("/api/v1/assessments")
    app.dependency_overrides.clear()

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "AUTH_001"


def test_bearer_token_identifies_user(repository):
    app.dependency_overrides[get_repository] = lambda: repository
    token = create_access_token(user_id=RESPONDENT.id, role=RESPONDENT.role)
    response = client.post("/api/v1/assessments", headers={"Authorization": f"Bearer {token}"})
    app.dependency_overrides.clear()

    assert response.status_code == 201
    assert repository.get_assessment(response.json()["assessment_id"]).user_id == RESPONDENT.id
