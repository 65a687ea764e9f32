from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from services.harmonic_engine.models import QuestionResponse
from src.assessment.errors import PersistenceError
from src.auth.schemas import Role
from src.db.models import Assessment, ResponseRecord
from src.db.repository import AssessmentRepository
from tests.fixtures.sample_users import COACH, RESPONDENT


def test_ping(repository):
    assert repository.ping() == 1


def test_get_profile(repository):
    profile = repository.get_profile(RESPONDENT.id)
    assert profile.email == RESPONDENT.email
    assert profile.role is Role.RESPONDENT
    assert profile.coach_id == COACH.id
    assert repository.get_profile("nobody") is None


def test_catalog_round_trip(repository, catalog):
    states = repository.list_harmonic_states()
    assert {s.id for s in states} == {"fear", "enthusiasm", "boredom"}
    enthusiasm = next(s for s in states if s.id == "enthusiasm")
    assert enthusiasm.color == "#FFB300"
    assert enthusiasm.coaching_tips == "Channel the energy into one goal."

    questions = repository.list_questions()
    assert [q.id for q in questions] == [q.id for q in catalog.questions]
    assert questions[0].harmonic_state == "fear"


def test_seed_catalog_is_idempotent(repository, catalog):
    assert repository.seed_catalog(catalog) == (0, 0)
    assert len(repository.list_questions()) == 5


def test_seed_catalog_adds_only_new_entries(repository, catalog):
    extended = catalog.model_copy(deep=True)
    extended.questions.append(extended.questions[0].model_copy(update={"id": "fear-3", "order": 6}))
    assert repository.seed_catalog(extended) == (0, 1)
    assert repository.list_questions()[-1].id == "fear-3"


def test_create_and_get_assessment(repository):
    assessment = repository.create_assessment(RESPONDENT.id)
    loaded = repository.get_assessment(assessment.id)

    assert loaded.user_id == RESPONDENT.id
    assert loaded.completed is False
    assert loaded.created_at is not None
    assert loaded.current_question_index == 0
    assert repository.get_assessment("missing") is None


def test_list_assessments_newest_first(repository, db_session):
    older = repository.create_assessment(RESPONDENT.id)
    newer = repository.create_assessment(RESPONDENT.id)
    repository.create_assessment(COACH.id)
    older.created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    newer.created_at = datetime(2024, 3, 1, tzinfo=timezone.utc)
    db_session.commit()

    assert [a.id for a in repository.list_assessments(RESPONDENT.id)] == [newer.id, older.id]
    assert repository.list_assessments("nobody") == []


def test_question_order_and_cursor(repository):
    assessment = repository.create_assessment(RESPONDENT.id)
    repository.set_question_order(assessment.id, ["fear-2", "fear-1"])
    repository.set_cursor(assessment.id, 1)

    loaded = repository.get_assessment(assessment.id)
    assert loaded.question_order == ["fear-2", "fear-1"]
    assert loaded.current_question_index == 1


def test_finalize_assessment_only_once(repository):
    assessment = repository.create_assessment(RESPONDENT.id)

    assert repository.finalize_assessment(assessment.id, {"fear": 9}, "fear") is True
    assert repository.finalize_assessment(assessment.id, {"boredom": 1}, "boredom") is False

    loaded = repository.get_assessment(assessment.id)
    assert loaded.completed is True
    assert loaded.results == {"fear": 9}
    assert loaded.dominant_state == "fear"


def test_finalize_unknown_assessment(repository):
    assert repository.finalize_assessment("missing", {}, None) is False


def test_upsert_response_overwrites(repository, db_session):
    assessment = repository.create_assessment(RESPONDENT.id)
    repository.upsert_response(assessment.id, "fear-1", 2)
    repository.upsert_response(assessment.id, "fear-1", 7)
    repository.upsert_response(assessment.id, "fear-2", 4)

    rows = db_session.execute(
        select(ResponseRecord).where(ResponseRecord.assessment_id == assessment.id)
    ).scalars().all()
    assert len(rows) == 2
    assert repository.list_responses(assessment.id) == [
        QuestionResponse(question_id="fear-1", score=7),
        QuestionResponse(question_id="fear-2", score=4),
    ]


def test_responses_scoped_to_assessment(repository):
    first = repository.create_assessment(RESPONDENT.id)
    second = repository.create_assessment(RESPONDENT.id)
    repository.upsert_response(first.id, "fear-1", 3)

    assert repository.list_responses(second.id) == []


def test_database_errors_become_persistence_errors():
    db = MagicMock(spec=Session)
    db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    repository = AssessmentRepository(db)

    with pytest.raises(PersistenceError) as exc_info:
        repository.list_questions()

    assert isinstance(exc_info.value.original_exception, OperationalError)
    db.rollback.assert_called_once()


def test_failed_write_is_rolled_back():
    db = MagicMock(spec=Session)
    db.commit.side_effect = OperationalError("UPDATE", {}, Exception("disk I/O error"))
    repository = AssessmentRepository(db)

    with pytest.raises(PersistenceError, match="finalize assessment 'a-1'"):
        repository.finalize_assessment("a-1", {"fear": 3}, "fear")
    db.rollback.assert_called_once()


def test_assessment_model_defaults(db_session):
    assessment = Assessment(user_id=RESPONDENT.id, completed=False)
    db_session.add(assessment)
    db_session.commit()
    assert len(assessment.id) == 36
    assert assessment.question_order is None
    assert assessment.current_question_index is None
