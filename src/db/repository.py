import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from services.harmonic_engine.models import CatalogQuestion, HarmonicCatalog, HarmonicState, QuestionResponse
from src.assessment.errors import PersistenceError
from src.db.models import Assessment, HarmonicStateRecord, Profile, QuestionRecord, ResponseRecord

logger = logging.getLogger(__name__)


class AssessmentRepository:
    """
    Data store access for profiles, the harmonic catalog, assessments and responses.

    Every write commits before returning, so a caller never proceeds on an
    unconfirmed write. Any SQLAlchemy failure is rolled back and re-raised as
    PersistenceError.
    """

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, exc: Exception) -> PersistenceError:
        self.db.rollback()
        logger.error(f"Database error while trying to {action}: {exc}", exc_info=True)
        return PersistenceError(f"Could not {action}: {exc}", original_exception=exc)

    # --- Health ---

    def ping(self) -> int:
        try:
            return self.db.execute(text("SELECT 1")).scalar_one()
        except SQLAlchemyError as e:
            raise self._fail("reach the database", e) from e

    # --- Profiles ---

    def get_profile(self, user_id: str) -> Optional[Profile]:
        try:
            return self.db.get(Profile, user_id)
        except SQLAlchemyError as e:
            raise self._fail(f"load profile '{user_id}'", e) from e

    # --- Catalog ---

    def list_harmonic_states(self) -> List[HarmonicState]:
        try:
            rows = self.db.execute(select(HarmonicStateRecord).order_by(HarmonicStateRecord.id)).scalars().all()
        except SQLAlchemyError as e:
            raise self._fail("load harmonic states", e) from e
        return [
            HarmonicState(
                id=row.id,
                name=row.name,
                color=row.color,
                description=row.description,
                coaching_tips=row.coaching_tips,
            )
            for row in rows
        ]

    def list_questions(self) -> List[CatalogQuestion]:
        try:
            rows = self.db.execute(
                select(QuestionRecord).order_by(QuestionRecord.order, QuestionRecord.id)
            ).scalars().all()
        except SQLAlchemyError as e:
            raise self._fail("load questions", e) from e
        return [
            CatalogQuestion(
                id=row.id,
                question_text=row.question_text,
                harmonic_state=row.harmonic_state_id,
                order=row.order,
            )
            for row in rows
        ]

    def seed_catalog(self, catalog: HarmonicCatalog) -> Tuple[int, int]:
        """Inserts catalog states and questions that are not stored yet. Existing rows are left alone."""
        try:
            existing_states = set(self.db.execute(select(HarmonicStateRecord.id)).scalars().all())
            existing_questions = set(self.db.execute(select(QuestionRecord.id)).scalars().all())

            new_states = [s for s in catalog.states if s.id not in existing_states]
            for state in new_states:
                self.db.add(HarmonicStateRecord(**state.model_dump()))
            # states must exist before questions reference them
            self.db.flush()

            new_questions = [q for q in catalog.questions if q.id not in existing_questions]
            for question in new_questions:
                self.db.add(QuestionRecord(
                    id=question.id,
                    question_text=question.question_text,
                    harmonic_state_id=question.harmonic_state,
                    order=question.order,
                ))
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("seed the harmonic catalog", e) from e

        logger.info(f"Seeded harmonic catalog v{catalog.version}: {len(new_states)} states, {len(new_questions)} questions added")
        return len(new_states), len(new_questions)

    # --- Assessments ---

    def create_assessment(self, user_id: str) -> Assessment:
        assessment = Assessment(user_id=user_id, completed=False, current_question_index=0)
        try:
            self.db.add(assessment)
            self.db.commit()
            self.db.refresh(assessment)
        except SQLAlchemyError as e:
            raise self._fail(f"create an assessment for user '{user_id}'", e) from e
        logger.info(f"Created assessment {assessment.id} for user {user_id}")
        return assessment

    def get_assessment(self, assessment_id: str) -> Optional[Assessment]:
        try:
            assessment = self.db.get(Assessment, assessment_id)
            if assessment is not None:
                # pick up writes made through other sessions
                self.db.refresh(assessment)
            return assessment
        except SQLAlchemyError as e:
            raise self._fail(f"load assessment '{assessment_id}'", e) from e

    def list_assessments(self, user_id: str) -> List[Assessment]:
        """The user's assessments, newest first."""
        try:
            return list(self.db.execute(
                select(Assessment)
                .where(Assessment.user_id == user_id)
                .order_by(Assessment.created_at.desc(), Assessment.id)
            ).scalars().all())
        except SQLAlchemyError as e:
            raise self._fail(f"list assessments for user '{user_id}'", e) from e

    def set_question_order(self, assessment_id: str, question_ids: Sequence[str]) -> None:
        try:
            self.db.execute(
                update(Assessment)
                .where(Assessment.id == assessment_id)
                .values(question_order=list(question_ids))
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail(f"store the question order of assessment '{assessment_id}'", e) from e

    def set_cursor(self, assessment_id: str, question_index: int) -> None:
        try:
            self.db.execute(
                update(Assessment)
                .where(Assessment.id == assessment_id)
                .values(current_question_index=question_index)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail(f"store the position in assessment '{assessment_id}'", e) from e

    def finalize_assessment(self, assessment_id: str, results: Dict[str, int], dominant_state: Optional[str]) -> bool:
        """
        Marks the assessment completed with its results in one statement.

        The update only matches rows that are still incomplete, so it returns
        False when the assessment had already been finalized.
        """
        try:
            result = self.db.execute(
                update(Assessment)
                .where(Assessment.id == assessment_id, Assessment.completed.is_(False))
                .values(completed=True, dominant_state=dominant_state, results=dict(results))
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail(f"finalize assessment '{assessment_id}'", e) from e
        return result.rowcount == 1

    # --- Responses ---

    def upsert_response(self, assessment_id: str, question_id: str, score: int) -> QuestionResponse:
        """Creates or overwrites the single response for (assessment, question)."""
        try:
            try:
                self._write_response(assessment_id, question_id, score)
                self.db.commit()
            except IntegrityError:
                # A concurrent insert won the unique key; retry as an update
                self.db.rollback()
                self._write_response(assessment_id, question_id, score)
                self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail(f"save the response to '{question_id}' in assessment '{assessment_id}'", e) from e
        return QuestionResponse(question_id=question_id, score=score)

    def _write_response(self, assessment_id: str, question_id: str, score: int) -> None:
        existing = self.db.execute(
            select(ResponseRecord).where(
                ResponseRecord.assessment_id == assessment_id,
                ResponseRecord.question_id == question_id,
            )
        ).scalar_one_or_none()
        if existing is None:
            self.db.add(ResponseRecord(assessment_id=assessment_id, question_id=question_id, score=score))
        else:
            existing.score = score
        self.db.flush()

    def list_responses(self, assessment_id: str) -> List[QuestionResponse]:
        try:
            rows = self.db.execute(
                select(ResponseRecord)
                .where(ResponseRecord.assessment_id == assessment_id)
                .order_by(ResponseRecord.created_at, ResponseRecord.id)
            ).scalars().all()
        except SQLAlchemyError as e:
            raise self._fail(f"load responses for assessment '{assessment_id}'", e) from e
        return [QuestionResponse(question_id=row.question_id, score=row.score) for row in rows]
