# src/assessment/session.py
# Wizard state for one user's pass through the questionnaire.

import enum
import logging
import random
from typing import Dict, List, Optional, Sequence

from services.harmonic_engine.models import CatalogQuestion, QuestionResponse, ScoreResult
from services.harmonic_engine.scorer import score_assessment, validate_rating
from src.assessment.errors import (
    AssessmentCompletedError,
    AssessmentError,
    AssessmentNotFoundError,
    AssessmentOwnershipError,
    DoubleFinalizationError,
    NoActiveQuestionError,
    ProfileNotFoundError,
    SessionDisposedError,
    UnansweredQuestionError,
)
from src.db.repository import AssessmentRepository

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def shuffle_questions(questions: Sequence[CatalogQuestion], rng: random.Random) -> List[CatalogQuestion]:
    """Returns a uniformly shuffled copy (random.shuffle is a Fisher-Yates shuffle)."""
    shuffled = list(questions)
    rng.shuffle(shuffled)
    return shuffled


class AssessmentSession:
    """
    Drives one assessment from the first question to its scored result.

    Lifecycle: construct, then either start() a new assessment or load() an
    existing one, and dispose() when done (also available as a context
    manager). The question order is shuffled once per assessment and stored
    with it, so reloading an in-progress assessment shows the same order.

    Every answer is written through the repository before the call returns.
    Failures surface as PersistenceError and leave the session unchanged.
    """

    def __init__(self, repository: AssessmentRepository, rng: Optional[random.Random] = None):
        self.repository = repository
        self.rng = rng or random.Random()
        self.state = SessionState.NOT_STARTED
        self.assessment_id: Optional[str] = None
        self.user_id: Optional[str] = None
        self.questions: List[CatalogQuestion] = []
        self.responses: Dict[str, QuestionResponse] = {}
        self.current_question_index = 0
        self.result: Optional[ScoreResult] = None
        self._disposed = False

    # --- Lifecycle ---

    def start(self, user_id: str) -> str:
        """Creates a new assessment for the user and returns its id."""
        self._ensure_not_started()

        if self.repository.get_profile(user_id) is None:
            logger.warning(f"Cannot start assessment: no profile for user {user_id}")
            raise ProfileNotFoundError(user_id)

        questions = self.repository.list_questions()
        assessment = self.repository.create_assessment(user_id)
        ordered = shuffle_questions(questions, self.rng)
        self.repository.set_question_order(assessment.id, [q.id for q in ordered])
        self.repository.set_cursor(assessment.id, 0)

        self.assessment_id = assessment.id
        self.user_id = user_id
        self.questions = ordered
        self.responses = {}
        self.current_question_index = 0
        self.state = SessionState.IN_PROGRESS
        logger.info(f"Started assessment {assessment.id} for user {user_id} with {len(ordered)} questions")
        return assessment.id

    def load(self, assessment_id: str, user_id: Optional[str] = None) -> "AssessmentSession":
        """
        Restores an in-progress assessment: its question order, prior responses
        and the saved cursor (first unanswered question when none is saved).

        Raises AssessmentCompletedError for completed assessments, which belong
        on the results view rather than in the wizard.
        """
        self._ensure_not_started()

        assessment = self.repository.get_assessment(assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)
        if user_id is not None and assessment.user_id != user_id:
            raise AssessmentOwnershipError(assessment_id)
        if assessment.completed:
            raise AssessmentCompletedError(assessment_id)

        catalog = self.repository.list_questions()
        ordered = self._restore_order(assessment.question_order, catalog)
        stored_order = [q.id for q in ordered]
        order_changed = stored_order != (assessment.question_order or [])
        stored_cursor = assessment.current_question_index
        cursor_question_id = self._question_at(assessment.question_order, stored_cursor)
        if order_changed:
            self.repository.set_question_order(assessment_id, stored_order)

        self.assessment_id = assessment_id
        self.user_id = assessment.user_id
        self.questions = ordered
        self.responses = {r.question_id: r for r in self.repository.list_responses(assessment_id)}
        self.current_question_index = self._restore_cursor(
            stored_cursor,
            cursor_question_id=cursor_question_id,
            order_changed=order_changed,
        )
        self.state = SessionState.IN_PROGRESS
        logger.info(
            f"Loaded assessment {assessment_id} at question {self.current_question_index + 1} "
            f"of {len(self.questions)} ({len(self.responses)} responses)"
        )
        return self

    def dispose(self) -> None:
        self._disposed = True
        self.questions = []
        self.responses = {}

    def __enter__(self) -> "AssessmentSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # --- Views ---

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[CatalogQuestion]:
        if self.state is not SessionState.IN_PROGRESS:
            return None
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def current_rating(self) -> Optional[int]:
        """Previously saved rating for the current question, for pre-filling the control."""
        question = self.current_question
        if question is None:
            return None
        response = self.responses.get(question.id)
        return response.score if response else None

    @property
    def progress(self) -> float:
        if not self.questions:
            return 0.0
        if self.state is SessionState.COMPLETED:
            return 100.0
        return (self.current_question_index + 1) / len(self.questions) * 100

    @property
    def is_last_question(self) -> bool:
        return bool(self.questions) and self.current_question_index == len(self.questions) - 1

    # --- Transitions ---

    def answer(self, rating: int) -> QuestionResponse:
        """Saves the rating for the current question, overwriting any earlier one."""
        self._ensure_active()
        validate_rating(rating)
        question = self.current_question
        if question is None:
            raise NoActiveQuestionError("There is no question to answer")

        response = self.repository.upsert_response(self.assessment_id, question.id, rating)
        self.responses[question.id] = response
        return response

    def advance(self) -> SessionState:
        """
        Moves to the next question, or scores and completes the assessment when
        the current question is the last one.
        """
        self._ensure_not_disposed()
        if self.state is SessionState.COMPLETED:
            raise DoubleFinalizationError(self.assessment_id)
        if self.state is SessionState.NOT_STARTED:
            raise NoActiveQuestionError("The session has not been started")

        question = self.current_question
        if question is None:
            raise NoActiveQuestionError("The assessment has no questions")
        if question.id not in self.responses:
            raise UnansweredQuestionError(question.id)

        if self.current_question_index < len(self.questions) - 1:
            self.repository.set_cursor(self.assessment_id, self.current_question_index + 1)
            self.current_question_index += 1
            return self.state

        self._finalize()
        return self.state

    def retreat(self) -> SessionState:
        self._ensure_active()
        if self.current_question_index > 0:
            self.repository.set_cursor(self.assessment_id, self.current_question_index - 1)
            self.current_question_index -= 1
        return self.state

    # --- Internals ---

    def _finalize(self) -> None:
        # Scored from the stored responses, in this session's question order
        stored = self.repository.list_responses(self.assessment_id)
        position = {q.id: i for i, q in enumerate(self.questions)}
        ordered = sorted(stored, key=lambda r: position.get(r.question_id, len(position)))

        result = score_assessment(self.questions, ordered)
        if not self.repository.finalize_assessment(self.assessment_id, result.state_scores, result.dominant_state):
            self.state = SessionState.COMPLETED
            raise DoubleFinalizationError(self.assessment_id)

        self.result = result
        self.responses = {r.question_id: r for r in stored}
        self.state = SessionState.COMPLETED
        logger.info(
            f"Completed assessment {self.assessment_id}: dominant state {result.dominant_state}, "
            f"scores {result.state_scores}"
        )

    def _restore_order(self, stored_order: Optional[List[str]], catalog: List[CatalogQuestion]) -> List[CatalogQuestion]:
        by_id = {q.id: q for q in catalog}
        if not stored_order:
            return shuffle_questions(catalog, self.rng)

        # questions deleted from the catalog drop out, new ones go to the end
        ordered = [by_id[qid] for qid in stored_order if qid in by_id]
        known = set(stored_order)
        added = [q for q in catalog if q.id not in known]
        return ordered + shuffle_questions(added, self.rng)

    def _restore_cursor(
        self,
        stored_index: Optional[int],
        cursor_question_id: Optional[str] = None,
        order_changed: bool = False,
    ) -> int:
        # Never past the first unanswered question. When the order was rebuilt
        # the cursor follows its question to its new position.
        first_unanswered = self._first_unanswered_index()
        if stored_index is None:
            return first_unanswered
        if order_changed:
            positions = {q.id: i for i, q in enumerate(self.questions)}
            if cursor_question_id not in positions:
                return first_unanswered
            stored_index = positions[cursor_question_id]
        if 0 <= stored_index <= first_unanswered:
            return stored_index
        return first_unanswered

    @staticmethod
    def _question_at(order: Optional[List[str]], index: Optional[int]) -> Optional[str]:
        if order and index is not None and 0 <= index < len(order):
            return order[index]
        return None

    def _first_unanswered_index(self) -> int:
        for index, question in enumerate(self.questions):
            if question.id not in self.responses:
                return index
        return max(len(self.questions) - 1, 0)

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise SessionDisposedError()

    def _ensure_not_started(self) -> None:
        self._ensure_not_disposed()
        if self.state is not SessionState.NOT_STARTED:
            raise AssessmentError(f"Session is already bound to assessment '{self.assessment_id}'")

    def _ensure_active(self) -> None:
        self._ensure_not_disposed()
        if self.state is SessionState.COMPLETED:
            raise AssessmentCompletedError(self.assessment_id)
        if self.state is SessionState.NOT_STARTED:
            raise NoActiveQuestionError("The session has not been started")
