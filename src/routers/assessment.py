from fastapi import APIRouter, HTTPException, Depends, Request, status
from fastapi.responses import RedirectResponse
from typing import List
import logging

from services.harmonic_engine.models import HarmonicState
from src.assessment.errors import (
    AssessmentCompletedError,
    AssessmentError,
    AssessmentIncompleteError,
    AssessmentNotFoundError,
    AssessmentOwnershipError,
    DoubleFinalizationError,
    InvalidRatingError,
    NoActiveQuestionError,
    PersistenceError,
    ProfileNotFoundError,
    UnansweredQuestionError,
)
from src.assessment.results import get_results
from src.assessment.session import AssessmentSession, SessionState
from src.auth.dependencies import get_current_user
from src.auth.schemas import AuthenticatedUser
from src.db.repository import AssessmentRepository
from src.db.session import get_repository
from src.messaging.kafka_client import emit_assessment_completed
from src.schemas.assessment import (
    AnswerRequest,
    AssessmentResults,
    AssessmentSessionView,
    AssessmentSummary,
    QuestionView,
)

router = APIRouter()
logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = [
    (ProfileNotFoundError, status.HTTP_401_UNAUTHORIZED),
    (AssessmentNotFoundError, status.HTTP_404_NOT_FOUND),
    (AssessmentOwnershipError, status.HTTP_403_FORBIDDEN),
    (InvalidRatingError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (DoubleFinalizationError, status.HTTP_409_CONFLICT),
    (AssessmentCompletedError, status.HTTP_409_CONFLICT),
    (AssessmentIncompleteError, status.HTTP_409_CONFLICT),
    (UnansweredQuestionError, status.HTTP_409_CONFLICT),
    (NoActiveQuestionError, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def _http_error(exc: Exception) -> HTTPException:
    """Translates an assessment error into the HTTPException the client sees."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            code = getattr(exc, "code", "ASSESSMENT_ERROR")
            return HTTPException(status_code=status_code, detail={"code": code, "message": str(exc)})
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"code": "ASSESSMENT_ERROR", "message": str(exc)})


def _session_view(session: AssessmentSession, repository: AssessmentRepository) -> AssessmentSessionView:
    colors = {state.id: state.color for state in repository.list_harmonic_states()}
    question = session.current_question
    return AssessmentSessionView(
        assessment_id=session.assessment_id,
        state=session.state.value,
        current_question=QuestionView(
            id=question.id,
            question_text=question.question_text,
            harmonic_state=question.harmonic_state,
            color=colors.get(question.harmonic_state),
        ) if question else None,
        current_question_index=session.current_question_index,
        question_count=session.question_count,
        current_rating=session.current_rating,
        progress=session.progress,
        is_last_question=session.is_last_question,
        result=session.result,
    )


@router.get("/harmonic-states", response_model=List[HarmonicState])
def list_harmonic_states(repository: AssessmentRepository = Depends(get_repository)):
    try:
        return repository.list_harmonic_states()
    except PersistenceError as e:
        raise _http_error(e)


@router.post("/assessments", response_model=AssessmentSessionView, status_code=status.HTTP_201_CREATED)
def start_assessment(
    repository: AssessmentRepository = Depends(get_repository),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Creates a new assessment for the current user with a freshly shuffled question order."""
    try:
        with AssessmentSession(repository) as session:
            session.start(user.id)
            return _session_view(session, repository)
    except AssessmentError as e:
        logger.error(f"Could not start assessment for user {user.id}: {e}")
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error starting assessment: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/assessments", response_model=List[AssessmentSummary])
def list_assessments(
    repository: AssessmentRepository = Depends(get_repository),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """The current user's assessments, newest first."""
    try:
        return [
            AssessmentSummary(
                assessment_id=assessment.id,
                completed=assessment.completed,
                created_at=assessment.created_at.isoformat() if assessment.created_at else None,
                dominant_state=assessment.dominant_state,
                total_score=sum(int(v) for v in assessment.results.values()) if assessment.results else None,
            )
            for assessment in repository.list_assessments(user.id)
        ]
    except AssessmentError as e:
        logger.error(f"Could not list assessments for user {user.id}: {e}")
        raise _http_error(e)


@router.get("/assessments/{assessment_id}", response_model=AssessmentSessionView)
def read_assessment(
    assessment_id: str,
    request: Request,
    repository: AssessmentRepository = Depends(get_repository),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """
    Wizard view of an in-progress assessment. Completed assessments redirect
    to their results.
    """
    try:
        with AssessmentSession(repository) as session:
            session.load(assessment_id, user_id=user.id)
            return _session_view(session, repository)
    except AssessmentCompletedError:
        logger.info(f"Assessment {assessment_id} is completed, redirecting to results")
        return RedirectResponse(url=str(request.url_for("read_results", assessment_id=assessment_id)), status_code=status.HTTP_303_SEE_OTHER)
    except AssessmentError as e:
        logger.error(f"Could not load assessment {assessment_id}: {e}")
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error loading assessment {assessment_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.put("/assessments/{assessment_id}/responses", response_model=AssessmentSessionView)
def answer_question(
    assessment_id: str,
    request: AnswerRequest,
    repository: AssessmentRepository = Depends(get_repository),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Saves the rating for the assessment's current question."""
    try:
        with AssessmentSession(repository) as session:
            session.load(assessment_id, user_id=user.id)
            session.answer(request.rating)
            return _session_view(session, repository)
    except AssessmentError as e:
        logger.error(f"Could not save response for assessment {assessment_id}: {e}")
        raise _http_error(e)
    except InvalidRatingError as e:
        logger.error(f"Invalid rating for assessment {assessment_id}: {e}")
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error saving response for assessment {assessment_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post("/assessments/{assessment_id}/advance", response_model=AssessmentSessionView)
def advance_assessment(
    assessment_id: str,
    repository: AssessmentRepository = Depends(get_repository),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Moves to the next question, completing the assessment after the last one."""
    try:
        with AssessmentSession(repository) as session:
            try:
                session.load(assessment_id, user_id=user.id)
            except AssessmentCompletedError:
                raise DoubleFinalizationError(assessment_id)

            state = session.advance()
            view = _session_view(session, repository)
            if state is SessionState.COMPLETED:
                emit_assessment_completed(
                    assessment_id=assessment_id,
                    user_id=session.user_id,
                    dominant_state=session.result.dominant_state,
                    state_scores=session.result.state_scores,
                )
            return view
    except AssessmentError as e:
        logger.error(f"Could not advance assessment {assessment_id}: {e}")
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error advancing assessment {assessment_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post("/assessments/{assessment_id}/retreat", response_model=AssessmentSessionView)
def retreat_assessment(
    assessment_id: str,
    repository: AssessmentRepository = Depends(get_repository),
    user: AuthenticatedUser = Depends(get_current_user),
):
    try:
        with AssessmentSession(repository) as session:
            session.load(assessment_id, user_id=user.id)
            session.retreat()
            return _session_view(session, repository)
    except AssessmentError as e:
        logger.error(f"Could not go back in assessment {assessment_id}: {e}")
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error going back in assessment {assessment_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/assessments/{assessment_id}/results", response_model=AssessmentResults, name="read_results")
def read_results(
    assessment_id: str,
    repository: AssessmentRepository = Depends(get_repository),
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Score map, dominant state and per-state percentages of a completed assessment."""
    try:
        return get_results(repository, assessment_id, viewer=user)
    except AssessmentError as e:
        logger.error(f"Could not load results of assessment {assessment_id}: {e}")
        raise _http_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error loading results of assessment {assessment_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
