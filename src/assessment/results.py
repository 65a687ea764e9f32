# src/assessment/results.py
# Results view for completed assessments.

import logging
from typing import Optional

from config.settings import cache_settings
from services.harmonic_engine.scorer import calculate_state_breakdown
from src.assessment.errors import (
    AssessmentIncompleteError,
    AssessmentNotFoundError,
    AssessmentOwnershipError,
)
from src.auth.schemas import AuthenticatedUser, Role
from src.db.cache import cache_get_json, cache_set_json
from src.db.models import Profile
from src.db.repository import AssessmentRepository
from src.schemas.assessment import AssessmentResults, StateBreakdownView

logger = logging.getLogger(__name__)


def results_cache_key(assessment_id: str) -> str:
    return f"results:{assessment_id}"


def build_results(repository: AssessmentRepository, assessment_id: str) -> AssessmentResults:
    """Assembles the results payload from the stored score map and responses."""
    assessment = repository.get_assessment(assessment_id)
    if assessment is None:
        raise AssessmentNotFoundError(assessment_id)
    if not assessment.completed:
        raise AssessmentIncompleteError(assessment_id)

    states = {state.id: state for state in repository.list_harmonic_states()}
    questions = repository.list_questions()
    responses = repository.list_responses(assessment_id)
    state_scores = {k: int(v) for k, v in (assessment.results or {}).items()}

    breakdown = [
        StateBreakdownView(
            **entry.model_dump(),
            name=states[entry.state_id].name if entry.state_id in states else None,
            color=states[entry.state_id].color if entry.state_id in states else None,
        )
        for entry in calculate_state_breakdown(state_scores, questions, responses)
    ]

    return AssessmentResults(
        assessment_id=assessment.id,
        user_id=assessment.user_id,
        created_at=assessment.created_at.isoformat() if assessment.created_at else None,
        dominant_state=states.get(assessment.dominant_state) if assessment.dominant_state else None,
        results=state_scores,
        total_score=sum(state_scores.values()),
        breakdown=breakdown,
    )


def can_view_results(viewer: AuthenticatedUser, owner: Optional[Profile], coach: Optional[Profile] = None) -> bool:
    """
    Owners and admins see any result. Coaches see their own clients'.
    Trainers and partners see clients linked to them directly or through
    one of their coaches (``coach`` is the owner's coach profile).
    """
    if viewer.role is Role.ADMIN:
        return True
    if owner is None:
        return False
    if owner.id == viewer.id:
        return True
    if viewer.role in (Role.COACH, Role.TRAINER) and owner.coach_id == viewer.id:
        return True
    if viewer.role in (Role.TRAINER, Role.PARTNER):
        if owner.trainer_id == viewer.id:
            return True
        return coach is not None and coach.id == owner.coach_id and coach.trainer_id == viewer.id
    return False


def get_results(
    repository: AssessmentRepository,
    assessment_id: str,
    viewer: Optional[AuthenticatedUser] = None,
) -> AssessmentResults:
    """
    Returns the results of a completed assessment, served from Redis when cached.

    Completed assessments never change, so entries only expire by TTL.
    """
    key = results_cache_key(assessment_id)
    cached = cache_get_json(key)
    if cached is not None:
        results = AssessmentResults.model_validate(cached)
    else:
        results = build_results(repository, assessment_id)
        cache_set_json(key, results.model_dump(), expire_seconds=cache_settings.results_ttl_seconds)

    if viewer is not None and viewer.id != results.user_id:
        owner = repository.get_profile(results.user_id)
        coach = repository.get_profile(owner.coach_id) if owner is not None and owner.coach_id else None
        if not can_view_results(viewer, owner, coach):
            logger.warning(f"User {viewer.id} ({viewer.role.value}) denied results of assessment {assessment_id}")
            raise AssessmentOwnershipError(assessment_id)
    return results
