# services/harmonic_engine/scorer.py
# Scoring and dominant-state resolution for the Emotional Dynamics Indicator.

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    MAX_RATING,
    MIN_RATING,
    CatalogQuestion,
    InvalidRatingError,
    QuestionResponse,
    ScoreResult,
    StateBreakdown,
)

logger = logging.getLogger(__name__)


def validate_rating(rating) -> int:
    """Returns the rating unchanged, or raises InvalidRatingError."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(rating)
    if rating < MIN_RATING or rating > MAX_RATING:
        raise InvalidRatingError(rating)
    return rating


def build_question_map(questions: Iterable[CatalogQuestion]) -> Dict[str, str]:
    """Maps question id -> harmonic state id."""
    return {q.id: q.harmonic_state for q in questions}


def calculate_state_scores(
    questions: Iterable[CatalogQuestion],
    responses: Sequence[QuestionResponse],
) -> Dict[str, int]:
    """
    Sums response scores per harmonic state.

    Responses are scanned in the order given. A state appears in the result only
    once a response contributes to it, so the dict's insertion order is the
    first-seen order of states. Responses to questions missing from the catalog
    are skipped.
    """
    question_map = build_question_map(questions)
    state_scores: Dict[str, int] = {}

    for response in responses:
        score = validate_rating(response.score)
        state_id = question_map.get(response.question_id)
        if state_id is None:
            logger.warning(f"Skipping response for unknown question '{response.question_id}'")
            continue
        state_scores[state_id] = state_scores.get(state_id, 0) + score

    return state_scores


def determine_dominant_state(state_scores: Dict[str, int]) -> Optional[str]:
    """
    Returns the state with the highest total, or None for an empty map.

    Ties go to the state seen first: a leader is only replaced by a strictly
    greater score.
    """
    dominant_state = None
    highest_score = None

    for state_id, score in state_scores.items():
        if highest_score is None or score > highest_score:
            highest_score = score
            dominant_state = state_id

    return dominant_state


def score_assessment(
    questions: Iterable[CatalogQuestion],
    responses: Sequence[QuestionResponse],
) -> ScoreResult:
    state_scores = calculate_state_scores(questions, responses)
    return ScoreResult(
        state_scores=state_scores,
        dominant_state=determine_dominant_state(state_scores),
        total_score=sum(state_scores.values()),
    )


def calculate_state_breakdown(
    state_scores: Dict[str, int],
    questions: Iterable[CatalogQuestion],
    responses: Sequence[QuestionResponse],
) -> List[StateBreakdown]:
    """
    Derives percentage and average score per state for presentation.

    percentage = 100 * state score / total score, average = state score /
    number of responses in that state. Both are 0 when their denominator is 0.
    Entries are ordered by score descending; equal scores keep first-seen order.
    """
    question_map = build_question_map(questions)
    response_counts: Dict[str, int] = {}
    for response in responses:
        state_id = question_map.get(response.question_id)
        if state_id is not None:
            response_counts[state_id] = response_counts.get(state_id, 0) + 1

    total_score = sum(state_scores.values())
    breakdown = []
    for state_id, score in state_scores.items():
        count = response_counts.get(state_id, 0)
        breakdown.append(StateBreakdown(
            state_id=state_id,
            score=score,
            percentage=(100.0 * score / total_score) if total_score else 0.0,
            average_score=(score / count) if count else 0.0,
            response_count=count,
        ))

    # sorted() is stable, so ties keep first-seen order
    return sorted(breakdown, key=lambda entry: entry.score, reverse=True)
