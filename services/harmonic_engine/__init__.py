from .models import (
    CatalogQuestion,
    HarmonicCatalog,
    HarmonicState,
    InvalidRatingError,
    QuestionResponse,
    ScoreResult,
    StateBreakdown,
)
from .scorer import (
    calculate_state_breakdown,
    calculate_state_scores,
    determine_dominant_state,
    score_assessment,
)

__all__ = [
    "CatalogQuestion",
    "HarmonicCatalog",
    "HarmonicState",
    "InvalidRatingError",
    "QuestionResponse",
    "ScoreResult",
    "StateBreakdown",
    "calculate_state_breakdown",
    "calculate_state_scores",
    "determine_dominant_state",
    "score_assessment",
]
