from pydantic import BaseModel, Field
from typing import List, Dict, Optional

MIN_RATING = 1
MAX_RATING = 7


class HarmonicState(BaseModel):
    id: str
    name: str
    color: str = Field(..., pattern=r'^#[0-9A-Fa-f]{6}$')
    description: str
    coaching_tips: Optional[str] = None


class CatalogQuestion(BaseModel):
    id: str
    question_text: str
    harmonic_state: str  # HarmonicState.id
    order: int = 0


class HarmonicCatalog(BaseModel):
    version: str
    states: List[HarmonicState]
    questions: List[CatalogQuestion]


class QuestionResponse(BaseModel):
    question_id: str
    score: int


class StateBreakdown(BaseModel):
    state_id: str
    score: int
    percentage: float
    average_score: float
    response_count: int


class ScoreResult(BaseModel):
    state_scores: Dict[str, int]
    dominant_state: Optional[str]
    total_score: int


# Custom Error Classes
class InvalidRatingError(ValueError):
    """Raised for a rating outside the Likert range."""
    code = "INVALID_RATING"

    def __init__(self, rating, message: Optional[str] = None):
        self.rating = rating
        super().__init__(message or f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}, got {rating!r}")
