from typing import Dict, List, Optional
from pydantic import BaseModel, StrictInt

from services.harmonic_engine.models import HarmonicState, ScoreResult


class QuestionView(BaseModel):
    id: str
    question_text: str
    harmonic_state: str
    color: Optional[str] = None  # harmonic state color, used for the rating control


class AssessmentSessionView(BaseModel):
    assessment_id: str
    state: str
    current_question: Optional[QuestionView]
    current_question_index: int
    question_count: int
    current_rating: Optional[int]
    progress: float
    is_last_question: bool
    result: Optional[ScoreResult] = None  # set once the assessment completes


class AnswerRequest(BaseModel):
    rating: StrictInt  # JSON integers only; "5" and true are rejected


class AssessmentSummary(BaseModel):
    """One row of the user's assessment history."""
    assessment_id: str
    completed: bool
    created_at: Optional[str] = None
    dominant_state: Optional[str] = None  # harmonic state id, set once completed
    total_score: Optional[int] = None


class StateBreakdownView(BaseModel):
    state_id: str
    name: Optional[str] = None
    color: Optional[str] = None
    score: int
    percentage: float
    average_score: float
    response_count: int


class AssessmentResults(BaseModel):
    assessment_id: str
    user_id: str
    created_at: Optional[str] = None
    dominant_state: Optional[HarmonicState]
    results: Dict[str, int]
    total_score: int
    breakdown: List[StateBreakdownView]
