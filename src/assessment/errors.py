# src/assessment/errors.py
# Error taxonomy for assessment sessions. The HTTP layer branches on these types.

from services.harmonic_engine.models import InvalidRatingError


class AssessmentError(Exception):
    """Base class for assessment errors."""
    code = "ASSESSMENT_ERROR"

    def __init__(self, message: str = "Assessment error occurred"):
        self.message = message
        super().__init__(message)


class ProfileNotFoundError(AssessmentError):
    """The user has no profile row; they must re-authenticate."""
    code = "PROFILE_NOT_FOUND"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User profile not found for '{user_id}'. Please log out and back in.")


class AssessmentNotFoundError(AssessmentError):
    code = "ASSESSMENT_NOT_FOUND"

    def __init__(self, assessment_id: str):
        self.assessment_id = assessment_id
        super().__init__(f"Assessment '{assessment_id}' not found")


class AssessmentOwnershipError(AssessmentError):
    code = "ASSESSMENT_FORBIDDEN"

    def __init__(self, assessment_id: str):
        self.assessment_id = assessment_id
        super().__init__(f"Assessment '{assessment_id}' belongs to another user")


class AssessmentCompletedError(AssessmentError):
    """Raised when wizard navigation targets a completed assessment; show results instead."""
    code = "ASSESSMENT_COMPLETED"

    def __init__(self, assessment_id: str):
        self.assessment_id = assessment_id
        super().__init__(f"Assessment '{assessment_id}' is already completed")


class AssessmentIncompleteError(AssessmentError):
    """Results were requested before the assessment was finalized."""
    code = "ASSESSMENT_INCOMPLETE"

    def __init__(self, assessment_id: str):
        self.assessment_id = assessment_id
        super().__init__(f"Assessment '{assessment_id}' has not been completed yet")


class NoActiveQuestionError(AssessmentError):
    code = "NO_ACTIVE_QUESTION"


class UnansweredQuestionError(AssessmentError):
    code = "UNANSWERED_QUESTION"

    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"Question '{question_id}' must be answered before continuing")


class DoubleFinalizationError(AssessmentError):
    """A completed assessment is never scored a second time."""
    code = "DOUBLE_FINALIZATION"

    def __init__(self, assessment_id: str):
        self.assessment_id = assessment_id
        super().__init__(f"Assessment '{assessment_id}' has already been finalized")


class PersistenceError(AssessmentError):
    """Wraps a data store failure. Recoverable: the same call may be retried."""
    code = "PERSISTENCE_ERROR"

    def __init__(self, message: str, original_exception: Exception | None = None):
        self.original_exception = original_exception
        super().__init__(message)


class SessionDisposedError(AssessmentError):
    code = "SESSION_DISPOSED"

    def __init__(self):
        super().__init__("Assessment session has been disposed")


__all__ = [
    "AssessmentError",
    "AssessmentCompletedError",
    "AssessmentIncompleteError",
    "AssessmentNotFoundError",
    "AssessmentOwnershipError",
    "DoubleFinalizationError",
    "InvalidRatingError",
    "NoActiveQuestionError",
    "PersistenceError",
    "ProfileNotFoundError",
    "SessionDisposedError",
    "UnansweredQuestionError",
]
