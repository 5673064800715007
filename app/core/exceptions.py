# ============================================================================
# Custom Exceptions
# ============================================================================
from typing import Optional

class TutorException(Exception):
    """Base exception for Eco Tutor"""
    def __init__(
        self,
        detail: str,
        status_code: int = 400,
        error_code: Optional[str] = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code or "TUTOR_ERROR"
        super().__init__(self.detail)

class ValidationError(TutorException):
    def __init__(self, message: str):
        super().__init__(
            detail=message,
            status_code=400,
            error_code="VALIDATION_ERROR"
        )

class NotFoundError(TutorException):
    def __init__(self, detail: str, error_code: str = "NOT_FOUND"):
        super().__init__(detail=detail, status_code=404, error_code=error_code)

class AssignmentNotFound(NotFoundError):
    def __init__(self, assignment_id: str):
        super().__init__(f"Assignment not found: {assignment_id}", "ASSIGNMENT_NOT_FOUND")

class ArticleNotFound(NotFoundError):
    def __init__(self, article_id: str):
        super().__init__(f"Article not found: {article_id}", "ARTICLE_NOT_FOUND")

class AccessDeniedError(TutorException):
    def __init__(self, message: str = "Access denied"):
        super().__init__(
            detail=message,
            status_code=403,
            error_code="ACCESS_DENIED"
        )

class ConflictError(TutorException):
    def __init__(self, message: str):
        super().__init__(
            detail=message,
            status_code=400,
            error_code="CONFLICT"
        )

class AIUnavailableError(TutorException):
    """The language model failed, timed out or returned nothing usable"""
    def __init__(self, message: str = "AI tutor is temporarily unavailable"):
        super().__init__(
            detail=message,
            status_code=502,
            error_code="AI_UNAVAILABLE"
        )
