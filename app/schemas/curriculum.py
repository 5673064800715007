# ============================================================================
# Article & Assignment Schemas
# ============================================================================
from pydantic import Field
from typing import Optional, List, Dict
from datetime import datetime
from uuid import UUID

from app.schemas.responses import CamelModel
from app.schemas.user import UserSummary

# ==================== Articles ====================

class ArticleBase(CamelModel):
    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=255)
    year: int = Field(..., ge=1900, le=2100)
    learning_objectives: List[str] = Field(..., min_length=1, max_length=10)
    key_concepts: List[str] = Field(..., min_length=1, max_length=20)

class ArticleCreate(ArticleBase):
    content: str = Field(..., min_length=1)
    is_public: bool = True

class ArticleUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    author: Optional[str] = Field(None, min_length=1, max_length=255)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    content: Optional[str] = Field(None, min_length=1)
    learning_objectives: Optional[List[str]] = Field(None, min_length=1, max_length=10)
    key_concepts: Optional[List[str]] = Field(None, min_length=1, max_length=20)
    is_public: Optional[bool] = None

class ProcessTextRequest(CamelModel):
    text: str = Field(..., min_length=1)

class ArticleSummary(CamelModel):
    id: UUID
    title: str
    author: str
    year: int
    learning_objectives: List[str] = []
    key_concepts: List[str] = []

class ArticleResponse(ArticleSummary):
    content: str
    is_public: bool
    uploaded_by_id: UUID
    created_at: Optional[datetime] = None

# ==================== Assignments ====================

class RubricCriterion(CamelModel):
    name: str
    max_points: float = Field(..., gt=0)
    description: str = ""

class GradingRubric(CamelModel):
    criteria: List[RubricCriterion]

class AssignmentCreate(CamelModel):
    article_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    grading_rubric: Optional[GradingRubric] = None

class AssignmentUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    grading_rubric: Optional[GradingRubric] = None

class AssignmentResponse(CamelModel):
    id: UUID
    professor_id: UUID
    article_id: UUID
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    grading_rubric: Optional[GradingRubric] = None
    created_at: Optional[datetime] = None

class AssignmentWithArticle(AssignmentResponse):
    article: ArticleResponse

    @classmethod
    def build(cls, assignment, article) -> "AssignmentWithArticle":
        return cls(
            **AssignmentResponse.model_validate(assignment).model_dump(),
            article=ArticleResponse.model_validate(article),
        )

class AssignmentSummaryStats(CamelModel):
    total_students: int
    students_graded: int
    average_score: Optional[float] = None

class ProfessorAssignmentResponse(AssignmentWithArticle):
    stats: AssignmentSummaryStats

class ProgressGrade(CamelModel):
    overall_score: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None

class StudentProgress(CamelModel):
    chat_session_id: UUID
    current_stage: str
    user_message_count: int
    last_activity_at: Optional[datetime] = None
    has_grade: bool
    grade: Optional[ProgressGrade] = None

class StudentAssignmentResponse(CamelModel):
    id: UUID
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    article: ArticleSummary
    professor: UserSummary
    student_progress: Optional[StudentProgress] = None

class StudentDetail(CamelModel):
    student: UserSummary
    message_count: int
    current_stage: str
    last_activity: Optional[datetime] = None
    has_grade: bool
    score: Optional[float] = None

class AssignmentStatsResponse(CamelModel):
    total_students: int
    students_graded: int
    average_score: Optional[float] = None
    average_messages: float
    stage_distribution: Dict[str, int]
    student_details: List[StudentDetail]
