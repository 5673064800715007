# ============================================================================
# Chat Schemas
# ============================================================================
from pydantic import Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.schemas.responses import CamelModel
from app.schemas.user import UserSummary
from app.schemas.curriculum import AssignmentWithArticle
from app.services.tutor.stages import LearningStage

class SourceResponse(CamelModel):
    uri: str
    title: str = ""

class ChatMessageResponse(CamelModel):
    id: UUID
    session_id: UUID
    sender: str
    text: str
    ordinal: int
    sources: Optional[List[SourceResponse]] = None
    created_at: Optional[datetime] = None

class RubricScore(CamelModel):
    criterion: str
    score: float = Field(..., ge=0)
    max_points: float = Field(..., gt=0)

class GradeRequest(CamelModel):
    overall_score: Optional[float] = Field(None, ge=0)
    rubric_scores: Optional[List[RubricScore]] = None
    feedback: Optional[str] = Field(None, max_length=10000)

class GradeResponse(CamelModel):
    id: UUID
    session_id: UUID
    professor_id: UUID
    overall_score: Optional[float] = None
    rubric_scores: Optional[List[RubricScore]] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None

class ChatSessionResponse(CamelModel):
    id: UUID
    student_id: UUID
    assignment_id: UUID
    current_stage: LearningStage
    user_message_count: int
    started_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    messages: List[ChatMessageResponse]
    assignment: AssignmentWithArticle
    grade: Optional[GradeResponse] = None

    @classmethod
    def from_view(cls, view, **extra):
        session = view.session
        return cls(
            id=session.id,
            student_id=session.student_id,
            assignment_id=session.assignment_id,
            current_stage=session.current_stage,
            user_message_count=session.user_message_count,
            started_at=session.started_at,
            last_activity_at=session.last_activity_at,
            messages=[ChatMessageResponse.model_validate(m) for m in view.messages],
            assignment=AssignmentWithArticle.build(view.assignment, view.article),
            grade=GradeResponse.model_validate(view.grade) if view.grade is not None else None,
            **extra,
        )

class TranscriptResponse(ChatSessionResponse):
    student: UserSummary

class SendMessageRequest(CamelModel):
    # Length limits are enforced by the session controller
    chat_session_id: UUID
    text: str

class SendMessageResponse(CamelModel):
    user_message: ChatMessageResponse
    ai_message: ChatMessageResponse
    new_stage: LearningStage
    stage_advanced: bool = False
