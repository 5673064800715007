# ============================================================================
# Tutoring Chat Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.core.database import get_db
from app.api.deps import get_current_student, get_current_professor, get_session_controller
from app.models.user import User
from app.schemas.chat import (
    ChatSessionResponse,
    ChatMessageResponse,
    GradeRequest,
    GradeResponse,
    SendMessageRequest,
    SendMessageResponse,
    TranscriptResponse,
)
from app.schemas.user import UserSummary
from app.services.tutor import TutoringSessionController, GradingService

router = APIRouter(prefix="/chat", tags=["chat"])

@router.get("/session/{assignment_id}", response_model=ChatSessionResponse)
async def get_or_create_chat_session(
    assignment_id: UUID,
    student: User = Depends(get_current_student),
    controller: TutoringSessionController = Depends(get_session_controller)
):
    """Get the student's chat session for an assignment, creating it on first visit"""
    view = await controller.get_or_create_session(student.id, assignment_id)
    return ChatSessionResponse.from_view(view)

@router.post("/message", response_model=SendMessageResponse)
async def send_message(
    request: SendMessageRequest,
    student: User = Depends(get_current_student),
    controller: TutoringSessionController = Depends(get_session_controller)
):
    """Submit a student turn and get the tutor's reply"""
    result = await controller.submit_user_turn(
        session_id=request.chat_session_id,
        student_id=student.id,
        text=request.text
    )

    return SendMessageResponse(
        user_message=ChatMessageResponse.model_validate(result.user_message),
        ai_message=ChatMessageResponse.model_validate(result.ai_message),
        new_stage=result.stage,
        stage_advanced=result.stage_advanced
    )

@router.get("/sessions/{session_id}", response_model=TranscriptResponse)
async def get_transcript(
    session_id: UUID,
    professor: User = Depends(get_current_professor),
    controller: TutoringSessionController = Depends(get_session_controller),
    db: AsyncSession = Depends(get_db)
):
    """Full transcript for the professor who owns the assignment"""
    view = await controller.get_transcript(session_id, professor.id)
    student = await db.get(User, view.session.student_id)
    return TranscriptResponse.from_view(view, student=UserSummary.model_validate(student))

@router.put("/sessions/{session_id}/grade", response_model=GradeResponse)
async def grade_session(
    session_id: UUID,
    request: GradeRequest,
    professor: User = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db)
):
    """Grade a student's session (replaces any previous grade)"""
    grade = await GradingService(db).grade_session(
        session_id=session_id,
        professor_id=professor.id,
        overall_score=request.overall_score,
        rubric_scores=[s.model_dump() for s in request.rubric_scores] if request.rubric_scores else None,
        feedback=request.feedback
    )
    return GradeResponse.model_validate(grade)
