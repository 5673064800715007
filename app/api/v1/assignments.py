# ============================================================================
# Assignment Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import List, Optional
from uuid import UUID
import logging

from app.core.database import get_db
from app.core.security import get_current_active_user
from app.core.exceptions import AccessDeniedError, ArticleNotFound, AssignmentNotFound, ConflictError
from app.api.deps import get_current_student, get_current_professor
from app.models.user import User, UserRole
from app.models.curriculum import Article, Assignment
from app.models.conversation import ChatSession
from app.schemas.curriculum import (
    ArticleSummary,
    AssignmentCreate,
    AssignmentUpdate,
    AssignmentWithArticle,
    AssignmentStatsResponse,
    AssignmentSummaryStats,
    ProfessorAssignmentResponse,
    ProgressGrade,
    StudentAssignmentResponse,
    StudentDetail,
    StudentProgress,
)
from app.schemas.responses import MessageResponse
from app.schemas.user import UserSummary
from app.services.analytics.assignment_progress import AssignmentProgressAnalytics

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/assignments", tags=["assignments"])

class AssignmentDetailResponse(AssignmentWithArticle):
    # Filled in only for the owning professor
    professor: Optional[UserSummary] = None
    chat_sessions: Optional[List[StudentDetail]] = None

async def _load_assignment(db: AsyncSession, assignment_id: UUID):
    result = await db.execute(
        select(Assignment, Article)
        .join(Article, Assignment.article_id == Article.id)
        .where(Assignment.id == assignment_id)
    )
    row = result.first()
    if row is None:
        raise AssignmentNotFound(str(assignment_id))
    return row[0], row[1]

async def _load_owned_assignment(db: AsyncSession, assignment_id: UUID, professor: User):
    assignment, article = await _load_assignment(db, assignment_id)
    if assignment.professor_id != professor.id:
        raise AccessDeniedError()
    return assignment, article

@router.post("", response_model=AssignmentWithArticle, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    request: AssignmentCreate,
    professor: User = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db)
):
    article = await db.get(Article, request.article_id)
    if not article:
        raise ArticleNotFound(str(request.article_id))

    assignment = Assignment(
        professor_id=professor.id,
        article_id=article.id,
        title=request.title,
        description=request.description,
        due_date=request.due_date,
        grading_rubric=request.grading_rubric.model_dump() if request.grading_rubric else None
    )
    db.add(assignment)
    await db.commit()

    logger.info(f"Assignment '{assignment.title}' created by {professor.email}")
    return AssignmentWithArticle.build(assignment, article)

@router.get("/professor", response_model=List[ProfessorAssignmentResponse])
async def get_professor_assignments(
    professor: User = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db)
):
    """The professor's assignments with submission stats"""
    result = await db.execute(
        select(Assignment, Article)
        .join(Article, Assignment.article_id == Article.id)
        .where(Assignment.professor_id == professor.id)
        .order_by(Assignment.created_at.desc())
    )
    rows = result.all()
    stats = await AssignmentProgressAnalytics(db).get_summary_stats([a.id for a, _ in rows])

    return [
        ProfessorAssignmentResponse(
            **AssignmentWithArticle.build(assignment, article).model_dump(),
            stats=AssignmentSummaryStats(**stats[assignment.id])
        )
        for assignment, article in rows
    ]

@router.get("/student", response_model=List[StudentAssignmentResponse])
async def get_student_assignments(
    student: User = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    """All assignments, with this student's progress where a session exists"""
    result = await db.execute(
        select(Assignment, Article, User)
        .join(Article, Assignment.article_id == Article.id)
        .join(User, Assignment.professor_id == User.id)
        .order_by(Assignment.created_at.desc())
    )
    progress = await AssignmentProgressAnalytics(db).get_student_progress(student.id)

    responses = []
    for assignment, article, professor in result.all():
        entry = progress.get(assignment.id)
        student_progress = None
        if entry is not None:
            grade = entry["grade"]
            student_progress = StudentProgress(
                chat_session_id=entry["chat_session_id"],
                current_stage=entry["current_stage"],
                user_message_count=entry["user_message_count"],
                last_activity_at=entry["last_activity_at"],
                has_grade=entry["has_grade"],
                grade=ProgressGrade.model_validate(grade) if grade is not None else None
            )
        responses.append(StudentAssignmentResponse(
            id=assignment.id,
            title=assignment.title,
            description=assignment.description,
            due_date=assignment.due_date,
            article=ArticleSummary.model_validate(article),
            professor=UserSummary(id=professor.id, first_name=professor.first_name, last_name=professor.last_name),
            student_progress=student_progress
        ))
    return responses

@router.get("/{assignment_id}", response_model=AssignmentDetailResponse)
async def get_assignment(
    assignment_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Assignment detail; the owning professor also sees student sessions"""
    assignment, article = await _load_assignment(db, assignment_id)

    if current_user.role == UserRole.PROFESSOR and assignment.professor_id == current_user.id:
        stats = await AssignmentProgressAnalytics(db).get_stats(assignment.id)
        return AssignmentDetailResponse(
            **AssignmentWithArticle.build(assignment, article).model_dump(),
            professor=UserSummary.model_validate(current_user),
            chat_sessions=[_student_detail(d) for d in stats["student_details"]]
        )

    return AssignmentDetailResponse(**AssignmentWithArticle.build(assignment, article).model_dump())

@router.put("/{assignment_id}", response_model=AssignmentWithArticle)
async def update_assignment(
    assignment_id: UUID,
    request: AssignmentUpdate,
    professor: User = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db)
):
    assignment, article = await _load_owned_assignment(db, assignment_id, professor)

    updates = request.model_dump(exclude_unset=True)
    if "title" in updates and updates["title"] is None:
        updates.pop("title")
    for field, value in updates.items():
        setattr(assignment, field, value)
    await db.commit()

    return AssignmentWithArticle.build(assignment, article)

@router.delete("/{assignment_id}", response_model=MessageResponse)
async def delete_assignment(
    assignment_id: UUID,
    professor: User = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db)
):
    assignment, _ = await _load_owned_assignment(db, assignment_id, professor)

    result = await db.execute(
        select(func.count(ChatSession.id)).where(ChatSession.assignment_id == assignment.id)
    )
    student_count = result.scalar()
    if student_count > 0:
        raise ConflictError(f"Cannot delete assignment with student activity ({student_count} students)")

    await db.delete(assignment)
    await db.commit()
    return MessageResponse(message="Assignment deleted successfully")

@router.get("/{assignment_id}/stats", response_model=AssignmentStatsResponse)
async def get_assignment_stats(
    assignment_id: UUID,
    professor: User = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db)
):
    assignment, _ = await _load_owned_assignment(db, assignment_id, professor)
    stats = await AssignmentProgressAnalytics(db).get_stats(assignment.id)

    return AssignmentStatsResponse(
        **{k: v for k, v in stats.items() if k != "student_details"},
        student_details=[_student_detail(d) for d in stats["student_details"]]
    )

def _student_detail(detail: dict) -> StudentDetail:
    return StudentDetail(
        **{k: v for k, v in detail.items() if k != "student"},
        student=UserSummary.model_validate(detail["student"])
    )
