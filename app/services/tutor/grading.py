# ============================================================================
# Session Grading
# ============================================================================
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.core.exceptions import AccessDeniedError, ValidationError
from app.models.conversation import ChatSession, Grade
from app.models.curriculum import Assignment

logger = logging.getLogger(__name__)


class GradingService:
    """Professors grade chat sessions on their own assignments; latest write wins."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def grade_session(
        self,
        session_id: UUID,
        professor_id: UUID,
        overall_score: Optional[float] = None,
        rubric_scores: Optional[List[Dict[str, Any]]] = None,
        feedback: Optional[str] = None,
    ) -> Grade:
        result = await self.db.execute(
            select(ChatSession, Assignment)
            .join(Assignment, ChatSession.assignment_id == Assignment.id)
            .where(ChatSession.id == session_id)
        )
        row = result.first()
        # Unknown and foreign sessions are indistinguishable to the caller
        if row is None or row[1].professor_id != professor_id:
            raise AccessDeniedError()
        session, assignment = row

        self._validate(overall_score, rubric_scores)
        if overall_score is None and rubric_scores:
            overall_score = sum(float(s["score"]) for s in rubric_scores)

        grade_result = await self.db.execute(
            select(Grade).where(Grade.session_id == session.id)
        )
        grade = grade_result.scalar_one_or_none()
        if grade is None:
            grade = Grade(session_id=session.id)
            self.db.add(grade)

        grade.professor_id = professor_id
        grade.overall_score = Decimal(str(overall_score)) if overall_score is not None else None
        grade.rubric_scores = rubric_scores
        grade.feedback = feedback
        grade.graded_at = utcnow()
        await self.db.commit()

        logger.info(f"Session {session.id} graded {overall_score} by {professor_id}")
        return grade

    @staticmethod
    def _validate(overall_score: Optional[float], rubric_scores: Optional[List[Dict[str, Any]]]) -> None:
        if overall_score is not None and overall_score < 0:
            raise ValidationError("Overall score cannot be negative")
        for entry in rubric_scores or []:
            score = float(entry.get("score", 0))
            max_points = float(entry.get("max_points", 0))
            if score < 0 or (max_points and score > max_points):
                raise ValidationError(
                    f"Score for '{entry.get('criterion')}' must be between 0 and {max_points:g}"
                )
