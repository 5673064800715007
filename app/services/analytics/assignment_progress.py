# ============================================================================
# Assignment Progress Analytics
# ============================================================================
from typing import Dict, Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from uuid import UUID
from collections import defaultdict

from app.models.user import User
from app.models.conversation import ChatSession, Message, Grade
from app.services.tutor.stages import STAGE_ORDER


def average_score(grades: Iterable[Optional[Grade]]) -> Optional[float]:
    """Mean overall score over graded sessions, None when nothing is scored"""
    scores = [float(g.overall_score) for g in grades if g is not None and g.overall_score is not None]
    if not scores:
        return None
    return round(sum(scores) / len(scores), 2)


def stage_distribution(stages: Iterable[str]) -> Dict[str, int]:
    distribution = {stage.value: 0 for stage in STAGE_ORDER}
    for stage in stages:
        if stage in distribution:
            distribution[stage] += 1
    return distribution


class AssignmentProgressAnalytics:
    """Per-assignment roll-ups of student chat sessions"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _session_rows(self, assignment_ids: List[UUID]) -> List[Dict]:
        if not assignment_ids:
            return []

        message_counts = (
            select(Message.session_id, func.count(Message.id).label("message_count"))
            .group_by(Message.session_id)
            .subquery()
        )
        result = await self.db.execute(
            select(ChatSession, User, Grade, message_counts.c.message_count)
            .join(User, ChatSession.student_id == User.id)
            .outerjoin(Grade, Grade.session_id == ChatSession.id)
            .outerjoin(message_counts, message_counts.c.session_id == ChatSession.id)
            .where(ChatSession.assignment_id.in_(assignment_ids))
            .order_by(ChatSession.started_at)
        )
        return [
            {
                "session": session,
                "student": student,
                "grade": grade,
                "message_count": message_count or 0,
            }
            for session, student, grade, message_count in result.all()
        ]

    async def get_summary_stats(self, assignment_ids: List[UUID]) -> Dict[UUID, Dict]:
        """Student count, graded count and average score per assignment"""
        grouped: Dict[UUID, List[Dict]] = defaultdict(list)
        for row in await self._session_rows(assignment_ids):
            grouped[row["session"].assignment_id].append(row)

        return {
            assignment_id: {
                "total_students": len(grouped[assignment_id]),
                "students_graded": sum(1 for r in grouped[assignment_id] if r["grade"] is not None),
                "average_score": average_score(r["grade"] for r in grouped[assignment_id]),
            }
            for assignment_id in assignment_ids
        }

    async def get_stats(self, assignment_id: UUID) -> Dict:
        """Full stats for the assignment detail page"""
        rows = await self._session_rows([assignment_id])
        total = len(rows)

        return {
            "total_students": total,
            "students_graded": sum(1 for r in rows if r["grade"] is not None),
            "average_score": average_score(r["grade"] for r in rows),
            "average_messages": round(sum(r["message_count"] for r in rows) / total, 2) if total else 0,
            "stage_distribution": stage_distribution(r["session"].current_stage for r in rows),
            "student_details": [
                {
                    "student": r["student"],
                    "message_count": r["message_count"],
                    "current_stage": r["session"].current_stage,
                    "last_activity": r["session"].last_activity_at,
                    "has_grade": r["grade"] is not None,
                    "score": float(r["grade"].overall_score)
                    if r["grade"] is not None and r["grade"].overall_score is not None else None,
                }
                for r in rows
            ],
        }

    async def get_student_progress(self, student_id: UUID) -> Dict[UUID, Dict]:
        """The student's session state and grade, keyed by assignment"""
        result = await self.db.execute(
            select(ChatSession, Grade)
            .outerjoin(Grade, Grade.session_id == ChatSession.id)
            .where(ChatSession.student_id == student_id)
        )
        return {
            session.assignment_id: {
                "chat_session_id": session.id,
                "current_stage": session.current_stage,
                "user_message_count": session.user_message_count,
                "last_activity_at": session.last_activity_at,
                "has_grade": grade is not None,
                "grade": grade,
            }
            for session, grade in result.all()
        }
