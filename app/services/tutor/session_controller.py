# ============================================================================
# Tutoring Session Controller
# ============================================================================
"""
The single authority for turn sequencing in a tutoring chat.

A turn is: validate the student's text, append it at the next ordinal, bump
the session's user-turn counter and apply the stage policy, commit, ask the
turn generator for a reply (guided by the stage the student is entering),
prefix a transition announcement when the stage moved, and append the reply
at the next ordinal.

The user turn is committed before the model is called. If the model fails,
a fallback apology is stored as the AI turn so the log never ends on an
unanswered user message.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.core.database import utcnow
from app.core.exceptions import (
    AccessDeniedError,
    AssignmentNotFound,
    ValidationError,
)
from app.core.redis import TurnInProgress, TurnLocks, turn_locks
from app.models.conversation import ChatSession, Message, Grade
from app.models.curriculum import Article, Assignment
from app.services.tutor.generator import HistoryTurn, TurnGenerator, TutorReply
from app.services.tutor.prompts import ArticleContext, FALLBACK_RESPONSE, build_greeting
from app.services.tutor.stages import (
    INITIAL_STAGE,
    LearningStage,
    next_stage,
    transition_announcement,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Results
# ============================================================================
@dataclass
class SessionView:
    """A session with everything a client needs to render it"""
    session: ChatSession
    messages: List[Message]
    assignment: Assignment
    article: Article
    grade: Optional[Grade] = None


@dataclass
class TurnResult:
    user_message: Message
    ai_message: Message
    stage: LearningStage
    stage_advanced: bool = False
    ai_fallback: bool = False


# ============================================================================
# Controller
# ============================================================================
class TutoringSessionController:
    """
    Orchestrates tutoring turns for chat sessions.

    Ordinals are assigned here from the persisted log, never by the client,
    and turns on one session are serialized through ``TurnLocks``.
    """

    def __init__(
        self,
        db: AsyncSession,
        generator: TurnGenerator,
        locks: Optional[TurnLocks] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.generator = generator
        self.locks = locks or turn_locks
        self.settings = settings or get_settings()

    # ==================== Session Lifecycle ====================

    async def get_or_create_session(self, student_id: UUID, assignment_id: UUID) -> SessionView:
        """
        Return the student's session for an assignment, creating it (with a
        greeting at ordinal 0) on first access.
        """
        session = await self._find_session(student_id, assignment_id)
        if session is None:
            assignment, article = await self._load_assignment(assignment_id)
            session = await self._create_session(student_id, assignment, article)
        else:
            await self._repair_dangling_turn(session)

        return await self._build_view(session)

    async def _create_session(
        self,
        student_id: UUID,
        assignment: Assignment,
        article: Article,
    ) -> ChatSession:
        assignment_id = assignment.id
        session = ChatSession(
            student_id=student_id,
            assignment_id=assignment_id,
            current_stage=INITIAL_STAGE.value,
            user_message_count=0,
        )
        self.db.add(session)
        try:
            await self.db.flush()
        except IntegrityError:
            # A concurrent first access created it
            await self.db.rollback()
            existing = await self._find_session(student_id, assignment_id)
            if existing is None:
                raise
            return existing

        self.db.add(Message(
            session_id=session.id,
            sender="ai",
            text=build_greeting(article.title),
            ordinal=0,
        ))
        await self.db.commit()

        logger.info(f"Created chat session {session.id} for student {student_id} on assignment {assignment_id}")
        return session

    async def get_transcript(self, session_id: UUID, professor_id: UUID) -> SessionView:
        """
        Transcript for the professor who owns the session's assignment.
        Unknown and foreign sessions both raise AccessDeniedError.
        """
        session = await self.db.get(ChatSession, session_id)
        if session is None:
            raise AccessDeniedError()

        view = await self._build_view(session)
        if view.assignment.professor_id != professor_id:
            raise AccessDeniedError()
        return view

    # ==================== Turns ====================

    async def submit_user_turn(self, session_id: UUID, student_id: UUID, text: str) -> TurnResult:
        """
        Run one tutoring turn and return both new messages and the stage.

        Raises:
            ValidationError: empty or over-long text (nothing is written)
            AccessDeniedError: unknown session, or one belonging to another
                student (indistinguishable to the caller)
        """
        text = self._validate_text(text)

        session = await self.db.get(ChatSession, session_id)
        if session is None or session.student_id != student_id:
            raise AccessDeniedError()

        async with self.locks.hold(session.id):
            session = await self._lock_session(session.id)
            assignment, article = await self._load_assignment(session.assignment_id)
            history = await self._load_messages(session.id)

            # No other turn can be running here, so a trailing user message
            # was left unanswered by an earlier request
            if history and history[-1].sender == "user":
                history.append(self._answer_with_fallback(history[-1]))

            # 1. Durable user turn + counter/stage update
            previous_stage = LearningStage(session.current_stage)
            user_message = Message(
                session_id=session.id,
                sender="user",
                text=text,
                ordinal=history[-1].ordinal + 1 if history else 0,
            )
            self.db.add(user_message)

            session.user_message_count += 1
            stage = next_stage(
                previous_stage,
                session.user_message_count,
                self.settings.STAGE_ADVANCE_INTERVAL,
            )
            session.current_stage = stage.value
            session.last_activity_at = utcnow()
            await self.db.commit()

            # 2. AI turn, guided by the stage being entered
            reply, fallback = await self._generate_reply(
                history=[HistoryTurn(role=m.sender, text=m.text) for m in history],
                user_text=text,
                stage=stage,
                article=ArticleContext.from_article(article),
                session_id=session.id,
            )

            stage_advanced = stage != previous_stage
            ai_text = reply.text
            if stage_advanced:
                ai_text = transition_announcement(stage) + ai_text
                logger.info(f"Session {session.id} advanced {previous_stage.value} -> {stage.value}")

            # 3. Persist the AI turn
            session = await self._lock_session(session.id)
            ai_message = Message(
                session_id=session.id,
                sender="ai",
                text=ai_text,
                sources=reply.sources_payload(),
                ordinal=await self._next_ordinal(session.id),
            )
            self.db.add(ai_message)
            session.last_activity_at = utcnow()
            await self.db.commit()

        return TurnResult(
            user_message=user_message,
            ai_message=ai_message,
            stage=stage,
            stage_advanced=stage_advanced,
            ai_fallback=fallback,
        )

    async def _generate_reply(
        self,
        history: List[HistoryTurn],
        user_text: str,
        stage: LearningStage,
        article: ArticleContext,
        session_id: UUID,
    ) -> Tuple[TutorReply, bool]:
        try:
            reply = await self.generator.generate_turn(history, user_text, stage, article)
        except Exception as e:
            logger.warning(f"AI turn failed for session {session_id}, storing fallback: {e}")
            return TutorReply(text=FALLBACK_RESPONSE), True

        if not reply.text or not reply.text.strip():
            logger.warning(f"AI turn for session {session_id} was empty, storing fallback")
            return TutorReply(text=FALLBACK_RESPONSE), True
        return reply, False

    def _validate_text(self, text: Optional[str]) -> str:
        cleaned = (text or "").strip()
        if not cleaned:
            raise ValidationError("Message text is required")
        if len(cleaned) > self.settings.MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Message text must be at most {self.settings.MAX_MESSAGE_LENGTH} characters"
            )
        return cleaned

    def _answer_with_fallback(self, last: Message) -> Message:
        """Stage the fallback AI reply for an unanswered user message"""
        reply = Message(
            session_id=last.session_id,
            sender="ai",
            text=FALLBACK_RESPONSE,
            ordinal=last.ordinal + 1,
        )
        self.db.add(reply)
        logger.warning(f"Answering orphaned user turn #{last.ordinal} in session {last.session_id} with fallback")
        return reply

    async def _repair_dangling_turn(self, session: ChatSession) -> None:
        """
        Answer a user turn that never got its AI reply (process died between
        the two writes). Only turns older than twice the AI timeout count, so
        an in-flight turn on another worker is left alone. If a turn holds
        the lock, it answers the message itself and the repair is skipped.
        """
        last = await self._last_message(session.id)
        if last is None or last.sender != "user":
            return
        grace = timedelta(seconds=self.settings.AI_TIMEOUT_SECONDS * 2)
        if last.created_at and utcnow() - last.created_at < grace:
            return

        try:
            async with self.locks.hold(session.id, blocking_timeout=self.settings.TURN_LOCK_REPAIR_WAIT_SECONDS):
                await self._lock_session(session.id)
                last = await self._last_message(session.id)
                if last is None or last.sender != "user":
                    return
                self._answer_with_fallback(last)
                await self.db.commit()
        except TurnInProgress:
            logger.info(f"Skipped repair of session {session.id}: a turn is in progress")

    # ==================== Queries ====================

    async def _find_session(self, student_id: UUID, assignment_id: UUID) -> Optional[ChatSession]:
        result = await self.db.execute(
            select(ChatSession).where(
                ChatSession.student_id == student_id,
                ChatSession.assignment_id == assignment_id,
            )
        )
        return result.scalar_one_or_none()

    async def _lock_session(self, session_id: UUID) -> ChatSession:
        """Fresh row, locked FOR UPDATE until the next commit"""
        result = await self.db.execute(
            select(ChatSession)
            .where(ChatSession.id == session_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _load_assignment(self, assignment_id: UUID) -> Tuple[Assignment, Article]:
        result = await self.db.execute(
            select(Assignment, Article)
            .join(Article, Assignment.article_id == Article.id)
            .where(Assignment.id == assignment_id)
        )
        row = result.first()
        if row is None:
            raise AssignmentNotFound(str(assignment_id))
        return row[0], row[1]

    async def _load_messages(self, session_id: UUID) -> List[Message]:
        result = await self.db.execute(
            select(Message)
            .where(Message.session_id == session_id)
            .order_by(Message.ordinal)
        )
        return list(result.scalars().all())

    async def _last_message(self, session_id: UUID) -> Optional[Message]:
        result = await self.db.execute(
            select(Message)
            .where(Message.session_id == session_id)
            .order_by(Message.ordinal.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _next_ordinal(self, session_id: UUID) -> int:
        result = await self.db.execute(
            select(func.max(Message.ordinal)).where(Message.session_id == session_id)
        )
        current = result.scalar()
        return 0 if current is None else current + 1

    async def _build_view(self, session: ChatSession) -> SessionView:
        assignment, article = await self._load_assignment(session.assignment_id)
        grade_result = await self.db.execute(
            select(Grade).where(Grade.session_id == session.id)
        )
        return SessionView(
            session=session,
            messages=await self._load_messages(session.id),
            assignment=assignment,
            article=article,
            grade=grade_result.scalar_one_or_none(),
        )
