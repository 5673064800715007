# ============================================================================
# Chat Session, Message & Grade Models
# ============================================================================
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy import Text, Numeric, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from app.core.database import Base, utcnow

class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    assignment_id = Column(UUID(as_uuid=True), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)

    current_stage = Column(String(20), nullable=False, default="Comprehension")
    user_message_count = Column(Integer, nullable=False, default=0)

    started_at = Column(DateTime, default=utcnow)
    last_activity_at = Column(DateTime, default=utcnow)

    student = relationship("User")
    assignment = relationship("Assignment", back_populates="chat_sessions")
    messages = relationship(
        "Message",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Message.ordinal",
    )
    grade = relationship("Grade", back_populates="session", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('student_id', 'assignment_id', name='unique_student_assignment'),
    )

    def __repr__(self):
        return f"<ChatSession {self.id} ({self.current_stage}, {self.user_message_count} turns)>"

class Message(Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(UUID(as_uuid=True), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False)

    sender = Column(String(10), nullable=False)  # user, ai
    text = Column(Text, nullable=False)
    ordinal = Column(Integer, nullable=False)
    sources = Column(JSON, nullable=True)  # [{"uri", "title"}]

    created_at = Column(DateTime, default=utcnow)

    session = relationship("ChatSession", back_populates="messages")

    __table_args__ = (
        UniqueConstraint('session_id', 'ordinal', name='unique_session_ordinal'),
    )

    def __repr__(self):
        return f"<Message #{self.ordinal} {self.sender}: {self.text[:50]}...>"

class Grade(Base):
    __tablename__ = "grades"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(UUID(as_uuid=True), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, unique=True)
    professor_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)

    overall_score = Column(Numeric(6, 2), nullable=True)
    rubric_scores = Column(JSON, nullable=True)  # [{"criterion", "score", "max_points"}]
    feedback = Column(Text, nullable=True)
    graded_at = Column(DateTime, default=utcnow)

    session = relationship("ChatSession", back_populates="grade")

    def __repr__(self):
        return f"<Grade {self.overall_score} for {self.session_id}>"
