# ============================================================================
# Article & Assignment Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy import Text, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from app.core.database import Base, utcnow

class Article(Base):
    __tablename__ = "articles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(500), nullable=False)
    author = Column(String(255), nullable=False)
    year = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    learning_objectives = Column(JSON, default=list)
    key_concepts = Column(JSON, default=list)
    is_public = Column(Boolean, default=True)
    uploaded_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    uploaded_by = relationship("User")

    def __repr__(self):
        return f"<Article {self.author} ({self.year}): {self.title[:40]}>"

class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    professor_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    article_id = Column(UUID(as_uuid=True), ForeignKey("articles.id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True)
    # {"criteria": [{"name", "max_points", "description"}]}
    grading_rubric = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    article = relationship("Article")
    professor = relationship("User")
    chat_sessions = relationship("ChatSession", back_populates="assignment")

    def __repr__(self):
        return f"<Assignment {self.title}>"
