# ============================================================================
# Article Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from typing import List
from uuid import UUID
import logging

from app.core.database import get_db
from app.core.security import get_current_active_user
from app.core.exceptions import AccessDeniedError, ArticleNotFound, ConflictError
from app.api.deps import get_article_analyzer
from app.models.user import User
from app.models.curriculum import Article, Assignment
from app.schemas.curriculum import ArticleCreate, ArticleUpdate, ArticleResponse, ProcessTextRequest
from app.schemas.responses import MessageResponse
from app.services.tutor import ArticleAnalyzer

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/articles", tags=["articles"])

async def _get_article(db: AsyncSession, article_id: UUID) -> Article:
    article = await db.get(Article, article_id)
    if not article:
        raise ArticleNotFound(str(article_id))
    return article

@router.post("", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
async def create_article(
    request: ArticleCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Add an article with manually entered metadata"""
    article = Article(**request.model_dump(), uploaded_by_id=current_user.id)
    db.add(article)
    await db.commit()
    return ArticleResponse.model_validate(article)

@router.post("/process-text", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
async def process_article_text(
    request: ProcessTextRequest,
    current_user: User = Depends(get_current_active_user),
    analyzer: ArticleAnalyzer = Depends(get_article_analyzer),
    db: AsyncSession = Depends(get_db)
):
    """Create an article from extracted text, letting Gemini fill in the metadata"""
    metadata = await analyzer.analyze(request.text)

    article = Article(
        **metadata,
        content=request.text,
        uploaded_by_id=current_user.id,
        is_public=True
    )
    db.add(article)
    await db.commit()

    logger.info(f"Article '{article.title}' created from text by {current_user.email}")
    return ArticleResponse.model_validate(article)

@router.get("", response_model=List[ArticleResponse])
async def list_articles(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Public articles plus the caller's own"""
    result = await db.execute(
        select(Article)
        .where(or_(Article.is_public == True, Article.uploaded_by_id == current_user.id))
        .order_by(Article.created_at.desc())
    )
    return [ArticleResponse.model_validate(a) for a in result.scalars().all()]

@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    article = await _get_article(db, article_id)
    if not article.is_public and article.uploaded_by_id != current_user.id:
        raise AccessDeniedError()
    return ArticleResponse.model_validate(article)

@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: UUID,
    request: ArticleUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    article = await _get_article(db, article_id)
    if article.uploaded_by_id != current_user.id:
        raise AccessDeniedError("Access denied. Only uploader can edit.")

    for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(article, field, value)
    await db.commit()
    return ArticleResponse.model_validate(article)

@router.delete("/{article_id}", response_model=MessageResponse)
async def delete_article(
    article_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    article = await _get_article(db, article_id)
    if article.uploaded_by_id != current_user.id:
        raise AccessDeniedError("Access denied. Only uploader can delete.")

    result = await db.execute(
        select(func.count(Assignment.id)).where(Assignment.article_id == article.id)
    )
    if result.scalar() > 0:
        raise ConflictError("Cannot delete article used in assignments")

    await db.delete(article)
    await db.commit()
    return MessageResponse(message="Article deleted successfully")
