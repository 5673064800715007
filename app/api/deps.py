# ============================================================================
# API Dependencies
# ============================================================================
from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.core.database import get_db
from app.core.security import get_current_active_user
from app.core.exceptions import AccessDeniedError
from app.models.user import User, UserRole
from app.services.tutor import (
    TurnGenerator,
    ArticleAnalyzer,
    TutoringSessionController,
)

logger = logging.getLogger(__name__)


# ============================================================================
# AI Dependencies
# ============================================================================
async def get_turn_generator(request: Request) -> TurnGenerator:
    """
    Get the tutor turn generator from app state.

    Created once at startup; tests swap it through
    ``app.dependency_overrides``.
    """
    if not hasattr(request.app.state, 'turn_generator'):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Turn generator not initialized"
        )
    return request.app.state.turn_generator


async def get_article_analyzer(request: Request) -> ArticleAnalyzer:
    if not hasattr(request.app.state, 'article_analyzer'):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Article analyzer not initialized"
        )
    return request.app.state.article_analyzer


async def get_session_controller(
    db: AsyncSession = Depends(get_db),
    generator: TurnGenerator = Depends(get_turn_generator),
) -> TutoringSessionController:
    return TutoringSessionController(db, generator)


# ============================================================================
# Role Dependencies
# ============================================================================
def require_role(role: UserRole):
    """Dependency to require a specific user role"""

    async def check_role(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        if current_user.role != role:
            raise AccessDeniedError(f"Access denied. {role.value} role required.")
        return current_user

    return check_role


get_current_student = require_role(UserRole.STUDENT)
get_current_professor = require_role(UserRole.PROFESSOR)
