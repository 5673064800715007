# ============================================================================
# Authentication Endpoints
# ============================================================================
"""
Email/password authentication for students and professors.

Provides:
- Registration (returns a bearer token)
- Login
- Current user profile retrieval
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import logging

from app.core.database import get_db
from app.core.exceptions import ConflictError
from app.core.security import (
    create_access_token,
    verify_password,
    get_password_hash,
    get_current_active_user
)
from app.models.user import User, UserRole
from app.schemas.user import RegisterRequest, LoginRequest, AuthResponse, UserResponse
from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["authentication"])


def _auth_response(user: User) -> AuthResponse:
    token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new student or professor.

    Email must be unique across all users.
    """
    email = request.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise ConflictError("Email already registered")

    if len(request.password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
        )

    user = User(
        email=email,
        password_hash=get_password_hash(request.password),
        first_name=request.first_name.strip(),
        last_name=request.last_name.strip(),
        role=UserRole(request.role.value),
        is_active=True,
    )
    db.add(user)
    await db.commit()

    logger.info(f"Registered {user.role.value} {user.email}")
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password"""
    result = await db.execute(select(User).where(User.email == request.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    return _auth_response(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user: User = Depends(get_current_active_user)
):
    """Get current authenticated user's profile"""
    return UserResponse.model_validate(current_user)
