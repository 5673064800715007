# ============================================================================
# User Schemas
# ============================================================================
from pydantic import EmailStr, Field
from datetime import datetime
from typing import Optional
from uuid import UUID
from enum import Enum

from app.schemas.responses import CamelModel
from app.models.user import UserRole

class UserRoleEnum(str, Enum):
    STUDENT = "student"
    PROFESSOR = "professor"

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: UserRoleEnum = UserRoleEnum.STUDENT

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class UserResponse(CamelModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    created_at: Optional[datetime] = None

class UserSummary(CamelModel):
    """Student/professor name card embedded in other payloads"""
    id: UUID
    first_name: str
    last_name: str
    email: Optional[str] = None

class AuthResponse(CamelModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
