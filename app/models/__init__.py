from app.models.user import User, UserRole
from app.models.curriculum import Article, Assignment
from app.models.conversation import ChatSession, Message, Grade

__all__ = [
    "User", "UserRole", "Article", "Assignment",
    "ChatSession", "Message", "Grade"
]
