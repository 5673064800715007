# ============================================================================
# Main API Router
# ============================================================================
from fastapi import APIRouter

from app.api.v1 import auth, articles, assignments, chat

api_router = APIRouter()

# Registration, login, profile
api_router.include_router(auth.router)
# Reading material and Gemini metadata extraction
api_router.include_router(articles.router)
# Professor assignments, student lists, stats
api_router.include_router(assignments.router)
# Tutoring sessions, transcripts, grading
api_router.include_router(chat.router)
