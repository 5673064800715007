# ============================================================================
# Tutoring Services - Public API
# ============================================================================
"""
Article tutoring chat: stage policy, turn generation and the session
controller that sequences turns.

    controller = TutoringSessionController(db, GeminiTurnGenerator())
    view = await controller.get_or_create_session(student_id, assignment_id)
    result = await controller.submit_user_turn(view.session.id, student_id, "What is fragmentation?")
"""
from app.services.tutor.stages import (
    LearningStage,
    STAGE_ORDER,
    INITIAL_STAGE,
    next_stage,
    transition_announcement,
)
from app.services.tutor.generator import (
    HistoryTurn,
    Source,
    TutorReply,
    TurnGenerator,
)
from app.services.tutor.gemini import GeminiTurnGenerator, ArticleAnalyzer
from app.services.tutor.session_controller import (
    TutoringSessionController,
    SessionView,
    TurnResult,
)
from app.services.tutor.grading import GradingService

__all__ = [
    "LearningStage", "STAGE_ORDER", "INITIAL_STAGE", "next_stage",
    "transition_announcement", "HistoryTurn", "Source", "TutorReply",
    "TurnGenerator", "GeminiTurnGenerator", "ArticleAnalyzer",
    "TutoringSessionController", "SessionView", "TurnResult", "GradingService",
]
