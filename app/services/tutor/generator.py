# ============================================================================
# AI Turn Generator Contract
# ============================================================================
"""
What the session controller needs from a language model: given the
role-tagged transcript so far, the student's new message, the stage the
student is entering and the article, produce the tutor's reply and any web
sources it cited.

Implementations raise ``AIUnavailableError`` on any failure; the controller
owns the recovery.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.services.tutor.prompts import ArticleContext
from app.services.tutor.stages import LearningStage


@dataclass
class HistoryTurn:
    """One persisted message, as the model sees it"""
    role: str  # user, ai
    text: str


@dataclass
class Source:
    uri: str
    title: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"uri": self.uri, "title": self.title}


@dataclass
class TutorReply:
    text: str
    sources: List[Source] = field(default_factory=list)

    def sources_payload(self) -> Optional[List[Dict[str, Any]]]:
        if not self.sources:
            return None
        return [s.to_dict() for s in self.sources]


class TurnGenerator(ABC):
    """Produces the AI side of a tutoring turn"""

    @abstractmethod
    async def generate_turn(
        self,
        history: List[HistoryTurn],
        user_text: str,
        stage: LearningStage,
        article: ArticleContext,
    ) -> TutorReply:
        ...
