# ============================================================================
# Learning Stage Policy
# ============================================================================
"""
The four pedagogical stages a tutoring session moves through, and the pure
policy that decides when a session advances.

A session advances one stage each time its user-turn counter reaches a
positive multiple of the advance interval (3 by default). Advanced is
terminal.
"""
from enum import Enum
from typing import Dict


class LearningStage(str, Enum):
    COMPREHENSION = "Comprehension"
    EVIDENCE = "Evidence"
    ANALYSIS = "Analysis"
    ADVANCED = "Advanced"

    @property
    def display_name(self) -> str:
        return STAGE_TITLES[self]

    @property
    def guidance(self) -> str:
        return STAGE_GUIDANCE[self]


STAGE_ORDER = [
    LearningStage.COMPREHENSION,
    LearningStage.EVIDENCE,
    LearningStage.ANALYSIS,
    LearningStage.ADVANCED,
]

INITIAL_STAGE = LearningStage.COMPREHENSION
ADVANCE_INTERVAL = 3

STAGE_TITLES: Dict[LearningStage, str] = {
    LearningStage.COMPREHENSION: "Comprehension Building",
    LearningStage.EVIDENCE: "Evidence Gathering",
    LearningStage.ANALYSIS: "Analysis & Evaluation",
    LearningStage.ADVANCED: "Advanced Synthesis",
}

STAGE_GUIDANCE: Dict[LearningStage, str] = {
    LearningStage.COMPREHENSION: (
        "Focus on core arguments and key terms. Ask what the student understands."
    ),
    LearningStage.EVIDENCE: (
        "Help locate key data. Ask students to cite specific evidence from the article."
    ),
    LearningStage.ANALYSIS: (
        "Guide evaluation of methodology. Ask about strengths and weaknesses."
    ),
    LearningStage.ADVANCED: (
        "Connect to broader concepts. Use web search for real-world examples."
    ),
}


def next_stage(
    current: LearningStage,
    user_message_count: int,
    interval: int = ADVANCE_INTERVAL
) -> LearningStage:
    """Stage a session is in once its counter reaches ``user_message_count``."""
    current = LearningStage(current)
    if user_message_count <= 0 or user_message_count % interval != 0:
        return current

    index = STAGE_ORDER.index(current)
    if index >= len(STAGE_ORDER) - 1:
        return current
    return STAGE_ORDER[index + 1]


def transition_announcement(stage: LearningStage) -> str:
    """Prefix put in front of the AI reply on the turn a stage is entered"""
    return f"Great progress! Let's move to the next stage: **{LearningStage(stage).display_name}**. "
