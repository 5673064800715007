# ============================================================================
# Prompt Templates
# ============================================================================
"""
Prompts for the Eco tutor persona:
- System instruction combining persona, article context and stage guidance
- Greeting template for a freshly opened session
- Metadata extraction prompt for pasted article text
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from app.services.tutor.stages import LearningStage


@dataclass
class ArticleContext:
    """The reading a tutoring session is anchored to"""
    title: str
    author: str = ""
    year: int | None = None
    content: str = ""
    key_concepts: List[str] = field(default_factory=list)

    @classmethod
    def from_article(cls, article) -> "ArticleContext":
        return cls(
            title=article.title,
            author=article.author,
            year=article.year,
            content=article.content,
            key_concepts=list(article.key_concepts or []),
        )


class SystemPrompts:
    """Base system prompts for the tutor"""

    PERSONA = """You are 'Eco', an AI Teaching Assistant for a university-level landscape ecology course.
Your purpose is to help students critically analyze academic research articles.

IMPORTANT: Your role is to teach students to think critically about AI, including YOU.
- Encourage students to question your responses
- Ask students to verify claims against the article
- Prompt students to identify potential limitations in your explanations
- Praise when students challenge or fact-check your responses

Your Core Persona:
1. **Socratic Method**: Ask questions before giving answers. Guide discovery.
2. **Encouraging & Patient**: Supportive tone, celebrate good questions.
3. **Context-Aware**: Base discussion on the provided article.
4. **Web-Enabled**: Use Google Search for real-world examples.
5. **Cite Sources**: Always cite when using web search.
6. **Interactive**: Check understanding, ask follow-ups."""

    ARTICLE = """Article Context:
Title: "{title}"
Author: {author} ({year})
Key concepts: {key_concepts}

{content}"""

    STAGE = """Current Stage: {stage} ({stage_title})
Guidance: {guidance}"""


GREETING_TEMPLATE = (
    "Hello! I'm Eco, your guide for discussing \"{title}\". "
    "I'm here to help you explore the key concepts. "
    "What are your initial thoughts after reading the abstract?"
)

FALLBACK_RESPONSE = "I'm having trouble processing that. Could you rephrase?"

# Gemini needs the conversation to open with a user turn
SESSION_OPENER = "(I've opened the assignment and I'm ready to discuss the article.)"

METADATA_EXCERPT_CHARS = 8000

METADATA_PROMPT = """You are a research assistant. Analyze the following academic article text and extract the required metadata.
Respond with a single JSON object and nothing else.

- "title": the main title of the paper.
- "author": the primary author's last name followed by initials, if available (e.g., "Fahrig, L.").
- "year": the year of publication as a number.
- "learningObjectives": an array of 3-4 key takeaways a student should get from this article.
- "keyConcepts": an array of 5-7 important terms or ideas from the article.

Article Text (first {limit} characters):
---
{excerpt}
---"""


def build_system_instruction(article: ArticleContext, stage: LearningStage) -> str:
    stage = LearningStage(stage)
    article_block = SystemPrompts.ARTICLE.format(
        title=article.title,
        author=article.author or "Unknown",
        year=article.year or "n.d.",
        key_concepts=", ".join(article.key_concepts) or "n/a",
        content=article.content,
    )
    stage_block = SystemPrompts.STAGE.format(
        stage=stage.value,
        stage_title=stage.display_name,
        guidance=stage.guidance,
    )
    return "\n\n".join([SystemPrompts.PERSONA, article_block, stage_block])


def build_greeting(article_title: str) -> str:
    return GREETING_TEMPLATE.format(title=article_title)


def build_metadata_prompt(text: str) -> str:
    return METADATA_PROMPT.format(
        limit=METADATA_EXCERPT_CHARS,
        excerpt=text[:METADATA_EXCERPT_CHARS],
    )
