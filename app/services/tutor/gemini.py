# ============================================================================
# Gemini Tutor Adapter
# ============================================================================
"""
Gemini-backed implementations of the tutor's language model seams:

- GeminiTurnGenerator: replays the transcript plus the student's new message
  as Gemini contents, grounded with Google Search by default.
- ArticleAnalyzer: extracts article metadata (title, author, year, learning
  objectives, key concepts) from pasted article text.

SDK calls are blocking, so they run in the default executor and are bounded
by ``AI_TIMEOUT_SECONDS``.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from app.config import Settings, get_settings
from app.core.exceptions import AIUnavailableError
from app.services.tutor.generator import HistoryTurn, Source, TurnGenerator, TutorReply
from app.services.tutor.prompts import (
    ArticleContext,
    SESSION_OPENER,
    build_metadata_prompt,
    build_system_instruction,
)
from app.services.tutor.stages import LearningStage

logger = logging.getLogger(__name__)

ROLE_MAP = {"user": "user", "ai": "model"}

SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold="BLOCK_ONLY_HIGH")
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


def build_chat_history(history: List[HistoryTurn]) -> List[Dict[str, Any]]:
    """
    Convert persisted turns into Gemini contents.

    Gemini expects alternating user/model turns starting with the user, so
    consecutive turns from the same side are merged and a transcript that
    opens with the tutor's greeting gets a short user opener in front.
    """
    contents: List[Dict[str, Any]] = []
    for turn in history:
        role = ROLE_MAP.get(turn.role, "user")
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].append({"text": turn.text})
        else:
            contents.append({"role": role, "parts": [{"text": turn.text}]})

    if contents and contents[0]["role"] == "model":
        contents.insert(0, {"role": "user", "parts": [{"text": SESSION_OPENER}]})
    return contents


def extract_sources(response: Any) -> List[Source]:
    """Web citations from the first candidate's grounding metadata"""
    try:
        candidate = response.candidates[0]
    except (AttributeError, IndexError, TypeError):
        return []

    metadata = getattr(candidate, "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources: List[Source] = []
    seen = set()
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        if not uri or uri in seen:
            continue
        seen.add(uri)
        sources.append(Source(uri=uri, title=getattr(web, "title", "") or ""))
    return sources


class GeminiTurnGenerator(TurnGenerator):
    """Tutor turns generated by Gemini"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.model_name = self.settings.GEMINI_MODEL
        self.timeout = self.settings.AI_TIMEOUT_SECONDS
        self.enable_search = self.settings.GEMINI_ENABLE_SEARCH
        self._client = genai.Client(api_key=self.settings.GEMINI_API_KEY) if self.settings.GEMINI_API_KEY else None
        if self._client is None:
            logger.warning("⚠️ GEMINI_API_KEY not set - tutor replies will use the fallback message")

        self._stats = {"turns": 0, "errors": 0, "total_generation_time_ms": 0.0}

    def _build_config(self, system_instruction: str) -> types.GenerateContentConfig:
        tools = [types.Tool(google_search=types.GoogleSearch())] if self.enable_search else None
        return types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=0.7,
            max_output_tokens=1024,
            safety_settings=SAFETY_SETTINGS,
            tools=tools,
        )

    async def generate_turn(
        self,
        history: List[HistoryTurn],
        user_text: str,
        stage: LearningStage,
        article: ArticleContext,
    ) -> TutorReply:
        if self._client is None:
            raise AIUnavailableError("GEMINI_API_KEY is not configured")

        self._stats["turns"] += 1
        contents = build_chat_history(history + [HistoryTurn(role="user", text=user_text)])
        config = self._build_config(build_system_instruction(article, stage))

        start = time.time()
        try:
            loop = asyncio.get_running_loop()
            response = await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    lambda: self._client.models.generate_content(
                        model=self.model_name,
                        contents=contents,
                        config=config,
                    ),
                ),
                timeout=self.timeout,
            )
            text = (response.text or "").strip()
        except asyncio.TimeoutError:
            self._stats["errors"] += 1
            logger.error(f"Gemini turn timed out after {self.timeout}s")
            raise AIUnavailableError("AI tutor timed out")
        except Exception as e:
            self._stats["errors"] += 1
            logger.error(f"Gemini turn failed: {e}")
            raise AIUnavailableError(str(e)) from e
        finally:
            self._stats["total_generation_time_ms"] += (time.time() - start) * 1000

        if not text:
            self._stats["errors"] += 1
            raise AIUnavailableError("Empty response from Gemini")

        return TutorReply(text=text, sources=extract_sources(response))

    def get_stats(self) -> Dict[str, Any]:
        stats = dict(self._stats)
        turns = stats["turns"] or 1
        stats["avg_generation_time_ms"] = stats["total_generation_time_ms"] / turns
        return stats


# ============================================================================
# Article Metadata Extraction
# ============================================================================
_JSON_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


def parse_metadata(raw: str) -> Dict[str, Any]:
    """Normalize the model's JSON into article fields"""
    try:
        data = json.loads(_JSON_FENCE.sub("", raw.strip()))
    except json.JSONDecodeError as e:
        raise AIUnavailableError("Failed to analyze the article") from e
    if not isinstance(data, dict):
        raise AIUnavailableError("Failed to analyze the article")

    try:
        year = int(data.get("year"))
    except (TypeError, ValueError):
        year = None

    title = str(data.get("title") or "").strip()
    author = str(data.get("author") or "").strip()
    if not title or not author or year is None:
        raise AIUnavailableError("Article metadata is incomplete; enter it manually")

    return {
        "title": title[:500],
        "author": author[:255],
        "year": year,
        "learning_objectives": [str(o) for o in data.get("learningObjectives") or []],
        "key_concepts": [str(c) for c in data.get("keyConcepts") or []],
    }


class ArticleAnalyzer:
    """Extracts article metadata from raw text with Gemini"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client = genai.Client(api_key=self.settings.GEMINI_API_KEY) if self.settings.GEMINI_API_KEY else None

    async def analyze(self, text: str) -> Dict[str, Any]:
        if self._client is None:
            raise AIUnavailableError("GEMINI_API_KEY is not configured")

        prompt = build_metadata_prompt(text)
        try:
            loop = asyncio.get_running_loop()
            response = await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    lambda: self._client.models.generate_content(
                        model=self.settings.GEMINI_MODEL,
                        contents=prompt,
                        config=types.GenerateContentConfig(
                            temperature=0.2,
                            response_mime_type="application/json",
                        ),
                    ),
                ),
                timeout=self.settings.AI_TIMEOUT_SECONDS,
            )
            raw = response.text or ""
        except asyncio.TimeoutError:
            raise AIUnavailableError("Article analysis timed out")
        except Exception as e:
            logger.error(f"Article analysis failed: {e}")
            raise AIUnavailableError("Failed to analyze the article") from e

        return parse_metadata(raw)
