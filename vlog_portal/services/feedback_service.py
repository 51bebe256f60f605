# vlog_portal/services/feedback_service.py
"""
AI encouragement message for a fresh submission.

Uses Gemini through its OpenAI-compatible endpoint. The message is
decorative: a missing key, timeout or API error falls back to
DEFAULT_FEEDBACK and never blocks the submission.
"""

import asyncio
import logging
from typing import Optional

from openai import AsyncOpenAI

from vlog_portal.core.config import settings
from vlog_portal.core.timeouts import race
from vlog_portal.services.best_effort import BestEffort

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK = "Assignment received! Keep up the great work."

SYSTEM_PROMPT = "You are a warm, upbeat teacher. Output only the message itself."

# Lazy singleton
_client: AsyncOpenAI | None = None


def _get_client() -> Optional[AsyncOpenAI]:
    global _client
    if _client is None:
        if not settings.GEMINI_API_KEY:
            return None
        _client = AsyncOpenAI(
            api_key=settings.GEMINI_API_KEY,
            base_url=settings.FEEDBACK_BASE_URL,
        )
    return _client


def build_prompt(student_name: str, video_title: str, class_label: str) -> str:
    return (
        f'A student named "{student_name}" from class "{class_label}" just handed in '
        f'a vlog assignment titled "{video_title}".\n'
        "Write a very short encouraging message (one sentence at most) confirming "
        "the assignment was received. Do not critique the video; simply acknowledge "
        "the submission with enthusiasm and positivity."
    )


async def _complete(client: AsyncOpenAI, prompt: str) -> str:
    response = await client.chat.completions.create(
        model=settings.FEEDBACK_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        temperature=0.9,
        max_tokens=120,
    )
    return (response.choices[0].message.content or "").strip()


async def generate_encouraging_feedback(
    student_name: str,
    video_title: str,
    class_label: str,
    *,
    client: Optional[AsyncOpenAI] = None,
) -> BestEffort[str]:
    """
    One chat-completion call, bounded by FEEDBACK_TIMEOUT_SECONDS. Never raises.
    """
    client = client or _get_client()
    if client is None:
        logger.warning("GEMINI_API_KEY not set, returning default feedback")
        return BestEffort.fallback(DEFAULT_FEEDBACK, "missing_api_key")

    prompt = build_prompt(student_name, video_title, class_label)
    try:
        text = await race(_complete(client, prompt), settings.FEEDBACK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning(
            "Feedback generation timed out after %ss, using default",
            settings.FEEDBACK_TIMEOUT_SECONDS,
        )
        return BestEffort.fallback(DEFAULT_FEEDBACK, "timeout")
    except Exception as e:
        # any provider/SDK failure degrades to the default message
        logger.error(f"Feedback generation failed (safe fallback): {e}")
        return BestEffort.fallback(DEFAULT_FEEDBACK, "api_error")

    if not text:
        return BestEffort.fallback(DEFAULT_FEEDBACK, "empty_response")
    return BestEffort.success(text)
