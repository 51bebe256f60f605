# tests/test_feedback_service.py
import asyncio
from types import SimpleNamespace

import pytest

from vlog_portal.core.config import settings
from vlog_portal.services import feedback_service
from vlog_portal.services.feedback_service import (
    DEFAULT_FEEDBACK,
    build_prompt,
    generate_encouraging_feedback,
)


def stub_client(create):
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def completion(text):
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def test_prompt_names_student_class_and_title():
    prompt = build_prompt("Siti", "Science Fair Recap", "9-C")
    assert '"Siti"' in prompt
    assert '"9-C"' in prompt
    assert '"Science Fair Recap"' in prompt


@pytest.mark.asyncio
async def test_missing_api_key_returns_default(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    monkeypatch.setattr(feedback_service, "_client", None)

    result = await generate_encouraging_feedback("Siti", "Vlog", "9-C")

    assert result.value == DEFAULT_FEEDBACK
    assert result.reason == "missing_api_key"


@pytest.mark.asyncio
async def test_generated_message_is_trimmed():
    calls = []

    async def create(**kwargs):
        calls.append(kwargs)
        return completion("  Awesome work, Siti! 🎉 \n")

    result = await generate_encouraging_feedback(
        "Siti", "Vlog", "9-C", client=stub_client(create)
    )

    assert result.ok
    assert result.value == "Awesome work, Siti! 🎉"
    assert calls[0]["model"] == settings.FEEDBACK_MODEL
    assert calls[0]["messages"][-1]["role"] == "user"


@pytest.mark.asyncio
async def test_api_error_returns_default():
    async def create(**kwargs):
        raise RuntimeError("quota exceeded")

    result = await generate_encouraging_feedback(
        "Siti", "Vlog", "9-C", client=stub_client(create)
    )

    assert result.value == DEFAULT_FEEDBACK
    assert result.reason == "api_error"


@pytest.mark.asyncio
async def test_empty_response_returns_default():
    async def create(**kwargs):
        return completion(None)

    result = await generate_encouraging_feedback(
        "Siti", "Vlog", "9-C", client=stub_client(create)
    )

    assert result.value == DEFAULT_FEEDBACK
    assert result.reason == "empty_response"


@pytest.mark.asyncio
async def test_slow_model_hits_deadline(monkeypatch):
    monkeypatch.setattr(settings, "FEEDBACK_TIMEOUT_SECONDS", 0.05)

    async def create(**kwargs):
        await asyncio.sleep(0.3)
        return completion("Too late")

    result = await generate_encouraging_feedback(
        "Siti", "Vlog", "9-C", client=stub_client(create)
    )

    assert result.value == DEFAULT_FEEDBACK
    assert result.reason == "timeout"
