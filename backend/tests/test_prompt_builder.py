"""
Tests for prompt construction and the input length gate
"""
import pytest

from dreammapper.core.errors import ValidationError
from dreammapper.models.analysis_types import Sentiment
from dreammapper.services.prompt_builder import (MIN_TEXT_LENGTH, SYSTEM_PROMPT,
                                                build_prompt,
                                                validate_dream_text)


@pytest.mark.parametrize("text", ["", "   ", "short", "  1234567  ", "\n\tabc\n"])
def test_short_text_is_rejected(text):
    with pytest.raises(ValidationError):
        build_prompt("Title", text)


def test_minimum_length_counts_trimmed_text():
    assert validate_dream_text("  12345678  ") == "12345678"
    assert MIN_TEXT_LENGTH == 8


def test_prompt_embeds_title_and_text_verbatim():
    prompt = build_prompt("Tunnel", "I ran through a dark tunnel.")
    assert prompt.system == SYSTEM_PROMPT
    assert prompt.user == 'Dream Title: Tunnel\n\nDream Text:\n"""I ran through a dark tunnel."""'


def test_prompt_is_deterministic():
    assert build_prompt("A", "flying over the sea") == build_prompt("A", "flying over the sea")


def test_system_prompt_names_schema_and_sentiments():
    for key in ("summary", "motifs", "personalInterpretation", "whatToDoNext", "sentiment"):
        assert key in SYSTEM_PROMPT
    for value in Sentiment.values():
        assert value in SYSTEM_PROMPT
    assert "{calm, stressed, mixed, sad, hopeful, confused, angry, joyful}" in SYSTEM_PROMPT


def test_messages_are_system_then_user():
    messages = build_prompt("", "a long enough dream").to_messages()
    assert [m["role"] for m in messages] == ["system", "user"]
    assert messages[1]["content"].startswith("Dream Title: \n\n")
