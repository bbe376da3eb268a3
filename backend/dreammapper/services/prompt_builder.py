"""
Builds the analysis prompt and gates input before any network call
"""
from dreammapper.core.errors import ValidationError
from dreammapper.models.analysis_types import BuiltPrompt, Sentiment

MIN_TEXT_LENGTH = 8

SYSTEM_PROMPT = (
    "You analyze dreams. The user already provides a title. "
    "Output STRICT JSON ONLY with keys: summary, motifs[{symbol,meaning}], "
    "personalInterpretation, whatToDoNext[], sentiment. "
    "Give between 3 and 7 motifs. "
    f"Sentiment is in {{{', '.join(Sentiment.values())}}}. "
    "No markdown. No extra keys."
)


def validate_dream_text(text: str) -> str:
    """Return the trimmed text or raise ValidationError when it is too short"""
    trimmed = (text or "").strip()
    if len(trimmed) < MIN_TEXT_LENGTH:
        raise ValidationError(
            f"Dream text must be at least {MIN_TEXT_LENGTH} characters",
            metadata={"length": len(trimmed)},
        )
    return trimmed


def build_prompt(title: str, text: str) -> BuiltPrompt:
    """
    Build the system directive and user payload for one dream.

    Deterministic: identical title/text always produce an identical prompt.
    Title and text are embedded verbatim.

    Raises:
        ValidationError: trimmed text shorter than MIN_TEXT_LENGTH
    """
    validate_dream_text(text)
    user_content = (
        f"Dream Title: {title or ''}\n\n"
        f'Dream Text:\n"""{text}"""'
    )
    return BuiltPrompt(system=SYSTEM_PROMPT, user=user_content)
