"""
Parse, salvage and validate raw model output into a ValidatedAnalysis.

The model is asked for strict JSON but its output is treated as untrusted
text. Parsing happens in two steps: a direct parse of the whole text, then a
salvage parse of the slice between the first "{" and the last "}". Only the
allow-listed keys are read from the resulting object; everything else is
ignored.

Defaulting rules:
    - an absent (or null) key gets its default: "" for strings, [] for lists,
      None for sentiment
    - a key present with the wrong type is a hard failure
    - every motif must be an object with string "symbol" and "meaning"
    - a sentiment outside the known set is kept verbatim and logged
"""
import json
from typing import Any, Dict, List, Optional, Tuple

from dreammapper.core.errors import MalformedInferenceOutput
from dreammapper.core.logging_config import LoggingConfig
from dreammapper.core.metrics import llm_output_salvaged_total
from dreammapper.models.analysis_types import (Motif, Sentiment,
                                               ValidatedAnalysis)

logger = LoggingConfig.get_logger(__name__)

# Wire key -> ValidatedAnalysis field
ALLOWED_KEYS: Dict[str, str] = {
    "summary": "summary",
    "motifs": "motifs",
    "personalInterpretation": "personal_interpretation",
    "whatToDoNext": "what_to_do_next",
    "sentiment": "sentiment",
}

# Bounded prefix of the raw output kept in logs
_LOG_PREFIX_CHARS = 200


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    # RecursionError: pathologically nested input exhausts the decoder
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def salvage_slice(raw: str) -> Optional[str]:
    """Substring from the first "{" to the last "}", or None if there is none"""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end <= start:
        return None
    return raw[start:end + 1]


def parse_json_object(raw: str) -> Tuple[Dict[str, Any], bool]:
    """
    Parse raw text into a JSON object.

    Returns:
        (object, salvaged) where salvaged tells whether the brace slice was used

    Raises:
        MalformedInferenceOutput: neither the text nor its brace slice is a JSON object
    """
    if not isinstance(raw, str):
        raise MalformedInferenceOutput("Inference output is not text", raw_output=None)

    payload = _loads_object(raw)
    if payload is not None:
        return payload, False

    candidate = salvage_slice(raw)
    if candidate is not None:
        payload = _loads_object(candidate)
        if payload is not None:
            llm_output_salvaged_total.inc()
            logger.info(
                "Salvaged JSON object from inference output",
                extra={"raw_length": len(raw), "slice_length": len(candidate)}
            )
            return payload, True

    logger.error(
        "Inference output contains no JSON object",
        extra={"raw_length": len(raw), "raw_prefix": raw[:_LOG_PREFIX_CHARS]}
    )
    raise MalformedInferenceOutput("Inference output is not valid JSON", raw_output=raw)


def _fail(message: str, raw: str) -> MalformedInferenceOutput:
    logger.error(
        f"Inference output failed validation: {message}",
        extra={"raw_length": len(raw), "raw_prefix": raw[:_LOG_PREFIX_CHARS]}
    )
    return MalformedInferenceOutput(message, raw_output=raw)


def _string_field(payload: Dict[str, Any], key: str, raw: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _fail(f"'{key}' must be a string, got {type(value).__name__}", raw)
    return value


def _list_field(payload: Dict[str, Any], key: str, raw: str) -> List[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _fail(f"'{key}' must be an array, got {type(value).__name__}", raw)
    return value


def _motifs(payload: Dict[str, Any], raw: str) -> List[Motif]:
    motifs = []
    for index, item in enumerate(_list_field(payload, "motifs", raw)):
        if not isinstance(item, dict):
            raise _fail(f"motifs[{index}] must be an object", raw)
        symbol = item.get("symbol")
        meaning = item.get("meaning")
        if not isinstance(symbol, str) or not isinstance(meaning, str):
            raise _fail(f"motifs[{index}] needs string 'symbol' and 'meaning'", raw)
        motifs.append(Motif(symbol=symbol, meaning=meaning))
    return motifs


def _next_steps(payload: Dict[str, Any], raw: str) -> List[str]:
    steps = _list_field(payload, "whatToDoNext", raw)
    for index, item in enumerate(steps):
        if not isinstance(item, str):
            raise _fail(f"whatToDoNext[{index}] must be a string", raw)
    return list(steps)


def _sentiment(payload: Dict[str, Any], raw: str) -> Optional[str]:
    value = payload.get("sentiment")
    if value is None:
        return None
    if not isinstance(value, str):
        raise _fail(f"'sentiment' must be a string, got {type(value).__name__}", raw)
    if value not in Sentiment.values():
        logger.warning(
            "Unrecognized sentiment carried through",
            extra={"sentiment": value, "allowed": Sentiment.values()}
        )
    return value


def validate_analysis(raw: str) -> ValidatedAnalysis:
    """
    Turn raw inference output into a ValidatedAnalysis.

    Raises:
        MalformedInferenceOutput: no JSON object after salvage, or a field of the wrong type
    """
    payload, _ = parse_json_object(raw)

    ignored = sorted(key for key in payload if key not in ALLOWED_KEYS)
    if ignored:
        logger.debug("Ignoring unknown keys in inference output", extra={"keys": ignored})

    return ValidatedAnalysis(
        summary=_string_field(payload, "summary", raw),
        motifs=_motifs(payload, raw),
        personal_interpretation=_string_field(payload, "personalInterpretation", raw),
        what_to_do_next=_next_steps(payload, raw),
        sentiment=_sentiment(payload, raw),
    )
