"""
Moon phase code normalization and display glyphs
"""
from typing import Callable, Dict, List, Tuple

# Injected by the moon client when no reading could be obtained
UNKNOWN_PHASE = "Unknown Phase"

PHASE_LABELS: Dict[str, str] = {
    "newmoon": "New Moon",
    "waxingcrescent": "Waxing Crescent",
    "firstquarter": "First Quarter",
    "waxinggibbous": "Waxing Gibbous",
    "fullmoon": "Full Moon",
    "waninggibbous": "Waning Gibbous",
    "lastquarter": "Last Quarter",
    "waningcrescent": "Waning Crescent",
}

FALLBACK_GLYPH = "\U0001F319"  # crescent moon

# Evaluated top to bottom; first match wins.
GLYPH_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (lambda label: "new" in label, "\U0001F311"),
    (lambda label: "waxing crescent" in label, "\U0001F312"),
    (lambda label: "first quarter" in label, "\U0001F313"),
    (lambda label: "waxing gibbous" in label, "\U0001F314"),
    (lambda label: "full" in label, "\U0001F315"),
    (lambda label: "waning gibbous" in label, "\U0001F316"),
    (lambda label: "last quarter" in label, "\U0001F317"),
    (lambda label: "waning crescent" in label, "\U0001F318"),
]


def normalize_phase(raw_code: str) -> str:
    """Map a raw phase code to its label; unknown codes are returned unchanged."""
    return PHASE_LABELS.get(raw_code.lower(), raw_code)


def phase_glyph(label: str) -> str:
    """Pick the display glyph for a canonical label."""
    lowered = label.lower()
    for matches, glyph in GLYPH_RULES:
        if matches(lowered):
            return glyph
    return FALLBACK_GLYPH
