"""
Value types flowing through the dream analysis pipeline
"""
import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from dreammapper.services.phase_normalizer import UNKNOWN_PHASE, phase_glyph


class Sentiment(str, Enum):
    """Closed set of emotional tones the model is asked to choose from"""
    CALM = "calm"
    STRESSED = "stressed"
    MIXED = "mixed"
    SAD = "sad"
    HOPEFUL = "hopeful"
    CONFUSED = "confused"
    ANGRY = "angry"
    JOYFUL = "joyful"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class SubmissionState(str, Enum):
    """Lifecycle of one submission within a session"""
    IDLE = "idle"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


class AnalysisRequest(BaseModel):
    """One user submission; consumed once"""
    model_config = ConfigDict(frozen=True)

    title: str = ""
    text: str
    date: Optional[dt.date] = None
    location_id: Optional[str] = None


class BuiltPrompt(BaseModel):
    """Instruction + content pair sent to the inference backend"""
    model_config = ConfigDict(frozen=True)

    system: str
    user: str

    def to_messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


class Motif(BaseModel):
    """Symbol/meaning pair"""
    model_config = ConfigDict(frozen=True)

    symbol: str
    meaning: str


class ValidatedAnalysis(BaseModel):
    """Model output after allow-list validation and defaulting"""
    model_config = ConfigDict(frozen=True)

    summary: str = ""
    motifs: List[Motif] = Field(default_factory=list)
    personal_interpretation: str = ""
    what_to_do_next: List[str] = Field(default_factory=list)
    # Known values come from Sentiment; anything else is carried verbatim
    sentiment: Optional[str] = None


class MoonPhaseReading(BaseModel):
    """Raw code from the astronomy service and its display label"""
    model_config = ConfigDict(frozen=True)

    raw_code: str = UNKNOWN_PHASE
    canonical_label: str = UNKNOWN_PHASE


class CompletedDreamRecord(BaseModel):
    """Analysis merged with the moon label and request metadata"""
    model_config = ConfigDict(frozen=True)

    id: Optional[UUID] = None
    created_at: dt.datetime
    title: str
    text: str
    summary: str = ""
    motifs: List[Motif] = Field(default_factory=list)
    personal_interpretation: str = ""
    what_to_do_next: List[str] = Field(default_factory=list)
    sentiment: Optional[str] = None
    moon_phase: str = UNKNOWN_PHASE

    @classmethod
    def merge(
        cls,
        request: AnalysisRequest,
        analysis: ValidatedAnalysis,
        moon: MoonPhaseReading,
        created_at: dt.datetime,
    ) -> "CompletedDreamRecord":
        return cls(
            created_at=created_at,
            title=request.title,
            text=request.text,
            summary=analysis.summary,
            motifs=list(analysis.motifs),
            personal_interpretation=analysis.personal_interpretation,
            what_to_do_next=list(analysis.what_to_do_next),
            sentiment=analysis.sentiment,
            moon_phase=moon.canonical_label,
        )

    def to_response(self) -> Dict[str, Any]:
        """Wire format used by the HTTP API and the CLI"""
        return {
            "id": str(self.id) if self.id else None,
            "createdAt": self.created_at.isoformat(),
            "title": self.title,
            "text": self.text,
            "summary": self.summary,
            "motifs": [{"symbol": m.symbol, "meaning": m.meaning} for m in self.motifs],
            "personalInterpretation": self.personal_interpretation,
            "whatToDoNext": list(self.what_to_do_next),
            "sentiment": self.sentiment,
            "moonPhase": self.moon_phase,
            "moonGlyph": phase_glyph(self.moon_phase),
        }
