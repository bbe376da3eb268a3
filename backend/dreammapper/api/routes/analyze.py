"""
Dream analysis endpoint
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, Field

from dreammapper.core.errors import ValidationError
from dreammapper.core.logging_config import LoggingConfig
from dreammapper.models.analysis_types import AnalysisRequest
from dreammapper.services.analysis_orchestrator import (
    AnalysisOrchestrator, get_analysis_orchestrator)
from dreammapper.utils.datetime_utils import parse_calendar_date

router = APIRouter(prefix="/api", tags=["analysis"])
logger = LoggingConfig.get_logger(__name__)


class AnalyzeDreamBody(BaseModel):
    """Request body for POST /api/analyzeDream"""
    title: Optional[str] = Field(default=None, description="Dream title (may be empty)")
    text: Optional[str] = Field(default=None, description="Dream narrative")
    date: Optional[str] = Field(default=None, description="Date of the dream, YYYY-MM-DD or ISO datetime")
    placeId: Optional[str] = Field(default=None, description="Astronomy service location id, e.g. norway/oslo")


def to_analysis_request(body: AnalyzeDreamBody) -> AnalysisRequest:
    """Check presence of required fields and convert to the pipeline request"""
    if body.title is None or body.text is None:
        raise ValidationError("missing title or text")
    try:
        dream_date = parse_calendar_date(body.date)
    except ValueError as e:
        raise ValidationError(f"invalid date: {body.date!r}") from e
    return AnalysisRequest(
        title=body.title.strip(),
        text=body.text.strip(),
        date=dream_date,
        location_id=body.placeId or None,
    )


@router.post("/analyzeDream")
async def analyze_dream(
    body: AnalyzeDreamBody,
    x_session_id: Optional[str] = Header(default=None),
    orchestrator: AnalysisOrchestrator = Depends(get_analysis_orchestrator),
):
    """
    Analyze a dream, attach the moon phase and save the result

    Returns:
        dict: the saved record (summary, motifs, personalInterpretation,
        whatToDoNext, sentiment, moonPhase plus id/createdAt/title/text/moonGlyph)
    """
    request = to_analysis_request(body)
    record = await orchestrator.submit(request, session_id=x_session_id)
    return record.to_response()
