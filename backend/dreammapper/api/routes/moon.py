"""
Diagnostic moon phase lookup
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dreammapper.core.errors import ValidationError
from dreammapper.core.moon_client import MoonPhaseClient, get_moon_client
from dreammapper.services.phase_normalizer import phase_glyph
from dreammapper.utils.datetime_utils import parse_calendar_date

router = APIRouter(prefix="/api/moon-phase", tags=["moon"])


@router.get("")
async def moon_phase(
    date: Optional[str] = Query(default=None, description="YYYY-MM-DD, defaults to today"),
    placeId: Optional[str] = Query(default=None),
    client: MoonPhaseClient = Depends(get_moon_client),
):
    """Moon phase for a date/location; degraded readings still return 200"""
    try:
        day = parse_calendar_date(date)
    except ValueError as e:
        raise ValidationError(f"invalid date: {date!r}") from e
    reading = await client.fetch_reading(day, placeId)
    return {
        "rawCode": reading.raw_code,
        "moonPhase": reading.canonical_label,
        "moonGlyph": phase_glyph(reading.canonical_label),
    }
