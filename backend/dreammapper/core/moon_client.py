"""
Astronomy API client for moon phase lookups (timeanddate.com astronomy service)
"""
import datetime as dt
from typing import Any, Optional

import httpx

from dreammapper.core.config import get_settings
from dreammapper.core.errors import MoonPhaseUnavailable
from dreammapper.core.logging_config import LoggingConfig
from dreammapper.core.metrics import moon_lookups_total
from dreammapper.models.analysis_types import MoonPhaseReading
from dreammapper.services.phase_normalizer import UNKNOWN_PHASE, normalize_phase

logger = LoggingConfig.get_logger(__name__)


def extract_phase_code(payload: Any) -> Optional[str]:
    """
    Walk locations[0].astronomy.objects[name == "moon"].days[0].moonphase

    Returns None when any step of the path is missing or has the wrong shape.
    """
    if not isinstance(payload, dict):
        return None
    locations = payload.get("locations")
    if not isinstance(locations, list) or not locations or not isinstance(locations[0], dict):
        return None
    astronomy = locations[0].get("astronomy")
    if not isinstance(astronomy, dict):
        return None
    objects = astronomy.get("objects")
    if not isinstance(objects, list):
        return None
    moon = next(
        (
            obj for obj in objects
            if isinstance(obj, dict) and str(obj.get("name") or "").lower() == "moon"
        ),
        None,
    )
    if moon is None:
        return None
    days = moon.get("days")
    if not isinstance(days, list) or not days or not isinstance(days[0], dict):
        return None
    phase = days[0].get("moonphase")
    if not isinstance(phase, str) or not phase:
        return None
    return phase


class MoonPhaseClient:
    """Best-effort moon phase lookup; never fails the caller"""

    def __init__(
        self,
        api_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        default_place_id: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_url = api_url or settings.moon_api_url
        self.access_key = access_key if access_key is not None else settings.moon_access_key
        self.secret_key = secret_key if secret_key is not None else settings.moon_secret_key
        self.default_place_id = default_place_id or settings.moon_default_place_id
        self.timeout = timeout or settings.moon_timeout_seconds
        self._transport = transport

    def build_params(self, date: dt.date, place_id: Optional[str] = None) -> dict:
        return {
            "version": "3",
            "accesskey": self.access_key or "",
            "secretkey": self.secret_key or "",
            "placeid": place_id or self.default_place_id,
            "object": "moon",
            "types": "phase",
            "startdt": date.strftime("%Y-%m-%d"),
        }

    async def fetch_raw_phase(self, date: dt.date, place_id: Optional[str] = None) -> str:
        """
        Fetch the raw phase code for a date and location.

        Raises:
            MoonPhaseUnavailable: missing credentials, transport error, timeout,
                non-success status or a response without a phase code
        """
        if not (self.access_key and self.secret_key):
            raise MoonPhaseUnavailable("Astronomy API credentials are not configured")

        params = self.build_params(date, place_id)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.api_url, params=params)
        except httpx.TimeoutException as e:
            raise MoonPhaseUnavailable(f"Moon API timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise MoonPhaseUnavailable(f"Moon API request failed: {type(e).__name__}") from e

        if response.status_code != 200:
            raise MoonPhaseUnavailable(f"Moon API returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise MoonPhaseUnavailable("Moon API returned a non-JSON body") from e

        phase = extract_phase_code(payload)
        if phase is None:
            raise MoonPhaseUnavailable("Moon API response has no moon phase entry")
        return phase

    async def fetch_reading(self, date: Optional[dt.date] = None, place_id: Optional[str] = None) -> MoonPhaseReading:
        """Fetch and normalize; degrades to the unknown sentinel on any failure"""
        date = date or dt.date.today()
        try:
            raw_code = await self.fetch_raw_phase(date, place_id)
        except MoonPhaseUnavailable as e:
            moon_lookups_total.labels(outcome="degraded").inc()
            logger.warning(
                "Moon phase unavailable, using sentinel",
                extra={"reason": e.message, "date": date.isoformat(), "place_id": place_id or self.default_place_id}
            )
            return MoonPhaseReading(raw_code=UNKNOWN_PHASE, canonical_label=UNKNOWN_PHASE)

        moon_lookups_total.labels(outcome="ok").inc()
        return MoonPhaseReading(raw_code=raw_code, canonical_label=normalize_phase(raw_code))


# Global client instance
_moon_client: Optional[MoonPhaseClient] = None


def get_moon_client() -> MoonPhaseClient:
    """Get global moon phase client instance"""
    global _moon_client
    if _moon_client is None:
        _moon_client = MoonPhaseClient()
    return _moon_client
