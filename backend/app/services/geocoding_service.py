"""
PlantLog Backend — Reverse Geocoding Service
==============================================

What:  Turns a coordinate pair into municipality / province / country /
       postal code using the Mapbox Geocoding v6 `reverse` endpoint.
How:   One HTTPS GET per call through httpx. No caching, no retry: any
       failure raises GeocodingError and the calling request fails (503).
Who:   SampleService, when samples are logged with fresh coordinates.

Response walk:
    {
      "features": [
        {
          "properties": {
            "name": "Diliman",
            "place_formatted": "Quezon City, Metro Manila, Philippines",
            "context": {
              "locality": {"name": "Diliman"},
              "place":    {"name": "Quezon City"},
              "region":   {"name": "Metro Manila"},
              "country":  {"name": "Philippines"},
              "postcode": {"name": "1101"}
            }
          }
        },
        ...
      ]
    }

    Features are scanned in order; the first non-empty value found for each
    field wins. Municipality falls back to the top feature's `name`, then its
    `place_formatted`.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.exceptions import GeocodingError

logger = logging.getLogger(__name__)


@dataclass
class ReverseGeocodeResult:
    municipality: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def _context_name(context: Dict[str, Any], key: str) -> Optional[str]:
    entry = context.get(key)
    if isinstance(entry, dict):
        name = entry.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()
    return None


def parse_reverse_response(payload: Dict[str, Any]) -> ReverseGeocodeResult:
    """Extract administrative names from a v6 reverse-geocoding response."""
    result = ReverseGeocodeResult(raw=payload)
    features = payload.get("features") or []

    for feature in features:
        context = (feature.get("properties") or {}).get("context") or {}
        if not isinstance(context, dict):
            continue
        if result.municipality is None:
            result.municipality = _context_name(context, "locality") or _context_name(context, "place")
        if result.province is None:
            result.province = _context_name(context, "region")
        if result.country is None:
            result.country = _context_name(context, "country")
        if result.postal_code is None:
            result.postal_code = _context_name(context, "postcode")

    if result.municipality is None and features:
        top = features[0].get("properties") or {}
        result.municipality = top.get("name") or top.get("place_formatted") or None

    return result


class GeocodingService:
    """
    Thin client for the reverse-geocoding API.

    `transport` is passed straight to httpx.AsyncClient; tests hand in an
    httpx.MockTransport.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(settings.geocoding_api_token)

    async def reverse(self, latitude: float, longitude: float) -> ReverseGeocodeResult:
        """
        Reverse geocode one point.

        Raises:
            GeocodingError: token missing, transport failure, non-2xx status,
                            or a body that is not a JSON object
        """
        if not self.is_configured:
            raise GeocodingError(
                "Reverse geocoding is not configured (GEOCODING_API_TOKEN is missing)"
            )

        url = f"{settings.geocoding_base_url}/reverse"
        params = {
            "longitude": f"{longitude}",
            "latitude": f"{latitude}",
            "access_token": settings.geocoding_api_token,
        }

        try:
            async with httpx.AsyncClient(
                timeout=settings.geocoding_timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Reverse geocoding returned HTTP %d for (%s, %s)",
                e.response.status_code, latitude, longitude,
            )
            raise GeocodingError(
                f"Reverse geocoding failed with HTTP {e.response.status_code}",
                context={"status_code": e.response.status_code},
            )
        except httpx.HTTPError as e:
            logger.warning("Reverse geocoding request failed: %s", str(e))
            raise GeocodingError(
                "Reverse geocoding service is unreachable",
                context={"error_type": type(e).__name__},
            )
        except ValueError:
            raise GeocodingError("Reverse geocoding returned an unreadable response")

        if not isinstance(payload, dict):
            raise GeocodingError("Reverse geocoding returned an unreadable response")

        result = parse_reverse_response(payload)
        logger.info(
            "Reverse geocoded (%s, %s) → %s, %s, %s",
            latitude, longitude, result.municipality, result.province, result.country,
        )
        return result


# ── Singleton Instance ────────────────────────────────────────────────────
geocoding_service = GeocodingService()
