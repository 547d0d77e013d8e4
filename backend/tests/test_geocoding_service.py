"""
PlantLog Backend — Geocoding Service Unit Tests
=================================================

What:  Reverse geocoding against an httpx.MockTransport (no network).

What we test:
    ✅ Context walk: locality/place → municipality, region → province, country, postcode
    ✅ Municipality fallbacks to feature name / place_formatted
    ✅ Request shape (longitude/latitude/access_token query params)
    ✅ Non-2xx, transport errors, bad bodies and a missing token raise GeocodingError
"""

from unittest.mock import patch

import httpx
import pytest

from app.config import settings
from app.exceptions import GeocodingError
from app.services.geocoding_service import GeocodingService, parse_reverse_response

QUEZON_CITY = {
    "type": "FeatureCollection",
    "features": [
        {
            "properties": {
                "name": "Diliman",
                "place_formatted": "Quezon City, Metro Manila, Philippines",
                "context": {
                    "locality": {"name": "Diliman"},
                    "place": {"name": "Quezon City"},
                    "region": {"name": "Metro Manila"},
                    "country": {"name": "Philippines"},
                    "postcode": {"name": "1101"},
                },
            }
        }
    ],
}


class TestParseReverseResponse:

    def test_context_fields(self):
        result = parse_reverse_response(QUEZON_CITY)
        assert result.municipality == "Diliman"
        assert result.province == "Metro Manila"
        assert result.country == "Philippines"
        assert result.postal_code == "1101"
        assert result.raw is QUEZON_CITY

    def test_place_used_without_locality(self):
        payload = {"features": [{"properties": {"context": {"place": {"name": "Baguio"}}}}]}
        assert parse_reverse_response(payload).municipality == "Baguio"

    def test_later_features_fill_gaps(self):
        payload = {
            "features": [
                {"properties": {"context": {"place": {"name": "Baguio"}}}},
                {"properties": {"context": {"region": {"name": "Benguet"}, "country": {"name": "Philippines"}}}},
            ]
        }
        result = parse_reverse_response(payload)
        assert result.province == "Benguet"
        assert result.country == "Philippines"

    def test_municipality_falls_back_to_place_formatted(self):
        payload = {"features": [{"properties": {"place_formatted": "Somewhere at sea", "context": {}}}]}
        assert parse_reverse_response(payload).municipality == "Somewhere at sea"

    def test_empty_collection(self):
        result = parse_reverse_response({"features": []})
        assert result.municipality is None
        assert result.country is None


class TestGeocodingServiceReverse:

    @pytest.mark.asyncio
    async def test_successful_lookup(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(200, json=QUEZON_CITY)

        service = GeocodingService(transport=httpx.MockTransport(handler))
        result = await service.reverse(14.676, 121.0437)

        assert result.municipality == "Diliman"
        assert seen["url"].path == "/v6/reverse"
        assert seen["url"].params["longitude"] == "121.0437"
        assert seen["url"].params["latitude"] == "14.676"
        assert seen["url"].params["access_token"] == settings.geocoding_api_token

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        service = GeocodingService(transport=httpx.MockTransport(lambda r: httpx.Response(401, json={})))
        with pytest.raises(GeocodingError) as exc_info:
            await service.reverse(14.6, 121.0)
        assert "HTTP 401" in exc_info.value.message
        assert exc_info.value.context["status_code"] == 401

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = GeocodingService(transport=httpx.MockTransport(handler))
        with pytest.raises(GeocodingError) as exc_info:
            await service.reverse(14.6, 121.0)
        assert "unreachable" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        service = GeocodingService(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>")))
        with pytest.raises(GeocodingError):
            await service.reverse(14.6, 121.0)

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        service = GeocodingService(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[1, 2])))
        with pytest.raises(GeocodingError):
            await service.reverse(14.6, 121.0)

    @pytest.mark.asyncio
    async def test_missing_token_fails_without_calling_out(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=QUEZON_CITY)

        service = GeocodingService(transport=httpx.MockTransport(handler))
        with patch.object(settings, "geocoding_api_token", ""):
            assert service.is_configured is False
            with pytest.raises(GeocodingError):
                await service.reverse(14.6, 121.0)
        assert calls == []
