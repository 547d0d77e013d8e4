"""
PlantLog Client — Data Hook Tests
===================================

What:  Hooks against an httpx.MockTransport standing in for the API.

What we test:
    ✅ Initial load fetches samples, locations and researchers together
    ✅ Create prepends (single or batch), update replaces by id, delete removes by id
    ✅ Failures leave the list untouched and surface the server's error message
    ✅ Profile 404 means "no profile yet", not an error
    ✅ Report query parameters and error state
"""

import json

import httpx
import pytest

from app.client.hooks import (
    LocationsHook,
    ProfileHook,
    ReportsAnalyticsHook,
    SamplesHook,
    build_client,
    build_sample_payload,
)


def api(routes):
    """MockTransport answering (method, path) pairs; unknown pairs get 404."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        answer = routes.get((request.method, request.url.path))
        if answer is None:
            return httpx.Response(404, json={"error": "Not Found", "code": "not_found"})
        status, body = answer
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    client = build_client("http://api.test", access_token="token-1", transport=httpx.MockTransport(handler))
    return client, calls


SAMPLE_FORM = {
    "samples": [{"scientific_name": "Ficus benjamina", "common_name": "", "notes": ""}],
    "location_id": "",
    "researcher_id": "r1",
    "sample_date": "2024-06-01",
    "temperature": "28.5",
    "humidity": "",
    "soil_ph": "",
    "altitude": "",
    "soil_type": "Loam",
}


def test_sample_payload_shape():
    payload = build_sample_payload(SAMPLE_FORM, {"lng": 121.0437, "lat": 14.676, "desc": "Creek"})
    assert payload["coordinates"] == {"lng": 121.0437, "lat": 14.676, "desc": "Creek"}
    assert payload["location_id"] == ""
    assert payload["temperature"] == "28.5"
    assert build_sample_payload(SAMPLE_FORM, None)["coordinates"] is None


class TestSamplesHook:

    @pytest.mark.asyncio
    async def test_initial_load(self):
        client, calls = api({
            ("GET", "/api/samples"): (200, [{"sample_id": "s1"}]),
            ("GET", "/api/locations"): (200, [{"location_id": "l1"}]),
            ("GET", "/api/researchers"): (200, []),
        })
        async with client:
            hook = SamplesHook(client)
            await hook.fetch_initial_data()

        assert hook.samples == [{"sample_id": "s1"}]
        assert hook.locations == [{"location_id": "l1"}]
        assert hook.researchers == []
        assert hook.is_loading is False
        assert calls[0].headers["Authorization"] == "Bearer token-1"

    @pytest.mark.asyncio
    async def test_initial_load_failure_notifies(self):
        client, _ = api({
            ("GET", "/api/samples"): (500, {"error": "Could not list samples: boom"}),
            ("GET", "/api/locations"): (200, []),
            ("GET", "/api/researchers"): (200, []),
        })
        async with client:
            hook = SamplesHook(client)
            await hook.fetch_initial_data()

        assert hook.notification.type == "error"
        assert hook.notification.message == "Could not list samples: boom"
        assert hook.notification.is_visible is True

    @pytest.mark.asyncio
    async def test_batch_create_prepends(self):
        created = [{"sample_id": "s2"}, {"sample_id": "s3"}]
        client, calls = api({("POST", "/api/samples"): (201, created)})
        async with client:
            hook = SamplesHook(client)
            hook.samples = [{"sample_id": "s1"}]
            ok = await hook.create_sample(SAMPLE_FORM, {"lng": 121.0, "lat": 14.6, "desc": ""})

        assert ok is True
        assert [s["sample_id"] for s in hook.samples] == ["s2", "s3", "s1"]
        assert hook.notification.message == "2 samples added successfully."
        assert json.loads(calls[0].content)["coordinates"] == {"lng": 121.0, "lat": 14.6, "desc": ""}

    @pytest.mark.asyncio
    async def test_single_create_is_wrapped(self):
        client, _ = api({("POST", "/api/samples"): (201, {"sample_id": "s2"})})
        async with client:
            hook = SamplesHook(client)
            assert await hook.create_sample(SAMPLE_FORM) is True
        assert hook.samples == [{"sample_id": "s2"}]
        assert hook.notification.message == "1 samples added successfully."

    @pytest.mark.asyncio
    async def test_failed_create_leaves_list(self):
        client, _ = api({("POST", "/api/samples"): (400, {"error": "scientific_name is required"})})
        async with client:
            hook = SamplesHook(client)
            hook.samples = [{"sample_id": "s1"}]
            ok = await hook.create_sample(SAMPLE_FORM)

        assert ok is False
        assert hook.samples == [{"sample_id": "s1"}]
        assert hook.notification.message == "scientific_name is required"
        assert hook.is_submitting is False

    @pytest.mark.asyncio
    async def test_error_without_body_uses_fallback(self):
        client, _ = api({("POST", "/api/samples"): (502, None)})
        async with client:
            hook = SamplesHook(client)
            assert await hook.create_sample(SAMPLE_FORM) is False
        assert hook.notification.message == "Unable to save samples"

    @pytest.mark.asyncio
    async def test_update_replaces_by_id(self):
        client, _ = api({("PUT", "/api/samples/s1"): (200, {"sample_id": "s1", "scientific_name": "New"})})
        async with client:
            hook = SamplesHook(client)
            hook.samples = [{"sample_id": "s1", "scientific_name": "Old"}, {"sample_id": "s2"}]
            assert await hook.update_sample("s1", SAMPLE_FORM) is True
        assert hook.samples[0]["scientific_name"] == "New"
        assert hook.notification.message == "Sample updated successfully."

    @pytest.mark.asyncio
    async def test_delete_removes_by_id(self):
        client, _ = api({("DELETE", "/api/samples/s1"): (204, None)})
        async with client:
            hook = SamplesHook(client)
            hook.samples = [{"sample_id": "s1"}, {"sample_id": "s2"}]
            assert await hook.delete_sample("s1") is True
        assert hook.samples == [{"sample_id": "s2"}]
        assert hook.notification.message == "Sample deleted successfully."


class TestLocationsHook:

    @pytest.mark.asyncio
    async def test_crud_messages(self):
        client, calls = api({
            ("GET", "/api/locations"): (200, [{"location_id": "l1", "name": "A"}]),
            ("POST", "/api/locations"): (201, {"location_id": "l2", "name": "B"}),
            ("DELETE", "/api/locations/l1"): (204, None),
        })
        async with client:
            hook = LocationsHook(client)
            await hook.fetch("Manila")
            assert await hook.create({"name": "B"}) is True
            assert hook.notification.message == "Location added successfully."
            assert await hook.delete("l1") is True

        assert calls[0].url.params["region"] == "Manila"
        assert hook.locations == [{"location_id": "l2", "name": "B"}]
        assert hook.notification.message == "Location deleted successfully."

    @pytest.mark.asyncio
    async def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = build_client("http://api.test", transport=httpx.MockTransport(handler))
        async with client:
            hook = LocationsHook(client)
            await hook.fetch()
        assert hook.locations == []
        assert hook.notification.message == "Failed to load locations"


class TestProfileHook:

    @pytest.mark.asyncio
    async def test_missing_profile_is_not_an_error(self):
        client, _ = api({})
        async with client:
            hook = ProfileHook(client)
            await hook.fetch_profile()
        assert hook.profile is None
        assert hook.notification.is_visible is False

    @pytest.mark.asyncio
    async def test_update_and_delete(self):
        client, _ = api({
            ("PUT", "/api/researchers/me"): (200, {"full_name": "Ana Santos"}),
            ("DELETE", "/api/researchers/me"): (204, None),
        })
        async with client:
            hook = ProfileHook(client)
            assert await hook.update_profile({"full_name": "Ana Santos"}) is True
            assert hook.notification.message == "Profile updated successfully"
            assert await hook.delete_account() is True

        assert hook.profile is None
        assert hook.is_deleted is True
        assert hook.notification.message == "Account deleted successfully"

    @pytest.mark.asyncio
    async def test_delete_failure_keeps_profile(self):
        client, _ = api({("DELETE", "/api/researchers/me"): (503, {"error": "Identity service is unreachable"})})
        async with client:
            hook = ProfileHook(client)
            hook.profile = {"full_name": "Ana"}
            assert await hook.delete_account() is False
        assert hook.profile == {"full_name": "Ana"}
        assert hook.notification.message == "Identity service is unreachable"


class TestReportsAnalyticsHook:

    @pytest.mark.asyncio
    async def test_query_parameters(self):
        client, calls = api({("GET", "/api/reports/analytics"): (200, {"samples_over_time": []})})
        async with client:
            hook = ReportsAnalyticsHook(client)
            await hook.fetch_analytics(time_range="last-month", location_id="all", species=None)

        assert dict(calls[0].url.params) == {"timeRange": "last-month", "locationId": "all"}
        assert hook.data == {"samples_over_time": []}
        assert hook.error is None

    @pytest.mark.asyncio
    async def test_failure_sets_error(self):
        client, _ = api({("GET", "/api/reports/analytics"): (500, None)})
        async with client:
            hook = ReportsAnalyticsHook(client)
            await hook.fetch_analytics()
        assert hook.error == "Failed to fetch analytics data"
