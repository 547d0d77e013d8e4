"""
PlantLog Client — Data Hooks
==============================

What:  Client-side state containers over the PlantLog HTTP API, one per
       page: samples, locations, researchers, own profile, report analytics.
How:   Each hook owns an httpx.AsyncClient (base URL + bearer token already
       set), keeps the last fetched records in plain lists, and tracks
       `is_loading`, `is_submitting` and a `Notification`.

Contract for every mutating call:
    success → splice the returned record(s) into the list, success notification, True
    failure → list untouched, error notification with the server's `error`
              message (or a fallback), False

There is no offline queue and no rollback; when two calls race, whichever
response resolves last wins.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    type: str = "success"
    message: str = ""
    is_visible: bool = False


class ApiError(Exception):
    """A non-2xx response or transport failure, carrying the message to show."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def build_client(
    base_url: str,
    access_token: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = 30.0,
) -> httpx.AsyncClient:
    """AsyncClient preconfigured for the API; close it when the hooks are done."""
    headers = {"Accept": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, transport=transport)


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return fallback


def _replace_by_id(records: List[Dict[str, Any]], key: str, updated: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [updated if record.get(key) == updated.get(key) else record for record in records]


def _remove_by_id(records: List[Dict[str, Any]], key: str, record_id: str) -> List[Dict[str, Any]]:
    return [record for record in records if str(record.get(key)) != str(record_id)]


class BaseHook:
    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self.is_loading = False
        self.is_submitting = False
        self.notification = Notification()

    def show_notification(self, type: str, message: str) -> None:
        self.notification = Notification(type=type, message=message, is_visible=True)

    def close_notification(self) -> None:
        self.notification.is_visible = False

    async def request(self, method: str, url: str, fallback: str, **kwargs: Any) -> Any:
        """
        Perform one call. Returns the decoded JSON body, or None for 204.

        Raises:
            ApiError: transport failure or any non-2xx status
        """
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, str(e))
            raise ApiError(fallback)
        if response.is_error:
            raise ApiError(_error_message(response, fallback), response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _mutate(self, method: str, url: str, fallback: str, **kwargs: Any) -> Optional[Any]:
        """request() wrapped with is_submitting and error notification; None on failure."""
        self.is_submitting = True
        try:
            return await self.request(method, url, fallback, **kwargs)
        except ApiError as e:
            self.show_notification("error", e.message)
            return None
        finally:
            self.is_submitting = False


# ══════════════════════════════════════════════════════════════════════════
# Samples
# ══════════════════════════════════════════════════════════════════════════


def build_sample_payload(form: Dict[str, Any], location: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Body for POST/PUT /api/samples from the sample form and the picked point.

    `form` carries `samples` (list of {scientific_name, common_name, notes})
    and the shared fields as strings, exactly as the inputs hold them; the
    API treats empty strings as absent.
    """
    return {
        "samples": form.get("samples", []),
        "location_id": form.get("location_id") or "",
        "coordinates": (
            {"lng": location["lng"], "lat": location["lat"], "desc": location.get("desc", "")}
            if location else None
        ),
        "researcher_id": form.get("researcher_id", ""),
        "sample_date": form.get("sample_date", ""),
        "temperature": form.get("temperature", ""),
        "humidity": form.get("humidity", ""),
        "soil_ph": form.get("soil_ph", ""),
        "altitude": form.get("altitude", ""),
        "soil_type": form.get("soil_type", ""),
    }


class SamplesHook(BaseHook):
    """Samples page: samples plus the locations and researchers its form offers."""

    def __init__(self, client: httpx.AsyncClient):
        super().__init__(client)
        self.samples: List[Dict[str, Any]] = []
        self.locations: List[Dict[str, Any]] = []
        self.researchers: List[Dict[str, Any]] = []

    async def fetch_initial_data(self) -> None:
        self.is_loading = True
        try:
            samples, locations, researchers = await asyncio.gather(
                self.request("GET", "/api/samples", "Failed to load samples"),
                self.request("GET", "/api/locations", "Failed to load locations"),
                self.request("GET", "/api/researchers", "Failed to load researchers"),
            )
            self.samples = samples or []
            self.locations = locations or []
            self.researchers = researchers or []
        except ApiError as e:
            self.show_notification("error", e.message)
        finally:
            self.is_loading = False

    async def create_sample(self, form: Dict[str, Any], location: Optional[Dict[str, Any]] = None) -> bool:
        data = await self._mutate(
            "POST", "/api/samples", "Unable to save samples",
            json=build_sample_payload(form, location),
        )
        if data is None:
            return False
        created = data if isinstance(data, list) else [data]
        self.samples = created + self.samples
        self.show_notification("success", f"{len(created)} samples added successfully.")
        return True

    async def update_sample(
        self,
        sample_id: str,
        form: Dict[str, Any],
        location: Optional[Dict[str, Any]] = None,
    ) -> bool:
        data = await self._mutate(
            "PUT", f"/api/samples/{sample_id}", "Unable to update sample",
            json=build_sample_payload(form, location),
        )
        if data is None:
            return False
        self.samples = _replace_by_id(self.samples, "sample_id", data)
        self.show_notification("success", "Sample updated successfully.")
        return True

    async def delete_sample(self, sample_id: str) -> bool:
        self.is_submitting = True
        try:
            await self.request("DELETE", f"/api/samples/{sample_id}", "Unable to delete sample")
        except ApiError as e:
            self.show_notification("error", e.message)
            return False
        finally:
            self.is_submitting = False
        self.samples = _remove_by_id(self.samples, "sample_id", sample_id)
        self.show_notification("success", "Sample deleted successfully.")
        return True


# ══════════════════════════════════════════════════════════════════════════
# Locations & Researchers
# ══════════════════════════════════════════════════════════════════════════


class _CollectionHook(BaseHook):
    """List + create/update/delete over one collection endpoint."""

    path = ""
    id_key = ""
    noun = ""
    filter_param = ""

    def __init__(self, client: httpx.AsyncClient):
        super().__init__(client)
        self.items: List[Dict[str, Any]] = []

    async def fetch(self, query: Optional[str] = None) -> None:
        params = {self.filter_param: query} if query else None
        self.is_loading = True
        try:
            self.items = await self.request(
                "GET", self.path, f"Failed to load {self.noun}s", params=params,
            ) or []
        except ApiError as e:
            self.show_notification("error", e.message)
        finally:
            self.is_loading = False

    async def create(self, data: Dict[str, Any]) -> bool:
        created = await self._mutate("POST", self.path, f"Unable to save {self.noun}", json=data)
        if created is None:
            return False
        self.items = [created] + self.items
        self.show_notification("success", f"{self.noun.capitalize()} added successfully.")
        return True

    async def update(self, item_id: str, data: Dict[str, Any]) -> bool:
        updated = await self._mutate("PUT", f"{self.path}/{item_id}", f"Unable to update {self.noun}", json=data)
        if updated is None:
            return False
        self.items = _replace_by_id(self.items, self.id_key, updated)
        self.show_notification("success", f"{self.noun.capitalize()} updated successfully.")
        return True

    async def delete(self, item_id: str) -> bool:
        self.is_submitting = True
        try:
            await self.request("DELETE", f"{self.path}/{item_id}", f"Unable to delete {self.noun}")
        except ApiError as e:
            self.show_notification("error", e.message)
            return False
        finally:
            self.is_submitting = False
        self.items = _remove_by_id(self.items, self.id_key, item_id)
        self.show_notification("success", f"{self.noun.capitalize()} deleted successfully.")
        return True


class LocationsHook(_CollectionHook):
    path = "/api/locations"
    id_key = "location_id"
    noun = "location"
    filter_param = "region"

    @property
    def locations(self) -> List[Dict[str, Any]]:
        return self.items


class ResearchersHook(_CollectionHook):
    path = "/api/researchers"
    id_key = "researcher_id"
    noun = "researcher"
    filter_param = "q"

    @property
    def researchers(self) -> List[Dict[str, Any]]:
        return self.items


# ══════════════════════════════════════════════════════════════════════════
# Own profile
# ══════════════════════════════════════════════════════════════════════════


class ProfileHook(BaseHook):
    """/api/researchers/me. A 404 on fetch means "not registered yet", not an error."""

    def __init__(self, client: httpx.AsyncClient):
        super().__init__(client)
        self.profile: Optional[Dict[str, Any]] = None
        self.is_deleted = False

    async def fetch_profile(self) -> None:
        self.is_loading = True
        try:
            self.profile = await self.request("GET", "/api/researchers/me", "Failed to load profile")
        except ApiError as e:
            if e.status_code != 404:
                self.show_notification("error", e.message)
        finally:
            self.is_loading = False

    async def register(self, data: Dict[str, Any]) -> bool:
        created = await self._mutate("POST", "/api/researchers/me", "Failed to register profile", json=data)
        if created is None:
            return False
        self.profile = created
        self.show_notification("success", "Profile created successfully")
        return True

    async def update_profile(self, data: Dict[str, Any]) -> bool:
        updated = await self._mutate("PUT", "/api/researchers/me", "Failed to update profile", json=data)
        if updated is None:
            return False
        self.profile = updated
        self.show_notification("success", "Profile updated successfully")
        return True

    async def delete_account(self) -> bool:
        self.is_submitting = True
        try:
            await self.request("DELETE", "/api/researchers/me", "Failed to delete account")
        except ApiError as e:
            self.show_notification("error", e.message)
            return False
        finally:
            self.is_submitting = False
        self.profile = None
        self.is_deleted = True
        self.show_notification("success", "Account deleted successfully")
        return True


# ══════════════════════════════════════════════════════════════════════════
# Reports
# ══════════════════════════════════════════════════════════════════════════


class ReportsAnalyticsHook(BaseHook):
    def __init__(self, client: httpx.AsyncClient):
        super().__init__(client)
        self.data: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None

    async def fetch_analytics(
        self,
        time_range: Optional[str] = None,
        location_id: Optional[str] = None,
        species: Optional[str] = None,
    ) -> None:
        params = {
            name: value
            for name, value in (("timeRange", time_range), ("locationId", location_id), ("species", species))
            if value
        }
        self.is_loading = True
        self.error = None
        try:
            self.data = await self.request(
                "GET", "/api/reports/analytics", "Failed to fetch analytics data", params=params,
            )
        except ApiError as e:
            self.error = e.message
            self.show_notification("error", e.message)
        finally:
            self.is_loading = False
