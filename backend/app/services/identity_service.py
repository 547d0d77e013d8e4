"""
PlantLog Backend — Identity Admin Service
===========================================

What:  Calls the identity provider's admin REST API.
Who:   ResearcherService, when a researcher deletes their own profile.
How:   DELETE {AUTH_URL}/admin/users/{auth_id} authenticated with the
       service key. Not retried; failures raise IdentityServiceError (503).
"""

import logging
from typing import Optional

import httpx

from app.config import settings
from app.exceptions import IdentityServiceError

logger = logging.getLogger(__name__)


class IdentityService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    def _headers(self) -> dict:
        return {
            "apikey": settings.auth_service_key,
            "Authorization": f"Bearer {settings.auth_service_key}",
        }

    async def delete_user(self, auth_id: str) -> None:
        """
        Delete an identity. A 404 from the provider counts as already deleted.

        Raises:
            IdentityServiceError: admin API not configured, unreachable, or
                                  answered with an error status
        """
        if not settings.auth_url or not settings.auth_service_key:
            raise IdentityServiceError(
                "Identity admin API is not configured (AUTH_URL / AUTH_SERVICE_KEY)"
            )

        url = f"{settings.auth_url}/admin/users/{auth_id}"
        try:
            async with httpx.AsyncClient(
                timeout=settings.auth_timeout,
                transport=self._transport,
            ) as client:
                response = await client.delete(url, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning("Identity admin request failed: %s", str(e))
            raise IdentityServiceError(
                "Identity service is unreachable",
                context={"error_type": type(e).__name__},
            )

        if response.status_code == 404:
            logger.info("Identity %s was already gone", auth_id)
            return
        if response.is_error:
            logger.warning(
                "Identity admin API returned HTTP %d deleting %s",
                response.status_code, auth_id,
            )
            raise IdentityServiceError(
                f"Could not delete identity: HTTP {response.status_code}",
                context={"status_code": response.status_code},
            )
        logger.info("Deleted identity %s", auth_id)


identity_service = IdentityService()
