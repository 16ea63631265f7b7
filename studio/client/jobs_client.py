"""
Jobs HTTP Client
Thin httpx wrapper over the jobs and items API, used by JobPoller.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from studio.core.config import settings

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def has_product_shot(links: List[Dict[str, Any]]) -> bool:
    """Completion evidence for a product_shot job: the item leads with a product shot."""
    return any(link.get("type") == "product_shot" and link.get("sort_order") == 0 for link in links or [])


class JobsClient:
    """Async client for one caller. Raises httpx.HTTPError on transport or HTTP failures."""

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def close(self):
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[dict] = None, no_store: bool = False):
        response = await self._client.get(
            path,
            params=params,
            headers=NO_STORE_HEADERS if no_store else None,
        )
        response.raise_for_status()
        return response.json()

    async def create_job(self, job_type: str, input: Dict[str, Any], execute: bool = False) -> Dict[str, Any]:
        response = await self._client.post(
            "/api/v1/jobs",
            params={"execute": "true"} if execute else None,
            json={"job_type": job_type, "input": input},
        )
        response.raise_for_status()
        return response.json()

    async def get_job(self, job_id: str, no_store: bool = True) -> Dict[str, Any]:
        """Read a job, bypassing every cache layer by default."""
        return await self._get(f"/api/v1/jobs/{job_id}", no_store=no_store)

    async def find_active_job(self, job_type: str, entity_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        params = {"job_type": job_type}
        if entity_id:
            params["entity_id"] = entity_id
        return await self._get("/api/v1/jobs/active", params=params, no_store=True)

    async def find_recent_job(self, job_type: str, entity_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        params = {"job_type": job_type}
        if entity_id:
            params["entity_id"] = entity_id
        return await self._get("/api/v1/jobs/recent", params=params, no_store=True)

    async def get_item_images(self, item_id: str) -> List[Dict[str, Any]]:
        return await self._get(f"/api/v1/items/{item_id}/images", no_store=True)
