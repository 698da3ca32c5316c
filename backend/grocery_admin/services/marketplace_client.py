"""Async client for the marketplace category endpoints.

Every endpoint answers with the same envelope:

    {"errorCode": 0, "errorMessage": null, "data": ...}

A non-zero errorCode, a non-2xx status or a transport failure all surface as
`UpstreamError` so the API layer can answer 502.
"""

from typing import Any

import httpx
import structlog

from grocery_admin.config import settings
from grocery_admin.core.exceptions import UpstreamError

logger = structlog.get_logger()


class MarketplaceClient:
    """Thin wrapper over the remote /category/* routes."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.marketplace_api_url).rstrip("/")
        self.token = settings.marketplace_api_token if token is None else token
        self.timeout = timeout or settings.marketplace_timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, json=payload)
        except httpx.TimeoutException:
            logger.warning("marketplace_timeout", method=method, path=path)
            raise UpstreamError("Marketplace API timed out")
        except httpx.HTTPError as e:
            logger.warning("marketplace_unreachable", method=method, path=path, error=str(e))
            raise UpstreamError("Marketplace API is unreachable")

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        error_code = body.get("errorCode", 0 if resp.is_success else resp.status_code)
        if not resp.is_success or error_code != 0:
            message = body.get("errorMessage") or body.get("message") or f"HTTP {resp.status_code}"
            logger.warning(
                "marketplace_error",
                method=method,
                path=path,
                status=resp.status_code,
                error_code=error_code,
                message=message,
            )
            raise UpstreamError(message)

        return body.get("data")

    # ── Reads ──────────────────────────────────────

    async def list_categories(self) -> list[dict]:
        return await self._request("GET", "/category/getAll") or []

    async def get_category(self, category_id: int) -> dict | None:
        return await self._request("GET", f"/category/getById/{category_id}")

    # ── Writes ─────────────────────────────────────

    async def create_update_category(self, payload: dict) -> dict | None:
        """Create when payload has no id, update otherwise."""
        return await self._request("POST", "/category/createUpdateCategory", payload)

    async def soft_delete_or_detach(self, category_id: int, parent_id: int | None = None) -> None:
        payload: dict[str, int] = {"categoryId": category_id}
        if parent_id is not None:
            payload["parentCategoryId"] = parent_id
        await self._request("POST", "/category/softDeleteOrDetach", payload)
