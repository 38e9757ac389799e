"""HTTP client for the visit API"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from ..config import API_BASE_URL
from .models import VisitFormData

logger = logging.getLogger(__name__)


class ApiResponse(BaseModel):
    """Envelope returned by every endpoint: {success, message, data, error, errors}"""

    status_code: int
    success: bool = False
    message: Optional[str] = None
    data: Any = None
    error: Optional[str] = None
    errors: dict[str, Any] = {}
    count: Optional[int] = None


class VisitApiClient:
    """Async client for the visits and postal code endpoints"""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> ApiResponse:
        """Send a request; transport failures propagate as httpx.HTTPError"""
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        ) as client:
            resp = await client.request(method, path, **kwargs)

        try:
            body = resp.json()
        except ValueError:
            logger.warning(f"⚠️ Non-JSON response from {method} {path}: {resp.status_code}")
            body = {"success": False, "message": resp.text[:200] or None}

        if not isinstance(body, dict):
            body = {"success": resp.is_success, "data": body}
        # FastAPI errors (429, 422) use "detail" instead of "message"
        if "message" not in body and isinstance(body.get("detail"), str):
            body["message"] = body["detail"]

        return ApiResponse(
            status_code=resp.status_code,
            success=bool(body.get("success", resp.is_success)),
            message=body.get("message"),
            data=body.get("data"),
            error=body.get("error"),
            errors=body.get("errors") or {},
            count=body.get("count"),
        )

    async def list_visits(self, date: str) -> ApiResponse:
        return await self._request("GET", "/visits", params={"date": date})

    async def create_visit(self, form: VisitFormData) -> ApiResponse:
        return await self._request("POST", "/visits", json=form.to_payload())

    async def update_visit(self, visit_id: int, form: VisitFormData) -> ApiResponse:
        return await self._request("PUT", f"/visits/{visit_id}", json=form.to_payload())

    async def complete_visit(self, visit_id: int) -> ApiResponse:
        return await self._request("POST", f"/visits/{visit_id}/complete")

    async def lookup_postal_code(self, postal_code: str) -> ApiResponse:
        return await self._request("GET", f"/postal-codes/{postal_code}")
