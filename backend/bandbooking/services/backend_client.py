from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from bandbooking.schemas.reservation import InstrumentRequest, InstrumentRequestKind, ReservationRequest
from bandbooking.utils.config import get_settings


logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Transport or parse failure talking to the organization backend."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BackendRejection(BackendError):
    """The backend answered, but with a non-2xx status or ``success: false``."""


class BackendClient:
    """Wrapper around the organization's REST backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = get_settings()
        self.base_url = (base_url or self.settings.backend_api_url).rstrip("/")
        self.auth_token = auth_token
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.settings.backend_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_services(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/services")
        return list(data.get("services") or [])

    async def list_band_packages(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/band-packages")
        return list(data.get("packages") or [])

    async def list_instruments(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/instruments")
        return list(data.get("instruments") or [])

    async def list_bookings(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/bookings")
        return list(data.get("bookings") or [])

    async def create_booking(self, request: ReservationRequest) -> Dict[str, Any]:
        data = await self._request("POST", "/bookings", json=request.to_payload())
        booking = data.get("booking")
        if not isinstance(booking, dict):
            raise BackendError("Booking response did not include the created booking")
        return booking

    async def cancel_booking(self, booking_id: str, email: str) -> Dict[str, Any]:
        return await self._request(
            "PATCH",
            f"/bookings/{booking_id}/cancel",
            json={"email": email.strip().lower()},
        )

    async def enqueue_instrument_request(self, request: InstrumentRequest) -> Dict[str, Any]:
        path = "/instruments/borrow-request" if request.kind is InstrumentRequestKind.BORROW else "/instruments/rent-request"
        return await self._request("POST", path, json=request.to_payload())

    async def list_my_instrument_requests(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/instruments/my-requests")
        return list(data.get("allRequests") or [])

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, headers=self._headers(), json=json)
        except httpx.HTTPError as error:
            logger.exception(
                "Backend request failed",
                extra={"method": method, "path": path, "error": str(error)},
            )
            raise BackendError(f"Could not reach backend: {error}") from error

        logger.info(
            "Backend response",
            extra={"method": method, "path": path, "status": response.status_code},
        )

        try:
            data = response.json()
        except ValueError as error:
            if response.is_success:
                raise BackendError("Backend returned a malformed body", response.status_code) from error
            data = {"success": False, "message": response.text or f"HTTP {response.status_code}"}

        if not isinstance(data, dict):
            raise BackendError("Backend returned an unexpected body", response.status_code)

        if not response.is_success or data.get("success") is False:
            message = data.get("message") or f"HTTP {response.status_code}"
            raise BackendRejection(str(message), response.status_code)
        return data

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers


_backend_client: BackendClient | None = None


def get_backend_client() -> BackendClient:
    global _backend_client
    if not _backend_client:
        _backend_client = BackendClient()
    return _backend_client


async def close_backend_client() -> None:
    if _backend_client is not None:
        await _backend_client.aclose()
