import json

import httpx
import pytest

from bandbooking.schemas.reservation import InstrumentRequest, InstrumentRequestKind
from bandbooking.services.backend_client import BackendClient, BackendError, BackendRejection

from .conftest import BACKEND_URL

pytestmark = pytest.mark.asyncio


async def test_rejection_carries_backend_message(backend, client):
    backend.on("GET", "/bookings", (409, {"success": False, "message": "Date already booked"}))

    with pytest.raises(BackendRejection) as excinfo:
        await client.list_bookings()

    assert excinfo.value.message == "Date already booked"
    assert excinfo.value.status_code == 409


async def test_success_false_is_a_rejection_even_on_200(backend, client):
    backend.on("GET", "/instruments", (200, {"success": False, "message": "Inventory locked"}))

    with pytest.raises(BackendRejection):
        await client.list_instruments()


async def test_transport_failure_is_not_a_rejection():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = BackendClient(base_url=BACKEND_URL, transport=httpx.MockTransport(refuse))

    with pytest.raises(BackendError) as excinfo:
        await client.list_bookings()

    assert not isinstance(excinfo.value, BackendRejection)


async def test_malformed_success_body_is_a_backend_error(backend, client):
    backend.on("GET", "/services", lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(BackendError) as excinfo:
        await client.list_services()

    assert not isinstance(excinfo.value, BackendRejection)


async def test_cancel_normalizes_email(backend, client):
    backend.on("PATCH", "/bookings/42/cancel", (200, {"success": True, "message": "Booking cancelled"}))

    await client.cancel_booking("42", "  Ana@Example.COM ")

    (request,) = backend.calls("PATCH", "/bookings/42/cancel")
    assert json.loads(request.content) == {"email": "ana@example.com"}


async def test_instrument_requests_are_routed_by_kind(backend, client):
    backend.on("POST", "/instruments/borrow-request", (201, {"success": True, "requestId": 1}))
    backend.on("POST", "/instruments/rent-request", (201, {"success": True, "requestId": 2}))

    borrowed = await client.enqueue_instrument_request(InstrumentRequest(kind=InstrumentRequestKind.BORROW, instrument_id="7"))
    rented = await client.enqueue_instrument_request(InstrumentRequest(kind=InstrumentRequestKind.RENT, instrument_id="7"))

    assert borrowed["requestId"] == 1
    assert rented["requestId"] == 2


async def test_auth_token_is_sent_as_bearer(backend):
    backend.on("GET", "/instruments/my-requests", (200, {"success": True, "allRequests": []}))
    client = BackendClient(base_url=BACKEND_URL, auth_token="token-123", transport=httpx.MockTransport(backend))

    assert await client.list_my_instrument_requests() == []
    assert backend.requests[0].headers["Authorization"] == "Bearer token-123"
