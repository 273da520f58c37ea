from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from bandbooking.schemas.catalog import BandPackage, Catalog, InstrumentCatalogEntry
from bandbooking.schemas.reservation import Customer, ReservationRecord, ReservationStatus
from bandbooking.services.backend_client import BackendClient
from bandbooking.services.notice_service import NoticeService
from bandbooking.services.submission_service import SubmissionService
from bandbooking.stores.event_bus import EventBus
from bandbooking.stores.record_store import RecordStore

BACKEND_URL = "http://backend.test/api"

Handler = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeBackend:
    """Routes requests by (method, path) and records everything it receives."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method, f"/api{path}")] = handler

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == f"/api{path}"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        if callable(handler):
            return handler(request)
        status, body = handler
        return httpx.Response(status, json=body)


class StaticCatalogService:
    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    async def get(self) -> Catalog:
        return self.catalog

    async def load(self) -> Catalog:
        return self.catalog


def make_record(
    date: str,
    status: ReservationStatus,
    service_name: str = "Band Gigs",
    record_id: str = "1",
) -> ReservationRecord:
    return ReservationRecord(
        id=record_id,
        service_name=service_name,
        customer=Customer(name="Ana Cruz", email="ana@example.com"),
        location="Davao City",
        date=date,
        status=status,
    )


@pytest.fixture()
def catalog() -> Catalog:
    return Catalog(
        packages={
            "full-band": BandPackage(key="full-band", label="Full Band", price=Decimal("35000")),
            "20-players-with": BandPackage(
                key="20-players-with",
                label="20 Players (with Food & Transport)",
                price=Decimal("15000"),
            ),
        },
        instruments={
            "7": InstrumentCatalogEntry(id="7", name="Trumpet", price_per_day=Decimal("500"), available_quantity=3),
            "9": InstrumentCatalogEntry(
                id="9",
                name="Pearl Snare Drum",
                price_per_day=Decimal("1000"),
                available_quantity=1,
            ),
        },
    )


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def client(backend: FakeBackend) -> BackendClient:
    return BackendClient(base_url=BACKEND_URL, transport=httpx.MockTransport(backend))


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def store() -> RecordStore:
    return RecordStore()


@pytest.fixture()
def submission(
    client: BackendClient,
    store: RecordStore,
    catalog: Catalog,
    bus: EventBus,
) -> SubmissionService:
    return SubmissionService(
        client=client,
        store=store,
        catalog_service=StaticCatalogService(catalog),  # type: ignore[arg-type]
        notices=NoticeService(bus=bus, dismiss_after=0.0),
    )


def booking_row(booking_id: Optional[int] = 42, **overrides: Any) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "id": booking_id,
        "service": "Music Arrangement",
        "customer_name": "Ana Cruz",
        "email": "ana@example.com",
        "phone": None,
        "location": "Davao City",
        "date": None,
        "start_time": None,
        "end_time": None,
        "estimated_value": "6000.00",
        "status": "pending",
        "created_at": "2025-01-05T08:00:00.000Z",
    }
    row.update(overrides)
    return row
