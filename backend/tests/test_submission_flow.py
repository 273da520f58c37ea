import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from bandbooking.schemas.reservation import (
    InstrumentRequestKind,
    ReservationForm,
    ReservationStatus,
    Requester,
)
from bandbooking.services.submission_service import (
    BOOKINGS_CHANNEL,
    MISSING_FIELDS_MESSAGE,
    SUCCESS_MESSAGES,
    TRANSPORT_FAILURE_MESSAGE,
    SubmissionOutcome,
    build_instrument_request,
    build_request,
)
from bandbooking.services.validation_service import (
    DATE_BLOCKED_MESSAGE,
    INSTRUMENT_UNAVAILABLE_MESSAGE,
    PACKAGE_UNAVAILABLE_MESSAGE,
)

from .conftest import booking_row, make_record

pytestmark = pytest.mark.asyncio

CONTACT = {"name": "Ana Cruz", "email": "Ana@Example.com", "location": "Davao City"}


def arrangement_form() -> ReservationForm:
    return ReservationForm(service_name="Music Arrangement", num_pieces=2, **CONTACT)


def rental_form() -> ReservationForm:
    return ReservationForm(
        service_name="Instrument Rentals",
        instrument_id="7",
        rental_start_date="2025-08-01",
        rental_end_date="2025-08-03",
        purpose="School recital",
        **CONTACT,
    )


async def test_arrangement_booking_end_to_end(backend, submission, store, bus):
    backend.on("POST", "/bookings", (201, {"success": True, "booking": booking_row(42)}))
    form = arrangement_form()
    request_id = form.request_id

    result = await submission.submit(form, session_id="s1")

    assert result.outcome is SubmissionOutcome.SUCCESS
    assert result.channel == BOOKINGS_CHANNEL
    assert result.message == SUCCESS_MESSAGES[BOOKINGS_CHANNEL]

    (request,) = backend.calls("POST", "/bookings")
    payload = json.loads(request.content)
    assert payload["estimatedValue"] == "6000"
    assert payload["email"] == "ana@example.com"
    assert payload["clientRequestId"] == request_id
    assert payload["serviceOptions"] == {"kind": "music_arrangement", "num_pieces": 2}

    (record,) = store.all()
    assert record.id == "42"
    assert record.status is ReservationStatus.PENDING
    assert record.service_options is not None

    assert form.service_name == ""
    assert form.name == ""
    assert form.request_id != request_id

    notice = bus.drain("s1")[0]
    assert notice["type"] == "notice"
    assert notice["level"] == "success"


async def test_invalid_form_never_reaches_backend(backend, submission, store):
    form = ReservationForm(service_name="Music Workshops", name="Ana Cruz")

    result = await submission.submit(form)

    assert result.outcome is SubmissionOutcome.VALIDATION_ERROR
    assert result.message == MISSING_FIELDS_MESSAGE
    assert backend.requests == []
    assert store.all() == []
    assert form.name == "Ana Cruz"


async def test_blocked_date_is_refused_before_submission(backend, submission, store):
    store.replace_all([make_record("2025-09-06", ReservationStatus.APPROVED)])
    form = ReservationForm(
        service_name="Band Gigs",
        package_key="full-band",
        date="2025-09-06",
        start_time="14:00",
        end_time="17:00",
        **CONTACT,
    )

    result = await submission.submit(form)

    assert result.outcome is SubmissionOutcome.VALIDATION_ERROR
    assert result.message == DATE_BLOCKED_MESSAGE
    assert backend.requests == []


async def test_backend_rejection_keeps_form_and_message(backend, submission, store, bus):
    backend.on("POST", "/bookings", (400, {"success": False, "message": "Location is outside our service area"}))
    form = arrangement_form()
    before = form.model_dump()

    result = await submission.submit(form, session_id="s2")

    assert result.outcome is SubmissionOutcome.FAILURE
    assert result.message == "Location is outside our service area"
    assert form.model_dump() == before
    assert store.all() == []

    alert = bus.drain("s2")[0]
    assert alert["type"] == "alert"
    assert alert["requires_ack"] is True
    assert alert["message"] == "Location is outside our service area"


async def test_transport_failure_uses_generic_message(backend, submission, store):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    backend.on("POST", "/bookings", refuse)
    form = arrangement_form()

    result = await submission.submit(form)

    assert result.outcome is SubmissionOutcome.FAILURE
    assert result.message == TRANSPORT_FAILURE_MESSAGE
    assert form.name == "Ana Cruz"
    assert store.all() == []


@pytest.mark.parametrize(
    ("role", "path", "kind"),
    [
        ("member", "/instruments/borrow-request", InstrumentRequestKind.BORROW),
        ("user", "/instruments/rent-request", InstrumentRequestKind.RENT),
    ],
)
async def test_rentals_go_to_the_approval_queue(backend, submission, store, role, path, kind):
    backend.on("POST", path, (201, {"success": True, "requestId": 11}))

    result = await submission.submit(rental_form(), Requester(id="u-1", role=role))

    assert result.outcome is SubmissionOutcome.SUCCESS
    assert result.channel == kind.value
    assert backend.calls("POST", "/bookings") == []
    assert len(backend.calls("POST", path)) == 1

    (queued,) = store.instrument_requests()
    assert queued.id == "11"
    assert queued.kind is kind
    assert queued.status is ReservationStatus.PENDING
    assert store.all() == []


async def test_rent_request_carries_rental_fee(backend, submission):
    backend.on("POST", "/instruments/rent-request", (201, {"success": True, "requestId": 12}))

    await submission.submit(rental_form(), Requester(role="user"))

    (request,) = backend.calls("POST", "/instruments/rent-request")
    payload = json.loads(request.content)
    assert payload["rentalFee"] == "1500"
    assert payload["instrumentName"] == "Trumpet"


async def test_duplicate_submit_while_in_flight_is_refused(backend, submission, store):
    received = asyncio.Event()
    release = asyncio.Event()

    async def slow_create(request: httpx.Request) -> httpx.Response:
        received.set()
        await release.wait()
        return httpx.Response(201, json={"success": True, "booking": booking_row(43)})

    backend.on("POST", "/bookings", slow_create)
    form = arrangement_form()

    first = asyncio.create_task(submission.submit(form))
    await received.wait()
    assert submission.is_submitting

    second = await submission.submit(form)
    assert second.outcome is SubmissionOutcome.DUPLICATE

    release.set()
    assert (await first).outcome is SubmissionOutcome.SUCCESS
    assert len(backend.calls("POST", "/bookings")) == 1
    assert len(store.all()) == 1
    assert not submission.is_submitting


async def test_success_notice_is_dismissed_automatically(backend, submission, bus):
    backend.on("POST", "/bookings", (201, {"success": True, "booking": booking_row(44)}))

    await submission.submit(arrangement_form(), session_id="s3")
    notice = await bus.next_event("s3", timeout=1)
    dismissed = await bus.next_event("s3", timeout=1)

    assert notice is not None and notice["type"] == "notice"
    assert dismissed == {"type": "notice.dismissed", "id": notice["id"]}
    await asyncio.sleep(0)
    assert submission.notices.active_notices == []


async def test_refresh_replaces_cached_records(backend, submission, store):
    store.replace_all([make_record("2025-01-01", ReservationStatus.PENDING, record_id="old")])
    backend.on(
        "GET",
        "/bookings",
        (200, {"success": True, "bookings": [booking_row(50, status="Approved", date="2025-10-01T00:00:00.000Z")]}),
    )
    backend.on("GET", "/instruments/my-requests", (500, {"success": False, "message": "Unauthorized"}))

    refreshed = await submission.refresh()

    assert refreshed == {"bookings": True, "instrument_requests": False}
    (record,) = store.all()
    assert record.id == "50"
    assert record.status is ReservationStatus.APPROVED
    assert record.date == "2025-10-01"


async def test_build_request_drops_fields_of_other_services(catalog):
    form = rental_form()
    form.package_key = "full-band"
    form.date = "2025-08-10"
    form.start_time = "10:00"

    request = build_request(form, catalog)

    assert request.date == "2025-08-01"
    assert request.start_time is None
    assert request.service_options.kind == "instrument_rental"
    assert request.estimated_value == Decimal("1500")


async def test_build_request_refuses_unknown_service(catalog):
    with pytest.raises(ValueError):
        build_request(ReservationForm(service_name="Choir", **CONTACT), catalog)


async def test_cancel_refetches_instead_of_editing_locally(backend, submission, store):
    store.replace_all([make_record("2025-10-01", ReservationStatus.PENDING, record_id="50")])
    backend.on("PATCH", "/bookings/50/cancel", (200, {"success": True, "message": "Booking cancelled successfully."}))
    backend.on("GET", "/bookings", (200, {"success": True, "bookings": [booking_row(50, status="cancelled")]}))
    backend.on("GET", "/instruments/my-requests", (200, {"success": True, "allRequests": []}))

    result = await submission.cancel("50", "Ana@Example.com")

    assert result.outcome is SubmissionOutcome.SUCCESS
    assert result.message == "Booking cancelled successfully."
    assert store.get("50").status is ReservationStatus.CANCELLED
    assert len(backend.calls("GET", "/bookings")) == 1


async def test_cancel_rejection_keeps_cache(backend, submission, store, bus):
    store.replace_all([make_record("2025-10-01", ReservationStatus.PENDING, record_id="50")])
    backend.on("PATCH", "/bookings/50/cancel", (403, {"success": False, "message": "Email does not match this booking"}))

    result = await submission.cancel("50", "someone@example.com", session_id="s4")

    assert result.outcome is SubmissionOutcome.FAILURE
    assert result.message == "Email does not match this booking"
    assert store.get("50").status is ReservationStatus.PENDING
    assert backend.calls("GET", "/bookings") == []
    assert bus.drain("s4")[0]["type"] == "alert"


async def test_rental_of_instrument_not_on_offer_is_refused(backend, submission, store):
    form = rental_form()
    form.instrument_id = "999"

    result = await submission.submit(form, Requester(role="user"))

    assert result.outcome is SubmissionOutcome.VALIDATION_ERROR
    assert result.message == INSTRUMENT_UNAVAILABLE_MESSAGE
    assert backend.requests == []
    assert store.instrument_requests() == []
    assert form.instrument_id == "999"
    assert not submission.is_submitting


async def test_band_gig_with_unknown_package_is_refused(backend, submission):
    form = ReservationForm(
        service_name="Band Gigs",
        package_key="nope",
        date="2025-09-06",
        start_time="14:00",
        end_time="17:00",
        **CONTACT,
    )

    result = await submission.submit(form)

    assert result.outcome is SubmissionOutcome.VALIDATION_ERROR
    assert result.message == PACKAGE_UNAVAILABLE_MESSAGE
    assert backend.calls("POST", "/bookings") == []


async def test_build_instrument_request_refuses_unknown_instrument(catalog):
    form = rental_form()
    form.instrument_id = "999"
    request = build_request(form, catalog)

    with pytest.raises(ValueError):
        build_instrument_request(request, catalog, InstrumentRequestKind.RENT)
