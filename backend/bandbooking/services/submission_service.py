from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Set

from bandbooking.schemas.catalog import Catalog, ServiceName
from bandbooking.schemas.reservation import (
    Customer,
    InstrumentRentalOptions,
    InstrumentRequest,
    InstrumentRequestKind,
    ReservationForm,
    ReservationRecord,
    ReservationRequest,
    ReservationStatus,
    Requester,
)
from bandbooking.services.backend_client import BackendClient, BackendError, BackendRejection, get_backend_client
from bandbooking.services.catalog_service import CatalogService, get_catalog_service
from bandbooking.services.notice_service import NoticeService, get_notice_service
from bandbooking.services.pricing_service import estimate_value
from bandbooking.services.validation_service import catalog_message, conflict_message, is_valid
from bandbooking.stores.record_store import RecordStore, record_store

logger = logging.getLogger(__name__)

BOOKINGS_CHANNEL = "bookings"
MISSING_FIELDS_MESSAGE = "Please fill in all required fields."
DUPLICATE_MESSAGE = "This request is already being submitted."
TRANSPORT_FAILURE_MESSAGE = "An error occurred while submitting your request. Please try again."
CANCELLED_MESSAGE = "Booking cancelled successfully."
CANCEL_FAILURE_MESSAGE = "An error occurred while cancelling the booking. Please try again."
SUCCESS_MESSAGES: Dict[str, str] = {
    BOOKINGS_CHANNEL: "Booking submitted successfully! We will contact you soon.",
    InstrumentRequestKind.RENT.value: "Instrument rental request submitted for approval. We will contact you soon.",
    InstrumentRequestKind.BORROW.value: "Borrow request submitted for approval. We will contact you soon.",
}


class SubmissionOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    VALIDATION_ERROR = "validation_error"
    DUPLICATE = "duplicate"


@dataclass
class SubmissionResult:
    outcome: SubmissionOutcome
    message: str
    channel: Optional[str] = None
    record: Optional[ReservationRecord] = None
    instrument_request: Optional[InstrumentRequest] = None

    @property
    def ok(self) -> bool:
        return self.outcome is SubmissionOutcome.SUCCESS


def _clean(value: str) -> Optional[str]:
    value = value.strip()
    return value or None


def build_request(form: ReservationForm, catalog: Catalog, requester: Optional[Requester] = None) -> ReservationRequest:
    """Turn valid form state into an outbound request.

    Fields that do not belong to the selected service are dropped, so values
    left behind by a previously selected service never leak into the payload.
    """
    service = form.service
    if service is None:
        raise ValueError(f"Unknown service: {form.service_name!r}")
    options = form.options()

    if service is ServiceName.INSTRUMENT_RENTALS:
        date, start_time, end_time = _clean(form.rental_start_date), None, None
    else:
        date, start_time, end_time = _clean(form.date), _clean(form.start_time), _clean(form.end_time)

    return ReservationRequest(
        request_id=form.request_id,
        service_name=service,
        customer=Customer(
            name=form.name.strip(),
            email=form.email.strip().lower(),
            phone=_clean(form.phone),
        ),
        location=form.location.strip(),
        date=date,
        start_time=start_time,
        end_time=end_time,
        estimated_value=estimate_value(service.value, options, catalog),
        service_options=options,
        notes=_clean(form.notes),
        user_id=requester.id if requester else None,
    )


def build_instrument_request(request: ReservationRequest, catalog: Catalog, kind: InstrumentRequestKind) -> InstrumentRequest:
    options = request.service_options
    if not isinstance(options, InstrumentRentalOptions):
        raise ValueError("Instrument requests need rental options")
    instrument = catalog.instrument(options.instrument_id)
    if instrument is None:
        raise ValueError(f"Instrument {options.instrument_id!r} is not offered")
    return InstrumentRequest(
        client_request_id=request.request_id,
        kind=kind,
        instrument_id=options.instrument_id,
        instrument_name=instrument.name,
        start_date=options.start_date,
        end_date=options.end_date,
        purpose=options.purpose,
        notes=request.notes,
        rental_fee=request.estimated_value if kind is InstrumentRequestKind.RENT else None,
    )


class SubmissionService:
    """Validates, prices and submits reservation requests, then merges the outcome."""

    def __init__(
        self,
        client: BackendClient | None = None,
        store: RecordStore | None = None,
        catalog_service: CatalogService | None = None,
        notices: NoticeService | None = None,
    ) -> None:
        self.client = client or get_backend_client()
        self.store = store or record_store
        self.catalog_service = catalog_service or get_catalog_service()
        self.notices = notices or get_notice_service()
        self._in_flight: Set[str] = set()

    @property
    def is_submitting(self) -> bool:
        return bool(self._in_flight)

    async def refresh(self) -> Dict[str, bool]:
        refreshed = {"bookings": False, "instrument_requests": False}
        try:
            rows = await self.client.list_bookings()
        except BackendError as exc:
            logger.warning("Could not refresh bookings", extra={"error": exc.message})
        else:
            self.store.replace_all(ReservationRecord.from_backend(row) for row in rows)
            refreshed["bookings"] = True

        try:
            rows = await self.client.list_my_instrument_requests()
        except BackendError as exc:
            logger.warning("Could not refresh instrument requests", extra={"error": exc.message})
        else:
            self.store.replace_instrument_requests(InstrumentRequest.from_backend(row) for row in rows)
            refreshed["instrument_requests"] = True
        return refreshed

    async def submit(
        self,
        form: ReservationForm,
        requester: Optional[Requester] = None,
        session_id: str = "public",
    ) -> SubmissionResult:
        if not is_valid(form):
            return SubmissionResult(SubmissionOutcome.VALIDATION_ERROR, MISSING_FIELDS_MESSAGE)

        conflict = conflict_message(form, self.store.all())
        if conflict:
            return SubmissionResult(SubmissionOutcome.VALIDATION_ERROR, conflict)

        request_id = form.request_id
        if request_id in self._in_flight:
            logger.info("Duplicate submission refused", extra={"request_id": request_id})
            return SubmissionResult(SubmissionOutcome.DUPLICATE, DUPLICATE_MESSAGE)

        self._in_flight.add(request_id)
        try:
            catalog = await self.catalog_service.get()
            unavailable = catalog_message(form, catalog)
            if unavailable:
                return SubmissionResult(SubmissionOutcome.VALIDATION_ERROR, unavailable)
            request = build_request(form, catalog, requester)
            if request.service_name is ServiceName.INSTRUMENT_RENTALS:
                kind = (requester or Requester()).instrument_request_kind
                result = await self._enqueue_instrument_request(request, catalog, kind)
            else:
                result = await self._create_booking(request)
        finally:
            self._in_flight.discard(request_id)

        if result.ok:
            form.reset()
            await self.notices.success(session_id, result.message)
        else:
            await self.notices.alert(session_id, result.message)
        return result

    async def cancel(self, record_id: str, email: str, session_id: str = "public") -> SubmissionResult:
        """Ask the backend to cancel a booking, then re-read the cache.

        The local record is never edited in place; its new status arrives with
        the refresh.
        """
        try:
            ack = await self.client.cancel_booking(record_id, email)
        except BackendRejection as exc:
            result = SubmissionResult(SubmissionOutcome.FAILURE, exc.message, channel=BOOKINGS_CHANNEL)
        except BackendError:
            logger.exception("Booking cancellation failed", extra={"booking_id": record_id})
            result = SubmissionResult(SubmissionOutcome.FAILURE, CANCEL_FAILURE_MESSAGE, channel=BOOKINGS_CHANNEL)
        else:
            logger.info("Booking cancelled", extra={"booking_id": record_id})
            await self.refresh()
            message = str(ack.get("message") or CANCELLED_MESSAGE)
            result = SubmissionResult(SubmissionOutcome.SUCCESS, message, channel=BOOKINGS_CHANNEL)

        if result.ok:
            await self.notices.success(session_id, result.message)
        else:
            await self.notices.alert(session_id, result.message)
        return result

    async def _create_booking(self, request: ReservationRequest) -> SubmissionResult:
        try:
            booking = await self.client.create_booking(request)
        except BackendRejection as exc:
            return SubmissionResult(SubmissionOutcome.FAILURE, exc.message, channel=BOOKINGS_CHANNEL)
        except BackendError:
            logger.exception("Booking submission failed", extra={"request_id": request.request_id})
            return SubmissionResult(SubmissionOutcome.FAILURE, TRANSPORT_FAILURE_MESSAGE, channel=BOOKINGS_CHANNEL)

        record = ReservationRecord.from_backend(booking)
        if record.service_options is None:
            record = record.model_copy(update={"service_options": request.service_options})
        self.store.apply_new_record(record)
        logger.info(
            "Booking submitted",
            extra={"request_id": request.request_id, "booking_id": record.id, "service": request.service_name.value},
        )
        return SubmissionResult(
            SubmissionOutcome.SUCCESS,
            SUCCESS_MESSAGES[BOOKINGS_CHANNEL],
            channel=BOOKINGS_CHANNEL,
            record=record,
        )

    async def _enqueue_instrument_request(
        self,
        request: ReservationRequest,
        catalog: Catalog,
        kind: InstrumentRequestKind,
    ) -> SubmissionResult:
        instrument_request = build_instrument_request(request, catalog, kind)
        try:
            ack = await self.client.enqueue_instrument_request(instrument_request)
        except BackendRejection as exc:
            return SubmissionResult(SubmissionOutcome.FAILURE, exc.message, channel=kind.value)
        except BackendError:
            logger.exception("Instrument request failed", extra={"request_id": request.request_id, "kind": kind.value})
            return SubmissionResult(SubmissionOutcome.FAILURE, TRANSPORT_FAILURE_MESSAGE, channel=kind.value)

        queued_id = ack.get("requestId")
        queued = instrument_request.model_copy(
            update={
                "id": str(queued_id) if queued_id is not None else None,
                "status": ReservationStatus.PENDING,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        self.store.apply_instrument_request(queued)
        logger.info(
            "Instrument request queued",
            extra={"request_id": request.request_id, "kind": kind.value, "queued_id": queued.id},
        )
        return SubmissionResult(
            SubmissionOutcome.SUCCESS,
            SUCCESS_MESSAGES[kind.value],
            channel=kind.value,
            instrument_request=queued,
        )


_submission_service: SubmissionService | None = None


def get_submission_service() -> SubmissionService:
    global _submission_service
    if not _submission_service:
        _submission_service = SubmissionService()
    return _submission_service
