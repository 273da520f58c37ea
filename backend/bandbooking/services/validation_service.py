from __future__ import annotations

import datetime
from typing import Iterable, List, Optional

from bandbooking.schemas.catalog import PACKAGE_SERVICES, Catalog, ServiceName
from bandbooking.schemas.reservation import ReservationForm, ReservationRecord
from bandbooking.services.availability_service import is_date_blocked

DATE_BLOCKED_MESSAGE = "This date is already booked. Please choose a different date."
TIME_ORDER_MESSAGE = "End time must be after start time."
TIME_FORMAT_MESSAGE = "Please enter start and end times as HH:MM."
PACKAGE_UNAVAILABLE_MESSAGE = "The selected band package is not available. Please choose another package."
INSTRUMENT_UNAVAILABLE_MESSAGE = "The selected instrument is not available. Please choose another instrument."

TIME_FORMATS = ("%H:%M", "%H:%M:%S")


def _filled(value: str) -> bool:
    return bool(value and value.strip())


def parse_time(value: str) -> Optional[datetime.time]:
    text = value.strip()
    for fmt in TIME_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def missing_fields(form: ReservationForm) -> List[str]:
    """Names of required fields that are still empty for the selected service."""
    missing = [
        name
        for name in ("service_name", "name", "email", "location")
        if not _filled(getattr(form, name))
    ]

    service = form.service
    if service in PACKAGE_SERVICES:
        required = ("package_key", "date", "start_time", "end_time")
    elif service is ServiceName.INSTRUMENT_RENTALS:
        required = ("instrument_id", "rental_start_date", "rental_end_date", "purpose")
    else:
        required = ()
    missing.extend(name for name in required if not _filled(getattr(form, name)))

    if service is ServiceName.MUSIC_ARRANGEMENT and form.num_pieces <= 0:
        missing.append("num_pieces")
    return missing


def is_valid(form: ReservationForm) -> bool:
    # Unknown services fail closed.
    if form.service is None:
        return False
    return not missing_fields(form)


def conflict_message(form: ReservationForm, records: Iterable[ReservationRecord]) -> Optional[str]:
    """Pre-submit checks against the schedule for date-bound services."""
    if form.service not in PACKAGE_SERVICES:
        return None
    if _filled(form.start_time) and _filled(form.end_time):
        start, end = parse_time(form.start_time), parse_time(form.end_time)
        if start is None or end is None:
            return TIME_FORMAT_MESSAGE
        if end <= start:
            return TIME_ORDER_MESSAGE
    if form.date and is_date_blocked(records, form.date.strip()):
        return DATE_BLOCKED_MESSAGE
    return None


def catalog_message(form: ReservationForm, catalog: Catalog) -> Optional[str]:
    """Refuse choices the catalog does not currently offer."""
    service = form.service
    if service in PACKAGE_SERVICES and catalog.package(form.package_key.strip()) is None:
        return PACKAGE_UNAVAILABLE_MESSAGE
    if service is ServiceName.INSTRUMENT_RENTALS and catalog.instrument(form.instrument_id.strip()) is None:
        return INSTRUMENT_UNAVAILABLE_MESSAGE
    return None
