"""Estimated value of a reservation, recomputed from scratch on every change."""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Optional, Union

from bandbooking.schemas.catalog import Catalog, PACKAGE_SERVICES, ServiceName
from bandbooking.schemas.reservation import (
    BandGigOptions,
    InstrumentRentalOptions,
    MusicArrangementOptions,
    ReservationForm,
    ServiceOptions,
    WorkshopOptions,
)

MUSIC_ARRANGEMENT_PRICE_PER_PIECE = Decimal("3000")
# Workshops are not priced from the catalog.
MUSIC_WORKSHOP_PRICE = Decimal("5000")

DateLike = Union[datetime.date, str, None]


def parse_date(value: DateLike) -> Optional[datetime.date]:
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return datetime.date.fromisoformat(text[:10])
    except ValueError:
        return None


def rental_days(start_date: DateLike, end_date: DateLike) -> int:
    """Inclusive day count between two calendar dates.

    A missing or unparseable bound, or an end before the start, yields ``0``
    rather than raising.
    """
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None or end < start:
        return 0
    return (end - start).days + 1


def estimate_value(service_name: Optional[str], options: Optional[ServiceOptions], catalog: Catalog) -> Decimal:
    service = ServiceName.parse(service_name)
    if service is None or options is None:
        return Decimal("0")

    if service in PACKAGE_SERVICES and isinstance(options, BandGigOptions):
        package = catalog.package(options.package_key)
        return package.price if package else Decimal("0")

    if service is ServiceName.INSTRUMENT_RENTALS and isinstance(options, InstrumentRentalOptions):
        instrument = catalog.instrument(options.instrument_id)
        days = rental_days(options.start_date, options.end_date)
        if instrument is None or days == 0:
            return Decimal("0")
        return instrument.price_per_day * days

    if service is ServiceName.MUSIC_ARRANGEMENT and isinstance(options, MusicArrangementOptions):
        if options.num_pieces < 1:
            return Decimal("0")
        return MUSIC_ARRANGEMENT_PRICE_PER_PIECE * options.num_pieces

    if service is ServiceName.MUSIC_WORKSHOPS and isinstance(options, WorkshopOptions):
        return MUSIC_WORKSHOP_PRICE

    return Decimal("0")


def quote_form(form: ReservationForm, catalog: Catalog) -> Decimal:
    return estimate_value(form.service_name, form.options(), catalog)
