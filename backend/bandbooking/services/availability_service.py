"""Per-date availability derived from the visible reservation records."""

from __future__ import annotations

import calendar
import datetime
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from bandbooking.schemas.reservation import ReservationRecord, ReservationStatus
from bandbooking.services.pricing_service import parse_date

APPROVED = "approved"
PENDING = "pending"
AVAILABLE = "available"


@dataclass(frozen=True)
class CalendarDay:
    date: str
    status: str
    selectable: bool


def _on_date(records: Iterable[ReservationRecord], date_str: str, service_name: Optional[str]) -> List[ReservationRecord]:
    return [
        record
        for record in records
        if record.date == date_str and (service_name is None or record.service_name == service_name)
    ]


def status_for(records: Iterable[ReservationRecord], date_str: str, service_name: Optional[str] = None) -> str:
    # Any approved record blocks the whole date; there is no capacity model.
    day_records = _on_date(records, date_str, service_name)
    if any(record.status is ReservationStatus.APPROVED for record in day_records):
        return APPROVED
    if any(record.status is ReservationStatus.PENDING for record in day_records):
        return PENDING
    return AVAILABLE


def is_date_blocked(records: Iterable[ReservationRecord], date_str: str, service_name: Optional[str] = None) -> bool:
    return status_for(records, date_str, service_name) == APPROVED


def month_calendar(
    records: Iterable[ReservationRecord],
    year: int,
    month: int,
    today: datetime.date,
    service_name: Optional[str] = None,
) -> List[CalendarDay]:
    """Status of every day in a month, with whether the day may be picked."""
    snapshot = list(records)
    days: List[CalendarDay] = []
    for day in range(1, calendar.monthrange(year, month)[1] + 1):
        current = datetime.date(year, month, day)
        date_str = current.isoformat()
        status = status_for(snapshot, date_str, service_name)
        days.append(CalendarDay(date=date_str, status=status, selectable=current >= today and status == AVAILABLE))
    return days


def select_rental_date(
    start_date: Optional[str],
    end_date: Optional[str],
    clicked: str,
    today: datetime.date,
) -> Tuple[Optional[str], Optional[str]]:
    """Apply one click of the two-click rental range picker."""
    clicked_day = parse_date(clicked)
    if clicked_day is None or clicked_day < today:
        return start_date, end_date

    start_day = parse_date(start_date)
    if start_day is None or parse_date(end_date) is not None:
        return clicked_day.isoformat(), None
    if clicked_day >= start_day:
        return start_date, clicked_day.isoformat()
    return clicked_day.isoformat(), None
