from __future__ import annotations

import datetime
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from bandbooking.schemas.reservation import ReservationForm, Requester
from bandbooking.services.availability_service import month_calendar, select_rental_date, status_for
from bandbooking.services.catalog_service import CatalogService, get_catalog_service
from bandbooking.services.pricing_service import quote_form, rental_days
from bandbooking.services.submission_service import SubmissionService, get_submission_service
from bandbooking.services.validation_service import is_valid, missing_fields
from bandbooking.stores.record_store import RecordStore, get_record_store
from bandbooking.utils.config import get_settings


class SubmitReservation(BaseModel):
    form: ReservationForm
    requester: Optional[Requester] = None
    session_id: str = Field("public", min_length=1, max_length=128)


class CancelReservation(BaseModel):
    email: str = Field(..., min_length=1)
    session_id: str = Field("public", min_length=1, max_length=128)


class RentalDateClick(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    clicked: str
    today: Optional[datetime.date] = None


router = APIRouter(prefix="/reservations", tags=["reservations"])


def _parse_day(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD") from exc


@router.get("")
def list_records(service: Optional[str] = None, store: RecordStore = Depends(get_record_store)) -> Dict[str, Any]:
    records = [record for record in store.all() if service is None or record.service_name == service]
    return {"records": [record.model_dump(mode="json") for record in records]}


@router.post("/quote")
async def quote(
    form: ReservationForm,
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> Dict[str, Any]:
    catalog = await catalog_service.get()
    return {
        "service_name": form.service_name,
        "estimated_value": str(quote_form(form, catalog)),
        "rental_days": rental_days(form.rental_start_date, form.rental_end_date),
        "currency": get_settings().currency,
    }


@router.post("/validate")
def validate(form: ReservationForm) -> Dict[str, Any]:
    return {"valid": is_valid(form), "missing": missing_fields(form)}


@router.get("/availability/{date}")
def availability(
    date: str,
    service: Optional[str] = None,
    store: RecordStore = Depends(get_record_store),
) -> Dict[str, str]:
    day = _parse_day(date)
    return {"date": day.isoformat(), "status": status_for(store.all(), day.isoformat(), service)}


@router.get("/calendar/{year}/{month}")
def calendar_month(
    year: int,
    month: int,
    service: Optional[str] = None,
    today: Optional[datetime.date] = None,
    store: RecordStore = Depends(get_record_store),
) -> Dict[str, Any]:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="month must be between 1 and 12")
    days = month_calendar(store.all(), year, month, today or datetime.date.today(), service)
    return {"year": year, "month": month, "days": [asdict(day) for day in days]}


@router.post("/rental-range")
def pick_rental_date(payload: RentalDateClick) -> Dict[str, Any]:
    start_date, end_date = select_rental_date(
        payload.start_date,
        payload.end_date,
        payload.clicked,
        payload.today or datetime.date.today(),
    )
    return {"start_date": start_date, "end_date": end_date, "rental_days": rental_days(start_date, end_date)}


@router.post("/refresh")
async def refresh(submission_service: SubmissionService = Depends(get_submission_service)) -> Dict[str, Any]:
    refreshed = await submission_service.refresh()
    return {"refreshed": refreshed, "records": len(submission_service.store.all())}


@router.get("/instrument-requests")
def list_instrument_requests(store: RecordStore = Depends(get_record_store)) -> Dict[str, Any]:
    return {"requests": [request.model_dump(mode="json") for request in store.instrument_requests()]}


@router.post("/submit")
async def submit(
    payload: SubmitReservation,
    submission_service: SubmissionService = Depends(get_submission_service),
) -> Dict[str, Any]:
    result = await submission_service.submit(payload.form, payload.requester, session_id=payload.session_id)
    return {
        "outcome": result.outcome.value,
        "message": result.message,
        "channel": result.channel,
        "record": result.record.model_dump(mode="json") if result.record else None,
        "instrument_request": result.instrument_request.model_dump(mode="json") if result.instrument_request else None,
        "form": payload.form.model_dump(mode="json"),
    }


@router.post("/{record_id}/cancel")
async def cancel(
    record_id: str,
    payload: CancelReservation,
    submission_service: SubmissionService = Depends(get_submission_service),
) -> Dict[str, Any]:
    result = await submission_service.cancel(record_id, payload.email, session_id=payload.session_id)
    return {"outcome": result.outcome.value, "message": result.message}
