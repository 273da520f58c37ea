from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from .catalog import PACKAGE_SERVICES, ServiceName, to_decimal


class ReservationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value: object) -> Optional["ReservationStatus"]:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None

    @classmethod
    def parse(cls, value: Optional[str]) -> "ReservationStatus":
        # Unrecognised states are tentatively occupied, never blocking.
        if not value:
            return cls.PENDING
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING


class InstrumentRequestKind(str, Enum):
    RENT = "rent"
    BORROW = "borrow"


def trim_date(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text.split("T", 1)[0]


class Customer(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None


class BandGigOptions(BaseModel):
    kind: Literal["band_gig"] = "band_gig"
    package_key: Optional[str] = None
    event_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class InstrumentRentalOptions(BaseModel):
    kind: Literal["instrument_rental"] = "instrument_rental"
    instrument_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    purpose: Optional[str] = None


class MusicArrangementOptions(BaseModel):
    kind: Literal["music_arrangement"] = "music_arrangement"
    num_pieces: int = 1


class WorkshopOptions(BaseModel):
    kind: Literal["workshop"] = "workshop"


ServiceOptions = Annotated[
    Union[BandGigOptions, InstrumentRentalOptions, MusicArrangementOptions, WorkshopOptions],
    Field(discriminator="kind"),
]

# Rows saved before the estimate was stored read as the standard booking value.
MISSING_ESTIMATE_VALUE = Decimal("5000")

OPTION_KINDS: Dict[ServiceName, str] = {
    ServiceName.BAND_GIGS: "band_gig",
    ServiceName.PARADE_EVENTS: "band_gig",
    ServiceName.INSTRUMENT_RENTALS: "instrument_rental",
    ServiceName.MUSIC_ARRANGEMENT: "music_arrangement",
    ServiceName.MUSIC_WORKSHOPS: "workshop",
}


def _blank(value: str) -> Optional[str]:
    value = value.strip()
    return value or None


class ReservationForm(BaseModel):
    """Mutable form state a reservation request is built from.

    Every field is kept as the raw text the user entered; empty strings mean
    "not filled in". ``request_id`` is the client-side idempotency key and is
    regenerated whenever the form is reset.
    """

    service_name: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    notes: str = ""
    date: str = ""
    start_time: str = ""
    end_time: str = ""
    package_key: str = ""
    instrument_id: str = ""
    rental_start_date: str = ""
    rental_end_date: str = ""
    purpose: str = ""
    num_pieces: int = 1
    request_id: str = Field(default_factory=lambda: str(uuid4()))

    @property
    def service(self) -> Optional[ServiceName]:
        return ServiceName.parse(self.service_name)

    def options(self) -> Optional[ServiceOptions]:
        service = self.service
        if service is None:
            return None
        if service in PACKAGE_SERVICES:
            return BandGigOptions(
                package_key=_blank(self.package_key),
                event_date=_blank(self.date),
                start_time=_blank(self.start_time),
                end_time=_blank(self.end_time),
            )
        if service is ServiceName.INSTRUMENT_RENTALS:
            return InstrumentRentalOptions(
                instrument_id=_blank(self.instrument_id),
                start_date=_blank(self.rental_start_date),
                end_date=_blank(self.rental_end_date),
                purpose=_blank(self.purpose),
            )
        if service is ServiceName.MUSIC_ARRANGEMENT:
            return MusicArrangementOptions(num_pieces=self.num_pieces)
        return WorkshopOptions()

    def reset(self) -> None:
        for name, field in type(self).model_fields.items():
            setattr(self, name, field.get_default(call_default_factory=True))


class ReservationRequest(BaseModel):
    request_id: str
    service_name: ServiceName
    customer: Customer
    location: str
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    estimated_value: Decimal = Decimal("0")
    service_options: ServiceOptions
    notes: Optional[str] = None
    user_id: Optional[str] = None

    @model_validator(mode="after")
    def _options_match_service(self) -> "ReservationRequest":
        expected = OPTION_KINDS[self.service_name]
        if self.service_options.kind != expected:
            raise ValueError(
                f"{self.service_name.value} requires {expected} options, got {self.service_options.kind}"
            )
        if isinstance(self.service_options, MusicArrangementOptions) and self.service_options.num_pieces < 1:
            raise ValueError("Music Arrangement requires at least one piece")
        return self

    def to_payload(self) -> Dict[str, Any]:
        return {
            "clientRequestId": self.request_id,
            "userId": self.user_id,
            "customerName": self.customer.name,
            "email": self.customer.email,
            "phone": self.customer.phone,
            "service": self.service_name.value,
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "location": self.location,
            "estimatedValue": str(self.estimated_value),
            "notes": self.notes,
            "serviceOptions": self.service_options.model_dump(mode="json"),
        }


class ReservationRecord(BaseModel):
    id: str
    service_name: str
    customer: Customer
    location: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    estimated_value: Decimal = Decimal("0")
    notes: Optional[str] = None
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: Optional[str] = None
    service_options: Optional[ServiceOptions] = None

    @classmethod
    def from_backend(cls, row: Dict[str, Any]) -> "ReservationRecord":
        raw_id = row.get("booking_id", row.get("id"))
        created_at = row.get("created_at", row.get("createdAt"))
        return cls(
            id=str(raw_id) if raw_id is not None else "",
            service_name=str(row.get("service") or row.get("service_name") or ""),
            customer=Customer(
                name=str(row.get("customer_name") or row.get("customerName") or ""),
                email=str(row.get("email") or ""),
                phone=row.get("phone"),
            ),
            location=row.get("location"),
            date=trim_date(row.get("date")),
            start_time=row.get("start_time", row.get("startTime")),
            end_time=row.get("end_time", row.get("endTime")),
            estimated_value=to_decimal(row.get("estimated_value", row.get("estimatedValue")), MISSING_ESTIMATE_VALUE),
            notes=row.get("notes"),
            status=ReservationStatus.parse(row.get("status")),
            created_at=str(created_at) if created_at is not None else None,
        )


class InstrumentRequest(BaseModel):
    """A rent or borrow request waiting in the approval queue."""

    id: Optional[str] = None
    client_request_id: Optional[str] = None
    kind: InstrumentRequestKind
    instrument_id: Optional[str] = None
    instrument_name: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None
    rental_fee: Optional[Decimal] = None
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: Optional[str] = None

    @classmethod
    def from_backend(cls, row: Dict[str, Any]) -> "InstrumentRequest":
        raw_id = row.get("request_id", row.get("requestId", row.get("id")))
        instrument_id = row.get("instrument_id", row.get("instrumentId"))
        fee = row.get("rental_fee", row.get("rentalFee"))
        created_at = row.get("request_date", row.get("created_at"))
        return cls(
            id=str(raw_id) if raw_id is not None else None,
            kind=(
                InstrumentRequestKind.BORROW
                if str(row.get("type") or "").lower() == "borrow"
                else InstrumentRequestKind.RENT
            ),
            instrument_id=str(instrument_id) if instrument_id is not None else None,
            instrument_name=row.get("instrument_name", row.get("instrumentName")),
            start_date=trim_date(row.get("start_date", row.get("startDate"))),
            end_date=trim_date(row.get("end_date", row.get("endDate"))),
            purpose=row.get("purpose"),
            notes=row.get("notes"),
            rental_fee=to_decimal(fee) if fee not in (None, "") else None,
            status=ReservationStatus.parse(row.get("status")),
            created_at=str(created_at) if created_at is not None else None,
        )

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "clientRequestId": self.client_request_id,
            "instrumentId": self.instrument_id,
            "instrumentName": self.instrument_name,
            "quantity": 1,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "purpose": self.purpose,
            "notes": self.notes,
        }
        if self.kind is InstrumentRequestKind.RENT:
            payload["rentalFee"] = str(self.rental_fee or Decimal("0"))
        return payload


class Requester(BaseModel):
    id: Optional[str] = None
    role: Optional[str] = None

    @property
    def instrument_request_kind(self) -> InstrumentRequestKind:
        if self.role and self.role != "user":
            return InstrumentRequestKind.BORROW
        return InstrumentRequestKind.RENT
