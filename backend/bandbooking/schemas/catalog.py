from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ServiceName(str, Enum):
    BAND_GIGS = "Band Gigs"
    PARADE_EVENTS = "Parade Events"
    INSTRUMENT_RENTALS = "Instrument Rentals"
    MUSIC_ARRANGEMENT = "Music Arrangement"
    MUSIC_WORKSHOPS = "Music Workshops"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ServiceName"]:
        if not value:
            return None
        try:
            return cls(value.strip())
        except ValueError:
            return None


PACKAGE_SERVICES = frozenset({ServiceName.BAND_GIGS, ServiceName.PARADE_EVENTS})


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


class ServiceDefinition(BaseModel):
    name: str
    requires_package: bool = False
    requires_instrument: bool = False
    requires_piece_count: bool = False
    base_price: Optional[Decimal] = None

    model_config = {"frozen": True}

    @classmethod
    def from_backend(cls, row: Dict[str, Any]) -> "ServiceDefinition":
        name = str(row.get("name") or "").strip()
        service = ServiceName.parse(name)
        base_price = row.get("default_price", row.get("basePrice"))
        return cls(
            name=name,
            requires_package=service in PACKAGE_SERVICES,
            requires_instrument=service is ServiceName.INSTRUMENT_RENTALS,
            requires_piece_count=service is ServiceName.MUSIC_ARRANGEMENT,
            base_price=to_decimal(base_price) if base_price not in (None, "") else None,
        )


class BandPackage(BaseModel):
    key: str
    label: str
    price: Decimal
    active: bool = True

    model_config = {"frozen": True}

    @classmethod
    def from_backend(cls, row: Dict[str, Any]) -> "BandPackage":
        active = row.get("is_active", row.get("active", True))
        return cls(
            key=str(row.get("package_key") or row.get("key") or ""),
            label=str(row.get("package_name") or row.get("label") or ""),
            price=to_decimal(row.get("price")),
            active=bool(active) if active is not None else True,
        )


class InstrumentCatalogEntry(BaseModel):
    id: str
    name: str
    price_per_day: Decimal = Decimal("0")
    available_quantity: int = 0
    is_archived: bool = False

    model_config = {"frozen": True}

    @property
    def is_eligible(self) -> bool:
        return self.available_quantity > 0 and not self.is_archived

    @classmethod
    def from_backend(cls, row: Dict[str, Any]) -> "InstrumentCatalogEntry":
        raw_id = row.get("instrument_id", row.get("id"))
        raw_quantity = row.get("quantity", row.get("available_quantity", 0))
        try:
            quantity = int(raw_quantity or 0)
        except (TypeError, ValueError):
            quantity = 0
        return cls(
            id=str(raw_id) if raw_id is not None else "",
            name=str(row.get("name") or ""),
            price_per_day=to_decimal(row.get("price_per_day", row.get("pricePerDay"))),
            available_quantity=quantity,
            is_archived=bool(row.get("is_archived", False)),
        )


class Catalog(BaseModel):
    """Reference data the engine reads but never mutates."""

    services: List[ServiceDefinition] = Field(default_factory=list)
    packages: Dict[str, BandPackage] = Field(default_factory=dict)
    instruments: Dict[str, InstrumentCatalogEntry] = Field(default_factory=dict)
    degraded: bool = False

    def package(self, key: Optional[str]) -> Optional[BandPackage]:
        if not key:
            return None
        return self.packages.get(key)

    def instrument(self, instrument_id: Optional[str]) -> Optional[InstrumentCatalogEntry]:
        if not instrument_id:
            return None
        return self.instruments.get(str(instrument_id))
