from .catalog import BandPackage, Catalog, InstrumentCatalogEntry, ServiceDefinition, ServiceName
from .reservation import (
    BandGigOptions,
    Customer,
    InstrumentRentalOptions,
    InstrumentRequest,
    InstrumentRequestKind,
    MusicArrangementOptions,
    ReservationForm,
    ReservationRecord,
    ReservationRequest,
    ReservationStatus,
    Requester,
    ServiceOptions,
    WorkshopOptions,
)

__all__ = [
    "ServiceName",
    "ServiceDefinition",
    "BandPackage",
    "InstrumentCatalogEntry",
    "Catalog",
    "Customer",
    "BandGigOptions",
    "InstrumentRentalOptions",
    "MusicArrangementOptions",
    "WorkshopOptions",
    "ServiceOptions",
    "ReservationForm",
    "ReservationRequest",
    "ReservationRecord",
    "ReservationStatus",
    "InstrumentRequest",
    "InstrumentRequestKind",
    "Requester",
]
