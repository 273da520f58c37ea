from __future__ import annotations

from threading import RLock
from typing import Iterable, List, Optional

from bandbooking.schemas.reservation import InstrumentRequest, ReservationRecord


class RecordStore:
    """Thread-safe client-local cache of reservation records and instrument requests.

    The cache is only ever replaced wholesale with the latest fetch or grown by
    one entry after an accepted submission.
    """

    def __init__(self) -> None:
        self._records: List[ReservationRecord] = []
        self._instrument_requests: List[InstrumentRequest] = []
        self._lock = RLock()

    def replace_all(self, records: Iterable[ReservationRecord]) -> None:
        with self._lock:
            self._records = list(records)

    def apply_new_record(self, record: ReservationRecord) -> None:
        with self._lock:
            self._records.append(record)

    def all(self) -> List[ReservationRecord]:
        with self._lock:
            return list(self._records)

    def get(self, record_id: str) -> Optional[ReservationRecord]:
        with self._lock:
            for record in self._records:
                if record.id == record_id:
                    return record
            return None

    def replace_instrument_requests(self, requests: Iterable[InstrumentRequest]) -> None:
        with self._lock:
            self._instrument_requests = list(requests)

    def apply_instrument_request(self, request: InstrumentRequest) -> None:
        with self._lock:
            self._instrument_requests.insert(0, request)

    def instrument_requests(self) -> List[InstrumentRequest]:
        with self._lock:
            return list(self._instrument_requests)

    def clear(self) -> None:
        with self._lock:
            self._records = []
            self._instrument_requests = []


record_store = RecordStore()


def get_record_store() -> RecordStore:
    return record_store
