"""
Address record queue and per-record lifecycle.

A RecordQueue owns the records of one upload session. Ingesting a new
address list replaces the queue wholesale; records are never merged across
sessions.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator
import time

from imbarch.imb import IMBConfig
from imbarch.normalizer import StandardizedAddress


class RecordStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (RecordStatus.COMPLETED, RecordStatus.ERROR)


class ProcessingStatus(str, Enum):
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"


class InvalidTransition(ValueError):
    """Raised when a record is moved out of a state that does not allow it."""


@dataclass
class AddressRecord:
    """
    One address moving through the pipeline.

    Attributes:
        id: Unique identifier within the session
        original: Raw address string as ingested
        sequence_number: Serial number assigned at ingestion
        status: Lifecycle state
        street, city, state, zip, plus4, delivery_point: Standardized fields,
            empty until the record completes
        imb_data: IMB payload, set only on completion
    """

    id: str
    original: str
    sequence_number: int
    status: RecordStatus = RecordStatus.PENDING
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    plus4: str = ""
    delivery_point: str = ""
    imb_data: str | None = None

    def _move(self, expected: RecordStatus, target: RecordStatus) -> None:
        if self.status is not expected:
            raise InvalidTransition(
                f"Record {self.id}: cannot go {self.status.value} -> {target.value}"
            )
        self.status = target

    def start(self) -> None:
        self._move(RecordStatus.PENDING, RecordStatus.PROCESSING)

    def complete(self, address: StandardizedAddress, imb_data: str) -> None:
        self._move(RecordStatus.PROCESSING, RecordStatus.COMPLETED)
        self.street = address.street
        self.city = address.city
        self.state = address.state
        self.zip = address.zip
        self.plus4 = address.plus4
        self.delivery_point = address.delivery_point
        self.imb_data = imb_data

    def fail(self) -> None:
        self._move(RecordStatus.PROCESSING, RecordStatus.ERROR)


class RecordQueue:
    """
    Ordered records for one upload session plus derived global status.

    Example:
        >>> queue = RecordQueue(IMBConfig(start_sequence_number=100))
        >>> records = queue.ingest(["1 Main St", "2 Main St"])
        >>> [r.sequence_number for r in records]
        [100, 101]
        >>> queue.status
        <ProcessingStatus.PROCESSING: 'PROCESSING'>
    """

    def __init__(self, config: IMBConfig | None = None) -> None:
        self.config = config or IMBConfig()
        self._records: list[AddressRecord] = []

    def ingest(self, addresses: Iterable[str]) -> list[AddressRecord]:
        """
        Replace the queue with fresh pending records.

        Sequence numbers run upward from config.start_sequence_number in
        input order.
        """
        stamp = int(time.time() * 1000)
        start = self.config.start_sequence_number
        self._records = [
            AddressRecord(
                id=f"addr-{stamp}-{i}",
                original=address,
                sequence_number=start + i,
            )
            for i, address in enumerate(addresses)
        ]
        return list(self._records)

    @property
    def records(self) -> list[AddressRecord]:
        return list(self._records)

    def pending(self) -> list[AddressRecord]:
        return [r for r in self._records if r.status is RecordStatus.PENDING]

    def in_flight(self) -> list[AddressRecord]:
        return [r for r in self._records if r.status is RecordStatus.PROCESSING]

    @property
    def has_pending(self) -> bool:
        return any(r.status is RecordStatus.PENDING for r in self._records)

    @property
    def is_processing(self) -> bool:
        return any(r.status is RecordStatus.PROCESSING for r in self._records)

    def ready(self) -> bool:
        """True when a batch may start: something pending and nothing in flight."""
        return self.has_pending and not self.is_processing

    @property
    def status(self) -> ProcessingStatus:
        if not self._records:
            return ProcessingStatus.IDLE
        if all(r.status.terminal for r in self._records):
            return ProcessingStatus.COMPLETED
        return ProcessingStatus.PROCESSING

    def counts(self) -> dict[RecordStatus, int]:
        tally = Counter(r.status for r in self._records)
        return {s: tally.get(s, 0) for s in RecordStatus}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AddressRecord]:
        return iter(list(self._records))
