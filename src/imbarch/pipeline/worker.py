"""
Batch processing of queued address records.

One batch step standardizes up to BATCH_SIZE pending records concurrently
and encodes their IMB payloads. drive() repeats the step until no record is
pending. Failures are contained per record: a record whose normalizer call
fails ends in the error state and its siblings carry on.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from imbarch.imb import IMBConfig, encode
from imbarch.normalizer import AddressNormalizer

from .queue import AddressRecord, RecordQueue, RecordStatus


# Maximum concurrent normalizer calls per batch.
BATCH_SIZE = 3

LOGGER = logging.getLogger("imbarch.pipeline")


@dataclass
class RunSummary:
    """
    Result of driving a queue to completion.

    Attributes:
        total: Number of records in the queue
        completed: Records that ended completed
        failed: Records that ended in error
        batches: Number of batch steps executed
        elapsed_seconds: Wall time of the run
    """

    total: int
    completed: int
    failed: int
    batches: int
    elapsed_seconds: float

    @property
    def success(self) -> bool:
        return self.failed == 0


async def process_record(
    record: AddressRecord,
    config: IMBConfig,
    normalizer: AddressNormalizer,
) -> AddressRecord:
    """
    Standardize one in-flight record and encode its payload.

    The record must already be processing. Any exception from the
    normalizer is logged and turns the record into an error; nothing is
    raised to the caller.
    """
    try:
        address = await normalizer.normalize(record.original)
        routing = (address.zip, address.plus4, address.delivery_point)
    except Exception:
        LOGGER.exception(
            "record_failed",
            extra={"record_id": record.id, "sequence_number": record.sequence_number},
        )
        record.fail()
        return record

    imb_data = encode(config, record.sequence_number, *routing)
    record.complete(address, imb_data)
    return record


async def run_once(
    queue: RecordQueue,
    config: IMBConfig,
    normalizer: AddressNormalizer,
    *,
    batch_size: int = BATCH_SIZE,
) -> list[AddressRecord]:
    """
    Run one batch step over the queue.

    Picks up to batch_size pending records in queue order, marks them
    processing and standardizes them concurrently. Does nothing while any
    record is still processing, so overlapping calls cannot start a second
    batch.

    Parameters:
        queue: Record queue to advance
        config: IMB settings used for encoding
        normalizer: Address normalizer
        batch_size: Maximum concurrent normalizer calls

    Returns:
        The records handled in this step (empty if nothing ran)
    """
    if queue.is_processing:
        LOGGER.debug("batch_skipped", extra={"in_flight": len(queue.in_flight())})
        return []

    batch = queue.pending()[:batch_size]
    if not batch:
        return []

    for record in batch:
        record.start()

    LOGGER.info(
        "batch_started",
        extra={"size": len(batch), "first_sequence_number": batch[0].sequence_number},
    )
    await asyncio.gather(*(process_record(r, config, normalizer) for r in batch))
    return batch


async def drive(
    queue: RecordQueue,
    config: IMBConfig,
    normalizer: AddressNormalizer,
    *,
    batch_size: int = BATCH_SIZE,
    on_batch: Callable[[list[AddressRecord]], None] | None = None,
) -> RunSummary:
    """
    Run batch steps until no record is pending.

    Each iteration asks the queue whether a batch may start (pending records
    and none in flight) and runs one step. The queue may be re-ingested by
    the caller between steps; the loop then continues on the new records.

    Parameters:
        queue: Record queue to process
        config: IMB settings used for encoding
        normalizer: Address normalizer
        batch_size: Maximum concurrent normalizer calls
        on_batch: Optional callback invoked after every batch

    Returns:
        RunSummary with final counts
    """
    start_time = time.perf_counter()
    batches = 0

    while queue.ready():
        batch = await run_once(queue, config, normalizer, batch_size=batch_size)
        if not batch:
            break
        batches += 1
        if on_batch is not None:
            on_batch(batch)

    counts = queue.counts()
    summary = RunSummary(
        total=len(queue),
        completed=counts[RecordStatus.COMPLETED],
        failed=counts[RecordStatus.ERROR],
        batches=batches,
        elapsed_seconds=time.perf_counter() - start_time,
    )
    LOGGER.info(
        "run_finished",
        extra={
            "total": summary.total,
            "completed": summary.completed,
            "failed": summary.failed,
            "batches": summary.batches,
            "status": queue.status.value,
        },
    )
    return summary
