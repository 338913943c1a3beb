"""Batch reconciliation of local inventory against Scryfall.

Each batch runs as its own asyncio task:

1. Dispatch: tasks start in planning order, staggered by a fixed delay
2. Fetch: one collection lookup, retried once after a backoff on HTTP 429
3. Merge: every returned card is paired with the first local record that
   shares its (name, set code), or with defaults if none does
4. Count: the batch is counted as completed whether it succeeded or not

Completion fires once, after every task has been counted.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .api_client import LookupService
from .config import ScryfallConfig
from .models import (
    Batch,
    CanonicalRecord,
    LocalRecord,
    RateLimitedError,
    ReconciledRecord,
    RunContext,
    ScryfallError,
)
from .progress import NullSink, ProgressLevel, ProgressSink

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[RunContext], None]


def merge_batch(
    batch: Batch,
    canonical_records: Sequence[CanonicalRecord],
) -> List[ReconciledRecord]:
    """Pair each canonical record with its local record from the batch.

    The response drives the result: canonical records without a local match
    still produce a record with default inventory values, and local records
    Scryfall did not return produce nothing. When several local records share
    a key, the first one in batch order wins.
    """
    first_by_key: Dict[Tuple[str, str], LocalRecord] = {}
    for record in batch.records:
        first_by_key.setdefault(record.match_key, record)

    merged = []
    for canonical in canonical_records:
        local = first_by_key.get(canonical.match_key)
        if local is None:
            logger.debug(
                f"Batch {batch.index}: no local match for {canonical.name!r} "
                f"({canonical.set_code}), using defaults"
            )
        merged.append(ReconciledRecord.merge(canonical, local))
    return merged


async def _fetch_with_retry(
    batch: Batch,
    lookup: LookupService,
    config: ScryfallConfig,
    sink: ProgressSink,
) -> List[CanonicalRecord]:
    """Fetch a batch, retrying exactly once if the first attempt is rate limited."""
    try:
        return await lookup.fetch_collection(batch)
    except RateLimitedError:
        sink.emit(
            ProgressLevel.WARNING,
            f"Batch {batch.index + 1} rate limited, retrying in "
            f"{config.retry_backoff_seconds}s",
        )
    await asyncio.sleep(config.retry_backoff_seconds)
    return await lookup.fetch_collection(batch)


async def _run_batch(
    batch: Batch,
    lookup: LookupService,
    run: RunContext,
    config: ScryfallConfig,
    sink: ProgressSink,
) -> None:
    label = f"Batch {batch.index + 1}/{run.total_batches}"
    try:
        canonical_records = await _fetch_with_retry(batch, lookup, config, sink)
    except ScryfallError as e:
        run.record_failure(batch.index, str(e))
        sink.emit(ProgressLevel.ERROR, f"{label} failed: {e}")
    except Exception as e:
        logger.exception(f"{label} raised an unexpected error")
        run.record_failure(batch.index, f"{type(e).__name__}: {e}")
        sink.emit(ProgressLevel.ERROR, f"{label} failed: {e!r}")
    else:
        merged = merge_batch(batch, canonical_records)
        run.add_records(merged)
        sink.emit(
            ProgressLevel.SUCCESS,
            f"{label} resolved {len(merged)} of {len(batch)} cards",
        )
    finally:
        run.mark_batch_completed()


async def reconcile_batches(
    batches: Sequence[Batch],
    lookup: LookupService,
    run: Optional[RunContext] = None,
    on_complete: Optional[CompletionCallback] = None,
    config: Optional[ScryfallConfig] = None,
    sink: Optional[ProgressSink] = None,
) -> RunContext:
    """Drive every batch to completion and fire the completion callback once.

    Args:
        batches: Planned batches, dispatched in this order
        lookup: Service used to resolve each batch
        run: Fresh run context to fill; a new one is created if omitted
        on_complete: Called with the finished run after every batch resolved
        config: Dispatch delay and retry backoff settings
        sink: Destination for progress events

    Returns:
        The completed run context
    """
    config = config or ScryfallConfig()
    sink = sink or NullSink()
    run = run if run is not None else RunContext()
    run.start(len(batches))

    tasks: List[asyncio.Task] = []
    for position, batch in enumerate(batches):
        if position and config.dispatch_delay_seconds > 0:
            await asyncio.sleep(config.dispatch_delay_seconds)
        sink.emit(
            ProgressLevel.INFO,
            f"Dispatching batch {batch.index + 1}/{len(batches)} ({len(batch)} cards)",
        )
        tasks.append(asyncio.create_task(_run_batch(batch, lookup, run, config, sink)))

    # Batch tasks record their own failures, so the barrier never raises
    await asyncio.gather(*tasks)

    run.complete()
    if run.failures:
        sink.emit(
            ProgressLevel.WARNING,
            f"Run finished: {run.succeeded_batches}/{run.total_batches} batches succeeded, "
            f"{len(run.catalog)} cards reconciled",
        )
    else:
        sink.emit(
            ProgressLevel.SUCCESS,
            f"Run finished: {run.total_batches} batches, {len(run.catalog)} cards reconciled",
        )

    if on_complete is not None:
        on_complete(run)
    return run
