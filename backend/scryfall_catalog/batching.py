"""Split inventory records into lookup-sized batches."""

from typing import List, Sequence

from .models import Batch, LocalRecord


def plan_batches(records: Sequence[LocalRecord], limit: int) -> List[Batch]:
    """Partition records into consecutive batches of at most `limit` records.

    Order is preserved and the input sequence is left untouched; only the
    last batch may be short.
    """
    if limit < 1:
        raise ValueError(f"Batch limit must be at least 1, got {limit}")

    return [
        Batch(index=index, records=tuple(records[start:start + limit]))
        for index, start in enumerate(range(0, len(records), limit))
    ]
