from __future__ import annotations

from itertools import groupby
from typing import Iterable, TypeVar

from .models import TableRecord


R = TypeVar("R", bound=TableRecord)

# Largest entity group transaction the service accepts.
MAX_BATCH_SIZE = 100


def chunk_by_partition(records: Iterable[R], max_batch_size: int = MAX_BATCH_SIZE) -> list[list[R]]:
    """
    Split records into same-partition chunks suitable for one batch transaction each.

    - groups are ordered by partition key
    - input order is preserved inside a group
    - every chunk holds between 1 and `max_batch_size` records
    """
    size = max(1, int(max_batch_size))
    ordered = sorted(records, key=lambda r: r.partition_key)

    chunks: list[list[R]] = []
    for _, group in groupby(ordered, key=lambda r: r.partition_key):
        members = list(group)
        for i in range(0, len(members), size):
            chunks.append(members[i : i + size])
    return chunks


def create_operations(chunk: list[R]) -> list[tuple[str, dict]]:
    return [("create", r.to_entity()) for r in chunk]
