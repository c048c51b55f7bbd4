"""Partition routing for enrichment events."""

from __future__ import annotations

import zlib
from typing import List, Sequence


def partition_for(entry_id: str, partitions: int) -> int:
    """Stable partition for an entry id; all events for one entry share it."""
    if partitions < 1:
        raise ValueError("partitions must be >= 1")
    return zlib.crc32(entry_id.encode("utf-8")) % partitions


def assign_partitions(partitions: Sequence[int], consumers: int) -> List[List[int]]:
    """Split partitions round-robin into ``consumers`` disjoint groups.

    Empty groups are dropped, so asking for more consumers than partitions
    yields one group per partition.
    """
    if consumers < 1:
        raise ValueError("consumers must be >= 1")
    groups: List[List[int]] = [[] for _ in range(consumers)]
    for index, partition in enumerate(sorted(partitions)):
        groups[index % consumers].append(partition)
    return [group for group in groups if group]
