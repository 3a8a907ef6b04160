from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping

from manifest_pkg.core.schema import ObjectRecord


@dataclass
class CategoryTally:
    count: int = 0
    total_size: int = 0


class StorageClassTally:
    """
    Running count/size totals per storage class.

    Classes are created on first sighting; any label is accepted. Nothing is
    ever removed, so the snapshot taken at the end of a run covers every class
    that was observed.
    """

    def __init__(self) -> None:
        self._tallies: dict[str, CategoryTally] = {}
        self._total_count = 0
        self._total_size = 0

    def observe(self, storage_class: str, size: int) -> None:
        tally = self._tallies.get(storage_class)
        if tally is None:
            tally = self._tallies[storage_class] = CategoryTally()
        tally.count += 1
        tally.total_size += size
        self._total_count += 1
        self._total_size += size

    def observe_record(self, record: ObjectRecord) -> None:
        self.observe(record.storage_class, record.size)

    @property
    def total_count(self) -> int:
        return self._total_count

    @property
    def total_size(self) -> int:
        return self._total_size

    def __len__(self) -> int:
        return len(self._tallies)

    def snapshot(self) -> Mapping[str, CategoryTally]:
        """Read-only copy ordered by storage class name."""
        return MappingProxyType(
            {name: replace(self._tallies[name]) for name in sorted(self._tallies)}
        )


__all__ = ["CategoryTally", "StorageClassTally"]
