from __future__ import annotations

import pytest

from manifest_pkg.core.schema import ObjectRecord
from manifest_pkg.core.tally import CategoryTally, StorageClassTally


def test_observe_creates_classes_lazily_and_sums() -> None:
    tally = StorageClassTally()
    assert len(tally) == 0

    tally.observe("STANDARD", 100)
    tally.observe("GLACIER", 200)
    tally.observe("STANDARD", 50)

    snap = tally.snapshot()
    assert snap["STANDARD"] == CategoryTally(count=2, total_size=150)
    assert snap["GLACIER"] == CategoryTally(count=1, total_size=200)
    assert tally.total_count == 3
    assert tally.total_size == 350


def test_unknown_storage_class_labels_are_tracked() -> None:
    tally = StorageClassTally()
    tally.observe_record(ObjectRecord(path="", name="x", storage_class="DEEP_ARCHIVE_NEXT", size=7))
    assert tally.snapshot()["DEEP_ARCHIVE_NEXT"].total_size == 7


def test_snapshot_is_ordered_and_read_only() -> None:
    tally = StorageClassTally()
    for label in ["STANDARD_IA", "GLACIER", "STANDARD", "ONEZONE_IA"]:
        tally.observe(label, 1)

    snap = tally.snapshot()
    assert list(snap) == ["GLACIER", "ONEZONE_IA", "STANDARD", "STANDARD_IA"]
    with pytest.raises(TypeError):
        snap["NEW"] = CategoryTally()  # type: ignore[index]

    snap["GLACIER"].count = 999
    assert tally.snapshot()["GLACIER"].count == 1


def test_totals_match_per_record_sums() -> None:
    records = [
        ObjectRecord(path="p", name=f"n{i}", storage_class=("A", "B", "C")[i % 3], size=i * 10)
        for i in range(30)
    ]
    tally = StorageClassTally()
    for record in records:
        tally.observe_record(record)

    for label, category in tally.snapshot().items():
        matching = [r for r in records if r.storage_class == label]
        assert category.count == len(matching)
        assert category.total_size == sum(r.size for r in matching)
