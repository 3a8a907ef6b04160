from __future__ import annotations

import gzip
import io
from pathlib import Path

import pytest

from manifest_pkg.core.schema import ObjectRecord
from manifest_pkg.errors import ManifestFormatError
from manifest_pkg.io.manifest import (
    ManifestWriter,
    ensure_gz_suffix,
    iter_manifest_records,
    read_manifest,
    write_manifest,
)


def _records(n: int) -> list[ObjectRecord]:
    classes = ["STANDARD", "GLACIER", "STANDARD_IA", "INTELLIGENT_TIERING"]
    return [
        ObjectRecord(
            path="" if i % 5 == 0 else f"data/part={i % 3}",
            name=f"file, \"{i}\".csv" if i % 7 == 0 else f"file_{i}.csv",
            storage_class=classes[i % len(classes)],
            size=i * 1024,
        )
        for i in range(n)
    ]


def _write_gz_text(path: Path, text: str) -> None:
    with gzip.open(path, "wt", encoding="utf-8", newline="") as fh:
        fh.write(text)


def test_ensure_gz_suffix(tmp_path: Path) -> None:
    assert ensure_gz_suffix(tmp_path / "out.csv") == tmp_path / "out.csv.gz"
    assert ensure_gz_suffix(tmp_path / "out.csv.gz") == tmp_path / "out.csv.gz"
    assert ensure_gz_suffix("manifest") == Path("manifest.gz")


def test_writer_appends_suffix_and_writes_header_and_quoted_rows(tmp_path: Path) -> None:
    out, rows = write_manifest(
        [
            ObjectRecord(path="a", name="b.txt", storage_class="STANDARD", size=100),
            ObjectRecord(path="", name="d.txt", storage_class="STANDARD", size=50),
        ],
        tmp_path / "manifest.csv",
    )

    assert out == tmp_path / "manifest.csv.gz"
    assert rows == 2
    with gzip.open(out, "rt", encoding="utf-8", newline="") as fh:
        text = fh.read()
    assert text == (
        'Path,Name,StorageClass,Size\r\n'
        '"a","b.txt","STANDARD",100\r\n'
        '"","d.txt","STANDARD",50\r\n'
    )


@pytest.mark.parametrize("n", [0, 1, 23])
def test_manifest_round_trip(tmp_path: Path, n: int) -> None:
    original = _records(n)
    out, rows = write_manifest(iter(original), tmp_path / "manifest.csv.gz")
    assert rows == n
    assert list(read_manifest(out)) == original


def test_header_only_manifest_parses_to_no_records(tmp_path: Path) -> None:
    path = tmp_path / "empty.csv.gz"
    _write_gz_text(path, "Path,Name,StorageClass,Size\r\n")
    assert list(read_manifest(path)) == []


def test_reader_handles_uncompressed_manifest(tmp_path: Path) -> None:
    path = tmp_path / "plain.csv"
    path.write_text('Path,Name,StorageClass,Size\n"a","b.txt","GLACIER",7\n', encoding="utf-8")
    assert list(read_manifest(path)) == [ObjectRecord(path="a", name="b.txt", storage_class="GLACIER", size=7)]


def test_reader_rejects_wrong_header() -> None:
    stream = io.StringIO("path,name,size\n")
    with pytest.raises(ManifestFormatError, match="header"):
        list(iter_manifest_records(stream))


def test_reader_rejects_empty_stream() -> None:
    with pytest.raises(ManifestFormatError, match="empty"):
        list(iter_manifest_records(io.StringIO("")))


def test_reader_stops_at_first_malformed_row() -> None:
    stream = io.StringIO(
        "Path,Name,StorageClass,Size\n"
        '"a","ok.txt","STANDARD",1\n'
        '"a","bad.txt","STANDARD",\n'
        '"a","never.txt","STANDARD",3\n'
    )
    records = iter_manifest_records(stream)
    assert next(records).name == "ok.txt"
    with pytest.raises(ManifestFormatError, match="row 2"):
        next(records)


def test_reader_rejects_extra_columns() -> None:
    stream = io.StringIO('Path,Name,StorageClass,Size\n"a","b","STANDARD",1,"extra"\n')
    with pytest.raises(ManifestFormatError, match="5 columns"):
        list(iter_manifest_records(stream))


def test_reader_rejects_corrupt_gzip(tmp_path: Path) -> None:
    path = tmp_path / "broken.csv.gz"
    path.write_bytes(b"not a gzip stream at all")
    with pytest.raises(ManifestFormatError):
        list(read_manifest(path))


def test_reader_rejects_damaged_gzip_body(tmp_path: Path) -> None:
    path, _ = write_manifest(_records(20_000), tmp_path / "damaged.csv.gz")
    data = bytearray(path.read_bytes())
    for i in range(200, 400):
        data[i] ^= 0xFF
    path.write_bytes(bytes(data))

    with pytest.raises(ManifestFormatError):
        list(read_manifest(path))


def test_failed_write_leaves_no_manifest(tmp_path: Path) -> None:
    target = tmp_path / "manifest.csv.gz"

    def _records_then_fail():
        yield ObjectRecord(path="a", name="b", storage_class="STANDARD", size=1)
        raise RuntimeError("listing died")

    with pytest.raises(RuntimeError, match="listing died"):
        write_manifest(_records_then_fail(), target)

    assert not target.exists()
    assert list(tmp_path.iterdir()) == []


def test_failed_write_keeps_previous_manifest(tmp_path: Path) -> None:
    target = tmp_path / "manifest.csv.gz"
    write_manifest(_records(3), target)

    with pytest.raises(RuntimeError):
        with ManifestWriter(target) as writer:
            writer.write(_records(1)[0])
            raise RuntimeError("boom")

    assert list(read_manifest(target)) == _records(3)


def test_writer_rejects_writes_after_close(tmp_path: Path) -> None:
    writer = ManifestWriter(tmp_path / "m.csv")
    writer.open()
    writer.close()
    with pytest.raises(RuntimeError):
        writer.write(_records(1)[0])
    assert (tmp_path / "m.csv.gz").exists()
