from __future__ import annotations

import csv
import gzip
import io
import os
import zlib
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import TextIO

from manifest_pkg.core.schema import ObjectRecord, ObjectRecordSchema, record_from_row, record_to_row
from manifest_pkg.errors import ManifestFormatError, SinkWriteError


GZIP_SUFFIX = ".gz"
_READ_ERRORS = (csv.Error, UnicodeDecodeError, EOFError, gzip.BadGzipFile, zlib.error)


def ensure_gz_suffix(path: Path | str) -> Path:
    """Append ``.gz`` unless the filename already carries it."""
    out = Path(path)
    if out.name.endswith(GZIP_SUFFIX):
        return out
    return out.with_name(out.name + GZIP_SUFFIX)


def is_gzip_path(path: Path | str) -> bool:
    return Path(path).name.endswith(GZIP_SUFFIX)


class ManifestWriter:
    """
    Stream object records into a gzip-compressed CSV manifest.

    Rows go to ``<path>.partial`` through file -> gzip -> text -> csv layers.
    Leaving the ``with`` block cleanly closes the layers in reverse order,
    which writes the gzip trailer, and then renames the partial file onto the
    final path. On error the partial file is removed, so a manifest at the
    final path is always complete.
    """

    def __init__(self, path: Path | str, *, encoding: str = "utf-8") -> None:
        self.path = ensure_gz_suffix(path)
        self.encoding = encoding
        self.rows_written = 0
        self._tmp_path = self.path.with_name(self.path.name + ".partial")
        self._stack: ExitStack | None = None
        self._writer = None

    def __enter__(self) -> ManifestWriter:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close(success=exc_type is None)

    def open(self) -> None:
        if self._stack is not None:
            raise RuntimeError(f"Manifest writer for {self.path} is already open")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._tmp_path.unlink(missing_ok=True)
        stack = ExitStack()
        try:
            raw = stack.enter_context(self._tmp_path.open("wb"))
            gz = stack.enter_context(gzip.GzipFile(fileobj=raw, mode="wb"))
            text = stack.enter_context(io.TextIOWrapper(gz, encoding=self.encoding, newline=""))
            # Header is written bare; data rows quote everything but the size.
            csv.writer(text, dialect="excel").writerow(ObjectRecordSchema.manifest_header)
            self._writer = csv.writer(text, dialect="excel", quoting=csv.QUOTE_NONNUMERIC)
        except OSError as exc:
            stack.close()
            self._tmp_path.unlink(missing_ok=True)
            raise SinkWriteError(f"Failed to open manifest {self.path}: {exc}") from exc
        self._stack = stack

    def write(self, record: ObjectRecord) -> None:
        if self._writer is None:
            raise RuntimeError("Manifest writer is not open")
        try:
            self._writer.writerow(record_to_row(record))
        except OSError as exc:
            raise SinkWriteError(f"Failed writing manifest {self.path}: {exc}") from exc
        self.rows_written += 1

    def close(self, *, success: bool = True) -> None:
        stack, self._stack = self._stack, None
        self._writer = None
        if stack is None:
            return
        try:
            stack.close()
            if success:
                os.replace(self._tmp_path, self.path)
        except OSError as exc:
            if success:
                raise SinkWriteError(f"Failed to finalize manifest {self.path}: {exc}") from exc
            raise
        finally:
            self._tmp_path.unlink(missing_ok=True)


def write_manifest(
    records: Iterable[ObjectRecord],
    path: Path | str,
    *,
    encoding: str = "utf-8",
) -> tuple[Path, int]:
    """Write ``records`` to a gzip CSV manifest and return ``(path, rows)``."""
    with ManifestWriter(path, encoding=encoding) as writer:
        for record in records:
            writer.write(record)
    return writer.path, writer.rows_written


@contextmanager
def open_manifest_text(
    path: Path | str,
    *,
    gzipped: bool | None = None,
    encoding: str = "utf-8",
) -> Iterator[TextIO]:
    """Open a manifest for text reading; gzip is detected from the suffix unless forced."""
    manifest_path = Path(path)
    use_gzip = is_gzip_path(manifest_path) if gzipped is None else gzipped
    if use_gzip:
        handle = gzip.open(manifest_path, "rt", encoding=encoding, newline="")
    else:
        handle = manifest_path.open("r", encoding=encoding, newline="")
    with handle:
        yield handle


def iter_manifest_records(stream: Iterable[str]) -> Iterator[ObjectRecord]:
    """
    Parse manifest text lines into records, in file order.

    The header row must read ``Path,Name,StorageClass,Size``. Malformed rows
    raise ``ManifestFormatError`` and stop the iteration; nothing is skipped.
    """
    reader = csv.reader(stream, dialect="excel")
    try:
        header = next(reader)
    except StopIteration:
        raise ManifestFormatError("Manifest is empty; expected a header row") from None
    except _READ_ERRORS as exc:
        raise ManifestFormatError(f"Unreadable manifest header: {exc}") from exc

    expected = list(ObjectRecordSchema.manifest_header)
    if header != expected:
        raise ManifestFormatError(f"Unexpected manifest header {header!r}, expected {expected!r}")

    row_number = 0
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except _READ_ERRORS as exc:
            raise ManifestFormatError(f"Unreadable manifest row {row_number + 1}: {exc}") from exc
        row_number += 1
        yield record_from_row(row, row_number=row_number)


def read_manifest(
    path: Path | str,
    *,
    gzipped: bool | None = None,
    encoding: str = "utf-8",
) -> Iterator[ObjectRecord]:
    """Open ``path`` and yield its records; the file is closed when iteration ends."""
    with open_manifest_text(path, gzipped=gzipped, encoding=encoding) as stream:
        yield from iter_manifest_records(stream)


__all__ = [
    "GZIP_SUFFIX",
    "ManifestWriter",
    "ensure_gz_suffix",
    "is_gzip_path",
    "iter_manifest_records",
    "open_manifest_text",
    "read_manifest",
    "write_manifest",
]
