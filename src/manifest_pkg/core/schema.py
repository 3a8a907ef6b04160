from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

import polars as pl
import pyarrow as pa

from manifest_pkg.errors import ManifestFormatError


KEY_SEPARATOR = "/"
_SIZE_LITERAL = re.compile(r"[0-9]+")
INT64_MAX = 2**63 - 1


@dataclass
class ObjectRecordSchema:
    """Fixed four-field shape shared by the CSV manifest and the Parquet output."""

    columns = ("path", "name", "storageClass", "size")
    manifest_header = ("Path", "Name", "StorageClass", "Size")
    schema = {
        "path": pl.Utf8,
        "name": pl.Utf8,
        "storageClass": pl.Utf8,
        "size": pl.Int64,
    }
    arrow = pa.schema(
        [
            pa.field("path", pa.string(), nullable=False),
            pa.field("name", pa.string(), nullable=False),
            pa.field("storageClass", pa.string(), nullable=False),
            pa.field("size", pa.int64(), nullable=False, metadata={"default": "0"}),
        ],
        metadata={"record": "ObjectRecord"},
    )


@dataclass(frozen=True)
class ObjectRecord:
    path: str
    name: str
    storage_class: str
    size: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.size <= INT64_MAX:
            raise ValueError(f"size must be within 0..{INT64_MAX}, got {self.size}")

    @property
    def key(self) -> str:
        """Rebuild the object key from ``path`` and ``name``."""
        return f"{self.path}{KEY_SEPARATOR}{self.name}" if self.path else self.name

    @classmethod
    def from_key(cls, key: str, storage_class: str, size: int) -> ObjectRecord:
        path, name = split_key(key)
        return cls(path=path, name=name, storage_class=storage_class, size=size)


def split_key(key: str) -> tuple[str, str]:
    """
    Split an object key into its directory-like prefix and leaf name.

    ``"a/b/c.txt"`` -> ``("a/b", "c.txt")``; keys without a separator get an
    empty path. Directory markers such as ``"a/b/"`` keep an empty name.
    """
    path, _, name = key.rpartition(KEY_SEPARATOR)
    return path, name


def record_to_row(record: ObjectRecord) -> tuple[str, str, str, int]:
    """Encode a record into schema column order."""
    return (record.path, record.name, record.storage_class, record.size)


def parse_size(value: str) -> int:
    if not _SIZE_LITERAL.fullmatch(value):
        raise ValueError(f"size is not a non-negative integer literal: {value!r}")
    size = int(value)
    if size > INT64_MAX:
        raise ValueError(f"size does not fit in int64: {value!r}")
    return size


def record_from_row(row: Sequence[str], *, row_number: int | None = None) -> ObjectRecord:
    """
    Decode one manifest row (already split into string fields).

    Raises:
        ManifestFormatError: wrong column count or a size that is not a
            non-negative integer literal.
    """
    where = f"row {row_number}" if row_number is not None else "row"
    if len(row) != len(ObjectRecordSchema.columns):
        raise ManifestFormatError(
            f"Manifest {where} has {len(row)} columns, expected {len(ObjectRecordSchema.columns)}: {list(row)!r}"
        )
    path, name, storage_class, raw_size = row
    try:
        size = parse_size(raw_size)
    except ValueError as exc:
        raise ManifestFormatError(f"Manifest {where}: {exc}") from exc
    return ObjectRecord(path=path, name=name, storage_class=storage_class, size=size)


__all__ = [
    "INT64_MAX",
    "KEY_SEPARATOR",
    "ObjectRecord",
    "ObjectRecordSchema",
    "parse_size",
    "record_from_row",
    "record_to_row",
    "split_key",
]
