from __future__ import annotations

import io
import os
from pathlib import Path

import polars as pl
import pyarrow as pa
import pyarrow.parquet as pq

from manifest_pkg.core.schema import ObjectRecord, ObjectRecordSchema
from manifest_pkg.errors import ConfigError, SinkWriteError


PARQUET_MAGIC = b"PAR1"
DEFAULT_ROW_GROUP_SIZE_BYTES = 100 * 1024 * 1024  # 100 MiB
DEFAULT_COMPRESSION = "snappy"
SUPPORTED_COMPRESSIONS = ("snappy", "gzip", "zstd", "lz4", "brotli", "none")

# Three int32 string offsets plus the int64 size column.
_FIXED_ROW_BYTES = 3 * 4 + 8
# Rows held as Python objects before they are packed into an Arrow batch.
DEFAULT_BATCH_ROWS = 65_536


def _assert_parquet_magic(path: Path) -> None:
    """
    Quick integrity check for common truncation/corruption cases:
    parquet files must start and end with the magic bytes PAR1.
    """
    try:
        size = path.stat().st_size
    except FileNotFoundError as exc:
        raise OSError(f"Parquet file not found: {path}") from exc

    if size < 8:
        raise OSError(f"Parquet file too small to be valid ({size} bytes): {path}")

    with path.open("rb") as f:
        start = f.read(4)
        if start != PARQUET_MAGIC:
            raise OSError(f"Parquet magic header missing for {path} (got {start!r})")
        f.seek(-4, io.SEEK_END)
        end = f.read(4)
        if end != PARQUET_MAGIC:
            raise OSError(f"Parquet magic footer missing for {path} (got {end!r})")


def estimate_record_bytes(record: ObjectRecord) -> int:
    """Approximate uncompressed Arrow footprint of one record."""
    return (
        len(record.path.encode("utf-8"))
        + len(record.name.encode("utf-8"))
        + len(record.storage_class.encode("utf-8"))
        + _FIXED_ROW_BYTES
    )


class ParquetRecordSink:
    """
    Write ``ObjectRecord``s to a Parquet file with byte-sized row groups.

    Rows are collected column-wise in Python lists, packed into an Arrow
    record batch every ``batch_rows`` rows, and written as one row group once
    the estimated uncompressed size reaches ``row_group_size_bytes``. Peak
    memory is therefore about one row group of Arrow buffers plus
    ``batch_rows`` Python rows. Output goes to ``<path>.tmp``; a successful
    ``close`` writes the footer and replaces ``path`` atomically. A failed run
    removes the temp file and leaves any previous destination untouched.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        row_group_size_bytes: int = DEFAULT_ROW_GROUP_SIZE_BYTES,
        compression: str = DEFAULT_COMPRESSION,
        compression_level: int | None = None,
        overwrite: bool = True,
        batch_rows: int = DEFAULT_BATCH_ROWS,
    ) -> None:
        if row_group_size_bytes <= 0:
            raise ConfigError(f"row_group_size_bytes must be positive, got {row_group_size_bytes}")
        if compression.lower() not in SUPPORTED_COMPRESSIONS:
            raise ConfigError(
                f"Unsupported compression {compression!r}; choose one of {', '.join(SUPPORTED_COMPRESSIONS)}"
            )
        if batch_rows <= 0:
            raise ConfigError(f"batch_rows must be positive, got {batch_rows}")
        self.path = Path(path)
        self.row_group_size_bytes = row_group_size_bytes
        self.compression = compression.lower()
        self.compression_level = compression_level
        self.overwrite = overwrite
        self.batch_rows = batch_rows
        self.rows_written = 0
        self.row_groups_written = 0
        self._tmp_path = self.path.with_name(self.path.name + ".tmp")
        self._writer: pq.ParquetWriter | None = None
        self._closed = False
        self._reset_buffer()

    def _reset_buffer(self) -> None:
        self._batches: list[pa.RecordBatch] = []
        self._reset_columns()
        self._buffered_bytes = 0

    def _reset_columns(self) -> None:
        self._columns: dict[str, list] = {name: [] for name in ObjectRecordSchema.columns}

    def _pack_columns(self) -> None:
        if not self._columns["size"]:
            return
        try:
            batch = pa.RecordBatch.from_pydict(self._columns, schema=ObjectRecordSchema.arrow)
        except (pa.ArrowException, OverflowError) as exc:
            raise SinkWriteError(f"Failed packing rows for {self.path}: {exc}") from exc
        self._batches.append(batch)
        self._reset_columns()

    def __enter__(self) -> ParquetRecordSink:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close(success=exc_type is None)

    def open(self) -> None:
        if self._writer is not None or self._closed:
            raise RuntimeError(f"Parquet sink for {self.path} cannot be reopened")
        if self.path.exists() and not self.overwrite:
            raise ConfigError(f"Destination exists and overwrite is disabled: {self.path}")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._tmp_path.unlink(missing_ok=True)
            self._writer = pq.ParquetWriter(
                self._tmp_path,
                ObjectRecordSchema.arrow,
                compression=self.compression,
                compression_level=self.compression_level,
            )
        except (OSError, pa.ArrowException) as exc:
            self._tmp_path.unlink(missing_ok=True)
            raise SinkWriteError(f"Failed to open parquet sink {self.path}: {exc}") from exc

    def write(self, record: ObjectRecord) -> None:
        if self._writer is None:
            raise RuntimeError("Parquet sink is not open")
        self._columns["path"].append(record.path)
        self._columns["name"].append(record.name)
        self._columns["storageClass"].append(record.storage_class)
        self._columns["size"].append(record.size)
        self._buffered_bytes += estimate_record_bytes(record)
        self.rows_written += 1
        if self._buffered_bytes >= self.row_group_size_bytes:
            self._flush_row_group()
        elif len(self._columns["size"]) >= self.batch_rows:
            self._pack_columns()

    def _flush_row_group(self) -> None:
        self._pack_columns()
        n_rows = sum(batch.num_rows for batch in self._batches)
        if not n_rows:
            return
        assert self._writer is not None
        try:
            table = pa.Table.from_batches(self._batches, schema=ObjectRecordSchema.arrow)
            self._writer.write_table(table, row_group_size=n_rows)
        except (OSError, pa.ArrowException) as exc:
            raise SinkWriteError(f"Failed writing row group to {self.path}: {exc}") from exc
        self.row_groups_written += 1
        self._reset_buffer()

    def close(self, *, success: bool = True) -> None:
        """Finalize exactly once; only a successful close publishes ``path``."""
        if self._closed:
            return
        self._closed = True
        writer = self._writer
        if writer is None:
            return
        try:
            if success:
                try:
                    self._flush_row_group()
                finally:
                    writer.close()
                _assert_parquet_magic(self._tmp_path)
                os.replace(self._tmp_path, self.path)
            else:
                writer.close()
        except SinkWriteError:
            raise
        except (OSError, pa.ArrowException) as exc:
            if success:
                raise SinkWriteError(f"Failed to finalize parquet file {self.path}: {exc}") from exc
            raise
        finally:
            self._writer = None
            self._reset_buffer()
            self._tmp_path.unlink(missing_ok=True)


def scan_object_parquet(path: Path | str) -> pl.LazyFrame:
    """Lazily scan a converted manifest with the object schema."""
    return pl.scan_parquet(Path(path))


def summarize_parquet_by_storage_class(path: Path | str) -> pl.DataFrame:
    """Count and total size per storage class, ordered by class name."""
    return (
        scan_object_parquet(path)
        .group_by("storageClass")
        .agg(
            pl.len().alias("count"),
            pl.col("size").sum().alias("total_size"),
        )
        .sort("storageClass")
        .collect()
    )


__all__ = [
    "DEFAULT_BATCH_ROWS",
    "DEFAULT_COMPRESSION",
    "DEFAULT_ROW_GROUP_SIZE_BYTES",
    "PARQUET_MAGIC",
    "ParquetRecordSink",
    "SUPPORTED_COMPRESSIONS",
    "estimate_record_bytes",
    "scan_object_parquet",
    "summarize_parquet_by_storage_class",
]
