from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from manifest_pkg.core.report import ProgressReporter
from manifest_pkg.errors import ConfigError
from manifest_pkg.io.manifest import read_manifest
from manifest_pkg.io.parquet import (
    DEFAULT_BATCH_ROWS,
    DEFAULT_COMPRESSION,
    DEFAULT_ROW_GROUP_SIZE_BYTES,
    SUPPORTED_COMPRESSIONS,
    ParquetRecordSink,
)


CONVERSION_PROGRESS_EVERY = 1_000_000


@dataclass(frozen=True)
class ConverterConfig:
    """
    Physical layout of the Parquet output.

    Defaults: 100 MiB row groups, snappy compression, replace an existing
    destination, progress every million rows.

    ``row_group_size_bytes`` is measured on the Arrow data, and a whole row
    group is held in memory before it is written, so peak memory grows with
    it. Rows wait as Python objects only until ``batch_rows`` of them are
    packed into an Arrow batch.
    """

    row_group_size_bytes: int = DEFAULT_ROW_GROUP_SIZE_BYTES
    compression: str = DEFAULT_COMPRESSION
    compression_level: int | None = None
    overwrite: bool = True
    batch_rows: int = DEFAULT_BATCH_ROWS
    progress_every: int = CONVERSION_PROGRESS_EVERY
    encoding: str = "utf-8"
    gzipped: bool | None = None  # None: detect from the .gz suffix

    def validate(self) -> None:
        if self.row_group_size_bytes <= 0:
            raise ConfigError(f"row_group_size_bytes must be positive, got {self.row_group_size_bytes}")
        if self.compression.lower() not in SUPPORTED_COMPRESSIONS:
            raise ConfigError(
                f"Unsupported compression {self.compression!r}; choose one of {', '.join(SUPPORTED_COMPRESSIONS)}"
            )
        if self.batch_rows <= 0:
            raise ConfigError(f"batch_rows must be positive, got {self.batch_rows}")
        if self.progress_every <= 0:
            raise ConfigError(f"progress_every must be positive, got {self.progress_every}")


@dataclass(frozen=True)
class ConversionResult:
    output_path: Path
    rows: int
    row_groups: int


def convert_manifest_to_parquet(
    input_path: Path | str,
    output_path: Path | str,
    config: ConverterConfig | None = None,
    *,
    emit: Callable[[str], None] = print,
) -> ConversionResult:
    """
    Stream a CSV manifest (optionally gzipped) into a Parquet file.

    One Parquet row per manifest row, in file order. Any malformed row aborts
    the run with ``ManifestFormatError`` and no new destination is published.
    """
    config = config or ConverterConfig()
    config.validate()

    in_path = Path(input_path)
    if not in_path.is_file():
        raise ConfigError(f"Input manifest not found: {in_path}")

    progress = ProgressReporter("parquet", "rows", every=config.progress_every, emit=emit)
    sink = ParquetRecordSink(
        output_path,
        row_group_size_bytes=config.row_group_size_bytes,
        compression=config.compression,
        compression_level=config.compression_level,
        overwrite=config.overwrite,
        batch_rows=config.batch_rows,
    )
    records = read_manifest(in_path, gzipped=config.gzipped, encoding=config.encoding)
    try:
        with sink:
            for record in records:
                sink.write(record)
                progress.tick()
    finally:
        records.close()

    emit(
        f"[parquet] rows={sink.rows_written} row_groups={sink.row_groups_written} "
        f"compression={sink.compression} -> {sink.path}"
    )
    return ConversionResult(
        output_path=sink.path,
        rows=sink.rows_written,
        row_groups=sink.row_groups_written,
    )


__all__ = ["CONVERSION_PROGRESS_EVERY", "ConversionResult", "ConverterConfig", "convert_manifest_to_parquet"]
