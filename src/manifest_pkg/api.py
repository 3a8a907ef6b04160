from __future__ import annotations

from manifest_pkg.core.report import format_summary, human_readable_bytes, print_summary
from manifest_pkg.core.schema import ObjectRecord, ObjectRecordSchema, record_from_row, record_to_row, split_key
from manifest_pkg.core.tally import CategoryTally, StorageClassTally
from manifest_pkg.errors import (
    ConfigError,
    ListingError,
    ManifestFormatError,
    ManifestPkgError,
    SinkWriteError,
)
from manifest_pkg.io.listing import ListingPage, S3PageFetcher, iter_listing_records, make_s3_client
from manifest_pkg.io.manifest import ManifestWriter, read_manifest, write_manifest
from manifest_pkg.io.parquet import ParquetRecordSink, summarize_parquet_by_storage_class
from manifest_pkg.pipelines.manifest_pipeline import ManifestConfig, ManifestResult, build_manifest, run_manifest
from manifest_pkg.pipelines.parquet_pipeline import (
    ConversionResult,
    ConverterConfig,
    convert_manifest_to_parquet,
)


__all__ = [
    "CategoryTally",
    "ConfigError",
    "ConversionResult",
    "ConverterConfig",
    "ListingError",
    "ListingPage",
    "ManifestConfig",
    "ManifestFormatError",
    "ManifestPkgError",
    "ManifestResult",
    "ManifestWriter",
    "ObjectRecord",
    "ObjectRecordSchema",
    "ParquetRecordSink",
    "S3PageFetcher",
    "SinkWriteError",
    "StorageClassTally",
    "build_manifest",
    "convert_manifest_to_parquet",
    "format_summary",
    "human_readable_bytes",
    "iter_listing_records",
    "make_s3_client",
    "print_summary",
    "read_manifest",
    "record_from_row",
    "record_to_row",
    "run_manifest",
    "split_key",
    "summarize_parquet_by_storage_class",
    "write_manifest",
]
