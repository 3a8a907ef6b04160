from .api import (
    ConverterConfig,
    ManifestConfig,
    ObjectRecord,
    StorageClassTally,
    build_manifest,
    convert_manifest_to_parquet,
    human_readable_bytes,
    read_manifest,
    run_manifest,
    write_manifest,
)

__all__ = [
    "ConverterConfig",
    "ManifestConfig",
    "ObjectRecord",
    "StorageClassTally",
    "build_manifest",
    "convert_manifest_to_parquet",
    "human_readable_bytes",
    "read_manifest",
    "run_manifest",
    "write_manifest",
]
