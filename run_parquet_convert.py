from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Make local `src` importable when running from repo checkout
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))

from manifest_pkg.errors import ManifestPkgError  # noqa: E402
from manifest_pkg.io.parquet import (  # noqa: E402
    DEFAULT_COMPRESSION,
    DEFAULT_ROW_GROUP_SIZE_BYTES,
    SUPPORTED_COMPRESSIONS,
)
from manifest_pkg.pipelines.parquet_pipeline import ConverterConfig, convert_manifest_to_parquet  # noqa: E402


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {parsed}")
    return parsed


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Convert a CSV manifest (gzip detected by '.gz' suffix) into a Parquet file.",
    )
    parser.add_argument("--input", type=Path, required=True, help="Input manifest CSV, optionally gzipped.")
    parser.add_argument("--output", type=Path, required=True, help="Output parquet file (replaced if present).")
    parser.add_argument(
        "--row-group-size",
        "--rowgroupsize",
        dest="row_group_size",
        type=_positive_int,
        default=DEFAULT_ROW_GROUP_SIZE_BYTES,
        help="Target row group size in bytes (default 100 MiB).",
    )
    parser.add_argument(
        "--compression",
        choices=SUPPORTED_COMPRESSIONS,
        default=DEFAULT_COMPRESSION,
    )
    parser.add_argument(
        "--no-overwrite",
        action="store_true",
        help="Fail instead of replacing an existing output file.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = ConverterConfig(
        row_group_size_bytes=args.row_group_size,
        compression=args.compression,
        overwrite=not args.no_overwrite,
    )
    try:
        convert_manifest_to_parquet(args.input, args.output, config)
    except ManifestPkgError as exc:
        print(f"[error] {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
