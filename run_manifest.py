from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

# Make local `src` importable when running from repo checkout
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))

from manifest_pkg.errors import ManifestPkgError  # noqa: E402
from manifest_pkg.io.listing import DEFAULT_PAGE_SIZE  # noqa: E402
from manifest_pkg.pipelines.manifest_pipeline import ManifestConfig, run_manifest  # noqa: E402


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
        description="List an S3 bucket into a gzip CSV manifest and print per-storage-class totals.",
    )
    parser.add_argument(
        "-b",
        "--bucket",
        default=os.environ.get("MANIFEST_BUCKET"),
        help="S3 bucket to enumerate (can set MANIFEST_BUCKET env var).",
    )
    parser.add_argument(
        "-r",
        "--region",
        default=os.environ.get("AWS_REGION"),
        help="AWS region of the bucket (can set AWS_REGION env var).",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        required=True,
        help="Output manifest path; '.gz' is appended when missing.",
    )
    parser.add_argument("-p", "--prefix", help="Only list keys under this prefix.")
    parser.add_argument(
        "-z",
        "--profile",
        default=os.environ.get("AWS_PROFILE"),
        help="Named AWS credentials profile (can set AWS_PROFILE env var).",
    )
    parser.add_argument("--page-size", type=_positive_int, default=DEFAULT_PAGE_SIZE)
    args = parser.parse_args(argv)

    if not args.bucket:
        parser.error("--bucket is required (arg or MANIFEST_BUCKET env var).")
    if not args.region:
        parser.error("--region is required (arg or AWS_REGION env var).")
    return args


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = ManifestConfig(
        bucket=args.bucket,
        output_path=args.output,
        region=args.region,
        prefix=args.prefix,
        profile=args.profile,
        page_size=args.page_size,
    )
    try:
        run_manifest(config)
    except ManifestPkgError as exc:
        print(f"[error] {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
