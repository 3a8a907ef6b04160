from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from manifest_pkg.core.report import ProgressReporter, print_summary
from manifest_pkg.core.schema import ObjectRecord
from manifest_pkg.core.tally import CategoryTally, StorageClassTally
from manifest_pkg.errors import ConfigError
from manifest_pkg.io.listing import (
    DEFAULT_PAGE_SIZE,
    PageFetcher,
    S3PageFetcher,
    iter_listing_records,
    make_s3_client,
)
from manifest_pkg.io.manifest import ManifestWriter, ensure_gz_suffix


LISTING_PROGRESS_EVERY = 100_000


@dataclass(frozen=True)
class ManifestConfig:
    bucket: str
    output_path: Path
    region: str | None = None
    prefix: str | None = None
    profile: str | None = None
    page_size: int = DEFAULT_PAGE_SIZE
    progress_every: int = LISTING_PROGRESS_EVERY
    encoding: str = "utf-8"

    def validate(self) -> None:
        if not self.bucket:
            raise ConfigError("bucket is required.")
        if not str(self.output_path):
            raise ConfigError("output_path is required.")
        if self.page_size <= 0:
            raise ConfigError(f"page_size must be positive, got {self.page_size}")
        if self.progress_every <= 0:
            raise ConfigError(f"progress_every must be positive, got {self.progress_every}")

    @property
    def manifest_path(self) -> Path:
        return ensure_gz_suffix(self.output_path)


@dataclass(frozen=True)
class ManifestResult:
    output_path: Path
    object_count: int
    total_size: int
    tallies: Mapping[str, CategoryTally] = field(default_factory=dict)


def build_manifest(
    records: Iterable[ObjectRecord],
    output_path: Path | str,
    *,
    tally: StorageClassTally | None = None,
    progress_every: int = LISTING_PROGRESS_EVERY,
    encoding: str = "utf-8",
    emit: Callable[[str], None] = print,
) -> ManifestResult:
    """
    Stream records into a gzip CSV manifest while tallying storage classes.

    Each record is aggregated, written, and dropped before the next one is
    pulled from ``records``. The manifest only appears at its final path once
    the gzip stream has been fully written.
    """
    tally = tally if tally is not None else StorageClassTally()
    progress = ProgressReporter("manifest", "objects", every=progress_every, verb="listed", emit=emit)

    with ManifestWriter(output_path, encoding=encoding) as writer:
        for record in records:
            tally.observe_record(record)
            writer.write(record)
            progress.tick()

    return ManifestResult(
        output_path=writer.path,
        object_count=tally.total_count,
        total_size=tally.total_size,
        tallies=tally.snapshot(),
    )


def run_manifest(
    config: ManifestConfig,
    *,
    fetcher: PageFetcher | None = None,
    emit: Callable[[str], None] = print,
) -> ManifestResult:
    """Enumerate a bucket into a manifest, then print the per-class summary."""
    config.validate()

    if fetcher is None:
        if config.profile:
            emit(f"[manifest] using named profile: {config.profile}")
        if config.region:
            emit(f"[manifest] using region: {config.region}")
        fetcher = S3PageFetcher(make_s3_client(region=config.region, profile=config.profile))
    if config.prefix:
        emit(f"[manifest] using prefix: {config.prefix}")

    tally = StorageClassTally()
    records = iter_listing_records(
        fetcher,
        config.bucket,
        prefix=config.prefix,
        page_size=config.page_size,
    )
    result = build_manifest(
        records,
        config.manifest_path,
        tally=tally,
        progress_every=config.progress_every,
        encoding=config.encoding,
        emit=emit,
    )
    print_summary(tally, emit=emit)
    emit(f"[manifest] wrote {result.object_count} rows -> {result.output_path}")
    return result


__all__ = ["LISTING_PROGRESS_EVERY", "ManifestConfig", "ManifestResult", "build_manifest", "run_manifest"]
