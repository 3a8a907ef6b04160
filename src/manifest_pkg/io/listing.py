from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from manifest_pkg.core.schema import ObjectRecord
from manifest_pkg.errors import ConfigError, ListingError


DEFAULT_PAGE_SIZE = 1000
DEFAULT_STORAGE_CLASS = "STANDARD"


@dataclass(frozen=True)
class ListedObject:
    key: str
    storage_class: str
    size: int


@dataclass(frozen=True)
class ListingPage:
    entries: tuple[ListedObject, ...]
    is_truncated: bool
    next_token: str | None = None


class PageFetcher(Protocol):
    def fetch(
        self,
        bucket: str,
        prefix: str | None,
        page_size: int,
        token: str | None,
    ) -> ListingPage: ...


class S3PageFetcher:
    """Fetch listing pages through ``list_objects_v2`` continuation tokens."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def fetch(
        self,
        bucket: str,
        prefix: str | None,
        page_size: int,
        token: str | None,
    ) -> ListingPage:
        kwargs: dict[str, Any] = {"Bucket": bucket, "MaxKeys": page_size}
        if prefix:
            kwargs["Prefix"] = prefix
        if token:
            kwargs["ContinuationToken"] = token

        try:
            response = self.client.list_objects_v2(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise ListingError(f"list_objects_v2 failed for s3://{bucket}/{prefix or ''}: {exc}") from exc

        entries = tuple(
            ListedObject(
                key=obj["Key"],
                storage_class=obj.get("StorageClass") or DEFAULT_STORAGE_CLASS,
                size=int(obj.get("Size", 0)),
            )
            for obj in response.get("Contents", [])
        )
        return ListingPage(
            entries=entries,
            is_truncated=bool(response.get("IsTruncated")),
            next_token=response.get("NextContinuationToken"),
        )


def make_s3_client(
    region: str | None = None,
    profile: str | None = None,
    *,
    max_attempts: int = 10,
    connect_timeout: float = 10.0,
    read_timeout: float = 60.0,
) -> Any:
    """Build an S3 client from a named profile/region with standard retries."""
    session = boto3.session.Session(profile_name=profile, region_name=region)
    config = BotoConfig(
        retries={"max_attempts": max_attempts, "mode": "standard"},
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
    )
    return session.client("s3", config=config)


def iter_listing_pages(
    fetcher: PageFetcher,
    bucket: str,
    *,
    prefix: str | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Iterator[ListingPage]:
    """
    Lazily fetch listing pages until the source reports no more pages.

    Only the current page is referenced; the number of pages is unbounded.

    Raises:
        ListingError: any fetch failure, or a truncated page without a
            continuation token.
    """
    if page_size <= 0:
        raise ConfigError(f"page_size must be positive, got {page_size}")

    token: str | None = None
    page_no = 0
    while True:
        page_no += 1
        try:
            page = fetcher.fetch(bucket, prefix, page_size, token)
        except ListingError:
            raise
        except Exception as exc:
            raise ListingError(f"Listing page {page_no} for bucket {bucket!r} failed: {exc}") from exc

        yield page

        if not page.is_truncated:
            return
        if not page.next_token:
            raise ListingError(
                f"Listing page {page_no} for bucket {bucket!r} is truncated but has no continuation token"
            )
        token = page.next_token


def iter_listing_records(
    fetcher: PageFetcher,
    bucket: str,
    *,
    prefix: str | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Iterator[ObjectRecord]:
    """Flatten listing pages into ``ObjectRecord``s in listing order."""
    for page in iter_listing_pages(fetcher, bucket, prefix=prefix, page_size=page_size):
        for entry in page.entries:
            yield ObjectRecord.from_key(entry.key, entry.storage_class, entry.size)


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "ListedObject",
    "ListingPage",
    "PageFetcher",
    "S3PageFetcher",
    "iter_listing_pages",
    "iter_listing_records",
    "make_s3_client",
]
