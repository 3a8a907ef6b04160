"""Failure kinds raised at the stage boundaries of the manifest pipeline."""

from __future__ import annotations


class ManifestPkgError(Exception):
    """Base class for every fatal pipeline failure."""


class ListingError(ManifestPkgError):
    """The remote object listing failed or returned an unusable page."""


class ManifestFormatError(ManifestPkgError, ValueError):
    """A manifest header or data row does not match the object schema."""


class SinkWriteError(ManifestPkgError, OSError):
    """Writing the manifest or the Parquet destination failed."""


class ConfigError(ManifestPkgError, ValueError):
    """Invalid configuration, detected before any I/O starts."""


__all__ = [
    "ConfigError",
    "ListingError",
    "ManifestFormatError",
    "ManifestPkgError",
    "SinkWriteError",
]
