from __future__ import annotations

from typing import Callable

from manifest_pkg.core.tally import StorageClassTally


_UNIT = 1024
_PREFIXES = "KMGTPE"


def human_readable_bytes(num_bytes: int) -> str:
    """
    Format a byte count with binary units.

    Values below 1024 are whole bytes (``"1023 B"``); larger values use the
    largest unit in which they are at least 1, with one decimal place
    (``"1.0 KB"``, ``"1.5 MB"``).
    """
    if num_bytes < 0:
        raise ValueError(f"byte count must be non-negative, got {num_bytes}")
    if num_bytes < _UNIT:
        return f"{num_bytes} B"
    exp = 0
    scaled = num_bytes
    while scaled >= _UNIT and exp < len(_PREFIXES):
        scaled //= _UNIT
        exp += 1
    return f"{num_bytes / _UNIT ** exp:.1f} {_PREFIXES[exp - 1]}B"


class ProgressReporter:
    """Emit a tagged progress line every ``every`` ticks."""

    def __init__(
        self,
        label: str,
        noun: str,
        *,
        every: int,
        verb: str = "processed",
        emit: Callable[[str], None] = print,
    ) -> None:
        if every <= 0:
            raise ValueError("every must be positive.")
        self.label = label
        self.noun = noun
        self.every = every
        self.verb = verb
        self._emit = emit
        self.count = 0

    def tick(self) -> None:
        self.count += 1
        if self.count % self.every == 0:
            self._emit(f"[{self.label}] {self.verb} {self.count:,} {self.noun}...")


def format_summary(tally: StorageClassTally) -> list[str]:
    lines = [f"Found a total of: {tally.total_count} objects"]
    for storage_class, category in tally.snapshot().items():
        lines.append(
            f"{storage_class} count: {category.count} size: {human_readable_bytes(category.total_size)}"
        )
    return lines


def print_summary(tally: StorageClassTally, emit: Callable[[str], None] = print) -> None:
    for line in format_summary(tally):
        emit(line)


__all__ = ["ProgressReporter", "format_summary", "human_readable_bytes", "print_summary"]
