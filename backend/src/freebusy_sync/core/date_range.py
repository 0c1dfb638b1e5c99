"""
Inclusive datetime intervals.

All engine datetimes are naive and expressed in UTC. Callers holding
zone-aware values convert them with ``utils.to_utc_naive`` first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import RangeInvariantError


@dataclass(frozen=True, order=True)
class DateTimeRange:
    start: datetime
    end: datetime

    @classmethod
    def full(cls) -> "DateTimeRange":
        """The widest representable range."""
        return cls(datetime.min, datetime.max)

    def validate(self) -> "DateTimeRange":
        if self.start > self.end:
            raise RangeInvariantError(
                f"Range start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )
        return self

    def in_range(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def overlaps(self, other: "DateTimeRange") -> bool:
        # Endpoint test only: a range that strictly encloses this one is not
        # reported as overlapping.
        return self.in_range(other.start) or self.in_range(other.end)

    def contains(self, other: "DateTimeRange") -> bool:
        return self.in_range(other.start) and self.in_range(other.end)

    def compare_to(self, other: Optional["DateTimeRange"]) -> int:
        """Three-way comparison on (start, end). Anything sorts after None."""
        if other is None:
            return 1
        if self.start != other.start:
            return -1 if self.start < other.start else 1
        if self.end != other.end:
            return -1 if self.end < other.end else 1
        return 0

    def with_end(self, end: datetime) -> "DateTimeRange":
        return DateTimeRange(self.start, end)

    def __str__(self) -> str:
        return f"[{self.start.isoformat()} - {self.end.isoformat()}]"
