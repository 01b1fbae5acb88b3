from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Optional

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


class RecordRate(enum.IntEnum):
    """How often the detector stored a sample while history was running."""

    OFF = 0
    PER_SECOND = 1
    PER_MINUTE = 2
    PER_HOUR = 3

    @classmethod
    def from_byte(cls, value: int) -> "RecordRate":
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unknown record rate code %d, treating history as OFF", value)
            return cls.OFF

    @property
    def unit(self) -> str:
        return {
            RecordRate.OFF: "off",
            RecordRate.PER_SECOND: "CPS",
            RecordRate.PER_MINUTE: "CPM",
            RecordRate.PER_HOUR: "CPH",
        }[self]


class SampleKind(str, enum.Enum):
    BARE = "bare"
    DOUBLE = "double"


def month_name(month: int) -> str:
    if 1 <= month <= 12:
        return MONTH_ABBREVIATIONS[month - 1]
    return "???"


@dataclass(frozen=True)
class Timestamp:
    """Device clock reading as stored in a timestamp frame (two-digit year)."""

    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int

    @classmethod
    def from_bytes(cls, fields: bytes) -> "Timestamp":
        year, month, day, hour, minute, second = fields[:6]
        return cls(year=year, month=month, day=day, hour=hour, minute=minute, second=second)

    def advance(self, rate: RecordRate) -> "Timestamp":
        """Return the timestamp one record tick later.

        Carries run second -> minute -> hour -> day. The hour carry triggers at
        60 rather than 24 and the day never rolls into the month; both follow
        what the device history tooling has always produced.
        """
        second, minute, hour, day = self.second, self.minute, self.hour, self.day
        if rate is RecordRate.OFF:
            return self
        if rate is RecordRate.PER_SECOND:
            second += 1
            if second >= 60:
                second = 0
                minute += 1
        elif rate is RecordRate.PER_MINUTE:
            minute += 1
        else:
            hour += 1
        if minute >= 60:
            minute = 0
            hour += 1
        if hour >= 60:
            hour = 0
            day += 1
        return replace(self, day=day, hour=hour, minute=minute, second=second)

    def format(self) -> str:
        return (
            f"{self.day:02d}/{month_name(self.month)}/{self.year:02d} "
            f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        )

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class Observation:
    timestamp: Optional[Timestamp]
    count: int
    kind: SampleKind = SampleKind.BARE

    @property
    def timestamp_text(self) -> str:
        return self.timestamp.format() if self.timestamp is not None else ""
