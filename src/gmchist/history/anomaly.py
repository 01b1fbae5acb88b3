"""Ten-sample block scan for elevated count periods."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class EmptyInputError(ValueError):
    """Raised when an anomaly scan is asked to average zero samples."""


@dataclass(frozen=True)
class HighInterval:
    block_index: int
    average: int
    last_index: int
    block_size: int = 10

    @property
    def first_index(self) -> int:
        return self.last_index - self.block_size + 1

    @property
    def minute_offset(self) -> int:
        return self.block_index * self.block_size


@dataclass(frozen=True)
class AnomalyReport:
    sample_count: int
    mean: int
    upper_threshold: int
    super_high_threshold: int
    intervals: List[HighInterval] = field(default_factory=list)
    super_high_indices: List[int] = field(default_factory=list)
    dropped_tail: int = 0
    block_size: int = 10
    high_percent: int = 30

    @property
    def found_high(self) -> bool:
        return bool(self.intervals)

    def to_frame(self) -> pd.DataFrame:
        super_high = set(self.super_high_indices)
        return pd.DataFrame(
            [
                {
                    "block_index": interval.block_index,
                    "first_index": interval.first_index,
                    "last_index": interval.last_index,
                    "minute_offset": interval.minute_offset,
                    "average": interval.average,
                    "super_high": interval.last_index in super_high,
                }
                for interval in self.intervals
            ],
            columns=["block_index", "first_index", "last_index", "minute_offset", "average", "super_high"],
        )


class AnomalyScanner:
    """
    Flag fixed-size blocks whose average reaches ``mean + high_percent%``.

    All thresholds are integers: ``mean`` is the truncated global average,
    ``upper = mean + mean * high_percent // 100`` and the super-high threshold
    is ``super_high_factor * upper``. Samples past the last whole block are
    not scanned.
    """

    def __init__(self, block_size: int = 10, high_percent: int = 30, super_high_factor: int = 2):
        if block_size <= 0:
            raise ValueError("block_size must be positive")
        self.block_size = block_size
        self.high_percent = high_percent
        self.super_high_factor = super_high_factor

    def thresholds(self, mean: int) -> tuple[int, int]:
        upper = mean + (mean * self.high_percent) // 100
        return upper, self.super_high_factor * upper

    def scan(self, counts: Sequence[int] | np.ndarray) -> AnomalyReport:
        values = np.asarray(counts, dtype=np.int64)
        if values.size == 0:
            raise EmptyInputError("Cannot scan an empty observation sequence")
        mean = int(values.sum() // values.size)
        upper, super_high = self.thresholds(mean)

        n_blocks = values.size // self.block_size
        dropped = int(values.size - n_blocks * self.block_size)
        blocks = values[: n_blocks * self.block_size].reshape(n_blocks, self.block_size)
        averages = blocks.sum(axis=1) // self.block_size

        intervals: List[HighInterval] = []
        super_high_indices: List[int] = []
        for block_index in np.flatnonzero(averages >= upper):
            average = int(averages[block_index])
            last_index = int(block_index) * self.block_size + self.block_size - 1
            intervals.append(
                HighInterval(
                    block_index=int(block_index),
                    average=average,
                    last_index=last_index,
                    block_size=self.block_size,
                )
            )
            if average >= super_high:
                super_high_indices.append(last_index)

        if dropped:
            logger.debug("Skipping %d trailing samples that do not fill a block", dropped)
        logger.info(
            "Scanned %d samples: mean=%d upper=%d super_high=%d high_blocks=%d super_high_events=%d",
            values.size,
            mean,
            upper,
            super_high,
            len(intervals),
            len(super_high_indices),
        )
        return AnomalyReport(
            sample_count=int(values.size),
            mean=mean,
            upper_threshold=upper,
            super_high_threshold=super_high,
            intervals=intervals,
            super_high_indices=super_high_indices,
            dropped_tail=dropped,
            block_size=self.block_size,
            high_percent=self.high_percent,
        )
