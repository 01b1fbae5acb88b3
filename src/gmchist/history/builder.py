from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .frames import CountSample, EndOfData, HistoryEvent, SetLabel, SetTimestamp
from .records import Observation, RecordRate, SampleKind, Timestamp

logger = logging.getLogger(__name__)


@dataclass
class History:
    """Decoded observations in the order they appear in the image."""

    observations: List[Observation] = field(default_factory=list)
    label: Optional[str] = None
    rate: RecordRate = RecordRate.OFF

    def __len__(self) -> int:
        return len(self.observations)

    def counts(self) -> np.ndarray:
        return np.fromiter((obs.count for obs in self.observations), dtype=np.int64, count=len(self.observations))

    def count_range(self) -> Optional[Tuple[int, int]]:
        if not self.observations:
            return None
        counts = self.counts()
        return int(counts.min()), int(counts.max())

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "timestamp": [obs.timestamp_text for obs in self.observations],
                "count": self.counts(),
                "kind": [obs.kind.value for obs in self.observations],
            }
        )


class ObservationBuilder:
    """
    Folds decoder events into a :class:`History`.

    Bare samples move the running timestamp on by one record tick after they
    are recorded. Double-byte samples are stamped with the current time but do
    not consume a tick.
    """

    def __init__(self) -> None:
        self._timestamp: Optional[Timestamp] = None
        self._rate = RecordRate.OFF
        self._label: Optional[str] = None
        self._observations: List[Observation] = []
        self._finished = False

    @property
    def current_timestamp(self) -> Optional[Timestamp]:
        return self._timestamp

    @property
    def label(self) -> Optional[str]:
        return self._label

    def feed(self, event: HistoryEvent) -> None:
        if isinstance(event, SetTimestamp):
            self._timestamp = event.timestamp
            self._rate = event.rate
        elif isinstance(event, SetLabel):
            self._label = event.text
        elif isinstance(event, CountSample):
            self._observations.append(Observation(self._timestamp, event.count, event.kind))
            if event.kind is SampleKind.BARE and self._timestamp is not None:
                self._timestamp = self._timestamp.advance(self._rate)
        elif isinstance(event, EndOfData):
            self._finished = True
        else:
            raise TypeError(f"Unsupported history event: {event!r}")

    def extend(self, events: Iterable[HistoryEvent]) -> "ObservationBuilder":
        for event in events:
            self.feed(event)
        return self

    def build(self) -> History:
        if not self._finished:
            logger.debug("History built without an end-of-data frame (%d observations)", len(self._observations))
        return History(observations=list(self._observations), label=self._label, rate=self._rate)


def build_history(events: Iterable[HistoryEvent]) -> History:
    return ObservationBuilder().extend(events).build()
