from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Generator, Iterator, List, Union

from .cursor import FrameCursor
from .records import RecordRate, SampleKind, Timestamp

FRAME_MARKER = b"\x55\xAA"
END_OF_DATA = 0xFF

TIMESTAMP_PAYLOAD_LEN = 9  # Y M D H Min S, two marker bytes, record rate
DOUBLE_COUNT_LEN = 2


class FrameKind(enum.IntEnum):
    TIMESTAMP = 0x00
    DOUBLE_BYTE_COUNT = 0x01
    LOCATION = 0x02
    TRIPLE_BYTE_COUNT = 0x03
    FOUR_BYTE_COUNT = 0x04
    TUBE_SELECT = 0x05
    END_OF_DATA = 0xFF


class DecoderState(str, enum.Enum):
    SCANNING = "scanning"
    TIMESTAMP = "timestamp"
    DOUBLE_BYTE = "double_byte"
    LOCATION = "location"
    BARE_RUN = "bare_run"
    DONE = "done"


@dataclass(frozen=True)
class SetTimestamp:
    timestamp: Timestamp
    rate: RecordRate
    offset: int


@dataclass(frozen=True)
class SetLabel:
    text: str
    offset: int


@dataclass(frozen=True)
class CountSample:
    count: int
    kind: SampleKind
    offset: int


@dataclass(frozen=True)
class EndOfData:
    offset: int


HistoryEvent = Union[SetTimestamp, SetLabel, CountSample, EndOfData]

_HEADER_STATES = {
    FrameKind.TIMESTAMP: DecoderState.TIMESTAMP,
    FrameKind.DOUBLE_BYTE_COUNT: DecoderState.DOUBLE_BYTE,
    FrameKind.LOCATION: DecoderState.LOCATION,
}


@dataclass
class DecodeResult:
    events: List[HistoryEvent]
    end_offset: int
    final_state: DecoderState
    truncated: bool
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def reached_end_marker(self) -> bool:
        return any(isinstance(event, EndOfData) for event in self.events)


def decode_label(raw: bytes) -> str:
    """Location text becomes a CSV column header, so commas turn into spaces."""
    return raw.decode("ascii", errors="replace").replace(",", " ")


StepResult = Generator[HistoryEvent, None, DecoderState]


class _DecodePass:
    """Cursor, counters and state for one walk over an image."""

    def __init__(self, image: bytes):
        self.cursor = FrameCursor(image)
        self.state = DecoderState.SCANNING
        self.truncated = False
        self.stats: Dict[str, int] = {
            "frames": 0,
            "markers": 0,
            "timestamps": 0,
            "double_counts": 0,
            "labels": 0,
            "bare_runs": 0,
            "samples": 0,
        }
        self._log = logging.getLogger(__name__)
        self._handlers: Dict[DecoderState, Callable[[], StepResult]] = {
            DecoderState.SCANNING: self._scan,
            DecoderState.TIMESTAMP: self._timestamp,
            DecoderState.DOUBLE_BYTE: self._double_byte,
            DecoderState.LOCATION: self._location,
            DecoderState.BARE_RUN: self._bare_run,
        }

    def run(self) -> Iterator[HistoryEvent]:
        if self.cursor.at_marker():
            self.cursor.advance(len(FRAME_MARKER))
        elif len(self.cursor):
            self._log.warning("History image does not start with a frame marker; decoding from offset 0")
        while self.state is not DecoderState.DONE:
            self.state = yield from self._handlers[self.state]()
        self._log.debug(
            "Decode finished at offset %d (truncated=%s): %s",
            self.cursor.position,
            self.truncated,
            self.stats,
        )

    def _truncate(self, needed: int) -> DecoderState:
        self.truncated = True
        self._log.debug(
            "Image ends inside a %s frame at offset %d (need %d bytes, %d left)",
            self.state.value,
            self.cursor.position,
            needed,
            self.cursor.remaining(),
        )
        return DecoderState.DONE

    def _scan(self) -> StepResult:
        cursor = self.cursor
        if cursor.exhausted():
            self.truncated = True
            return DecoderState.DONE
        if cursor.at_marker():
            cursor.advance(len(FRAME_MARKER))
            self.stats["markers"] += 1
            return DecoderState.SCANNING
        header = cursor.peek()
        if header == END_OF_DATA:
            offset = cursor.position
            cursor.advance()
            self.stats["frames"] += 1
            yield EndOfData(offset=offset)
            return DecoderState.DONE
        if header in _HEADER_STATES:
            cursor.advance()
            self.stats["frames"] += 1
            return _HEADER_STATES[FrameKind(header)]
        # Anything else is count data: bare runs are not announced by a header.
        return DecoderState.BARE_RUN

    def _timestamp(self) -> StepResult:
        cursor = self.cursor
        if cursor.remaining() < TIMESTAMP_PAYLOAD_LEN:
            return self._truncate(TIMESTAMP_PAYLOAD_LEN)
        offset = cursor.position - 1
        fields = cursor.take(6)
        cursor.advance(2)  # trailing marker, not validated
        rate = RecordRate.from_byte(cursor.take(1)[0])
        self.stats["timestamps"] += 1
        yield SetTimestamp(timestamp=Timestamp.from_bytes(fields), rate=rate, offset=offset)
        return DecoderState.SCANNING

    def _double_byte(self) -> StepResult:
        cursor = self.cursor
        if cursor.remaining() < DOUBLE_COUNT_LEN:
            return self._truncate(DOUBLE_COUNT_LEN)
        offset = cursor.position - 1
        count = int.from_bytes(cursor.take(DOUBLE_COUNT_LEN), "big")
        self.stats["double_counts"] += 1
        self.stats["samples"] += 1
        yield CountSample(count=count, kind=SampleKind.DOUBLE, offset=offset)
        return DecoderState.SCANNING

    def _location(self) -> StepResult:
        cursor = self.cursor
        if cursor.remaining() < 1:
            return self._truncate(1)
        length = cursor.peek()
        if cursor.remaining() < 1 + length:
            return self._truncate(1 + length)
        offset = cursor.position - 1
        cursor.advance()
        text = decode_label(cursor.take(length))
        self.stats["labels"] += 1
        yield SetLabel(text=text, offset=offset)
        return DecoderState.SCANNING

    def _bare_run(self) -> StepResult:
        cursor = self.cursor
        self.stats["bare_runs"] += 1
        # The byte taken for a header is the first sample of the run.
        offset = cursor.position
        yield self._bare_sample(cursor.take(1)[0], offset)
        while True:
            if cursor.exhausted():
                self.truncated = True
                return DecoderState.DONE
            first, second = cursor.peek(0), cursor.peek(1)
            if cursor.at_marker() or (first == END_OF_DATA and second == END_OF_DATA):
                cursor.advance(2)
                return DecoderState.SCANNING
            offset = cursor.position
            cursor.advance()
            yield self._bare_sample(first, offset)

    def _bare_sample(self, count: int, offset: int) -> CountSample:
        self.stats["samples"] += 1
        return CountSample(count=count, kind=SampleKind.BARE, offset=offset)


class FrameDecoder:
    """
    Decoder for the detector's history flash image.

    The image is a flat run of ``0x55 0xAA`` prefixed frames (timestamp,
    double-byte count, location label, end of data) interleaved with bare
    single-byte count runs. Every call walks the image from the start with a
    fresh cursor, so decoding the same image twice gives the same events.
    """

    def __init__(self, image: bytes):
        self.image = bytes(image)

    def iter_events(self) -> Iterator[HistoryEvent]:
        return _DecodePass(self.image).run()

    def decode(self) -> DecodeResult:
        decode_pass = _DecodePass(self.image)
        events = list(decode_pass.run())
        return DecodeResult(
            events=events,
            end_offset=decode_pass.cursor.position,
            final_state=decode_pass.state,
            truncated=decode_pass.truncated,
            stats=dict(decode_pass.stats),
        )
