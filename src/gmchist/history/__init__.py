"""
Decoding and analysis of GQ GMC detector history flash images.

The subpackage holds the frame cursor and decoder, the observation builder,
the anomaly scanner, the export writers and the serial client used to pull
the raw image off the device.
"""

from .anomaly import AnomalyReport, AnomalyScanner, EmptyInputError, HighInterval
from .builder import History, ObservationBuilder, build_history
from .config import HistoryConfig, load_config
from .cursor import CursorOutOfRange, FrameCursor
from .frames import (
    CountSample,
    DecodeResult,
    DecoderState,
    EndOfData,
    FrameDecoder,
    FrameKind,
    SetLabel,
    SetTimestamp,
)
from .records import Observation, RecordRate, SampleKind, Timestamp

__all__ = [
    "AnomalyReport",
    "AnomalyScanner",
    "EmptyInputError",
    "HighInterval",
    "History",
    "ObservationBuilder",
    "build_history",
    "HistoryConfig",
    "load_config",
    "CursorOutOfRange",
    "FrameCursor",
    "CountSample",
    "DecodeResult",
    "DecoderState",
    "EndOfData",
    "FrameDecoder",
    "FrameKind",
    "SetLabel",
    "SetTimestamp",
    "Observation",
    "RecordRate",
    "SampleKind",
    "Timestamp",
]
