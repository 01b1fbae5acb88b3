"""Demo history image utilities."""
from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import numpy as np

from .history.config import FLASH_SIZE, ExportConfig
from .history.export import export_history
from .history.frames import FRAME_MARKER, FrameKind
from .history.records import RecordRate
from .pipeline import ERASED_BYTE, decode_history, scan_history
from .reporting import export_scan, format_scan_summary


def timestamp_frame(when: datetime, rate: RecordRate = RecordRate.PER_MINUTE) -> bytes:
    fields = bytes([when.year % 100, when.month, when.day, when.hour, when.minute, when.second])
    return FRAME_MARKER + bytes([FrameKind.TIMESTAMP]) + fields + FRAME_MARKER + bytes([rate])


def location_frame(text: str) -> bytes:
    raw = text.encode("ascii")[:255]
    return FRAME_MARKER + bytes([FrameKind.LOCATION, len(raw)]) + raw


def double_count_frame(count: int) -> bytes:
    return FRAME_MARKER + bytes([FrameKind.DOUBLE_BYTE_COUNT]) + int(count).to_bytes(2, "big")


def create_demo_image(
    hours: int = 3,
    background_cpm: float = 18.0,
    start: datetime = datetime(2026, 10, 19, 8, 0, 0),
    seed: int = 42,
) -> bytes:
    """Synthesise a CPM history image with one elevated half hour."""
    rng = np.random.default_rng(seed)
    image = bytearray(location_frame("Garage, north wall"))
    for hour in range(hours):
        image += timestamp_frame(start + timedelta(hours=hour))
        counts = rng.poisson(background_cpm, size=60)
        if hour == hours - 1:
            counts[20:50] = rng.poisson(background_cpm * 3, size=30)
        # Keep every sample clear of frame header codes and the 0x55 marker byte.
        counts = np.clip(counts, 3, 160)
        counts[counts == FRAME_MARKER[0]] += 1
        image += bytes(int(value) for value in counts)
    image += double_count_frame(int(background_cpm * 20))
    image += bytes([ERASED_BYTE, ERASED_BYTE])
    image += bytes([ERASED_BYTE]) * (FLASH_SIZE - len(image))
    return bytes(image)


def run_demo(out_dir: Path) -> list[str]:
    out_dir.mkdir(parents=True, exist_ok=True)
    image = create_demo_image()
    decoded = decode_history(image)
    export_history(image, decoded.history, ExportConfig(output_dir=out_dir), stamp="demo")
    report = scan_history(decoded.history)
    export_scan(decoded.history, report, out_dir, input_path=out_dir / "demo.history.bin")
    return format_scan_summary(decoded.history, report)
