from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from .builder import History
from .config import ExportConfig
from .records import SampleKind, month_name

logger = logging.getLogger(__name__)

DEFAULT_TIME_HEADER = "Date/Time"
COUNTS_HEADER = "Counts"
ASCII_BYTES_PER_LINE = 16
HISTORY_SUFFIX = ".history"


def export_stamp(now: Optional[datetime] = None) -> str:
    """File stem such as ``19Oct26.14.03.00`` built from the host clock."""
    now = now or datetime.now()
    return (
        f"{now.day:02d}{month_name(now.month)}{now.year % 100:02d}."
        f"{now.hour:02d}.{now.minute:02d}.{now.second:02d}"
    )


def stamp_for_image(path: Path) -> str:
    """File stem for exports of a saved image; `x.history.bin` gives `x`."""
    stamp = Path(path).stem
    if stamp.endswith(HISTORY_SUFFIX):
        stamp = stamp[: -len(HISTORY_SUFFIX)]
    return stamp


def write_raw_image(image: bytes, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(bytes(image))
    return path


def write_ascii_dump(image: bytes, path: Path) -> Path:
    """Write the image as zero-padded decimal bytes, sixteen per line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="ascii", newline="\n") as fh:
        for start in range(0, len(image), ASCII_BYTES_PER_LINE):
            chunk = image[start : start + ASCII_BYTES_PER_LINE]
            fh.write("".join(f"{value:03d} " for value in chunk) + "\n")
    return path


def csv_header(label: Optional[str]) -> str:
    name = label.replace(",", " ") if label else DEFAULT_TIME_HEADER
    return f"{name},{COUNTS_HEADER}"


def write_history_csv(history: History, path: Path, *, skip_zero_bare: bool = True) -> int:
    """
    Write one ``<timestamp>,<count>`` row per observation under a
    ``<label>,Counts`` header and return the number of data rows.

    Zero counts in bare runs usually mean the detector was powered down, so
    they are left out by default. Double-byte zeros are always written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with path.open("w", newline="", encoding="utf-8") as fh:
        fh.write(csv_header(history.label) + "\n")
        writer = csv.writer(fh, lineterminator="\n")
        for obs in history.observations:
            if skip_zero_bare and obs.kind is SampleKind.BARE and obs.count == 0:
                continue
            writer.writerow([obs.timestamp_text, obs.count])
            written += 1
    logger.info("Wrote %d of %d observations to %s", written, len(history), path)
    return written


def export_history(
    image: bytes,
    history: History,
    config: ExportConfig,
    *,
    stamp: Optional[str] = None,
) -> Dict[str, Path]:
    """Write the enabled raw/ASCII/CSV exports and return their paths by kind."""
    stamp = stamp or export_stamp()
    out_dir = Path(config.output_dir)
    paths: Dict[str, Path] = {}
    if config.raw:
        paths["raw"] = write_raw_image(image, out_dir / f"{stamp}{HISTORY_SUFFIX}.bin")
    if config.ascii:
        paths["ascii"] = write_ascii_dump(image, out_dir / f"{stamp}{HISTORY_SUFFIX}.txt")
    if config.csv:
        csv_path = out_dir / f"{stamp}{HISTORY_SUFFIX}.csv"
        write_history_csv(history, csv_path, skip_zero_bare=config.skip_zero_counts)
        paths["csv"] = csv_path
    return paths
