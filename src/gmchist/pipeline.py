"""High level orchestration: raw image in, decoded history and scan out."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .history.anomaly import AnomalyReport, AnomalyScanner
from .history.builder import History, build_history
from .history.config import FLASH_SIZE, ScanConfig
from .history.frames import DecodeResult, FrameDecoder

logger = logging.getLogger(__name__)

ERASED_BYTE = 0xFF


@dataclass(frozen=True)
class DecodedHistory:
    image: bytes
    decode: DecodeResult
    history: History


def load_image(path: str | Path, flash_size: int = FLASH_SIZE) -> bytes:
    """Read a raw history image, padding a short file with erased flash bytes."""

    path = Path(path)
    data = path.read_bytes()
    if len(data) > flash_size:
        raise ValueError(f"{path} holds {len(data)} bytes, more than the {flash_size} byte flash")
    if len(data) < flash_size:
        logger.warning("%s holds %d bytes; padding to %d with 0x%02X", path, len(data), flash_size, ERASED_BYTE)
        data = data + bytes([ERASED_BYTE]) * (flash_size - len(data))
    return data


def decode_history(image: bytes) -> DecodedHistory:
    result = FrameDecoder(image).decode()
    history = build_history(result.events)
    logger.info(
        "Decoded %d observations (label=%r, end offset %d, truncated=%s)",
        len(history),
        history.label,
        result.end_offset,
        result.truncated,
    )
    return DecodedHistory(image=bytes(image), decode=result, history=history)


def scan_history(history: History, config: ScanConfig | None = None) -> AnomalyReport:
    config = config or ScanConfig()
    scanner = AnomalyScanner(
        block_size=config.block_size,
        high_percent=config.high_percent,
        super_high_factor=config.super_high_factor,
    )
    return scanner.scan(history.counts())
