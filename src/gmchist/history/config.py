from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Sequence

FLASH_SIZE = 0x10000


@dataclass
class SerialConfig:
    port: str = "/dev/ttyUSB0"
    baudrate: int = 115200
    timeout: float = 2.0


@dataclass
class DownloadConfig:
    flash_size: int = FLASH_SIZE
    block_size: int = 2048  # device accepts at most 4096 per request
    block_delay_sec: float = 0.1


@dataclass
class ScanConfig:
    block_size: int = 10
    high_percent: int = 30
    super_high_factor: int = 2


@dataclass
class ExportConfig:
    output_dir: Path = Path(".")
    raw: bool = True
    ascii: bool = True
    csv: bool = True
    skip_zero_counts: bool = True


@dataclass
class HistoryConfig:
    serial: SerialConfig = field(default_factory=SerialConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    def validate(self) -> None:
        if self.download.block_size <= 0 or self.download.block_size > 4096:
            raise ValueError("download.block_size must be between 1 and 4096")
        if self.download.flash_size <= 0 or self.download.flash_size % self.download.block_size:
            raise ValueError("download.flash_size must be a positive multiple of download.block_size")
        if self.scan.block_size <= 0:
            raise ValueError("scan.block_size must be positive")
        if self.scan.high_percent < 0 or self.scan.super_high_factor < 1:
            raise ValueError("scan.high_percent must be >= 0 and scan.super_high_factor >= 1")


def _load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {**base}
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge(base[key], value)  # type: ignore[index]
        else:
            merged[key] = value
    return merged


def load_config(path: Path | str | None = None, overrides: Sequence[str] | None = None) -> HistoryConfig:
    """
    Build a :class:`HistoryConfig` from an optional JSON file plus overrides.

    Overrides are dotted `key=value` pairs, e.g.:
        ["serial.port=/dev/ttyUSB1", "scan.high_percent=50"]
    """
    data: Dict[str, Any] = _load_json(Path(path)) if path is not None else {}
    override_data: Dict[str, Any] = {}
    for override in overrides or []:
        key, raw_value = _parse_override(override)
        _assign_nested(override_data, key, raw_value)
    merged = _merge(data, override_data)
    unknown = set(merged) - {"serial", "download", "scan", "export"}
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")

    serial_data = merged.get("serial") or {}
    download_data = merged.get("download") or {}
    scan_data = merged.get("scan") or {}
    export_data = merged.get("export") or {}
    config = HistoryConfig(
        serial=SerialConfig(
            port=str(serial_data.get("port", "/dev/ttyUSB0")),
            baudrate=_to_int(serial_data.get("baudrate", 115200)),
            timeout=_to_float(serial_data.get("timeout", 2.0)),
        ),
        download=DownloadConfig(
            flash_size=_to_int(download_data.get("flash_size", FLASH_SIZE)),
            block_size=_to_int(download_data.get("block_size", 2048)),
            block_delay_sec=_to_float(download_data.get("block_delay_sec", 0.1)),
        ),
        scan=ScanConfig(
            block_size=_to_int(scan_data.get("block_size", 10)),
            high_percent=_to_int(scan_data.get("high_percent", 30)),
            super_high_factor=_to_int(scan_data.get("super_high_factor", 2)),
        ),
        export=ExportConfig(
            output_dir=Path(str(export_data.get("output_dir", "."))),
            raw=_to_bool(export_data.get("raw", True)),
            ascii=_to_bool(export_data.get("ascii", True)),
            csv=_to_bool(export_data.get("csv", True)),
            skip_zero_counts=_to_bool(export_data.get("skip_zero_counts", True)),
        ),
    )
    config.validate()
    return config


def _parse_override(item: str) -> tuple[str, str]:
    if "=" not in item:
        raise ValueError(f"Override '{item}' must use key=value syntax")
    key, raw_value = item.split("=", 1)
    key = key.strip()
    if not key:
        raise ValueError("Override key may not be empty")
    return key, raw_value.strip()


# Override values stay strings until the target field's type is known.
def _to_int(value: Any) -> int:
    if isinstance(value, str):
        text = value.strip()
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    return int(value)


def _to_float(value: Any) -> float:
    return float(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in {"true", "yes", "on", "1"}:
            return True
        if text in {"false", "no", "off", "0"}:
            return False
        raise ValueError(f"Expected a boolean, got '{value}'")
    return bool(value)


def _assign_nested(target: Dict[str, Any], dotted_key: str, value: Any) -> None:
    cursor = target
    parts = dotted_key.split(".")
    for part in parts[:-1]:
        cursor = cursor.setdefault(part, {})
    cursor[parts[-1]] = value
