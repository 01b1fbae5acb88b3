from __future__ import annotations

from pathlib import Path

import pytest

from gmchist.demo import create_demo_image
from gmchist.history.config import FLASH_SIZE, ScanConfig
from gmchist.history.records import RecordRate, SampleKind
from gmchist.pipeline import decode_history, load_image, scan_history
from gmchist.reporting import export_scan, format_scan_summary


def test_load_image_pads_short_file(tmp_path: Path):
    path = tmp_path / "short.bin"
    path.write_bytes(b"\x55\xAA\x02\x01X")

    image = load_image(path, flash_size=16)

    assert len(image) == 16
    assert image[:5] == b"\x55\xAA\x02\x01X"
    assert set(image[5:]) == {0xFF}


def test_load_image_rejects_oversized_file(tmp_path: Path):
    path = tmp_path / "big.bin"
    path.write_bytes(b"\x00" * 32)

    with pytest.raises(ValueError):
        load_image(path, flash_size=16)


def test_demo_image_decodes_fully():
    image = create_demo_image()
    assert len(image) == FLASH_SIZE

    decoded = decode_history(image)

    assert decoded.decode.reached_end_marker
    assert not decoded.decode.truncated
    history = decoded.history
    assert history.label == "Garage  north wall"
    assert history.rate is RecordRate.PER_MINUTE
    assert len(history) == 181
    assert history.observations[0].timestamp_text == "19/Oct/26 08:00:00"
    assert history.observations[60].timestamp_text == "19/Oct/26 09:00:00"
    last = history.observations[-1]
    assert last.kind is SampleKind.DOUBLE
    assert last.count == 360
    assert last.timestamp_text == "19/Oct/26 11:00:00"


def test_demo_scan_finds_elevated_half_hour(tmp_path: Path):
    decoded = decode_history(create_demo_image())

    report = scan_history(decoded.history, ScanConfig())

    assert [interval.block_index for interval in report.intervals] == [14, 15, 16]
    assert report.dropped_tail == 1

    export_scan(decoded.history, report, tmp_path, input_path=tmp_path / "demo.bin")
    assert (tmp_path / "anomalies.csv").read_text(encoding="utf-8").startswith("block_index,first_index")
    report_md = (tmp_path / "report.md").read_text(encoding="utf-8")
    assert "## High intervals" in report_md
    assert "Garage  north wall" in report_md


def test_scan_summary_lines():
    decoded = decode_history(create_demo_image())
    report = scan_history(decoded.history)

    lines = format_scan_summary(decoded.history, report)

    assert lines[0] == "There are 181 CPM data elements stored in the raw data"
    assert any(line.startswith("Samples at index 00149") for line in lines)
    assert lines[-1] == "The last 1 samples did not fill a block and were not scanned"
