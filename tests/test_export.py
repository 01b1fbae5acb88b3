from __future__ import annotations

from datetime import datetime
from pathlib import Path

from gmchist.history.builder import History
from gmchist.history.config import ExportConfig
from gmchist.history.export import (
    csv_header,
    export_history,
    export_stamp,
    stamp_for_image,
    write_ascii_dump,
    write_history_csv,
)
from gmchist.history.records import Observation, RecordRate, SampleKind, Timestamp


def sample_history(label: str | None = "Garage  north wall") -> History:
    ts = Timestamp(year=26, month=10, day=19, hour=8, minute=0, second=0)
    return History(
        observations=[
            Observation(ts, 12),
            Observation(ts.advance(RecordRate.PER_MINUTE), 0),
            Observation(ts.advance(RecordRate.PER_MINUTE), 0, SampleKind.DOUBLE),
            Observation(None, 7),
        ],
        label=label,
        rate=RecordRate.PER_MINUTE,
    )


def test_csv_header_uses_label_or_default():
    assert csv_header(None) == "Date/Time,Counts"
    assert csv_header("A, B") == "A  B,Counts"


def test_history_csv_skips_zero_bare_samples(tmp_path: Path):
    path = tmp_path / "history.csv"

    written = write_history_csv(sample_history(), path)

    assert written == 3
    assert path.read_text(encoding="utf-8").splitlines() == [
        "Garage  north wall,Counts",
        "19/Oct/26 08:00:00,12",
        "19/Oct/26 08:01:00,0",
        ",7",
    ]


def test_history_csv_can_keep_zero_samples(tmp_path: Path):
    path = tmp_path / "history.csv"

    written = write_history_csv(sample_history(label=None), path, skip_zero_bare=False)

    assert written == 4
    assert path.read_text(encoding="utf-8").splitlines()[0] == "Date/Time,Counts"


def test_ascii_dump_layout(tmp_path: Path):
    path = write_ascii_dump(bytes(range(20)), tmp_path / "dump.txt")

    lines = path.read_text(encoding="ascii").splitlines()
    assert lines[0] == " ".join(f"{value:03d}" for value in range(16)) + " "
    assert lines[1] == "016 017 018 019 "
    assert len(lines) == 2


def test_export_stamp_format():
    assert export_stamp(datetime(2026, 10, 19, 14, 3, 0)) == "19Oct26.14.03.00"


def test_export_history_writes_enabled_files(tmp_path: Path):
    image = b"\x55\xAA\xff\xff"
    config = ExportConfig(output_dir=tmp_path / "out", ascii=False)

    paths = export_history(image, sample_history(), config, stamp="run1")

    assert set(paths) == {"raw", "csv"}
    assert paths["raw"].name == "run1.history.bin"
    assert paths["raw"].read_bytes() == image
    assert paths["csv"].name == "run1.history.csv"
    assert not (tmp_path / "out" / "run1.history.txt").exists()


def test_stamp_for_image_drops_history_suffix():
    assert stamp_for_image(Path("exports/19Oct26.14.03.00.history.bin")) == "19Oct26.14.03.00"
    assert stamp_for_image(Path("sample.bin")) == "sample"
