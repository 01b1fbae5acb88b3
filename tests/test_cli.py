from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from gmchist.cli import app
from gmchist.demo import create_demo_image

runner = CliRunner()


def _write_image(tmp_path: Path) -> Path:
    path = tmp_path / "sample.bin"
    path.write_bytes(create_demo_image())
    return path


def test_decode_command_writes_exports(tmp_path: Path):
    image_path = _write_image(tmp_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(app, ["decode", "--in", str(image_path), "--out", str(out_dir)])

    assert result.exit_code == 0, result.output
    assert "Decoded 181 observations" in result.output
    csv_lines = (out_dir / "sample.history.csv").read_text(encoding="utf-8").splitlines()
    assert csv_lines[0] == "Garage  north wall,Counts"
    assert (out_dir / "sample.history.txt").exists()
    assert not (out_dir / "sample.history.bin").exists()


def test_scan_command_reports(tmp_path: Path):
    image_path = _write_image(tmp_path)
    report_dir = tmp_path / "report"

    result = runner.invoke(app, ["scan", "--in", str(image_path), "--report", str(report_dir)])

    assert result.exit_code == 0, result.output
    assert "The average CPM is" in result.output
    assert (report_dir / "anomalies.csv").exists()
    assert (report_dir / "report.md").exists()


def test_scan_command_rejects_bad_override(tmp_path: Path):
    image_path = _write_image(tmp_path)

    result = runner.invoke(app, ["scan", "--in", str(image_path), "--set", "scan.block_size=0"])

    assert result.exit_code != 0


def test_scan_of_empty_history_exits_nonzero(tmp_path: Path):
    path = tmp_path / "blank.bin"
    path.write_bytes(b"\x55\xAA\xff\xff")

    result = runner.invoke(app, ["scan", "--in", str(path)])

    assert result.exit_code == 1
    assert "Nothing to scan" in result.output


def test_demo_command(tmp_path: Path):
    result = runner.invoke(app, ["demo", "--out", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "demo.history.csv").exists()
    assert (tmp_path / "report.md").exists()


def test_decode_names_exports_after_saved_image(tmp_path: Path):
    image_path = tmp_path / "19Oct26.14.03.00.history.bin"
    image_path.write_bytes(create_demo_image())
    out_dir = tmp_path / "2026.10"

    result = runner.invoke(app, ["decode", "--in", str(image_path), "--out", str(out_dir)])

    assert result.exit_code == 0, result.output
    assert (out_dir / "19Oct26.14.03.00.history.csv").exists()
    assert not (out_dir / "19Oct26.14.03.00.history.history.csv").exists()


def test_info_shows_temperature_and_voltage(fake_serial):
    result = runner.invoke(app, ["info", "--port", "/dev/ttyFAKE"])

    assert result.exit_code == 0, result.output
    assert "Serial number: F4880012345678" in result.output
    assert "Device temperature: +23.5 C" in result.output
    assert "Battery voltage: 4.2 V" in result.output
    assert fake_serial.port.closed


def test_power_command_sends_on_and_off(fake_serial):
    off = runner.invoke(app, ["power", "off", "--port", "/dev/ttyFAKE"])
    on = runner.invoke(app, ["power", "on", "--port", "/dev/ttyFAKE"])

    assert off.exit_code == 0, off.output
    assert on.exit_code == 0, on.output
    assert fake_serial.port.written == [b"<POWEROFF>>", b"<POWERON>>"]
    assert fake_serial.kwargs["port"] == "/dev/ttyFAKE"


def test_power_command_rejects_unknown_state():
    result = runner.invoke(app, ["power", "sideways"])

    assert result.exit_code != 0
