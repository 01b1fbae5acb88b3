"""Command line interface for the gmchist package."""
from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import List, Optional

import typer

from .demo import run_demo
from .history.anomaly import EmptyInputError
from .history.config import HistoryConfig, load_config
from .history.device import DeviceError, GmcDevice, SerialSettings
from .history.export import export_history, stamp_for_image
from .pipeline import DecodedHistory, decode_history, load_image, scan_history
from .reporting import export_scan, format_scan_summary

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class PowerState(str, enum.Enum):
    ON = "on"
    OFF = "off"


app = typer.Typer(add_completion=False, help="GQ GMC radiation history utilities.")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."),
) -> None:
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level '{log_level}'", param_hint="--log-level")
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")


def _load(config_path: Optional[Path], overrides: Optional[List[str]]) -> HistoryConfig:
    try:
        return load_config(config_path, overrides or None)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config/--set") from exc


def _open_device(cfg: HistoryConfig) -> GmcDevice:
    settings = SerialSettings(port=cfg.serial.port, baudrate=cfg.serial.baudrate, timeout=cfg.serial.timeout)
    try:
        return GmcDevice(settings)
    except Exception as exc:
        typer.echo(f"Unable to open {settings.port}: {exc}")
        raise typer.Exit(code=1) from exc


def _report_scan(
    cfg: HistoryConfig,
    decoded: DecodedHistory,
    report_dir: Optional[Path],
    plot: bool,
    input_path: Optional[Path],
) -> None:
    try:
        report = scan_history(decoded.history, cfg.scan)
    except EmptyInputError as exc:
        typer.echo(f"Nothing to scan: {exc}")
        raise typer.Exit(code=1) from exc
    for line in format_scan_summary(decoded.history, report):
        typer.echo(line)
    if report_dir is None:
        return
    figure_path = None
    if plot:
        try:
            from .history.plotting import generate_plots

            figure_path = generate_plots(decoded.history, report, report_dir)
        except RuntimeError as exc:
            typer.echo(f"[warning] plotting skipped: {exc}")
    export_scan(decoded.history, report, report_dir, figure_path=figure_path, input_path=input_path)
    typer.echo(f"Report written to {report_dir}")


@app.command()
def fetch(
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial device (overrides config)."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to JSON config."),
    out_dir: Optional[Path] = typer.Option(None, "--out", help="Directory for raw/ASCII/CSV exports."),
    override: Optional[List[str]] = typer.Option(None, "--set", help="Override config keys, e.g. --set serial.baudrate=57600"),
    scan: bool = typer.Option(False, "--scan", help="Run the anomaly scan after downloading."),
) -> None:
    """Download the history flash from the detector and export it."""

    overrides = list(override or [])
    if port:
        overrides.append(f"serial.port={port}")
    if out_dir is not None:
        overrides.append(f"export.output_dir={out_dir}")
    cfg = _load(config_path, overrides)
    device = _open_device(cfg)
    try:
        image = device.read_history(
            flash_size=cfg.download.flash_size,
            block_size=cfg.download.block_size,
            block_delay=cfg.download.block_delay_sec,
            progress=lambda done, total: typer.echo(f"Retrieving block {done} of {total}", err=True),
        )
    except DeviceError as exc:
        typer.echo(f"There was a problem retrieving the device's data: {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        device.close()
    decoded = decode_history(image)
    paths = export_history(image, decoded.history, cfg.export)
    for kind, path in paths.items():
        typer.echo(f"Wrote {kind} export to {path}")
    if scan:
        _report_scan(cfg, decoded, None, False, None)


@app.command()
def decode(
    input_path: Path = typer.Option(..., "--in", help="Raw history image (.bin).", exists=True, readable=True),
    out_dir: Path = typer.Option(Path("."), "--out", help="Directory for ASCII/CSV exports."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to JSON config."),
    override: Optional[List[str]] = typer.Option(None, "--set", help="Override config keys."),
) -> None:
    """Decode a saved raw image into CSV and ASCII exports."""

    cfg = _load(config_path, list(override or []) + [f"export.output_dir={out_dir}", "export.raw=false"])
    try:
        image = load_image(input_path, cfg.download.flash_size)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--in") from exc
    decoded = decode_history(image)
    paths = export_history(image, decoded.history, cfg.export, stamp=stamp_for_image(input_path))
    typer.echo(f"Decoded {len(decoded.history)} observations (label: {decoded.history.label or 'none'})")
    for kind, path in paths.items():
        typer.echo(f"Wrote {kind} export to {path}")


@app.command("scan")
def scan_command(
    input_path: Path = typer.Option(..., "--in", help="Raw history image (.bin).", exists=True, readable=True),
    report_dir: Optional[Path] = typer.Option(None, "--report", help="Write anomalies.csv and report.md here."),
    plot: bool = typer.Option(False, "--plot", help="Render history.png into the report directory."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to JSON config."),
    override: Optional[List[str]] = typer.Option(None, "--set", help="Override config keys, e.g. --set scan.high_percent=50"),
) -> None:
    """Scan a saved raw image for elevated count periods."""

    cfg = _load(config_path, override)
    try:
        image = load_image(input_path, cfg.download.flash_size)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--in") from exc
    _report_scan(cfg, decode_history(image), report_dir, plot, input_path)


@app.command()
def info(
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial device (overrides config)."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to JSON config."),
) -> None:
    """Show the detector's model, serial number, clock, temperature and battery voltage."""

    cfg = _load(config_path, [f"serial.port={port}"] if port else None)
    with _open_device(cfg) as device:
        try:
            typer.echo(f"Model and version: {device.get_version()}")
            typer.echo(f"Serial number: {device.get_serial()}")
            typer.echo(f"Device date/time: {device.get_datetime()}")
            typer.echo(f"Device temperature: {device.get_temperature():+g} C")
            typer.echo(f"Battery voltage: {device.get_voltage():.1f} V")
        except DeviceError as exc:
            typer.echo(f"Device did not answer: {exc}")
            raise typer.Exit(code=1) from exc


@app.command("set-time")
def set_time(
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial device (overrides config)."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to JSON config."),
) -> None:
    """Set the detector's clock to the host's local time."""

    cfg = _load(config_path, [f"serial.port={port}"] if port else None)
    with _open_device(cfg) as device:
        try:
            device.set_datetime()
            typer.echo(f"The new date and time: {device.get_datetime()}")
        except DeviceError as exc:
            typer.echo(f"Device did not answer: {exc}")
            raise typer.Exit(code=1) from exc


@app.command()
def power(
    state: PowerState = typer.Argument(..., help="Turn the detector on or off."),
    port: Optional[str] = typer.Option(None, "--port", "-p", help="Serial device (overrides config)."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to JSON config."),
) -> None:
    """Switch the detector on or off over USB."""

    cfg = _load(config_path, [f"serial.port={port}"] if port else None)
    with _open_device(cfg) as device:
        if state is PowerState.ON:
            device.power_on()
        else:
            device.power_off()
    typer.echo(f"Sent power {state.value} to {cfg.serial.port}")


@app.command()
def demo(
    out_dir: Path = typer.Option(Path("demo_output"), "--out", help="Target directory for demo exports."),
) -> None:
    """Generate a synthetic history image, export and scan it."""

    for line in run_demo(out_dir):
        typer.echo(line)
    typer.echo(f"Demo image and report written to {out_dir}")


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
