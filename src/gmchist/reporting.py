"""Report writers for anomaly scans."""
from __future__ import annotations

from pathlib import Path
from typing import List

from .history.anomaly import AnomalyReport
from .history.builder import History


def format_scan_summary(history: History, report: AnomalyReport) -> List[str]:
    """Console lines describing a scan, one finding per line."""

    unit = history.rate.unit
    lines: List[str] = []
    lines.append(f"There are {report.sample_count} {unit} data elements stored in the raw data")
    lines.append(f"The average {unit} is {report.mean}")
    count_range = history.count_range()
    if count_range is not None:
        lines.append(f"The lowest value was: {count_range[0]}, the highest was: {count_range[1]}")
    lines.append(
        f"The average plus {report.high_percent}% is {report.upper_threshold}. "
        f"A super high value is considered to be {report.super_high_threshold}"
    )
    for interval in report.intervals:
        lines.append(
            f"Samples at index {interval.last_index:05d} about {interval.minute_offset:04d} "
            f"samples in to the data have a higher average of {interval.average:03d}"
        )
    if not report.found_high:
        lines.append(f"There were not any high counts per {report.block_size} sample interval found in the data")
    if report.super_high_indices:
        lines.append(f"There were {len(report.super_high_indices)} super high events in the raw data")
    else:
        lines.append("There were no super high events in the raw data")
    if report.dropped_tail:
        lines.append(f"The last {report.dropped_tail} samples did not fill a block and were not scanned")
    return lines


def export_scan(
    history: History,
    report: AnomalyReport,
    output_dir: Path,
    *,
    figure_path: Path | None = None,
    input_path: Path | None = None,
) -> None:
    """Persist the high-interval table and a markdown report to *output_dir*."""

    output_dir.mkdir(parents=True, exist_ok=True)
    report.to_frame().to_csv(output_dir / "anomalies.csv", index=False)
    _write_report_md(history, report, output_dir, figure_path=figure_path, input_path=input_path)


def _write_report_md(
    history: History,
    report: AnomalyReport,
    output_dir: Path,
    *,
    figure_path: Path | None,
    input_path: Path | None,
) -> None:
    lines: list[str] = []
    lines.append("# Radiation History Scan")
    if input_path is not None:
        lines.append(f"*Input image:* `{input_path}`  ")
    if history.label:
        lines.append(f"*Location:* {history.label}  ")
    lines.append(f"*Samples:* {report.sample_count} ({history.rate.unit})  ")
    count_range = history.count_range()
    if count_range is not None:
        lines.append(f"*Lowest / highest:* {count_range[0]} / {count_range[1]}  ")
    lines.append("")

    lines.append("## Thresholds")
    lines.append("| Quantity | Value |")
    lines.append("| --- | ---: |")
    lines.append(f"| Mean | {report.mean} |")
    lines.append(f"| High (block average >=) | {report.upper_threshold} |")
    lines.append(f"| Super high (block average >=) | {report.super_high_threshold} |")
    lines.append(f"| Block size | {report.block_size} |")
    lines.append("")

    lines.append("## High intervals")
    if report.intervals:
        super_high = set(report.super_high_indices)
        lines.append("| Block | Samples | First timestamp | Average | Super high |")
        lines.append("| ---: | --- | --- | ---: | :---: |")
        for interval in report.intervals:
            first = history.observations[interval.first_index].timestamp_text or "n/a"
            flag = "yes" if interval.last_index in super_high else ""
            lines.append(
                f"| {interval.block_index} | {interval.first_index}-{interval.last_index} | {first} "
                f"| {interval.average} | {flag} |"
            )
    else:
        lines.append("No block reached the high threshold.")
    lines.append("")

    if figure_path is not None:
        lines.append(f"![History plot]({figure_path.name})")
        lines.append("")

    lines.append("### Notes")
    lines.append(f"- Blocks are {report.block_size} consecutive samples; a shorter tail is not scanned.")
    lines.append("- Thresholds use integer arithmetic on the truncated global mean.")

    (output_dir / "report.md").write_text("\n".join(lines), encoding="utf-8")
