from __future__ import annotations

from pathlib import Path

import pytest

from gmchist.demo import create_demo_image
from gmchist.pipeline import decode_history, scan_history


def test_generate_plots_writes_png(tmp_path: Path):
    pytest.importorskip("matplotlib")
    from gmchist.history.plotting import generate_plots

    decoded = decode_history(create_demo_image())
    report = scan_history(decoded.history)

    path = generate_plots(decoded.history, report, tmp_path)

    assert path == tmp_path / "history.png"
    assert path.stat().st_size > 0
