from __future__ import annotations

from pathlib import Path

import pytest

from transposebench.utils.plotting import plot_variant_bandwidth


def _results() -> dict:
    return {
        "copy": {"label": "copy", "status": "passed", "bandwidth_gbs": 400.0},
        "transpose_naive": {"label": "naive transpose", "status": "failed", "bandwidth_gbs": None},
        "transpose_no_bank_conflicts": {"label": "conflict-free transpose", "status": "passed", "bandwidth_gbs": 380.0},
    }


def test_plot_marks_failed_variants(tmp_path: Path) -> None:
    out = tmp_path / "plot.png"
    fig = plot_variant_bandwidth(_results(), output_file=str(out))

    assert out.exists()
    ax = fig.axes[0]
    assert [t.get_text() for t in ax.get_xticklabels()] == ["copy", "naive transpose", "conflict-free transpose"]
    assert any(t.get_text() == "FAILED" for t in ax.texts)


def test_plot_requires_results() -> None:
    with pytest.raises(ValueError):
        plot_variant_bandwidth({})
