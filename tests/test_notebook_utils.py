import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from bb84_lab import Basis, ErrorEstimate, InvalidTransition, Stage, Verdict
from bb84_lab.notebook_utils import (
    format_bases,
    format_key_preview,
    normalize_seed,
    render_error_histogram,
    run_session,
    session_summary,
    sweep_error_rates,
    verdict_badge,
)


def test_format_bases_uses_glyphs_and_hides():
    bases = [Basis.RECTILINEAR, Basis.DIAGONAL, Basis.DIAGONAL]

    assert format_bases(bases) == "+xx"
    assert format_bases(bases, visible=False) == "???"


def test_format_key_preview():
    assert format_key_preview([]) == "-"
    assert format_key_preview([1, 0, 1]) == "101"
    preview = format_key_preview([1] * 100, limit=20)
    assert len(preview) == 20
    assert "..." in preview


@pytest.mark.parametrize("raw, expected", [(None, None), ("", None), (" 42 ", 42), ("abc", None), (7, 7)])
def test_normalize_seed(raw, expected):
    assert normalize_seed(raw) == expected


def test_run_session_reaches_the_verdict():
    session = run_session("Hola, Bob!", seed_value="13")

    assert session.stage is Stage.ERROR_ESTIMATED
    assert session.verdict is Verdict.CHANNEL_SECURE
    assert "RESULTADO BB84" in session_summary(session).data


def test_sweep_with_eve_mostly_detects():
    data = sweep_error_rates("A" * 64, runs=10, seed_value=1, eve=True)

    assert len(data) == 10
    assert sum(item["detected"] for item in data) >= 8


def test_sweep_on_empty_message_is_empty():
    assert sweep_error_rates("", runs=3) == []
    assert render_error_histogram([]) is None


def test_render_error_histogram():
    fig = render_error_histogram([{"run": 0, "error_rate": 5.0, "detected": 0.0}, {"run": 1, "error_rate": 25.0, "detected": 1.0}])

    assert fig is not None
    plt.close(fig)


def test_verdict_badge():
    degenerate = ErrorEstimate(sample_indices=(), error_count=0, error_rate=0.0, verdict=None, degenerate=True)
    detected = ErrorEstimate(sample_indices=(0, 1), error_count=1, error_rate=50.0, verdict=Verdict.EAVESDROPPING_DETECTED)

    assert "Sin muestra" in verdict_badge(degenerate)
    assert "Eve detectada" in verdict_badge(detected)


def test_sweep_lets_transition_errors_through(monkeypatch):
    import bb84_lab.notebook_utils as notebook_utils

    def failing_session(*args, **kwargs):
        raise InvalidTransition("run_all", Stage.EMPTY)

    monkeypatch.setattr(notebook_utils, "run_session", failing_session)

    assert notebook_utils.sweep_error_rates("", runs=3) == []
    with pytest.raises(InvalidTransition):
        notebook_utils.sweep_error_rates("A", runs=3)
