"""Helpers for presenting BB84 sessions in a notebook."""

from typing import Any, Dict, List, Optional, Sequence

import matplotlib.pyplot as plt
from IPython.display import HTML

from .bases import Basis, Party
from .encoding import bits_to_string
from .protocol import BB84Session, SessionConfig
from .sifting import ERROR_THRESHOLD, ErrorEstimate, Verdict, detection_probability


BASIS_GLYPHS = {Basis.RECTILINEAR: "+", Basis.DIAGONAL: "x"}
HIDDEN_GLYPH = "?"


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp a value between lower and upper bounds."""
    return max(lower, min(upper, value))


def normalize_seed(raw: Any) -> Optional[int]:
    """Convert raw input to a valid seed integer or None."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def run_session(message: str, seed_value: Any = None, eve: bool = False, noise: bool = False) -> BB84Session:
    """Run a complete session with random bases for every party."""
    session = BB84Session(SessionConfig(seed=normalize_seed(seed_value)))
    session.set_message(message)
    session.set_eavesdropper(eve)
    if noise:
        session.set_noise(True)
    for party in Party:
        session.randomize_bases(party)
    session.run_all()
    return session


def format_bases(bases: Sequence[Basis], visible: bool = True) -> str:
    if not visible:
        return HIDDEN_GLYPH * len(bases)
    return "".join(BASIS_GLYPHS[basis] for basis in bases)


def format_key_preview(bits: Sequence[int], limit: int = 64) -> str:
    """Format a bit sequence with ellipsis if too long."""
    key = bits_to_string(bits)
    if not key:
        return "-"
    if len(key) <= limit:
        return key
    head = max(limit // 2, 1)
    tail = max(limit - head - 3, 0)
    if tail <= 0:
        return key[:limit]
    return key[:head] + "..." + key[-tail:]


def verdict_badge(estimate: Optional[ErrorEstimate]) -> str:
    """HTML badge coloured by how far the sampled error rate sits from the threshold."""
    if estimate is None or estimate.degenerate:
        return "<span style='padding:6px 12px;border-radius:8px;background:#e0e0e0;'>Sin muestra</span>"
    ratio = clamp(estimate.error_rate / (2 * ERROR_THRESHOLD))
    red = int(67 + ratio * (235 - 67))
    green = int(160 - ratio * (160 - 87))
    label = "Eve detectada" if estimate.verdict is Verdict.EAVESDROPPING_DETECTED else "Canal seguro"
    return (
        f"<span style='display:inline-block;padding:6px 12px;border-radius:8px;"
        f"background:#{red:02x}{green:02x}57;color:#102a43;font-weight:600;'>"
        f"{label}: {estimate.error_rate:.2f}%</span>"
    )


def session_summary(session: BB84Session) -> HTML:
    """Generate a summary of the session's current state."""
    alice_key, bob_key = session.sifted_keys
    lines = [
        "RESULTADO BB84",
        "------------------------------------------",
        f"Etapa         : {session.stage.name}",
        f"Bits          : {format_key_preview(session.bits)}",
        f"Bases Alice   : {format_bases(session.bases(Party.ALICE), session.alice_bases_visible)}",
        f"Bases Bob     : {format_bases(session.bases(Party.BOB))}",
        f"Bases iguales : {len(session.matching_indices)}",
        f"Clave Alice   : {format_key_preview(alice_key)}",
        f"Clave Bob     : {format_key_preview(bob_key)}",
    ]
    estimate = session.error_estimate
    if estimate is not None and not estimate.degenerate:
        lines.append(f"QBER real     : {session.state.qber():.4f}")
        lines.append(f"P(det) ideal  : {detection_probability(session.state.qber(), estimate.sample_size):.6f}")
    body = "<pre>" + "\n".join(lines) + "</pre>"
    if estimate is not None:
        body += verdict_badge(estimate)
    return HTML(body)


def sweep_error_rates(
    message: str,
    runs: int,
    seed_value: Any = None,
    eve: bool = False,
    noise: bool = False,
) -> List[Dict[str, float]]:
    """Repeat full sessions and collect each sampled error rate."""
    if not message:
        return []
    seed = normalize_seed(seed_value)
    data = []
    for run in range(runs):
        run_seed = None if seed is None else seed + run
        session = run_session(message, run_seed, eve, noise)
        estimate = session.error_estimate
        data.append(
            {
                "run": run,
                "error_rate": estimate.error_rate,
                "detected": float(estimate.eavesdropping_detected),
            }
        )
    return data


def render_error_histogram(data: List[Dict[str, float]], label: str = ""):
    """Histogram of sampled error rates with the detection threshold marked."""
    if not data:
        return None
    rates = [item["error_rate"] for item in data]
    fig, ax = plt.subplots(figsize=(6, 3.5))
    ax.hist(rates, bins=20, color="#1f77b4", alpha=0.8)
    ax.axvline(ERROR_THRESHOLD, color="#c62828", linestyle="--", label=f"Umbral {ERROR_THRESHOLD:.0f}%")
    ax.set_xlabel(f"Tasa de error muestreada (%) {label}".strip())
    ax.set_ylabel("Ejecuciones")
    ax.grid(alpha=0.25)
    ax.legend(loc="upper right")
    plt.tight_layout()
    return fig
