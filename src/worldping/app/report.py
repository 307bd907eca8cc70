"""Console table for measurement outcomes."""

from __future__ import annotations

from typing import Iterable, List

from worldping.measure.outcome import MeasurementOutcome, Millis

HEADER_FMT = "{0:>12}{1:>6}{2:>8}{3:>8}{4:>8}"
ROW_FMT = "{0:>12}{1:>6}{2:>6}ms{3:>6}ms{4:>6}ms"


def sort_outcomes(outcomes: Iterable[MeasurementOutcome]) -> List[MeasurementOutcome]:
    """Ascending by min; failed worlds (-1) come first."""
    return sorted(outcomes, key=lambda o: o.min)


def _ms(value: Millis) -> str:
    if isinstance(value, float):
        return f"{value:.1f}"
    return str(value)


def format_table(outcomes: Iterable[MeasurementOutcome]) -> str:
    lines = [HEADER_FMT.format("Server", "World", "Min", "Max", "Range")]
    for o in sort_outcomes(outcomes):
        lines.append(
            ROW_FMT.format(o.label, o.target, _ms(o.min), _ms(o.max), _ms(o.range))
        )
    return "\n".join(lines)


def format_summary(outcomes: List[MeasurementOutcome], elapsed_s: float) -> str:
    failed = sum(1 for o in outcomes if o.failed)
    text = format_table(outcomes) + f"\nTotal elapsed time: {elapsed_s:.3f}s"
    if failed:
        text += f" ({failed} of {len(outcomes)} worlds failed)"
    return text
