# src/exoticmc/report.py
"""Text report for a priced :class:`~exoticmc.option.OptionResult`."""

from __future__ import annotations

import logging

from exoticmc.option import OptionResult


logger = logging.getLogger(__name__)

_COLUMNS: tuple[tuple[str, int], ...] = (
    ("Spot", 6),
    ("Strike", 6),
    ("r", 6),
    ("sigma", 5),
    ("tenor", 8),
    ("Call/Put", 8),
    ("AsianValue", 12),
    ("AsianExpected", 13),
    ("PlainVanilla", 12),
    ("PVReference", 12),
    ("Knock-Out", 12),
    ("Knock-In", 12),
    ("K-Out+K-In", 12),
    ("Lookback", 12),
)


def _format_value(value: float | None, width: int) -> str:
    if value is None:
        return "-".rjust(width)
    return f"{value:{width}.6f}"


def format_result(result: OptionResult) -> str:
    """Render *result* as the parameter/value table followed by run details."""
    spec = result.spec
    header = "|".join(name.center(width) for name, width in _COLUMNS)
    rule = "|".join("-" * width for _, width in _COLUMNS)
    cells = [
        f"{spec.spot:6g}",
        f"{spec.strike:6g}",
        f"{spec.risk_free_rate:6g}",
        f"{spec.volatility:5g}",
        f"{spec.tenor:8.5f}",
        spec.option_type.value.capitalize().rjust(8),
        _format_value(result.value_asian, 12),
        _format_value(result.expected_value, 13),
        _format_value(result.value_plain_vanilla, 12),
        _format_value(result.value_plain_vanilla_reference, 12),
        _format_value(result.value_knockout, 12),
        _format_value(result.value_knockin, 12),
        _format_value(result.value_knock_sum, 12),
        _format_value(result.value_lookback, 12),
    ]
    lines = [
        f"Time spent on the reference pricer: {result.elapsed_reference:.6f} s",
        f"Precision:      {result.precision.label}",
        f"Number of simulations: {result.num_paths}",
        "",
        header,
        rule,
        "|".join(cells),
        "",
        f"Total time spent on the device: {result.elapsed_parallel:.6f} s",
    ]
    return "\n".join(lines)


def check_expected(result: OptionResult) -> bool:
    """``True`` unless the Asian value misses ``expected_value`` by more than ``tolerance``.

    A result without an expected value always passes; a missing tolerance
    means an exact match is required.
    """
    if result.expected_value is None:
        return True
    tolerance = result.tolerance if result.tolerance is not None else 0.0
    if abs(result.value_asian - result.expected_value) > tolerance:
        logger.warning(
            f"Computed Asian value ({result.value_asian:e}) does not match "
            f"expected value ({result.expected_value:e}) within {tolerance}"
        )
        return False
    return True


__all__ = ["check_expected", "format_result"]
