# src/exoticmc/payoffs.py
"""
Payoff rules and the evaluator passes that apply them to the path matrix.

Three layers, each usable on its own:

* **Rules** (:func:`vanilla_payoff`, :func:`lookback_payoff`,
  :func:`barrier_payoffs`) are scalar ``numba.jit`` functions, so the same
  code runs on the host and inside CUDA kernels.
* **Summaries** (:class:`PathSummary`, :func:`summarize_path`,
  :func:`evaluate_payoff`) give the host-side view of one path and map a
  :class:`~exoticmc.option.PayoffKind` to its rule.
* **Passes** (:class:`EvaluatorPass`, :data:`EVALUATOR_PASSES`) bind a
  per-path device function to a reduction kernel template and know how to
  launch it.

Knock-out and knock-in are evaluated together: every path contributes its
vanilla payoff to exactly one of them, so their values always add up to
the vanilla value priced on the same paths.  The lookback is call-style
only (final level minus running minimum) and ignores ``option_type``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np
from numba import cuda, jit

from exoticmc.backend import ComputeBackend, DeviceBuffer, device_operation
from exoticmc.launch import LaunchShape
from exoticmc.models.numerical import Precision
from exoticmc.option import OptionSpec, PayoffKind
from exoticmc.paths import BARRIER, SIGN, SPOT, STEPS, STRIKE
from exoticmc.reduction import path_pair_sum_kernel, path_sum_kernel, shared_memory_bytes


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@jit(nopython=True)
def vanilla_payoff(value, strike, sign):  # type: ignore[no-untyped-def]
    """``max(0, sign * (value - strike))`` in the precision of the inputs."""
    payoff = sign * (value - strike)
    return max(payoff, payoff - payoff)


@jit(nopython=True)
def lookback_payoff(final, floor):  # type: ignore[no-untyped-def]
    """``max(0, final - floor)``."""
    payoff = final - floor
    return max(payoff, payoff - payoff)


@jit(nopython=True)
def barrier_payoffs(final, strike, sign, breached):  # type: ignore[no-untyped-def]
    """``(knockout, knockin)``; the vanilla payoff goes to exactly one of them."""
    payoff = vanilla_payoff(final, strike, sign)
    zero = payoff - payoff
    if breached:
        return zero, payoff
    return payoff, zero


# ---------------------------------------------------------------------------
# Host summaries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathSummary:
    """Statistics of one path, already scaled by spot."""

    final: float
    average: float
    minimum: float
    breached: bool


def summarize_path(column: np.ndarray, spot: float, barrier: float) -> PathSummary:
    """Summarise one normalised path (a column of the path matrix)."""
    if column.ndim != 1 or column.size == 0:
        raise ValueError(f"expected a non-empty 1-D path, got shape {column.shape}")
    levels = spot * column.astype(np.float64)
    return PathSummary(
        final=float(levels[-1]),
        average=float(levels.mean()),
        minimum=float(levels.min()),
        breached=bool((levels > barrier).any()),
    )


def evaluate_payoff(kind: PayoffKind, summary: PathSummary, spec: OptionSpec) -> float:
    """Undiscounted payoff of *kind* for one summarised path."""
    sign = spec.option_type.sign
    match kind:
        case PayoffKind.plain_vanilla:
            return float(vanilla_payoff(summary.final, spec.strike, sign))
        case PayoffKind.asian:
            return float(vanilla_payoff(summary.average, spec.strike, sign))
        case PayoffKind.lookback:
            return float(lookback_payoff(summary.final, summary.minimum))
        case PayoffKind.knockout:
            return float(barrier_payoffs(summary.final, spec.strike, sign, summary.breached)[0])
        case PayoffKind.knockin:
            return float(barrier_payoffs(summary.final, spec.strike, sign, summary.breached)[1])


def finalize_partial_sums(partials: np.ndarray, num_paths: int, spec: OptionSpec) -> float:
    """Turn per-block sums into a discounted mean payoff."""
    if num_paths < 1:
        raise ValueError(f"num_paths must be positive, got {num_paths}")
    total = float(np.sum(partials, dtype=np.float64))
    return total / num_paths * spec.discount_factor


# ---------------------------------------------------------------------------
# Per-path device functions
# ---------------------------------------------------------------------------
# These run inside the reduction kernels: ``paths`` is the normalised path
# matrix, ``params`` the packed option parameters, ``i`` the path index.


@cuda.jit(device=True)
def plain_vanilla_value(paths, params, i):  # type: ignore[no-untyped-def]
    last = paths.shape[0] - 1
    return vanilla_payoff(params[SPOT] * paths[last, i], params[STRIKE], params[SIGN])


@cuda.jit(device=True)
def asian_value(paths, params, i):  # type: ignore[no-untyped-def]
    total = paths[0, i]
    for t in range(1, paths.shape[0]):
        total += paths[t, i]
    average = params[SPOT] * (total / params[STEPS])
    return vanilla_payoff(average, params[STRIKE], params[SIGN])


@cuda.jit(device=True)
def lookback_value(paths, params, i):  # type: ignore[no-untyped-def]
    low = paths[0, i]
    for t in range(1, paths.shape[0]):
        low = min(low, paths[t, i])
    last = paths.shape[0] - 1
    return lookback_payoff(params[SPOT] * paths[last, i], params[SPOT] * low)


@cuda.jit(device=True)
def barrier_values(paths, params, i):  # type: ignore[no-untyped-def]
    spot = params[SPOT]
    barrier = params[BARRIER]
    breached = False
    for t in range(paths.shape[0]):
        if spot * paths[t, i] > barrier:
            breached = True
    last = paths.shape[0] - 1
    return barrier_payoffs(spot * paths[last, i], params[STRIKE], params[SIGN], breached)


# ---------------------------------------------------------------------------
# Evaluator passes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EvaluatorPass:
    """One reduction launch over the path matrix producing one or two values."""

    name: str
    kinds: tuple[PayoffKind, ...]
    path_function: object
    # shared-memory reduction buffers, one per produced value
    buffers: int = 1

    def kernel(self, threads_per_block: int, precision: Precision) -> Callable[..., None]:
        builder = path_pair_sum_kernel if self.buffers == 2 else path_sum_kernel
        return builder(self.path_function, threads_per_block, precision)

    def shared_memory_bytes(self, threads_per_block: int, precision: Precision) -> int:
        return shared_memory_bytes(threads_per_block, precision, self.buffers)

    def partial_shape(self, blocks: int) -> tuple[int, ...]:
        return (blocks,) if self.buffers == 1 else (self.buffers, blocks)

    def launch(
        self,
        backend: ComputeBackend,
        paths: DeviceBuffer,
        params: DeviceBuffer,
        partial: DeviceBuffer,
        shape: LaunchShape,
        precision: Precision,
    ) -> None:
        """Queue the pass on the backend stream; results are ready after a sync."""
        kernel = self.kernel(shape.threads_per_block, precision)
        logger.debug(
            f"Launching {self.name} pass on {shape.blocks}x{shape.threads_per_block} lanes"
        )
        with device_operation(f"launch {self.name} pass"):
            kernel[shape.blocks, shape.threads_per_block, backend.stream](  # type: ignore[index]
                paths.array, params.array, partial.array
            )

    def split(self, partials: np.ndarray) -> list[tuple[PayoffKind, np.ndarray]]:
        """Pair each produced kind with its row of per-block sums."""
        rows = partials.reshape(self.buffers, -1)
        return list(zip(self.kinds, rows))


EVALUATOR_PASSES: tuple[EvaluatorPass, ...] = (
    EvaluatorPass("plain_vanilla", (PayoffKind.plain_vanilla,), plain_vanilla_value),
    EvaluatorPass("asian", (PayoffKind.asian,), asian_value),
    EvaluatorPass("lookback", (PayoffKind.lookback,), lookback_value),
    EvaluatorPass(
        "barrier", (PayoffKind.knockout, PayoffKind.knockin), barrier_values, buffers=2
    ),
)


__all__ = [
    "EVALUATOR_PASSES",
    "EvaluatorPass",
    "PathSummary",
    "barrier_payoffs",
    "evaluate_payoff",
    "finalize_partial_sums",
    "lookback_payoff",
    "summarize_path",
    "vanilla_payoff",
]
