# tests/test_payoffs.py
"""Tests for payoff rules, host summaries and the evaluator passes."""

from __future__ import annotations

import math

import numpy as np
import pytest

from exoticmc.backend import NumbaCudaBackend, scoped_buffer
from exoticmc.launch import LaunchShape
from exoticmc.models.numerical import Precision
from exoticmc.option import OptionType, PayoffKind
from exoticmc.payoffs import (
    EVALUATOR_PASSES,
    PathSummary,
    barrier_payoffs,
    evaluate_payoff,
    finalize_partial_sums,
    lookback_payoff,
    summarize_path,
    vanilla_payoff,
)
from tests.helpers import NO_BARRIER, make_option_spec, simulated_paths


# ──────────────────────────────── rules ─────────────────────────────────────


@pytest.mark.parametrize(
    ("value", "strike", "sign", "expected"),
    [
        (40.0, 35.0, 1.0, 5.0),
        (30.0, 35.0, 1.0, 0.0),
        (30.0, 35.0, -1.0, 5.0),
        (40.0, 35.0, -1.0, 0.0),
        (35.0, 35.0, 1.0, 0.0),
    ],
)
def test_vanilla_payoff(value: float, strike: float, sign: float, expected: float) -> None:
    assert vanilla_payoff(value, strike, sign) == expected


def test_vanilla_payoff_keeps_float32() -> None:
    payoff = vanilla_payoff(np.float32(40.5), np.float32(35.0), np.float32(1.0))
    assert payoff == pytest.approx(5.5)


def test_lookback_payoff() -> None:
    assert lookback_payoff(42.0, 38.5) == 3.5
    assert lookback_payoff(38.0, 38.0) == 0.0


@pytest.mark.parametrize("sign", [1.0, -1.0])
@pytest.mark.parametrize("final", [30.0, 35.0, 41.0])
@pytest.mark.parametrize("breached", [False, True])
def test_barrier_payoffs_partition_vanilla(sign: float, final: float, breached: bool) -> None:
    knockout, knockin = barrier_payoffs(final, 35.0, sign, breached)
    assert knockout + knockin == vanilla_payoff(final, 35.0, sign)
    assert (knockout if breached else knockin) == 0.0


# ─────────────────────────────── summaries ──────────────────────────────────


def test_summarize_path_scales_by_spot() -> None:
    column = np.array([1.0, 1.2, 0.9, 1.1])
    summary = summarize_path(column, spot=40.0, barrier=45.0)
    assert summary.final == pytest.approx(44.0)
    assert summary.average == pytest.approx(42.0)
    assert summary.minimum == pytest.approx(36.0)
    assert summary.breached  # 48 > 45


def test_touching_the_barrier_is_not_a_breach() -> None:
    summary = summarize_path(np.array([1.0, 1.125]), spot=40.0, barrier=45.0)
    assert not summary.breached


def test_infinite_barrier_never_breached() -> None:
    assert not summarize_path(np.array([1e6, 1e9]), spot=40.0, barrier=math.inf).breached


def test_summarize_rejects_empty_path() -> None:
    with pytest.raises(ValueError):
        summarize_path(np.array([]), spot=40.0, barrier=45.0)


def test_evaluate_payoff_maps_every_kind() -> None:
    spec = make_option_spec(strike=35.0)
    summary = PathSummary(final=44.0, average=42.0, minimum=36.0, breached=True)
    assert evaluate_payoff(PayoffKind.plain_vanilla, summary, spec) == pytest.approx(9.0)
    assert evaluate_payoff(PayoffKind.asian, summary, spec) == pytest.approx(7.0)
    assert evaluate_payoff(PayoffKind.lookback, summary, spec) == pytest.approx(8.0)
    assert evaluate_payoff(PayoffKind.knockout, summary, spec) == 0.0
    assert evaluate_payoff(PayoffKind.knockin, summary, spec) == pytest.approx(9.0)


def test_lookback_ignores_option_type() -> None:
    summary = PathSummary(final=44.0, average=42.0, minimum=36.0, breached=False)
    call = evaluate_payoff(PayoffKind.lookback, summary, make_option_spec())
    put = evaluate_payoff(
        PayoffKind.lookback, summary, make_option_spec(option_type=OptionType.put)
    )
    assert call == put == pytest.approx(8.0)


def test_finalize_partial_sums_discounts_the_mean() -> None:
    spec = make_option_spec()
    partials = np.array([10.0, 20.0, 30.0], dtype=np.float32)
    value = finalize_partial_sums(partials, 12, spec)
    assert value == pytest.approx(5.0 * math.exp(-spec.risk_free_rate * spec.tenor))


def test_finalize_rejects_empty_run() -> None:
    with pytest.raises(ValueError):
        finalize_partial_sums(np.zeros(2), 0, make_option_spec())


# ─────────────────────────────── passes ─────────────────────────────────────


def test_pass_table_covers_every_kind_once() -> None:
    produced = [kind for evaluator in EVALUATOR_PASSES for kind in evaluator.kinds]
    assert sorted(produced) == sorted(PayoffKind)
    barrier = next(e for e in EVALUATOR_PASSES if e.name == "barrier")
    assert barrier.partial_shape(5) == (2, 5)
    assert barrier.shared_memory_bytes(128, Precision.float32) == 1024


def _device_values(
    backend: NumbaCudaBackend,
    spec_kwargs: dict[str, object],
    precision: Precision,
    num_paths: int = 256,
) -> tuple[dict[PayoffKind, float], dict[PayoffKind, float]]:
    """Values from every pass and the same values recomputed on the host."""
    spec = make_option_spec(**spec_kwargs)  # type: ignore[arg-type]
    shape = LaunchShape(blocks=4, threads_per_block=32)
    device: dict[PayoffKind, float] = {}
    with simulated_paths(
        backend, spec, num_paths=num_paths, seed=17, shape=shape, precision=precision
    ) as (params, paths):
        matrix = backend.copy_to_host(paths)
        for evaluator in EVALUATOR_PASSES:
            partial = backend.allocate(
                "partials", evaluator.partial_shape(shape.blocks), precision.to_numpy()
            )
            with scoped_buffer(backend, partial):
                evaluator.launch(backend, paths, params, partial, shape, precision)
                backend.synchronize()
                for kind, row in evaluator.split(backend.copy_to_host(partial)):
                    device[kind] = finalize_partial_sums(row, num_paths, spec)

    summaries = [summarize_path(matrix[:, i], spec.spot, spec.barrier) for i in range(num_paths)]
    host = {
        kind: float(np.mean([evaluate_payoff(kind, s, spec) for s in summaries]))
        * spec.discount_factor
        for kind in PayoffKind
    }
    return device, host


@pytest.mark.parametrize(
    ("precision", "rtol"), [(Precision.float32, 1e-4), (Precision.float64, 1e-10)]
)
def test_passes_match_host_evaluation(
    backend: NumbaCudaBackend, precision: Precision, rtol: float
) -> None:
    device, host = _device_values(backend, {"barrier": 44.0}, precision)
    for kind in PayoffKind:
        assert device[kind] == pytest.approx(host[kind], rel=rtol, abs=1e-9), kind
    assert device[PayoffKind.knockout] + device[PayoffKind.knockin] == pytest.approx(
        device[PayoffKind.plain_vanilla], rel=rtol
    )


def test_put_passes_partition_exactly(backend: NumbaCudaBackend) -> None:
    device, host = _device_values(
        backend, {"strike": 42.0, "barrier": 41.0, "option_type": OptionType.put}, Precision.float64
    )
    assert device[PayoffKind.knockout] + device[PayoffKind.knockin] == pytest.approx(
        device[PayoffKind.plain_vanilla], rel=1e-12
    )
    assert device[PayoffKind.knockin] > 0.0
    assert device[PayoffKind.asian] == pytest.approx(host[PayoffKind.asian], rel=1e-10)


def test_unreachable_barrier_knocks_nothing_in(backend: NumbaCudaBackend) -> None:
    device, _host = _device_values(backend, {"barrier": NO_BARRIER}, Precision.float32)
    assert device[PayoffKind.knockin] == 0.0
    assert device[PayoffKind.knockout] == pytest.approx(
        device[PayoffKind.plain_vanilla], rel=1e-6
    )
