# src/exoticmc/engine.py
"""
Pricing orchestration.

:class:`PricingEngine` owns every device buffer of a run.  One call to
:meth:`PricingEngine.price` does, in order:

1. capability check (precision), launch sizing, per-pass resource checks
   and a total-footprint check against free device memory;
2. allocation of option parameters, path matrix, random streams and one
   partial-sum buffer per evaluator pass, all inside an ``ExitStack``;
3. stream seeding, path generation, then each evaluator pass followed by
   a copy of its partial sums and host finalisation.

Buffers are released on every exit path.  Nothing is retried: the first
failure propagates as a :class:`~exoticmc.errors.PricingError`.

:func:`price_with_reference` adds the serial host estimate of the plain
vanilla value and its timing to the result.
"""

from __future__ import annotations

import logging
import time
from contextlib import ExitStack

from exoticmc.backend import (
    ComputeBackend,
    DeviceBuffer,
    DeviceProperties,
    NumbaCudaBackend,
    scoped_buffer,
)
from exoticmc.config import SimulationConfig
from exoticmc.errors.device import ConfigurationError, ResourceError, UnsupportedPrecisionError
from exoticmc.launch import LaunchShape
from exoticmc.option import OptionResult, OptionSpec
from exoticmc.paths import NUM_PARAMETERS, generate_paths, pack_parameters, path_matrix_bytes
from exoticmc.payoffs import EVALUATOR_PASSES, EvaluatorPass, finalize_partial_sums
from exoticmc.reference import ReferencePricer
from exoticmc.streams import create_stream_pool, stream_pool_bytes


logger = logging.getLogger(__name__)


def run_footprint(spec: OptionSpec, config: SimulationConfig, shape: LaunchShape) -> int:
    """Device bytes held at the peak of one run."""
    itemsize = config.precision.itemsize
    partial_elems = sum(
        len(evaluator.kinds) * shape.blocks for evaluator in EVALUATOR_PASSES
    )
    return (
        NUM_PARAMETERS * itemsize
        + path_matrix_bytes(spec.num_timesteps, config.num_paths, config.precision)
        + stream_pool_bytes(shape.lanes)
        + partial_elems * itemsize
    )


class PricingEngine:
    """Price :class:`OptionSpec` contracts with one :class:`SimulationConfig`.

    Parameters
    ----------
    config
        Run shape, seeds and precision.
    backend
        Device boundary; defaults to :class:`NumbaCudaBackend` on device 0.
    """

    def __init__(self, config: SimulationConfig, backend: ComputeBackend | None = None) -> None:
        self._config = config
        self._backend: ComputeBackend = backend if backend is not None else NumbaCudaBackend()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def backend(self) -> ComputeBackend:
        return self._backend

    # ------------------------------------------------------------------ #
    # Planning
    # ------------------------------------------------------------------ #
    def plan(self, spec: OptionSpec) -> LaunchShape:
        """Validate the run against the device and return its launch shape.

        Raises
        ------
        UnsupportedPrecisionError
            The device cannot run kernels in the configured precision.
        ConfigurationError
            A pass needs more threads or shared memory than a block offers.
        ResourceError
            The run's buffers do not fit in free device memory.
        """
        config = self._config
        properties = self._backend.properties()
        if not properties.supports(config.precision):
            raise UnsupportedPrecisionError(
                config.precision.value, properties.name, properties.compute_capability
            )
        shape = LaunchShape.for_device(config, properties)
        for evaluator in EVALUATOR_PASSES:
            _check_pass(evaluator, shape, config, properties)

        footprint = run_footprint(spec, config, shape)
        if footprint > properties.free_memory:
            raise ResourceError(
                "allocate run buffers",
                f"{footprint} bytes needed, {properties.free_memory:.0f} bytes free",
            )
        logger.info(
            f"Launch shape on {properties.name}: {shape.blocks} blocks x "
            f"{shape.threads_per_block} threads for {config.num_paths} paths, "
            f"{spec.num_timesteps} steps ({config.precision.label} precision, "
            f"{footprint} bytes)"
        )
        return shape

    # ------------------------------------------------------------------ #
    # Pricing
    # ------------------------------------------------------------------ #
    def price(
        self,
        spec: OptionSpec,
        *,
        expected_value: float | None = None,
        tolerance: float | None = None,
    ) -> OptionResult:
        """Run every evaluator pass for *spec* and return the valuation."""
        config = self._config
        backend = self._backend
        precision = config.precision
        dtype = precision.to_numpy()
        shape = self.plan(spec)

        result = OptionResult.zero(
            spec,
            num_paths=config.num_paths,
            precision=precision,
            expected_value=expected_value,
            tolerance=tolerance,
        )
        start = time.perf_counter()
        with ExitStack() as stack:

            def hold(buffer: DeviceBuffer) -> DeviceBuffer:
                return stack.enter_context(scoped_buffer(backend, buffer))

            params = hold(backend.upload("option parameters", pack_parameters(spec, precision)))
            paths = hold(
                backend.allocate(
                    "path matrix", (spec.num_timesteps, config.num_paths), dtype
                )
            )
            streams = hold(create_stream_pool(backend, shape.lanes, config.seed))
            partials = {
                evaluator.name: hold(
                    backend.allocate(
                        f"{evaluator.name} partial sums",
                        evaluator.partial_shape(shape.blocks),
                        dtype,
                    )
                )
                for evaluator in EVALUATOR_PASSES
            }

            logger.info("Running passes: paths, " + ", ".join(partials))
            generate_paths(backend, streams, params, paths, shape, precision)
            backend.synchronize()

            for evaluator in EVALUATOR_PASSES:
                partial = partials[evaluator.name]
                evaluator.launch(backend, paths, params, partial, shape, precision)
                backend.synchronize()
                sums = backend.copy_to_host(partial)
                for kind, row in evaluator.split(sums):
                    result = result.with_value(
                        kind, finalize_partial_sums(row, config.num_paths, spec)
                    )
        elapsed = time.perf_counter() - start

        logger.info(
            f"Priced in {elapsed:.3f}s: vanilla={result.value_plain_vanilla:.6f} "
            f"asian={result.value_asian:.6f} lookback={result.value_lookback:.6f} "
            f"knockout={result.value_knockout:.6f} knockin={result.value_knockin:.6f}"
        )
        return result.model_copy(update={"elapsed_parallel": elapsed})


def _check_pass(
    evaluator: EvaluatorPass,
    shape: LaunchShape,
    config: SimulationConfig,
    properties: DeviceProperties,
) -> None:
    if shape.threads_per_block > properties.max_threads_per_block:
        raise ConfigurationError(
            evaluator.name,
            f"{shape.threads_per_block} threads per block exceed the device limit "
            f"of {properties.max_threads_per_block}",
        )
    needed = evaluator.shared_memory_bytes(shape.threads_per_block, config.precision)
    if needed > properties.max_shared_memory_per_block:
        raise ConfigurationError(
            evaluator.name,
            f"{needed} bytes of shared memory exceed the per-block limit "
            f"of {properties.max_shared_memory_per_block}",
        )


def price_with_reference(
    spec: OptionSpec,
    config: SimulationConfig,
    backend: ComputeBackend | None = None,
    expected_value: float | None = None,
    tolerance: float | None = None,
) -> OptionResult:
    """Price on the device, then cross-check plain vanilla with the serial pricer."""
    result = PricingEngine(config, backend).price(
        spec, expected_value=expected_value, tolerance=tolerance
    )
    start = time.perf_counter()
    reference = ReferencePricer(config.reference_seed).price_serial(spec, config.num_paths)
    elapsed = time.perf_counter() - start
    logger.info(
        f"Reference plain vanilla {reference:.6f} over {config.num_paths} paths "
        f"in {elapsed:.3f}s"
    )
    return result.model_copy(
        update={"value_plain_vanilla_reference": reference, "elapsed_reference": elapsed}
    )


__all__ = ["LaunchShape", "PricingEngine", "price_with_reference", "run_footprint"]
