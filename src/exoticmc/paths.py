# src/exoticmc/paths.py
"""
GBM path generation on the device.

The path matrix is stored time-major, ``paths[t, i]``, so consecutive lanes
touch consecutive addresses at every step.  Entries are normalised by spot:
``paths[t, i]`` is the product of the first ``t + 1`` log-normal shocks of
path ``i``.  Evaluators multiply by ``spot`` when they read it.

All option parameters a kernel needs travel in one small device array in
the run precision (see :func:`pack_parameters`); drift and diffusion are
derived on the host in that precision so a float32 run never promotes to
float64 inside a kernel.
"""

from __future__ import annotations

import functools
import logging
import math
from typing import Callable

import numpy as np
from numba import cuda
from numba.cuda.random import xoroshiro128p_normal_float32, xoroshiro128p_normal_float64

from exoticmc.backend import ComputeBackend, DeviceBuffer, device_operation
from exoticmc.launch import LaunchShape
from exoticmc.models.numerical import Precision
from exoticmc.option import OptionSpec


logger = logging.getLogger(__name__)

# ────────────────────────── option-parameter layout ──────────────────────────
SPOT = 0
STRIKE = 1
RATE = 2
VOLATILITY = 3
TENOR = 4
TIME_STEP = 5
BARRIER = 6
SIGN = 7
DRIFT = 8
DIFFUSION = 9
STEPS = 10
NUM_PARAMETERS = 11


def pack_parameters(spec: OptionSpec, precision: Precision) -> np.ndarray:
    """Option parameters as a 1-D array in the run precision.

    ``drift = (r - sigma**2 / 2) * dt`` and ``diffusion = sigma * sqrt(dt)``
    are evaluated in *precision*, matching what the kernels would compute.
    """
    dtype = precision.to_numpy()
    scalar = dtype.type
    r = scalar(spec.risk_free_rate)
    sigma = scalar(spec.volatility)
    dt = scalar(spec.time_step)
    params = np.empty(NUM_PARAMETERS, dtype=dtype)
    params[SPOT] = spec.spot
    params[STRIKE] = spec.strike
    params[RATE] = r
    params[VOLATILITY] = sigma
    params[TENOR] = spec.tenor
    params[TIME_STEP] = dt
    params[BARRIER] = spec.barrier
    params[SIGN] = spec.option_type.sign
    params[DRIFT] = (r - scalar(0.5) * sigma * sigma) * dt
    params[DIFFUSION] = sigma * np.sqrt(dt)
    params[STEPS] = spec.num_timesteps
    return params


def path_matrix_bytes(num_timesteps: int, num_paths: int, precision: Precision) -> int:
    """Device bytes taken by a ``(num_timesteps, num_paths)`` path matrix."""
    return num_timesteps * num_paths * precision.itemsize


# ─────────────────────────────── CUDA path kernel ───────────────────────────
@functools.cache
def path_kernel(precision: Precision) -> Callable[..., None]:
    """Compile-once path kernel for *precision*."""
    real = precision.to_numba()
    normal = (
        xoroshiro128p_normal_float32
        if precision is Precision.float32
        else xoroshiro128p_normal_float64
    )

    @cuda.jit
    def simulate_paths(states, params, paths):  # type: ignore[no-untyped-def]
        """One lane walks paths ``lane, lane + gridsize, ...`` with its own stream."""
        drift = params[DRIFT]
        diffusion = params[DIFFUSION]
        num_steps = paths.shape[0]
        num_paths = paths.shape[1]
        lane = cuda.grid(1)
        for i in range(lane, num_paths, cuda.gridsize(1)):
            s = real(1.0)
            for t in range(num_steps):
                z = normal(states, lane)
                s *= math.exp(drift + diffusion * z)
                paths[t, i] = s

    return simulate_paths  # type: ignore[no-any-return]


def generate_paths(
    backend: ComputeBackend,
    streams: DeviceBuffer,
    params: DeviceBuffer,
    paths: DeviceBuffer,
    shape: LaunchShape,
    precision: Precision,
) -> None:
    """Fill *paths* with normalised GBM paths drawn from *streams*."""
    kernel = path_kernel(precision)
    logger.debug(
        f"Launching path kernel ({precision.value}) on "
        f"{shape.blocks}x{shape.threads_per_block} lanes"
    )
    with device_operation("launch path kernel"):
        kernel[shape.blocks, shape.threads_per_block, backend.stream](  # type: ignore[index]
            streams.array, params.array, paths.array
        )


__all__ = [
    "NUM_PARAMETERS",
    "generate_paths",
    "pack_parameters",
    "path_kernel",
    "path_matrix_bytes",
]
