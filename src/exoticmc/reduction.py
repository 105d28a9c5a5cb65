# src/exoticmc/reduction.py
"""
Block-level tree reduction and the kernels built on it.

Every reduction kernel follows the same three steps:

1. each lane folds its grid-stride share of the input into one value,
2. the block combines its lanes with :func:`block_reduce_sum`,
3. lane 0 writes one partial sum per block.

Partial sums are only ever combined on the host.  The block size must be
a power of two; a lane with no work contributes ``0``.

Kernel builders are cached per ``(path function, block size, precision)``
so each combination is compiled once per process.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

import numpy as np
from numba import cuda

from exoticmc.backend import ComputeBackend, DeviceBuffer, device_operation, scoped_buffer
from exoticmc.models.numerical import Precision


logger = logging.getLogger(__name__)

Kernel = Callable[..., None]


def shared_memory_bytes(threads_per_block: int, precision: Precision, buffers: int = 1) -> int:
    """Static shared memory a reduction kernel needs per block."""
    return threads_per_block * precision.itemsize * buffers


def _check_power_of_two(threads_per_block: int) -> None:
    if threads_per_block < 1 or threads_per_block & (threads_per_block - 1):
        raise ValueError(f"threads_per_block must be a power of two, got {threads_per_block}")


# ───────────────────────────── device primitive ─────────────────────────────
@cuda.jit(device=True)
def block_reduce_sum(buffer):  # type: ignore[no-untyped-def]
    """Sum ``buffer[0:blockDim.x]`` in shared memory; every lane gets the total."""
    tid = cuda.threadIdx.x
    cuda.syncthreads()
    k = cuda.blockDim.x // 2
    while k > 0:
        if tid < k:
            buffer[tid] += buffer[tid + k]
        cuda.syncthreads()
        k //= 2
    return buffer[0]


# ───────────────────────────── kernel templates ─────────────────────────────
@functools.cache
def array_sum_kernel(threads_per_block: int, precision: Precision) -> Kernel:
    """Per-block sums of a 1-D array."""
    _check_power_of_two(threads_per_block)
    real = precision.to_numba()

    @cuda.jit
    def array_sum(values, partial):  # type: ignore[no-untyped-def]
        buffer = cuda.shared.array(shape=threads_per_block, dtype=real)
        acc = real(0.0)
        for i in range(cuda.grid(1), values.shape[0], cuda.gridsize(1)):
            acc += values[i]
        buffer[cuda.threadIdx.x] = acc
        total = block_reduce_sum(buffer)
        if cuda.threadIdx.x == 0:
            partial[cuda.blockIdx.x] = total

    return array_sum  # type: ignore[no-any-return]


@functools.cache
def path_sum_kernel(path_value: object, threads_per_block: int, precision: Precision) -> Kernel:
    """Per-block sums of ``path_value(paths, params, i)`` over all paths."""
    _check_power_of_two(threads_per_block)
    real = precision.to_numba()

    @cuda.jit
    def path_sum(paths, params, partial):  # type: ignore[no-untyped-def]
        buffer = cuda.shared.array(shape=threads_per_block, dtype=real)
        acc = real(0.0)
        for i in range(cuda.grid(1), paths.shape[1], cuda.gridsize(1)):
            acc += path_value(paths, params, i)
        buffer[cuda.threadIdx.x] = acc
        total = block_reduce_sum(buffer)
        if cuda.threadIdx.x == 0:
            partial[cuda.blockIdx.x] = total

    return path_sum  # type: ignore[no-any-return]


@functools.cache
def path_pair_sum_kernel(
    path_values: object, threads_per_block: int, precision: Precision
) -> Kernel:
    """Per-block sums of two values per path, written to ``partial[0|1, block]``."""
    _check_power_of_two(threads_per_block)
    real = precision.to_numba()

    @cuda.jit
    def path_pair_sum(paths, params, partial):  # type: ignore[no-untyped-def]
        first = cuda.shared.array(shape=threads_per_block, dtype=real)
        second = cuda.shared.array(shape=threads_per_block, dtype=real)
        acc_first = real(0.0)
        acc_second = real(0.0)
        for i in range(cuda.grid(1), paths.shape[1], cuda.gridsize(1)):
            a, b = path_values(paths, params, i)
            acc_first += a
            acc_second += b
        first[cuda.threadIdx.x] = acc_first
        second[cuda.threadIdx.x] = acc_second
        total_first = block_reduce_sum(first)
        total_second = block_reduce_sum(second)
        if cuda.threadIdx.x == 0:
            partial[0, cuda.blockIdx.x] = total_first
            partial[1, cuda.blockIdx.x] = total_second

    return path_pair_sum  # type: ignore[no-any-return]


# ─────────────────────────────── host helper ────────────────────────────────
def reduce_sum(
    backend: ComputeBackend,
    values: DeviceBuffer,
    threads_per_block: int,
    blocks: int,
    precision: Precision,
) -> float:
    """Sum a 1-D device array: block partials on the device, the rest in float64."""
    kernel = array_sum_kernel(threads_per_block, precision)
    partial = backend.allocate("reduction partial sums", (blocks,), precision.to_numpy())
    with scoped_buffer(backend, partial):
        logger.debug(f"Launching array reduction on {blocks}x{threads_per_block} lanes")
        with device_operation("launch array reduction"):
            kernel[blocks, threads_per_block, backend.stream](  # type: ignore[index]
                values.array, partial.array
            )
        backend.synchronize()
        partials = backend.copy_to_host(partial)
    return float(np.sum(partials, dtype=np.float64))


__all__ = [
    "array_sum_kernel",
    "block_reduce_sum",
    "path_pair_sum_kernel",
    "path_sum_kernel",
    "reduce_sum",
    "shared_memory_bytes",
]
