# src/exoticmc/backend.py
"""
Compute-backend boundary for the pricing engine.

The engine never talks to :mod:`numba.cuda` directly for memory; it goes
through a :class:`ComputeBackend`, which answers three questions:

* what can the device do (:meth:`ComputeBackend.properties`),
* where does a named buffer live (``allocate`` / ``upload`` /
  ``create_streams``), and
* how do results come back (``copy_to_host`` / ``synchronize``).

:class:`NumbaCudaBackend` is the production implementation.  It also runs
unchanged under the Numba CUDA simulator (``NUMBA_ENABLE_CUDASIM=1``), which
has no device attribute query; the simulator reports the fixed
:data:`SIMULATED_DEVICE` properties instead.

Every driver failure is re-raised as :class:`~exoticmc.errors.DeviceError`
(or :class:`~exoticmc.errors.ResourceError` for allocations) with the
original exception chained.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

import numpy as np
from numba import config as numba_config
from numba import cuda
from numba.cuda.cudadrv.driver import CudaAPIError
from numba.cuda.cudadrv.error import CudaSupportError
from numba.cuda.random import create_xoroshiro128p_states
from pydantic import BaseModel, ConfigDict, Field

from exoticmc.errors.device import DeviceError, ResourceError
from exoticmc.models.numerical import Precision


logger = logging.getLogger(__name__)

# float64 arithmetic first appeared with compute capability 1.3
_FLOAT64_MIN_CAPABILITY: tuple[int, int] = (1, 3)

# Two uint64 words per xoroshiro128+ state
STREAM_STATE_BYTES = 16


# ---------------------------------------------------------------------------
# Device description
# ---------------------------------------------------------------------------


class DeviceProperties(BaseModel):
    """Capabilities of the device a run is launched on."""

    name: str
    compute_capability: tuple[int, int]
    multiprocessor_count: int = Field(..., ge=1)
    max_threads_per_block: int = Field(..., ge=1)
    max_shared_memory_per_block: int = Field(..., ge=0)
    max_grid_dim_x: int = Field(..., ge=1)
    # bytes; the simulator reports an unbounded pool
    free_memory: float = Field(..., ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def supports(self, precision: Precision) -> bool:
        """Return ``True`` when kernels in *precision* can run on this device."""
        match precision:
            case Precision.float32:
                return True
            case Precision.float64:
                return self.compute_capability >= _FLOAT64_MIN_CAPABILITY


SIMULATED_DEVICE = DeviceProperties(
    name="SIMULATOR",
    compute_capability=(5, 2),
    multiprocessor_count=1,
    max_threads_per_block=1024,
    max_shared_memory_per_block=48 * 1024,
    max_grid_dim_x=2**31 - 1,
    free_memory=float("inf"),
)


def simulator_enabled() -> bool:
    """``True`` when Numba runs kernels on the CUDA simulator."""
    return bool(numba_config.ENABLE_CUDASIM)


# ---------------------------------------------------------------------------
# Driver error translation
# ---------------------------------------------------------------------------


@contextmanager
def device_operation(operation: str, *, allocation: bool = False) -> Iterator[None]:
    """Translate Numba driver failures inside the block into :class:`DeviceError`.

    Allocations raise :class:`ResourceError` instead, and also treat a host
    ``MemoryError`` (the simulator allocates with NumPy) as exhaustion.
    """
    try:
        yield
    except (CudaAPIError, CudaSupportError) as exc:
        error_cls = ResourceError if allocation else DeviceError
        raise error_cls(operation, str(exc)) from exc
    except MemoryError as exc:
        if not allocation:
            raise
        raise ResourceError(operation, f"out of memory: {exc}") from exc


# ---------------------------------------------------------------------------
# Buffers
# ---------------------------------------------------------------------------


class DeviceBuffer:
    """A named device allocation.

    The wrapped array is only reachable until the owning backend releases
    the buffer; afterwards every access raises :class:`DeviceError`.
    """

    def __init__(self, name: str, array: object, nbytes: int) -> None:
        self.name = name
        self.nbytes = nbytes
        self._array: object | None = array

    @property
    def released(self) -> bool:
        return self._array is None

    @property
    def array(self) -> object:
        """The device array handed to kernel launches."""
        if self._array is None:
            raise DeviceError(f"access {self.name}", "buffer already released")
        return self._array

    def _drop(self) -> None:
        self._array = None

    def __repr__(self) -> str:
        state = "released" if self.released else f"{self.nbytes} bytes"
        return f"DeviceBuffer({self.name!r}, {state})"


class ComputeBackend(Protocol):
    """Device boundary used by the pricing engine."""

    @property
    def stream(self) -> object:
        """Stream every kernel of a run is launched on."""
        ...

    def properties(self) -> DeviceProperties: ...

    def allocate(self, name: str, shape: tuple[int, ...], dtype: np.dtype) -> DeviceBuffer: ...

    def upload(self, name: str, host: np.ndarray) -> DeviceBuffer: ...

    def create_streams(self, name: str, lane_count: int, seed: int) -> DeviceBuffer: ...

    def copy_to_host(self, buffer: DeviceBuffer) -> np.ndarray: ...

    def release(self, buffer: DeviceBuffer) -> None: ...

    def synchronize(self) -> None: ...


@contextmanager
def scoped_buffer(backend: ComputeBackend, buffer: DeviceBuffer) -> Iterator[DeviceBuffer]:
    """Yield *buffer* and release it through *backend* on every exit path."""
    try:
        yield buffer
    finally:
        backend.release(buffer)


# ---------------------------------------------------------------------------
# Numba CUDA implementation
# ---------------------------------------------------------------------------


class NumbaCudaBackend:
    """:class:`ComputeBackend` on top of :mod:`numba.cuda`."""

    def __init__(self, device_id: int = 0) -> None:
        self.device_id = device_id
        with device_operation(f"select device {device_id}"):
            cuda.select_device(device_id)
            self._stream = cuda.stream()

    @property
    def stream(self) -> object:
        return self._stream

    def properties(self) -> DeviceProperties:
        if simulator_enabled():
            return SIMULATED_DEVICE
        with device_operation("query device properties"):
            device = cuda.get_current_device()
            free, _total = cuda.current_context().get_memory_info()
            name = device.name
            return DeviceProperties(
                name=name.decode() if isinstance(name, bytes) else str(name),
                compute_capability=tuple(device.compute_capability),
                multiprocessor_count=device.MULTIPROCESSOR_COUNT,
                max_threads_per_block=device.MAX_THREADS_PER_BLOCK,
                max_shared_memory_per_block=device.MAX_SHARED_MEMORY_PER_BLOCK,
                max_grid_dim_x=device.MAX_GRID_DIM_X,
                free_memory=float(free),
            )

    def allocate(self, name: str, shape: tuple[int, ...], dtype: np.dtype) -> DeviceBuffer:
        with device_operation(f"allocate {name}", allocation=True):
            array = cuda.device_array(shape, dtype=dtype, stream=self._stream)
        buffer = DeviceBuffer(name, array, int(np.prod(shape)) * np.dtype(dtype).itemsize)
        logger.debug(f"Allocated {buffer!r} with shape {shape}")
        return buffer

    def upload(self, name: str, host: np.ndarray) -> DeviceBuffer:
        with device_operation(f"upload {name}", allocation=True):
            array = cuda.to_device(np.ascontiguousarray(host), stream=self._stream)
        buffer = DeviceBuffer(name, array, host.nbytes)
        logger.debug(f"Uploaded {buffer!r}")
        return buffer

    def create_streams(self, name: str, lane_count: int, seed: int) -> DeviceBuffer:
        with device_operation(f"create {name}", allocation=True):
            states = create_xoroshiro128p_states(
                lane_count, seed=seed, subsequence_start=0, stream=self._stream
            )
        buffer = DeviceBuffer(name, states, lane_count * STREAM_STATE_BYTES)
        logger.debug(f"Seeded {lane_count} random streams in {buffer!r} (seed={seed})")
        return buffer

    def copy_to_host(self, buffer: DeviceBuffer) -> np.ndarray:
        array = buffer.array
        with device_operation(f"copy {buffer.name} to host"):
            host = array.copy_to_host(stream=self._stream)  # type: ignore[attr-defined]
            self._stream.synchronize()  # type: ignore[attr-defined]
        logger.debug(f"Copied {buffer.name} to host ({buffer.nbytes} bytes)")
        assert isinstance(host, np.ndarray)
        return host

    def release(self, buffer: DeviceBuffer) -> None:
        if buffer.released:
            return
        # Numba frees device memory once the last reference is gone
        buffer._drop()
        logger.debug(f"Released {buffer.name}")

    def synchronize(self) -> None:
        with device_operation("synchronize"):
            self._stream.synchronize()  # type: ignore[attr-defined]


__all__ = [
    "SIMULATED_DEVICE",
    "STREAM_STATE_BYTES",
    "ComputeBackend",
    "DeviceBuffer",
    "DeviceProperties",
    "NumbaCudaBackend",
    "device_operation",
    "scoped_buffer",
    "simulator_enabled",
]
