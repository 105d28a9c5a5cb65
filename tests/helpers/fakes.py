# tests/helpers/fakes.py
"""Backend doubles for exercising the engine's failure and cleanup paths."""

from __future__ import annotations

import numpy as np

from exoticmc.backend import ComputeBackend, DeviceBuffer, DeviceProperties, NumbaCudaBackend


class RecordingBackend:
    """Delegating :class:`ComputeBackend` that records buffer lifetimes.

    Parameters
    ----------
    inner
        Backend that does the real work (defaults to :class:`NumbaCudaBackend`).
    properties
        Device properties to report instead of the inner backend's.
    failures
        Maps ``"<method>:<buffer name>"`` (or just ``"<method>"``) to the
        exception raised when that call is made.
    """

    def __init__(
        self,
        inner: ComputeBackend | None = None,
        *,
        properties: DeviceProperties | None = None,
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.inner: ComputeBackend = inner if inner is not None else NumbaCudaBackend()
        self._properties = properties
        self.failures = dict(failures or {})
        self.allocated: list[str] = []
        self.released: list[str] = []
        self.copied: list[str] = []
        self.sync_count = 0

    @property
    def stream(self) -> object:
        return self.inner.stream

    @property
    def live(self) -> list[str]:
        """Names of buffers allocated but not yet released."""
        remaining = list(self.allocated)
        for name in self.released:
            remaining.remove(name)
        return remaining

    def _maybe_fail(self, method: str, name: str = "") -> None:
        for key in (f"{method}:{name}", method):
            if key in self.failures:
                raise self.failures[key]

    def properties(self) -> DeviceProperties:
        self._maybe_fail("properties")
        return self._properties if self._properties is not None else self.inner.properties()

    def allocate(self, name: str, shape: tuple[int, ...], dtype: np.dtype) -> DeviceBuffer:
        self._maybe_fail("allocate", name)
        buffer = self.inner.allocate(name, shape, dtype)
        self.allocated.append(name)
        return buffer

    def upload(self, name: str, host: np.ndarray) -> DeviceBuffer:
        self._maybe_fail("upload", name)
        buffer = self.inner.upload(name, host)
        self.allocated.append(name)
        return buffer

    def create_streams(self, name: str, lane_count: int, seed: int) -> DeviceBuffer:
        self._maybe_fail("create_streams", name)
        buffer = self.inner.create_streams(name, lane_count, seed)
        self.allocated.append(name)
        return buffer

    def copy_to_host(self, buffer: DeviceBuffer) -> np.ndarray:
        self._maybe_fail("copy_to_host", buffer.name)
        self.copied.append(buffer.name)
        return self.inner.copy_to_host(buffer)

    def release(self, buffer: DeviceBuffer) -> None:
        if not buffer.released:
            self.released.append(buffer.name)
        self.inner.release(buffer)

    def synchronize(self) -> None:
        self._maybe_fail("synchronize")
        self.sync_count += 1
        self.inner.synchronize()
