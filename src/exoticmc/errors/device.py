# src/exoticmc/errors/device.py
"""Exception hierarchy for device-side pricing failures.

Every failure here is fatal to the current pricing run.  The orchestrator
releases the buffers it already holds and lets the exception reach the
caller; nothing is retried.
"""

from __future__ import annotations


class PricingError(Exception):
    """Base exception for all pricing-run failures."""

    pass


class DeviceError(PricingError):
    """A compute-backend operation failed."""

    def __init__(self, operation: str, status: str) -> None:
        self.operation = operation
        self.status = status
        super().__init__(f"Device operation '{operation}' failed: {status}")


class ResourceError(DeviceError):
    """A device buffer or random-stream pool could not be allocated."""

    pass


class UnsupportedPrecisionError(PricingError):
    """The target device cannot run kernels in the requested precision."""

    def __init__(self, precision: str, device: str, compute_capability: tuple[int, int]) -> None:
        self.precision = precision
        self.device = device
        self.compute_capability = compute_capability
        major, minor = compute_capability
        super().__init__(
            f"Device {device} (compute capability {major}.{minor}) "
            f"does not support {precision} kernels"
        )


class ConfigurationError(PricingError):
    """A compute pass needs more than the device allows."""

    def __init__(self, pass_name: str, reason: str) -> None:
        self.pass_name = pass_name
        self.reason = reason
        super().__init__(f"Pass '{pass_name}' cannot run on this device: {reason}")
