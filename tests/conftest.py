# tests/conftest.py
"""Global PyTest configuration for the test-suite.

Kernels run on the Numba CUDA simulator unless ``NUMBA_ENABLE_CUDASIM`` is
already set in the environment; the variable has to be in place before
Numba is first imported, which is why it is set at the top of this module.
Run the suite with ``NUMBA_ENABLE_CUDASIM=0`` on a machine with a GPU to
exercise real devices, including the tests marked ``device``.
"""

from __future__ import annotations

import os

os.environ.setdefault("NUMBA_ENABLE_CUDASIM", "1")

import signal
from types import FrameType
from typing import Callable, Generator

import pytest

from exoticmc.backend import NumbaCudaBackend, simulator_enabled

DEFAULT_TEST_TIMEOUT_SECONDS = 120.0


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip ``device`` tests when kernels run on the simulator."""
    if not simulator_enabled():
        return
    skip_device = pytest.mark.skip(reason="needs a physical CUDA device (simulator enabled)")
    for item in items:
        if "device" in item.keywords:
            item.add_marker(skip_device)


def _build_timeout_handler(
    timeout_seconds: float,
) -> Callable[[int, FrameType | None], None]:
    """Create SIGALRM handler that fails the test when timeout is reached."""

    def _handle_timeout(signum: int, frame: FrameType | None) -> None:
        pytest.fail(
            f"Test exceeded {timeout_seconds:.0f}s timeout (includes setup/teardown)",
            pytrace=True,
        )

    return _handle_timeout


def _resolve_timeout_seconds(request: pytest.FixtureRequest) -> float:
    """Return timeout for current test (marker override allowed)."""
    marker = request.node.get_closest_marker("timeout")
    if marker is None:
        return DEFAULT_TEST_TIMEOUT_SECONDS

    raw_value = marker.kwargs.get("seconds", marker.args[0] if marker.args else None)
    if raw_value is None:
        pytest.fail("timeout marker requires seconds argument", pytrace=True)

    seconds = float(raw_value)
    if seconds <= 0:
        pytest.fail("timeout marker must be positive seconds", pytrace=True)

    return seconds


@pytest.fixture(autouse=True)
def per_test_timeout(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Fail any test that runs longer than the default timeout."""
    if not hasattr(signal, "SIGALRM") or not hasattr(signal, "setitimer"):
        yield
        return

    timeout_seconds = _resolve_timeout_seconds(request)
    handler = _build_timeout_handler(timeout_seconds)
    previous_handler = signal.getsignal(signal.SIGALRM)
    signal.signal(signal.SIGALRM, handler)
    signal.setitimer(signal.ITIMER_REAL, timeout_seconds)
    try:
        yield
    finally:
        signal.setitimer(signal.ITIMER_REAL, 0.0)
        signal.signal(signal.SIGALRM, previous_handler)


@pytest.fixture(scope="session")
def backend() -> NumbaCudaBackend:
    """One backend on device 0 shared by the whole session."""
    return NumbaCudaBackend()
