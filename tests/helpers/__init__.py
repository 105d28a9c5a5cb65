# tests/helpers/__init__.py
"""Shared test utilities for the exoticmc test suite.

Usage:
    >>> from tests.helpers import expect_success, make_option_spec
    >>> from tests.helpers import DEFAULT_NUM_PATHS, RTOL_FLOAT32
    >>>
    >>> spec = make_option_spec(barrier=NO_BARRIER)
    >>> config = make_simulation_config(num_paths=DEFAULT_NUM_PATHS)
"""

from __future__ import annotations

from tests.helpers.constants import (
    DEFAULT_NUM_PATHS,
    DEFAULT_SEED,
    DEFAULT_TENOR,
    DEFAULT_THREADS_PER_BLOCK,
    DEFAULT_TIME_STEP,
    RTOL_FLOAT32,
    RTOL_FLOAT64,
    SCENARIO_BARRIER,
    SCENARIO_GOLDEN_ASIAN,
    SCENARIO_NUM_PATHS,
    SCENARIO_RATE,
    SCENARIO_SPOT,
    SCENARIO_STRIKE,
    SCENARIO_TENOR,
    SCENARIO_TIME_STEP,
    SCENARIO_TIMESTEPS,
    SCENARIO_TOLERANCE,
    SCENARIO_VOLATILITY,
)
from tests.helpers.factories import (
    NO_BARRIER,
    make_option_spec,
    make_scenario_spec,
    make_simulation_config,
)
from tests.helpers.device import simulate, simulated_paths
from tests.helpers.fakes import RecordingBackend
from tests.helpers.result_utils import E, T, expect_failure, expect_success

__all__ = [
    # Result unwrapping
    "expect_success",
    "expect_failure",
    "T",
    "E",
    # Factories
    "make_option_spec",
    "make_scenario_spec",
    "make_simulation_config",
    "NO_BARRIER",
    # Backend doubles and device runs
    "RecordingBackend",
    "simulate",
    "simulated_paths",
    # Simulation constants
    "DEFAULT_NUM_PATHS",
    "DEFAULT_SEED",
    "DEFAULT_TENOR",
    "DEFAULT_THREADS_PER_BLOCK",
    "DEFAULT_TIME_STEP",
    # Reference scenario
    "SCENARIO_SPOT",
    "SCENARIO_STRIKE",
    "SCENARIO_RATE",
    "SCENARIO_VOLATILITY",
    "SCENARIO_TENOR",
    "SCENARIO_TIME_STEP",
    "SCENARIO_BARRIER",
    "SCENARIO_TIMESTEPS",
    "SCENARIO_GOLDEN_ASIAN",
    "SCENARIO_TOLERANCE",
    "SCENARIO_NUM_PATHS",
    # Tolerance constants
    "RTOL_FLOAT32",
    "RTOL_FLOAT64",
]
