# src/exoticmc/config.py
"""Run configuration for one pricing run (paths, launch shape, seeds, precision)."""

from __future__ import annotations

from typing import Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from exoticmc.errors.config import InvalidSimulationConfig
from exoticmc.models.numerical import Precision
from exoticmc.result import Failure, Result, Success
from exoticmc.validation import validate_model


# Valid CUDA thread block sizes (must be power of 2, range [32, 1024])
ThreadsPerBlock: TypeAlias = Literal[32, 64, 128, 256, 512, 1024]


class SimulationConfig(BaseModel):
    """Immutable run-time parameters for one pricing run."""

    num_paths: int = Field(..., ge=1)
    threads_per_block: ThreadsPerBlock = 256
    # ``None`` lets the engine size the grid from the device
    blocks: int | None = Field(None, ge=1)
    seed: int = Field(0, ge=0)
    precision: Precision = Precision.float32
    reference_seed: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


def build_simulation_config(
    *,
    num_paths: int,
    threads_per_block: ThreadsPerBlock = 256,
    blocks: int | None = None,
    seed: int = 0,
    precision: Precision = Precision.float32,
    reference_seed: int = 0,
) -> Result[SimulationConfig, InvalidSimulationConfig]:
    """Create a :class:`SimulationConfig` via pure validation."""
    match validate_model(
        SimulationConfig,
        num_paths=num_paths,
        threads_per_block=threads_per_block,
        blocks=blocks,
        seed=seed,
        precision=precision,
        reference_seed=reference_seed,
    ):
        case Failure(error):
            return Failure(InvalidSimulationConfig(error=error))
        case Success(config):
            return Success(config)


__all__ = ["SimulationConfig", "ThreadsPerBlock", "build_simulation_config"]
