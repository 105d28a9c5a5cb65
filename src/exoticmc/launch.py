# src/exoticmc/launch.py
"""Grid sizing for the path and evaluator kernels."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from exoticmc.backend import DeviceProperties
from exoticmc.config import SimulationConfig, ThreadsPerBlock
from exoticmc.errors.device import ConfigurationError


# Resident blocks aimed for per multiprocessor before the grid stops growing
BLOCKS_PER_MULTIPROCESSOR = 10


class LaunchShape(BaseModel):
    """Blocks x threads used by every kernel of one run."""

    blocks: int = Field(..., ge=1)
    threads_per_block: ThreadsPerBlock

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def lanes(self) -> int:
        """Total lanes launched, which is also the random-stream count."""
        return self.blocks * self.threads_per_block

    @classmethod
    def for_device(cls, config: SimulationConfig, properties: DeviceProperties) -> LaunchShape:
        """Pick the grid for *config* on a device with *properties*.

        Without an override the grid starts at one lane per path and is
        halved until it is at most twice ``BLOCKS_PER_MULTIPROCESSOR`` blocks
        per multiprocessor; remaining paths are covered by the grid-stride
        loops.  An explicit ``config.blocks`` is used as given.
        """
        if config.blocks is not None:
            if config.blocks > properties.max_grid_dim_x:
                raise ConfigurationError(
                    "launch",
                    f"{config.blocks} blocks exceed the grid limit of {properties.max_grid_dim_x}",
                )
            return cls(blocks=config.blocks, threads_per_block=config.threads_per_block)

        blocks = -(-config.num_paths // config.threads_per_block)
        limit = 2 * BLOCKS_PER_MULTIPROCESSOR * properties.multiprocessor_count
        while blocks > limit:
            blocks >>= 1
        blocks = max(1, min(blocks, properties.max_grid_dim_x))
        return cls(blocks=blocks, threads_per_block=config.threads_per_block)


__all__ = ["BLOCKS_PER_MULTIPROCESSOR", "LaunchShape"]
