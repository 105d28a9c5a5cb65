# src/exoticmc/streams.py
"""
Per-lane random streams for the path kernel.

Every launched lane owns one xoroshiro128+ state.  Lane ``i`` starts from
the generator seeded with ``seed`` and jumped forward ``i`` times by
``2**64`` draws, so lanes never overlap and a run is reproducible for a
fixed ``(seed, lane_count)``.  Changing the launch shape changes the
lane count and therefore the numbers drawn for a given path.
"""

from __future__ import annotations

import logging

from exoticmc.backend import STREAM_STATE_BYTES, ComputeBackend, DeviceBuffer


logger = logging.getLogger(__name__)

STREAM_POOL_NAME = "random streams"


def stream_pool_bytes(lane_count: int) -> int:
    """Device bytes taken by a pool of *lane_count* streams."""
    return lane_count * STREAM_STATE_BYTES


def create_stream_pool(backend: ComputeBackend, lane_count: int, seed: int) -> DeviceBuffer:
    """Allocate and seed one stream per lane.

    Raises
    ------
    ValueError
        If *lane_count* is not positive or *seed* is negative.
    exoticmc.errors.ResourceError
        If the device cannot hold the pool.
    """
    if lane_count < 1:
        raise ValueError(f"lane_count must be positive, got {lane_count}")
    if seed < 0:
        raise ValueError(f"seed must be non-negative, got {seed}")
    logger.debug(f"Creating {lane_count} random streams from seed {seed}")
    return backend.create_streams(STREAM_POOL_NAME, lane_count, seed)


__all__ = ["STREAM_POOL_NAME", "create_stream_pool", "stream_pool_bytes"]
