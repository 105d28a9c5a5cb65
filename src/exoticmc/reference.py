# src/exoticmc/reference.py
"""
Serial host pricer used to cross-check the device plain vanilla value.

Normals come from a Box-Muller transform of uniforms drawn from a NumPy
``Generator``; the transform yields two variates per pair of uniforms and
keeps the second as a *spare* for the next draw.  The spare belongs to the
:class:`BoxMullerNormals` instance, so two pricers never share it.

The per-path loop is compiled with ``numba.njit``.  Numba shares the
generator's underlying bit generator with NumPy, so draws made inside and
outside compiled code advance the same sequence.
"""

from __future__ import annotations

import math

import numpy as np
from numba import njit

from exoticmc.option import OptionSpec
from exoticmc.payoffs import finalize_partial_sums, vanilla_payoff


@njit
def _box_muller(rng, spare, has_spare):  # type: ignore[no-untyped-def]
    """Return ``(z, spare, has_spare)`` after drawing one standard normal."""
    if has_spare:
        return spare, 0.0, False
    # 1 - U lies in (0, 1], keeping the log finite
    u1 = 1.0 - rng.random()
    u2 = rng.random()
    radius = math.sqrt(-2.0 * math.log(u1))
    angle = 2.0 * math.pi * u2
    return radius * math.cos(angle), radius * math.sin(angle), True


@njit
def _vanilla_payoff_sum(  # type: ignore[no-untyped-def]
    rng, num_paths, num_steps, spot, strike, sign, drift, diffusion, spare, has_spare
):
    total = 0.0
    for _ in range(num_paths):
        s = 1.0
        for _ in range(num_steps):
            z, spare, has_spare = _box_muller(rng, spare, has_spare)
            s *= math.exp(drift + diffusion * z)
        total += vanilla_payoff(spot * s, strike, sign)
    return total, spare, has_spare


class BoxMullerNormals:
    """Standard normals from a seeded NumPy generator, two per uniform pair."""

    def __init__(self, seed: int) -> None:
        self.rng = np.random.default_rng(seed)
        self.spare = 0.0
        self.has_spare = False

    def next(self) -> float:
        """Draw one standard normal."""
        z, self.spare, self.has_spare = _box_muller(self.rng, self.spare, self.has_spare)
        return float(z)


class ReferencePricer:
    """Single-threaded Monte Carlo for the plain vanilla payoff."""

    def __init__(self, seed: int = 0) -> None:
        self.seed = seed
        self.normals = BoxMullerNormals(seed)

    def price_serial(self, spec: OptionSpec, num_paths: int) -> float:
        """Discounted plain vanilla value of *spec* over *num_paths* paths.

        Uses the same drift and diffusion per step as the device kernel
        (``(r - sigma**2/2) dt`` and ``sigma sqrt(dt)``), in float64.
        """
        if num_paths < 1:
            raise ValueError(f"num_paths must be positive, got {num_paths}")
        dt = spec.time_step
        sigma = spec.volatility
        drift = (spec.risk_free_rate - 0.5 * sigma * sigma) * dt
        diffusion = sigma * math.sqrt(dt)

        normals = self.normals
        total, normals.spare, normals.has_spare = _vanilla_payoff_sum(
            normals.rng,
            num_paths,
            spec.num_timesteps,
            spec.spot,
            spec.strike,
            spec.option_type.sign,
            drift,
            diffusion,
            normals.spare,
            normals.has_spare,
        )
        return finalize_partial_sums(np.array([total]), num_paths, spec)


__all__ = ["BoxMullerNormals", "ReferencePricer"]
