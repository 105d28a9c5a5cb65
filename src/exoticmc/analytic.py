# src/exoticmc/analytic.py
"""Closed-form Black-Scholes prices used as convergence targets."""

from __future__ import annotations

import math

from scipy.stats import norm

from exoticmc.option import OptionSpec


def black_scholes_price(spec: OptionSpec) -> float:
    """European value of *spec* with no dividends; the barrier is ignored.

    With zero volatility the value collapses to the discounted intrinsic
    value of the forward.
    """
    s, k = spec.spot, spec.strike
    r, sigma, t = spec.risk_free_rate, spec.volatility, spec.tenor
    sign = spec.option_type.sign
    discounted_strike = k * math.exp(-r * t)

    if sigma == 0.0:
        return max(0.0, sign * (s - discounted_strike))

    vol_sqrt_t = sigma * math.sqrt(t)
    d1 = (math.log(s / k) + (r + 0.5 * sigma * sigma) * t) / vol_sqrt_t
    d2 = d1 - vol_sqrt_t
    return float(
        sign * s * norm.cdf(sign * d1) - sign * discounted_strike * norm.cdf(sign * d2)
    )


__all__ = ["black_scholes_price"]
