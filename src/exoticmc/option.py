# src/exoticmc/option.py
"""
Contract description and valuation record.

`OptionSpec`
    Immutable description of one contract on one underlying.  The number of
    simulation steps is *derived* (``floor(tenor / time_step)``), never
    stored, so a spec can not disagree with itself.
`PayoffKind`
    Closed set of payoff variants priced by a run.
`OptionResult`
    Frozen valuation record.  A run starts from :meth:`OptionResult.zero`
    and each valuation pass produces an updated copy via
    :meth:`OptionResult.with_value`; the caller only ever sees the final
    snapshot.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, cast

from pydantic import BaseModel, ConfigDict, Field, model_validator

from exoticmc.errors.config import InvalidOptionSpec
from exoticmc.models.numerical import Precision
from exoticmc.result import Failure, Result, Success
from exoticmc.validation import validate_model


# ──────────────────────────────── typing helpers ─────────────────────────────
PosFloat = Annotated[float, Field(gt=0)]
NonNegFloat = Annotated[float, Field(ge=0)]


class OptionType(str, Enum):
    """Exercise direction of the vanilla-style payoffs."""

    call = "call"
    put = "put"

    @property
    def sign(self) -> float:
        """``+1`` for calls, ``-1`` for puts; multiplies ``value - strike``."""
        return 1.0 if self is OptionType.call else -1.0


class PayoffKind(str, Enum):
    """Payoff variants produced by one pricing run."""

    plain_vanilla = "plain_vanilla"
    asian = "asian"
    lookback = "lookback"
    knockout = "knockout"
    knockin = "knockin"

    @property
    def result_field(self) -> str:
        """Name of the :class:`OptionResult` field holding this value."""
        return f"value_{self.value}"


# ───────────────────────────────── contract ─────────────────────────────────
class OptionSpec(BaseModel):
    """Parameters of one path-dependent option contract."""

    spot: PosFloat
    strike: PosFloat
    risk_free_rate: float
    volatility: NonNegFloat
    tenor: PosFloat
    time_step: PosFloat
    barrier: PosFloat = math.inf
    option_type: OptionType = OptionType.call

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_steps(self) -> OptionSpec:
        if self.num_timesteps < 1:
            raise ValueError(
                f"tenor {self.tenor} is shorter than one time step of {self.time_step}"
            )
        return self

    @property
    def num_timesteps(self) -> int:
        """Number of simulated steps, ``floor(tenor / time_step)``."""
        return math.floor(self.tenor / self.time_step)

    @property
    def discount_factor(self) -> float:
        """Risk-neutral discount to present value, ``exp(-r * tenor)``."""
        return math.exp(-self.risk_free_rate * self.tenor)


def build_option_spec(
    *,
    spot: float,
    strike: float,
    risk_free_rate: float,
    volatility: float,
    tenor: float,
    time_step: float,
    barrier: float = math.inf,
    option_type: OptionType = OptionType.call,
) -> Result[OptionSpec, InvalidOptionSpec]:
    """Create an :class:`OptionSpec` via pure validation."""
    match validate_model(
        OptionSpec,
        spot=spot,
        strike=strike,
        risk_free_rate=risk_free_rate,
        volatility=volatility,
        tenor=tenor,
        time_step=time_step,
        barrier=barrier,
        option_type=option_type,
    ):
        case Failure(error):
            return Failure(InvalidOptionSpec(error=error))
        case Success(spec):
            return Success(spec)


# ───────────────────────────────── valuation ────────────────────────────────
class OptionResult(BaseModel):
    """Discounted values produced for one :class:`OptionSpec`."""

    spec: OptionSpec
    num_paths: int = Field(0, ge=0)
    precision: Precision = Precision.float32

    value_plain_vanilla: float = 0.0
    value_plain_vanilla_reference: float = 0.0
    value_asian: float = 0.0
    value_knockout: float = 0.0
    value_knockin: float = 0.0
    value_lookback: float = 0.0

    # golden value the caller checks ``value_asian`` against
    expected_value: float | None = None
    tolerance: NonNegFloat | None = None

    elapsed_parallel: NonNegFloat = 0.0
    elapsed_reference: NonNegFloat = 0.0

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def zero(
        cls,
        spec: OptionSpec,
        *,
        num_paths: int = 0,
        precision: Precision = Precision.float32,
        expected_value: float | None = None,
        tolerance: float | None = None,
    ) -> OptionResult:
        """Zero-initialised record for *spec*."""
        return cls(
            spec=spec,
            num_paths=num_paths,
            precision=precision,
            expected_value=expected_value,
            tolerance=tolerance,
        )

    def with_value(self, kind: PayoffKind, value: float) -> OptionResult:
        """Return a copy with the value for *kind* filled in."""
        return self.model_copy(update={kind.result_field: float(value)})

    def value(self, kind: PayoffKind) -> float:
        """Value stored for *kind*."""
        return cast(float, getattr(self, kind.result_field))

    @property
    def value_knock_sum(self) -> float:
        """Knock-out plus knock-in; equals the vanilla value on the same paths."""
        return self.value_knockout + self.value_knockin


__all__ = [
    "OptionResult",
    "OptionSpec",
    "OptionType",
    "PayoffKind",
    "build_option_spec",
]
