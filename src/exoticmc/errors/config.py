"""Error ADTs for contract and run-configuration validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import ValidationError


@dataclass(frozen=True)
class InvalidOptionSpec:
    """Option parameters violate domain constraints (Pydantic failure)."""

    error: ValidationError
    kind: Literal["InvalidOptionSpec"] = "InvalidOptionSpec"


@dataclass(frozen=True)
class InvalidSimulationConfig:
    """Run configuration violates domain constraints (Pydantic failure)."""

    error: ValidationError
    kind: Literal["InvalidSimulationConfig"] = "InvalidSimulationConfig"


ConfigError = InvalidOptionSpec | InvalidSimulationConfig
