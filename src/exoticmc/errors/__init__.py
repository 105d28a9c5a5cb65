"""exoticmc error types."""

from exoticmc.errors.config import ConfigError, InvalidOptionSpec, InvalidSimulationConfig
from exoticmc.errors.device import (
    ConfigurationError,
    DeviceError,
    PricingError,
    ResourceError,
    UnsupportedPrecisionError,
)

__all__ = [
    "ConfigError",
    "InvalidOptionSpec",
    "InvalidSimulationConfig",
    "PricingError",
    "DeviceError",
    "ResourceError",
    "UnsupportedPrecisionError",
    "ConfigurationError",
]
