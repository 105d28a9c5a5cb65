"""Shared value types for exoticmc."""

from exoticmc.models.numerical import Precision

__all__ = ["Precision"]
