"""
`exoticmc.models.numerical`
---------------------------
Single source of truth for the floating formats a pricing run can use.

A run is either entirely single or entirely double precision: the option
parameter buffer, the path matrix, the partial sums and every kernel are
built from the same :class:`Precision`.  The enum therefore exposes
loss-free conversions to the three places a dtype is needed:

* ``Precision.to_numpy()``  -> ``numpy.dtype`` for host/device buffers
* ``Precision.to_numba()``  -> Numba scalar type used inside kernels
* ``Precision.from_numpy()`` -> ``Precision`` (accepts scalar class or dtype)

All look-ups are constant-time dict accesses.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeAlias, Union

import numpy as np
from numba import float32, float64
from numba.core.types import Float


__all__ = ["Precision"]

# --------------------------------------------------------------------------- #
# Typing aliases
# --------------------------------------------------------------------------- #
_NPDTypeRet: TypeAlias = Union[np.dtype[np.float32], np.dtype[np.float64]]
_NPDTypeLike: TypeAlias = Union[
    type[np.float32],
    type[np.float64],
    np.dtype[np.float32],
    np.dtype[np.float64],
]

# --------------------------------------------------------------------------- #
# Mapping tables
# --------------------------------------------------------------------------- #
_PRECISION_NAMES: tuple[str, ...] = ("float32", "float64")

_PRECISION_STR_TO_NP: dict[str, _NPDTypeRet] = {
    name: np.dtype(getattr(np, name)) for name in _PRECISION_NAMES
}

# numpy scalar *or* numpy.dtype -> str
_NP_TO_PRECISION_STR: dict[_NPDTypeLike, str] = {
    obj: name
    for name in _PRECISION_NAMES
    for obj in (getattr(np, name), np.dtype(getattr(np, name)))
}

_PRECISION_STR_TO_NUMBA: dict[str, Float] = {"float32": float32, "float64": float64}

_PRECISION_STR_TO_LABEL: dict[str, str] = {"float32": "single", "float64": "double"}


# --------------------------------------------------------------------------- #
# Enum definition
# --------------------------------------------------------------------------- #
class Precision(str, Enum):
    """Floating formats supported by the pricing kernels."""

    float32 = "float32"
    float64 = "float64"

    def to_numpy(self) -> _NPDTypeRet:
        """Return the corresponding ``numpy.dtype``."""
        return _PRECISION_STR_TO_NP[self.value]

    @classmethod
    def from_numpy(cls, dtype: _NPDTypeLike) -> Precision:
        """Map a NumPy *dtype* or scalar class back to :class:`Precision`."""
        try:
            return cls(_NP_TO_PRECISION_STR[dtype])
        except KeyError as exc:
            raise ValueError(f"Unsupported NumPy dtype: {dtype!r}") from exc

    def to_numba(self) -> Float:
        """Return the Numba scalar type used to build kernels for this format."""
        return _PRECISION_STR_TO_NUMBA[self.value]

    @property
    def itemsize(self) -> int:
        """Bytes per element."""
        return self.to_numpy().itemsize

    @property
    def label(self) -> str:
        """Human label used in reports (``single`` / ``double``)."""
        return _PRECISION_STR_TO_LABEL[self.value]
