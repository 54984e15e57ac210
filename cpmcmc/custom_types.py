# custom_types.py
"""
Type definitions and aliases shared across cpmcmc.

We generally follow the conventions:
- Annotate function input with `ArrayLike`
- Annotate function output with `Array`
- Every source of randomness is a `PRNG` (a numpy Generator)
"""
from __future__ import annotations
from typing import TypeAlias
from numpy.random import Generator as NumpyRNG

from numpy.typing import (
    NDArray as NumpyArray,
    ArrayLike as NumpyArrayLike
)

Array = NumpyArray
ArrayLike: TypeAlias = NumpyArrayLike
PRNG: TypeAlias = NumpyRNG
