from typing import Optional, Union

import numpy as np
from numpy.typing import NDArray

from ..custom_types import PRNG


def _as_2d(x: NDArray) -> NDArray:
    """Converts input to a 2-D float array.

    A 1-D array is treated as a single column and reshaped to (n, 1).
    Higher-dimensional arrays are kept unchanged except for dtype casting
    to float. A copy is always returned, so callers may sort or modify the
    result without touching the input.

    Args:
        x (NDArray): Input array of shape (n,), (n, d), or higher.

    Returns:
        NDArray: Float array. If input was 1-D, returns shape (n, 1).
    """
    x = np.array(x, dtype=float, copy=True)
    return x.reshape(-1, 1) if x.ndim == 1 else x


def _clip_unit_interval(x: float) -> float:
    """Clips a scalar to the closed [0, 1] interval.

    NaN is mapped to 0.0, so a comparison against it can never succeed.

    Args:
        x (float): Value to clip.

    Returns:
        float: Clipped value.
    """
    if np.isnan(x):
        return 0.0
    return float(np.clip(x, 0.0, 1.0))


def _to_1d_vector(values: NDArray) -> NDArray[np.floating]:
    """Normalizes input to a 1-D float vector of shape (n,).

    Accepts scalars, 1-D arrays, or 2-D column vectors and converts them
    to a standardized 1-D float array.

    Args:
        values (NDArray): Input values as scalar, (n,), or (n, 1).

    Returns:
        NDArray[np.floating]: Flattened 1-D array.

    Raises:
        ValueError: If the input is not scalar, (n,), or (n, 1).
    """
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 0:
        return arr.reshape(1)
    if arr.ndim == 1:
        return arr
    if arr.ndim == 2 and arr.shape[1] == 1:
        return arr[:, 0]
    raise ValueError("values must be scalar, (n,), or (n,1).")


def _as_rng(rng: Optional[Union[PRNG, int]] = None) -> PRNG:
    """Returns a numpy Generator, seeding a new one from an int or ``None``."""
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)
