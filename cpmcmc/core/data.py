"""Observations and the synthetic data generator."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

import numpy as np

from ..custom_types import Array, ArrayLike, PRNG
from .config import Params
from .model import segment_means

__all__ = [
    "TIME_DOMAIN",
    "Observation",
    "Dataset",
    "generate_dataset",
]

TIME_DOMAIN: Tuple[float, float] = (0.0, 24.0)


@dataclass(frozen=True)
class Observation:
    time: float
    value: float


class Dataset:
    """Immutable, time-ordered set of observations.

    Stored as two read-only float arrays of equal length so likelihood
    evaluation is vectorized. Indexing and iteration yield
    :class:`Observation` records.
    """

    def __init__(self, times: ArrayLike, values: ArrayLike):
        t = np.array(times, dtype=float, copy=True).reshape(-1)
        v = np.array(values, dtype=float, copy=True).reshape(-1)
        if t.shape != v.shape:
            raise ValueError(f"times and values must have the same length; got {t.shape[0]} and {v.shape[0]}")
        order = np.argsort(t, kind="stable")
        t, v = t[order], v[order]
        t.setflags(write=False)
        v.setflags(write=False)
        self._times = t
        self._values = v

    @classmethod
    def from_arrays(cls, times: ArrayLike, values: ArrayLike) -> "Dataset":
        return cls(times, values)

    @classmethod
    def from_observations(cls, observations: Iterable[Observation]) -> "Dataset":
        obs = list(observations)
        return cls([o.time for o in obs], [o.value for o in obs])

    @property
    def times(self) -> Array:
        return self._times

    @property
    def values(self) -> Array:
        return self._values

    def __len__(self) -> int:
        return int(self._times.shape[0])

    def __getitem__(self, i: int) -> Observation:
        return Observation(float(self._times[i]), float(self._values[i]))

    def __iter__(self) -> Iterator[Observation]:
        for t, v in zip(self._times, self._values):
            yield Observation(float(t), float(v))

    def __repr__(self):
        return f"Dataset(n={len(self)})"


def generate_dataset(true_params: Params, sigma: float, count: int, rng: PRNG) -> Dataset:
    """Synthesizes noisy observations of a signal with one change point.

    Times are drawn uniformly from ``[0, 24)`` and sorted. Each value is drawn
    from ``N(mu1, sigma²)`` when its time is before ``tau`` and from
    ``N(mu2, sigma²)`` otherwise, matching the likelihood's segment rule.

    Args:
        true_params: Parameters of the generating signal.
        sigma: Observation noise standard deviation.
        count: Number of observations.
        rng: Source of randomness; the only state touched.

    Returns:
        Dataset: ``count`` observations in time order.

    Raises:
        ValueError: If ``count`` or ``sigma`` is not positive.
    """
    if count <= 0:
        raise ValueError(f"count must be > 0; got {count}")
    if sigma <= 0:
        raise ValueError(f"sigma must be > 0; got {sigma}")

    lo, hi = TIME_DOMAIN
    times = np.sort(rng.uniform(lo, hi, size=int(count)))
    means = segment_means(true_params, times)
    values = means + sigma * rng.standard_normal(int(count))
    return Dataset(times, values)
