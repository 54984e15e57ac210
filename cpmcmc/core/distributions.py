from typing import Callable, Optional, Sequence, Tuple
from abc import ABC

import numpy as np
from numpy.typing import NDArray
from scipy.stats import norm

from ._utils import _as_2d, _to_1d_vector

__all__ = [
    "Distribution",
    "Normal1D",
    "EmpiricalDistribution",
]


# -------------------------- Abstract Classes ----------------------------


class Distribution(ABC):
    """
    Abstract base class for probability distributions.

    Subclasses that cannot support a specific operation (e.g., an empirical
    distribution has no density) leave that method unimplemented.
    """

    def sample(self, n_samples: int) -> NDArray:
        """
        Samples data points from the distribution.

        Args:
            n_samples: The number of samples to generate.

        Returns:
            NDArray: An array containing `n_samples` draws from the distribution.

        Raises:
            NotImplementedError: If the subclass does not implement this method.
        """
        raise NotImplementedError("This method may be implemented by subclasses (optional)")

    def density(self, data: NDArray) -> NDArray[np.floating]:
        """
        Computes the probability density p(data) under this distribution.

        Args:
            data: Input array of observations for which to compute densities.

        Returns:
            NDArray[np.floating]: Probability density values for each input point.

        Raises:
            NotImplementedError: If the subclass does not implement this method.
        """
        raise NotImplementedError("This method may be implemented by subclasses (optional)")

    def log_density(self, data: NDArray) -> NDArray[np.floating]:
        """
        Computes the log-probability density log p(data).

        Args:
            data: Input array of observations for which to compute log-densities.

        Returns:
            NDArray[np.floating]: Log-probability values for each input point.

        Raises:
            NotImplementedError: If the subclass does not implement this method.
        """
        raise NotImplementedError("This method may be implemented by subclasses (optional)")


# ------------------------------ Parametric ------------------------------


class Normal1D(Distribution):
    """Univariate Normal distribution N(μ, σ²).

    Used for the priors on the segment means. Log densities are the full
    normalized values ``-0.5*log(2π) - log(σ) - 0.5*((x-μ)/σ)²`` so they can be
    reported, not only compared.

    Shape policy:
        - ``sample(n)`` -> (n, 1)
        - ``density`` / ``log_density`` always return (n, 1)
          even though they are scalar per sample.

    Attributes:
        mu: Mean of the distribution.
        sigma: Standard deviation (must be > 0).
        _rng: Random number generator used for sampling.
    """

    def __init__(self, mu: float, sigma: float, *, rng: Optional[np.random.Generator] = None):
        """Initializes a Normal1D distribution.

        Args:
            mu: Mean of the distribution.
            sigma: Standard deviation (must be > 0).
            rng: Random number generator.
                If ``None``, a default generator is created.

        Raises:
            ValueError: If ``sigma`` is not positive.
        """
        if sigma <= 0:
            raise ValueError("sigma must be > 0")
        self.mu = float(mu)
        self.sigma = float(sigma)
        self._rng = rng or np.random.default_rng()

        self._norm = norm(loc=self.mu, scale=self.sigma)

    def sample(self, n_samples: int) -> NDArray[np.floating]:
        """Draws random samples from the distribution.

        Args:
            n_samples: Number of samples to generate.

        Returns:
            Samples of shape (n_samples, 1).
        """
        xs = self._norm.rvs(size=(int(n_samples), 1), random_state=self._rng)
        return np.asarray(xs, dtype=float)  # (n, 1)

    def density(self, values: NDArray) -> NDArray[np.floating]:
        v = _to_1d_vector(values)
        return np.asarray(self._norm.pdf(v), dtype=float).reshape(-1, 1)

    def log_density(self, values: NDArray) -> NDArray[np.floating]:
        """Evaluates the log of the probability density function.

        Args:
            values: Points at which to evaluate the log-PDF.

        Returns:
            Log-PDF values of shape (n, 1).
        """
        v = _to_1d_vector(values)
        return np.asarray(self._norm.logpdf(v), dtype=float).reshape(-1, 1)

    def __repr__(self):
        return f"Normal1D(mu={self.mu!r}, sigma={self.sigma!r})"


# ------------------------------ Empirical -------------------------------


class EmpiricalDistribution(Distribution):
    """
    Container for equally weighted draws in ℝᵈ.

    Holds the post-burn-in draws of a chain and answers the summary questions
    asked of them: means, spreads, percentiles, credible intervals and the
    probability of events. The stored array is a private float copy, so the
    caller's sequence is never sorted or otherwise modified.

    Attributes:
        n (int): Number of stored samples.
        d (int): Dimensionality of the sample space.
        samples (NDArray): Stored draws of shape (n, d).
        names (tuple[str, ...]): Optional column names, one per dimension.
    """

    def __init__(
        self,
        samples: NDArray,
        names: Optional[Sequence[str]] = None,
        *,
        rng: Optional[np.random.Generator] = None,
    ):
        """Initializes an EmpiricalDistribution from samples.

        Args:
            samples (NDArray): Array of stored draws with shape (n, d) or (n,).
            names (Optional[Sequence[str]]): Column names used by
                :meth:`column`. Must have length ``d`` when given.
            rng (Optional[np.random.Generator]): Generator used for resampling.

        Raises:
            ValueError: If the number of samples is less than one.
            ValueError: If ``names`` does not match the dimensionality.
        """
        X = _as_2d(samples)
        n, d = X.shape
        if n < 1:
            raise ValueError("Empirical requires at least one sample.")
        if names is not None and len(names) != d:
            raise ValueError(f"names must have length {d}; got {len(names)}")

        X.setflags(write=False)
        self._X = X
        self._n = int(n)
        self._d = int(d)
        self._names = tuple(names) if names is not None else None
        self._rng = rng or np.random.default_rng()

    @property
    def n(self) -> int:
        """int: Number of stored samples."""
        return self._n

    @property
    def d(self) -> int:
        """int: Dimensionality of the stored samples."""
        return self._d

    @property
    def samples(self) -> NDArray:
        """NDArray: Read-only view of stored samples with shape (n, d)."""
        return self._X

    @property
    def names(self) -> Optional[Tuple[str, ...]]:
        return self._names

    def column(self, name: str) -> NDArray:
        """Returns the draws of one named dimension, shape (n,)."""
        if self._names is None or name not in self._names:
            raise KeyError(f"unknown column {name!r}; names are {self._names}")
        return self._X[:, self._names.index(name)]

    def mean(self) -> NDArray:
        """Computes the arithmetic mean of the samples.

        Returns:
            NDArray: Mean vector of shape (d,).
        """
        return self._X.mean(axis=0)

    def std(self) -> NDArray:
        """Population standard deviation per dimension, shape (d,)."""
        return self._X.std(axis=0)

    def percentile(self, p: float) -> NDArray:
        """Computes the p-th percentile of every dimension.

        The fractional rank ``p/100 * (n-1)`` of the sorted draws is
        interpolated linearly between its floor and ceiling ranks.

        Args:
            p (float): Percentile in [0, 100].

        Returns:
            NDArray: Percentiles of shape (d,).

        Raises:
            ValueError: If ``p`` is outside [0, 100].
        """
        if not 0.0 <= p <= 100.0:
            raise ValueError(f"percentile must be in [0, 100]; got {p}")
        return np.percentile(self._X, p, axis=0, method="linear")

    def credible_interval(self, mass: float = 0.95) -> Tuple[NDArray, NDArray]:
        """Equal-tailed credible interval holding ``mass`` of the draws.

        Returns:
            Tuple[NDArray, NDArray]: Lower and upper bounds, each of shape (d,).
        """
        if not 0.0 < mass < 1.0:
            raise ValueError(f"mass must be in (0, 1); got {mass}")
        tail = 50.0 * (1.0 - mass)
        return self.percentile(tail), self.percentile(100.0 - tail)

    def probability(self, predicate: Callable[[NDArray], NDArray]) -> float:
        """Fraction of draws satisfying ``predicate``.

        Args:
            predicate: Function mapping the (n, d) sample array to a boolean
                array of shape (n,).

        Returns:
            float: Empirical probability of the event.
        """
        hits = np.asarray(predicate(self._X), dtype=bool).reshape(-1)
        if hits.shape[0] != self._n:
            raise ValueError(f"predicate must return {self._n} values; got {hits.shape[0]}")
        return float(hits.mean())

    def sample(self, n_samples: int, *, replace: bool = True) -> NDArray:
        """Resamples stored draws uniformly.

        Raises:
            ValueError: If ``replace=False`` and ``n_samples > n``.
        """
        n_samples = int(n_samples)
        if not replace and n_samples > self._n:
            raise ValueError("Cannot sample more than n without replacement.")
        idx = self._rng.choice(self._n, size=n_samples, replace=replace)
        return self._X[idx]

    def log_density(self, data: NDArray) -> NDArray:
        raise NotImplementedError("Log density not implemented for EmpiricalDistribution.")
