"""Likelihood and prior of the two-segment change-point model.

Observations follow ``N(mu1, sigma²)`` strictly before the change time ``tau``
and ``N(mu2, sigma²)`` from ``tau`` onwards: an observation taken exactly at
``tau`` belongs to the post-change segment. The means carry independent
normal priors; ``tau`` has an implicit flat prior over the observation day and
contributes only a constant, which is omitted.

All log densities keep the ``-0.5*log(2π) - log(σ)`` normalizing terms so the
values can be displayed as well as compared.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Tuple

import numpy as np
from scipy.stats import norm

from ..custom_types import Array, ArrayLike
from .config import MuPair, Params
from .distributions import Normal1D

if TYPE_CHECKING:
    from .data import Dataset

__all__ = [
    "segment_means",
    "fitted_signal",
    "log_likelihood",
    "mu_priors",
    "log_prior",
]


def segment_means(params: Params, times: ArrayLike) -> Array:
    """Mean of each observation: ``mu1`` if ``time < tau`` else ``mu2``."""
    t = np.asarray(times, dtype=float)
    return np.where(t < params.tau, params.mu1, params.mu2)


def fitted_signal(params: Params, times: ArrayLike) -> Array:
    """Step-function signal implied by ``params``, evaluated at ``times``.

    Used to overlay the true and posterior-mean signals on the data.
    """
    return segment_means(params, times).astype(float)


def log_likelihood(params: Params, dataset: "Dataset", sigma: float) -> float:
    """Sum of normal log densities of every observation given ``params``.

    Args:
        params: Point at which to evaluate.
        dataset: Observations.
        sigma: Known noise standard deviation.

    Returns:
        float: Log-likelihood, normalizing constants included.
    """
    means = segment_means(params, dataset.times)
    return float(np.sum(norm.logpdf(dataset.values, loc=means, scale=sigma)))


def mu_priors(prior_means: MuPair, prior_stds: MuPair) -> Tuple[Normal1D, Normal1D]:
    """Builds the independent normal priors of ``mu1`` and ``mu2``."""
    return (
        Normal1D(prior_means.mu1, prior_stds.mu1),
        Normal1D(prior_means.mu2, prior_stds.mu2),
    )


def log_prior(params: Params, prior_means: MuPair, prior_stds: MuPair) -> float:
    """Log prior density of the segment means; ``tau`` contributes nothing."""
    return _log_prior(params, mu_priors(prior_means, prior_stds))


def _log_prior(params: Params, priors: Tuple[Normal1D, Normal1D]) -> float:
    prior1, prior2 = priors
    lp1 = prior1.log_density(params.mu1)
    lp2 = prior2.log_density(params.mu2)
    return float(lp1[0, 0] + lp2[0, 0])
