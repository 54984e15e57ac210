"""Unnormalized log-posterior and the Metropolis acceptance rule."""
from __future__ import annotations

import math
from typing import TYPE_CHECKING

from ._utils import _clip_unit_interval
from .config import AlgorithmConfig, MuPair, Params
from .model import _log_prior, log_likelihood, mu_priors

if TYPE_CHECKING:
    from .data import Dataset

__all__ = [
    "log_posterior",
    "acceptance_probability",
    "ChangePointPosterior",
]


def log_posterior(
    params: Params,
    dataset: "Dataset",
    prior_means: MuPair,
    prior_stds: MuPair,
    sigma: float,
) -> float:
    """``log_likelihood + log_prior`` at ``params``.

    Pure and deterministic: identical inputs give bit-identical results.
    """
    priors = mu_priors(prior_means, prior_stds)
    return log_likelihood(params, dataset, sigma) + _log_prior(params, priors)


def acceptance_probability(log_ratio: float) -> float:
    """Metropolis acceptance probability ``min(1, exp(log_ratio))``.

    Large positive ratios (including ``+inf``) give 1 without evaluating the
    exponential, large negative ones (including ``-inf``) underflow to 0, and
    NaN gives 0.

    Args:
        log_ratio: ``log p(proposed) - log p(current)``.

    Returns:
        float: Probability in [0, 1].
    """
    if math.isnan(log_ratio):
        return 0.0
    if log_ratio >= 0.0:
        return 1.0
    return _clip_unit_interval(math.exp(log_ratio))


class ChangePointPosterior:
    """Log-posterior of one dataset under one configuration.

    Binds the observations, known sigma and prior settings so the engine can
    evaluate candidates with a single call. Prior densities are built once.
    """

    def __init__(self, dataset: "Dataset", prior_means: MuPair, prior_stds: MuPair, sigma: float):
        self.dataset = dataset
        self.prior_means = prior_means
        self.prior_stds = prior_stds
        self.sigma = float(sigma)
        self._priors = mu_priors(prior_means, prior_stds)

    @classmethod
    def from_config(cls, config: AlgorithmConfig, dataset: "Dataset") -> "ChangePointPosterior":
        return cls(dataset, config.prior_mu_means, config.prior_mu_stds, config.known_sigma)

    def log_likelihood(self, params: Params) -> float:
        return log_likelihood(params, self.dataset, self.sigma)

    def log_prior(self, params: Params) -> float:
        return _log_prior(params, self._priors)

    def __call__(self, params: Params) -> float:
        return self.log_likelihood(params) + self.log_prior(params)
