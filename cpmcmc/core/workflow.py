"""Batch pipeline: synthesize data, run a chain to completion, summarize.

The interactive engine in :mod:`cpmcmc.core.mcmc` is driven one step at a
time. This module wraps a complete run as Prefect work so it can be scheduled,
retried and observed like any other pipeline stage.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from prefect import flow

from .config import DEFAULT_CONFIG, AlgorithmConfig, Params
from .data import Dataset, generate_dataset
from .distributions import EmpiricalDistribution
from .mcmc import run_auto, start_run
from .module import InputSpec, Module
from .summary import PosteriorSummary, posterior_distribution, summarize
from ._utils import _as_rng

__all__ = [
    "PosteriorResult",
    "ChangePointMCMC",
    "changepoint_flow",
    "format_summary",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PosteriorResult:
    """Outcome of one complete chain.

    Attributes:
        summary: Posterior summary, ``None`` if fewer than two draws were kept.
        posterior: Post-burn-in draws, ``None`` if none were kept.
        data: Observations the chain conditioned on.
        total_steps: Proposals evaluated.
        acceptance_rate: Accepted share of proposals.
    """
    summary: Optional[PosteriorSummary]
    posterior: Optional[EmpiricalDistribution]
    data: Dataset
    total_steps: int
    acceptance_rate: float


class ChangePointMCMC(Module):
    """Runs the change-point sampler end to end as Prefect tasks.

    Registered run functions:
        ``generate_data(config, seed)`` -> :class:`Dataset`
        ``calculate_posterior(config, data, seed)`` -> :class:`PosteriorResult`

    Both default ``config`` to the settings given at construction. Sampling
    itself runs in plain Python inside the task; individual steps are not
    tasks.
    """

    def __init__(self, config: AlgorithmConfig = DEFAULT_CONFIG):
        """
        Args:
            config: Settings used when a call does not pass ``config``.
        """
        super().__init__()
        self.set_input(
            config=InputSpec(type=AlgorithmConfig, required=False, default=config),
            seed=None,
        )
        self.run_func(self._generate_data, name="generate_data")
        self.run_func(self._calculate_posterior, name="calculate_posterior")

    def _generate_data(self, config: AlgorithmConfig, seed=None) -> Dataset:
        """Synthesizes a dataset from ``config.true_params``.

        Raises:
            ConfigError: If ``config`` is invalid.
        """
        config.validate()
        return generate_dataset(
            config.true_params, config.known_sigma, config.observation_count, _as_rng(seed)
        )

    def _calculate_posterior(self, config: AlgorithmConfig, data: Optional[Dataset] = None, seed=None) -> PosteriorResult:
        """Runs a chain to its sample budget and summarizes it.

        Args:
            config: Settings of the run.
            data: Observations; synthesized from ``config`` when omitted.
            seed: Seed or generator for the chain.

        Returns:
            PosteriorResult: Summary and draws of the completed chain.
        """
        state = start_run(config, seed, data=data)
        for _ in run_auto(state):
            pass
        return PosteriorResult(
            summary=summarize(state),
            posterior=posterior_distribution(state),
            data=state.data,
            total_steps=state.total_steps,
            acceptance_rate=state.acceptance_rate,
        )


def format_summary(summary: Optional[PosteriorSummary], true_params: Optional[Params] = None) -> str:
    """Plain-text report of a summary, one parameter per line."""
    if summary is None:
        return "not enough samples to summarize"
    lines = [f"posterior from {summary.n_samples} samples"]
    for name, value in summary.mean.to_dict().items():
        lo, hi = summary.ci95[name]
        line = f"  {name:>4}: {value:8.3f}  95% CI [{lo:.2f}, {hi:.2f}]"
        if true_params is not None:
            line += f"  true {getattr(true_params, name):.3f}"
        lines.append(line)
    for name, p in summary.tail_probabilities.items():
        lines.append(f"  P({name}) = {100.0 * p:.1f}%")
    return "\n".join(lines)


@flow(name="changepoint-mcmc", validate_parameters=False)
def changepoint_flow(config: Optional[AlgorithmConfig] = None, seed: Optional[int] = None) -> PosteriorResult:
    """Synthesizes data and samples its posterior with independent random streams."""
    config = config or DEFAULT_CONFIG
    data_seed, chain_seed = np.random.SeedSequence(seed).spawn(2)

    mcmc = ChangePointMCMC(config)
    data = mcmc.generate_data(seed=data_seed)
    result = mcmc.calculate_posterior(data=data, seed=chain_seed)

    logger.info(
        "Finished %d steps (acceptance rate %.1f%%)\n%s",
        result.total_steps, 100.0 * result.acceptance_rate,
        format_summary(result.summary, config.true_params),
    )
    return result
