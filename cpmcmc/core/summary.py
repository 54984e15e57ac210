"""Posterior summaries of the post-burn-in draws."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from ..custom_types import Array, ArrayLike
from .config import PARAM_NAMES, Params
from .distributions import EmpiricalDistribution
from .mcmc import ChainSnapshot, ChainState, Sample

__all__ = [
    "percentile",
    "TailEvent",
    "DEFAULT_TAIL_EVENTS",
    "PosteriorSummary",
    "posterior_distribution",
    "summarize",
]

MIN_SAMPLES = 2


def percentile(values: ArrayLike, p: float) -> float:
    """p-th percentile of ``values`` by linear interpolation.

    The values are sorted (on a copy) and the fractional rank
    ``p/100 * (n-1)`` is interpolated between its floor and ceiling ranks,
    so ``percentile([1, 2], 50) == 1.5``.

    Args:
        values: One-dimensional data, left untouched.
        p: Percentile in [0, 100].

    Returns:
        float: The interpolated value.

    Raises:
        ValueError: If ``values`` is empty or ``p`` is outside [0, 100].
    """
    arr = np.asarray(values, dtype=float).reshape(-1)
    if arr.size == 0:
        raise ValueError("percentile of an empty sequence is undefined")
    return float(EmpiricalDistribution(arr).percentile(p)[0])


@dataclass(frozen=True)
class TailEvent:
    """A named event on the parameters whose posterior probability is reported.

    Attributes:
        name: Key under which the probability is reported.
        description: Human-readable statement of the event.
        predicate: Maps a ``tau`` array to a boolean array.
    """
    name: str
    description: str
    predicate: Callable[[Array], Array]


DEFAULT_TAIL_EVENTS: Tuple[TailEvent, ...] = (
    TailEvent("afternoon", "change in the afternoon, tau > 12h", lambda tau: tau > 12.0),
    TailEvent("two_to_four", "14h < tau < 16h", lambda tau: (tau > 14.0) & (tau < 16.0)),
)


@dataclass(frozen=True)
class PosteriorSummary:
    """Point estimates, 95% credible intervals and event probabilities.

    Attributes:
        n_samples: Number of draws summarized.
        mean: Posterior mean of each parameter.
        std: Posterior standard deviation of each parameter.
        ci95: Per-parameter ``(lo, hi)`` bounds at the 2.5 and 97.5 percentiles.
        tail_probabilities: Share of draws inside each :class:`TailEvent`.
    """
    n_samples: int
    mean: Params
    std: Params
    ci95: Dict[str, Tuple[float, float]]
    tail_probabilities: Dict[str, float]

    @property
    def probability_afternoon(self) -> float:
        return self.tail_probabilities["afternoon"]

    @property
    def probability_2_to_4(self) -> float:
        return self.tail_probabilities["two_to_four"]


def posterior_distribution(source: Union[ChainState, ChainSnapshot, Sequence[Sample]]) -> Optional[EmpiricalDistribution]:
    """Wraps the post-burn-in draws as an :class:`EmpiricalDistribution`.

    Returns ``None`` when there are no draws.
    """
    samples = _post_burn_in(source)
    if not samples:
        return None
    X = np.array([s.params.as_array() for s in samples])
    return EmpiricalDistribution(X, names=PARAM_NAMES)


def summarize(
    source: Union[ChainState, ChainSnapshot, Sequence[Sample]],
    events: Sequence[TailEvent] = DEFAULT_TAIL_EVENTS,
) -> Optional[PosteriorSummary]:
    """Summarizes the post-burn-in draws of a chain.

    Args:
        source: A chain, a snapshot of one, or its post-burn-in samples.
        events: Events whose probabilities are reported.

    Returns:
        PosteriorSummary or ``None`` when fewer than two draws exist, since
        intervals are undefined below that.
    """
    if len(_post_burn_in(source)) < MIN_SAMPLES:
        return None
    posterior = posterior_distribution(source)

    lo, hi = posterior.credible_interval(0.95)
    ci95 = {name: (float(lo[i]), float(hi[i])) for i, name in enumerate(PARAM_NAMES)}
    tau_index = PARAM_NAMES.index("tau")
    tails = {ev.name: posterior.probability(lambda X, ev=ev: ev.predicate(X[:, tau_index])) for ev in events}

    return PosteriorSummary(
        n_samples=posterior.n,
        mean=Params.from_array(posterior.mean()),
        std=Params.from_array(posterior.std()),
        ci95=ci95,
        tail_probabilities=tails,
    )


def _post_burn_in(source) -> Sequence[Sample]:
    if isinstance(source, (ChainState, ChainSnapshot)):
        return source.accepted_samples
    return source
