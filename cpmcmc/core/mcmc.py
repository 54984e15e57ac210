"""Step-by-step Metropolis–Hastings engine for the change-point model.

One step is propose -> evaluate -> resolve -> record. Manual use splits a
step in two: :func:`propose_step` shows the candidate and its acceptance
probability, :func:`resolve_step` flips the coin and records the outcome.
:func:`run_auto` performs whole steps lazily, one snapshot per step, and
leaves scheduling to the caller.

Recording convention: only accepted draws are recorded. A rejected step
increments ``total_steps`` and nothing else; the unchanged state is not
appended again. Mixing is characterized by the acceptance rate instead.

A :class:`ChainState` is owned by its caller and mutated only by the functions
in this module. Observers should read :class:`ChainSnapshot` views taken
between steps; the sample lists are append-only so those views stay valid.
"""
from __future__ import annotations

import logging
from collections import abc
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Union

import numpy as np

from ..custom_types import Array, PRNG
from ._utils import _as_rng
from .config import AlgorithmConfig, Params
from .data import Dataset, generate_dataset
from .errors import ChainCompleteError, ProtocolError
from .posterior import ChangePointPosterior, acceptance_probability
from .proposal import RandomWalkProposal

__all__ = [
    "Phase",
    "Stage",
    "Sample",
    "StepResult",
    "Progress",
    "HistoryView",
    "ChainSnapshot",
    "ChainState",
    "CancellationToken",
    "start_run",
    "propose_step",
    "resolve_step",
    "step",
    "run_auto",
]

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Control state of a run, as seen by the step controls."""
    IDLE = "IDLE"
    READY = "READY"
    PROPOSAL_SHOWN = "PROPOSAL_SHOWN"
    AUTO_RUNNING = "AUTO_RUNNING"
    COMPLETE = "COMPLETE"


class Stage(str, Enum):
    """Whether accepted draws are currently discarded or kept."""
    BURN_IN = "BURN_IN"
    SAMPLING = "SAMPLING"


@dataclass(frozen=True)
class Sample:
    """An accepted draw.

    Attributes:
        step: Value of ``total_steps`` when the draw was accepted.
        params: The accepted parameters.
        log_posterior: Log-posterior at ``params``.
    """
    step: int
    params: Params
    log_posterior: float


@dataclass(frozen=True)
class StepResult:
    """Evaluation of one proposal, pending until it is resolved.

    Attributes:
        current: State the proposal was drawn from.
        proposed: The candidate.
        log_posterior_current: Log-posterior at ``current``.
        log_posterior_proposed: Log-posterior at ``proposed``.
        log_ratio: ``log_posterior_proposed - log_posterior_current``.
        acceptance_probability: ``min(1, exp(log_ratio))``.
    """
    current: Params
    proposed: Params
    log_posterior_current: float
    log_posterior_proposed: float
    log_ratio: float
    acceptance_probability: float


@dataclass(frozen=True)
class Progress:
    burn_in_current: int
    burn_in_total: int
    samples_current: int
    samples_total: int

    @property
    def fraction(self) -> float:
        """Share of the combined burn-in and sample budgets already filled."""
        total = self.burn_in_total + self.samples_total
        return (self.burn_in_current + self.samples_current) / total


class HistoryView(abc.Sequence):
    """Fixed-length prefix of an append-only sample list.

    Later appends to the list are not visible through the view.
    """

    __slots__ = ("_items", "_length")

    def __init__(self, items: List[Sample], length: Optional[int] = None):
        self._items = items
        self._length = len(items) if length is None else length

    def __len__(self) -> int:
        return self._length

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._items[i] for i in range(*index.indices(self._length)))
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError("history index out of range")
        return self._items[index]

    def __eq__(self, other):
        if not isinstance(other, abc.Sequence) or isinstance(other, str):
            return NotImplemented
        return len(self) == len(other) and all(a == b for a, b in zip(self, other))

    def __hash__(self):
        return hash(tuple(self))

    def __repr__(self):
        return f"HistoryView(n={self._length})"


@dataclass(frozen=True)
class ChainSnapshot:
    """Read-only view of a :class:`ChainState` taken between steps.

    The sample histories are :class:`HistoryView` prefixes of the chain's
    append-only lists, so taking a snapshot costs the same at any chain length.
    """
    phase: Phase
    stage: Stage
    current_params: Params
    current_log_posterior: float
    burn_in_samples: Sequence[Sample]
    accepted_samples: Sequence[Sample]
    total_steps: int
    accepted_count: int
    step_result: Optional[StepResult]
    last_accepted: Optional[bool]

    @property
    def acceptance_rate(self) -> float:
        return self.accepted_count / self.total_steps if self.total_steps else 0.0


class CancellationToken:
    """Cooperative stop request for :func:`run_auto`, honoured between steps."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(eq=False, repr=False)
class ChainState:
    """Mutable state of one run.

    Created by :func:`start_run`, mutated only by the step functions of this
    module, and discarded on reset.

    Attributes:
        config: Validated settings of the run; never changes during the run.
        data: Observations the posterior conditions on.
        rng: Source of randomness for proposals and manual coin flips.
        posterior: Log-posterior bound to ``data`` and ``config``.
        proposal: Random-walk kernel built from ``config.proposal_widths``.
        current_params: Current state of the chain.
        current_log_posterior: Log-posterior at ``current_params``.
        burn_in_samples: Accepted draws discarded as burn-in, in chain order; append-only.
        accepted_samples: Accepted post-burn-in draws, in chain order; append-only.
        total_steps: Number of resolved proposals.
        accepted_count: Number of accepted proposals.
        phase: Control state.
        stage: Burn-in or sampling.
        step_result: Proposal awaiting resolution, if any.
        last_accepted: Outcome of the most recent resolution.
    """
    config: AlgorithmConfig
    data: Dataset
    rng: PRNG
    posterior: ChangePointPosterior
    proposal: RandomWalkProposal
    current_params: Params
    current_log_posterior: float
    burn_in_samples: List[Sample] = field(default_factory=list)
    accepted_samples: List[Sample] = field(default_factory=list)
    total_steps: int = 0
    accepted_count: int = 0
    phase: Phase = Phase.READY
    stage: Stage = Stage.SAMPLING
    step_result: Optional[StepResult] = None
    last_accepted: Optional[bool] = None

    @property
    def acceptance_rate(self) -> float:
        """Accepted share of resolved proposals; 0 before the first step."""
        return self.accepted_count / self.total_steps if self.total_steps else 0.0

    @property
    def is_complete(self) -> bool:
        return len(self.accepted_samples) >= self.config.total_samples

    def progress(self) -> Progress:
        return Progress(
            burn_in_current=len(self.burn_in_samples),
            burn_in_total=self.config.burn_in_samples,
            samples_current=len(self.accepted_samples),
            samples_total=self.config.total_samples,
        )

    def sample_array(self) -> Array:
        """Post-burn-in draws as an array of shape (n, 3), columns ``(tau, mu1, mu2)``."""
        if not self.accepted_samples:
            return np.empty((0, 3), dtype=float)
        return np.array([s.params.as_array() for s in self.accepted_samples])

    def snapshot(self) -> ChainSnapshot:
        return ChainSnapshot(
            phase=self.phase,
            stage=self.stage,
            current_params=self.current_params,
            current_log_posterior=self.current_log_posterior,
            burn_in_samples=HistoryView(self.burn_in_samples),
            accepted_samples=HistoryView(self.accepted_samples),
            total_steps=self.total_steps,
            accepted_count=self.accepted_count,
            step_result=self.step_result,
            last_accepted=self.last_accepted,
        )

    def __repr__(self):
        return (
            f"ChainState(phase={self.phase.value}, stage={self.stage.value}, "
            f"steps={self.total_steps}, accepted={self.accepted_count}, "
            f"burn_in={len(self.burn_in_samples)}/{self.config.burn_in_samples}, "
            f"samples={len(self.accepted_samples)}/{self.config.total_samples})"
        )


# ------------------------------ Operations ------------------------------


def start_run(
    config: AlgorithmConfig,
    rng: Optional[Union[PRNG, int]] = None,
    *,
    data: Optional[Dataset] = None,
) -> ChainState:
    """Validates ``config`` and creates a fresh chain at ``config.initial_params``.

    Args:
        config: Settings of the run.
        rng: Generator or integer seed. ``None`` seeds from the OS.
        data: Observations to condition on. When omitted, a synthetic
            dataset is drawn from ``config.true_params``.

    Returns:
        ChainState: A chain in phase ``READY``.

    Raises:
        ConfigError: If the configuration is invalid; no run is started.
    """
    config.validate()
    gen = _as_rng(rng)
    if data is None:
        data = generate_dataset(config.true_params, config.known_sigma, config.observation_count, gen)
    elif len(data) == 0:
        raise ValueError("data must contain at least one observation")

    posterior = ChangePointPosterior.from_config(config, data)
    state = ChainState(
        config=config,
        data=data,
        rng=gen,
        posterior=posterior,
        proposal=RandomWalkProposal(config.proposal_widths),
        current_params=config.initial_params,
        current_log_posterior=posterior(config.initial_params),
        stage=Stage.BURN_IN if config.burn_in_samples > 0 else Stage.SAMPLING,
    )
    logger.info(
        "Started run: %d observations, burn-in %d, samples %d, sigma=%.3g, start=%s",
        len(data), config.burn_in_samples, config.total_samples,
        config.known_sigma, config.initial_params,
    )
    return state


def propose_step(state: Optional[ChainState]) -> StepResult:
    """Draws and evaluates a candidate without deciding on it.

    Returns:
        StepResult: The pending proposal, also stored on ``state``.

    Raises:
        ProtocolError: If there is no run, a proposal is already pending, or
            auto mode is active.
        ChainCompleteError: If the sample budget is already reached.
    """
    _require_manual(state)
    if state.is_complete:
        raise ChainCompleteError(
            f"chain is complete ({len(state.accepted_samples)} samples); start a new run"
        )
    if state.step_result is not None:
        raise ProtocolError("a proposal is already pending; resolve it first")

    result = _propose(state)
    state.step_result = result
    state.phase = Phase.PROPOSAL_SHOWN
    logger.debug(
        "Proposed %s -> %s (log ratio %.4f, p=%.4f)",
        result.current, result.proposed, result.log_ratio, result.acceptance_probability,
    )
    return result


def resolve_step(
    state: Optional[ChainState],
    step_result: Optional[StepResult] = None,
    rng: Optional[PRNG] = None,
) -> ChainState:
    """Accepts or rejects the pending proposal and records the outcome.

    Draws ``u ~ U[0, 1)`` and accepts when ``u < acceptance_probability``.

    Args:
        state: Chain with a pending proposal.
        step_result: The proposal being resolved. When given it must be the
            pending one.
        rng: Generator for the coin flip. Defaults to ``state.rng``.

    Returns:
        ChainState: ``state``, updated in place.

    Raises:
        ProtocolError: If nothing is pending, ``step_result`` is stale, or auto
            mode is active. ``state`` is left unchanged.
    """
    _require_manual(state)
    pending = state.step_result
    if pending is None:
        raise ProtocolError("no pending proposal; call propose_step first")
    if step_result is not None and step_result is not pending:
        raise ProtocolError("step_result is not the pending proposal")

    u = (rng or state.rng).random()
    _record(state, pending, u < pending.acceptance_probability)
    if state.phase is not Phase.COMPLETE:
        state.phase = Phase.READY
    return state


def step(state: Optional[ChainState], rng: Optional[PRNG] = None) -> ChainState:
    """Proposes and resolves in one call."""
    propose_step(state)
    return resolve_step(state, rng=rng)


def run_auto(
    state: Optional[ChainState],
    token: Optional[CancellationToken] = None,
    rng: Optional[PRNG] = None,
) -> Iterator[ChainSnapshot]:
    """Runs whole steps lazily until completion or cancellation.

    Each ``next()`` performs exactly one step and yields a snapshot of the
    state after it. A proposal left pending by manual stepping is resolved
    first. The token is checked before every step, never during one. When
    iteration stops early (cancellation, or the caller closing the
    generator) the chain returns to ``READY`` with all progress kept.

    Args:
        state: Chain to advance.
        token: Optional stop request.
        rng: Generator for the coin flips. Defaults to a generator spawned
            from ``state.rng``.

    Returns:
        Iterator[ChainSnapshot]: Finite, single-use sequence of snapshots.

    Raises:
        ProtocolError: If there is no run or auto mode is already active.
    """
    _require_manual(state)
    coin = rng if rng is not None else state.rng.spawn(1)[0]
    return _auto_steps(state, token, coin)


# ------------------------------- Internals -------------------------------


def _require_manual(state: Optional[ChainState]) -> None:
    if state is None:
        raise ProtocolError("no run in progress; call start_run first")
    if state.phase is Phase.AUTO_RUNNING:
        raise ProtocolError("auto mode is running; stop it before stepping manually")


def _propose(state: ChainState) -> StepResult:
    current = state.current_params
    proposed = state.proposal.propose(current, state.rng)
    lp_current = state.current_log_posterior
    lp_proposed = state.posterior(proposed)
    log_ratio = lp_proposed - lp_current + state.proposal.log_proposal_ratio(current, proposed)
    return StepResult(
        current=current,
        proposed=proposed,
        log_posterior_current=lp_current,
        log_posterior_proposed=lp_proposed,
        log_ratio=log_ratio,
        acceptance_probability=acceptance_probability(log_ratio),
    )


def _record(state: ChainState, result: StepResult, accepted: bool) -> None:
    state.total_steps += 1
    if accepted:
        state.accepted_count += 1
        state.current_params = result.proposed
        state.current_log_posterior = result.log_posterior_proposed
        sample = Sample(state.total_steps, result.proposed, result.log_posterior_proposed)
        if len(state.burn_in_samples) < state.config.burn_in_samples:
            state.burn_in_samples.append(sample)
        else:
            state.accepted_samples.append(sample)
        if state.stage is Stage.BURN_IN and len(state.burn_in_samples) >= state.config.burn_in_samples:
            state.stage = Stage.SAMPLING
            logger.info("Burn-in complete after %d steps", state.total_steps)

    state.step_result = None
    state.last_accepted = accepted
    logger.debug("Step %d %s", state.total_steps, "accepted" if accepted else "rejected")

    if state.is_complete:
        state.phase = Phase.COMPLETE
        logger.info(
            "Chain complete: %d samples in %d steps (acceptance rate %.1f%%)",
            len(state.accepted_samples), state.total_steps, 100.0 * state.acceptance_rate,
        )


def _auto_steps(state: ChainState, token: Optional[CancellationToken], coin: PRNG) -> Iterator[ChainSnapshot]:
    if state.phase is Phase.AUTO_RUNNING:
        raise ProtocolError("auto mode is already running")
    if state.is_complete:
        return

    state.phase = Phase.AUTO_RUNNING
    try:
        while not state.is_complete:
            if token is not None and token.cancelled:
                logger.info("Auto run stopped after %d steps", state.total_steps)
                break
            result = state.step_result or _propose(state)
            _record(state, result, coin.random() < result.acceptance_probability)
            yield state.snapshot()
    finally:
        if state.phase is Phase.AUTO_RUNNING:
            state.phase = Phase.READY if state.step_result is None else Phase.PROPOSAL_SHOWN
