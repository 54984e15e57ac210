"""Controller that a presentation layer drives with button-style actions.

A :class:`Session` owns the configuration being edited, the current
:class:`~cpmcmc.core.mcmc.ChainState` (``None`` while idle) and a status line.
Its methods raise on misuse like the engine does; :meth:`Session.dispatch`
wraps them for callers that want failures reported as an inline status
message instead.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generator, Iterator, Optional, Union

from ..custom_types import PRNG
from ._utils import _as_rng
from .config import DEFAULT_CONFIG, AlgorithmConfig
from .errors import CpmcmcError, ProtocolError
from .mcmc import (
    CancellationToken,
    ChainSnapshot,
    ChainState,
    Phase,
    StepResult,
    propose_step,
    resolve_step,
    run_auto,
    start_run,
)
from .summary import PosteriorSummary, summarize

__all__ = ["StatusMessage", "Session"]

logger = logging.getLogger(__name__)

STATUS_KINDS = ("info", "success", "warning", "error")


@dataclass(frozen=True)
class StatusMessage:
    text: str
    kind: str = "info"

    def __post_init__(self):
        if self.kind not in STATUS_KINDS:
            raise ValueError(f"kind must be one of {STATUS_KINDS}; got {self.kind!r}")


class Session:
    """One user's sampler: settings form, chain and status line.

    Args:
        config: Initial settings. Defaults to :data:`DEFAULT_CONFIG`.
        rng: Generator or seed from which every run draws its randomness.
    """

    ACTIONS = ("start_run", "next_step", "accept", "start_auto", "stop_auto", "reset",
               "update_config", "restore_defaults")

    def __init__(self, config: AlgorithmConfig = DEFAULT_CONFIG, rng: Optional[Union[PRNG, int]] = None):
        self._config = config
        self._rng = _as_rng(rng)
        self._state: Optional[ChainState] = None
        self._token: Optional[CancellationToken] = None
        self._auto: Optional[Generator[ChainSnapshot, None, None]] = None
        self.status = StatusMessage("Configure the sampler and start a run.")

    @property
    def config(self) -> AlgorithmConfig:
        return self._config

    @property
    def state(self) -> Optional[ChainState]:
        return self._state

    @property
    def phase(self) -> Phase:
        return Phase.IDLE if self._state is None else self._state.phase

    def snapshot(self) -> Optional[ChainSnapshot]:
        return None if self._state is None else self._state.snapshot()

    # ---- settings ----

    def update_config(self, config: Optional[AlgorithmConfig] = None, **changes: Any) -> AlgorithmConfig:
        """Replaces the settings, or some of their fields, while idle.

        Raises:
            ProtocolError: If a run is in progress.
        """
        self._require_idle("change settings")
        new = config if config is not None else self._config
        if changes:
            new = new.updated(**changes)
        self._config = new
        return new

    def restore_defaults(self) -> AlgorithmConfig:
        return self.update_config(DEFAULT_CONFIG)

    # ---- run control ----

    def start_run(self) -> ChainState:
        """Validates the settings, synthesizes data and starts a chain.

        Raises:
            ProtocolError: If a run is already in progress.
            ConfigError: If the settings are invalid.
        """
        self._require_idle("start a new run")
        self._state = start_run(self._config, self._rng.spawn(1)[0])
        self.status = StatusMessage(
            f"Run started with {len(self._state.data)} observations. Propose a step.", "info"
        )
        return self._state

    def next_step(self) -> StepResult:
        """Shows the next proposal."""
        result = propose_step(self._state)
        self.status = StatusMessage(
            f"Proposal ready: acceptance probability {100.0 * result.acceptance_probability:.1f}%.", "info"
        )
        return result

    def accept(self) -> ChainState:
        """Resolves the pending proposal with a random draw."""
        state = resolve_step(self._state)
        self.status = self._outcome_status(state)
        return state

    def start_auto(self) -> Iterator[ChainSnapshot]:
        """Returns the auto-run iterator; the caller advances it on its own schedule.

        Raises:
            ProtocolError: If there is no run or an auto iterator is still open.
        """
        if self._auto is not None:
            raise ProtocolError("auto mode is already running; stop it first")
        token = CancellationToken()
        steps = run_auto(self._state, token)
        self._token = token
        self._auto = self._tracked(steps, token)
        self.status = StatusMessage("Auto run in progress.", "info")
        return self._auto

    def stop_auto(self) -> None:
        """Stops the auto iterator and hands the chain back to manual stepping.

        The iterator is closed, so the chain is ``READY`` (or
        ``PROPOSAL_SHOWN``) as soon as this returns; progress is kept.

        Raises:
            ProtocolError: If auto mode is not running.
        """
        if self._auto is None:
            raise ProtocolError("auto mode is not running")
        self._close_auto()
        self.status = StatusMessage("Auto run stopped. Step manually or resume.", "warning")

    def summary(self) -> Optional[PosteriorSummary]:
        return None if self._state is None else summarize(self._state)

    def reset(self) -> None:
        """Discards the chain and returns to IDLE. Safe to call repeatedly."""
        if self._auto is not None:
            self._close_auto()
        if self._state is not None:
            logger.info("Session reset after %d steps", self._state.total_steps)
        self._state = None
        self.status = StatusMessage("Configure the sampler and start a run.")

    def dispatch(self, action: str, *args: Any, **kwargs: Any) -> Any:
        """Invokes ``action`` by name, reporting failures in :attr:`status`.

        Returns:
            The action's result, or ``None`` if it failed.

        Raises:
            ValueError: If ``action`` is not a known action name.
        """
        if action not in self.ACTIONS:
            raise ValueError(f"unknown action {action!r}; expected one of {self.ACTIONS}")
        try:
            return getattr(self, action)(*args, **kwargs)
        except CpmcmcError as exc:
            logger.warning("Action %r failed: %s", action, exc)
            self.status = StatusMessage(str(exc), "error")
            return None

    # ---- helpers ----

    def _require_idle(self, what: str) -> None:
        if self._state is not None:
            raise ProtocolError(f"cannot {what} while a run is in progress; reset first")

    def _close_auto(self) -> None:
        auto, token = self._auto, self._token
        self._auto = self._token = None
        token.cancel()
        auto.close()

    def _tracked(self, steps: Iterator[ChainSnapshot], token: CancellationToken) -> Iterator[ChainSnapshot]:
        try:
            yield from steps
        finally:
            if self._token is token:
                self._token = None
                self._auto = None
            if self._state is not None and self._state.is_complete:
                self.status = self._outcome_status(self._state)

    @staticmethod
    def _outcome_status(state: ChainState) -> StatusMessage:
        if state.is_complete:
            return StatusMessage(
                f"Sampling complete: {len(state.accepted_samples)} samples, "
                f"acceptance rate {100.0 * state.acceptance_rate:.1f}%.",
                "success",
            )
        if state.last_accepted:
            return StatusMessage("Proposal accepted.", "success")
        return StatusMessage("Proposal rejected; the chain stays put.", "warning")
