"""Random-walk proposal kernel."""
from __future__ import annotations

import numpy as np

from ..custom_types import PRNG
from .config import PARAM_NAMES, Params

__all__ = ["RandomWalkProposal"]


class RandomWalkProposal:
    """Independent Gaussian random-walk perturbation of each parameter.

    A candidate is ``current + widths * z`` with ``z ~ N(0, I₃)``. The kernel
    is symmetric, ``q(a -> b) == q(b -> a)``, so the Hastings correction in the
    acceptance ratio is zero (:meth:`log_proposal_ratio`). A non-symmetric
    kernel would need that term added to the log ratio.

    Attributes:
        widths: Proposal standard deviation of each parameter.
    """

    def __init__(self, widths: Params):
        """
        Args:
            widths: Per-parameter random-walk scale, every entry > 0.

        Raises:
            ValueError: If any width is not positive.
        """
        bad = [name for name in PARAM_NAMES if not getattr(widths, name) > 0]
        if bad:
            raise ValueError(f"proposal widths must be > 0; offending: {bad}")
        self.widths = widths
        self._scale = widths.as_array()

    def propose(self, current: Params, rng: PRNG) -> Params:
        """Draws a candidate around ``current``.

        Args:
            current: Present state of the chain.
            rng: Source of randomness, consumed three normal draws per call.

        Returns:
            Params: The candidate.
        """
        step = self._scale * rng.standard_normal(len(PARAM_NAMES))
        return Params.from_array(current.as_array() + step)

    def log_proposal_ratio(self, current: Params, proposed: Params) -> float:
        """``log q(proposed -> current) - log q(current -> proposed)``; always 0."""
        return 0.0

    def __repr__(self):
        return f"RandomWalkProposal(widths={self.widths!r})"
