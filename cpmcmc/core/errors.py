"""Exception types raised by the sampler.

Configuration problems and protocol-sequencing mistakes are reported with
distinct types so a presentation layer can tell a bad settings form from a
misplaced button press. Numerical edge cases in the acceptance rule are never
errors and have no type here.
"""
from typing import Iterable

__all__ = [
    "CpmcmcError",
    "ConfigError",
    "ProtocolError",
    "ChainCompleteError",
]


class CpmcmcError(Exception):
    """Base class for every error raised by cpmcmc."""


class ConfigError(CpmcmcError, ValueError):
    """Raised when an :class:`~cpmcmc.core.config.AlgorithmConfig` is invalid.

    Attributes:
        problems: Every validation failure that was found, one message each.
    """

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class ProtocolError(CpmcmcError, RuntimeError):
    """Raised when chain operations are called out of order."""


class ChainCompleteError(ProtocolError):
    """Raised when a step is requested after the sample budget is reached."""
