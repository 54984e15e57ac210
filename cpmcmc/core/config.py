"""Run configuration for the change-point sampler.

A configuration is built once, validated once when a run starts, and is
read-only for the lifetime of that run. Every numeric option of the settings
form maps to one field here; option names from the form (``totalSamples``,
``proposalWidths`` ...) are accepted by :meth:`AlgorithmConfig.from_dict`
alongside their snake_case spellings.
"""
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple, Union

import numpy as np
import yaml

from ..custom_types import Array, ArrayLike
from .errors import ConfigError

__all__ = [
    "PARAM_NAMES",
    "Params",
    "MuPair",
    "AlgorithmConfig",
    "DEFAULT_CONFIG",
    "load_config",
]

PARAM_NAMES: Tuple[str, str, str] = ("tau", "mu1", "mu2")


@dataclass(frozen=True)
class Params:
    """A point in parameter space.

    Attributes:
        tau: Change time, in hours of the observation day.
        mu1: Mean signal level before the change.
        mu2: Mean signal level from the change onwards.
    """
    tau: float
    mu1: float
    mu2: float

    def as_array(self) -> Array:
        """Returns the vector ``(tau, mu1, mu2)`` as a float array of shape (3,)."""
        return np.array([self.tau, self.mu1, self.mu2], dtype=float)

    @classmethod
    def from_array(cls, x: ArrayLike) -> "Params":
        arr = np.asarray(x, dtype=float).reshape(-1)
        if arr.shape != (3,):
            raise ValueError(f"expected 3 values (tau, mu1, mu2); got shape {arr.shape}")
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))

    def to_dict(self) -> Dict[str, float]:
        return {"tau": self.tau, "mu1": self.mu1, "mu2": self.mu2}


@dataclass(frozen=True)
class MuPair:
    """Per-segment values for the two mean parameters (prior means or stds)."""
    mu1: float
    mu2: float

    def to_dict(self) -> Dict[str, float]:
        return {"mu1": self.mu1, "mu2": self.mu2}


# camelCase option name -> (field name, group type or None for scalars)
_OPTIONS: Dict[str, Tuple[str, Any]] = {
    "totalSamples": ("total_samples", None),
    "burnInSamples": ("burn_in_samples", None),
    "observationCount": ("observation_count", None),
    "knownSigma": ("known_sigma", None),
    "trueParams": ("true_params", Params),
    "priorMuMeans": ("prior_mu_means", MuPair),
    "priorMuStds": ("prior_mu_stds", MuPair),
    "initialParams": ("initial_params", Params),
    "proposalWidths": ("proposal_widths", Params),
}
_FIELD_TO_OPTION = {fname: opt for opt, (fname, _) in _OPTIONS.items()}


@dataclass(frozen=True)
class AlgorithmConfig:
    """Immutable settings for one sampler run.

    Attributes:
        total_samples: Post-burn-in sample budget; the chain stops once this
            many draws have been recorded.
        burn_in_samples: Number of accepted draws discarded before sampling.
        observation_count: Size of the synthetic dataset.
        known_sigma: Observation noise standard deviation, assumed known.
        true_params: Parameters used to synthesize the data.
        prior_mu_means: Means of the normal priors on ``mu1`` and ``mu2``.
        prior_mu_stds: Standard deviations of the normal priors.
        initial_params: Starting point of the chain.
        proposal_widths: Random-walk scale for each parameter.
    """
    total_samples: int = 2000
    burn_in_samples: int = 0
    observation_count: int = 300
    known_sigma: float = 0.9
    true_params: Params = field(default_factory=lambda: Params(14.5, 12.3, 13.2))
    prior_mu_means: MuPair = field(default_factory=lambda: MuPair(15.0, 15.0))
    prior_mu_stds: MuPair = field(default_factory=lambda: MuPair(5.0, 5.0))
    initial_params: Params = field(default_factory=lambda: Params(12.0, 10.0, 10.0))
    proposal_widths: Params = field(default_factory=lambda: Params(0.35, 0.07, 0.07))

    def validate(self) -> "AlgorithmConfig":
        """Checks every field and reports all problems at once.

        Returns:
            The configuration itself, so calls can be chained.

        Raises:
            ConfigError: If any field is out of range or not a finite number.
        """
        problems: List[str] = []

        for name in ("total_samples", "burn_in_samples", "observation_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                problems.append(f"{_FIELD_TO_OPTION[name]} must be an integer; got {value!r}")
        if _is_int(self.total_samples) and self.total_samples <= 0:
            problems.append("totalSamples must be > 0")
        if _is_int(self.burn_in_samples) and self.burn_in_samples < 0:
            problems.append("burnInSamples must be >= 0")
        if _is_int(self.observation_count) and self.observation_count <= 0:
            problems.append("observationCount must be > 0")

        for option, value in self._numeric_items():
            if not _is_finite(value):
                problems.append(f"{option} must be a finite number; got {value!r}")

        if _is_finite(self.known_sigma) and self.known_sigma <= 0:
            problems.append("knownSigma must be > 0")
        for name in PARAM_NAMES:
            width = getattr(self.proposal_widths, name)
            if _is_finite(width) and width <= 0:
                problems.append(f"proposalWidths.{name} must be > 0")
        for name in ("mu1", "mu2"):
            std = getattr(self.prior_mu_stds, name)
            if _is_finite(std) and std <= 0:
                problems.append(f"priorMuStds.{name} must be > 0")

        if problems:
            raise ConfigError(problems)
        return self

    def _numeric_items(self):
        yield "knownSigma", self.known_sigma
        for option, (fname, group) in _OPTIONS.items():
            if group is None:
                continue
            value = getattr(self, fname)
            for key, v in value.to_dict().items():
                yield f"{option}.{key}", v

    def updated(self, **changes: Any) -> "AlgorithmConfig":
        """Returns a copy with the given fields replaced.

        Nested groups may be passed as mappings, e.g.
        ``config.updated(proposal_widths={"tau": 0.5})``; keys that are left
        out keep their current values.
        """
        resolved = {}
        for fname, value in changes.items():
            group = _group_for_field(fname)
            if group is not None and isinstance(value, Mapping):
                value = _merge_group(group, getattr(self, fname), value, fname)
            elif group is not None and not isinstance(value, group):
                raise ConfigError([f"{_FIELD_TO_OPTION[fname]} must be a mapping; got {value!r}"])
            resolved[fname] = value
        return replace(self, **resolved)

    @classmethod
    def from_dict(cls, options: Mapping[str, Any], *, base: "AlgorithmConfig | None" = None) -> "AlgorithmConfig":
        """Builds a configuration from a plain mapping.

        Args:
            options: Recognized option names (camelCase or snake_case) mapped
                to numbers, or to mappings for the grouped options.
            base: Configuration supplying values for missing options.
                Defaults to :data:`DEFAULT_CONFIG`.

        Returns:
            A new configuration. It is *not* validated here; validation
            happens when a run starts.

        Raises:
            ConfigError: If an option name is not recognized.
        """
        base = base or DEFAULT_CONFIG
        field_names = {f.name for f in fields(cls)}
        changes: Dict[str, Any] = {}
        unknown = []
        for key, value in options.items():
            if key in _OPTIONS:
                fname = _OPTIONS[key][0]
            elif key in field_names:
                fname = key
            else:
                unknown.append(key)
                continue
            changes[fname] = value
        if unknown:
            raise ConfigError([f"unknown option {k!r}" for k in unknown])
        return base.updated(**changes)

    def to_dict(self) -> Dict[str, Any]:
        """Returns the configuration as a camelCase mapping (inverse of :meth:`from_dict`)."""
        out: Dict[str, Any] = {}
        for option, (fname, group) in _OPTIONS.items():
            value = getattr(self, fname)
            out[option] = value if group is None else value.to_dict()
        return out


DEFAULT_CONFIG = AlgorithmConfig()


def load_config(path: Union[str, Path], *, base: "AlgorithmConfig | None" = None) -> AlgorithmConfig:
    """Reads a YAML (or JSON) settings file.

    Args:
        path: File containing a single mapping of option names.
        base: Configuration supplying values for missing options.

    Returns:
        The configuration described by the file.

    Raises:
        ConfigError: If the document is not a mapping or names unknown options.
    """
    with open(path, "r", encoding="utf-8") as fh:
        document = yaml.safe_load(fh)
    if document is None:
        document = {}
    if not isinstance(document, Mapping):
        raise ConfigError([f"{path}: expected a mapping of options, got {type(document).__name__}"])
    return AlgorithmConfig.from_dict(document, base=base)


def _group_for_field(fname: str):
    for _, (name, group) in _OPTIONS.items():
        if name == fname:
            return group
    return None


def _merge_group(group, current, values: Mapping[str, Any], fname: str):
    allowed = set(current.to_dict())
    unknown = [k for k in values if k not in allowed]
    if unknown:
        raise ConfigError([f"unknown key {k!r} in {_FIELD_TO_OPTION[fname]}" for k in unknown])
    return group(**{**current.to_dict(), **values})


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_finite(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isfinite(value)
