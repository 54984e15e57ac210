"""cpmcmc: an inspectable Metropolis–Hastings sampler for a single change-point model."""

__version__ = "0.1.0"

from .core.errors import CpmcmcError, ConfigError, ProtocolError, ChainCompleteError
from .core.config import PARAM_NAMES, Params, MuPair, AlgorithmConfig, DEFAULT_CONFIG, load_config
from .core.distributions import Distribution, Normal1D, EmpiricalDistribution
from .core.model import segment_means, fitted_signal, log_likelihood, log_prior
from .core.data import TIME_DOMAIN, Observation, Dataset, generate_dataset
from .core.proposal import RandomWalkProposal
from .core.posterior import log_posterior, acceptance_probability, ChangePointPosterior
from .core.mcmc import (
    Phase,
    Stage,
    Sample,
    StepResult,
    Progress,
    HistoryView,
    ChainSnapshot,
    ChainState,
    CancellationToken,
    start_run,
    propose_step,
    resolve_step,
    step,
    run_auto,
)
from .core.summary import percentile, TailEvent, DEFAULT_TAIL_EVENTS, PosteriorSummary, posterior_distribution, summarize
from .core.session import StatusMessage, Session
from .core.module import InputSpec, Module
from .core.workflow import PosteriorResult, ChangePointMCMC, changepoint_flow, format_summary
