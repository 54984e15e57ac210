
import pytest
import numpy as np
from cpmcmc import DEFAULT_CONFIG, start_run


class FixedDraw:
    """Stands in for a Generator whose uniform draws are all ``u``."""

    def __init__(self, u):
        self.u = u

    def random(self):
        return self.u


@pytest.fixture
def rng():
    return np.random.default_rng(42)

@pytest.fixture
def small_config():
    return DEFAULT_CONFIG.updated(total_samples=50, burn_in_samples=10, observation_count=60)

@pytest.fixture
def state(small_config):
    return start_run(small_config, rng=7)

@pytest.fixture
def always_accept():
    return FixedDraw(-1.0)   # u < p for every p in [0, 1]

@pytest.fixture
def always_reject():
    return FixedDraw(1.0)    # u < p never holds
