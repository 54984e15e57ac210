"""
Example: Change-Point Inference with the Step-by-Step Sampler
-------------------------------------------------------------

Synthesizes a day of noisy readings whose mean jumps at an unknown hour,
then infers the change time and both segment means with cpmcmc.

Model:
    y_i ~ Normal(mu1, 0.9^2)   if t_i < tau
    y_i ~ Normal(mu2, 0.9^2)   otherwise
    mu1, mu2 ~ Normal(15, 5^2)

Three ways of driving the chain are shown: single manual steps, a
cancellable auto run, and the Prefect flow that runs everything end to end.
"""

import logging

from cpmcmc import (
    DEFAULT_CONFIG,
    CancellationToken,
    Session,
    changepoint_flow,
    format_summary,
    propose_step,
    resolve_step,
    run_auto,
    start_run,
    summarize,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

config = DEFAULT_CONFIG.updated(burn_in_samples=300)

# Manual stepping: look at each proposal before deciding it
state = start_run(config, rng=2024)
for _ in range(5):
    result = propose_step(state)
    print(f"{result.current} -> {result.proposed}: p(accept) = {result.acceptance_probability:.3f}")
    resolve_step(state, result)
print(state)

# Auto run with a stop request after 1000 steps, then resume to completion
token = CancellationToken()
for snap in run_auto(state, token):
    if snap.total_steps >= 1000:
        token.cancel()
print("paused:", state, "progress", f"{100 * state.progress().fraction:.0f}%")

for _ in run_auto(state):
    pass
print(format_summary(summarize(state), config.true_params))

# The same run through the session controller
session = Session(config, rng=7)
session.start_run()
for _ in session.start_auto():
    pass
print(session.status.text)

# End to end as a Prefect flow
result = changepoint_flow(config, seed=11)
print("Flow acceptance rate:", f"{100 * result.acceptance_rate:.1f}%")
