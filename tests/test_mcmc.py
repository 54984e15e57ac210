import numpy as np
import pytest
from cpmcmc import (
    DEFAULT_CONFIG,
    CancellationToken,
    ChainCompleteError,
    ConfigError,
    Dataset,
    Phase,
    ProtocolError,
    Stage,
    generate_dataset,
    propose_step,
    resolve_step,
    run_auto,
    start_run,
    step,
    summarize,
)


# ------------------------------ start_run ------------------------------

def test_start_run_initial_state(state, small_config):
    assert state.phase is Phase.READY
    assert state.stage is Stage.BURN_IN
    assert state.current_params == small_config.initial_params
    assert state.current_log_posterior == state.posterior(small_config.initial_params)
    assert len(state.data) == 60
    assert state.total_steps == state.accepted_count == 0
    assert state.acceptance_rate == 0.0
    assert state.sample_array().shape == (0, 3)
    assert state.progress().fraction == 0.0


def test_start_run_without_burn_in_starts_sampling():
    st = start_run(DEFAULT_CONFIG.updated(observation_count=20), rng=1)
    assert st.stage is Stage.SAMPLING


def test_start_run_rejects_invalid_config():
    with pytest.raises(ConfigError):
        start_run(DEFAULT_CONFIG.updated(total_samples=0), rng=1)
    with pytest.raises(ValueError):
        start_run(DEFAULT_CONFIG, rng=1, data=Dataset([], []))


def test_start_run_is_reproducible(small_config):
    a = start_run(small_config, rng=11)
    b = start_run(small_config, rng=11)
    assert np.array_equal(a.data.values, b.data.values)
    assert propose_step(a).proposed == propose_step(b).proposed


def test_start_run_with_given_data(small_config, rng):
    data = generate_dataset(small_config.true_params, small_config.known_sigma, 25, rng)
    st = start_run(small_config, rng=3, data=data)
    assert st.data is data


# ---------------------------- Manual stepping ---------------------------

def test_propose_step_shows_pending_proposal(state):
    result = propose_step(state)
    assert state.phase is Phase.PROPOSAL_SHOWN
    assert state.step_result is result
    assert result.current == state.current_params
    assert result.log_posterior_current == state.current_log_posterior
    assert result.log_ratio == pytest.approx(result.log_posterior_proposed - result.log_posterior_current)
    assert 0.0 <= result.acceptance_probability <= 1.0
    # nothing recorded yet
    assert state.total_steps == 0


def test_resolve_before_propose_leaves_state_untouched(state):
    rng_state = state.rng.bit_generator.state
    with pytest.raises(ProtocolError):
        resolve_step(state)
    assert state.rng.bit_generator.state == rng_state
    assert state.phase is Phase.READY
    assert state.total_steps == 0


def test_protocol_errors(state):
    with pytest.raises(ProtocolError):
        propose_step(None)
    with pytest.raises(ProtocolError):
        resolve_step(None)

    propose_step(state)
    with pytest.raises(ProtocolError):
        propose_step(state)  # already pending
    assert state.phase is Phase.PROPOSAL_SHOWN


def test_stale_step_result_is_rejected(state, always_reject):
    old = propose_step(state)
    resolve_step(state, old, rng=always_reject)
    pending = propose_step(state)

    with pytest.raises(ProtocolError):
        resolve_step(state, old)
    assert state.step_result is pending
    assert state.total_steps == 1


def test_accepted_step_moves_the_chain(state, always_accept):
    result = propose_step(state)
    resolve_step(state, result, rng=always_accept)

    assert state.phase is Phase.READY
    assert state.step_result is None
    assert state.last_accepted is True
    assert state.current_params == result.proposed
    assert state.current_log_posterior == result.log_posterior_proposed
    assert state.total_steps == state.accepted_count == 1
    assert [s.params for s in state.burn_in_samples] == [result.proposed]
    assert state.accepted_samples == []


def test_rejected_step_only_counts(state, always_reject):
    start = state.current_params
    propose_step(state)
    resolve_step(state, rng=always_reject)

    assert state.phase is Phase.READY
    assert state.last_accepted is False
    assert state.current_params == start
    assert state.total_steps == 1
    assert state.accepted_count == 0
    assert state.burn_in_samples == [] and state.accepted_samples == []


def test_burn_in_then_sampling(state, always_accept):
    for _ in range(10):
        step(state, rng=always_accept)
    assert state.stage is Stage.SAMPLING
    assert len(state.burn_in_samples) == 10
    assert state.accepted_samples == []

    frozen = list(state.burn_in_samples)
    for _ in range(5):
        step(state, rng=always_accept)
    assert state.burn_in_samples == frozen
    assert len(state.accepted_samples) == 5
    assert [s.step for s in state.accepted_samples] == [11, 12, 13, 14, 15]


def test_chain_completes_at_budget(state, always_accept):
    for _ in range(60):
        step(state, rng=always_accept)
    assert state.phase is Phase.COMPLETE
    assert state.is_complete
    assert len(state.accepted_samples) == 50
    assert state.progress().fraction == 1.0

    with pytest.raises(ChainCompleteError):
        propose_step(state)
    assert len(state.accepted_samples) == 50


def test_counters_stay_consistent(state):
    for _ in range(40):
        step(state)
    assert state.total_steps == 40
    assert 0 <= state.accepted_count <= state.total_steps
    assert len(state.burn_in_samples) + len(state.accepted_samples) == state.accepted_count
    assert 0.0 <= state.acceptance_rate <= 1.0


def test_snapshot_is_detached(state, always_accept):
    step(state, rng=always_accept)
    snap = state.snapshot()
    for _ in range(3):
        step(state, rng=always_accept)
    assert len(snap.burn_in_samples) == 1
    assert snap.total_steps == 1
    assert state.total_steps == 4


def test_snapshot_history_is_a_fixed_prefix(state, always_accept):
    for _ in range(12):
        step(state, rng=always_accept)
    snap = state.snapshot()
    for _ in range(3):
        step(state, rng=always_accept)

    history = snap.accepted_samples
    assert len(history) == 2
    assert history[-1] is state.accepted_samples[1]
    assert history[:] == tuple(state.accepted_samples[:2])
    assert history == state.accepted_samples[:2]
    assert list(history) == state.accepted_samples[:2]
    with pytest.raises(IndexError):
        history[2]
    # later steps only append, so the view shares storage with the chain
    assert history._items is state.accepted_samples


def test_auto_snapshots_do_not_copy_history(state):
    snaps = list(run_auto(state))
    assert all(s.accepted_samples._items is state.accepted_samples for s in snaps)
    assert [len(s.accepted_samples) for s in snaps] == sorted(len(s.accepted_samples) for s in snaps)
    assert len(snaps[-1].accepted_samples) == 50


# ------------------------------- Auto mode -------------------------------

def test_auto_run_reaches_budget_exactly():
    st = start_run(DEFAULT_CONFIG, rng=2024)
    snapshots = 0
    for snap in run_auto(st):
        snapshots += 1
        assert snap.total_steps == snapshots
    assert st.phase is Phase.COMPLETE
    assert len(st.accepted_samples) == 2000
    assert st.burn_in_samples == []
    assert st.total_steps == snapshots >= st.accepted_count == 2000


def test_auto_run_is_lazy_and_validates_eagerly(state):
    with pytest.raises(ProtocolError):
        run_auto(None)

    steps = run_auto(state)
    assert state.phase is Phase.READY  # nothing happens until iterated
    next(steps)
    assert state.phase is Phase.AUTO_RUNNING
    assert state.total_steps == 1

    with pytest.raises(ProtocolError):
        propose_step(state)
    with pytest.raises(ProtocolError):
        run_auto(state)

    steps.close()
    assert state.phase is Phase.READY
    assert state.total_steps == 1


def test_auto_run_cancellation_between_steps(state):
    token = CancellationToken()
    seen = []
    for snap in run_auto(state, token):
        seen.append(snap)
        if len(seen) == 5:
            token.cancel()
    assert len(seen) == 5
    assert state.total_steps == 5
    assert state.phase is Phase.READY

    # manual stepping resumes where auto left off
    propose_step(state)
    assert state.phase is Phase.PROPOSAL_SHOWN


def test_auto_run_resolves_pending_proposal_first(state, always_accept):
    pending = propose_step(state)
    steps = run_auto(state, rng=always_accept)
    snap = next(steps)
    steps.close()

    assert snap.total_steps == 1
    assert state.current_params == pending.proposed
    assert state.step_result is None
    assert state.phase is Phase.READY


def test_auto_run_on_complete_chain_yields_nothing(state, always_accept):
    for _ in range(60):
        step(state, rng=always_accept)
    assert list(run_auto(state)) == []
    assert state.phase is Phase.COMPLETE


def test_posterior_recovers_generating_parameters():
    cfg = DEFAULT_CONFIG.updated(burn_in_samples=300)
    st = start_run(cfg, rng=np.random.default_rng(123))
    for _ in run_auto(st):
        pass

    summary = summarize(st)
    assert summary.n_samples == 2000
    assert abs(summary.mean.tau - 14.5) < 1.0
    assert abs(summary.mean.mu1 - 12.3) < 0.3
    assert abs(summary.mean.mu2 - 13.2) < 0.3
    assert 0.0 < st.acceptance_rate < 1.0
