import numpy as np
import pytest
from cpmcmc import (
    DEFAULT_TAIL_EVENTS,
    Params,
    Sample,
    TailEvent,
    percentile,
    posterior_distribution,
    step,
    summarize,
)


def _samples(taus, mu1=12.0, mu2=13.0):
    return [Sample(i + 1, Params(float(t), mu1 + 0.1 * i, mu2), -100.0) for i, t in enumerate(taus)]


# ------------------------------ Percentile ------------------------------

def test_percentile_linear_interpolation():
    assert percentile([1, 2, 3, 4, 5], 50) == 3.0
    assert percentile([1, 2], 50) == 1.5
    assert percentile([1, 2, 3, 4, 5], 2.5) == pytest.approx(1.1)


def test_percentile_extremes_and_order_independence():
    values = [5.0, 1.0, 4.0, 2.0, 3.0]
    assert percentile(values, 0) == 1.0
    assert percentile(values, 100) == 5.0
    assert percentile(values, 50) == 3.0
    assert values == [5.0, 1.0, 4.0, 2.0, 3.0]


def test_percentile_rejects_empty_and_out_of_range():
    with pytest.raises(ValueError):
        percentile([], 50)
    with pytest.raises(ValueError):
        percentile([1.0, 2.0], 101)


# ------------------------------- Summary --------------------------------

def test_summary_needs_two_samples():
    assert summarize([]) is None
    assert summarize(_samples([14.0])) is None
    assert posterior_distribution([]) is None
    assert summarize(_samples([14.0, 15.0])) is not None


def test_summary_statistics():
    samples = _samples([11.0, 13.0, 15.0, 15.5, 17.0])
    summary = summarize(samples)

    assert summary.n_samples == 5
    assert summary.mean.tau == pytest.approx(14.3)
    assert summary.mean.mu1 == pytest.approx(12.2)
    assert summary.mean.mu2 == pytest.approx(13.0)
    assert summary.std.mu2 == pytest.approx(0.0)

    lo, hi = summary.ci95["tau"]
    assert lo == pytest.approx(11.2)
    assert hi == pytest.approx(16.85)
    assert set(summary.ci95) == {"tau", "mu1", "mu2"}

    assert summary.probability_afternoon == pytest.approx(0.8)
    assert summary.probability_2_to_4 == pytest.approx(0.4)
    assert summary.tail_probabilities == {"afternoon": pytest.approx(0.8), "two_to_four": pytest.approx(0.4)}


def test_tail_events_are_strict_inequalities():
    summary = summarize(_samples([12.0, 14.0, 16.0, 15.0]))
    assert summary.probability_afternoon == pytest.approx(0.75)
    assert summary.probability_2_to_4 == pytest.approx(0.25)


def test_summary_does_not_mutate_its_input():
    samples = _samples([17.0, 11.0, 15.0])
    before = list(samples)
    summarize(samples)
    assert samples == before


def test_custom_events():
    events = DEFAULT_TAIL_EVENTS + (TailEvent("evening", "tau > 18h", lambda tau: tau > 18.0),)
    summary = summarize(_samples([17.0, 19.0, 20.0, 12.5]), events=events)
    assert summary.tail_probabilities["evening"] == pytest.approx(0.5)
    assert len(summary.tail_probabilities) == 3


def test_summary_of_chain_uses_post_burn_in_draws(state, always_accept):
    for _ in range(10):
        step(state, rng=always_accept)
    assert summarize(state) is None  # only burn-in so far

    for _ in range(6):
        step(state, rng=always_accept)
    summary = summarize(state)
    assert summary.n_samples == 6
    assert summarize(state.snapshot()) == summary

    post = posterior_distribution(state)
    assert post.names == ("tau", "mu1", "mu2")
    np.testing.assert_allclose(post.samples, state.sample_array())
    assert summary.mean.tau == pytest.approx(state.sample_array()[:, 0].mean())
