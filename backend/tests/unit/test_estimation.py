import asyncio

import pytest

from queuecast.services.estimation import (
    EstimationEngine,
    EstimationError,
    InsufficientData,
    ModelConfig,
    ModelType,
    combine_signals,
)
from queuecast.services.signals import DemoSignalProvider, LiveObservation, Signals

CONFIG = ModelConfig(model_id="m1", model_type=ModelType.BAYESIAN, accuracy_threshold=0.85)


class _RaisingProvider:
    async def fetch(self, queue_id):
        raise ConnectionError("signal backend unreachable")


class _SlowProvider:
    async def fetch(self, queue_id):
        await asyncio.sleep(1.0)
        return Signals(baseline_wait=10.0)


class _StaticProvider:
    def __init__(self, signals):
        self.signals = signals

    async def fetch(self, queue_id):
        return self.signals


def test_no_signal_is_not_an_estimate():
    assert combine_signals(Signals()) is None
    # crowd level alone does not say how long the wait is
    assert combine_signals(Signals(observations=(LiveObservation(crowd_level="high"),))) is None


def test_baseline_only():
    est = combine_signals(Signals(baseline_wait=20.0))
    assert est.est_wait_time == 20.0
    assert est.entry_probability == pytest.approx(0.82)
    low, high = est.confidence_interval
    assert low == 15.0
    assert high == pytest.approx(26.25, abs=0.06)


def test_live_reports_pull_the_baseline_towards_them():
    baseline = Signals(baseline_wait=20.0)
    one = Signals(baseline_wait=20.0, observations=(LiveObservation(wait_minutes=40.0),))
    many = Signals(
        baseline_wait=20.0,
        observations=tuple(LiveObservation(wait_minutes=40.0) for _ in range(12)),
    )
    w_base = combine_signals(baseline).est_wait_time
    w_one = combine_signals(one).est_wait_time
    w_many = combine_signals(many).est_wait_time
    assert w_base < w_one < w_many < 40.0
    # n / (n + 3) with n = 1
    assert w_one == pytest.approx(25.0)


def test_live_reports_without_baseline():
    signals = Signals(observations=(LiveObservation(wait_minutes=10.0), LiveObservation(wait_minutes=14.0)))
    est = combine_signals(signals)
    assert est.est_wait_time == 12.0


def test_invalid_observations_are_ignored():
    signals = Signals(
        baseline_wait=10.0,
        observations=(
            LiveObservation(wait_minutes=-5.0),
            LiveObservation(wait_minutes=float("nan")),
            LiveObservation(crowd_level="enormous"),
        ),
    )
    assert combine_signals(signals) == combine_signals(Signals(baseline_wait=10.0))


def test_high_crowd_raises_wait_and_lowers_probability():
    calm = combine_signals(Signals(baseline_wait=10.0, observations=(LiveObservation(crowd_level="low"),)))
    busy = combine_signals(Signals(baseline_wait=10.0, observations=(LiveObservation(crowd_level="High"),)))
    assert busy.est_wait_time > calm.est_wait_time
    assert busy.entry_probability < calm.entry_probability


@pytest.mark.parametrize("wait", [0.0, 1.0, 7.0, 30.0, 90.0, 500.0])
def test_bounds_hold_across_waits(wait):
    est = combine_signals(Signals(baseline_wait=wait))
    low, high = est.confidence_interval
    assert 0.0 <= est.entry_probability <= 1.0
    assert 0.0 <= low <= est.est_wait_time <= high


def test_probability_does_not_increase_with_wait():
    probs = [combine_signals(Signals(baseline_wait=w)).entry_probability for w in range(0, 200, 5)]
    assert probs == sorted(probs, reverse=True)


def test_demo_provider_patterns():
    provider = DemoSignalProvider()
    assert asyncio.run(provider.fetch("location:popular_cafe")).baseline_wait == 30.0
    assert asyncio.run(provider.fetch("location:public_library")).baseline_wait == 7.0
    assert asyncio.run(provider.fetch("queue:insufficient_data")).is_empty
    assert asyncio.run(provider.fetch("loc:no-data")).is_empty

    other = asyncio.run(provider.fetch("location:stadium_gate_4")).baseline_wait
    assert 15.0 <= other <= 29.0
    assert asyncio.run(provider.fetch("location:stadium_gate_4")).baseline_wait == other


def test_engine_reports_insufficient_data():
    engine = EstimationEngine(CONFIG, DemoSignalProvider())
    outcome = asyncio.run(engine.estimate("queue:insufficient_data"))
    assert isinstance(outcome, InsufficientData)
    assert outcome.queue_id == "queue:insufficient_data"


def test_engine_wraps_provider_failures():
    engine = EstimationEngine(CONFIG, _RaisingProvider())
    with pytest.raises(EstimationError, match="unreachable"):
        asyncio.run(engine.estimate("location:any"))


def test_engine_timeout_is_an_estimation_failure():
    engine = EstimationEngine(CONFIG, _SlowProvider(), timeout=0.01)
    with pytest.raises(EstimationError, match="timed out"):
        asyncio.run(engine.estimate("location:any"))


def test_engine_wraps_combination_failures():
    engine = EstimationEngine(CONFIG, _StaticProvider(object()))
    with pytest.raises(EstimationError):
        asyncio.run(engine.estimate("location:any"))


def test_demo_provider_no_data_marker_ignores_case():
    provider = DemoSignalProvider()
    assert asyncio.run(provider.fetch("Queue:INSUFFICIENT_Data")).is_empty
    assert asyncio.run(provider.fetch("location:Popular_Cafe")).baseline_wait == 30.0
