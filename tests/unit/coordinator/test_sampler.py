"""
Unit tests for LoadSampler.
"""

import math

import pytest

from queue_drain.coordinator import FixedLoadProbe, LoadSampler, PsutilLoadProbe


@pytest.mark.parametrize("load", [0.0, 0.5, 3.9, 7.99, 8.0])
@pytest.mark.parametrize("base", [0, 1, 50, 1000])
def test_at_or_below_threshold_uses_configured_base(base, load):
    assert LoadSampler().compute_batch_size(base, load) == base


@pytest.mark.parametrize("load", [8.01, 9.0, 12.5, 40.0, 1000.0])
@pytest.mark.parametrize("base", [0, 1, 7, 100, 999])
def test_above_threshold_scales_down(base, load):
    size = LoadSampler().compute_batch_size(base, load)
    assert size == math.floor(base / load)
    assert size >= 0
    assert isinstance(size, int)


def test_extreme_load_yields_zero():
    """Zero is a legitimate 'claim nothing' decision, not an error."""
    assert LoadSampler().compute_batch_size(50, 100.0) == 0


def test_threshold_is_injectable():
    sampler = LoadSampler(load_threshold=2.0)
    assert sampler.compute_batch_size(100, 2.0) == 100
    assert sampler.compute_batch_size(100, 4.0) == 25


def test_negative_base_clamped_to_zero():
    assert LoadSampler().compute_batch_size(-5, 1.0) == 0


def test_negative_threshold_rejected():
    with pytest.raises(ValueError):
        LoadSampler(load_threshold=-1)


def test_decide_reports_inputs_and_scaling(log_records):
    sampler = LoadSampler()
    d = sampler.decide(100, 10.0)
    assert (d.configured, d.load, d.effective) == (100, 10.0, 10)
    assert d.scaled
    assert any("batch size reduced 100 -> 10" in r["message"] for r in log_records)

    d = sampler.decide(100, 1.0)
    assert d.effective == 100
    assert not d.scaled


def test_probes():
    assert FixedLoadProbe(3.5).current_load1() == 3.5
    load = PsutilLoadProbe().current_load1()
    assert isinstance(load, float)
    assert load >= 0.0
