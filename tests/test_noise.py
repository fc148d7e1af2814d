"""Tests for trace noise injection."""

import numpy as np
import pytest

from pa_saturation.core.noise import GaussianTraceNoise, NoiseInjector, NoiseStatistics, task_rng


@pytest.fixture
def base_trace(rng):
    return rng.standard_normal((40, 60)) * 100.0


def test_zero_noise_level_is_bit_identical(base_trace):
    injector = NoiseInjector(noise_strength=50.0, seed=7)
    noisy = injector.inject(base_trace, 0.0, key=(0, 1, 1))
    assert np.array_equal(noisy, base_trace)


def test_zero_noise_level_keeps_signed_zeros():
    base = np.full((4, 50), -0.0)
    noisy = NoiseInjector(noise_strength=50.0, seed=0).inject(base, 0.0, key=(0, 0, 0))

    assert noisy is not base
    assert np.array_equal(noisy.view(np.uint64), base.view(np.uint64))


def test_zero_sigma_model_copies_trace(base_trace):
    noisy = GaussianTraceNoise(sigma=0.0).apply(base_trace)
    noisy[0, 0] += 1.0
    assert noisy[0, 0] != base_trace[0, 0]


def test_zero_strength_is_bit_identical(base_trace):
    injector = NoiseInjector(noise_strength=0.0, seed=7)
    assert np.array_equal(injector.inject(base_trace, 0.5, key=(1, 0, 0)), base_trace)


def test_base_trace_not_modified(base_trace):
    original = base_trace.copy()
    NoiseInjector(50.0, seed=1).inject(base_trace, 0.1, key=(0, 0, 0))
    assert np.array_equal(base_trace, original)


def test_noise_std_matches_level():
    injector = NoiseInjector(noise_strength=50.0, seed=3)
    base = np.zeros((200, 400))

    noise = injector.inject(base, 0.05, key=(1, 0, 0)) - base
    stats = NoiseStatistics.from_samples(noise)

    assert injector.sigma(0.05) == pytest.approx(2.5)
    assert stats.std == pytest.approx(2.5, rel=0.02)
    assert abs(stats.mean) < 0.05
    assert stats.n_samples == base.size


def test_same_seed_and_key_reproduce(base_trace):
    a = NoiseInjector(50.0, seed=11).inject(base_trace, 0.05, key=(1, 0, 1))
    b = NoiseInjector(50.0, seed=11).inject(base_trace, 0.05, key=(1, 0, 1))
    assert np.array_equal(a, b)


def test_keys_give_independent_draws(base_trace):
    injector = NoiseInjector(50.0, seed=11)
    a = injector.inject(base_trace, 0.05, key=(1, 0, 0)) - base_trace
    b = injector.inject(base_trace, 0.05, key=(1, 1, 0)) - base_trace
    assert not np.array_equal(a, b)
    assert abs(np.corrcoef(a.ravel(), b.ravel())[0, 1]) < 0.1


def test_fresh_seed_is_recorded():
    injector = NoiseInjector(50.0)
    assert isinstance(injector.seed, int)
    assert str(injector.seed) in repr(injector)


def test_negative_strength_raises():
    with pytest.raises(ValueError):
        NoiseInjector(-1.0)


def test_task_rng_is_order_independent():
    first = task_rng(5, (0, 1, 2)).standard_normal(10)
    task_rng(5, (3, 3, 3)).standard_normal(10)
    again = task_rng(5, (0, 1, 2)).standard_normal(10)
    assert np.array_equal(first, again)


def test_gaussian_noise_model():
    model = GaussianTraceNoise(sigma=0.0)
    assert np.array_equal(model.sample((3, 4)), np.zeros((3, 4)))
    assert "σ" in repr(GaussianTraceNoise(sigma=1.5))
