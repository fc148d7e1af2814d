"""Tests for recovery and noise diagnostics."""

import numpy as np
import pytest

from pa_saturation.analysis.recovery import (concentration_ratio_in_mask, mean_concentrations_in_mask,
                                             measured_noise_levels, saturation_error, true_saturation)
from pa_saturation.analysis.unmixing import spectral_unmix
from pa_saturation.exceptions import DimensionMismatch


@pytest.fixture
def exact_result(epsilon, disc_mask):
    stack = (epsilon @ np.array([0.5, 1.5]))[:, None, None] * disc_mask[None, :, :]
    return spectral_unmix(epsilon, stack)


def test_true_saturation():
    assert np.allclose(true_saturation([1.0, 3.0]), [0.25, 0.75])
    with pytest.raises(ValueError):
        true_saturation([0.0, 0.0])


def test_mean_concentrations_in_mask(exact_result, disc_mask):
    assert np.allclose(mean_concentrations_in_mask(exact_result, disc_mask), [0.5, 1.5])
    assert np.allclose(concentration_ratio_in_mask(exact_result, disc_mask), [0.25, 0.75])


def test_saturation_error_is_zero_for_exact_data(exact_result, disc_mask):
    error = saturation_error(exact_result, [0.25, 0.75], disc_mask)
    assert error.shape == (2,)
    assert np.all(error < 1e-9)


def test_mask_checks(exact_result, disc_mask):
    with pytest.raises(DimensionMismatch):
        mean_concentrations_in_mask(exact_result, np.ones((4, 4), dtype=bool))
    with pytest.raises(ValueError):
        mean_concentrations_in_mask(exact_result, np.zeros_like(disc_mask))
    with pytest.raises(DimensionMismatch):
        saturation_error(exact_result, [0.2, 0.3, 0.5], disc_mask)


def test_measured_noise_levels(rng):
    levels = np.array([0.0, 0.05, 0.2])
    base = rng.standard_normal((2, 2, 50, 60))
    noisy = base[None] + 50.0 * levels[:, None, None, None, None] * rng.standard_normal((3, 2, 2, 50, 60))

    measured = measured_noise_levels(noisy, base, 50.0)

    assert measured[0] == 0.0
    assert np.allclose(measured[1:], levels[1:], rtol=0.03)


def test_measured_noise_levels_checks(rng):
    base = np.zeros((2, 2, 5, 5))
    with pytest.raises(DimensionMismatch):
        measured_noise_levels(np.zeros((1, 2, 2, 5, 4)), base, 50.0)
    with pytest.raises(ValueError):
        measured_noise_levels(np.zeros((1, 2, 2, 5, 5)), base, 0.0)
