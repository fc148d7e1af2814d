"""Tests for absorption matrix conditioning."""

import numpy as np
import pytest

from pa_saturation.analysis.condition import (analyze_absorption_matrix, condition_number,
                                              singular_value_spectrum)


def test_identity_is_perfectly_conditioned():
    assert condition_number(np.eye(3)) == pytest.approx(1.0)


def test_singular_values_descending(epsilon):
    svs = singular_value_spectrum(epsilon)
    assert svs.shape == (2,)
    assert svs[0] >= svs[1] > 0


def test_reference_absorption_matrix(epsilon):
    analysis = analyze_absorption_matrix(epsilon)

    assert analysis.effective_rank == 2
    assert 1.0 < analysis.condition_number < 100.0
    assert not analysis.is_underdetermined
    assert not analysis.is_rank_deficient
    assert not analysis.is_ill_conditioned


def test_rank_deficient_matrix():
    analysis = analyze_absorption_matrix(np.array([[1.0, 2.0],
                                                   [2.0, 4.0]]))
    assert analysis.effective_rank == 1
    assert analysis.is_rank_deficient
    assert analysis.is_ill_conditioned


def test_underdetermined_matrix():
    analysis = analyze_absorption_matrix(np.array([[1.0, 2.0, 3.0],
                                                   [2.0, 1.0, 0.5]]))
    assert analysis.num_wavelengths == 2
    assert analysis.num_types == 3
    assert analysis.is_underdetermined
    assert analysis.is_rank_deficient
