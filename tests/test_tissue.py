"""Tests for phantoms and pressure synthesis."""

import numpy as np
import pytest

from pa_saturation.core.tissue import (SMILEY_DISCS, TissuePressureGenerator, generate_pressure_fields,
                                       make_disc, make_multi_disc_phantom, smiley_phantom,
                                       validate_dimensions)
from pa_saturation.exceptions import DimensionMismatch, PASaturationError


class TestMakeDisc:

    def test_small_disc(self):
        disc = make_disc(9, 9, 4, 4, 1)
        assert disc.dtype == bool
        assert int(disc.sum()) == 5
        assert disc[4, 4] and disc[3, 4] and disc[4, 5]
        assert not disc[3, 3]

    def test_radius_four_pixel_count(self):
        disc = make_disc(200, 200, 100, 100, 4)
        assert int(disc.sum()) == 49
        rows, cols = np.nonzero(disc)
        assert rows.min() == 96 and rows.max() == 104
        assert cols.min() == 96 and cols.max() == 104

    def test_zero_radius_is_single_pixel(self):
        disc = make_disc(5, 6, 2, 3, 0)
        assert int(disc.sum()) == 1
        assert disc[2, 3]

    def test_negative_radius_raises(self):
        with pytest.raises(ValueError):
            make_disc(5, 5, 2, 2, -1)


class TestPhantoms:

    def test_multi_disc_magnitudes_add(self):
        phantom = make_multi_disc_phantom(11, 11, [(5, 5, 2), (5, 5, 0)], magnitudes=[1.0, 2.0])
        assert phantom[5, 5] == pytest.approx(3.0)
        assert phantom[5, 6] == pytest.approx(1.0)
        assert phantom[0, 0] == 0.0

    def test_multi_disc_magnitude_count_mismatch(self):
        with pytest.raises(ValueError):
            make_multi_disc_phantom(11, 11, [(5, 5, 2)], magnitudes=[1.0, 2.0])

    def test_smiley_phantom(self):
        phantom = smiley_phantom()
        assert phantom.shape == (200, 200)
        # 2 eyes of 49 pixels, 5 mouth discs of 29 pixels, no overlap
        assert np.count_nonzero(phantom) == 2 * 49 + 5 * 29
        assert phantom.max() == pytest.approx(3.0)
        for cx, cy, _ in SMILEY_DISCS:
            assert phantom[cx, cy] == pytest.approx(3.0)


class TestValidateDimensions:

    def test_consistent_inputs_pass(self, epsilon):
        validate_dimensions(epsilon, [770, 780], [[0.25, 0.75]], type_names=["Hb", "HbO"],
                            mask=np.zeros((4, 5)), Nx=4, Ny=5)

    @pytest.mark.parametrize("kwargs", [
        dict(wavelengths=[770, 780, 790]),
        dict(concentrations=[[0.2, 0.3, 0.5]]),
        dict(type_names=["Hb"]),
        dict(mask=np.zeros((5, 4))),
    ])
    def test_mismatch_raises(self, epsilon, kwargs):
        args = dict(wavelengths=[770, 780], concentrations=[[0.25, 0.75]],
                    type_names=["Hb", "HbO"], mask=np.zeros((4, 5)))
        args.update(kwargs)
        with pytest.raises(DimensionMismatch):
            validate_dimensions(epsilon, args["wavelengths"], args["concentrations"],
                                type_names=args["type_names"], mask=args["mask"], Nx=4, Ny=5)

    def test_dimension_mismatch_hierarchy(self):
        assert issubclass(DimensionMismatch, PASaturationError)
        assert issubclass(DimensionMismatch, ValueError)


class TestPressureFields:

    def test_linear_mixing(self, epsilon, disc_mask):
        concentrations = np.array([[0.25, 0.75], [0.5, 0.5]])
        pressure = generate_pressure_fields(disc_mask, epsilon, concentrations, [770, 780], 32, 32)

        assert pressure.shape == (2, 2, 32, 32)
        expected = epsilon @ concentrations.T
        for w in range(2):
            for c in range(2):
                assert np.allclose(pressure[w, c][disc_mask], expected[w, c])
                assert np.all(pressure[w, c][~disc_mask] == 0)

    def test_mismatch_raises_before_work(self, epsilon, disc_mask):
        with pytest.raises(DimensionMismatch):
            generate_pressure_fields(disc_mask, epsilon, [[0.25, 0.75]], [770], 32, 32)

    def test_generator(self, epsilon, disc_mask):
        generator = TissuePressureGenerator(disc_mask, epsilon, [770, 780])
        assert generator.num_wavelengths == 2
        assert generator.num_types == 2

        fields = generator.generate([[0.25, 0.75], [0.5, 0.5]])
        assert np.array_equal(generator.field(1, [0.5, 0.5]), fields[1, 1])
        assert "32, 32" in repr(generator)
