"""
Tests for ulam_measures.binning module.
"""

import numpy as np
import pytest
from ulam_measures.binning import (
    RectangularBinning,
    FixedRectangularBinning,
    DimensionMismatchError,
    as_binning,
    as_state_space,
)


class TestRectangularBinningConstruction:

    def test_count_and_width_modes(self):
        assert RectangularBinning(5).binning == 5
        assert RectangularBinning(0.2).binning == 0.2
        assert RectangularBinning([2, 3]).binning == (2, 3)
        assert RectangularBinning(np.array([0.2, 0.3])).binning == (0.2, 0.3)

    def test_default_is_imprecise(self):
        assert RectangularBinning(5).precise is False
        assert RectangularBinning(5, True).precise is True

    @pytest.mark.parametrize('bad', [0, -3, 0.0, -0.5, [2, 0], [0.2, -0.1], [2, 0.3], []])
    def test_invalid_binning_raises(self, bad):
        with pytest.raises(ValueError):
            RectangularBinning(bad)

    def test_dimension(self):
        assert RectangularBinning(5).dimension is None
        assert RectangularBinning([2, 3, 4]).dimension == 3

    def test_equality(self):
        assert RectangularBinning(5) == RectangularBinning(5)
        assert RectangularBinning(5) != RectangularBinning(5, True)
        assert RectangularBinning([2, 3]) == RectangularBinning((2, 3))

    def test_scalar_and_per_axis_forms_differ(self, unit_square_data):
        assert RectangularBinning(4) != RectangularBinning([4, 4])
        scalar = RectangularBinning(4).edges(unit_square_data)
        per_axis = RectangularBinning([4, 4]).edges(unit_square_data)
        assert all(np.array_equal(a, b) for a, b in zip(scalar, per_axis))


class TestRectangularBinningEdges:

    def test_count_precise_covers_maximum(self, unit_square_data):
        edges = RectangularBinning(10, precise=True).edges(unit_square_data)
        assert len(edges) == 2
        for e in edges:
            assert len(e) == 11
            assert e[0] == 0.0
            assert e[-1] > 1.0
            assert e[-2] < 1.0

    def test_width_precise_adds_bin_past_maximum(self, unit_square_data):
        edges = RectangularBinning(0.3, precise=True).edges(unit_square_data)
        for e in edges:
            assert len(e) == 5
            assert np.allclose(np.diff(e), 0.3)
            assert e[-1] > 1.0

    def test_count_imprecise_keeps_margin(self, unit_square_data):
        for e in RectangularBinning(10).edges(unit_square_data):
            assert len(e) == 11
            assert e[-1] > 1.0
            assert e[-2] < 1.0

    def test_width_margin_can_add_a_bin(self, unit_square_data):
        # 1.0 plus the margin is just over four widths of 0.25
        for e in RectangularBinning(0.25).edges(unit_square_data):
            assert len(e) == 6
            assert e[-1] == 1.25

    def test_width_just_above_exact_fit(self, unit_square_data):
        w = np.nextafter(np.nextafter(0.25, 1), 1)
        for e in RectangularBinning(w).edges(unit_square_data):
            assert len(e) == 5
            assert e[-1] > 1.0

    def test_per_axis_counts(self, unit_square_data):
        edges = RectangularBinning([2, 3], precise=True).edges(unit_square_data)
        assert [len(e) - 1 for e in edges] == [2, 3]

    def test_per_axis_widths(self, unit_square_data):
        edges = RectangularBinning([0.5, 0.25], precise=True).edges(unit_square_data)
        assert np.isclose(edges[0][1] - edges[0][0], 0.5)
        assert np.isclose(edges[1][1] - edges[1][0], 0.25)

    def test_per_axis_dimension_mismatch(self, unit_square_data):
        with pytest.raises(DimensionMismatchError):
            RectangularBinning([2, 3, 4]).edges(unit_square_data)

    def test_edges_strictly_increasing(self, rng):
        x = rng.randn(500, 3)
        for b in [RectangularBinning(7), RectangularBinning(0.4, True), RectangularBinning([3, 4, 5], True)]:
            for e in b.edges(x):
                assert np.all(np.diff(e) > 0)

    @pytest.mark.parametrize('precise', [False, True])
    def test_constant_axis_raises(self, precise):
        # the margin is too narrow to hold three distinct edges
        x = np.array([[1.0, 1.0], [1.0, 2.0], [1.0, 3.0]])
        with pytest.raises(ValueError, match="strictly increasing"):
            RectangularBinning(3, precise).edges(x)

    def test_empty_data_raises(self):
        with pytest.raises(ValueError):
            RectangularBinning(3).edges(np.empty((0, 2)))


class TestFixedRectangularBinning:

    def test_single_range_replicated(self):
        b = FixedRectangularBinning(np.linspace(0, 1, 5), 3)
        assert b.dimension == 3
        assert all(np.array_equal(e, np.linspace(0, 1, 5)) for e in b.edges())

    def test_default_dimension_is_one(self):
        assert FixedRectangularBinning(np.linspace(0, 1, 5)).dimension == 1

    def test_per_axis_ranges(self):
        b = FixedRectangularBinning((np.linspace(0, 1, 11), np.linspace(0, 3, 4)))
        assert b.dimension == 2
        assert [len(e) for e in b.edges()] == [11, 4]

    def test_precise_moves_last_edge_only(self):
        b = FixedRectangularBinning(np.linspace(0, 1, 11), 2, precise=True)
        for nominal, e in zip(b.ranges, b.edges()):
            assert nominal[-1] == 1.0
            assert e[-1] > 1.0
            assert np.array_equal(nominal[:-1], e[:-1])

    def test_non_increasing_raises(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            FixedRectangularBinning([0.0, 1.0, 0.5])
        with pytest.raises(ValueError):
            FixedRectangularBinning([0.0, 0.0, 1.0])

    def test_too_few_edges_raises(self):
        with pytest.raises(ValueError, match="at least two edges"):
            FixedRectangularBinning([0.0])

    def test_dimension_with_per_axis_ranges_raises(self):
        with pytest.raises(ValueError):
            FixedRectangularBinning((np.linspace(0, 1, 3), np.linspace(0, 1, 3)), 2)

    def test_equality_by_edges(self):
        a = FixedRectangularBinning(np.linspace(0, 1, 5), 2)
        b = FixedRectangularBinning((np.linspace(0, 1, 5), np.linspace(0, 1, 5)))
        c = FixedRectangularBinning(np.linspace(0, 1, 5), 2, precise=True)
        assert a == b
        assert a != c
        assert hash(a) == hash(b)


class TestHelpers:

    def test_as_state_space_vector(self):
        X = as_state_space([0.1, 0.2, 0.3])
        assert X.shape == (3, 1)

    def test_as_state_space_dimension_check(self):
        with pytest.raises(DimensionMismatchError):
            as_state_space(np.zeros((4, 2)), dimension=3)

    def test_as_state_space_rejects_3d(self):
        with pytest.raises(ValueError):
            as_state_space(np.zeros((2, 2, 2)))

    def test_dimension_mismatch_is_value_error(self):
        assert issubclass(DimensionMismatchError, ValueError)

    def test_as_binning_shorthand(self):
        assert as_binning(5) == RectangularBinning(5)
        assert as_binning(0.1) == RectangularBinning(0.1)
        b = FixedRectangularBinning([0.0, 1.0])
        assert as_binning(b) is b
