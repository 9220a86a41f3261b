"""Tests for quantized weight ranges."""
import pytest

from aggregraph.graph.quantized_range import QuantizedRange


class TestQuantizedRange:

    def test_new_range_is_empty(self):
        assert QuantizedRange(5).is_empty

    def test_invalid_band_count(self):
        with pytest.raises(ValueError):
            QuantizedRange(0)

    def test_rounded_bands(self):
        """Weights 1..3 over five requested bands use a rounded 0.5 step."""
        weight_range = QuantizedRange(5)
        weight_range.expand([1.0, 2.0, 3.0])

        bands = weight_range.bands
        assert not weight_range.is_empty
        assert len(bands) == 4
        assert bands[0].min == 1.0
        assert bands[0].limit == 1.5
        assert weight_range.start == 1.0
        assert weight_range.end == 3.0

    def test_band_index_clamps(self):
        """Values on or beyond the ends map to the outer bands."""
        weight_range = QuantizedRange(5)
        weight_range.expand([1.0, 3.0])
        assert weight_range.band_index(1.0) == 0
        assert weight_range.band_index(2.0) == 2
        assert weight_range.band_index(3.0) == 3
        assert weight_range.band_index(-100.0) == 0
        assert weight_range.band_index(100.0) == 3

    def test_single_value(self):
        """A zero-width range still produces one band."""
        weight_range = QuantizedRange(5)
        weight_range.expand(5.0)
        assert len(weight_range.bands) == 1
        assert weight_range.band_index(5.0) == 0

    def test_range_spanning_zero(self):
        """A boundary falls on zero when the range spans it."""
        weight_range = QuantizedRange(5)
        weight_range.expand([-1.0, 1.0])
        assert 0.0 in [band.min for band in weight_range.bands]

    def test_bands_recomputed_on_growth(self):
        """Expanding past the current extremes refreshes the bands."""
        weight_range = QuantizedRange(5)
        weight_range.expand([1.0, 3.0])
        before = weight_range.bands
        weight_range.expand(2.0)
        assert weight_range.bands is before
        weight_range.expand(30.0)
        assert weight_range.bands is not before
        assert weight_range.band_index(30.0) == len(weight_range.bands) - 1

    def test_large_close_weights(self):
        """A step finer than the float spacing of the weights still yields finite bands."""
        weight_range = QuantizedRange(5)
        weight_range.expand([1e16, 1e16 + 2])
        assert len(weight_range.bands) == 4
        assert weight_range.band_index(1e16) == 0
        assert weight_range.band_index(1e16 + 2) == 3

    def test_zero_spanning_band_count_truncated(self):
        """The share of bands on the positive side is truncated to a whole band."""
        weight_range = QuantizedRange(5)
        weight_range.expand([-1.0, 3.0])
        bands = weight_range.bands
        assert [band.min for band in bands] == [-2.0, 0.0, 2.0]
        assert bands[0].limit - bands[0].min == 2.0
