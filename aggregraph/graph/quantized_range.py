"""Quantized value ranges used to bucket node weights into histogram bands."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union


@dataclass(frozen=True)
class Band:
    """A single band: values in [min, limit) belong to it."""
    min: float
    limit: float


def _round_step(step: float) -> float:
    # round steps are 1, 2 or 5 times a power of ten
    magnitude = 10 ** math.floor(math.log10(step))
    step /= magnitude
    if step <= 2:
        step = 2
    elif step <= 5:
        step = 5
    else:
        step = 10
    return step * magnitude


class QuantizedRange:
    """Min/max tracking range split into evenly sized, rounded bands.

    Bands are recomputed lazily whenever the range grows, so a range that is
    reused across conversions keeps stable bins until a new extreme arrives.
    """

    def __init__(self, num_bands: int):
        if num_bands < 1:
            raise ValueError("num_bands must be >= 1")
        self.num_bands = num_bands
        self._min = math.inf
        self._max = -math.inf
        self._bands: Optional[List[Band]] = None
        self._step = 0.0

    @property
    def is_empty(self) -> bool:
        return self._max < self._min

    @property
    def start(self) -> float:
        return self.bands[0].min

    @property
    def end(self) -> float:
        bands = self.bands
        return bands[-1].min + self._step

    @property
    def bands(self) -> List[Band]:
        if self._bands is None:
            self._calc_bands()
        return self._bands

    def expand(self, value: Union[float, Iterable[float]]) -> None:
        """Grow the range to include value (or every value of an iterable)."""
        if not isinstance(value, (int, float)):
            for v in value:
                self.expand(v)
            return
        if value < self._min:
            self._min = value
            self._bands = None
        if value > self._max:
            self._max = value
            self._bands = None

    def band_index(self, value: float) -> int:
        """Return the index of the band the value falls into, clamped to the range."""
        bands = self.bands
        index = math.floor((value - bands[0].min) / self._step)
        return max(0, min(len(bands) - 1, index))

    def _calc_bands(self) -> None:
        if self.is_empty:
            low = high = 0.0
        else:
            low, high = self._min, self._max
        start, end = low, high
        divisions = self.num_bands

        # zero width: bump the end by a tenth (or to 1 when zero)
        if end == start:
            end = end + 0.1 * abs(end) if end != 0 else 1.0

        # spanning zero: a band boundary should fall on zero
        if end * start < 0:
            if divisions == 1:
                divisions = 2
            if end > -start:
                divisions = max(1, int(divisions * end / (end - start)))
                start = 0.0
            else:
                divisions = max(1, int(divisions * -start / (end - start)))
                end = 0.0

        self._step = _round_step((end - start) / divisions)

        # bands are indexed from the first boundary; adding the step repeatedly
        # stalls when it is below the float spacing of large weights
        first = math.floor(low / self._step) * self._step
        count = max(1, math.ceil((high - first) / self._step))
        self._bands = [
            Band(first + i * self._step, first + (i + 1) * self._step)
            for i in range(count)
        ]

    def __repr__(self) -> str:
        return f"QuantizedRange(num_bands={self.num_bands}, min={self._min}, max={self._max})"
