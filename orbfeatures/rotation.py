"""Rotation-consistency check for descriptor matches.

Matches are binned by the difference of their keypoint angles, and only the
matches falling in the (up to) three most populated bins are kept as
consistent.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence, Sized

import numpy as np

HISTO_LENGTH = 30
_FACTOR = np.float32(1.0) / np.float32(HISTO_LENGTH)
_MINOR_RATIO = np.float32(0.1)


def rotation_bin(angle1: float, angle2: float) -> int:
    """Histogram bin of the rotation between two keypoint angles, in degrees."""
    rot = np.float32(angle1) - np.float32(angle2)
    if rot < 0.0:
        rot = np.float32(rot + np.float32(360.0))
    scaled = float(np.float32(rot * _FACTOR))
    # Half away from zero; ``scaled`` is non-negative whenever the bin is valid.
    index = int(math.copysign(math.floor(abs(scaled) + 0.5), scaled))
    if index == HISTO_LENGTH:
        index = 0
    if not 0 <= index < HISTO_LENGTH:
        raise ValueError(
            f"angles {angle1} and {angle2} give rotation bin {index} outside 0..{HISTO_LENGTH - 1}"
        )
    return index


def compute_three_maxima(histogram: Sequence[Sized]) -> tuple[int, int, int]:
    """Indices of the three most populated bins, -1 where a bin does not count.

    Earlier bins win ties. The second and third bins are dropped when they hold
    fewer than a tenth of the entries of the first.
    """
    max1 = max2 = max3 = 0
    ind1 = ind2 = ind3 = -1
    for index, entries in enumerate(histogram):
        size = len(entries)
        if size > max1:
            max3, max2, max1 = max2, max1, size
            ind3, ind2, ind1 = ind2, ind1, index
        elif size > max2:
            max3, max2 = max2, size
            ind3, ind2 = ind2, index
        elif size > max3:
            max3 = size
            ind3 = index

    threshold = _MINOR_RATIO * np.float32(max1)
    if max2 < threshold:
        ind2 = ind3 = -1
    elif max3 < threshold:
        ind3 = -1
    return ind1, ind2, ind3


class RotationHistogram:
    """Collects match indices by rotation bin and reports inconsistent ones."""

    def __init__(self) -> None:
        self.bins: list[list[int]] = [[] for _ in range(HISTO_LENGTH)]

    def add(self, angle1: float, angle2: float, index: int) -> int:
        """Record a match between keypoints with the given angles; returns its bin."""
        bin_index = rotation_bin(angle1, angle2)
        self.bins[bin_index].append(index)
        return bin_index

    def outliers(self) -> list[int]:
        """Indices recorded outside the dominant bins, in bin then insertion order."""
        dominant = {i for i in compute_three_maxima(self.bins) if i >= 0}
        return [
            index
            for bin_index, entries in enumerate(self.bins)
            if bin_index not in dominant
            for index in entries
        ]

    def extend(self, matches: Iterable[tuple[float, float, int]]) -> None:
        """Record several (angle1, angle2, index) matches."""
        for angle1, angle2, index in matches:
            self.add(angle1, angle2, index)