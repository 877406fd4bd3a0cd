"""Geometric gates used when matching keypoints between views."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from orbfeatures.keypoint import KeyPoint

_CHI2_ONE_DOF = 3.84
_NARROW_RADIUS = 2.5
_WIDE_RADIUS = 4.0
_NARROW_VIEW_COS = 0.998


def radius_by_viewing_cos(view_cos: float) -> float:
    """Search window radius for a point seen at the given viewing-angle cosine.

    Points viewed almost head-on get a narrow window; others a wider one.
    """
    return _NARROW_RADIUS if view_cos > _NARROW_VIEW_COS else _WIDE_RADIUS


def _fundamental(f12) -> np.ndarray:
    matrix = np.asarray(f12, dtype=np.float32)
    if matrix.shape != (3, 3):
        raise ValueError(f"fundamental matrix must be 3x3, got shape {matrix.shape}")
    return matrix


def check_dist_epipolar_line(kp1: KeyPoint, kp2: KeyPoint, f12,
                             level_sigma2: Sequence[float]) -> bool:
    """Whether ``kp2`` lies close enough to the epipolar line of ``kp1``.

    ``f12`` maps points of the first image to lines ``x1' F12`` in the second.
    The squared distance is compared with a chi-square bound at one degree of
    freedom scaled by the variance of ``kp2``'s pyramid level. A degenerate
    line never passes.
    """
    f = _fundamental(f12)
    x1 = np.float32(kp1.x)
    y1 = np.float32(kp1.y)
    a = x1 * f[0, 0] + y1 * f[1, 0] + f[2, 0]
    b = x1 * f[0, 1] + y1 * f[1, 1] + f[2, 1]
    c = x1 * f[0, 2] + y1 * f[1, 2] + f[2, 2]

    num = a * np.float32(kp2.x) + b * np.float32(kp2.y) + c
    den = a * a + b * b
    if den == 0:
        return False

    dsqr = np.float32(num * num / den)
    sigma2 = float(np.float32(level_sigma2[kp2.octave]))
    return bool(float(dsqr) < _CHI2_ONE_DOF * sigma2)