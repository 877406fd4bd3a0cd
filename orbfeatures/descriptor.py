"""Orientation and rotated BRIEF descriptors for ORB keypoints."""

from __future__ import annotations

import math

import numpy as np

from orbfeatures.imageops import cv_round, fast_atan2
from orbfeatures.keypoint import KeyPoint

PATCH_SIZE = 31
HALF_PATCH_SIZE = 15
DESCRIPTOR_BYTES = 32
_PATTERN_POINTS = DESCRIPTOR_BYTES * 8 * 2

# Learned point pairs (x1, y1, x2, y2) of the 31x31 sampling pattern.
_BIT_PATTERN_31 = (
    (8, -3, 9, 5), (4, 2, 7, -12), (-11, 9, -8, 2), (7, -12, 12, -13),
    (2, -13, 2, 12), (1, -7, 1, 6), (-2, -10, -2, -4), (-13, -13, -11, -8),
    (-13, -3, -12, -9), (10, 4, 11, 9), (-13, -8, -8, -9), (-11, 7, -9, 12),
    (7, 7, 12, 6), (-4, -5, -3, 0), (-13, 2, -12, -3), (-9, 0, -7, 5),
    (12, -6, 12, -1), (-3, 6, -2, 12), (-6, -13, -4, -8), (11, -13, 12, -8),
    (4, 7, 5, 1), (5, -3, 10, -3), (3, -7, 6, 12), (-8, -7, -6, -2),
    (-2, 11, -1, -10), (-13, 12, -8, 10), (-7, 3, -5, -3), (-4, 2, -3, 7),
    (-10, -12, -6, 11), (5, -12, 6, -7), (5, -6, 7, -1), (1, 0, 4, -5),
    (9, 11, 11, -13), (4, 7, 4, 12), (2, -1, 4, 4), (-4, -12, -2, 7),
    (-8, -5, -7, -10), (4, 11, 9, 12), (0, -8, 1, -13), (-13, -2, -8, 2),
    (-3, -2, -2, 3), (-6, 9, -4, -9), (8, 12, 10, 7), (0, 9, 1, 3),
    (7, -5, 11, -10), (-13, -6, -11, 0), (10, 7, 12, 1), (-6, -3, -6, 12),
    (10, -9, 12, -4), (-13, 8, -8, -12), (-13, 0, -8, -4), (3, 3, 7, 8),
    (5, 7, 10, -7), (-1, 7, 1, -12), (3, -10, 5, 6), (2, -4, 3, -10),
    (-13, 0, -13, 5), (-13, -7, -12, 12), (-13, 3, -11, 8), (-7, 12, -4, 7),
    (6, -10, 12, 8), (-9, -1, -7, -6), (-2, -5, 0, 12), (-12, 5, -7, 5),
    (3, -10, 8, -13), (-7, -7, -4, 5), (-3, -2, -1, -7), (2, 9, 5, -11),
    (-11, -13, -5, -13), (-1, 6, 0, -1), (5, -3, 5, 2), (-4, -13, -4, 12),
    (-9, -6, -9, 6), (-12, -10, -8, -4), (10, 2, 12, -3), (7, 12, 12, 12),
    (-7, -13, -6, 5), (-4, 9, -3, 4), (7, -1, 12, 2), (-7, 6, -5, 1),
    (-13, 11, -12, 5), (-3, 7, -2, -6), (7, -8, 12, -7), (-13, -7, -11, -12),
    (1, -3, 12, 12), (2, -6, 3, 0), (-4, 3, -2, -13), (-1, -13, 1, 9),
    (7, 1, 8, -6), (1, -1, 3, 12), (9, 1, 12, 6), (-1, -9, -1, 3),
    (-13, -13, -10, 5), (7, 7, 10, 12), (12, -5, 12, 9), (6, 3, 7, 11),
    (5, -13, 6, 10), (2, -12, 2, 3), (3, 8, 4, -6), (2, 6, 12, -13),
    (9, -12, 10, 3), (-8, 4, -7, 9), (-11, 12, -4, -6), (1, 12, 2, -8),
    (6, -9, 7, -4), (2, 3, 3, -2), (6, 3, 11, 0), (3, -3, 8, -8),
    (7, 8, 9, 3), (-11, -5, -6, -4), (-10, 11, -5, 10), (-5, -8, -3, 12),
    (-10, 5, -9, 0), (8, -1, 12, -6), (4, -6, 6, -11), (-10, 12, -8, 7),
    (4, -2, 6, 7), (-2, 0, -2, 12), (-5, -8, -5, 2), (7, -6, 10, 12),
    (-9, -13, -8, -8), (-5, -13, -5, -2), (8, -8, 9, -13), (-9, -11, -9, 0),
    (1, -8, 1, -2), (7, -4, 9, 1), (-2, 1, -1, -4), (11, -6, 12, -11),
    (-12, -9, -6, 4), (3, 7, 7, 12), (5, 5, 10, 8), (0, -4, 2, 8),
    (-9, 12, -5, -13), (0, 7, 2, 12), (-1, 2, 1, 7), (5, 11, 7, -9),
    (3, 5, 6, -8), (-13, -4, -8, 9), (-5, 9, -3, -3), (-4, -7, -3, -12),
    (6, 5, 8, 0), (-7, 6, -6, 12), (-13, 6, -5, -2), (1, -10, 3, 10),
    (4, 1, 8, -4), (-2, -2, 2, -13), (2, -12, 12, 12), (-2, -13, 0, -6),
    (4, 1, 9, 3), (-6, -10, -3, -5), (-3, -13, -1, 1), (7, 5, 12, -11),
    (4, -2, 5, -7), (-13, 9, -9, -5), (7, 1, 8, 6), (7, -8, 7, 6),
    (-7, -4, -7, 1), (-8, 11, -7, -8), (-13, 6, -12, -8), (2, 4, 3, 9),
    (10, -5, 12, 3), (-6, -5, -6, 7), (8, -3, 9, -8), (2, -12, 2, 8),
    (-11, -2, -10, 3), (-12, -13, -7, -9), (-11, 0, -10, -5), (5, -3, 11, 8),
    (-2, -13, -1, 12), (-1, -8, 0, 9), (-13, -11, -12, -5), (-10, -2, -10, 11),
    (-3, 9, -2, -13), (2, -3, 3, 2), (-9, -13, -4, 0), (-4, 6, -3, -10),
    (-4, 12, -2, -7), (-6, -11, -4, 9), (6, -3, 6, 11), (-13, 11, -5, 5),
    (11, 11, 12, 6), (7, -5, 12, -2), (-1, 12, 0, 7), (-4, -8, -3, -2),
    (-7, 1, -6, 7), (-13, -12, -8, -13), (-7, -2, -6, -8), (-8, 5, -6, -9),
    (-5, -1, -4, 5), (-13, 7, -8, 10), (1, 5, 5, -13), (1, 0, 10, -13),
    (9, 12, 10, -1), (5, -8, 10, -9), (-1, 11, 1, -13), (-9, -3, -6, 2),
    (-1, -10, 1, 12), (-13, 1, -8, -10), (8, -11, 10, -6), (2, -13, 3, -6),
    (7, -13, 12, -9), (-10, -10, -5, -7), (-10, -8, -8, -13), (4, -6, 8, 5),
    (3, 12, 8, -13), (-4, 2, -3, -3), (5, -13, 10, -12), (4, -13, 5, -1),
    (-9, 9, -4, 3), (0, 3, 3, -9), (-12, 1, -6, 1), (3, 2, 4, -8),
    (-10, -10, -10, 9), (8, -13, 12, 12), (-8, -12, -6, -5), (2, 2, 3, 7),
    (10, 6, 11, -8), (6, 8, 8, -12), (-7, 10, -6, 5), (-3, -9, -3, 9),
    (-1, -13, -1, 5), (-3, -7, -3, 4), (-8, -2, -8, 3), (4, 2, 12, 12),
    (2, -5, 3, 11), (6, -9, 11, -13), (3, -1, 7, 12), (11, -1, 12, 4),
    (-3, 0, -3, 6), (4, -11, 4, 12), (2, -4, 2, 1), (-10, -6, -8, 1),
    (-13, 7, -11, 1), (-13, 12, -11, -13), (6, 0, 11, -13), (0, -1, 1, 4),
    (-13, 3, -9, -2), (-9, 8, -6, -3), (-13, -6, -8, -2), (5, -9, 8, 10),
    (2, 7, 3, -9), (-1, -6, -1, -1), (9, 5, 11, -2), (11, -3, 12, -8),
    (3, 0, 3, 5), (-1, 4, 0, 10), (3, -6, 4, 5), (-13, 0, -10, 5),
    (5, 8, 12, 11), (8, 9, 9, -6), (7, -4, 8, -12), (-10, 4, -10, 9),
    (7, 3, 12, 4), (9, -7, 10, -2), (7, 0, 12, -2), (-1, -6, 0, -11),
)


def bit_pattern_31() -> list[tuple[int, int]]:
    """The 512 sampling points of the descriptor, consecutive points forming a test."""
    points = []
    for x1, y1, x2, y2 in _BIT_PATTERN_31:
        points.append((x1, y1))
        points.append((x2, y2))
    return points


def compute_umax(half_patch_size: int = HALF_PATCH_SIZE) -> list[int]:
    """Half-width of each row of a circular patch, made symmetric under transposition."""
    if half_patch_size < 1:
        raise ValueError(f"half patch size must be at least 1, got {half_patch_size}")
    umax = [0] * (half_patch_size + 1)
    vmax = math.floor(half_patch_size * math.sqrt(2.0) / 2 + 1)
    vmin = math.ceil(half_patch_size * math.sqrt(2.0) / 2)
    hp2 = float(half_patch_size * half_patch_size)
    for v in range(vmax + 1):
        umax[v] = cv_round(math.sqrt(hp2 - v * v))

    v0 = 0
    for v in range(half_patch_size, vmin - 1, -1):
        while umax[v0] == umax[v0 + 1]:
            v0 += 1
        umax[v] = v0
        v0 += 1
    return umax


def _grey_image(image) -> np.ndarray:
    array = np.asarray(image)
    if array.ndim != 2:
        raise ValueError(f"expected a single-channel 2-D image, got shape {array.shape}")
    return array


def ic_angle(image, x: float, y: float, umax) -> float:
    """Intensity-centroid orientation, in degrees, of the patch centred at (x, y)."""
    array = _grey_image(image)
    half = len(umax) - 1
    cx, cy = cv_round(x), cv_round(y)
    height, width = array.shape
    if cx - half < 0 or cy - half < 0 or cx + half >= width or cy + half >= height:
        raise ValueError(f"patch of radius {half} around ({x}, {y}) leaves the image")

    img = array.astype(np.int64)
    us = np.arange(-half, half + 1, dtype=np.int64)
    m_10 = int(np.dot(us, img[cy, cx - half:cx + half + 1]))
    m_01 = 0
    for v in range(1, half + 1):
        d = umax[v]
        plus = img[cy + v, cx - d:cx + d + 1]
        minus = img[cy - v, cx - d:cx + d + 1]
        m_10 += int(np.dot(us[half - d:half + d + 1], plus + minus))
        m_01 += v * int(np.sum(plus - minus))
    return fast_atan2(float(m_01), float(m_10))


def compute_orientation(image, keypoints, umax) -> list[KeyPoint]:
    """Set the angle of every keypoint from its patch; returns the same keypoints."""
    keypoints = list(keypoints)
    for kp in keypoints:
        kp.angle = ic_angle(image, kp.x, kp.y, umax)
    return keypoints


def _pattern_array(pattern) -> np.ndarray:
    points = np.asarray(pattern, dtype=np.float32).reshape(-1, 2)
    if len(points) < _PATTERN_POINTS:
        raise ValueError(f"pattern needs {_PATTERN_POINTS} points, got {len(points)}")
    return points[:_PATTERN_POINTS]


def _descriptor(keypoint: KeyPoint, img: np.ndarray, points: np.ndarray) -> np.ndarray:
    angle = np.float32(keypoint.angle) * np.float32(math.pi / 180.0)
    a = np.float32(math.cos(angle))
    b = np.float32(math.sin(angle))
    px, py = points[:, 0], points[:, 1]
    rows = np.rint(px * b + py * a).astype(np.int64) + cv_round(keypoint.y)
    cols = np.rint(px * a - py * b).astype(np.int64) + cv_round(keypoint.x)
    height, width = img.shape
    if rows.min() < 0 or cols.min() < 0 or rows.max() >= height or cols.max() >= width:
        raise ValueError(f"sampling pattern around ({keypoint.x}, {keypoint.y}) leaves the image")
    values = img[rows, cols].astype(np.int32)
    bits = values[0::2] < values[1::2]
    return np.packbits(bits.reshape(DESCRIPTOR_BYTES, 8), axis=1, bitorder="little").ravel()


def compute_orb_descriptor(keypoint: KeyPoint, image, pattern) -> np.ndarray:
    """The 32-byte rotated BRIEF descriptor of one keypoint."""
    return _descriptor(keypoint, _grey_image(image), _pattern_array(pattern))


def compute_descriptors(image, keypoints, pattern) -> np.ndarray:
    """Descriptors of all keypoints, one 32-byte row each."""
    img = _grey_image(image)
    points = _pattern_array(pattern)
    keypoints = list(keypoints)
    descriptors = np.zeros((len(keypoints), DESCRIPTOR_BYTES), dtype=np.uint8)
    for row, kp in zip(descriptors, keypoints):
        row[:] = _descriptor(kp, img, points)
    return descriptors