"""Low-level grey-image operations used by the ORB feature extractor."""

from __future__ import annotations

import math

import numpy as np

from orbfeatures.keypoint import KeyPoint

# Bresenham circle of radius 3 used by the FAST-9/16 detector, as (dx, dy).
_CIRCLE = (
    (0, 3), (1, 3), (2, 2), (3, 1), (3, 0), (3, -1), (2, -2), (1, -3),
    (0, -3), (-1, -3), (-2, -2), (-3, -1), (-3, 0), (-3, 1), (-2, 2), (-1, 3),
)
_ARC_LENGTH = 9
_RADIUS = 3
_FAST_KEYPOINT_SIZE = 7.0


def _require_2d(image) -> np.ndarray:
    array = np.asarray(image)
    if array.ndim != 2:
        raise ValueError(f"expected a single-channel 2-D image, got shape {array.shape}")
    return array


def _as_image_dtype(values: np.ndarray, dtype: np.dtype) -> np.ndarray:
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return np.clip(np.rint(values), info.min, info.max).astype(dtype)
    return values.astype(np.float64)


def cv_round(value: float) -> int:
    """Round to the nearest integer, ties to even."""
    return int(round(float(value)))


def fast_atan2(y: float, x: float) -> float:
    """Angle of the vector (x, y) in degrees, in the range [0, 360)."""
    angle = math.degrees(math.atan2(float(y), float(x)))
    if angle < 0.0:
        angle += 360.0
    if angle >= 360.0:
        angle -= 360.0
    return angle


def _fast_score_map(image: np.ndarray, threshold: int) -> np.ndarray:
    """Corner score for every pixel; zero where the pixel is not a corner."""
    height, width = image.shape
    scores = np.zeros((height, width), dtype=np.int32)
    if height < 2 * _RADIUS + 1 or width < 2 * _RADIUS + 1:
        return scores

    img = image.astype(np.int32)
    inner = (slice(_RADIUS, height - _RADIUS), slice(_RADIUS, width - _RADIUS))
    center = img[inner]
    ring = np.stack([
        img[_RADIUS + dy:height - _RADIUS + dy, _RADIUS + dx:width - _RADIUS + dx]
        for dx, dy in _CIRCLE
    ])
    diff = center[None, :, :] - ring
    extended = np.concatenate([diff, diff[:_ARC_LENGTH - 1]])
    windows = [extended[k:k + _ARC_LENGTH] for k in range(len(_CIRCLE))]

    best_darker = np.max(np.stack([w.min(axis=0) for w in windows]), axis=0)
    best_brighter = -np.min(np.stack([w.max(axis=0) for w in windows]), axis=0)

    is_corner = (best_darker > threshold) | (best_brighter > threshold)
    score = np.maximum(np.maximum(best_darker, best_brighter), threshold) - 1
    scores[inner] = np.where(is_corner, score, 0)
    return scores


def detect_fast(image, threshold: int, nonmax_suppression: bool = True) -> list[KeyPoint]:
    """Detect FAST-9/16 corners, returned in row-major order.

    With non-maximum suppression each corner carries its score as response and
    only corners strictly stronger than all eight neighbours are kept; without
    it every corner is returned with a zero response.
    """
    array = _require_2d(image)
    threshold = min(max(int(threshold), 0), 255)
    scores = _fast_score_map(array, threshold)
    corners = scores > 0 if nonmax_suppression else None

    if not nonmax_suppression:
        height, width = array.shape
        keep = np.zeros_like(scores, dtype=bool)
        if height >= 2 * _RADIUS + 1 and width >= 2 * _RADIUS + 1:
            keep = _corner_mask(array, threshold)
        ys, xs = np.nonzero(keep)
        return [KeyPoint(x=float(x), y=float(y), size=_FAST_KEYPOINT_SIZE) for y, x in zip(ys, xs)]

    padded = np.pad(scores, 1, mode="constant")
    height, width = scores.shape
    keep = corners.copy()
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            neighbour = padded[1 + dy:1 + dy + height, 1 + dx:1 + dx + width]
            keep &= scores > neighbour
    ys, xs = np.nonzero(keep)
    return [
        KeyPoint(x=float(x), y=float(y), size=_FAST_KEYPOINT_SIZE, response=float(scores[y, x]))
        for y, x in zip(ys, xs)
    ]


def _corner_mask(image: np.ndarray, threshold: int) -> np.ndarray:
    """Boolean mask of FAST corners regardless of score."""
    # Every corner has a score of at least ``threshold`` which is >= 0; a
    # threshold of zero still yields score >= 0, so test the arcs directly.
    height, width = image.shape
    img = image.astype(np.int32)
    mask = np.zeros((height, width), dtype=bool)
    inner = (slice(_RADIUS, height - _RADIUS), slice(_RADIUS, width - _RADIUS))
    center = img[inner]
    ring = np.stack([
        img[_RADIUS + dy:height - _RADIUS + dy, _RADIUS + dx:width - _RADIUS + dx]
        for dx, dy in _CIRCLE
    ])
    diff = center[None, :, :] - ring
    extended = np.concatenate([diff, diff[:_ARC_LENGTH - 1]])
    windows = [extended[k:k + _ARC_LENGTH] for k in range(len(_CIRCLE))]
    darker = np.max(np.stack([w.min(axis=0) for w in windows]), axis=0)
    brighter = -np.min(np.stack([w.max(axis=0) for w in windows]), axis=0)
    mask[inner] = (darker > threshold) | (brighter > threshold)
    return mask


def _gaussian_kernel(ksize: int, sigma: float) -> np.ndarray:
    if sigma <= 0:
        sigma = 0.3 * ((ksize - 1) * 0.5 - 1) + 0.8
    offsets = np.arange(ksize, dtype=np.float64) - (ksize - 1) / 2.0
    kernel = np.exp(-(offsets ** 2) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def gaussian_blur(image, ksize: int, sigma: float) -> np.ndarray:
    """Separable Gaussian blur with reflect-101 borders."""
    array = _require_2d(image)
    if ksize <= 0 or ksize % 2 == 0:
        raise ValueError(f"kernel size must be a positive odd number, got {ksize}")
    kernel = _gaussian_kernel(ksize, sigma)
    radius = ksize // 2
    height, width = array.shape
    padded = np.pad(array.astype(np.float64), radius, mode="reflect")
    horizontal = sum(
        weight * padded[:, offset:offset + width] for offset, weight in enumerate(kernel)
    )
    blurred = sum(
        weight * horizontal[offset:offset + height, :] for offset, weight in enumerate(kernel)
    )
    return _as_image_dtype(blurred, array.dtype)


def _linear_taps(src_size: int, dst_size: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    scale = src_size / dst_size
    coords = (np.arange(dst_size, dtype=np.float64) + 0.5) * scale - 0.5
    lower = np.floor(coords).astype(np.int64)
    frac = coords - lower
    below = lower < 0
    lower[below] = 0
    frac[below] = 0.0
    above = lower >= src_size - 1
    lower[above] = src_size - 1
    frac[above] = 0.0
    upper = np.minimum(lower + 1, src_size - 1)
    return lower, upper, frac


def resize_linear(image, width: int, height: int) -> np.ndarray:
    """Resize with bilinear interpolation using pixel-centre alignment."""
    array = _require_2d(image)
    if width <= 0 or height <= 0:
        raise ValueError(f"target size must be positive, got {width}x{height}")
    src_h, src_w = array.shape
    if src_h == 0 or src_w == 0:
        raise ValueError("cannot resize an empty image")
    x0, x1, fx = _linear_taps(src_w, width)
    y0, y1, fy = _linear_taps(src_h, height)
    src = array.astype(np.float64)
    rows = src[:, x0] * (1.0 - fx) + src[:, x1] * fx
    out = rows[y0, :] * (1.0 - fy)[:, None] + rows[y1, :] * fy[:, None]
    return _as_image_dtype(out, array.dtype)


def pad_reflect101(image, border: int) -> np.ndarray:
    """Pad every side by ``border`` pixels, mirroring without repeating the edge."""
    array = _require_2d(image)
    if border < 0:
        raise ValueError(f"border must not be negative, got {border}")
    if border == 0:
        return array.copy()
    if min(array.shape) == 1:
        return np.pad(array, border, mode="edge")
    return np.pad(array, border, mode="reflect")