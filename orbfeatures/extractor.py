"""Multi-scale ORB keypoint detection and description."""

from __future__ import annotations

import math

import numpy as np

from orbfeatures.descriptor import (
    DESCRIPTOR_BYTES,
    HALF_PATCH_SIZE,
    PATCH_SIZE,
    bit_pattern_31,
    compute_descriptors,
    compute_orientation,
    compute_umax,
)
from orbfeatures.imageops import cv_round, detect_fast, gaussian_blur, resize_linear
from orbfeatures.keypoint import KeyPoint, retain_best
from orbfeatures.octree import distribute_octree

EDGE_THRESHOLD = 19
_CELL_SIZE = 30.0


class OrbExtractor:
    """Detects FAST corners over a scale pyramid and describes them with rotated BRIEF."""

    def __init__(self, n_features: int, scale_factor: float, n_levels: int,
                 ini_th_fast: int, min_th_fast: int) -> None:
        if n_levels < 1:
            raise ValueError(f"at least one pyramid level is needed, got {n_levels}")
        if scale_factor <= 0 or scale_factor == 1.0:
            raise ValueError(f"scale factor must be positive and not 1, got {scale_factor}")
        self.n_features = int(n_features)
        self.scale_factor = float(scale_factor)
        self.n_levels = int(n_levels)
        self.ini_th_fast = int(ini_th_fast)
        self.min_th_fast = int(min_th_fast)

        factor32 = np.float32(scale_factor)
        scales = [np.float32(1.0)]
        for _ in range(1, self.n_levels):
            scales.append(np.float32(scales[-1] * factor32))
        self.scale_factors = [float(s) for s in scales]
        self.level_sigma2 = [float(np.float32(s * s)) for s in scales]
        self.inv_scale_factors = [float(np.float32(1.0) / s) for s in scales]
        self.inv_level_sigma2 = [float(np.float32(1.0) / np.float32(s * s)) for s in scales]

        self.features_per_level = self._features_per_level()
        self.pattern = bit_pattern_31()
        self.umax = compute_umax(HALF_PATCH_SIZE)
        self.image_pyramid: list[np.ndarray] = []

    def _features_per_level(self) -> list[int]:
        factor = np.float32(1.0) / np.float32(self.scale_factor)
        denominator = np.float32(1.0) - np.float32(math.pow(float(factor), self.n_levels))
        desired = np.float32(self.n_features) * (np.float32(1.0) - factor) / denominator
        counts = []
        for _ in range(self.n_levels - 1):
            counts.append(cv_round(float(desired)))
            desired = np.float32(desired * factor)
        counts.append(max(self.n_features - sum(counts), 0))
        return counts

    def compute_pyramid(self, image) -> list[np.ndarray]:
        """Build the scale pyramid of ``image``; each level is the previous one resized."""
        array = np.asarray(image)
        if array.ndim != 2:
            raise ValueError(f"expected a single-channel 2-D image, got shape {array.shape}")
        rows, cols = array.shape
        pyramid: list[np.ndarray] = []
        for level, inv_scale in enumerate(self.inv_scale_factors):
            scale = np.float32(inv_scale)
            width = cv_round(float(np.float32(cols) * scale))
            height = cv_round(float(np.float32(rows) * scale))
            if level == 0:
                pyramid.append(array.copy())
            else:
                pyramid.append(resize_linear(pyramid[-1], width, height))
        self.image_pyramid = pyramid
        return pyramid

    def _require_pyramid(self) -> None:
        if len(self.image_pyramid) != self.n_levels:
            raise RuntimeError("compute_pyramid must be called before detecting keypoints")

    def _finish_levels(self, all_keypoints: list[list[KeyPoint]]) -> list[list[KeyPoint]]:
        return [
            compute_orientation(level_image, keypoints, self.umax)
            for level_image, keypoints in zip(self.image_pyramid, all_keypoints)
        ]

    def compute_keypoints_octree(self) -> list[list[KeyPoint]]:
        """Detect keypoints on each level, spread over the image with a quadtree."""
        self._require_pyramid()
        all_keypoints: list[list[KeyPoint]] = []

        for level, level_image in enumerate(self.image_pyramid):
            rows, cols = level_image.shape
            min_border_x = EDGE_THRESHOLD - 3
            min_border_y = min_border_x
            max_border_x = cols - EDGE_THRESHOLD + 3
            max_border_y = rows - EDGE_THRESHOLD + 3

            width = float(max_border_x - min_border_x)
            height = float(max_border_y - min_border_y)
            n_cols = int(width / _CELL_SIZE)
            n_rows = int(height / _CELL_SIZE)
            if n_cols <= 0 or n_rows <= 0:
                raise ValueError(f"pyramid level {level} of size {cols}x{rows} is too small")
            w_cell = math.ceil(width / n_cols)
            h_cell = math.ceil(height / n_rows)

            to_distribute: list[KeyPoint] = []
            for i in range(n_rows):
                ini_y = min_border_y + i * h_cell
                if ini_y >= max_border_y - 3:
                    continue
                max_y = min(ini_y + h_cell + 6, max_border_y)

                for j in range(n_cols):
                    ini_x = min_border_x + j * w_cell
                    if ini_x >= max_border_x - 6:
                        continue
                    max_x = min(ini_x + w_cell + 6, max_border_x)

                    cell = level_image[ini_y:max_y, ini_x:max_x]
                    cell_keys = detect_fast(cell, self.ini_th_fast, True)
                    if not cell_keys:
                        cell_keys = detect_fast(cell, self.min_th_fast, True)
                    for kp in cell_keys:
                        kp.x += j * w_cell
                        kp.y += i * h_cell
                        to_distribute.append(kp)

            keypoints = distribute_octree(to_distribute, min_border_x, max_border_x,
                                          min_border_y, max_border_y,
                                          self.features_per_level[level])

            scaled_patch_size = int(PATCH_SIZE * self.scale_factors[level])
            for kp in keypoints:
                kp.x += min_border_x
                kp.y += min_border_y
                kp.octave = level
                kp.size = float(scaled_patch_size)
            all_keypoints.append(keypoints)

        return self._finish_levels(all_keypoints)

    def compute_keypoints_old(self) -> list[list[KeyPoint]]:
        """Detect keypoints on a fixed grid per level, retaining the best by score."""
        self._require_pyramid()
        first = self.image_pyramid[0]
        image_ratio = float(np.float32(first.shape[1]) / np.float32(first.shape[0]))
        all_keypoints: list[list[KeyPoint]] = []

        for level, level_image in enumerate(self.image_pyramid):
            n_desired = self.features_per_level[level]
            level_cols = int(math.sqrt(n_desired / (5 * image_ratio)))
            level_rows = int(image_ratio * level_cols)
            n_cells = level_rows * level_cols
            if n_cells <= 0:
                raise ValueError(f"pyramid level {level} asks for too few features for a grid")

            rows, cols = level_image.shape
            min_border_x = EDGE_THRESHOLD
            min_border_y = min_border_x
            max_border_x = cols - EDGE_THRESHOLD
            max_border_y = rows - EDGE_THRESHOLD

            cell_w = math.ceil((max_border_x - min_border_x) / level_cols)
            cell_h = math.ceil((max_border_y - min_border_y) / level_rows)
            n_features_cell = math.ceil(n_desired / n_cells)

            cell_keys = [[[] for _ in range(level_cols)] for _ in range(level_rows)]
            to_retain = [[0] * level_cols for _ in range(level_rows)]
            totals = [[0] * level_cols for _ in range(level_rows)]
            no_more = [[False] * level_cols for _ in range(level_rows)]
            ini_x_col = [0] * level_cols
            ini_y_row = [0] * level_rows
            n_no_more = 0
            n_to_distribute = 0

            h_y = cell_h + 6
            for i in range(level_rows):
                ini_y = min_border_y + i * cell_h - 3
                ini_y_row[i] = ini_y
                if i == level_rows - 1:
                    h_y = max_border_y + 3 - ini_y
                    if h_y <= 0:
                        continue

                h_x = cell_w + 6
                for j in range(level_cols):
                    if i == 0:
                        ini_x_col[j] = min_border_x + j * cell_w - 3
                    ini_x = ini_x_col[j]
                    if j == level_cols - 1:
                        h_x = max_border_x + 3 - ini_x
                        if h_x <= 0:
                            continue

                    cell = level_image[ini_y:ini_y + h_y, ini_x:ini_x + h_x]
                    keys = detect_fast(cell, self.ini_th_fast, True)
                    if len(keys) <= 3:
                        keys = detect_fast(cell, self.min_th_fast, True)
                    cell_keys[i][j] = keys

                    n_keys = len(keys)
                    totals[i][j] = n_keys
                    if n_keys > n_features_cell:
                        to_retain[i][j] = n_features_cell
                        no_more[i][j] = False
                    else:
                        to_retain[i][j] = n_keys
                        n_to_distribute += n_features_cell - n_keys
                        no_more[i][j] = True
                        n_no_more += 1

            while n_to_distribute > 0 and n_no_more < n_cells:
                n_new = n_features_cell + math.ceil(n_to_distribute / (n_cells - n_no_more))
                n_to_distribute = 0
                for i in range(level_rows):
                    for j in range(level_cols):
                        if no_more[i][j]:
                            continue
                        if totals[i][j] > n_new:
                            to_retain[i][j] = n_new
                        else:
                            to_retain[i][j] = totals[i][j]
                            n_to_distribute += n_new - totals[i][j]
                            no_more[i][j] = True
                            n_no_more += 1

            scaled_patch_size = int(PATCH_SIZE * self.scale_factors[level])
            keypoints: list[KeyPoint] = []
            for i in range(level_rows):
                for j in range(level_cols):
                    kept = retain_best(cell_keys[i][j], to_retain[i][j])[:to_retain[i][j]]
                    for kp in kept:
                        kp.x += ini_x_col[j]
                        kp.y += ini_y_row[i]
                        kp.octave = level
                        kp.size = float(scaled_patch_size)
                        keypoints.append(kp)

            if len(keypoints) > n_desired:
                keypoints = retain_best(keypoints, n_desired)[:n_desired]
            all_keypoints.append(keypoints)

        return self._finish_levels(all_keypoints)

    def detect_and_compute(self, image) -> tuple[list[KeyPoint], np.ndarray]:
        """Keypoints in level-0 coordinates and their descriptors, one 32-byte row each."""
        array = np.asarray(image)
        empty = np.empty((0, DESCRIPTOR_BYTES), dtype=np.uint8)
        if array.size == 0:
            return [], empty
        if array.ndim != 2 or array.dtype != np.uint8:
            raise ValueError(
                f"expected a 2-D uint8 image, got shape {array.shape} and dtype {array.dtype}"
            )

        self.compute_pyramid(array)
        all_keypoints = self.compute_keypoints_octree()

        result: list[KeyPoint] = []
        blocks: list[np.ndarray] = []
        for level, keypoints in enumerate(all_keypoints):
            if not keypoints:
                continue
            working = gaussian_blur(self.image_pyramid[level], 7, 2.0)
            blocks.append(compute_descriptors(working, keypoints, self.pattern))
            if level != 0:
                scale = self.scale_factors[level]
                for kp in keypoints:
                    kp.x *= scale
                    kp.y *= scale
            result.extend(keypoints)

        if not result:
            return [], empty
        return result, np.vstack(blocks)