# orbfeatures

ORB feature extraction and matching building blocks for 8-bit greyscale
images held in NumPy arrays.

What it provides:

- `OrbExtractor` (`orbfeatures.extractor`): builds a scale pyramid, detects
  FAST corners cell by cell, spreads them evenly over each level with a
  quadtree, computes their orientation by intensity centroid and produces
  256-bit rotated BRIEF descriptors.
- `descriptor_distance` (`orbfeatures.hamming`): the Hamming distance between
  two 32-byte descriptors.
- `RotationHistogram` and `compute_three_maxima` (`orbfeatures.rotation`):
  keep only the matches whose rotation agrees with the dominant rotation bins.
- `check_dist_epipolar_line` and `radius_by_viewing_cos`
  (`orbfeatures.epipolar`): geometric gates used while searching for matches.

## Installation

```
pip install .
```

To run the tests, also install the test extra:

```
pip install ".[test]"
pytest
```

## Extracting features

```python
import numpy as np
from orbfeatures.extractor import OrbExtractor

image = np.random.default_rng(0).integers(0, 256, (480, 640), dtype=np.uint8)

extractor = OrbExtractor(
    n_features=1000,
    scale_factor=1.2,
    n_levels=8,
    ini_th_fast=20,
    min_th_fast=7,
)
keypoints, descriptors = extractor.detect_and_compute(image)

print(len(keypoints), descriptors.shape)   # N keypoints, (N, 32) uint8
kp = keypoints[0]
print(kp.x, kp.y, kp.angle, kp.octave, kp.size, kp.response)
```

`detect_and_compute` expects a 2-D `uint8` array and returns the keypoints
together with one 32-byte descriptor row per keypoint. An empty image gives
no keypoints and a `(0, 32)` array. Keypoint coordinates are in the frame of
the full-resolution image; `octave` is the pyramid level the keypoint was
found on and `size` the patch size scaled to that level.

The steps can also be run one by one: `compute_pyramid(image)` fills
`extractor.image_pyramid`, after which `compute_keypoints_octree()` (the
quadtree distribution used by `detect_and_compute`) or
`compute_keypoints_old()` (a fixed grid that retains the strongest corners per
cell) return one list of keypoints per level, in level coordinates. The
extractor also exposes `scale_factors`, `inv_scale_factors`, `level_sigma2`,
`inv_level_sigma2` and `features_per_level`.

A pyramid level too small to hold a detection cell raises `ValueError`.

## Matching helpers

```python
from orbfeatures.hamming import descriptor_distance
from orbfeatures.rotation import RotationHistogram

d = descriptor_distance(descriptors[0], descriptors[1])   # 0..256

histogram = RotationHistogram()
histogram.add(30.0, 10.0, 0)    # angle in first image, angle in second, match index
histogram.add(31.0, 11.0, 1)
histogram.extend([(200.0, 10.0, 2)])
rejected = set(histogram.outliers())
```

`descriptor_distance` accepts `bytes` or integer arrays of exactly 32 bytes.
`outliers()` returns the match indices that fall outside the (up to) three
most populated of the 30 rotation bins. A second or third bin only counts
when it holds at least a tenth as many entries as the largest one.

`check_dist_epipolar_line(kp1, kp2, f12, level_sigma2)` tells whether `kp2`
lies near the epipolar line of `kp1` under the 3x3 fundamental matrix `f12`,
scaled by the variance of `kp2`'s level; `radius_by_viewing_cos(view_cos)`
gives a search radius of 2.5 for near head-on views and 4.0 otherwise.

## Lower-level pieces

- `orbfeatures.imageops`: `detect_fast`, `gaussian_blur`, `resize_linear`,
  `pad_reflect101`, `cv_round` and `fast_atan2`.
- `orbfeatures.octree`: `ExtractorNode` and `distribute_octree`.
- `orbfeatures.descriptor`: `bit_pattern_31`, `compute_umax`, `ic_angle`,
  `compute_orientation`, `compute_orb_descriptor` and `compute_descriptors`.
- `orbfeatures.keypoint`: `KeyPoint` and `retain_best`.

## What it does not do

The package works on single images and descriptor pairs. It has no notion of
frames, keyframes, map points or cameras, so it does not search for matches
by projection or by vocabulary, does not triangulate, and does not optimise
poses. It has no command-line tool and reads or writes no image files; images
are passed in as NumPy arrays.