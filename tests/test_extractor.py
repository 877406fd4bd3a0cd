import numpy as np
import pytest

from orbfeatures.descriptor import bit_pattern_31, compute_descriptors, compute_umax
from orbfeatures.extractor import EDGE_THRESHOLD, OrbExtractor
from orbfeatures.imageops import cv_round, gaussian_blur


def _textured_image(seed=0, rows=25, cols=30, block=8):
    rng = np.random.default_rng(seed)
    blocks = rng.integers(0, 256, size=(rows, cols)).astype(np.uint8)
    return np.kron(blocks, np.ones((block, block), dtype=np.uint8))


@pytest.fixture
def extractor():
    return OrbExtractor(300, 1.2, 3, 20, 7)


def test_scale_factors_and_sigmas():
    ext = OrbExtractor(1000, 1.2, 8, 20, 7)
    assert ext.scale_factors[0] == 1.0
    assert ext.level_sigma2[0] == 1.0
    assert len(ext.scale_factors) == 8
    for prev, cur in zip(ext.scale_factors, ext.scale_factors[1:]):
        assert cur == pytest.approx(prev * 1.2, rel=1e-5)
    for s, s2, inv, inv2 in zip(ext.scale_factors, ext.level_sigma2,
                                ext.inv_scale_factors, ext.inv_level_sigma2):
        assert s2 == pytest.approx(s * s, rel=1e-5)
        assert inv == pytest.approx(1.0 / s, rel=1e-5)
        assert inv2 == pytest.approx(1.0 / s2, rel=1e-5)


def test_features_per_level_sum_and_decrease():
    ext = OrbExtractor(1000, 1.2, 8, 20, 7)
    counts = ext.features_per_level
    assert sum(counts) == 1000
    assert all(a >= b for a, b in zip(counts[:-1], counts[1:-1]))


def test_single_level_gets_everything():
    ext = OrbExtractor(500, 1.2, 1, 20, 7)
    assert ext.features_per_level == [500]


def test_pattern_and_umax(extractor):
    assert extractor.pattern == bit_pattern_31()
    assert len(extractor.pattern) == 512
    assert extractor.umax == compute_umax(15)


@pytest.mark.parametrize("levels, scale", [(0, 1.2), (3, 1.0), (3, 0.0)])
def test_invalid_parameters(levels, scale):
    with pytest.raises(ValueError):
        OrbExtractor(100, scale, levels, 20, 7)


def test_compute_pyramid_shapes(extractor):
    image = _textured_image()
    pyramid = extractor.compute_pyramid(image)
    assert len(pyramid) == 3
    assert np.array_equal(pyramid[0], image)
    rows, cols = image.shape
    for level, inv in zip(pyramid, extractor.inv_scale_factors):
        assert level.shape == (cv_round(rows * inv), cv_round(cols * inv))
        assert level.dtype == np.uint8


def test_keypoints_require_pyramid(extractor):
    with pytest.raises(RuntimeError):
        extractor.compute_keypoints_octree()
    with pytest.raises(RuntimeError):
        extractor.compute_keypoints_old()


def test_octree_keypoints_within_borders(extractor):
    extractor.compute_pyramid(_textured_image())
    all_keypoints = extractor.compute_keypoints_octree()
    assert len(all_keypoints) == 3
    assert sum(len(k) for k in all_keypoints) > 0
    for level, keypoints in enumerate(all_keypoints):
        rows, cols = extractor.image_pyramid[level].shape
        for kp in keypoints:
            assert kp.octave == level
            assert kp.size == float(int(31 * extractor.scale_factors[level]))
            assert EDGE_THRESHOLD <= kp.x < cols - EDGE_THRESHOLD + 3
            assert EDGE_THRESHOLD <= kp.y < rows - EDGE_THRESHOLD + 3
            assert 0.0 <= kp.angle < 360.0


def test_old_keypoints_respect_level_budget(extractor):
    extractor.compute_pyramid(_textured_image(seed=3))
    all_keypoints = extractor.compute_keypoints_old()
    assert len(all_keypoints) == 3
    assert sum(len(k) for k in all_keypoints) > 0
    for level, keypoints in enumerate(all_keypoints):
        assert len(keypoints) <= extractor.features_per_level[level]
        for kp in keypoints:
            assert kp.octave == level
            assert 0.0 <= kp.angle < 360.0


def test_detect_and_compute_shapes(extractor):
    keypoints, descriptors = extractor.detect_and_compute(_textured_image())
    assert len(keypoints) > 0
    assert descriptors.shape == (len(keypoints), 32)
    assert descriptors.dtype == np.uint8
    rows, cols = _textured_image().shape
    for kp in keypoints:
        assert 0 <= kp.octave < 3
        assert 0 <= kp.x < cols
        assert 0 <= kp.y < rows
    octaves = [kp.octave for kp in keypoints]
    assert octaves == sorted(octaves)


def test_detect_and_compute_is_deterministic(extractor):
    image = _textured_image(seed=5)
    kps1, desc1 = extractor.detect_and_compute(image)
    kps2, desc2 = OrbExtractor(300, 1.2, 3, 20, 7).detect_and_compute(image)
    assert kps1 == kps2
    assert np.array_equal(desc1, desc2)


def test_level_zero_descriptors_match_blurred_image(extractor):
    image = _textured_image(seed=1)
    keypoints, descriptors = extractor.detect_and_compute(image)
    level0 = [kp for kp in keypoints if kp.octave == 0]
    assert level0
    expected = compute_descriptors(gaussian_blur(image, 7, 2.0), level0, bit_pattern_31())
    assert np.array_equal(descriptors[:len(level0)], expected)


def test_uniform_image_has_no_features(extractor):
    image = np.full((200, 240), 128, dtype=np.uint8)
    keypoints, descriptors = extractor.detect_and_compute(image)
    assert keypoints == []
    assert descriptors.shape == (0, 32)


def test_empty_image(extractor):
    keypoints, descriptors = extractor.detect_and_compute(np.zeros((0, 0), dtype=np.uint8))
    assert keypoints == []
    assert descriptors.shape == (0, 32)


@pytest.mark.parametrize("image", [
    np.zeros((100, 100), dtype=np.float32),
    np.zeros((100, 100, 3), dtype=np.uint8),
])
def test_rejects_wrong_image_type(extractor, image):
    with pytest.raises(ValueError):
        extractor.detect_and_compute(image)


def test_too_small_image_raises(extractor):
    with pytest.raises(ValueError):
        extractor.detect_and_compute(np.zeros((40, 40), dtype=np.uint8))