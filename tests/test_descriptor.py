import numpy as np
import pytest

from orbfeatures.descriptor import (
    bit_pattern_31,
    compute_descriptors,
    compute_orb_descriptor,
    compute_orientation,
    compute_umax,
    ic_angle,
)
from orbfeatures.keypoint import KeyPoint


def random_image(size, seed=3):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(size, size), dtype=np.uint8)


def test_bit_pattern_shape_and_ends():
    pattern = bit_pattern_31()
    assert len(pattern) == 512
    assert pattern[0] == (8, -3)
    assert pattern[1] == (9, 5)
    assert pattern[-1] == (0, -11)
    assert all(-13 <= x <= 12 and -13 <= y <= 12 for x, y in pattern)


def test_bit_pattern_returns_fresh_list():
    first = bit_pattern_31()
    first.clear()
    assert len(bit_pattern_31()) == 512


def test_compute_umax_default_patch():
    assert compute_umax(15) == [15, 15, 15, 15, 14, 14, 14, 13, 13, 12, 11, 10, 9, 8, 6, 3]


@pytest.mark.parametrize("half", [7, 15])
def test_compute_umax_is_symmetric(half):
    umax = compute_umax(half)
    assert len(umax) == half + 1
    for v in range(half + 1):
        for u in range(half + 1):
            assert (u <= umax[v]) == (v <= umax[u])


def test_compute_umax_rejects_empty_patch():
    with pytest.raises(ValueError):
        compute_umax(0)


def test_ic_angle_vertical_gradient():
    ys = np.arange(41, dtype=np.uint8)[:, None] * 4
    image = np.repeat(ys, 41, axis=1)
    assert ic_angle(image, 20, 20, compute_umax()) == pytest.approx(90.0)


def test_ic_angle_transpose_mirrors_angle():
    image = random_image(41)
    umax = compute_umax()
    angle = ic_angle(image, 20, 20, umax)
    transposed = ic_angle(image.T.copy(), 20, 20, umax)
    diff = (transposed - (90.0 - angle)) % 360.0
    assert min(diff, 360.0 - diff) == pytest.approx(0.0, abs=1e-6)


def test_ic_angle_outside_image_raises():
    with pytest.raises(ValueError):
        ic_angle(random_image(41), 5, 20, compute_umax())


def test_compute_orientation_sets_angles():
    image = random_image(61)
    umax = compute_umax()
    points = [KeyPoint(x=25.0, y=30.0, size=31.0), KeyPoint(x=35.0, y=28.0, size=31.0)]
    result = compute_orientation(image, points, umax)
    assert [kp.angle for kp in result] == [ic_angle(image, kp.x, kp.y, umax) for kp in points]
    assert all(0.0 <= kp.angle < 360.0 for kp in points)


def test_descriptor_of_uniform_image_is_zero():
    image = np.full((61, 61), 128, dtype=np.uint8)
    desc = compute_orb_descriptor(KeyPoint(x=30.0, y=30.0, size=31.0, angle=37.0),
                                  image, bit_pattern_31())
    assert desc.shape == (32,) and desc.dtype == np.uint8
    assert not desc.any()


def test_descriptor_follows_horizontal_gradient():
    xs = np.arange(61, dtype=np.uint8)[None, :] * 3
    image = np.repeat(xs, 61, axis=0)
    desc = compute_orb_descriptor(KeyPoint(x=30.0, y=30.0, size=31.0, angle=0.0),
                                  image, bit_pattern_31())
    assert desc[0] & 0x1F == 0x0F


def test_descriptor_of_inverted_image_is_disjoint():
    image = random_image(61)
    kp = KeyPoint(x=30.0, y=30.0, size=31.0, angle=123.0)
    desc = compute_orb_descriptor(kp, image, bit_pattern_31())
    inverted = compute_orb_descriptor(kp, 255 - image, bit_pattern_31())
    assert not np.any(desc & inverted)
    assert desc.any()


def test_compute_descriptors_matches_single_descriptors():
    image = random_image(61, seed=11)
    pattern = bit_pattern_31()
    points = [KeyPoint(x=30.0, y=30.0, size=31.0, angle=10.0),
              KeyPoint(x=28.0, y=33.0, size=31.0, angle=250.0)]
    table = compute_descriptors(image, points, pattern)
    assert table.shape == (2, 32)
    for row, kp in zip(table, points):
        assert np.array_equal(row, compute_orb_descriptor(kp, image, pattern))


def test_compute_descriptors_without_keypoints():
    table = compute_descriptors(random_image(61), [], bit_pattern_31())
    assert table.shape == (0, 32)


def test_descriptor_outside_image_raises():
    with pytest.raises(ValueError):
        compute_orb_descriptor(KeyPoint(x=5.0, y=30.0, size=31.0, angle=0.0),
                               random_image(61), bit_pattern_31())


def test_short_pattern_raises():
    with pytest.raises(ValueError):
        compute_orb_descriptor(KeyPoint(x=30.0, y=30.0, size=31.0, angle=0.0),
                               random_image(61), bit_pattern_31()[:100])