"""Tests for box geometry and patch cropping helpers."""

import random

import numpy as np
import pytest

from bbgt.geometry import (
    as_box_array,
    compute_overlaps,
    crop_patch,
    crop_patches,
    random_sample,
    resample_patch,
    resize_boxes,
    round_half_away,
    squarify,
)


class TestAsBoxArray:
    """Test as_box_array()."""

    def test_single_box(self):
        assert as_box_array([1, 2, 3, 4]).shape == (1, 4)

    def test_empty(self):
        assert as_box_array([]).shape == (0, 4)
        assert as_box_array((), columns=5).shape == (0, 5)

    def test_bad_width(self):
        with pytest.raises(ValueError):
            as_box_array([[1, 2, 3]])


class TestComputeOverlaps:
    """Test compute_overlaps()."""

    def test_identical_boxes(self):
        assert compute_overlaps([0, 0, 10, 10], [[0, 0, 10, 10]]).tolist() == [1.0]

    def test_disjoint_and_touching(self):
        """Test that boxes sharing only an edge do not overlap."""
        scores = compute_overlaps([0, 0, 10, 10], [[20, 20, 5, 5], [10, 0, 10, 10]])

        assert scores.tolist() == [0.0, 0.0]

    def test_partial_overlap(self):
        scores = compute_overlaps([0, 0, 10, 10], [[5, 0, 10, 10]])

        assert scores[0] == pytest.approx(1 / 3)

    def test_ignore_flag_uses_box_area(self):
        """Test that flagged boxes score intersection over the candidate area."""
        others = [[5, 0, 10, 10], [0, 0, 20, 20]]
        scores = compute_overlaps([0, 0, 10, 10], others, [1, 1])

        assert scores.tolist() == pytest.approx([0.5, 1.0])

    def test_no_others(self):
        assert compute_overlaps([0, 0, 10, 10], np.zeros((0, 5))).shape == (0,)


class TestBoxTransforms:
    """Test squarify() and resize_boxes()."""

    def test_squarify_grows_width(self):
        np.testing.assert_allclose(squarify([[0, 0, 10, 20]], 1.0), [[-5, 0, 20, 20]])

    def test_squarify_grows_height(self):
        np.testing.assert_allclose(squarify([[0, 0, 40, 10]], 2.0), [[0, -5, 40, 20]])

    def test_squarify_keeps_extra_column(self):
        result = squarify([[0, 0, 10, 20, 1]], 1.0)

        assert result.shape == (1, 5)
        assert result[0, 4] == 1

    def test_squarify_never_shrinks(self):
        boxes = np.array([[3, 4, 7, 13], [0, 0, 30, 2]], dtype=float)
        result = squarify(boxes, 0.75)

        assert np.all(result[:, 2] >= boxes[:, 2])
        assert np.all(result[:, 3] >= boxes[:, 3])
        np.testing.assert_allclose(result[:, 2] / result[:, 3], 0.75)
        np.testing.assert_allclose(result[:, 0] + result[:, 2] / 2, boxes[:, 0] + boxes[:, 2] / 2)

    def test_resize_about_center(self):
        np.testing.assert_allclose(resize_boxes([[10, 10, 10, 20]], 2, 2), [[5, 0, 20, 40]])

    def test_resize_does_not_modify_input(self):
        boxes = np.array([[10, 10, 10, 20]], dtype=float)
        resize_boxes(boxes, 1.5, 1.5)

        assert boxes.tolist() == [[10, 10, 10, 20]]


class TestRandomSample:
    """Test random_sample()."""

    def test_distinct_indices(self):
        indices = random_sample(10, 4, random.Random(0))

        assert len(indices) == 4
        assert len(set(indices)) == 4
        assert all(0 <= index < 10 for index in indices)

    def test_seeded_is_reproducible(self):
        assert random_sample(50, 5, random.Random(3)) == random_sample(50, 5, random.Random(3))


class TestCropPatch:
    """Test crop_patch() padding modes."""

    def test_inside_image(self, ramp_image):
        np.testing.assert_array_equal(crop_patch(ramp_image, (1, 1, 2, 2)), [[6, 7], [11, 12]])

    def test_replicate(self, ramp_image):
        np.testing.assert_array_equal(crop_patch(ramp_image, (-1, 0, 2, 1)), [[0, 0]])

    def test_circular(self, ramp_image):
        np.testing.assert_array_equal(crop_patch(ramp_image, (-1, 0, 2, 1), "circular"), [[4, 0]])

    def test_symmetric(self, ramp_image):
        np.testing.assert_array_equal(crop_patch(ramp_image, (-2, 0, 3, 1), "symmetric"), [[1, 0, 0]])

    def test_constant(self, ramp_image):
        patch = crop_patch(ramp_image, (-1, -1, 2, 2), 99)

        np.testing.assert_array_equal(patch, [[99, 99], [99, 0]])

    def test_constant_fully_outside(self, ramp_image):
        patch = crop_patch(ramp_image, (10, 10, 2, 3), 0)

        assert patch.shape == (3, 2)
        assert not patch.any()

    def test_color_image(self):
        image = np.zeros((4, 4, 3), dtype=np.uint8)
        image[..., 1] = 200

        patch = crop_patch(image, (2, 2, 4, 4))
        assert patch.shape == (4, 4, 3)
        assert np.all(patch[..., 1] == 200)

    def test_unknown_mode(self, ramp_image):
        with pytest.raises(ValueError):
            crop_patch(ramp_image, (0, 0, 2, 2), "reflect")


class TestCropPatches:
    """Test crop_patches() and resample_patch()."""

    def test_round_half_away(self):
        assert round_half_away(np.array([0.5, 1.5, -0.5, 2.4])).tolist() == [1, 2, -1, 2]

    def test_boxes_are_rounded(self, ramp_image):
        """Test that the rounded boxes are returned with the patches."""
        patches, boxes = crop_patches(ramp_image, [[0.4, 0.6, 2.5, 1.5]])

        assert boxes.tolist() == [[0, 1, 3, 2]]
        assert patches[0].shape == (2, 3)

    def test_resize_to_dims(self):
        image = np.full((5, 5, 3), 7, dtype=np.uint8)
        patches, _ = crop_patches(image, [[0, 0, 3, 3]], dims=(4, 6))

        assert patches[0].shape == (4, 6, 3)
        assert patches[0].dtype == np.uint8
        assert np.all(patches[0] == 7)

    def test_resample_grayscale_float(self):
        patch = np.ones((2, 2), dtype=np.float32)

        assert resample_patch(patch, (3, 5)).shape == (3, 5)

    def test_no_boxes(self, ramp_image):
        patches, boxes = crop_patches(ramp_image, [])

        assert patches == []
        assert boxes.shape == (0, 4)
