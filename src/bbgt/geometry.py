from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import torch
import torch.nn.functional as F

LOGGER = logging.getLogger(__name__)

PadMode = Union[str, float]

PAD_MODES = ("replicate", "symmetric", "circular")


def as_box_array(boxes, columns: Optional[int] = None) -> np.ndarray:
    """Return `boxes` as a 2-D float array with 4 or 5 columns per row."""

    array = np.asarray(boxes, dtype=np.float64)
    if array.size == 0:
        return np.zeros((0, columns or 4), dtype=np.float64)
    if array.ndim == 1:
        array = array.reshape(1, -1)
    if array.shape[1] not in (4, 5):
        raise ValueError(f"Boxes must have 4 or 5 columns, got shape {array.shape}")
    return array


def compute_overlaps(box, others, ignore_flags=None) -> np.ndarray:
    """
    Area-of-overlap between `box` and every row of `others` (all `[x y w h]`).

    The score is intersection over union, except against boxes whose ignore
    flag is set, where the intersection is divided by the area of `box` only.
    Pairs without a positive intersection score 0.
    """

    box = np.asarray(box, dtype=np.float64).reshape(-1)[:4]
    others = as_box_array(others)
    if len(others) == 0:
        return np.zeros(0, dtype=np.float64)
    if ignore_flags is None:
        ignore_flags = np.zeros(len(others), dtype=bool)
    ignore_flags = np.asarray(ignore_flags).reshape(-1) != 0

    x, y, w, h = box
    inter_w = np.minimum(x + w, others[:, 0] + others[:, 2]) - np.maximum(x, others[:, 0])
    inter_h = np.minimum(y + h, others[:, 1] + others[:, 3]) - np.maximum(y, others[:, 1])
    overlapping = (inter_w > 0) & (inter_h > 0)
    intersection = np.where(overlapping, inter_w * inter_h, 0.0)

    box_area = w * h
    other_area = others[:, 2] * others[:, 3]
    union = np.where(ignore_flags, box_area, box_area + other_area - intersection)

    scores = np.zeros(len(others), dtype=np.float64)
    np.divide(intersection, union, out=scores, where=overlapping)
    return scores


def random_sample(population: int, count: int, rng: Optional[random.Random] = None) -> List[int]:
    """Draw `count` distinct indices from `range(population)`."""

    rng = rng or random.Random()
    return rng.sample(range(population), count)


def squarify(boxes, aspect_ratio: float) -> np.ndarray:
    """Grow each box about its center until `w / h == aspect_ratio`."""

    boxes = as_box_array(boxes).copy()
    if len(boxes) == 0:
        return boxes
    width, height = boxes[:, 2].copy(), boxes[:, 3].copy()
    grow_height = width > height * aspect_ratio

    new_height = np.where(grow_height, width / aspect_ratio, height)
    new_width = np.where(grow_height, width, height * aspect_ratio)
    boxes[:, 0] -= (new_width - width) / 2
    boxes[:, 1] -= (new_height - height) / 2
    boxes[:, 2] = new_width
    boxes[:, 3] = new_height
    return boxes


def resize_boxes(boxes, width_factor: float, height_factor: float) -> np.ndarray:
    """Scale every box about its center."""

    boxes = as_box_array(boxes).copy()
    extra_w = (width_factor - 1) * boxes[:, 2]
    extra_h = (height_factor - 1) * boxes[:, 3]
    boxes[:, 0] -= extra_w / 2
    boxes[:, 1] -= extra_h / 2
    boxes[:, 2] += extra_w
    boxes[:, 3] += extra_h
    return boxes


def round_half_away(values: np.ndarray) -> np.ndarray:
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def _pad_indices(start: int, length: int, size: int, pad_mode: PadMode) -> np.ndarray:
    indices = np.arange(start, start + length)
    if pad_mode == "replicate":
        return np.clip(indices, 0, size - 1)
    if pad_mode == "circular":
        return np.mod(indices, size)
    if pad_mode == "symmetric":
        folded = np.mod(indices, 2 * size)
        return np.where(folded >= size, 2 * size - 1 - folded, folded)
    return indices


def crop_patch(image: np.ndarray, box: Sequence[int], pad_mode: PadMode = "replicate") -> np.ndarray:
    """Cut `box` out of `image`, filling pixels outside the image with `pad_mode`."""

    x, y, w, h = (int(value) for value in box[:4])
    w, h = max(w, 0), max(h, 0)
    img_h, img_w = image.shape[:2]

    if isinstance(pad_mode, str) and pad_mode not in PAD_MODES:
        raise ValueError(f"Unknown pad mode '{pad_mode}', expected one of {PAD_MODES} or a number")

    rows = _pad_indices(y, h, img_h, pad_mode)
    cols = _pad_indices(x, w, img_w, pad_mode)
    if isinstance(pad_mode, str):
        return image[rows[:, None], cols[None, :]]

    patch = np.full((h, w) + image.shape[2:], pad_mode, dtype=image.dtype)
    valid_rows = (rows >= 0) & (rows < img_h)
    valid_cols = (cols >= 0) & (cols < img_w)
    if valid_rows.any() and valid_cols.any():
        patch[np.ix_(valid_rows, valid_cols)] = image[np.ix_(rows[valid_rows], cols[valid_cols])]
    return patch


def resample_patch(patch: np.ndarray, dims: Tuple[int, int]) -> np.ndarray:
    """Bilinearly resize `patch` to `dims = (height, width)`."""

    height, width = int(dims[0]), int(dims[1])
    if patch.shape[:2] == (height, width):
        return patch
    if patch.size == 0:
        return np.zeros((height, width) + patch.shape[2:], dtype=patch.dtype)

    tensor = torch.from_numpy(np.ascontiguousarray(patch, dtype=np.float32))
    if tensor.ndim == 2:
        tensor = tensor[None, None]
    else:
        tensor = tensor.permute(2, 0, 1)[None]
    resized = F.interpolate(tensor, size=(height, width), mode="bilinear", align_corners=False)
    resized = resized[0].permute(1, 2, 0) if patch.ndim == 3 else resized[0, 0]
    output = resized.numpy()

    if np.issubdtype(patch.dtype, np.integer):
        info = np.iinfo(patch.dtype)
        output = np.clip(np.rint(output), info.min, info.max)
    return output.astype(patch.dtype)


def crop_patches(
    image,
    boxes,
    pad_mode: PadMode = "replicate",
    dims: Optional[Tuple[float, float]] = None,
) -> Tuple[List[np.ndarray], np.ndarray]:
    """
    Crop one patch per box and return `(patches, rounded_boxes)`.

    Boxes are rounded to integer pixel bounds first and the rounded boxes
    are returned. With `dims = (height, width)` every patch is resized.
    """

    image = np.asarray(image)
    boxes = as_box_array(boxes).copy()
    boxes[:, :4] = round_half_away(boxes[:, :4])
    if dims is not None:
        dims = tuple(int(value) for value in round_half_away(np.asarray(dims, dtype=np.float64)))

    patches: List[np.ndarray] = []
    for box in boxes:
        patch = crop_patch(image, box, pad_mode)
        if dims is not None:
            patch = resample_patch(patch, dims)
        patches.append(patch)
    return patches, boxes
