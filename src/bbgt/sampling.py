from __future__ import annotations

import logging
import random
from dataclasses import dataclass, fields
from typing import Any, List, Mapping, Optional, Tuple, Union

import numpy as np

from .errors import ConfigError
from .geometry import (
    PadMode,
    as_box_array,
    compute_overlaps,
    crop_patches,
    random_sample,
    resize_boxes,
    squarify,
)

LOGGER = logging.getLogger(__name__)

TargetDims = Union[float, Tuple[float, float], None]

_REQUIRED = ("max_count", "candidate_boxes")

_LEGACY_KEYS = {
    "n": "max_count",
    "bbs": "candidate_boxes",
    "ibbs": "ignore_boxes",
    "thr": "overlap_threshold",
    "dims": "target_dims",
    "pad": "pad_fraction",
    "padEl": "pad_mode",
}


@dataclass(frozen=True)
class SampleParams:
    """
    Options for `sample_data`.

    max_count         - maximum number of boxes to sample (required)
    candidate_boxes   - candidate boxes `[x y w h]` or `[x y w h ignore]` (required)
    ignore_boxes      - [] boxes that must not be sampled, same layouts
    overlap_threshold - [.5] candidates overlapping any ignore box this much are dropped
    target_dims       - [None] target aspect ratio `ar` or patch size `(height, width)`
    pad_fraction      - [0] extra padding added around each sampled box
    pad_mode          - ['replicate'] how to fill pixels outside the image
    """

    max_count: int
    candidate_boxes: Any
    ignore_boxes: Any = ()
    overlap_threshold: float = 0.5
    target_dims: TargetDims = None
    pad_fraction: float = 0.0
    pad_mode: PadMode = "replicate"

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SampleParams":
        known = {field.name for field in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = _LEGACY_KEYS.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown sampling parameter '{key}'")
            kwargs[name] = value
        missing = [name for name in _REQUIRED if kwargs.get(name) is None]
        if missing:
            raise ConfigError(f"Missing required sampling parameter(s): {', '.join(missing)}")
        return cls(**kwargs)

    def aspect_ratio(self) -> Optional[float]:
        """Target `width / height` ratio implied by `target_dims`, if any."""

        dims = self.patch_dims()
        if dims is not None:
            return dims[1] / dims[0]
        if self.target_dims is None or np.size(self.target_dims) == 0:
            return None
        return float(np.asarray(self.target_dims, dtype=np.float64).reshape(-1)[0])

    def patch_dims(self) -> Optional[Tuple[float, float]]:
        """`(height, width)` patches are resized to, or None to keep crop size."""

        if self.target_dims is None or np.size(self.target_dims) != 2:
            return None
        height, width = np.asarray(self.target_dims, dtype=np.float64).reshape(-1)
        return (float(height), float(width))


def filter_ignored_candidates(
    candidates: np.ndarray,
    ignore_boxes: np.ndarray,
    threshold: float,
) -> np.ndarray:
    """Drop flagged candidates and those overlapping an ignore box by `threshold` or more."""

    if candidates.shape[1] == 5:
        candidates = candidates[candidates[:, 4] == 0]
    if len(ignore_boxes) == 0:
        return candidates

    ignore_flags = ignore_boxes[:, 4] if ignore_boxes.shape[1] == 5 else None
    keep = [
        bool(np.all(compute_overlaps(box, ignore_boxes, ignore_flags) < threshold))
        for box in candidates
    ]
    return candidates[np.asarray(keep, dtype=bool)]


def sample_data(
    image,
    params: Union[SampleParams, Mapping[str, Any]],
    *,
    rng: Optional[random.Random] = None,
    with_patches: bool = True,
) -> Tuple[np.ndarray, Optional[List[np.ndarray]]]:
    """
    Sample training boxes (and image patches) from an annotated image.

    Candidates that match any ignore box are discarded, so only windows free
    of the ignored regions are returned. With ground-truth boxes `gt` and
    detections `dt`:

    ```
    true positives   candidate_boxes=gt, ignore_boxes=[]
    false negatives  candidate_boxes=gt, ignore_boxes=dt
    false positives  candidate_boxes=dt, ignore_boxes=gt
    ```

    At most `max_count` boxes are kept, chosen uniformly at random with
    `rng`. Boxes are then grown to the target aspect ratio and padded. When
    `with_patches` is set the patches are cropped and the returned boxes are
    the integer boxes actually cropped; otherwise patches is None.
    """

    if not isinstance(params, SampleParams):
        params = SampleParams.from_mapping(params)
    elif params.max_count is None or params.candidate_boxes is None:
        raise ConfigError("max_count and candidate_boxes are required")

    candidates = as_box_array(params.candidate_boxes)
    ignore_boxes = as_box_array(params.ignore_boxes, columns=5)

    boxes = filter_ignored_candidates(candidates, ignore_boxes, params.overlap_threshold)
    eligible = len(boxes)
    if eligible > params.max_count:
        boxes = boxes[random_sample(eligible, int(params.max_count), rng)]
    LOGGER.debug(
        "Sampled %d of %d eligible boxes (%d candidates)", len(boxes), eligible, len(candidates)
    )

    aspect_ratio = params.aspect_ratio()
    if aspect_ratio is not None:
        boxes = squarify(boxes, aspect_ratio)
    if params.pad_fraction != 0:
        scale = 1 + params.pad_fraction
        boxes = resize_boxes(boxes, scale, scale)

    if not with_patches:
        return boxes, None

    dims = params.patch_dims()
    if dims is not None:
        scale = 1 + params.pad_fraction
        dims = (dims[0] * scale, dims[1] * scale)
    patches, boxes = crop_patches(image, boxes, params.pad_mode, dims)
    return boxes, patches
