from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .annotation import AnnotationRecord, safe_divide
from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

Range = Tuple[float, float]

UNBOUNDED: Range = (0.0, math.inf)

_LEGACY_KEYS = {
    "hRng": "height_range",
    "wRng": "width_range",
    "aRng": "area_range",
    "arRng": "aspect_ratio_range",
    "vRng": "visibility_range",
}


@dataclass(frozen=True)
class GroundTruthParams:
    """
    Acceptance ranges used to flag ground-truth objects as ignored.

    Every range is an inclusive `(lo, hi)` pair and defaults to `(0, inf)`.
    Objects with a property outside its range are kept but marked ignore.
    """

    height_range: Range = UNBOUNDED
    width_range: Range = UNBOUNDED
    area_range: Range = UNBOUNDED
    aspect_ratio_range: Range = UNBOUNDED
    visibility_range: Range = UNBOUNDED

    @classmethod
    def from_mapping(cls, values: Mapping[str, Sequence[float]]) -> "GroundTruthParams":
        known = {field.name for field in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = _LEGACY_KEYS.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown ground-truth parameter '{key}'")
            kwargs[name] = _as_range(key, value)
        return cls(**kwargs)


def _as_range(key: str, value: Sequence[float]) -> Range:
    try:
        lo, hi = value
    except (TypeError, ValueError):
        raise ConfigError(f"Parameter '{key}' must be a [min, max] pair, got {value!r}") from None
    return (float(lo), float(hi))


def out_of_range(value: float, bounds: Range) -> bool:
    """True when `value` lies outside the inclusive range `bounds`."""

    lo, hi = bounds
    return bool(value < lo or value > hi)


def to_gt(
    records: Sequence[AnnotationRecord],
    labels: Union[str, Iterable[str]],
    params: Optional[Union[GroundTruthParams, Mapping[str, Sequence[float]]]] = None,
) -> Tuple[np.ndarray, List[int]]:
    """
    Return the ground-truth boxes of every record whose label is in `labels`.

    Returns an `[n x 5]` array with rows `[x, y, w, h, ignore]` and the
    0-based indices of the selected records. The ignore flag is set when the
    record was marked ignore or when its height, width, area, aspect ratio or
    visible fraction falls outside the matching range in `params`.
    """

    if params is None:
        params = GroundTruthParams()
    elif not isinstance(params, GroundTruthParams):
        params = GroundTruthParams.from_mapping(params)

    accepted = {labels} if isinstance(labels, str) else set(labels)

    rows: List[List[float]] = []
    ids: List[int] = []
    for index, record in enumerate(records):
        if record.label not in accepted:
            continue
        width, height = record.width, record.height
        area = width * height
        aspect_ratio = safe_divide(width, height)
        visible = record.visible_fraction()

        ignore = (
            bool(record.ignore)
            or out_of_range(height, params.height_range)
            or out_of_range(width, params.width_range)
            or out_of_range(area, params.area_range)
            or out_of_range(aspect_ratio, params.aspect_ratio_range)
            or out_of_range(visible, params.visibility_range)
        )
        rows.append([*record.box, float(ignore)])
        ids.append(index)

    LOGGER.debug(
        "Selected %d of %d records for labels %s", len(ids), len(records), sorted(accepted)
    )
    gt_boxes = np.asarray(rows, dtype=np.float64).reshape(-1, 5)
    return gt_boxes, ids
