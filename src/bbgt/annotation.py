from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

Box = Tuple[float, float, float, float]

EMPTY_BOX: Box = (0, 0, 0, 0)


@dataclass
class AnnotationRecord:
    """
    One labelled object occurrence.

    `box` and `visible_box` are `(left, top, width, height)`. An all-zero
    `visible_box` means the visible region was not annotated.
    """

    label: str = ""
    box: Box = EMPTY_BOX
    occluded: bool = False
    visible_box: Box = EMPTY_BOX
    ignore: bool = False

    def __post_init__(self):
        self.box = tuple(self.box)
        self.visible_box = tuple(self.visible_box)

    @property
    def width(self) -> float:
        return self.box[2]

    @property
    def height(self) -> float:
        return self.box[3]

    @property
    def area(self) -> float:
        return self.box[2] * self.box[3]

    def visible_fraction(self) -> float:
        """
        Fraction of the object area that is visible.

        The all-zero check on `visible_box` runs before the comparison with
        `box`, so a record whose boxes are both all-zero is fully visible.
        """

        if not self.occluded or all(value == 0 for value in self.visible_box):
            return 1.0
        if tuple(self.visible_box) == tuple(self.box):
            return 0.0
        visible_area = self.visible_box[2] * self.visible_box[3]
        return float(safe_divide(visible_area, self.area))


def safe_divide(numerator: float, denominator: float) -> np.float64:
    # x/0 -> inf and 0/0 -> nan instead of raising
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.float64(numerator) / np.float64(denominator)


def create(n: int = 1) -> List[AnnotationRecord]:
    """Return `n` independent empty annotation records."""

    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 0:
        raise ValueError(f"n must be a non-negative integer, got {n!r}")
    return [AnnotationRecord() for _ in range(int(n))]
