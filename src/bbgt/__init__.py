"""
Bounding box (bb) ground-truth annotations for object detection.

The submodules provide the following functionality:

```
annotation   – AnnotationRecord (label, box, occlusion, visible box, ignore) and create().
codec        – Save/load annotations to the versioned `% bbGt version=2` text format.
ground_truth – Select objects by label and flag out-of-range ones as ignore (to_gt).
sampling     – Sample training boxes and patches away from ignore regions (sample_data).
geometry     – Overlap scores, squarify/resize of boxes and padded patch cropping.
knn          – Forward pass of a k-nearest-neighbour classifier.
dataset      – Discover images and their annotation files on disk.
```
"""

from .annotation import AnnotationRecord, create
from .codec import bb_load, bb_save, read_version
from .errors import (
    BBGtError,
    ConfigError,
    DimensionMismatch,
    NotFoundError,
    UnsupportedVersionError,
)
from .ground_truth import GroundTruthParams, to_gt
from .knn import KnnModel, knn_forward
from .sampling import SampleParams, sample_data

__all__ = [
    "AnnotationRecord",
    "create",
    "bb_load",
    "bb_save",
    "read_version",
    "BBGtError",
    "ConfigError",
    "DimensionMismatch",
    "NotFoundError",
    "UnsupportedVersionError",
    "GroundTruthParams",
    "to_gt",
    "KnnModel",
    "knn_forward",
    "SampleParams",
    "sample_data",
]
