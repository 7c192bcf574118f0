"""Shared fixtures for the bbgt test-suite."""

import numpy as np
import pytest

from bbgt.annotation import AnnotationRecord, create


@pytest.fixture
def person_records():
    """Two people of different heights and one bicycle."""
    records = create(3)
    records[0].label, records[0].box = "person", (0, 0, 10, 10)
    records[1].label, records[1].box = "person", (0, 0, 20, 20)
    records[2].label, records[2].box = "bicycle", (0, 0, 20, 20)
    return records


@pytest.fixture
def mixed_records():
    """Records exercising every field of the text format."""
    return [
        AnnotationRecord("person", (1, 2, 30, 40), True, (1, 2, 10, 20), False),
        AnnotationRecord("car", (5, 6, 7, 8), False, (0, 0, 0, 0), True),
        AnnotationRecord("person", (-3, 4, 0, 0), False, (0, 0, 0, 0), False),
    ]


@pytest.fixture
def ramp_image():
    """5x5 single channel image whose pixel value is its flat index."""
    return np.arange(25, dtype=np.int64).reshape(5, 5)
