from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import torch

from .errors import DimensionMismatch

LOGGER = logging.getLogger(__name__)

METRICS = ("euclidean", "sqeuclidean", "cityblock", "cosine")


@dataclass(frozen=True)
class KnnModel:
    """Trained k-nearest-neighbour classifier: stored samples plus vote size."""

    x_train: np.ndarray
    y_train: np.ndarray
    k: int = 1
    metric: str = "sqeuclidean"

    @property
    def num_features(self) -> int:
        return int(np.asarray(self.x_train).shape[1])


def distance_matrix(x: np.ndarray, x_ref: np.ndarray, metric: str = "sqeuclidean") -> torch.Tensor:
    """Pairwise distances between the rows of `x` and `x_ref`."""

    a = torch.as_tensor(np.asarray(x, dtype=np.float64))
    b = torch.as_tensor(np.asarray(x_ref, dtype=np.float64))
    if metric == "euclidean":
        return torch.cdist(a, b, p=2.0)
    if metric == "sqeuclidean":
        return torch.cdist(a, b, p=2.0) ** 2
    if metric == "cityblock":
        return torch.cdist(a, b, p=1.0)
    if metric == "cosine":
        a_unit = torch.nn.functional.normalize(a, dim=1)
        b_unit = torch.nn.functional.normalize(b, dim=1)
        return 1.0 - a_unit @ b_unit.T
    raise ValueError(f"Unknown distance metric '{metric}', expected one of {METRICS}")


def majority_vote(distances: torch.Tensor, labels: np.ndarray, k: int) -> np.ndarray:
    """Most common label among the `k` nearest references of every row; ties go to the smallest label."""

    classes, label_idx = np.unique(np.asarray(labels), return_inverse=True)
    k = max(1, min(int(k), distances.shape[1]))
    nearest = torch.topk(distances, k, dim=1, largest=False).indices
    neighbour_labels = torch.as_tensor(label_idx.reshape(-1))[nearest]

    votes = torch.zeros((distances.shape[0], len(classes)), dtype=torch.long)
    votes.scatter_add_(1, neighbour_labels, torch.ones_like(neighbour_labels))
    # argmax returns the first maximum, i.e. the smallest class
    winners = votes.argmax(dim=1).numpy()
    return classes[winners]


def knn_forward(model: KnnModel, x) -> np.ndarray:
    """Predict one label per row of `x` with the trained `model`."""

    x = np.atleast_2d(np.asarray(x, dtype=np.float64))
    if x.shape[1] != model.num_features:
        raise DimensionMismatch(
            f"Incorrect data dimension: got {x.shape[1]} features, model expects {model.num_features}"
        )
    if len(x) == 0:
        return np.asarray(model.y_train)[:0]
    distances = distance_matrix(x, model.x_train, model.metric)
    return majority_vote(distances, model.y_train, model.k)
