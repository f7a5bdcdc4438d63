"""Generic k-means partitioner over dimensioned vectors.

The primitive is parameterised over the concrete vector type, so callers
get their own objects back and never need to recover types at runtime:

    groups = kmeanify(vectors, k=4, seed=seed)   # dict[V, list[V]]

Each key is the member vector closest to its cluster mean, so a cluster's
representative is always one of its own members.

Contract:
    - k == 0 or k == 1 yields one trivial cluster holding every vector.
    - An empty input with k == 0 yields no clusters.
    - k < 0 or k > len(vectors) raises ClusteringError.
"""

from __future__ import annotations

import logging
import warnings
from typing import Protocol, Sequence, TypeVar

import numpy as np
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning

from quakeviz.domain.errors import ClusteringError

logger = logging.getLogger(__name__)

_SEED_MODULUS = 2**32


class Vector(Protocol):
    """Anything the partitioner can cluster."""

    def signature(self) -> str:
        ...

    def dimension_count(self) -> int:
        ...

    def dimension(self, index: int) -> float:
        ...


V = TypeVar("V", bound=Vector)


def kmeanify(
    vectors: Sequence[V],
    k: int,
    seed: int,
    *,
    n_init: int = 10,
    max_iter: int = 300,
) -> dict[V, list[V]]:
    """Partition *vectors* into at most *k* groups.

    Args:
        vectors: Items to cluster; all must expose the same dimension count.
        k: Target number of clusters.
        seed: Seed for the randomised centroid initialisation.
        n_init: Number of k-means restarts.
        max_iter: Iteration cap per restart.

    Returns:
        Mapping of representative vector -> member vectors.  Fewer than *k*
        groups are returned when the data has fewer distinct points.

    Raises:
        ClusteringError: On an invalid *k* or inconsistent input.
    """
    if k < 0:
        raise ClusteringError(f"cluster count must be non-negative, got {k}")
    if k > len(vectors):
        raise ClusteringError(
            f"cluster count {k} exceeds the number of vectors ({len(vectors)})"
        )
    if not vectors:
        return {}

    matrix = _feature_matrix(vectors)

    if k <= 1:
        labels = np.zeros(len(vectors), dtype=int)
        centers = matrix.mean(axis=0, keepdims=True)
    else:
        model = KMeans(
            n_clusters=k,
            n_init=n_init,
            max_iter=max_iter,
            random_state=seed % _SEED_MODULUS,
        )
        with warnings.catch_warnings():
            # Raised when the data holds fewer distinct points than k.
            warnings.simplefilter("ignore", ConvergenceWarning)
            try:
                labels = model.fit_predict(matrix)
            except ValueError as exc:
                raise ClusteringError(str(exc)) from exc
        centers = model.cluster_centers_

    groups: dict[V, list[V]] = {}
    for label in np.unique(labels):
        indices = np.flatnonzero(labels == label)
        members = [vectors[i] for i in indices]
        representative = _representative(members, matrix[indices], centers[label])
        groups[representative] = members

    if len(groups) < k:
        logger.debug("k-means produced %d of %d requested clusters", len(groups), k)
    return groups


def _feature_matrix(vectors: Sequence[Vector]) -> np.ndarray:
    width = vectors[0].dimension_count()
    rows = []
    for vec in vectors:
        if vec.dimension_count() != width:
            raise ClusteringError(
                f"vector {vec.signature()} has {vec.dimension_count()} dimensions, expected {width}"
            )
        rows.append([vec.dimension(i) for i in range(width)])
    matrix = np.asarray(rows, dtype=float)
    if not np.all(np.isfinite(matrix)):
        raise ClusteringError("vectors contain non-finite values")
    return matrix


def _representative(members: list[V], points: np.ndarray, center: np.ndarray) -> V:
    """Member nearest to *center*; ties go to the smallest signature."""
    distances = np.linalg.norm(points - center, axis=1)
    best = min(
        range(len(members)),
        key=lambda i: (float(distances[i]), members[i].signature()),
    )
    return members[best]
