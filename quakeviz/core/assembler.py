"""Cluster Assembler — turns one fetch's vectors into labeled clusters.

Steps:
    1. K = min(max_clusters, len(vectors) // 2)
    2. Partition with the k-means primitive using the shared seed
    3. Resolve each group's representative and members back to records
    4. Label every group from a fresh ColorAllocator

Clustering errors propagate unchanged.  There is no retry at this layer.
"""

from __future__ import annotations

import logging
from typing import Sequence

from quakeviz.adapters.vector import EventVector
from quakeviz.clustering.kmeans import kmeanify
from quakeviz.core.palette import ColorAllocator
from quakeviz.domain.cluster import DumpElement

logger = logging.getLogger(__name__)

DEFAULT_MAX_CLUSTERS = 8


def cluster_count(vector_count: int, max_clusters: int = DEFAULT_MAX_CLUSTERS) -> int:
    """Number of clusters to request for *vector_count* vectors."""
    return min(max_clusters, vector_count // 2)


class ClusterAssembler:
    """Partitions event vectors and labels the resulting groups."""

    def __init__(self, max_clusters: int = DEFAULT_MAX_CLUSTERS) -> None:
        if max_clusters < 1:
            raise ValueError("max_clusters must be at least 1")
        self._max_clusters = max_clusters

    @property
    def max_clusters(self) -> int:
        return self._max_clusters

    def assemble(self, vectors: Sequence[EventVector], seed: int) -> list[DumpElement]:
        k = cluster_count(len(vectors), self._max_clusters)
        groups = kmeanify(vectors, k, seed)

        allocator = ColorAllocator(seed)
        elements: list[DumpElement] = []
        for representative, members in groups.items():
            elements.append(DumpElement(
                color=allocator.next_color(),
                centroid=representative.record,
                points=[vec.record for vec in members],
            ))

        logger.info(
            "Assembled %d cluster(s) from %d vector(s) (k=%d)",
            len(elements), len(vectors), k,
        )
        return elements
