"""
Population-level link metrics for Link Scout.

Measures a batch of LinkSets for fairness (Gini coefficient of inbound link
counts), locality (average linked distance) and cluster coherence (share of
links that stay inside a cluster).
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from .geodata import GeoDataset
from .scorer import LinkSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkMetrics:
    """Quality metrics for one batch of link sets."""
    gini: float
    avg_km: Optional[float]
    cluster_purity: float
    total_links: int

    def to_dict(self) -> dict:
        return {
            "gini": self.gini,
            "avgKm": self.avg_km,
            "clusterPurity": self.cluster_purity,
            "totalLinks": self.total_links,
        }


def gini(values: Iterable[float]) -> float:
    """
    Gini coefficient of a non-negative multiset.

    0 means every value is equal, values near 1 mean one member holds
    everything. Empty or all-zero input is 0.
    """
    arr = np.sort(np.asarray(list(values), dtype=float))
    arr = arr[arr >= 0]
    n = arr.size
    if n == 0:
        return 0.0
    total = arr.sum()
    if total == 0:
        return 0.0
    area = np.cumsum(arr).sum()
    coefficient = (n + 1 - 2 * area / total) / n
    return float(min(1.0, max(0.0, coefficient)))


class MetricEvaluator:
    """Evaluates fairness, locality and coherence of a batch of link sets."""

    def __init__(self, dataset: GeoDataset):
        self.dataset = dataset

    def evaluate(self, link_sets: Iterable[LinkSet]) -> LinkMetrics:
        """
        Compute metrics over every suburb -> neighbor edge.

        Self-links are not edges and are skipped. Inbound counts only cover
        suburbs that received at least one link.
        """
        inbound: Counter = Counter()
        distances = []
        same_cluster = 0
        total_links = 0

        for link_set in link_sets:
            source_cluster = self.dataset.cluster_of(link_set.suburb)
            for neighbor in link_set.neighbors:
                if neighbor == link_set.suburb:
                    continue
                inbound[neighbor] += 1
                total_links += 1
                distance = self.dataset.distance_km(link_set.suburb, neighbor)
                if distance is not None:
                    distances.append(distance)
                if source_cluster and source_cluster == self.dataset.cluster_of(neighbor):
                    same_cluster += 1

        avg_km = round(float(np.mean(distances)), 2) if distances else None
        purity = same_cluster / total_links if total_links else 0.0

        return LinkMetrics(
            gini=round(gini(inbound.values()), 4),
            avg_km=avg_km,
            cluster_purity=round(purity, 4),
            total_links=total_links,
        )
