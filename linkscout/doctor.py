"""
Geo doctor for Link Scout.

Validates the loaded geo datasets and summarizes the adjacency graph:
connected components, degree statistics, asymmetric edges and how often
edges cross cluster boundaries. In strict mode any integrity issue is fatal.
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

import numpy as np

from .geodata import DatasetIntegrityError, GeoDataset, IntegrityIssue

logger = logging.getLogger(__name__)


@dataclass
class DoctorReport:
    """Graph statistics and integrity issues for a dataset."""
    nodes: int
    directed_edges: int
    undirected_edges: int
    components: int
    largest_component_ratio: float
    degree_min: int
    degree_max: int
    degree_mean: float
    cross_cluster_ratio: float
    asym_pairs: list[tuple[str, str]]
    issues: list[IntegrityIssue]
    generated_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    @property
    def ok(self) -> bool:
        return not self.issues

    def issue_counts(self) -> dict[str, int]:
        return dict(sorted(Counter(issue.kind for issue in self.issues).items()))

    def to_dict(self) -> dict:
        return {
            "generatedAt": self.generated_at,
            "nodes": self.nodes,
            "edges": {"directed": self.directed_edges, "undirected": self.undirected_edges},
            "components": self.components,
            "largestComponentRatio": self.largest_component_ratio,
            "degrees": {
                "min": self.degree_min,
                "max": self.degree_max,
                "mean": self.degree_mean,
            },
            "crossClusterRatio": self.cross_cluster_ratio,
            "asymPairs": [list(pair) for pair in self.asym_pairs],
            "issueCounts": self.issue_counts(),
            "issues": [issue.to_dict() for issue in self.issues],
        }


def connected_components(nodes: list[str], adjacency: dict[str, tuple[str, ...]]) -> list[list[str]]:
    """Components of the undirected view of the adjacency graph."""
    undirected: dict[str, set[str]] = {node: set() for node in nodes}
    for node, neighbors in adjacency.items():
        for neighbor in neighbors:
            undirected.setdefault(node, set()).add(neighbor)
            undirected.setdefault(neighbor, set()).add(node)

    seen = set()
    components = []
    for start in sorted(undirected):
        if start in seen:
            continue
        component = []
        queue = deque([start])
        seen.add(start)
        while queue:
            node = queue.popleft()
            component.append(node)
            for neighbor in sorted(undirected[node]):
                if neighbor not in seen:
                    seen.add(neighbor)
                    queue.append(neighbor)
        components.append(sorted(component))
    return components


class GeoDoctor:
    """Runs integrity checks and graph statistics over a GeoDataset."""

    def __init__(self, dataset: GeoDataset):
        self.dataset = dataset

    def examine(self) -> DoctorReport:
        adjacency = dict(self.dataset.adjacency_map)
        nodes = self.dataset.suburb_slugs

        components = connected_components(nodes, adjacency)
        largest = max((len(c) for c in components), default=0)

        degrees = [len(adjacency.get(node, ())) for node in nodes]
        edges = [(a, b) for a in sorted(adjacency) for b in adjacency[a]]
        undirected = {tuple(sorted(edge)) for edge in edges}
        asym = [(a, b) for a, b in edges if a not in adjacency.get(b, ())]

        cross = 0
        for a, b in edges:
            cluster_a = self.dataset.cluster_of(a)
            cluster_b = self.dataset.cluster_of(b)
            if cluster_a != cluster_b:
                cross += 1

        return DoctorReport(
            nodes=len(nodes),
            directed_edges=len(edges),
            undirected_edges=len(undirected),
            components=len(components),
            largest_component_ratio=round(largest / len(nodes), 4) if nodes else 0.0,
            degree_min=min(degrees, default=0),
            degree_max=max(degrees, default=0),
            degree_mean=round(float(np.mean(degrees)), 3) if degrees else 0.0,
            cross_cluster_ratio=round(cross / len(edges), 4) if edges else 0.0,
            asym_pairs=asym,
            issues=list(self.dataset.issues),
        )

    def check(self, strict: bool = False) -> DoctorReport:
        """
        Examine the dataset and log the outcome.

        Raises:
            DatasetIntegrityError: If strict and any integrity issue exists.
        """
        report = self.examine()
        logger.info(
            f"components={report.components} lcr={report.largest_component_ratio:.3f} "
            f"cross={report.cross_cluster_ratio:.3f} asym={len(report.asym_pairs)}"
        )
        if report.ok:
            logger.info("No data-integrity issues found")
            return report

        for kind, count in report.issue_counts().items():
            logger.warning(f"{kind}: {count}")
        if strict:
            raise DatasetIntegrityError(report.issues)
        return report
