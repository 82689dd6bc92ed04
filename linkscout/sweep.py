"""
Policy sweep orchestration for Link Scout.

Runs the link planner once per weight variant over every page of the primary
service, evaluates the resulting link sets and ranks the variants by
fairness, then locality, then cluster coherence.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .config import Config, PolicyWeights
from .geodata import GeoDataset
from .metrics import LinkMetrics, MetricEvaluator
from .scorer import LinkPlanner
from .slugs import hyphenate
from .variants import generate_variants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    """Metrics for one evaluated weight variant."""
    kind: str
    weights: PolicyWeights
    metrics: LinkMetrics

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "weights": self.weights.to_dict(),
            "metrics": self.metrics.to_dict(),
        }


@dataclass
class SweepReport:
    """Outcome of a policy sweep, best variant first."""
    service: str
    mode: str
    ranking: list[SweepResult]
    generated_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    @property
    def variants_tried(self) -> int:
        return len(self.ranking)

    def top(self, n: int) -> list[SweepResult]:
        return self.ranking[:n]

    def to_dict(self) -> dict:
        return {
            "generatedAt": self.generated_at,
            "service": self.service,
            "variantsTried": self.variants_tried,
            "ranking": [result.to_dict() for result in self.ranking],
        }


def ranking_key(result: SweepResult) -> tuple:
    """Gini ascending, avgKm ascending (missing last), purity descending."""
    metrics = result.metrics
    avg_km = math.inf if metrics.avg_km is None else metrics.avg_km
    return (metrics.gini, avg_km, -metrics.cluster_purity)


def rank_results(results: list[SweepResult]) -> list[SweepResult]:
    # sorted() is stable, so equal keys keep variant generation order
    return sorted(results, key=ranking_key)


class PolicySweeper:
    """
    Evaluates weight variants around the configured baseline.

    Variants run sequentially against the same dataset; each run uses a
    fresh planner batch so results do not depend on evaluation order.
    """

    def __init__(self, dataset: GeoDataset, config: Config):
        self.dataset = dataset
        self.config = config
        self.planner = LinkPlanner(dataset, config.policies)
        self.evaluator = MetricEvaluator(dataset)

    def run(self, mode: Optional[str] = None, service: Optional[str] = None) -> SweepReport:
        """
        Run a sweep.

        Args:
            mode: Variant mode ("small" or "medium"), defaults to the config.
            service: Service to plan pages for, defaults to the primary service.

        Returns:
            SweepReport with every variant ranked.
        """
        mode = mode or self.config.sweep.variants
        service = hyphenate(service or self.config.primary_service)

        variants = generate_variants(self.config.policies.scoring, mode)
        targets = self.planner.targets_for([service])
        logger.info(
            f"Sweeping {len(variants)} variants ({mode}) over {len(targets)} pages for '{service}'"
        )

        results = []
        for index, variant in enumerate(variants, start=1):
            link_sets = self.planner.plan(targets, variant.weights)
            metrics = self.evaluator.evaluate(link_sets)
            results.append(SweepResult(variant.kind, variant.weights, metrics))
            logger.debug(
                f"[{index}/{len(variants)}] {variant.kind}: gini={metrics.gini} "
                f"avgKm={metrics.avg_km} purity={metrics.cluster_purity} links={metrics.total_links}"
            )

        ranking = rank_results(results)
        best = ranking[0]
        logger.info(
            f"Best variant: {best.kind} (gini={best.metrics.gini}, "
            f"avgKm={best.metrics.avg_km}, purity={best.metrics.cluster_purity})"
        )
        return SweepReport(service=service, mode=mode, ranking=ranking)
