"""
Link scoring and selection for Link Scout.

Ranks aggregated candidates with a weighted multi-factor score and selects
the top-K related links per page. LinkPlanner runs the aggregator and scorer
across a whole batch of pages so hub damping and the inbound cap can see
what was already selected elsewhere.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping, Optional

from .aggregator import CandidateAggregator, LinkCandidate
from .config import PolicyConfig, PolicyWeights
from .geodata import GeoDataset
from .slugs import hyphenate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class LinkTarget:
    """A service x suburb page."""
    service: str
    suburb: str

    @classmethod
    def create(cls, service: str, suburb: str) -> "LinkTarget":
        return cls(hyphenate(service), hyphenate(suburb))

    @property
    def key(self) -> str:
        return f"{self.service}/{self.suburb}"


@dataclass(frozen=True)
class LinkSet:
    """
    Related links selected for one page.

    scores runs parallel to neighbors; a self-link has no score (None).
    Scores do not take part in equality.
    """
    service: str
    suburb: str
    neighbors: tuple[str, ...]
    scores: tuple[Optional[float], ...] = field(default=(), compare=False)

    def to_dict(self) -> dict:
        return {"service": self.service, "suburb": self.suburb, "neighbors": list(self.neighbors)}

    def to_scored_dict(self) -> dict:
        scores = self.scores or (None,) * len(self.neighbors)
        return {
            "service": self.service,
            "suburb": self.suburb,
            "links": [
                {"neighbor": neighbor, "score": score}
                for neighbor, score in zip(self.neighbors, scores)
            ],
        }


class LinkScorer:
    """
    Weighted multi-factor link scorer.

    score = weightCluster * same_cluster
          + weightDistance * exp(-km / distanceScaleKm)
          - weightHubDamping * ln(1 + inbound)
          + weightReciprocalEdge * reciprocal_edge
    """

    def __init__(self, dataset: GeoDataset, policy: PolicyConfig):
        self.dataset = dataset
        self.policy = policy

    def score_candidate(
        self,
        suburb: str,
        candidate: str,
        weights: PolicyWeights,
        inbound: int = 0,
    ) -> float:
        """Score a single candidate for the page of suburb."""
        cluster = self.dataset.cluster_of(suburb)
        same_cluster = 1.0 if cluster and cluster == self.dataset.cluster_of(candidate) else 0.0

        distance = self.dataset.distance_km(suburb, candidate)
        distance_decay = 0.0 if distance is None else math.exp(-distance / weights.distance_scale_km)

        hub_penalty = math.log1p(inbound)
        reciprocal = 1.0 if suburb in self.dataset.adjacency(candidate) else 0.0

        score = (
            weights.weight_cluster * same_cluster
            + weights.weight_distance * distance_decay
            - weights.weight_hub_damping * hub_penalty
            + weights.weight_reciprocal_edge * reciprocal
        )
        return round(score, 6)

    def rank(
        self,
        target: LinkTarget,
        candidates: list[LinkCandidate],
        weights: PolicyWeights,
        inbound: Optional[Mapping[str, int]] = None,
    ) -> list[LinkCandidate]:
        """
        Score and order the non-self candidates.

        Ties fall back to the aggregator's precedence order, then the slug.
        """
        inbound = inbound or {}
        scored = []
        for position, candidate in enumerate(candidates):
            if candidate.is_self or candidate.suburb_slug == target.suburb:
                continue
            score = self.score_candidate(
                target.suburb, candidate.suburb_slug, weights, inbound.get(candidate.suburb_slug, 0)
            )
            scored.append((-score, position, candidate.suburb_slug, replace(candidate, score=score)))
        scored.sort(key=lambda item: item[:3])
        return [item[3] for item in scored]

    def score(
        self,
        target: LinkTarget,
        candidates: list[LinkCandidate],
        weights: PolicyWeights,
        inbound: Optional[Mapping[str, int]] = None,
    ) -> LinkSet:
        """
        Select the related links for one page.

        Picks up to neighbors_max ranked candidates, skipping any whose inbound
        count has reached the global cap, then back-fills skipped candidates
        if fewer than neighbors_min were picked. A self candidate is kept in
        front and does not use a slot.
        """
        inbound = inbound or {}
        cap = self.policy.global_inbound_cap
        neighbors_max = self.policy.neighbors_max
        neighbors_min = min(self.policy.neighbors_min, neighbors_max)

        picks: list[LinkCandidate] = []
        skipped: list[LinkCandidate] = []
        for candidate in self.rank(target, candidates, weights, inbound):
            if len(picks) >= neighbors_max:
                break
            if cap is not None and inbound.get(candidate.suburb_slug, 0) >= cap:
                skipped.append(candidate)
                continue
            picks.append(candidate)

        for candidate in skipped:
            if len(picks) >= neighbors_min:
                break
            picks.append(candidate)

        neighbors = [c.suburb_slug for c in picks]
        scores: list[Optional[float]] = [c.score for c in picks]
        # Aggregator output always holds at least the self-link
        if not neighbors or any(c.is_self for c in candidates):
            neighbors.insert(0, target.suburb)
            scores.insert(0, None)
        return LinkSet(target.service, target.suburb, tuple(neighbors), tuple(scores))


class LinkPlanner:
    """
    Plans related links for a batch of pages.

    Pages are processed in sorted (service, suburb) order with one inbound
    counter per batch, so results are identical for identical inputs.
    """

    def __init__(self, dataset: GeoDataset, policy: PolicyConfig):
        self.dataset = dataset
        self.policy = policy
        self.aggregator = CandidateAggregator(dataset)
        self.scorer = LinkScorer(dataset, policy)

    def targets_for(self, services: Iterable[str]) -> list[LinkTarget]:
        """Every service x registry suburb page."""
        return [
            LinkTarget.create(service, suburb)
            for service in services
            for suburb in self.dataset.suburb_slugs
        ]

    def plan(
        self,
        targets: Iterable[LinkTarget],
        weights: Optional[PolicyWeights] = None,
        include_self: bool = False,
    ) -> list[LinkSet]:
        """
        Select related links for every target.

        Args:
            targets: Pages to plan.
            weights: Scoring weights (defaults to the configured policy).
            include_self: Keep each page's own suburb as its first link.

        Returns:
            One LinkSet per distinct target, in sorted target order. Links
            added by the reciprocity pass are scored against the final
            inbound counts.
        """
        weights = weights or self.policy.scoring
        inbound: Counter = Counter()
        picks: dict[LinkTarget, list[str]] = {}
        scores: dict[LinkTarget, dict[str, Optional[float]]] = {}

        for target in sorted(set(targets)):
            candidates = self.aggregator.aggregate(target.service, target.suburb, include_self)
            link_set = self.scorer.score(target, candidates, weights, inbound)
            picks[target] = list(link_set.neighbors)
            scores[target] = dict(zip(link_set.neighbors, link_set.scores))
            for neighbor in link_set.neighbors:
                if neighbor != target.suburb:
                    inbound[neighbor] += 1

        if self.policy.enforce_reciprocity:
            added = self._enforce_reciprocity(picks, inbound)
            logger.debug(f"Reciprocity pass added {added} links")

        link_sets = []
        for t in sorted(picks):
            known = scores[t]
            link_scores = tuple(
                known[n] if n in known
                else self.scorer.score_candidate(t.suburb, n, weights, inbound[n])
                for n in picks[t]
            )
            link_sets.append(LinkSet(t.service, t.suburb, tuple(picks[t]), link_scores))
        return link_sets

    def _enforce_reciprocity(self, picks: dict[LinkTarget, list[str]], inbound: Counter) -> int:
        """For every A->B, add B->A where B's list has room and A is under the cap."""
        cap = self.policy.global_inbound_cap
        pairs = [
            (target, neighbor)
            for target in sorted(picks)
            for neighbor in picks[target]
            if neighbor != target.suburb
        ]
        added = 0
        for target, neighbor in pairs:
            reverse = LinkTarget(target.service, neighbor)
            reverse_picks = picks.get(reverse)
            if reverse_picks is None or target.suburb in reverse_picks:
                continue
            if len([n for n in reverse_picks if n != neighbor]) >= self.policy.neighbors_max:
                continue
            if cap is not None and inbound[target.suburb] >= cap:
                continue
            if not self.dataset.is_covered(target.service, target.suburb):
                continue
            reverse_picks.append(target.suburb)
            inbound[target.suburb] += 1
            added += 1
        return added
