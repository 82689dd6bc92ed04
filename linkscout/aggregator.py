"""
Candidate aggregation for Link Scout.

Merges the link sources available for a (service, suburb) page into one
deduplicated, precedence-ordered candidate list.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from .geodata import GeoDataset
from .slugs import hyphenate

logger = logging.getLogger(__name__)

# Source tags, highest precedence first
SOURCE_SELF = "self"
SOURCE_OVERRIDE = "override"
SOURCE_PROXIMITY = "proximity"
SOURCE_CURATED = "curated"
SOURCE_CLUSTER = "cluster"


@dataclass(frozen=True)
class LinkCandidate:
    """A suburb that could be linked from a page, with the sources that named it."""
    suburb_slug: str
    score: float = 0.0
    source_tags: tuple[str, ...] = ()

    @property
    def is_self(self) -> bool:
        return SOURCE_SELF in self.source_tags


class CandidateAggregator:
    """
    Builds candidate neighbor lists from the geo dataset.

    Precedence: mocked adjacency overrides, proximity ranking, curated
    neighbors for the suburb's cluster, then the rest of the cluster
    alphabetically. A slug keeps the position of the first source that
    named it.
    """

    def __init__(self, dataset: GeoDataset):
        self.dataset = dataset

    def _sources(self, suburb: str) -> Iterable[tuple[str, Iterable[str]]]:
        cluster = self.dataset.cluster_of(suburb)
        yield SOURCE_OVERRIDE, self.dataset.mocked_adjacency(suburb)
        yield SOURCE_PROXIMITY, self.dataset.proximity(suburb)
        yield SOURCE_CURATED, self.dataset.curated_neighbors(suburb)
        yield SOURCE_CLUSTER, self.dataset.cluster_members(cluster)

    def aggregate(self, service: str, suburb: str, include_self: bool = False) -> list[LinkCandidate]:
        """
        Aggregate link candidates for one page.

        Args:
            service: Service id of the page.
            suburb: Suburb slug of the page.
            include_self: Prepend the page's own suburb as a "self" candidate.

        Returns:
            Ordered candidates. Never empty: when no neighbor survives the
            coverage filter the result is the self-link alone.
        """
        service = hyphenate(service)
        suburb = hyphenate(suburb)
        self_link = LinkCandidate(suburb, source_tags=(SOURCE_SELF,))

        if not self.dataset.has_suburb(suburb):
            logger.debug(f"Unknown suburb '{suburb}', returning self-link only")
            return [self_link]

        open_service = self.dataset.is_open_service(service)
        ordered: dict[str, LinkCandidate] = {}
        for tag, slugs in self._sources(suburb):
            for slug in slugs:
                slug = hyphenate(slug)
                if slug == suburb or not self.dataset.has_suburb(slug):
                    continue
                if not open_service and not self.dataset.is_covered(service, slug):
                    continue
                existing = ordered.get(slug)
                if existing is None:
                    ordered[slug] = LinkCandidate(slug, source_tags=(tag,))
                elif tag not in existing.source_tags:
                    ordered[slug] = replace(existing, source_tags=existing.source_tags + (tag,))

        candidates = list(ordered.values())
        if not candidates:
            logger.debug(f"No eligible neighbors for {service}/{suburb}, falling back to self-link")
            return [self_link]

        if include_self and (open_service or self.dataset.is_covered(service, suburb)):
            candidates.insert(0, self_link)
        return candidates
