"""
Geo dataset loader for Link Scout.

Loads the suburb registry, cluster membership, adjacency graph, coordinate
metadata, service coverage and curated neighbor lists from JSON, normalizes
every slug, and exposes the result as a read-only GeoDataset. Distances use
the great-circle formula via geopy; proximity rankings are computed once per
suburb and cached on the dataset.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from geopy.distance import great_circle

from .config import DatasetConfig
from .slugs import canonical_cluster, hyphenate, titleize

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


class DatasetError(ValueError):
    """A dataset file is malformed or does not have the expected shape."""

    def __init__(self, path: Path, message: str):
        self.path = Path(path)
        super().__init__(f"{path}: {message}")


class DatasetIntegrityError(ValueError):
    """Raised in strict mode when the datasets contain integrity issues."""

    def __init__(self, issues: list["IntegrityIssue"]):
        self.issues = list(issues)
        shown = "; ".join(str(issue) for issue in self.issues[:3])
        more = f" (+{len(self.issues) - 3} more)" if len(self.issues) > 3 else ""
        super().__init__(f"{len(self.issues)} data-integrity issue(s): {shown}{more}")


@dataclass(frozen=True)
class IntegrityIssue:
    """A single data-integrity problem found in the geo datasets."""
    kind: str  # non-reciprocal, unknown-suburb, duplicate-membership, ...
    subject: str
    detail: str

    def __str__(self) -> str:
        return f"[{self.kind}] {self.subject}: {self.detail}"

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "subject": self.subject, "detail": self.detail}


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def as_point(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class Suburb:
    """A suburb from the registry."""
    slug: str
    name: str
    coordinates: Optional[Coordinates]
    cluster_slug: Optional[str]


@dataclass(frozen=True)
class Cluster:
    """A named group of suburbs."""
    slug: str
    name: str
    suburb_slugs: tuple[str, ...]


def haversine_km(a: Optional[Coordinates], b: Optional[Coordinates]) -> Optional[float]:
    """
    Great-circle distance in kilometers between two coordinates.

    Returns None when either side is missing.
    """
    if a is None or b is None:
        return None
    return great_circle(a.as_point(), b.as_point(), radius=EARTH_RADIUS_KM).km


class GeoDataset:
    """
    Read-only view over the loaded geo datasets.

    Built by load_dataset(); every component receives this object explicitly
    instead of reaching for module-level caches.
    """

    def __init__(
        self,
        suburbs: dict[str, Suburb],
        clusters: dict[str, Cluster],
        adjacency: dict[str, tuple[str, ...]],
        coverage: Optional[dict[str, frozenset[str]]] = None,
        curated: Optional[dict[str, dict[str, tuple[str, ...]]]] = None,
        adjacency_overrides: Optional[dict[str, tuple[str, ...]]] = None,
        precomputed_proximity: Optional[dict[str, tuple[str, ...]]] = None,
        proximity_limit: int = 12,
        issues: Optional[list[IntegrityIssue]] = None,
    ):
        self._suburbs = dict(suburbs)
        self._clusters = dict(clusters)
        self._adjacency = dict(adjacency)
        self._coverage = dict(coverage or {})
        self._curated = dict(curated or {})
        self._adjacency_overrides = dict(adjacency_overrides or {})
        self._precomputed_proximity = dict(precomputed_proximity or {})
        self.proximity_limit = proximity_limit
        self._issues = tuple(issues or ())

        # Derived data, computed on first use and kept for the process lifetime
        self._proximity_cache: dict[str, tuple[str, ...]] = {}
        self._distance_cache: dict[tuple[str, str], Optional[float]] = {}

    # Suburbs and clusters

    @property
    def suburb_slugs(self) -> list[str]:
        return sorted(self._suburbs)

    @property
    def suburbs(self) -> list[Suburb]:
        return [self._suburbs[slug] for slug in self.suburb_slugs]

    @property
    def clusters(self) -> list[Cluster]:
        return [self._clusters[slug] for slug in sorted(self._clusters)]

    @property
    def issues(self) -> tuple[IntegrityIssue, ...]:
        return self._issues

    def has_suburb(self, slug: str) -> bool:
        return hyphenate(slug) in self._suburbs

    def suburb(self, slug: str) -> Optional[Suburb]:
        return self._suburbs.get(hyphenate(slug))

    def cluster_of(self, slug: str) -> Optional[str]:
        suburb = self.suburb(slug)
        return suburb.cluster_slug if suburb else None

    def cluster_members(self, cluster_slug: Optional[str]) -> tuple[str, ...]:
        """Suburbs in a cluster, alphabetically."""
        cluster = self._clusters.get(cluster_slug or "")
        return cluster.suburb_slugs if cluster else ()

    # Graph sources

    def adjacency(self, slug: str) -> tuple[str, ...]:
        return self._adjacency.get(hyphenate(slug), ())

    @property
    def adjacency_map(self) -> Mapping[str, tuple[str, ...]]:
        return dict(self._adjacency)

    def mocked_adjacency(self, slug: str) -> tuple[str, ...]:
        return self._adjacency_overrides.get(hyphenate(slug), ())

    def curated_neighbors(self, slug: str) -> tuple[str, ...]:
        """Curated neighbor list for a suburb, scoped to its cluster."""
        slug = hyphenate(slug)
        cluster = self.cluster_of(slug)
        if not cluster:
            return ()
        return self._curated.get(cluster, {}).get(slug, ())

    # Geography

    def coordinates(self, slug: str) -> Optional[Coordinates]:
        suburb = self.suburb(slug)
        return suburb.coordinates if suburb else None

    def distance_km(self, a: str, b: str) -> Optional[float]:
        """Great-circle distance between two suburbs, or None without coordinates."""
        key = (a, b) if a <= b else (b, a)
        if key not in self._distance_cache:
            self._distance_cache[key] = haversine_km(self.coordinates(a), self.coordinates(b))
        return self._distance_cache[key]

    def proximity(self, slug: str) -> tuple[str, ...]:
        """
        Nearest suburbs to slug, closest first.

        Uses the precomputed proximity file when it has an entry for the
        suburb; otherwise ranks every suburb with coordinates by distance
        (ties broken by slug). Suburbs without coordinates have no ranking.
        """
        slug = hyphenate(slug)
        if slug in self._proximity_cache:
            return self._proximity_cache[slug]

        if slug in self._precomputed_proximity:
            ranking = tuple(
                other for other in self._precomputed_proximity[slug]
                if other != slug and other in self._suburbs
            )[:self.proximity_limit]
        elif self.coordinates(slug) is None:
            ranking = ()
        else:
            scored = []
            for other in self._suburbs:
                if other == slug:
                    continue
                distance = self.distance_km(slug, other)
                if distance is not None:
                    scored.append((distance, other))
            scored.sort()
            ranking = tuple(other for _, other in scored[:self.proximity_limit])

        self._proximity_cache[slug] = ranking
        return ranking

    # Service coverage

    def is_open_service(self, service: str) -> bool:
        """A service with no coverage entry is offered everywhere."""
        return hyphenate(service) not in self._coverage

    def is_covered(self, service: str, slug: str) -> bool:
        service = hyphenate(service)
        if service not in self._coverage:
            return True
        return hyphenate(slug) in self._coverage[service]

    @property
    def covered_services(self) -> list[str]:
        return sorted(self._coverage)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _read_json(path: Optional[Path], label: str, required: bool) -> Optional[Any]:
    """Read a dataset file. Missing optional files return None with a warning."""
    if path is None:
        return None
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Required dataset '{label}' not found: {path}")
        logger.warning(f"Optional dataset '{label}' not found at {path}, continuing without it")
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise DatasetError(path, f"invalid JSON ({e.msg} at line {e.lineno}, column {e.colno})") from e
    except UnicodeDecodeError as e:
        raise DatasetError(path, f"not valid UTF-8 (byte {e.start})") from e
    except OSError as e:
        raise DatasetError(path, f"cannot read file ({e.strerror or e})") from e


def _parse_coordinates(value: Any) -> Optional[tuple[Any, Any]]:
    """Pull a raw (lat, lng) pair out of the shapes seen in the wild."""
    if not isinstance(value, dict):
        return None
    if isinstance(value.get("coordinates"), dict):
        value = value["coordinates"]
    lat = value.get("lat", value.get("latitude"))
    lng = value.get("lng", value.get("lon", value.get("longitude")))
    if lat is None or lng is None:
        return None
    return (lat, lng)


def _slug_list(value: Any, path: Path, field: str) -> list[str]:
    """Normalize a list of slugs or {slug, name} objects."""
    if not isinstance(value, list):
        raise DatasetError(path, f"field '{field}' must be a list")
    slugs = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("slug") or item.get("name")
        slug = hyphenate(item)
        if slug:
            slugs.append(slug)
    return slugs


class _DatasetBuilder:
    """Accumulates normalized data and integrity issues while loading."""

    def __init__(self, config: DatasetConfig):
        self.config = config
        self.aliases = {hyphenate(k): v for k, v in config.cluster_aliases.items()}
        self.issues: list[IntegrityIssue] = []
        self.names: dict[str, str] = {}
        self.raw_coordinates: dict[str, tuple[Any, Any]] = {}
        self.membership: dict[str, str] = {}
        self.cluster_names: dict[str, str] = {}
        self.cluster_suburbs: dict[str, list[str]] = {}

    def issue(self, kind: str, subject: str, detail: str) -> None:
        self.issues.append(IntegrityIssue(kind, subject, detail))

    def load_registry(self, doc: Any, path: Path) -> None:
        if isinstance(doc, dict):
            entries = []
            for key, value in doc.items():
                entry = dict(value) if isinstance(value, dict) else {}
                if isinstance(value, str):
                    entry["name"] = value
                entry.setdefault("slug", key)
                entries.append(entry)
        elif isinstance(doc, list):
            entries = doc
        else:
            raise DatasetError(path, "expected a list or object of suburbs")

        for index, entry in enumerate(entries):
            if isinstance(entry, str):
                entry = {"slug": entry}
            if not isinstance(entry, dict):
                raise DatasetError(path, f"entry {index} must be a slug or an object")
            slug = hyphenate(entry.get("slug") or entry.get("name"))
            if not slug:
                raise DatasetError(path, f"entry {index} has no 'slug' or 'name'")
            if slug in self.names:
                self.issue("duplicate-suburb", slug, f"listed more than once in {path.name}")
                continue
            self.names[slug] = entry.get("name") or titleize(slug)
            coords = _parse_coordinates(entry)
            if coords is not None:
                self.raw_coordinates[slug] = coords

    def load_coordinates(self, doc: Any, path: Path) -> None:
        if not isinstance(doc, dict):
            raise DatasetError(path, "expected an object keyed by suburb slug")
        for key, value in doc.items():
            slug = hyphenate(key)
            coords = _parse_coordinates(value)
            if coords is None:
                continue
            if slug not in self.names:
                self.issue("unknown-suburb", slug, f"has coordinates in {path.name} but is not in the registry")
                continue
            self.raw_coordinates[slug] = coords

    def load_clusters(self, doc: Any, path: Path) -> None:
        if isinstance(doc, dict) and isinstance(doc.get("clusters"), list):
            groups = []
            for index, item in enumerate(doc["clusters"]):
                if not isinstance(item, dict):
                    raise DatasetError(path, f"field 'clusters[{index}]' must be an object")
                raw_slug = item.get("slug") or item.get("name")
                if not raw_slug:
                    raise DatasetError(path, f"field 'clusters[{index}].slug' is missing")
                members = _slug_list(item.get("suburbs", []), path, f"clusters[{index}].suburbs")
                groups.append((raw_slug, item.get("name"), members))
        elif isinstance(doc, dict):
            groups = [
                (key, None, _slug_list(value, path, key))
                for key, value in doc.items()
            ]
        else:
            raise DatasetError(path, "expected an object of clusters")

        for raw_slug, name, members in groups:
            cluster = canonical_cluster(raw_slug, self.aliases)
            if not cluster:
                raise DatasetError(path, f"cluster '{raw_slug}' has an empty slug")
            self.cluster_names.setdefault(cluster, name or titleize(cluster))
            bucket = self.cluster_suburbs.setdefault(cluster, [])
            for slug in members:
                if slug not in self.names:
                    self.issue("unknown-suburb", slug, f"listed in cluster '{cluster}' but not in the registry")
                    continue
                current = self.membership.get(slug)
                if current is None:
                    self.membership[slug] = cluster
                    bucket.append(slug)
                elif current != cluster:
                    self.issue(
                        "duplicate-membership", slug,
                        f"listed in clusters '{current}' and '{cluster}', keeping '{current}'"
                    )

    def parse_adjacency(self, doc: Any, path: Path, source: str) -> dict[str, tuple[str, ...]]:
        if not isinstance(doc, dict):
            raise DatasetError(path, "expected an object keyed by suburb slug")
        graph: dict[str, tuple[str, ...]] = {}
        for key, value in doc.items():
            field = key
            if isinstance(value, dict):
                value = value.get("adjacent_suburbs", [])
                field = f"{key}.adjacent_suburbs"
            neighbors = _slug_list(value, path, field)
            slug = hyphenate(key)
            if slug not in self.names:
                self.issue("unknown-suburb", slug, f"has {source} entries but is not in the registry")
                continue
            kept = []
            for neighbor in neighbors:
                if neighbor not in self.names:
                    self.issue("unknown-suburb", neighbor, f"{source} of '{slug}' is not in the registry")
                elif neighbor != slug and neighbor not in kept:
                    kept.append(neighbor)
            graph[slug] = tuple(kept)
        return graph

    def build_suburbs(self) -> dict[str, Suburb]:
        suburbs = {}
        for slug, name in self.names.items():
            coordinates = None
            raw = self.raw_coordinates.get(slug)
            if raw is not None:
                coordinates = self._valid_coordinates(slug, raw)
            suburbs[slug] = Suburb(
                slug=slug,
                name=name,
                coordinates=coordinates,
                cluster_slug=self.membership.get(slug),
            )
        return suburbs

    def _valid_coordinates(self, slug: str, raw: tuple[Any, Any]) -> Optional[Coordinates]:
        try:
            lat, lng = float(raw[0]), float(raw[1])
        except (TypeError, ValueError):
            self.issue("invalid-coordinates", slug, f"non-numeric coordinates {raw!r}")
            return None
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            self.issue("invalid-coordinates", slug, f"coordinates out of range ({lat}, {lng})")
            return None
        return Coordinates(lat, lng)

    def build_clusters(self) -> dict[str, Cluster]:
        return {
            slug: Cluster(slug=slug, name=self.cluster_names[slug], suburb_slugs=tuple(sorted(members)))
            for slug, members in self.cluster_suburbs.items()
        }


def _parse_coverage(doc: Any, path: Path) -> dict[str, frozenset[str]]:
    if not isinstance(doc, dict):
        raise DatasetError(path, "expected an object keyed by service id")
    return {
        hyphenate(service): frozenset(_slug_list(suburbs, path, service))
        for service, suburbs in doc.items()
    }


def _parse_curated(doc: Any, path: Path, aliases: Mapping[str, str]) -> dict[str, dict[str, tuple[str, ...]]]:
    if not isinstance(doc, dict):
        raise DatasetError(path, "expected an object keyed by cluster slug")
    curated: dict[str, dict[str, tuple[str, ...]]] = {}
    for cluster_key, lists in doc.items():
        if not isinstance(lists, dict):
            raise DatasetError(path, f"field '{cluster_key}' must map suburb slugs to neighbor lists")
        cluster = canonical_cluster(cluster_key, aliases)
        bucket = curated.setdefault(cluster, {})
        for suburb_key, neighbors in lists.items():
            bucket[hyphenate(suburb_key)] = tuple(
                _slug_list(neighbors, path, f"{cluster_key}.{suburb_key}")
            )
    return curated


def _parse_proximity(doc: Any, path: Path) -> dict[str, tuple[str, ...]]:
    if not isinstance(doc, dict):
        raise DatasetError(path, "expected an object keyed by suburb slug")
    nearby = doc.get("nearby", doc)
    if not isinstance(nearby, dict):
        raise DatasetError(path, "field 'nearby' must be an object")
    return {
        hyphenate(slug): tuple(_slug_list(items, path, f"nearby.{slug}"))
        for slug, items in nearby.items()
    }


def find_graph_issues(
    suburbs: Mapping[str, Suburb],
    adjacency: Mapping[str, tuple[str, ...]],
) -> list[IntegrityIssue]:
    """Reciprocity and coordinate coverage checks over a normalized dataset."""
    issues = []
    for slug in sorted(adjacency):
        for neighbor in adjacency[slug]:
            if slug not in adjacency.get(neighbor, ()):
                issues.append(IntegrityIssue(
                    "non-reciprocal", f"{slug}->{neighbor}",
                    f"'{neighbor}' does not list '{slug}' as adjacent",
                ))
    for slug in sorted(suburbs):
        if suburbs[slug].coordinates is None:
            issues.append(IntegrityIssue("missing-coordinates", slug, "no coordinates"))
    return issues


def load_dataset(
    config: DatasetConfig,
    proximity_limit: int = 12,
    strict: bool = False,
) -> GeoDataset:
    """
    Load and normalize every geo dataset.

    Args:
        config: Dataset locations.
        proximity_limit: Number of nearest suburbs kept per proximity ranking.
        strict: Raise DatasetIntegrityError instead of warning on integrity issues.

    Returns:
        The loaded GeoDataset.

    Raises:
        FileNotFoundError: If a required dataset file is missing.
        DatasetError: If any dataset file is malformed.
        DatasetIntegrityError: If strict and integrity issues were found.
    """
    builder = _DatasetBuilder(config)

    # Required sources
    registry_path = config.path(config.suburbs)
    clusters_path = config.path(config.clusters)
    adjacency_path = config.path(config.adjacency)
    registry_doc = _read_json(registry_path, "suburbs", required=True)
    clusters_doc = _read_json(clusters_path, "clusters", required=True)
    adjacency_doc = _read_json(adjacency_path, "adjacency", required=True)

    builder.load_registry(registry_doc, registry_path)

    # Optional sources
    coordinates_path = config.path(config.coordinates)
    coordinates_doc = _read_json(coordinates_path, "coordinates", required=False)
    if coordinates_doc is not None:
        builder.load_coordinates(coordinates_doc, coordinates_path)

    builder.load_clusters(clusters_doc, clusters_path)
    adjacency = builder.parse_adjacency(adjacency_doc, adjacency_path, "adjacency")

    overrides = {}
    overrides_path = config.path(config.adjacency_overrides)
    overrides_doc = _read_json(overrides_path, "adjacency_overrides", required=False)
    if overrides_doc is not None:
        overrides = builder.parse_adjacency(overrides_doc, overrides_path, "adjacency override")

    coverage = {}
    coverage_path = config.path(config.coverage)
    coverage_doc = _read_json(coverage_path, "coverage", required=False)
    if coverage_doc is not None:
        coverage = _parse_coverage(coverage_doc, coverage_path)

    curated = {}
    curated_path = config.path(config.curated_neighbors)
    curated_doc = _read_json(curated_path, "curated_neighbors", required=False)
    if curated_doc is not None:
        curated = _parse_curated(curated_doc, curated_path, builder.aliases)

    proximity = {}
    proximity_path = config.path(config.proximity)
    proximity_doc = _read_json(proximity_path, "proximity", required=False)
    if proximity_doc is not None:
        proximity = _parse_proximity(proximity_doc, proximity_path)

    suburbs = builder.build_suburbs()
    clusters = builder.build_clusters()
    issues = builder.issues + find_graph_issues(suburbs, adjacency)

    logger.info(
        f"Loaded geo datasets: suburbs={len(suburbs)}, clusters={len(clusters)}, "
        f"adjacency={len(adjacency)}, covered_services={len(coverage)}"
    )

    if issues:
        counts = Counter(issue.kind for issue in issues)
        summary = ", ".join(f"{kind}={count}" for kind, count in sorted(counts.items()))
        if strict:
            raise DatasetIntegrityError(issues)
        logger.warning(f"Found {len(issues)} data-integrity issues ({summary})")
        for issue in issues:
            logger.debug(f"Integrity issue: {issue}")

    return GeoDataset(
        suburbs=suburbs,
        clusters=clusters,
        adjacency=adjacency,
        coverage=coverage,
        curated=curated,
        adjacency_overrides=overrides,
        precomputed_proximity=proximity,
        proximity_limit=proximity_limit,
        issues=issues,
    )
