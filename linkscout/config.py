"""
Configuration management for Link Scout.

Handles loading and validating configuration from YAML files.
"""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml


DEFAULT_CONFIG_PATH = "linkscout.yaml"

# camelCase keys used by the site's policy block -> dataclass attribute names
POLICY_WEIGHT_KEYS = {
    "weightCluster": "weight_cluster",
    "weightDistance": "weight_distance",
    "weightReciprocalEdge": "weight_reciprocal_edge",
    "weightHubDamping": "weight_hub_damping",
    "distanceScaleKm": "distance_scale_km",
}

POLICY_LIMIT_KEYS = {
    "neighborsMax": "neighbors_max",
    "neighborsMin": "neighbors_min",
    "globalInboundCap": "global_inbound_cap",
    "enforceReciprocity": "enforce_reciprocity",
    "proximityLimit": "proximity_limit",
}


@dataclass(frozen=True)
class PolicyWeights:
    """Weights of the multi-factor link score."""
    weight_cluster: float = 1.0
    weight_distance: float = 1.0
    weight_reciprocal_edge: float = 0.5
    weight_hub_damping: float = 0.5
    distance_scale_km: float = 10.0

    def signature(self) -> tuple:
        """Full weight signature, used to de-duplicate variants."""
        return (
            self.weight_cluster,
            self.weight_distance,
            self.weight_reciprocal_edge,
            self.weight_hub_damping,
            self.distance_scale_km,
        )

    def to_dict(self) -> dict[str, float]:
        """Serialize with the camelCase keys used in reports."""
        values = asdict(self)
        return {camel: float(values[attr]) for camel, attr in POLICY_WEIGHT_KEYS.items()}

    def validate(self) -> list[str]:
        errors = []
        for camel, attr in POLICY_WEIGHT_KEYS.items():
            value = getattr(self, attr)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                errors.append(f"policies.{camel} must be a number, got {value!r}")
            elif value < 0:
                errors.append(f"policies.{camel} must be non-negative, got {value}")
        if isinstance(self.distance_scale_km, (int, float)) and self.distance_scale_km <= 0:
            errors.append(
                f"policies.distanceScaleKm must be positive, got {self.distance_scale_km}"
            )
        return errors


@dataclass
class DatasetConfig:
    """Locations of the geo datasets, relative to root."""
    root: str = "src/data"
    suburbs: str = "suburbs.json"
    clusters: str = "areas.clusters.json"
    adjacency: str = "areas.adj.json"
    # Optional sources (missing files degrade to empty maps)
    coordinates: Optional[str] = "suburbs.meta.json"
    coverage: Optional[str] = "serviceCoverage.json"
    curated_neighbors: Optional[str] = "geo.neighbors.json"
    adjacency_overrides: Optional[str] = "adjacency.json"
    proximity: Optional[str] = "proximity.json"
    cluster_aliases: dict[str, str] = field(default_factory=dict)

    def path(self, name: Optional[str]) -> Optional[Path]:
        """Resolve a dataset file name against the dataset root."""
        if not name:
            return None
        return Path(self.root) / name


@dataclass
class PolicyConfig:
    """Link selection policy."""
    scoring: PolicyWeights = field(default_factory=PolicyWeights)
    neighbors_max: int = 6
    neighbors_min: int = 3
    global_inbound_cap: Optional[int] = None  # None = no cap
    enforce_reciprocity: bool = False
    proximity_limit: int = 12  # Nearest suburbs kept per proximity ranking


@dataclass
class SweepConfig:
    """Policy sweep parameters."""
    variants: str = "small"
    top: int = 10


@dataclass
class ReportingConfig:
    """Reporting configuration."""
    output_dir: str = "__reports/linkscout"
    write_markdown: bool = True
    write_html: bool = True


@dataclass
class ValidationConfig:
    """Data-integrity handling."""
    strict: bool = False  # Integrity issues abort the run instead of warning


@dataclass
class Config:
    """Main configuration container."""
    datasets: DatasetConfig = field(default_factory=DatasetConfig)
    services: list[str] = field(default_factory=lambda: ["bond-cleaning"])
    policies: PolicyConfig = field(default_factory=PolicyConfig)
    sweep: SweepConfig = field(default_factory=SweepConfig)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    @property
    def primary_service(self) -> str:
        return self.services[0] if self.services else "bond-cleaning"

    def validate(self) -> list[str]:
        """
        Validate the configuration and return a list of errors.

        Returns:
            List of validation error messages. Empty if valid.
        """
        errors = []

        errors.extend(self.policies.scoring.validate())

        limits = [
            ("policies.neighborsMax", self.policies.neighbors_max, 1),
            ("policies.neighborsMin", self.policies.neighbors_min, 0),
            ("policies.proximityLimit", self.policies.proximity_limit, 1),
            ("sweep.top", self.sweep.top, 1),
        ]
        if self.policies.global_inbound_cap is not None:
            limits.append(("policies.globalInboundCap", self.policies.global_inbound_cap, 1))
        for name, value, minimum in limits:
            if not _is_int(value):
                errors.append(f"{name} must be an integer, got {value!r}")
            elif value < minimum:
                errors.append(f"{name} must be at least {minimum}, got {value}")

        if self.sweep.variants not in ("small", "medium"):
            errors.append(f"sweep.variants must be 'small' or 'medium', got {self.sweep.variants!r}")

        for key in ("suburbs", "clusters", "adjacency"):
            if not getattr(self.datasets, key):
                errors.append(f"datasets.{key} must name a file")

        return errors


def _pick(data: dict, camel: str, snake: str, default):
    """Read a policy value by its camelCase key, falling back to snake_case."""
    if camel in data:
        return data[camel]
    return data.get(snake, default)


def _as_float(value):
    # Non-numeric values are passed through so validate() can report them
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return value


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_int(value):
    # Same pass-through as _as_float; whole floats such as 6.0 are accepted
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _load_policies(policy_data: dict, current: PolicyConfig) -> PolicyConfig:
    # Weights may sit under "scoring" (site config layout) or inline
    scoring_data = dict(policy_data)
    if isinstance(policy_data.get("scoring"), dict):
        scoring_data.update(policy_data["scoring"])

    weight_values = {
        attr: _as_float(_pick(scoring_data, camel, attr, getattr(current.scoring, attr)))
        for camel, attr in POLICY_WEIGHT_KEYS.items()
    }
    limit_values = {
        attr: _pick(policy_data, camel, attr, getattr(current, attr))
        for camel, attr in POLICY_LIMIT_KEYS.items()
    }

    neighbors_max = _as_int(limit_values["neighbors_max"])
    neighbors_min = _as_int(limit_values["neighbors_min"])
    if _is_int(neighbors_max) and _is_int(neighbors_min):
        neighbors_min = min(neighbors_min, neighbors_max)

    return PolicyConfig(
        scoring=PolicyWeights(**weight_values),
        neighbors_max=neighbors_max,
        neighbors_min=neighbors_min,
        global_inbound_cap=_as_int(limit_values["global_inbound_cap"]),
        enforce_reciprocity=bool(limit_values["enforce_reciprocity"]),
        proximity_limit=_as_int(limit_values["proximity_limit"]),
    )


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file. Defaults to the
                    LINKSCOUT_CONFIG environment variable, then 'linkscout.yaml'.
                    A missing default file yields the built-in defaults.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If an explicitly named configuration file doesn't exist.
        ValueError: If the configuration is invalid.
    """
    explicit = config_path is not None or "LINKSCOUT_CONFIG" in os.environ
    if config_path is None:
        config_path = os.environ.get("LINKSCOUT_CONFIG", DEFAULT_CONFIG_PATH)

    path = Path(config_path)
    if path.exists():
        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}
    elif explicit:
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}. "
            "Run with --init-config to generate an example configuration."
        )
    else:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")

    config = Config()

    # Load dataset locations
    if "datasets" in raw_config:
        ds_data = raw_config["datasets"] or {}
        defaults = config.datasets
        config.datasets = DatasetConfig(
            root=ds_data.get("root", defaults.root),
            suburbs=ds_data.get("suburbs", defaults.suburbs),
            clusters=ds_data.get("clusters", defaults.clusters),
            adjacency=ds_data.get("adjacency", defaults.adjacency),
            coordinates=ds_data.get("coordinates", defaults.coordinates),
            coverage=ds_data.get("coverage", defaults.coverage),
            curated_neighbors=ds_data.get("curated_neighbors", defaults.curated_neighbors),
            adjacency_overrides=ds_data.get("adjacency_overrides", defaults.adjacency_overrides),
            proximity=ds_data.get("proximity", defaults.proximity),
            cluster_aliases=dict(ds_data.get("cluster_aliases") or {}),
        )

    # Load services (plain ids or {id: ...} entries)
    if "services" in raw_config:
        services = []
        for entry in raw_config["services"] or []:
            if isinstance(entry, dict):
                entry = entry.get("id") or entry.get("slug")
            if entry:
                services.append(str(entry).strip().lower())
        config.services = services

    # Load link policy
    if "policies" in raw_config:
        config.policies = _load_policies(raw_config["policies"] or {}, config.policies)

    # Load sweep config
    if "sweep" in raw_config:
        sweep_data = raw_config["sweep"] or {}
        config.sweep = SweepConfig(
            variants=sweep_data.get("variants", config.sweep.variants),
            top=_as_int(sweep_data.get("top", config.sweep.top)),
        )

    # Load reporting config
    if "reporting" in raw_config:
        report_data = raw_config["reporting"] or {}
        config.reporting = ReportingConfig(
            output_dir=report_data.get("output_dir", config.reporting.output_dir),
            write_markdown=report_data.get("write_markdown", config.reporting.write_markdown),
            write_html=report_data.get("write_html", config.reporting.write_html),
        )

    # Load validation config
    if "validation" in raw_config:
        validation_data = raw_config["validation"] or {}
        config.validation = ValidationConfig(
            strict=bool(validation_data.get("strict", config.validation.strict)),
        )

    # Validate configuration
    errors = config.validate()
    if errors:
        raise ValueError(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    return config


def generate_example_config(output_path: str = "linkscout.example.yaml") -> None:
    """
    Generate an example configuration file with all available options.

    Args:
        output_path: Path where the example config will be written.
    """
    example_config = """# Link Scout Configuration
# Copy this file to linkscout.yaml and customize for your site.

# Geo datasets (paths are relative to root)
datasets:
  root: "src/data"
  suburbs: "suburbs.json"            # required
  clusters: "areas.clusters.json"    # required
  adjacency: "areas.adj.json"        # required
  coordinates: "suburbs.meta.json"   # optional, distance terms are 0 without it
  coverage: "serviceCoverage.json"   # optional, services not listed are offered everywhere
  curated_neighbors: "geo.neighbors.json"
  adjacency_overrides: "adjacency.json"
  proximity: "proximity.json"        # optional precomputed nearest-suburb lists
  cluster_aliases:
    ipswich-region: ipswich

# Services (the first one is the primary service for sweeps)
services:
  - bond-cleaning
  - spring-cleaning
  - bathroom-deep-clean

# Internal-link policy
policies:
  scoring:
    weightCluster: 1.0
    weightDistance: 1.0
    weightReciprocalEdge: 0.5
    weightHubDamping: 0.5
    distanceScaleKm: 10
  neighborsMax: 6
  neighborsMin: 3
  globalInboundCap: null     # e.g. 12 to stop any suburb from becoming a hub
  enforceReciprocity: false
  proximityLimit: 12

# Policy sweep
sweep:
  variants: small   # small = +-5%/+-15%, medium = +-10%/+-20%
  top: 10

# Report output
reporting:
  output_dir: "__reports/linkscout"
  write_markdown: true
  write_html: true

# Data-integrity handling (true = abort on any issue)
validation:
  strict: false
"""

    with open(output_path, "w") as f:
        f.write(example_config)

    print(f"Example configuration written to: {output_path}")
