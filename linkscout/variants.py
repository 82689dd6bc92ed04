"""
Policy variant generation for Link Scout sweeps.

Produces a deterministic list of scoring-weight configurations around a
baseline: scaled tweaks of each weight, additive distance-scale deltas and a
couple of hand-picked combinations.
"""

import math
from dataclasses import dataclass, replace

from .config import PolicyWeights

SCALAR_WEIGHTS = (
    "weight_cluster",
    "weight_distance",
    "weight_reciprocal_edge",
    "weight_hub_damping",
)

# Report names for variant kinds
WEIGHT_NAMES = {
    "weight_cluster": "weightCluster",
    "weight_distance": "weightDistance",
    "weight_reciprocal_edge": "weightReciprocalEdge",
    "weight_hub_damping": "weightHubDamping",
    "distance_scale_km": "distanceScaleKm",
}

SCALE_FACTORS = {
    "small": (0.85, 0.95, 1.05, 1.15),
    "medium": (0.8, 0.9, 1.1, 1.2),
}

DISTANCE_DELTAS_KM = {
    "small": (-5, -2, 0, 2, 5),
    "medium": (-8, -5, -2, 0, 2, 5, 8),
}

MIN_DISTANCE_SCALE_KM = 1.0


@dataclass(frozen=True)
class PolicyVariant:
    """One weight configuration to evaluate."""
    kind: str  # baseline, tweak:<weightName> or combo:<name>
    weights: PolicyWeights


def _scaled(value: float, factor: float) -> float:
    return round(value * factor, 4)


def _distance_scale(value: float) -> float:
    # Whole kilometers, half rounds up
    return max(MIN_DISTANCE_SCALE_KM, float(math.floor(value + 0.5)))


def expand_variants(baseline: PolicyWeights, mode: str = "small") -> list[PolicyVariant]:
    """
    Build every variant for a sweep mode, duplicates included.

    Raises:
        ValueError: If mode is not "small" or "medium".
    """
    if mode not in SCALE_FACTORS:
        raise ValueError(f"Unknown variant mode: {mode!r} (expected 'small' or 'medium')")

    variants = [PolicyVariant("baseline", baseline)]

    for attr in SCALAR_WEIGHTS:
        for factor in SCALE_FACTORS[mode]:
            weights = replace(baseline, **{attr: _scaled(getattr(baseline, attr), factor)})
            variants.append(PolicyVariant(f"tweak:{WEIGHT_NAMES[attr]}", weights))

    for delta in DISTANCE_DELTAS_KM[mode]:
        weights = replace(baseline, distance_scale_km=_distance_scale(baseline.distance_scale_km + delta))
        variants.append(PolicyVariant("tweak:distanceScaleKm", weights))

    variants.append(PolicyVariant(
        "combo:distance+hub",
        replace(
            baseline,
            weight_distance=_scaled(baseline.weight_distance, 1.1),
            weight_hub_damping=_scaled(baseline.weight_hub_damping, 1.1),
        ),
    ))
    variants.append(PolicyVariant(
        "combo:cluster+local",
        replace(
            baseline,
            weight_cluster=_scaled(baseline.weight_cluster, 1.1),
            distance_scale_km=_distance_scale(baseline.distance_scale_km - 2),
        ),
    ))
    return variants


def generate_variants(baseline: PolicyWeights, mode: str = "small") -> list[PolicyVariant]:
    """
    Build the variants for a sweep, keeping the first variant for each
    distinct weight signature. The baseline is always first.
    """
    seen = set()
    unique = []
    for variant in expand_variants(baseline, mode):
        signature = variant.weights.signature()
        if signature in seen:
            continue
        seen.add(signature)
        unique.append(variant)
    return unique
