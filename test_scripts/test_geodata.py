#!/usr/bin/env python3
"""
Tests for the geo dataset loader.
"""

import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from geo_fixtures import write_dataset
from linkscout.config import DatasetConfig
from linkscout.geodata import (
    DatasetError,
    DatasetIntegrityError,
    load_dataset,
)


def test_loads_registry_and_canonicalizes_slugs(dataset):
    assert len(dataset.suburbs) == 9
    assert dataset.has_suburb("St Lucia")
    assert dataset.suburb("st-lucia").name == "St Lucia"
    assert dataset.cluster_of("redbank-plains") == "ipswich"
    assert dataset.cluster_of("toowong") == "brisbane"
    assert dataset.cluster_members("ipswich") == ("booval", "ipswich", "redbank-plains", "springfield-lakes")
    assert [c.slug for c in dataset.clusters] == ["brisbane", "ipswich", "logan", "outback"]


def test_adjacency_shapes_are_normalized(dataset):
    assert dataset.adjacency("booval") == ("ipswich", "redbank-plains")
    assert dataset.adjacency("st-lucia") == ("toowong",)
    assert dataset.adjacency("lonely-creek") == ()


def test_coordinate_shapes(dataset):
    assert dataset.coordinates("st-lucia").lat == pytest.approx(-27.4975)
    assert dataset.coordinates("logan-central").lng == pytest.approx(153.1094)
    assert dataset.coordinates("lonely-creek") is None


def test_cluster_map_shape(tmp_path):
    config = write_dataset(
        tmp_path,
        clusters={
            "ipswich-region": ["ipswich", "booval", "redbank-plains", "springfield-lakes"],
            "ipswich": ["lonely-creek"],
            "brisbane-city": ["indooroopilly", "toowong", "st-lucia"],
        },
    )
    dataset = load_dataset(config)
    # Both raw keys canonicalize to the same cluster
    assert dataset.cluster_of("lonely-creek") == "ipswich"
    assert "lonely-creek" in dataset.cluster_members("ipswich")
    assert dataset.cluster_of("logan-central") is None


def test_distance_and_proximity(dataset):
    assert 2.5 < dataset.distance_km("ipswich", "booval") < 3.1
    assert dataset.distance_km("ipswich", "lonely-creek") is None

    ranking = dataset.proximity("ipswich")
    assert ranking[:3] == ("booval", "redbank-plains", "springfield-lakes")
    assert "ipswich" not in ranking
    assert "lonely-creek" not in ranking
    assert dataset.proximity("lonely-creek") == ()
    # Cached result is reused
    assert dataset.proximity("ipswich") is ranking


def test_proximity_limit(dataset_config):
    dataset = load_dataset(dataset_config, proximity_limit=2)
    assert dataset.proximity("ipswich") == ("booval", "redbank-plains")


def test_precomputed_proximity_file(tmp_path):
    config = write_dataset(
        tmp_path,
        proximity={"nearby": {"ipswich": [{"slug": "toowong"}, "unknown-place", "ipswich", "booval"]}},
    )
    dataset = load_dataset(config)
    assert dataset.proximity("ipswich") == ("toowong", "booval")
    # Suburbs without an entry are still ranked from coordinates
    assert dataset.proximity("booval")[0] == "ipswich"


def test_missing_required_file(tmp_path):
    config = write_dataset(tmp_path, adjacency=None)
    with pytest.raises(FileNotFoundError) as excinfo:
        load_dataset(config)
    assert "adjacency" in str(excinfo.value)
    assert "areas.adj.json" in str(excinfo.value)


def test_malformed_json_names_file(tmp_path):
    config = write_dataset(tmp_path, clusters="{not json")
    with pytest.raises(DatasetError) as excinfo:
        load_dataset(config)
    assert "areas.clusters.json" in str(excinfo.value)
    assert "invalid JSON" in str(excinfo.value)


def test_wrong_shape_names_field(tmp_path):
    config = write_dataset(tmp_path, adjacency={"ipswich": "booval"})
    with pytest.raises(DatasetError) as excinfo:
        load_dataset(config)
    assert "'ipswich'" in str(excinfo.value)

    config = write_dataset(tmp_path, clusters=["ipswich"])
    with pytest.raises(DatasetError):
        load_dataset(config)


def test_optional_sources_degrade(tmp_path):
    config = write_dataset(tmp_path, coordinates=None)
    dataset = load_dataset(config)
    assert dataset.coordinates("ipswich") is None
    assert dataset.distance_km("ipswich", "booval") is None
    assert dataset.proximity("ipswich") == ()
    assert dataset.curated_neighbors("booval") == ()
    assert dataset.mocked_adjacency("ipswich") == ()
    assert dataset.is_open_service("bond-cleaning")


def test_optional_sources_can_be_disabled(tmp_path):
    write_dataset(tmp_path)
    config = DatasetConfig(root=str(tmp_path), coordinates=None, coverage=None)
    dataset = load_dataset(config)
    assert dataset.coordinates("ipswich") is None


def test_coverage_map(tmp_path):
    config = write_dataset(tmp_path, coverage={"Bond Cleaning": ["ipswich", "Booval"]})
    dataset = load_dataset(config)
    assert not dataset.is_open_service("bond-cleaning")
    assert dataset.is_covered("bond-cleaning", "booval")
    assert not dataset.is_covered("bond-cleaning", "toowong")
    assert dataset.is_open_service("spring-cleaning")
    assert dataset.is_covered("spring-cleaning", "toowong")
    assert dataset.covered_services == ["bond-cleaning"]


def test_curated_neighbors_scoped_to_cluster(tmp_path):
    config = write_dataset(
        tmp_path,
        curated_neighbors={"ipswich-region": {"Booval": ["springfield-lakes", "ipswich"]}},
    )
    dataset = load_dataset(config)
    assert dataset.curated_neighbors("booval") == ("springfield-lakes", "ipswich")
    assert dataset.curated_neighbors("toowong") == ()


def test_integrity_issues_are_recorded(dataset):
    kinds = {(issue.kind, issue.subject) for issue in dataset.issues}
    assert ("non-reciprocal", "indooroopilly->st-lucia") in kinds
    assert ("non-reciprocal", "logan-central->springfield-lakes") in kinds
    assert ("missing-coordinates", "lonely-creek") in kinds
    assert len(dataset.issues) == 3


def test_unknown_references_are_dropped(tmp_path):
    clusters = {"ipswich": ["ipswich", "booval", "atlantis"], "logan": ["booval"]}
    adjacency = {"ipswich": ["booval", "atlantis"], "booval": ["ipswich"], "atlantis": ["ipswich"]}
    config = write_dataset(tmp_path, clusters=clusters, adjacency=adjacency)
    dataset = load_dataset(config)

    assert not dataset.has_suburb("atlantis")
    assert dataset.adjacency("ipswich") == ("booval",)
    # First membership wins
    assert dataset.cluster_of("booval") == "ipswich"

    kinds = sorted(issue.kind for issue in dataset.issues if issue.kind != "missing-coordinates")
    assert kinds == ["duplicate-membership", "unknown-suburb", "unknown-suburb", "unknown-suburb"]


def test_strict_mode_raises(dataset_config):
    with pytest.raises(DatasetIntegrityError) as excinfo:
        load_dataset(dataset_config, strict=True)
    assert len(excinfo.value.issues) == 3


def test_invalid_coordinates(tmp_path):
    coordinates = {"ipswich": {"lat": 127.0, "lng": 152.7}, "booval": {"lat": "north", "lng": 1}}
    dataset = load_dataset(write_dataset(tmp_path, coordinates=coordinates))
    assert dataset.coordinates("ipswich") is None
    assert dataset.coordinates("booval") is None
    invalid = [issue.subject for issue in dataset.issues if issue.kind == "invalid-coordinates"]
    assert sorted(invalid) == ["booval", "ipswich"]


def test_invalid_utf8_names_file(tmp_path):
    config = write_dataset(tmp_path)
    (tmp_path / config.adjacency).write_bytes(b'{"ipswich": ["\xff\xfe"]}')
    with pytest.raises(DatasetError) as excinfo:
        load_dataset(config)
    assert "areas.adj.json" in str(excinfo.value)
    assert "UTF-8" in str(excinfo.value)


def test_unreadable_file_names_file(tmp_path):
    config = write_dataset(tmp_path, clusters=None)
    # A directory where the file should be cannot be opened for reading
    (tmp_path / config.clusters).mkdir()
    with pytest.raises(DatasetError) as excinfo:
        load_dataset(config)
    assert "areas.clusters.json" in str(excinfo.value)
