#!/usr/bin/env python3
"""
Tests for the geo doctor.
"""

import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from linkscout.doctor import GeoDoctor, connected_components
from linkscout.geodata import DatasetIntegrityError


def test_graph_statistics(dataset):
    report = GeoDoctor(dataset).examine()

    assert report.nodes == 9
    assert report.directed_edges == 16
    assert report.undirected_edges == 9
    assert report.components == 2
    assert report.largest_component_ratio == 0.8889
    assert report.degree_min == 0
    assert report.degree_max == 3
    assert report.cross_cluster_ratio == 0.1875
    assert report.asym_pairs == [
        ("indooroopilly", "st-lucia"),
        ("logan-central", "springfield-lakes"),
    ]


def test_issue_counts(dataset):
    report = GeoDoctor(dataset).examine()
    assert not report.ok
    assert report.issue_counts() == {"missing-coordinates": 1, "non-reciprocal": 2}


def test_report_payload(dataset):
    payload = GeoDoctor(dataset).examine().to_dict()
    assert payload["edges"] == {"directed": 16, "undirected": 9}
    assert payload["asymPairs"][0] == ["indooroopilly", "st-lucia"]
    assert {"kind", "subject", "detail"} == set(payload["issues"][0])
    assert "generatedAt" in payload


def test_check_strict(dataset):
    assert GeoDoctor(dataset).check(strict=False).components == 2
    with pytest.raises(DatasetIntegrityError) as excinfo:
        GeoDoctor(dataset).check(strict=True)
    assert len(excinfo.value.issues) == 3


def test_clean_dataset_passes_strict(scenario_dataset):
    report = GeoDoctor(scenario_dataset).check(strict=True)
    assert report.ok
    assert report.components == 1
    assert report.largest_component_ratio == 1.0
    assert report.asym_pairs == []


def test_connected_components():
    components = connected_components(
        ["a", "b", "c", "d"],
        {"a": ("b",), "c": ()},
    )
    assert components == [["a", "b"], ["c"], ["d"]]


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
