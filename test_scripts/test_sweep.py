#!/usr/bin/env python3
"""
Tests for the policy sweep.
"""

import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from linkscout.config import Config, PolicyWeights
from linkscout.metrics import LinkMetrics
from linkscout.sweep import PolicySweeper, SweepReport, SweepResult, rank_results, ranking_key


def _result(kind, gini, avg_km, purity):
    return SweepResult(kind, PolicyWeights(), LinkMetrics(gini, avg_km, purity, total_links=10))


def test_rank_results_order():
    results = [
        _result("no-distance", 0.1, None, 0.9),
        _result("far", 0.1, 5.0, 0.9),
        _result("fair", 0.05, 20.0, 0.1),
        _result("near-loose", 0.1, 4.0, 0.5),
        _result("near-tight", 0.1, 4.0, 0.8),
    ]
    ranked = [r.kind for r in rank_results(results)]
    assert ranked == ["fair", "near-tight", "near-loose", "far", "no-distance"]


def test_rank_results_is_stable():
    results = [_result(kind, 0.2, 3.0, 0.5) for kind in ("first", "second", "third")]
    assert [r.kind for r in rank_results(results)] == ["first", "second", "third"]


def test_sweep_runs_every_variant(dataset):
    report = PolicySweeper(dataset, Config()).run()

    assert report.service == "bond-cleaning"
    assert report.mode == "small"
    assert report.variants_tried == 23
    keys = [ranking_key(result) for result in report.ranking]
    assert keys == sorted(keys)
    assert "baseline" in {result.kind for result in report.ranking}
    for result in report.ranking:
        assert 0.0 <= result.metrics.gini <= 1.0
        assert 0.0 <= result.metrics.cluster_purity <= 1.0


def test_sweep_is_deterministic(scenario_dataset):
    sweeper = PolicySweeper(scenario_dataset, Config())
    first = [r.to_dict() for r in sweeper.run(mode="medium").ranking]
    second = [r.to_dict() for r in sweeper.run(mode="medium").ranking]
    assert first == second
    assert len(first) == 25


def test_sweep_service_override(dataset):
    report = PolicySweeper(dataset, Config()).run(service="Spring Cleaning")
    assert report.service == "spring-cleaning"


def test_sweep_unknown_mode(dataset):
    with pytest.raises(ValueError):
        PolicySweeper(dataset, Config()).run(mode="large")


def test_report_payload():
    report = SweepReport(
        service="bond-cleaning",
        mode="small",
        ranking=[_result("baseline", 0.1, 3.5, 0.75)],
        generated_at="2024-05-01T00:00:00+00:00",
    )
    payload = report.to_dict()
    assert payload["generatedAt"] == "2024-05-01T00:00:00+00:00"
    assert payload["service"] == "bond-cleaning"
    assert payload["variantsTried"] == 1
    entry = payload["ranking"][0]
    assert entry["kind"] == "baseline"
    assert entry["weights"] == {
        "weightCluster": 1.0,
        "weightDistance": 1.0,
        "weightReciprocalEdge": 0.5,
        "weightHubDamping": 0.5,
        "distanceScaleKm": 10.0,
    }
    assert entry["metrics"] == {"gini": 0.1, "avgKm": 3.5, "clusterPurity": 0.75, "totalLinks": 10}
    assert report.top(5) == report.ranking


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
