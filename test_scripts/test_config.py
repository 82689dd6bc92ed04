#!/usr/bin/env python3
"""
Tests for configuration loading.
"""

import os
import sys

import pytest
import yaml

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from linkscout.config import Config, PolicyWeights, generate_example_config, load_config


def _write(tmp_path, data, name="linkscout.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data) if not isinstance(data, str) else data)
    return str(path)


def test_defaults_when_default_file_missing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LINKSCOUT_CONFIG", raising=False)
    config = load_config()
    assert config.services == ["bond-cleaning"]
    assert config.policies.scoring == PolicyWeights()
    assert config.policies.neighbors_max == 6
    assert config.sweep.variants == "small"
    assert config.reporting.output_dir == "__reports/linkscout"


def test_explicit_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_env_var_path(tmp_path, monkeypatch):
    path = _write(tmp_path, {"services": ["spring-cleaning"]}, name="site.yaml")
    monkeypatch.setenv("LINKSCOUT_CONFIG", path)
    assert load_config().services == ["spring-cleaning"]


def test_policy_block_camel_case(tmp_path):
    path = _write(tmp_path, {
        "policies": {
            "scoring": {"weightCluster": 2, "distanceScaleKm": 15, "weightHubDamping": 0.25},
            "neighborsMax": 4,
            "neighborsMin": 2,
            "globalInboundCap": 12,
            "enforceReciprocity": True,
        },
    })
    config = load_config(path)
    scoring = config.policies.scoring
    assert scoring.weight_cluster == 2.0
    assert scoring.distance_scale_km == 15.0
    assert scoring.weight_hub_damping == 0.25
    assert scoring.weight_distance == 1.0
    assert config.policies.neighbors_max == 4
    assert config.policies.neighbors_min == 2
    assert config.policies.global_inbound_cap == 12
    assert config.policies.enforce_reciprocity is True


def test_policy_block_inline_snake_case(tmp_path):
    path = _write(tmp_path, {"policies": {"weight_distance": 0.5, "neighbors_max": 2, "neighbors_min": 5}})
    config = load_config(path)
    assert config.policies.scoring.weight_distance == 0.5
    # Floor is clipped to the maximum
    assert config.policies.neighbors_min == 2


def test_services_and_datasets(tmp_path):
    path = _write(tmp_path, {
        "services": [{"id": "Bond-Cleaning"}, "spring-cleaning"],
        "datasets": {"root": "data", "coverage": None, "cluster_aliases": {"west-moreton": "ipswich"}},
        "validation": {"strict": True},
    })
    config = load_config(path)
    assert config.services == ["bond-cleaning", "spring-cleaning"]
    assert config.primary_service == "bond-cleaning"
    assert config.datasets.root == "data"
    assert config.datasets.coverage is None
    assert config.datasets.suburbs == "suburbs.json"
    assert config.datasets.cluster_aliases == {"west-moreton": "ipswich"}
    assert config.validation.strict is True


def test_invalid_values(tmp_path):
    path = _write(tmp_path, {
        "policies": {"scoring": {"weightDistance": -1, "distanceScaleKm": 0}},
        "sweep": {"variants": "huge"},
    })
    with pytest.raises(ValueError) as excinfo:
        load_config(path)
    message = str(excinfo.value)
    assert "weightDistance" in message
    assert "distanceScaleKm" in message
    assert "sweep.variants" in message


def test_non_numeric_weight(tmp_path):
    path = _write(tmp_path, {"policies": {"weightCluster": "heavy"}})
    with pytest.raises(ValueError) as excinfo:
        load_config(path)
    assert "must be a number" in str(excinfo.value)


def test_null_and_non_numeric_limits(tmp_path):
    path = _write(tmp_path, "policies:\n  neighborsMax: null\n  proximityLimit: many\n")
    with pytest.raises(ValueError) as excinfo:
        load_config(path)
    message = str(excinfo.value)
    assert "policies.neighborsMax must be an integer, got None" in message
    assert "policies.proximityLimit must be an integer, got 'many'" in message


def test_non_numeric_sweep_top(tmp_path):
    path = _write(tmp_path, {"sweep": {"top": "ten"}, "policies": {"globalInboundCap": "lots"}})
    with pytest.raises(ValueError) as excinfo:
        load_config(path)
    message = str(excinfo.value)
    assert "sweep.top must be an integer" in message
    assert "policies.globalInboundCap must be an integer" in message


def test_whole_float_limits_and_null_cap(tmp_path):
    path = _write(tmp_path, {"policies": {"neighborsMax": 4.0, "globalInboundCap": None}})
    config = load_config(path)
    assert config.policies.neighbors_max == 4
    assert isinstance(config.policies.neighbors_max, int)
    assert config.policies.neighbors_min == 3
    assert config.policies.global_inbound_cap is None


def test_limits_below_minimum(tmp_path):
    path = _write(tmp_path, {"policies": {"neighborsMax": 0, "globalInboundCap": 0}})
    with pytest.raises(ValueError) as excinfo:
        load_config(path)
    message = str(excinfo.value)
    assert "policies.neighborsMax must be at least 1, got 0" in message
    assert "policies.globalInboundCap must be at least 1, got 0" in message


def test_non_mapping_document(tmp_path):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, "- just\n- a list\n"))


def test_validate_defaults():
    assert Config().validate() == []


def test_example_config_round_trips(tmp_path):
    output = tmp_path / "linkscout.example.yaml"
    generate_example_config(str(output))
    config = load_config(str(output))
    assert config.services == ["bond-cleaning", "spring-cleaning", "bathroom-deep-clean"]
    assert config.policies.scoring == PolicyWeights()
    assert config.datasets.cluster_aliases == {"ipswich-region": "ipswich"}


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
