import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from geo_fixtures import scenario_dataset_docs, write_dataset
from linkscout.config import PolicyConfig
from linkscout.geodata import load_dataset


@pytest.fixture
def dataset_config(tmp_path):
    return write_dataset(tmp_path / "data")


@pytest.fixture
def dataset(dataset_config):
    return load_dataset(dataset_config)


@pytest.fixture
def scenario_dataset(tmp_path):
    return load_dataset(write_dataset(tmp_path / "scenario", **scenario_dataset_docs()))


@pytest.fixture
def policy():
    return PolicyConfig()
