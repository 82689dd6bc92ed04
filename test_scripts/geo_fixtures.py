"""
Sample geo datasets for the Link Scout tests.

A handful of South-East Queensland suburbs in three clusters, plus one
suburb with no coordinates and no neighbors.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from linkscout.config import DatasetConfig

SUBURBS = [
    {"slug": "ipswich", "name": "Ipswich"},
    {"slug": "booval", "name": "Booval"},
    {"slug": "redbank-plains", "name": "Redbank Plains"},
    {"slug": "springfield-lakes", "name": "Springfield Lakes"},
    {"slug": "indooroopilly", "name": "Indooroopilly"},
    {"slug": "toowong", "name": "Toowong"},
    {"name": "St Lucia"},
    {"slug": "logan-central", "name": "Logan Central"},
    {"slug": "lonely-creek", "name": "Lonely Creek"},
]

COORDINATES = {
    "ipswich": {"coordinates": {"lat": -27.6145, "lng": 152.7607}},
    "booval": {"coordinates": {"lat": -27.6136, "lng": 152.7891}},
    "redbank-plains": {"coordinates": {"lat": -27.6467, "lng": 152.8587}},
    "springfield-lakes": {"coordinates": {"lat": -27.6681, "lng": 152.9246}},
    "indooroopilly": {"coordinates": {"lat": -27.4986, "lng": 152.9736}},
    "toowong": {"coordinates": {"lat": -27.4848, "lng": 152.9925}},
    "st-lucia": {"lat": -27.4975, "lng": 153.0137},
    "logan-central": {"coordinates": {"latitude": -27.6392, "longitude": 153.1094}},
}

CLUSTERS = {
    "clusters": [
        {
            "slug": "ipswich-region",
            "name": "Ipswich",
            "suburbs": ["ipswich", "booval", "Redbank Plains", {"slug": "springfield-lakes"}],
        },
        {"slug": "brisbane-city", "name": "Brisbane", "suburbs": ["indooroopilly", "toowong", "st-lucia"]},
        {"slug": "logan", "name": "Logan", "suburbs": ["logan-central"]},
        {"slug": "outback", "name": "Outback", "suburbs": ["lonely-creek"]},
    ]
}

# indooroopilly -> st-lucia and logan-central -> springfield-lakes are one-way
ADJACENCY = {
    "ipswich": ["booval", "redbank-plains"],
    "booval": {"adjacent_suburbs": ["ipswich", "redbank-plains"]},
    "redbank-plains": ["booval", "ipswich", "springfield-lakes"],
    "springfield-lakes": ["redbank-plains", "indooroopilly"],
    "indooroopilly": ["toowong", "st-lucia", "springfield-lakes"],
    "toowong": ["indooroopilly", "st-lucia"],
    "St Lucia": ["toowong"],
    "logan-central": ["springfield-lakes"],
}

DEFAULT_DOCS = {
    "suburbs": SUBURBS,
    "clusters": CLUSTERS,
    "adjacency": ADJACENCY,
    "coordinates": COORDINATES,
}


def write_dataset(root: Path, **docs: Optional[Any]) -> DatasetConfig:
    """
    Write dataset files under root and return a DatasetConfig for them.

    Keyword arguments replace the default documents by DatasetConfig field
    name; passing None leaves that file out.
    """
    root = Path(root)
    root.mkdir(parents=True, exist_ok=True)
    config = DatasetConfig(root=str(root))
    files = dict(DEFAULT_DOCS)
    files.update(docs)
    for key, doc in files.items():
        if doc is None:
            continue
        path = root / getattr(config, key)
        if isinstance(doc, str):
            path.write_text(doc)
        else:
            path.write_text(json.dumps(doc))
    return config


def scenario_dataset_docs() -> dict[str, Any]:
    """
    Three suburbs on one meridian: zulu shares alpha's cluster, bravo does not,
    both are 3 km from alpha and fully reciprocal with it.
    """
    km_in_degrees = 3 / 111.19492664455873
    return {
        "suburbs": ["alpha", "bravo", "zulu"],
        "clusters": {"ipswich": ["alpha", "zulu"], "logan": ["bravo"]},
        "adjacency": {"alpha": ["bravo", "zulu"], "bravo": ["alpha"], "zulu": ["alpha"]},
        "coordinates": {
            "alpha": {"coordinates": {"lat": -27.6, "lng": 152.8}},
            "bravo": {"coordinates": {"lat": -27.6 + km_in_degrees, "lng": 152.8}},
            "zulu": {"coordinates": {"lat": -27.6 - km_in_degrees, "lng": 152.8}},
        },
    }
