"""
Link Scout - Geo-aware Internal Link Engine

Recommends related service x suburb links from a static geo dataset and
sweeps scoring-weight variants to find link policies that are fair, local
and cluster-coherent.
"""

__version__ = "1.0.0"
__author__ = "Link Scout"
