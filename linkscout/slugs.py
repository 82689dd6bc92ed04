"""
Slug canonicalization for Link Scout.

Every dataset names suburbs and clusters slightly differently ("Springfield
Lakes", "springfield_lakes", "Ipswich-Region"). These helpers reduce all of
them to one canonical form so that cross-references between files resolve.
"""

import re
from typing import Mapping, Optional

# Runs of anything that is not a lower-case letter or digit become one hyphen
NON_SLUG_PATTERN = re.compile(r'[^a-z0-9]+')

DATASET_SUFFIXES = ("-city", "-region")

DIRECTIONAL_PATTERNS = [
    re.compile(r'-(north|south)(east|west)$'),
    re.compile(r'-(north|south|east|west|central)$'),
    re.compile(r'-(inner|outer|metro|greater)$'),
]


def hyphenate(value: Optional[str]) -> str:
    """
    Normalize a free-form name or slug into a hyphenated lower-case slug.

    Examples:
        "Springfield Lakes" -> "springfield-lakes"
        "St. Lucia" -> "st-lucia"
        "  REDBANK_PLAINS " -> "redbank-plains"
    """
    if not value:
        return ""
    text = str(value).strip().lower()
    text = text.replace("'", "")
    return NON_SLUG_PATTERN.sub("-", text).strip("-")


def strip_dataset_suffix(slug: str) -> str:
    """Remove a trailing "-city" or "-region" dataset suffix."""
    for suffix in DATASET_SUFFIXES:
        if slug.endswith(suffix) and len(slug) > len(suffix):
            return slug[:-len(suffix)]
    return slug


def strip_directional(slug: str) -> str:
    """
    Remove trailing directional qualifiers such as "-north" or "-southeast".

    Patterns apply in sequence, so "brisbane-inner-north" becomes "brisbane".
    """
    for pattern in DIRECTIONAL_PATTERNS:
        stripped = pattern.sub("", slug)
        if stripped:
            slug = stripped
    return slug


def canonical_cluster(value: Optional[str], aliases: Optional[Mapping[str, str]] = None) -> str:
    """
    Canonicalize a cluster slug.

    Aliases are consulted on the raw hyphenated slug first and again after
    suffix stripping, so both "ipswich-region" and "ipswich-city" can be
    mapped explicitly while still falling back to "ipswich".
    """
    slug = hyphenate(value)
    if not slug:
        return ""
    aliases = aliases or {}
    if slug in aliases:
        return hyphenate(aliases[slug])
    bare = strip_directional(strip_dataset_suffix(slug))
    if bare in aliases:
        return hyphenate(aliases[bare])
    return bare


def titleize(slug: str) -> str:
    """Turn a slug back into a display name: "redbank-plains" -> "Redbank Plains"."""
    return " ".join(part.capitalize() for part in slug.split("-") if part)
