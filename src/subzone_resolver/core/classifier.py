"""
Input classification and normalization.

Decides what kind of location a user typed (postal code, street address,
named project, or an ambiguous mix) from simple pattern heuristics, so the
caller never has to ask.
"""

import re
from typing import Optional

from ..cache.models import InputType

# Common Singapore street-type words and their abbreviations
STREET_KEYWORDS = [
    "lorong", "jalan", "street", "st", "avenue", "ave", "road", "rd",
    "drive", "dr", "crescent", "cres", "close", "walk", "way", "link",
    "place", "pl", "lane", "terrace", "park", "grove", "central", "north",
    "south", "east", "west", "boulevard", "blvd", "court", "ct",
]

# Building, estate and point-of-interest words
PROJECT_INDICATORS = [
    "edge", "estate", "residence", "condo", "condominium", "apartment",
    "apartments", "villa", "villas", "park", "gardens", "court", "plaza",
    "centre", "center", "mall", "complex", "tower", "towers", "heights",
    "view", "cove", "bay", "island", "point", "hill", "hills", "vale",
    "green", "village", "town", "city", "place", "square",
]

LOCATION_INDICATORS = ["near", "at", "around", "beside", "next to"]

_WHITESPACE = re.compile(r"\s+")
_POSTAL_EXACT = re.compile(r"^\d{6}$")
_POSTAL_ANY = re.compile(r"\d{6}")
_BLOCK_ADDRESS = re.compile(r"^\d{1,4}[A-Z]?\s+[A-Za-z]", re.IGNORECASE)
_BLOCK_PREFIX = re.compile(r"^\d+[A-Z]?\s+", re.IGNORECASE)
_DIGIT = re.compile(r"\d")


def normalize_input(query: str) -> str:
    """Trim and collapse internal whitespace runs to single spaces.

    >>> normalize_input("  38   Lorong 30  ")
    '38 Lorong 30'
    """
    return _WHITESPACE.sub(" ", query.strip())


def classify_input(query: str) -> InputType:
    """Classify a raw query. Always returns a value.

    Args:
        query: Raw user input

    Returns:
        InputType for the query
    """
    normalized = normalize_input(query)
    lower_query = normalized.lower()

    if _POSTAL_EXACT.match(_WHITESPACE.sub("", normalized)):
        return InputType.POSTAL

    # Block number then street, e.g. "38 Lorong 30 Geylang", "123A Bukit Batok St 25"
    if _BLOCK_ADDRESS.match(normalized):
        return InputType.ADDRESS

    has_street_keyword = any(keyword in lower_query for keyword in STREET_KEYWORDS)
    has_numbers = bool(_DIGIT.search(normalized))
    if has_street_keyword and has_numbers:
        return InputType.ADDRESS

    starts_with_street_keyword = any(
        lower_query.startswith(keyword + " ") or lower_query == keyword
        for keyword in STREET_KEYWORDS
    )
    if starts_with_street_keyword:
        return InputType.ADDRESS

    has_project_indicator = any(word in lower_query for word in PROJECT_INDICATORS)
    has_location_indicator = any(word in lower_query for word in LOCATION_INDICATORS)
    if has_project_indicator or has_location_indicator:
        return InputType.MIXED

    # Digits without a street keyword usually belong to a project name
    if has_numbers and not has_street_keyword:
        return InputType.PROJECT

    return InputType.PROJECT


def extract_postal_code(query: str) -> Optional[str]:
    """Return the first six-digit run in the query, ignoring whitespace."""
    match = _POSTAL_ANY.search(_WHITESPACE.sub("", query))
    return match.group(0) if match else None


def clean_street_name(query: str) -> str:
    """Strip a leading block number.

    "38 Lorong 30 Geylang" -> "Lorong 30 Geylang"
    """
    return _BLOCK_PREFIX.sub("", query.strip(), count=1).strip()
