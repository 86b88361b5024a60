"""Name matching for release candidate scoring.

Hey future me - tags and MusicBrainz rarely agree byte for byte! "Björk" vs "Bjork",
"Guns N' Roses" vs "Guns N’ Roses", trailing spaces... We fold case and diacritics
first, then let rapidfuzz absorb small typos. The threshold is deliberately high (90),
scoring is additive so a loose match on every field would promote wrong releases.
"""

import re
import unicodedata

from rapidfuzz import fuzz

MATCH_THRESHOLD = 90.0

# Tag artist fields often contain several artists: "Queen & David Bowie", "A, B and C"
_ARTIST_SEPARATORS = re.compile(r"(?i),|&|\sand\s")


def normalize_for_matching(text: str | None) -> str:
    """Fold case, diacritics and whitespace for comparison.

    Args:
        text: Any name (artist, album, track title)

    Returns:
        Casefolded string without combining marks and with collapsed whitespace
        ("" for None). Non-Latin scripts are kept as they are.
    """
    if not text:
        return ""
    text = unicodedata.normalize("NFD", text.casefold())
    text = "".join(c for c in text if not unicodedata.combining(c))
    return " ".join(text.split())


def names_match(first: str | None, second: str | None) -> bool:
    """Check if two names are the same modulo case, diacritics and small typos.

    Two blank names never match - a missing field isn't evidence for anything.
    """
    a = normalize_for_matching(first)
    b = normalize_for_matching(second)
    if not a or not b:
        return False
    if a == b:
        return True
    return fuzz.ratio(a, b) >= MATCH_THRESHOLD


def split_artists(artist: str | None) -> list[str]:
    """Split a tag artist field into individual artist names.

    Example:
        >>> split_artists("Simon & Garfunkel")
        ['Simon', 'Garfunkel']
    """
    if not artist:
        return []
    return [part.strip() for part in _ARTIST_SEPARATORS.split(artist) if part.strip()]


def any_artist_matches(tag_artist: str | None, candidate_artists: list[str]) -> bool:
    """Check if the tag artist, or any artist split from it, matches a candidate artist."""
    tag_artists = split_artists(tag_artist)
    if tag_artist and len(tag_artists) > 1:
        tag_artists.append(tag_artist)
    return any(
        names_match(tag_name, candidate_name)
        for candidate_name in candidate_artists
        for tag_name in tag_artists
    )
