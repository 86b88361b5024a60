"""MusicBrainz search rounds and candidate scoring.

Hey future me - the ORDER of the rounds is part of the contract:

    1. exact release search   (album/artist scoped)
    2. fuzzy release search   (every word as word~)
    3. exact recording search (title/track/artist scoped)
    4. fuzzy recording search

Release rounds are only used when the query has album, artist or artist ID, otherwise
we start at round 3. The resolver stops at the first round that produces a winner.
Each round is a plain function TagQuery -> query string, an empty string means "this
round has nothing to search for" and is skipped without a request.

Why not search the artist in release rounds? The release (album) artist is usually not
the track artist (compilations, soundtracks), so adding it tends to return nothing.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from coverscout.domain.entities import ReleaseCandidate
from coverscout.domain.ports import SearchEntity
from coverscout.domain.value_objects import (
    ReleaseType,
    TagQuery,
    any_artist_matches,
    names_match,
)

# Lucene special characters: + - && || ! ( ) { } [ ] ^ " ~ * ? : \ /
_LUCENE_SPECIAL = re.compile(r'([+\-&|!(){}\[\]^"~*?:\\/])')

ARTIST_POINTS = 30
ALBUM_POINTS = 30
TITLE_POINTS = 40
YEAR_POINTS = 20


def lucene_escape(text: str) -> str:
    """Escape Lucene query syntax characters with a backslash."""
    return _LUCENE_SPECIAL.sub(r"\\\1", text)


def quoted(text: str) -> str:
    """Exact phrase clause."""
    return f'"{lucene_escape(text)}"'


def fuzzed(text: str) -> str:
    """Fuzzy clause matching every word approximately: "In Utero" -> (In~ Utero~ )."""
    words = [lucene_escape(word) for word in text.split(" ") if word]
    return "(" + "".join(f"{word}~ " for word in words) + ")"


def _phrase(text: str, fuzzy: bool) -> str:
    return fuzzed(text) if fuzzy else quoted(text)


def build_release_query(query: TagQuery, fuzzy: bool) -> str:
    """Build the Lucene query for a release search round.

    Args:
        query: Track metadata
        fuzzy: Fuzzy words instead of exact phrases (and no date clause)

    Returns:
        Lucene query, "" if there's nothing to search for
    """
    clauses: list[str] = []
    if query.album:
        clauses.append(_phrase(query.album, fuzzy))

    # Track fields only narrow the search when album + artist can't identify the release
    if query.track_disambiguates:
        if query.track_id:
            clauses.append(f"tid:{query.track_id}")
        elif query.title:
            clauses.append(f"recording:{_phrase(query.title, fuzzy)}")

    if not fuzzy and query.year > 0:
        clauses.append(f"date:{query.year}*")
    return " AND ".join(clauses)


def build_recording_query(query: TagQuery, fuzzy: bool) -> str:
    """Build the Lucene query for a recording search round.

    Args:
        query: Track metadata
        fuzzy: Fuzzy words instead of exact phrases (and no date clause)

    Returns:
        Lucene query, "" if there's nothing to search for
    """
    clauses: list[str] = []
    if query.title:
        clauses.append(_phrase(query.title, fuzzy))
    if query.track_id:
        clauses.append(f"tid:{query.track_id}")
    if query.artist_id:
        clauses.append(f"arid:{query.artist_id}")
    elif query.artist:
        clauses.append(f"artistname:{_phrase(query.artist, fuzzy)}")

    if not fuzzy and query.year > 0:
        clauses.append(f"date:{query.year}*")
    return " AND ".join(clauses)


@dataclass(frozen=True)
class SearchRound:
    """One step of the search strategy."""

    name: str
    entity: SearchEntity
    build: Callable[[TagQuery], str]


SEARCH_ROUNDS: tuple[SearchRound, ...] = (
    SearchRound(
        "exact release", SearchEntity.RELEASE, lambda q: build_release_query(q, fuzzy=False)
    ),
    SearchRound(
        "fuzzy release", SearchEntity.RELEASE, lambda q: build_release_query(q, fuzzy=True)
    ),
    SearchRound(
        "exact recording",
        SearchEntity.RECORDING,
        lambda q: build_recording_query(q, fuzzy=False),
    ),
    SearchRound(
        "fuzzy recording",
        SearchEntity.RECORDING,
        lambda q: build_recording_query(q, fuzzy=True),
    ),
)


def rounds_for(query: TagQuery) -> tuple[SearchRound, ...]:
    """Get the rounds to try for a query, in order."""
    if query.has_release_info:
        return SEARCH_ROUNDS
    return tuple(r for r in SEARCH_ROUNDS if r.entity is SearchEntity.RECORDING)


def score_candidate(query: TagQuery, candidate: ReleaseCandidate) -> int:
    """Score how well a candidate matches the query.

    +30 artist, +30 album, +40 track title, +20 year. If any NAME matched, a single
    gets +20 and an album (or a release without type) +10 on top, so the most
    specific release wins among otherwise equal candidates.
    """
    score = 0
    matched = False

    if query.artist and any_artist_matches(query.artist, candidate.artists):
        score += ARTIST_POINTS
        matched = True
    if query.album and names_match(query.album, candidate.album):
        score += ALBUM_POINTS
        matched = True
    if query.title and names_match(query.title, candidate.title):
        score += TITLE_POINTS
        matched = True
    if query.year > 0 and query.year == candidate.year:
        score += YEAR_POINTS
    if matched:
        score += ReleaseType.match_bonus(candidate.type)
    return score


def select_best(
    query: TagQuery, candidates: Sequence[ReleaseCandidate]
) -> tuple[ReleaseCandidate, int] | None:
    """Pick the highest scoring candidate; ties go to the first one in catalog order.

    Returns:
        (candidate, score) or None if there are no candidates
    """
    best: tuple[ReleaseCandidate, int] | None = None
    for candidate in candidates:
        if not candidate.id:
            continue
        score = score_candidate(query, candidate)
        # Strictly greater keeps the earliest candidate on ties
        if best is None or score > best[1]:
            best = (candidate, score)
    return best
