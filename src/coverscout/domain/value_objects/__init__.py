"""Domain value objects."""

from coverscout.domain.value_objects.expiration import (
    NEVER_EXPIRES,
    ExpirationPolicy,
    ExpirationWindow,
    ensure_utc_aware,
    is_never_expiring,
    utc_now,
)
from coverscout.domain.value_objects.release_types import ReleaseType
from coverscout.domain.value_objects.tag_query import (
    NOT_AVAILABLE,
    TagQuery,
    has_value,
    is_blank,
    parse_year,
)
from coverscout.domain.value_objects.text_matching import (
    any_artist_matches,
    names_match,
    normalize_for_matching,
    split_artists,
)

__all__ = [
    "NEVER_EXPIRES",
    "NOT_AVAILABLE",
    "ExpirationPolicy",
    "ExpirationWindow",
    "ReleaseType",
    "TagQuery",
    "any_artist_matches",
    "ensure_utc_aware",
    "has_value",
    "is_blank",
    "is_never_expiring",
    "names_match",
    "normalize_for_matching",
    "parse_year",
    "split_artists",
    "utc_now",
]
