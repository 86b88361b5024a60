"""Expiration windows for cached lookup results.

Hey future me - every cached outcome gets an expiration picked from one of these
windows. The jitter spreads re-validation of entries written at the same time
(e.g. a library scan) so they don't all hit MusicBrainz on the same day.

Windows:
- IMMEDIATE: 100ms, only for the "ticket wait timed out" result, never persisted
- ERROR: 4min ± 2min, transient network/parse failures
- NOT_FOUND: 3 days ± 1 day, the catalog confirmed there's nothing
- FOUND: 14 days ± 6 days, the catalog confirmed a result
- NEVER_EXPIRES: sentinel used when external network access is disabled
"""

import random
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

# Hey future me - this is a SENTINEL, not a long TTL! A result produced while the network
# is disabled must be distinguishable from a real negative lookup, so compare with
# is_never_expiring() instead of doing date math on it (adding to datetime.max overflows).
NEVER_EXPIRES = datetime.max.replace(tzinfo=UTC)


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC.

    SQLite doesn't keep tzinfo, so timestamps read back from the database are naive.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def is_never_expiring(expires_at: datetime) -> bool:
    """Check if an expiration time is the NEVER_EXPIRES sentinel."""
    return ensure_utc_aware(expires_at) >= NEVER_EXPIRES


@dataclass(frozen=True)
class ExpirationWindow:
    """A base duration with uniform random jitter in [-jitter, +jitter].

    Attributes:
        name: Window name used in logs
        base: Nominal time to live
        jitter: Maximum deviation from base in either direction
    """

    name: str
    base: timedelta
    jitter: timedelta = timedelta(0)

    def __post_init__(self) -> None:
        if self.base < timedelta(0) or self.jitter < timedelta(0) or self.jitter > self.base:
            raise ValueError(
                f"Invalid expiration window {self.name}: base={self.base}, jitter={self.jitter}"
            )

    def duration(self) -> timedelta:
        """Pick a time to live from the window."""
        if not self.jitter:
            return self.base
        offset = random.uniform(-1.0, 1.0) * self.jitter.total_seconds()
        return self.base + timedelta(seconds=offset)

    def expires_at(self, now: datetime | None = None) -> datetime:
        """Get an expiration time for a result produced now.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            UTC-aware expiration time
        """
        return (now or utc_now()) + self.duration()

    @property
    def shortest(self) -> timedelta:
        """Shortest possible time to live."""
        return self.base - self.jitter

    @property
    def longest(self) -> timedelta:
        """Longest possible time to live."""
        return self.base + self.jitter


class ExpirationPolicy:
    """Named expiration windows per outcome class."""

    IMMEDIATE = ExpirationWindow("immediate", timedelta(milliseconds=100))
    ERROR = ExpirationWindow("error", timedelta(minutes=4), timedelta(minutes=2))
    NOT_FOUND = ExpirationWindow("not_found", timedelta(days=3), timedelta(days=1))
    FOUND = ExpirationWindow("found", timedelta(days=14), timedelta(days=6))

    @staticmethod
    def no_network() -> datetime:
        """Expiration used when external network access is disabled."""
        return NEVER_EXPIRES
