"""Single-flight request coordination.

Hey future me - this is what stops ten tracks of the same album from firing ten
identical MusicBrainz searches at once! Every lookup takes a ticket for its key first.
The first caller gets it immediately and does the work, everybody else with the same
key queues on the ticket's lock and, once they get it, re-checks the caches (the first
caller has filled them by then) instead of redoing the work.

Rules:
- Tickets exist only while somebody holds or waits for them, the registry never
  grows with old keys.
- Waiting is bounded (10s by default). A caller that times out gets None and must
  return a "nothing right now" result, NOT raise.
- There are two independent coordinators (by TagQuery, by release ID). Never take a
  release-ID ticket while holding a query ticket.

All registry mutations happen without an await in between, so they're atomic on the
event loop and need no extra lock around the dict.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)

DEFAULT_TICKET_TIMEOUT = 10.0


class _TicketSlot:
    """Registry entry: the per-key lock plus the number of holders and waiters."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class Ticket(Generic[K]):
    """Exclusive access to one key. Release it exactly once via the coordinator."""

    __slots__ = ("key", "_slot", "released")

    def __init__(self, key: K, slot: _TicketSlot) -> None:
        self.key = key
        self._slot = slot
        self.released = False

    def __repr__(self) -> str:
        state = "released" if self.released else "held"
        return f"Ticket({self.key!r}, {state})"


class RequestCoordinator(Generic[K]):
    """Keyed mutual exclusion registry (the "singleflight" pattern).

    Usage:
        async with coordinator.hold(query) as ticket:
            if ticket is None:
                return None  # timed out, somebody else is still working on it
            ...  # re-check caches, then do the work
    """

    def __init__(self, name: str, timeout: float = DEFAULT_TICKET_TIMEOUT) -> None:
        """Initialize coordinator.

        Args:
            name: Name used in log messages ("release-query", "cover")
            timeout: Default max seconds to wait for a ticket
        """
        self.name = name
        self.timeout = timeout
        self._slots: dict[K, _TicketSlot] = {}

    async def acquire(self, key: K, timeout: float | None = None) -> Ticket[K] | None:
        """Wait for exclusive access to key.

        Args:
            key: Any hashable key
            timeout: Max seconds to wait (defaults to the coordinator timeout)

        Returns:
            The ticket, or None if the wait timed out
        """
        slot = self._slots.get(key)
        if slot is None:
            slot = _TicketSlot()
            self._slots[key] = slot
        slot.users += 1

        wait = self.timeout if timeout is None else timeout
        try:
            await asyncio.wait_for(slot.lock.acquire(), timeout=wait)
        except TimeoutError:
            self._leave(key, slot)
            logger.debug(
                "Timed out after %.1fs waiting for %s ticket %s", wait, self.name, key
            )
            return None
        except BaseException:
            # Cancelled while queued
            self._leave(key, slot)
            raise

        return Ticket(key, slot)

    def release(self, ticket: Ticket[K]) -> None:
        """Release a ticket; the key is dropped from the registry once nobody waits."""
        if ticket.released:
            logger.warning("%s ticket %s released twice", self.name, ticket.key)
            return
        ticket.released = True
        ticket._slot.lock.release()
        self._leave(ticket.key, ticket._slot)

    @asynccontextmanager
    async def hold(self, key: K, timeout: float | None = None) -> AsyncIterator[Ticket[K] | None]:
        """Acquire a ticket for the block and release it on every exit path.

        Yields:
            The ticket, or None if the wait timed out
        """
        ticket = await self.acquire(key, timeout)
        try:
            yield ticket
        finally:
            if ticket is not None:
                self.release(ticket)

    def _leave(self, key: K, slot: _TicketSlot) -> None:
        slot.users -= 1
        if slot.users <= 0 and self._slots.get(key) is slot:
            del self._slots[key]

    def is_pending(self, key: K) -> bool:
        """Check if work for key is in flight (held or waited for)."""
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)
