"""Resolve track tags to a MusicBrainz release ID.

Hey future me - resolution order, first hit wins:

    1. unusable query          -> None (no I/O at all)
    2. release ID in the tags  -> trust it, no search
    3. persistent store        -> stored ID, or a stored "not found" that hasn't expired
    4. network disabled        -> None (and NOTHING is written, it's not a real miss)
    5. take the query ticket   -> timeout means None, no writes
    6. store again             -> somebody else may have resolved it while we queued
    7. search rounds + scoring -> write FOUND / NOT_FOUND / ERROR window

Search errors end the resolution right away with a short-lived negative entry, they
aren't retried within the same call.
"""

import logging

from coverscout.application.services.release_search import rounds_for, select_best
from coverscout.application.services.request_coordinator import RequestCoordinator
from coverscout.domain.exceptions import MusicBrainzError
from coverscout.domain.ports import IReleaseCatalog, IReleaseStore
from coverscout.domain.value_objects import ExpirationPolicy, TagQuery

logger = logging.getLogger(__name__)


class _StoreDecision:
    """What the persistent store says about a query."""

    __slots__ = ("decided", "release_id")

    def __init__(self, decided: bool, release_id: str | None = None) -> None:
        self.decided = decided
        self.release_id = release_id


_UNDECIDED = _StoreDecision(decided=False)


class ReleaseResolver:
    """Finds the MusicBrainz release a track belongs to."""

    def __init__(
        self,
        store: IReleaseStore,
        catalog: IReleaseCatalog,
        coordinator: RequestCoordinator[TagQuery],
    ) -> None:
        """Initialize resolver.

        Args:
            store: Persistent query -> release ID results
            catalog: MusicBrainz search
            coordinator: Ticket registry keyed by TagQuery
        """
        self._store = store
        self._catalog = catalog
        self._coordinator = coordinator

    async def resolve(self, query: TagQuery, allow_network: bool) -> str | None:
        """Resolve a query to a release ID.

        Args:
            query: Track metadata
            allow_network: Whether MusicBrainz may be searched

        Returns:
            Release ID, or None if it's unknown (for now)
        """
        if not query.is_useful():
            if query.has_info():
                logger.debug("Not enough information to look up a release for %s", query)
            else:
                logger.debug("Can't look up a release for a track without tags")
            return None

        embedded = query.embedded_release_id
        if embedded:
            logger.debug("Using release ID %s embedded in the tags of %s", embedded, query)
            return embedded

        decision = await self._check_store(query)
        if decision.decided:
            return decision.release_id

        if not allow_network:
            logger.debug(
                "Can't look up release for %s: external network access is disabled", query
            )
            return None

        async with self._coordinator.hold(query) as ticket:
            if ticket is None:
                logger.debug("Gave up waiting for the in-flight release lookup of %s", query)
                return None

            decision = await self._check_store(query)
            if decision.decided:
                return decision.release_id

            return await self._search(query)

    async def _check_store(self, query: TagQuery) -> _StoreDecision:
        result = await self._store.find_release(query)
        if result is None or not result.found:
            return _UNDECIDED
        if result.has_release_id:
            logger.debug("Release ID %s for %s found in store", result.release_id, query)
            return _StoreDecision(decided=True, release_id=result.release_id)
        if not result.is_expired():
            logger.debug("Store says no release exists for %s (cached)", query)
            return _StoreDecision(decided=True)
        return _UNDECIDED

    async def _search(self, query: TagQuery) -> str | None:
        """Run the search rounds. Must be called while holding the query's ticket."""
        for search_round in rounds_for(query):
            lucene = search_round.build(query)
            if not lucene:
                logger.debug("Skipping %s search for %s: nothing to search for", search_round.name, query)
                continue

            logger.debug("MusicBrainz %s search for %s: %s", search_round.name, query, lucene)
            try:
                candidates = await self._catalog.search(search_round.entity, lucene)
            except MusicBrainzError as e:
                logger.warning("Release lookup for %s failed: %s", query, e.message)
                await self._store.write_release(None, query, ExpirationPolicy.ERROR.expires_at())
                return None

            best = select_best(query, candidates)
            if best is not None:
                candidate, score = best
                logger.info(
                    "MusicBrainz release %s found for %s (%s search, score %d)",
                    candidate.id,
                    query,
                    search_round.name,
                    score,
                )
                await self._store.write_release(
                    candidate.id, query, ExpirationPolicy.FOUND.expires_at()
                )
                return candidate.id

        logger.debug("No MusicBrainz release found for %s", query)
        await self._store.write_release(None, query, ExpirationPolicy.NOT_FOUND.expires_at())
        return None
