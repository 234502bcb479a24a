"""Search History Cache - recent search terms, most recent first."""

from __future__ import annotations

import logging

import orjson

from storefront_search.adapters.state_storage import AbstractStateStorage


logger = logging.getLogger(__name__)

HISTORY_KEY = "searchHistory"
DEFAULT_HISTORY_LIMIT = 5


class SearchHistory:
    """Bounded, case-insensitively deduplicated list of search terms.

    The list is read from storage on ``load()`` or before the first mutation,
    and the full list is written back after every mutation. Storage failures
    are logged and the history carries on in memory for the rest of the session.
    """

    def __init__(self, storage: AbstractStateStorage, *, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._storage = storage
        self._limit = limit
        self._terms: list[str] = []
        self._loaded = False
        self.persistent = True

    async def load(self) -> tuple[str, ...]:
        if self._loaded:
            return self.list()
        self._loaded = True
        try:
            blob = await self._storage.load()
        except OSError as exc:
            self._degrade("load", exc)
            return self.list()
        if blob:
            self._terms = self._decode(blob)
        return self.list()

    async def record_term(self, term: str) -> None:
        """Move ``term`` to the front, replacing any entry equal ignoring case."""
        cleaned = term.strip() if isinstance(term, str) else ""
        if not cleaned:
            return
        await self.load()
        folded = cleaned.casefold()
        terms = [existing for existing in self._terms if existing.casefold() != folded]
        terms.insert(0, cleaned)
        self._terms = terms[: self._limit]
        await self._persist()

    async def remove_term(self, term: str) -> None:
        """Remove an exact (case-sensitive) match; no-op when absent."""
        await self.load()
        if term not in self._terms:
            return
        self._terms.remove(term)
        await self._persist()

    async def clear(self) -> None:
        await self.load()
        self._terms = []
        if not self.persistent:
            return
        try:
            await self._storage.delete()
        except OSError as exc:
            self._degrade("clear", exc)

    def list(self) -> tuple[str, ...]:
        return tuple(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    def _decode(self, blob: str) -> list[str]:
        try:
            raw = orjson.loads(blob)
        except orjson.JSONDecodeError:
            logger.warning("Discarding unreadable search history")
            return []
        if not isinstance(raw, list):
            logger.warning("Discarding search history with unexpected shape")
            return []

        terms: list[str] = []
        seen: set[str] = set()
        for item in raw:
            if not isinstance(item, str) or not item.strip():
                continue
            folded = item.strip().casefold()
            if folded in seen:
                continue
            seen.add(folded)
            terms.append(item.strip())
        return terms[: self._limit]

    async def _persist(self) -> None:
        if not self.persistent:
            return
        try:
            await self._storage.save(orjson.dumps(self._terms).decode("utf-8"))
        except OSError as exc:
            self._degrade("save", exc)

    def _degrade(self, operation: str, exc: OSError) -> None:
        logger.warning("Search history %s failed, keeping history in memory: %s", operation, exc)
        self.persistent = False
