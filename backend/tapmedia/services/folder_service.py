"""
TapMedia Backend — Folder Listing with TTL Cache
=================================================

What:  Lists every Cloudinary folder (recursively) for the uploader's folder
       picker and caches the flattened list for 24 hours.
How:   Walks root folders and their subfolders, collecting full paths into a
       set, then sorts for display. A FolderCache object holds the result;
       an asyncio.Lock makes refreshes single-flight.
Who:   GET /api/folders.

Failure policy:
    - Root listing fails        → UpstreamError, nothing cached
    - A subfolder listing fails → logged, that subtree skipped, listing succeeds
    - Credentials missing       → ConfigError (from the client)

Concurrency:
    Requests that observe an expired cache queue on the refresh lock. The
    first one walks the folder tree; the others re-check the cache once they
    get the lock and return the fresh entry without calling upstream.
"""

import asyncio
import logging
import time
import unicodedata
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Set, Tuple

from tapmedia.config import settings
from tapmedia.exceptions import UpstreamError
from tapmedia.schemas.media import FolderRecord
from tapmedia.services.cloudinary_client import cloudinary_client

logger = logging.getLogger(__name__)


class FolderSource(Protocol):
    """The two upstream operations the lister needs."""

    async def root_folders(self) -> List[Dict[str, Any]]: ...

    async def subfolders(self, path: str) -> List[Dict[str, Any]]: ...


@dataclass(frozen=True)
class FolderCacheEntry:
    entries: Tuple[FolderRecord, ...]
    fetched_at: float


class FolderCache:
    """
    Holds at most one fully-populated folder listing.

    The cache is either empty or holds a complete listing; partial results
    are never stored. An entry expires once `clock() - fetched_at >= ttl`.
    Expired entries are simply ignored until the next `set()`.

    Args:
        ttl:   Freshness window in seconds.
        clock: Monotonic time source; tests inject a fake one.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entry: Optional[FolderCacheEntry] = None

    def get(self) -> Optional[FolderCacheEntry]:
        entry = self._entry
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self.ttl:
            return None
        return entry

    def set(self, entries: Iterable[FolderRecord]) -> FolderCacheEntry:
        self._entry = FolderCacheEntry(entries=tuple(entries), fetched_at=self._clock())
        return self._entry

    @property
    def is_warm(self) -> bool:
        return self.get() is not None


def _char_rank(char: str) -> int:
    # Punctuation and symbols < digits < letters
    if char.isalpha():
        return 2
    if char.isdigit():
        return 1
    return 0


def _base_letters(text: str) -> str:
    """Drop accents and case: "Émile" -> "emile"."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def display_sort_key(record: FolderRecord) -> Tuple[Tuple[Tuple[int, str], ...], str, str]:
    """
    Locale-style ordering on display name.

    Levels, compared in turn:
        1. Base letters, ignoring accents and case, with punctuation before
           digits before letters ("_archive" < "2023" < "école" < "zebra")
        2. Accents: the unaccented form first ("ecole" < "école")
        3. Case: the lowercase form first ("apple" < "Apple")
    """
    name = record.display_name
    primary = tuple((_char_rank(c), c) for c in _base_letters(name))
    return primary, unicodedata.normalize("NFD", name.casefold()), name.swapcase()


def flatten_paths(paths: Iterable[str]) -> List[FolderRecord]:
    """Sort unique paths by full path, then (stably) by display name."""
    records = [FolderRecord.from_path(p) for p in sorted(set(paths))]
    records.sort(key=display_sort_key)
    return records


class FolderLister:
    """
    Recursive folder listing with a shared TTL cache.

    Args:
        source: Upstream folder API (CloudinaryClient in production).
        cache:  FolderCache shared by every request in the process.
    """

    def __init__(self, source: FolderSource, cache: FolderCache):
        self.source = source
        self.cache = cache
        self._refresh_lock = asyncio.Lock()

    async def list_folders(self) -> List[FolderRecord]:
        """
        Return every folder, sorted for display.

        Served from cache while fresh; otherwise one caller refreshes and the
        rest wait for that refresh.

        Raises:
            ConfigError:   Cloudinary credentials missing
            UpstreamError: root folder listing failed or was malformed
        """
        entry = self.cache.get()
        if entry is not None:
            return list(entry.entries)

        async with self._refresh_lock:
            entry = self.cache.get()
            if entry is not None:
                logger.debug("Folder cache refreshed by a concurrent request")
                return list(entry.entries)

            records = await self._fetch_all()
            entry = self.cache.set(records)
            logger.info("Folder cache refreshed with %d folders", len(entry.entries))
            return list(entry.entries)

    async def _fetch_all(self) -> List[FolderRecord]:
        start_time = time.time()
        roots = await self.source.root_folders()

        paths: Set[str] = set()
        for root in roots:
            name = root.get("name")
            if not name or name in paths:
                continue
            paths.add(name)
            await self._collect_subfolders(name, paths)

        logger.info(
            "Fetched %d folders from %d roots in %.0fms",
            len(paths),
            len(roots),
            (time.time() - start_time) * 1000,
        )
        return flatten_paths(paths)

    async def _collect_subfolders(self, parent: str, paths: Set[str]) -> None:
        try:
            children = await self.source.subfolders(parent)
        except UpstreamError as e:
            logger.warning("Skipping subfolders of '%s': %s", parent, e.message)
            return

        for child in children:
            name = child.get("name")
            if not name:
                continue
            path = f"{parent}/{name}"
            if path in paths:
                continue
            paths.add(path)
            await self._collect_subfolders(path, paths)


# ── Singleton Instances ───────────────────────────────────────────────────
folder_cache = FolderCache(ttl=settings.folder_cache_ttl)
folder_lister = FolderLister(source=cloudinary_client, cache=folder_cache)
