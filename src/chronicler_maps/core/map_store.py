"""
Loading, caching and safe updating of map configurations.

``MapConfigStore`` is the only component that mutates map state. It
keeps one cached config per normalized path and serializes disk writes
per path so that concurrent updates can never reorder or interleave.
Configs are immutable; every update replaces the cached object.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .errors import MapNotFoundError, MapWriteError
from .models import MapConfig
from .vault_index import PageIO, normalize_path

logger = logging.getLogger(__name__)

ConfigTransform = Callable[[MapConfig], MapConfig]
ChangeListener = Callable[[str, MapConfig], None]


@dataclass(frozen=True)
class CachedMap:
    """An entry in the map cache."""

    path: str
    config: MapConfig
    loaded_at: float


def serialize_config(config: MapConfig) -> str:
    """Pretty-printed UTF-8 JSON form of a config."""
    return json.dumps(config.to_dict(), indent=2, ensure_ascii=False)


class MapConfigStore:
    """
    Per-path config cache with a serialized write queue.

    Coroutines must all run on the same event loop. ``get`` may be
    called from any thread; it only reads the cache.
    """

    def __init__(self, page_io: PageIO) -> None:
        """
        Initialize the store.

        Args:
            page_io: Collaborator used to read and write map files
        """
        self._page_io = page_io
        self._cache: Dict[str, CachedMap] = {}
        self._cache_lock = threading.Lock()
        self._listeners: List[ChangeListener] = []

        # Tail of the pending write chain for each path
        self._write_queues: Dict[str, asyncio.Future] = {}
        # In-flight loads, shared by concurrent callers for the same path
        self._loading: Dict[str, asyncio.Future] = {}

    # === Cache access ===

    def get(self, path: str) -> Optional[MapConfig]:
        """Return the cached config for ``path`` without touching the disk."""
        with self._cache_lock:
            entry = self._cache.get(normalize_path(path))
        return entry.config if entry else None

    def entry(self, path: str) -> Optional[CachedMap]:
        with self._cache_lock:
            return self._cache.get(normalize_path(path))

    def register_optimistic(self, path: str, config: MapConfig) -> None:
        """
        Put a config into the cache immediately, without reading the disk.

        Used after creating a map so the UI can show it before the file
        has been written.
        """
        key = normalize_path(path)
        with self._cache_lock:
            self._cache[key] = CachedMap(path=key, config=config, loaded_at=time.time())
        self._notify(key, config)

    def evict(self, path: str) -> None:
        """Drop a path from the cache; pending writes are unaffected."""
        with self._cache_lock:
            self._cache.pop(normalize_path(path), None)

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked with ``(path, config)`` on every cache change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, path: str, config: MapConfig) -> None:
        for listener in list(self._listeners):
            try:
                listener(path, config)
            except Exception as e:
                logger.error(f"Map change listener failed for {path}: {e}", exc_info=True)

    # === Loading ===

    async def load(self, path: str, force_reload: bool = False) -> Optional[MapConfig]:
        """
        Load a config from disk, or return the cached one.

        Concurrent loads of the same path share a single read.

        Args:
            path: Path to the map file
            force_reload: Read from disk even when a cached config exists

        Returns:
            The current config, or None if it could not be read or parsed
        """
        key = normalize_path(path)

        if not force_reload:
            cached = self.get(key)
            if cached is not None:
                return cached

        pending = self._loading.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._read_from_disk(key))
            self._loading[key] = pending
            pending.add_done_callback(lambda _: self._loading.pop(key, None))

        loaded = await pending
        if loaded is None:
            return None
        # The cache, not this load's result, is the current state
        return self.get(key)

    async def _read_from_disk(self, key: str) -> Optional[MapConfig]:
        try:
            content = await self._page_io.read_text(key)
            config = MapConfig.from_dict(json.loads(content))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Failed to load map at {key}: {e}")
            return None

        logger.info(f"Loaded map {key}")
        self.register_optimistic(key, config)
        return config

    # === Updating ===

    async def update(self, path: str, transform: ConfigTransform) -> MapConfig:
        """
        Apply a pure transform to the latest config and persist the result.

        The cache is updated before the write is queued. Writes for one
        path run strictly in call order; a failed write is reported only
        to its own caller and does not stop later writes. The cache is
        not rolled back when a write fails.

        Args:
            path: Path to the map file
            transform: Function returning the new config from the current one

        Returns:
            The config that was written

        Raises:
            MapNotFoundError: If no config can be loaded for the path
            MapWriteError: If writing this update to disk failed
        """
        key = normalize_path(path)

        current = self.get(key)
        if current is None:
            await self.load(key)
            current = self.get(key)
        if current is None:
            raise MapNotFoundError(key)

        new_config = transform(current)
        self.register_optimistic(key, new_config)

        await self._enqueue_write(key, new_config)
        return new_config

    async def create(self, path: str, config: MapConfig) -> None:
        """Register a brand new map and queue its first write."""
        key = normalize_path(path)
        self.register_optimistic(key, config)
        await self._enqueue_write(key, config)

    async def flush(self, path: Optional[str] = None) -> None:
        """Wait until pending writes (for one path, or all) have settled."""
        if path is not None:
            tails = [self._write_queues.get(normalize_path(path))]
        else:
            tails = list(self._write_queues.values())

        for tail in tails:
            if tail is not None:
                await asyncio.gather(tail, return_exceptions=True)

    def has_pending_writes(self, path: Optional[str] = None) -> bool:
        if path is None:
            return bool(self._write_queues)
        return normalize_path(path) in self._write_queues

    async def _enqueue_write(self, key: str, config: MapConfig) -> None:
        previous = self._write_queues.get(key)
        task = asyncio.ensure_future(self._write_after(previous, key, config))
        self._write_queues[key] = task

        try:
            await task
        finally:
            if self._write_queues.get(key) is task:
                del self._write_queues[key]

    async def _write_after(
        self,
        previous: Optional[asyncio.Future],
        key: str,
        config: MapConfig,
    ) -> None:
        if previous is not None:
            # The previous caller receives its own failure
            await asyncio.gather(previous, return_exceptions=True)

        try:
            await self._page_io.write_text(key, serialize_config(config))
        except OSError as e:
            logger.error(f"Write failed for {key}: {e}")
            raise MapWriteError(key, str(e)) from e

        logger.debug(f"Wrote map {key}")
