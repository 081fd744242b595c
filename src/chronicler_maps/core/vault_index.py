"""
Lookups into the surrounding vault.

The map subsystem only consumes the vault through three narrow
interfaces: a title to path index for pages and maps, a filename to
path index for image assets, and a text read/write primitive.
``VaultIndex`` and ``FileSystemPageIO`` are the directory-backed
implementations used by the desktop application.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Optional

from .models import MAP_FILE_SUFFIX

logger = logging.getLogger(__name__)

# Supported image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp", ".svg"}

PAGE_EXTENSIONS = {".md"}


def normalize_path(path: str | os.PathLike) -> str:
    """Absolute, resolved, forward-slash form of a path; used as a cache key."""
    return Path(path).expanduser().resolve().as_posix()


def is_map_file(path: str | os.PathLike) -> bool:
    """Check whether a path names a map configuration file."""
    return Path(path).name.lower().endswith(MAP_FILE_SUFFIX)


def is_image_file(path: str | os.PathLike) -> bool:
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


def map_title(path: str | os.PathLike) -> str:
    """Title of a map file: its name without the ``.map.json`` suffix."""
    name = Path(path).name
    if name.lower().endswith(MAP_FILE_SUFFIX):
        return name[: -len(MAP_FILE_SUFFIX)]
    return Path(path).stem


class TitleIndex(ABC):
    """Resolves page and map titles to absolute paths."""

    @abstractmethod
    def resolve_page(self, title: str) -> Optional[str]:
        """Return the path of the page with this title, or None."""

    @abstractmethod
    def resolve_map(self, title: str) -> Optional[str]:
        """Return the path of the map with this title, or None."""


class AssetIndex(ABC):
    """Resolves image filenames to absolute paths."""

    @abstractmethod
    def resolve_asset(self, filename: str) -> Optional[str]:
        """Return the path of the asset with this filename, or None."""


class PageIO(ABC):
    """Reads and writes page content as UTF-8 text."""

    @abstractmethod
    async def read_text(self, path: str) -> str:
        pass

    @abstractmethod
    async def write_text(self, path: str, content: str) -> None:
        pass


class FileSystemPageIO(PageIO):
    """PageIO backed by the local file system; blocking I/O runs in the loop's executor."""

    async def read_text(self, path: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read, path)

    async def write_text(self, path: str, content: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, path, content)

    @staticmethod
    def _read(path: str) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    @staticmethod
    def _write(path: str, content: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)


class VaultIndex(TitleIndex, AssetIndex):
    """
    In-memory index of a vault directory.

    All lookups are case-insensitive. When several files share a title
    or filename, the first one found wins.
    """

    def __init__(self, root: Optional[str | os.PathLike] = None) -> None:
        """
        Initialize the index.

        Args:
            root: Vault directory; the index stays empty when None
        """
        self.root = Path(root) if root else None
        self._pages: Dict[str, str] = {}
        self._maps: Dict[str, str] = {}
        self._assets: Dict[str, str] = {}

    @classmethod
    def scan(cls, root: str | os.PathLike) -> VaultIndex:
        """Build an index by walking ``root`` recursively."""
        index = cls(root)
        for dirpath, dirnames, filenames in os.walk(root):
            # Hidden folders hold tool state (.git, .obsidian), not content
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            index.add_paths(
                Path(dirpath) / name
                for name in sorted(filenames)
                if not name.startswith(".")
            )
        logger.info(
            f"Indexed vault {root}: {len(index._pages)} pages, "
            f"{len(index._maps)} maps, {len(index._assets)} images"
        )
        return index

    def add_paths(self, paths: Iterable[str | os.PathLike]) -> None:
        """Register files with the index."""
        for path in paths:
            self.add_path(path)

    def add_path(self, path: str | os.PathLike) -> None:
        """Register a single file with the index by its kind."""
        normalized = normalize_path(path)
        p = Path(path)

        if is_map_file(p):
            self._maps.setdefault(map_title(p).lower(), normalized)
        elif p.suffix.lower() in PAGE_EXTENSIONS:
            self._pages.setdefault(p.stem.lower(), normalized)
        elif is_image_file(p):
            self._assets.setdefault(p.name.lower(), normalized)

    def resolve_page(self, title: str) -> Optional[str]:
        return self._pages.get(title.strip().lower()) if title else None

    def resolve_map(self, title: str) -> Optional[str]:
        return self._maps.get(title.strip().lower()) if title else None

    def resolve_asset(self, filename: str) -> Optional[str]:
        if not filename:
            return None
        return self._assets.get(Path(filename).name.lower())

    @property
    def page_count(self) -> int:
        return len(self._pages)

    @property
    def map_count(self) -> int:
        return len(self._maps)

    @property
    def asset_count(self) -> int:
        return len(self._assets)
