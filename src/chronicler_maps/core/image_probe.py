"""Image dimension probing for rescale validation."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from PyQt6.QtGui import QImageReader

from .errors import RescaleValidationError

logger = logging.getLogger(__name__)


class LivenessToken:
    """
    Marks whether the UI context that started an async operation is still current.

    The starter cancels the token when its context changes (dialog
    closed, another image chosen); results that arrive afterwards are
    discarded.
    """

    def __init__(self) -> None:
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def cancel(self) -> None:
        self._alive = False


def read_image_size(path: str) -> Tuple[int, int]:
    """
    Read an image's natural dimensions from its header.

    Raises:
        RescaleValidationError: If the file cannot be read as an image
    """
    reader = QImageReader(path)
    size = reader.size()
    if not size.isValid():
        # Some formats only report a size after a full decode
        image = reader.read()
        if image.isNull():
            raise RescaleValidationError(f"Cannot read image {path}: {reader.errorString()}")
        return (image.width(), image.height())
    return (size.width(), size.height())


async def probe_image_size(path: str, token: Optional[LivenessToken] = None) -> Optional[Tuple[int, int]]:
    """
    Probe an image's dimensions off the event loop.

    Returns:
        ``(width, height)``, or None if the token was cancelled meanwhile

    Raises:
        RescaleValidationError: If the image is missing or unreadable
    """
    loop = asyncio.get_running_loop()
    size = await loop.run_in_executor(None, read_image_size, path)

    if token is not None and not token.alive:
        logger.debug(f"Discarding stale size probe for {path}")
        return None
    return size
