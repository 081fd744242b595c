"""Background vault indexing thread."""

from __future__ import annotations

import logging
from pathlib import Path

from PyQt6.QtCore import QThread, pyqtSignal

from ..core.vault_index import VaultIndex

logger = logging.getLogger(__name__)


class VaultScanner(QThread):
    """
    Background thread that builds a VaultIndex for a directory.

    Scanning large vaults can take a while, so the UI keeps running
    and receives the finished index through a signal.
    """

    # Signal emitted with the finished VaultIndex
    index_ready = pyqtSignal(object)

    # Signal emitted with an error message when the scan fails
    scan_failed = pyqtSignal(str)

    def __init__(self, directory: str) -> None:
        """
        Initialize the vault scanner.

        Args:
            directory: Vault root to scan
        """
        super().__init__()
        self.directory = Path(directory)

    def run(self) -> None:
        """Scan the vault and emit the resulting index."""
        if not self.directory.is_dir():
            message = f"Vault directory not found: {self.directory}"
            logger.error(message)
            self.scan_failed.emit(message)
            return

        try:
            index = VaultIndex.scan(self.directory)
        except OSError as e:
            logger.error(f"Error scanning vault {self.directory}: {e}")
            self.scan_failed.emit(str(e))
            return

        self.index_ready.emit(index)
