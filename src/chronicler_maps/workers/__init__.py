"""Background workers for Chronicler Maps."""

from .async_bridge import AsyncBridge
from .vault_scanner import VaultScanner

__all__ = [
    "AsyncBridge",
    "VaultScanner",
]
