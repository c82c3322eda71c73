from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from notewright.errors import DestinationUnavailable

logger = logging.getLogger(__name__)

_ROOT_LOCKS: dict[Path, threading.Lock] = {}
_ROOT_LOCKS_GUARD = threading.Lock()


def _lock_for(root: Path) -> threading.Lock:
    with _ROOT_LOCKS_GUARD:
        return _ROOT_LOCKS.setdefault(root, threading.Lock())


class VaultAccess:
    """Resolves the vault root and grants one write scope per batch."""

    def __init__(self, root: Path | None) -> None:
        self._root = root

    def resolve_root(self) -> Path:
        if self._root is None:
            raise DestinationUnavailable("No vault configured. Set NOTEWRIGHT_VAULT_DIR or pass --vault.")
        root = Path(self._root).expanduser()
        if not root.is_dir():
            raise DestinationUnavailable(f"Vault root is not a directory: {root}")
        if not os.access(root, os.W_OK | os.X_OK):
            raise DestinationUnavailable(f"Vault root is not writable: {root}")
        return root.resolve()

    @contextmanager
    def scoped(self) -> Iterator[Path]:
        """Hold write access to the vault root for the duration of the block.

        Writers targeting the same root are serialized; the scope is released on
        every exit path.
        """

        root = self.resolve_root()
        lock = _lock_for(root)
        lock.acquire()
        logger.debug("Vault scope acquired: %s", root)
        try:
            yield root
        finally:
            lock.release()
            logger.debug("Vault scope released: %s", root)
