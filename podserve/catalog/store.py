"""Thread-safe holder for the current catalog snapshot."""

import threading

from .models import Snapshot


class CatalogStore:
    """Holds exactly one live Snapshot and swaps it atomically.

    Snapshots are immutable, so the lock only guards the reference itself and
    is never held while a caller renders, scans or streams.
    """

    def __init__(self, snapshot: Snapshot):
        self._lock = threading.Lock()
        self._snapshot = snapshot
        self._generation = 0

    def read(self) -> Snapshot:
        """Return the current snapshot."""
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: Snapshot) -> int:
        """Install a new snapshot and return the new generation number."""
        with self._lock:
            self._snapshot = snapshot
            self._generation += 1
            return self._generation

    @property
    def generation(self) -> int:
        """Number of replacements since the store was created."""
        with self._lock:
            return self._generation
