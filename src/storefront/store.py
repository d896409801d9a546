"""Snapshot storage for storefront."""

import fcntl
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .models import SCHEMA_VERSION, Snapshot
from .seed import seed_default_data

logger = logging.getLogger(__name__)

# Local data directory within the storefront project
# Can be overridden via STOREFRONT_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"
DATA_DIR = Path(os.environ.get("STOREFRONT_DATA_DIR", _default_data_dir))
SNAPSHOT_FILE = "store.json"
LOCK_FILE = ".store.lock"


class Store:
    """
    Holds every user, product and order in memory and persists them as one
    JSON snapshot.

    All mutation goes through transaction(), which holds a single store-wide
    lock. Services keep the lock across validate, mutate and save so that
    a check-then-act sequence can't interleave with another writer.
    """

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize Store. Does not touch disk; call open() or load_or_seed().

        Args:
            data_dir: Override data directory (for testing).
        """
        self.data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
        self.snapshot_path = self.data_dir / SNAPSHOT_FILE
        self.data = Snapshot()
        self._lock = threading.RLock()

    @classmethod
    def open(cls, data_dir: Path | None = None) -> "Store":
        """Create a store and load its snapshot, seeding defaults if there is none."""
        store = cls(data_dir)
        store.load_or_seed()
        return store

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _ensure_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def transaction(self) -> Iterator[Snapshot]:
        """Hold the store-wide lock and yield the live snapshot."""
        with self._lock:
            yield self.data

    @contextmanager
    def _file_lock(self) -> Iterator[None]:
        """Exclusive advisory lock so two processes never write the snapshot at once."""
        self._ensure_dir()
        lock_path = self.data_dir / LOCK_FILE
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def exists(self) -> bool:
        """Check if a snapshot file exists."""
        return self.snapshot_path.exists()

    def load(self) -> Snapshot | None:
        """
        Read the snapshot from disk.

        Returns None when there is no usable prior state: the file is
        missing, unreadable, corrupt, or written with another schema version.
        """
        if not self.exists():
            logger.info("No snapshot at %s", self.snapshot_path)
            return None

        try:
            with open(self.snapshot_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            version = data.get("schema_version", 0)
            if version != SCHEMA_VERSION:
                logger.warning(
                    "Snapshot %s has schema version %s, expected %s; ignoring it",
                    self.snapshot_path, version, SCHEMA_VERSION,
                )
                return None
            return Snapshot.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError):
            logger.warning("Could not read snapshot %s; ignoring it", self.snapshot_path, exc_info=True)
            return None

    def load_or_seed(self) -> bool:
        """
        Replace in-memory state from disk, or seed defaults and save them.

        Returns True if the store was seeded.
        """
        with self._lock:
            snapshot = self.load()
            if snapshot is not None:
                self.data = snapshot
                logger.info(
                    "Loaded %d users, %d products, %d orders from %s",
                    len(snapshot.users), len(snapshot.products),
                    len(snapshot.orders), self.snapshot_path,
                )
                return False

            logger.info("Seeding default data into %s", self.snapshot_path)
            self.reset()
            return True

    def reset(self) -> bool:
        """Discard all state, seed defaults and save. Returns True if saved."""
        with self._lock:
            self.data = Snapshot()
            seed_default_data(self.data)
            logger.info("Reset %s to default data", self.snapshot_path)
            return self.save()

    def save(self) -> bool:
        """
        Write the whole snapshot to disk atomically.

        Uses write-to-temp-then-rename, so a failed write never leaves a
        torn file behind. Failures are logged, not raised; the in-memory
        state is left as it is.

        Returns True if the snapshot was written.
        """
        with self._lock:
            data = self.data.to_dict()
            try:
                with self._file_lock():
                    self._write(data)
            except OSError:
                logger.exception("Failed to save snapshot to %s", self.snapshot_path)
                return False
        logger.debug("Saved snapshot to %s", self.snapshot_path)
        return True

    def _write(self, data: dict) -> None:
        fd, temp_path = tempfile.mkstemp(
            dir=self.data_dir, prefix=".store_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.snapshot_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def close(self) -> None:
        """Flush a final snapshot."""
        self.save()
