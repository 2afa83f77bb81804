"""
Board persistence adapters.

Each adapter reads and writes one named slot holding the JSON snapshot
``{"tasks": [...], "buckets": [...]}``. Adapters never raise on I/O
problems: ``load()`` returns None and ``save()`` returns False, and the
store turns that into its ``error`` field.
"""
import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional, Dict, Any

from .schema import utc_now

logger = logging.getLogger(__name__)

DEFAULT_SLOT = "kanban-storage"


class BoardPersistence:
    """Base adapter. Subclasses implement ``load`` and ``save``."""

    slot: str = DEFAULT_SLOT

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored snapshot, or None when the slot is empty or unreadable."""
        raise NotImplementedError

    def save(self, snapshot: Dict[str, Any]) -> bool:
        """Write the snapshot. Returns True on success."""
        raise NotImplementedError


class MemoryPersistence(BoardPersistence):
    """Keeps the last snapshot in memory (tests, ephemeral boards)."""

    def __init__(self, snapshot: Optional[Dict[str, Any]] = None, slot: str = DEFAULT_SLOT):
        self.slot = slot
        self.snapshot = snapshot
        self.saves = 0

    def load(self) -> Optional[Dict[str, Any]]:
        if self.snapshot is None:
            return None
        return json.loads(json.dumps(self.snapshot))

    def save(self, snapshot: Dict[str, Any]) -> bool:
        self.snapshot = json.loads(json.dumps(snapshot))
        self.saves += 1
        return True


class JsonFilePersistence(BoardPersistence):
    """The slot is a single JSON file, replaced atomically on save."""

    def __init__(self, path: str, slot: str = DEFAULT_SLOT):
        self.path = Path(path).expanduser()
        self.slot = slot

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read board from {self.path}: {e}")
            return None
        return data if isinstance(data, dict) else None

    def save(self, snapshot: Dict[str, Any]) -> bool:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
            tmp.replace(self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving board to {self.path}: {e}")
            return False


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class SqlitePersistence(BoardPersistence):
    """SQLite key/value table with one row per slot."""

    def __init__(self, db_path: str, slot: str = DEFAULT_SLOT):
        self.db_path = str(Path(db_path).expanduser())
        self.slot = slot
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS board_slots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def load(self) -> Optional[Dict[str, Any]]:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM board_slots WHERE key = ?",
                    (self.slot,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.warning(f"Could not read slot {self.slot} from {self.db_path}: {e}")
            return None
        if not row:
            return None
        try:
            data = json.loads(row["value"])
        except json.JSONDecodeError as e:
            logger.warning(f"Slot {self.slot} holds invalid JSON: {e}")
            return None
        return data if isinstance(data, dict) else None

    def save(self, snapshot: Dict[str, Any]) -> bool:
        try:
            value = json.dumps(snapshot)
            with _connect(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO board_slots (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """, (self.slot, value, utc_now()))
                conn.commit()
            return True
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error(f"Error saving slot {self.slot} to {self.db_path}: {e}")
            return False


def build_persistence(config) -> BoardPersistence:
    """Pick the adapter named by ``config.storage``."""
    storage = (config.storage or "json").lower()
    if storage == "sqlite":
        return SqlitePersistence(config.storage_path, slot=config.slot)
    if storage == "memory":
        return MemoryPersistence(slot=config.slot)
    if storage != "json":
        logger.warning(f"Unknown storage '{config.storage}', using json")
    return JsonFilePersistence(config.storage_path, slot=config.slot)
