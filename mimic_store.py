"""
MIMIC_STORE.PY - Per-type mimic settings persistence

One settings object per mimic type, stored as JSON. A payload that no
longer decodes is reported as missing so the caller keeps what it had.

Schema:
    mimic_settings(mimic_type TEXT PRIMARY KEY, payload TEXT, updated_at INTEGER)
"""
import sqlite3
import time
import pathlib
import logging
from typing import Dict, List, Optional

from mimic_config import MimicConfig
from mimic_settings import MimicType, MimicSettings

logger = logging.getLogger("MIMIC.STORE")


PRAGMAS = [
    'PRAGMA journal_mode=WAL;',
    'PRAGMA synchronous=NORMAL;',
    'PRAGMA busy_timeout=5000;',
]

SCHEMA = """
CREATE TABLE IF NOT EXISTS mimic_settings (
    mimic_type TEXT NOT NULL PRIMARY KEY,
    payload TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""


def _decode(mimic_type: MimicType, payload: str) -> Optional[MimicSettings]:
    settings = MimicSettings.from_json(payload)
    if settings is None:
        logger.warning(f"[STORE] Discarding unreadable {mimic_type.name} settings")
        return None
    if settings.type is not mimic_type:
        logger.warning(f"[STORE] {mimic_type.name} slot holds {settings.type.name} settings, ignoring")
        return None
    return settings


class MemorySettingsStore:
    """In-memory settings store (nothing survives a restart)"""

    def __init__(self):
        self._m: Dict[MimicType, str] = {}
        logger.info("[MEMORY] Settings store initialized (in-memory backend)")

    def save(self, settings: MimicSettings):
        self._m[settings.type] = settings.to_json()

    def save_raw(self, mimic_type: MimicType, payload: str):
        self._m[mimic_type] = payload

    def load(self, mimic_type: MimicType) -> Optional[MimicSettings]:
        payload = self._m.get(mimic_type)
        if payload is None:
            return None
        return _decode(mimic_type, payload)

    def load_or_default(self, mimic_type: MimicType) -> MimicSettings:
        return self.load(mimic_type) or MimicSettings.default_for(mimic_type)

    def delete(self, mimic_type: MimicType) -> bool:
        return self._m.pop(mimic_type, None) is not None

    def types(self) -> List[MimicType]:
        return [t for t in MimicType if t in self._m]

    def close(self):
        logger.info("[MEMORY] Settings store closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class SqliteSettingsStore:
    """
    SQLite-backed settings store

    WAL mode, autocommit connection with explicit transactions for writes.
    """

    def __init__(self, path: str = "mimic_settings.db"):
        """
        Args:
            path: Database file path (default: mimic_settings.db)
        """
        self.path = pathlib.Path(path)

        self.conn = sqlite3.connect(
            self.path,
            check_same_thread=False,
            isolation_level=None
        )

        for pragma in PRAGMAS:
            self.conn.execute(pragma)

        self.conn.executescript(SCHEMA)

        logger.info(f"[SQLITE] Settings store initialized: {self.path}")

    def save(self, settings: MimicSettings):
        self.save_raw(settings.type, settings.to_json())

    def save_raw(self, mimic_type: MimicType, payload: str):
        """Write an already-encoded payload (import paths, tests)"""
        with self.conn:
            self.conn.execute(
                'INSERT INTO mimic_settings (mimic_type, payload, updated_at) VALUES (?, ?, ?) '
                'ON CONFLICT(mimic_type) DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at',
                (mimic_type.name, payload, int(time.time()))
            )

    def load(self, mimic_type: MimicType) -> Optional[MimicSettings]:
        """
        Load settings for one type

        Returns:
            The stored settings, or None when nothing is stored or the
            payload cannot be decoded
        """
        row = self.conn.execute(
            'SELECT payload FROM mimic_settings WHERE mimic_type = ?',
            (mimic_type.name,)
        ).fetchone()
        if row is None:
            return None
        return _decode(mimic_type, row[0])

    def load_or_default(self, mimic_type: MimicType) -> MimicSettings:
        return self.load(mimic_type) or MimicSettings.default_for(mimic_type)

    def delete(self, mimic_type: MimicType) -> bool:
        with self.conn:
            cursor = self.conn.execute(
                'DELETE FROM mimic_settings WHERE mimic_type = ?',
                (mimic_type.name,)
            )
        return cursor.rowcount > 0

    def types(self) -> List[MimicType]:
        cursor = self.conn.execute('SELECT mimic_type FROM mimic_settings')
        stored = {row[0] for row in cursor.fetchall()}
        return [t for t in MimicType if t.name in stored]

    def close(self):
        """Close database connection"""
        self.conn.close()
        logger.info("[SQLITE] Settings store closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


_store_instance = None


def create_settings_store(config: MimicConfig):
    """
    Build a store for ``config``:
    - memory -> MemorySettingsStore
    - sqlite -> SqliteSettingsStore(config.store_db)
    - anything else -> MemorySettingsStore, with a warning
    """
    if config.store_backend == 'sqlite':
        logger.info(f"[FACTORY] Settings backend: SQLITE ({config.store_db})")
        return SqliteSettingsStore(config.store_db)

    if config.store_backend != 'memory':
        logger.warning(f"[FACTORY] Unknown backend '{config.store_backend}', defaulting to MEMORY")
    else:
        logger.info("[FACTORY] Settings backend: MEMORY")
    return MemorySettingsStore()


def get_settings_store(config: Optional[MimicConfig] = None):
    """Process-wide store, created on first use from ``config`` or the environment"""
    global _store_instance

    if _store_instance is None:
        _store_instance = create_settings_store(config or MimicConfig.from_env())

    return _store_instance


def reset_settings_store():
    """Close and forget the process-wide store"""
    global _store_instance

    if _store_instance is not None:
        _store_instance.close()
        _store_instance = None


__all__ = [
    'MemorySettingsStore', 'SqliteSettingsStore',
    'create_settings_store', 'get_settings_store', 'reset_settings_store',
]
