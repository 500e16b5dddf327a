'''
Key-value persistence for the wishlist, the watch list and price histories.

All backends expose the same narrow interface (`get`, `set`, `delete`) over
string keys and string values; callers serialize with `load_json` /
`save_json`.
'''

import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional


WISHLIST_KEY = 'travelWishlist'
WATCHES_KEY = 'flightWatches'
HISTORY_PREFIX = 'history-'


class KeyValueStore:
    '''Synchronous string-keyed store.'''

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    '''Dict-backed store; contents live as long as the instance.'''

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SQLiteStore(KeyValueStore):
    '''File-backed store using a single SQLite table.'''

    def __init__(self, db_path: str = "travel_store.db"):
        '''
        Args:
            db_path: Path to SQLite database file
        '''
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        with self._lock, sqlite3.connect(self.db_path) as conn:
            row = conn.execute('SELECT value FROM kv WHERE key = ?', (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._lock, sqlite3.connect(self.db_path) as conn:
            conn.execute(
                'INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)',
                (key, value, datetime.utcnow().isoformat())
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with self._lock, sqlite3.connect(self.db_path) as conn:
            conn.execute('DELETE FROM kv WHERE key = ?', (key,))
            conn.commit()


class UserStorageStore(KeyValueStore):
    '''Adapter over NiceGUI's per-browser `app.storage.user` mapping.'''

    def __init__(self, mapping: MutableMapping[str, Any]):
        self._mapping = mapping

    def get(self, key: str) -> Optional[str]:
        value = self._mapping.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._mapping[key] = value

    def delete(self, key: str) -> None:
        self._mapping.pop(key, None)


def load_json(store: KeyValueStore, key: str, default: Any) -> Any:
    '''Return the decoded value under `key`, or `default` when absent.'''
    raw = store.get(key)
    if raw is None:
        return default
    return json.loads(raw)


def save_json(store: KeyValueStore, key: str, value: Any) -> None:
    store.set(key, json.dumps(value))
