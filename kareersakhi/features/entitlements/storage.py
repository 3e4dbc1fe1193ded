"""
Durable key-value storage adapters for client state.

The entitlement store is given one of these at construction time:
- InMemoryStorage: tests and throwaway sessions
- FileStorage: one JSON document on disk, written atomically
- SqlStorage: a row in the kv_store table
"""

import json
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from sqlalchemy import delete, insert, select, update

from kareersakhi.core.database import get_db_session, kv_store
from kareersakhi.core.logging import log_event


class StateStorage(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileStorage:
    """All keys in a single JSON object on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except ValueError as e:
            # Unreadable file reads as empty; the store falls back to defaults
            self._log_corrupt(e)
            return {}
        if not isinstance(data, dict):
            self._log_corrupt("top-level value is not an object")
            return {}
        return data

    def _log_corrupt(self, error) -> None:
        log_event(
            "warning",
            "storage.state_corrupt",
            event_type="entitlement.reset",
            error_code="state_corrupt",
            extra={"path": str(self.path), "error": error},
        )

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self.path)
        except Exception:
            os.unlink(tmp)
            raise

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if data.pop(key, None) is not None:
                self._write_all(data)


class SqlStorage:
    """Rows in the kv_store table."""

    def get(self, key: str) -> Optional[str]:
        with get_db_session() as session:
            row = session.execute(
                select(kv_store.c.value).where(kv_store.c.key == key)
            ).fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc)
        with get_db_session() as session:
            existing = session.execute(
                select(kv_store.c.key).where(kv_store.c.key == key)
            ).fetchone()
            if existing:
                session.execute(
                    update(kv_store)
                    .where(kv_store.c.key == key)
                    .values(value=value, updated_at=now)
                )
            else:
                session.execute(
                    insert(kv_store).values(key=key, value=value, updated_at=now)
                )
            session.commit()

    def remove(self, key: str) -> None:
        with get_db_session() as session:
            session.execute(delete(kv_store).where(kv_store.c.key == key))
            session.commit()
