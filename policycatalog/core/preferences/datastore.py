from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections import defaultdict
from pathlib import Path
from threading import Lock
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Tuple, Union

from policycatalog.core.usecase.dispatchers import CoroutineDispatcher, InlineDispatcher, ThreadPoolDispatcher

log = logging.getLogger("policycatalog.preferences")

_MISSING = object()


def _value_type(value: Any) -> str:
    """Storage type tag for a preference value.

    Raises
    - ValueError: the value cannot be stored as a preference.
    """

    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if isinstance(value, (set, frozenset)):
        if all(isinstance(v, str) for v in value):
            return "str_set"
        raise ValueError("Set must contain only str values")
    raise ValueError(f"{type(value).__name__} cannot be stored as a preference")


def _matches(stored: Any, default: Any) -> Any:
    """Return stored if it has the same storage type as default, else default."""

    if stored is _MISSING:
        return default
    if default is None:
        return stored
    if _value_type(stored) != _value_type(default):
        return default
    if isinstance(stored, (set, frozenset)):
        return frozenset(stored)
    return stored


class PreferenceSource(Protocol):
    """Durable key/value store with reactive reads."""

    async def set_value(self, key: str, value: Any) -> None:
        ...

    def get_value(self, key: str, default: Any) -> AsyncIterator[Any]:
        ...


class ObservablePreferenceSource:
    """
    Shared subscription logic for preference sources.

    get_value yields the current value first, then one value per later
    write to the same key. A stored value whose type differs from the
    default's type reads as the default.

    Subclasses implement _load and _store; both are plain callables and run
    on the instance's dispatcher.
    """

    def __init__(self, dispatcher: CoroutineDispatcher):
        self._dispatcher = dispatcher
        self._subscribers: Dict[str, List[asyncio.Queue]] = defaultdict(list)
        self._subscribers_lock = Lock()

    def _load(self, key: str) -> Any:
        raise NotImplementedError

    def _store(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def set_value(self, key: str, value: Any) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError("preference key must be a non-empty string")
        _value_type(value)
        if isinstance(value, set):
            value = frozenset(value)

        await self._dispatcher.dispatch(self._store, key, value)

        with self._subscribers_lock:
            queues = list(self._subscribers.get(key, ()))
        for q in queues:
            q.put_nowait(value)

    async def get(self, key: str, default: Any) -> Any:
        """One-shot read of the current value."""
        stored = await self._dispatcher.dispatch(self._load, key)
        return _matches(stored, default)

    async def get_value(self, key: str, default: Any) -> AsyncIterator[Any]:
        if default is not None:
            _value_type(default)

        queue: asyncio.Queue = asyncio.Queue()
        with self._subscribers_lock:
            self._subscribers[key].append(queue)
        try:
            yield await self.get(key, default)
            while True:
                yield _matches(await queue.get(), default)
        finally:
            with self._subscribers_lock:
                subs = self._subscribers.get(key)
                if subs is not None and queue in subs:
                    subs.remove(queue)
                    if not subs:
                        del self._subscribers[key]

    def subscriber_count(self, key: str) -> int:
        with self._subscribers_lock:
            return len(self._subscribers.get(key, ()))


class InMemoryPreferenceSource(ObservablePreferenceSource):
    """Process-local preference source; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        super().__init__(InlineDispatcher(name="preferences"))
        self._values: Dict[str, Any] = {}
        self._lock = Lock()
        for k, v in (initial or {}).items():
            _value_type(v)
            self._values[k] = frozenset(v) if isinstance(v, set) else v

    def _load(self, key: str) -> Any:
        with self._lock:
            return self._values.get(key, _MISSING)

    def _store(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value


def _encode(value: Any) -> Tuple[str, str]:
    vtype = _value_type(value)
    if vtype == "str_set":
        return vtype, json.dumps(sorted(value))
    return vtype, json.dumps(value)


def _decode(vtype: str, text: str) -> Any:
    data = json.loads(text)
    if vtype == "str_set":
        return frozenset(data)
    if vtype == "float":
        return float(data)
    return data


class SQLitePreferenceSource(ObservablePreferenceSource):
    """SQLite-backed preference source.

    Notes:
    - Values are stored as JSON text with a type tag.
    - This store does NOT encrypt data at rest.
    - Blocking sqlite calls run on the io dispatcher.
    """

    def __init__(self, db_path: Union[str, Path], dispatcher: Optional[CoroutineDispatcher] = None):
        super().__init__(dispatcher or ThreadPoolDispatcher(name="preferences", max_workers=1))
        self.db_path = Path(db_path)
        self.init_schema()

    def connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def init_schema(self) -> None:
        with self.connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS preferences (
                    key TEXT PRIMARY KEY,
                    value_type TEXT NOT NULL,
                    value_json TEXT NOT NULL
                )
                """
            )

    def _load(self, key: str) -> Any:
        con = self.connect()
        try:
            row = con.execute(
                "SELECT value_type, value_json FROM preferences WHERE key = ?", (key,)
            ).fetchone()
        finally:
            con.close()
        if row is None:
            return _MISSING
        try:
            return _decode(row[0], row[1])
        except (ValueError, TypeError):
            log.warning("discarding undecodable preference %r", key)
            return _MISSING

    def _store(self, key: str, value: Any) -> None:
        vtype, text = _encode(value)
        con = self.connect()
        try:
            with con:
                con.execute(
                    "INSERT INTO preferences(key, value_type, value_json) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value_type = excluded.value_type, "
                    "value_json = excluded.value_json",
                    (key, vtype, text),
                )
        finally:
            con.close()

    def keys(self) -> List[str]:
        con = self.connect()
        try:
            return [r[0] for r in con.execute("SELECT key FROM preferences ORDER BY key")]
        finally:
            con.close()

    def close(self) -> None:
        self._dispatcher.close()


class PreferencesRepository:
    """Domain-facing facade over a PreferenceSource."""

    def __init__(self, source: PreferenceSource):
        self._source = source

    @property
    def source(self) -> PreferenceSource:
        return self._source

    async def set_value(self, key: str, value: Any) -> None:
        await self._source.set_value(key, value)

    def get_value(self, key: str, default: Any) -> AsyncIterator[Any]:
        return self._source.get_value(key, default)

    async def get(self, key: str, default: Any) -> Any:
        """First value of get_value; the stream is closed afterwards."""
        stream = self._source.get_value(key, default)
        try:
            return await stream.__anext__()
        finally:
            await stream.aclose()
