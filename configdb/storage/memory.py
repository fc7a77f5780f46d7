"""
In-process store session using skiplistcollections with keyspace notifications.
"""
import itertools
import queue
import threading
from fnmatch import fnmatchcase
from typing import Dict, List, Optional, Sequence, Tuple, Any

from skiplistcollections import SkipListDict

from configdb.core.dto import Command, CommandType
from configdb.core.exceptions import CommandError

WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"

# Leading byte of every encoded cursor; keeps cursors non-zero
_CURSOR_TAG = b"\x01"


def _key_cursor(key: str) -> int:
    """Encode the last examined key as a scan cursor."""
    return int.from_bytes(_CURSOR_TAG + key.encode("utf-8"), "big")


def _cursor_key(cursor: int) -> str:
    """Decode a cursor made by _key_cursor; raise CommandError otherwise."""
    try:
        raw = cursor.to_bytes((cursor.bit_length() + 7) // 8, "big")
        if not raw.startswith(_CURSOR_TAG):
            raise ValueError(cursor)
        return raw[len(_CURSOR_TAG):].decode("utf-8")
    except (OverflowError, ValueError, AttributeError):
        raise CommandError(f"ERR invalid cursor {cursor}") from None


class MemoryNotifier:
    """Pattern subscription fed by a MemoryStore."""

    def __init__(self, store: "MemoryStore"):
        self._store = store
        self._patterns = set()
        self._messages = queue.Queue()

    def psubscribe(self, pattern: str):
        self._patterns.add(pattern)
        self._store._attach(self)
        self._messages.put({
            "type": "psubscribe",
            "pattern": None,
            "channel": pattern,
            "data": len(self._patterns),
        })

    def punsubscribe(self, pattern: str):
        self._patterns.discard(pattern)
        if not self._patterns:
            self._store._detach(self)
        self._messages.put({
            "type": "punsubscribe",
            "pattern": None,
            "channel": pattern,
            "data": len(self._patterns),
        })

    def next_message(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        try:
            return self._messages.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self):
        self._patterns.clear()
        self._store._detach(self)

    def _deliver(self, channel: str, event: str):
        for pattern in list(self._patterns):
            if fnmatchcase(channel, pattern):
                self._messages.put({
                    "type": "pmessage",
                    "pattern": pattern,
                    "channel": channel,
                    "data": event,
                })


class MemoryStore:
    """
    Hash-keyed store held in memory.

    Keys are kept sorted in a skiplist so SCAN cursors resume after the
    last key they returned: keys present for a whole scan are returned
    at least once, keys added or removed meanwhile may or may not be.
    A cursor encodes that last key, so abandoned scans leave no state.
    """

    def __init__(self, db_id: int = 0, capacity: int = 1024, notify_keyspace_events: bool = True):
        """
        Initialize the store.

        Args:
            db_id: Database number used in keyspace notification channels
            capacity: Expected number of keys (sizes the skiplist levels)
            notify_keyspace_events: Publish __keyspace@<db>__:<key> events
        """
        self.db_id = db_id
        self.capacity = max(capacity, 16)
        self.notify_keyspace_events = notify_keyspace_events

        # Values are str for plain keys, dict for hashes
        self._data = SkipListDict(capacity=self.capacity)
        self._lock = threading.RLock()

        self._subscribers: List[MemoryNotifier] = []

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._data.get(key)
            if isinstance(value, dict):
                raise CommandError(WRONGTYPE)
            return value

    def set(self, key: str, value: str) -> bool:
        with self._lock:
            self._data[key] = value
        self._notify(key, "set")
        return True

    def hgetall(self, key: str) -> Dict[str, str]:
        with self._lock:
            value = self._data.get(key)
            if value is None:
                return {}
            if not isinstance(value, dict):
                raise CommandError(WRONGTYPE)
            return dict(value)

    def hset(self, key: str, mapping: Dict[str, str]) -> int:
        if not mapping:
            raise CommandError("ERR wrong number of arguments for 'hset' command")
        with self._lock:
            current = self._data.get(key)
            if current is None:
                current = {}
            elif not isinstance(current, dict):
                raise CommandError(WRONGTYPE)
            added = sum(1 for name in mapping if name not in current)
            current.update(mapping)
            self._data[key] = current
        self._notify(key, "hset")
        return added

    def hdel(self, key: str, *fields: str) -> int:
        with self._lock:
            current = self._data.get(key)
            if current is None:
                return 0
            if not isinstance(current, dict):
                raise CommandError(WRONGTYPE)
            removed = 0
            for name in fields:
                if name in current:
                    del current[name]
                    removed += 1
            # Redis drops a hash once its last field is gone
            if not current:
                del self._data[key]
        if removed:
            self._notify(key, "hdel")
        return removed

    def delete(self, *keys: str) -> int:
        deleted = []
        with self._lock:
            for key in keys:
                if key in self._data:
                    del self._data[key]
                    deleted.append(key)
        for key in deleted:
            self._notify(key, "del")
        return len(deleted)

    def keys(self, pattern: str) -> List[str]:
        with self._lock:
            return [key for key in self._data.keys() if fnmatchcase(key, pattern)]

    def scan(self, cursor: int, match: str, count: int) -> Tuple[int, List[str]]:
        """
        Return up to `count` examined keys matching `match` and the next cursor.

        A returned cursor of 0 means the scan is complete.
        """
        if count <= 0:
            raise CommandError("ERR syntax error")
        last_key = None if cursor == 0 else _cursor_key(cursor)
        with self._lock:
            window = list(itertools.islice(self._keys_after(last_key), count + 1))

        if len(window) > count:
            window = window[:count]
            next_cursor = _key_cursor(window[-1])
        else:
            next_cursor = 0
        return next_cursor, [key for key in window if fnmatchcase(key, match)]

    def _keys_after(self, last_key: Optional[str]):
        """Iterate keys strictly greater than last_key, seeking in the skiplist."""
        if last_key is None:
            return iter(self._data.keys())
        first = next(iter(self._data.keys()), None)
        if first is None:
            return iter(())
        # keys(start_key=...) yields nothing when start_key sorts before the first key
        if first < last_key:
            keys = self._data.keys(start_key=last_key)
        else:
            keys = self._data.keys()
        return itertools.dropwhile(lambda key: key <= last_key, keys)

    def execute_batch(
        self,
        commands: Sequence[Command],
        transaction: bool = True,
        raise_on_error: bool = True,
    ) -> List[Any]:
        """Run commands back to back under the store lock, like MULTI/EXEC."""
        replies = []
        with self._lock:
            for command in commands:
                try:
                    replies.append(self._dispatch(command))
                except CommandError as e:
                    replies.append(e)
        if raise_on_error:
            for reply in replies:
                if isinstance(reply, CommandError):
                    raise reply
        return replies

    def _dispatch(self, command: Command):
        if command.op == CommandType.HGETALL:
            return self.hgetall(command.key)
        if command.op == CommandType.HSET:
            return self.hset(command.key, command.mapping)
        if command.op == CommandType.HDEL:
            return self.hdel(command.key, *command.fields)
        if command.op == CommandType.DEL:
            return self.delete(command.key)
        raise CommandError(f"ERR unknown command '{command.op}'")

    def pubsub(self) -> MemoryNotifier:
        return MemoryNotifier(self)

    def flushdb(self):
        """Remove every key."""
        with self._lock:
            self._data = SkipListDict(capacity=self.capacity)

    def close(self):
        """Sessions over a MemoryStore share its data; closing keeps it."""

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def _attach(self, notifier: MemoryNotifier):
        with self._lock:
            if notifier not in self._subscribers:
                self._subscribers.append(notifier)

    def _detach(self, notifier: MemoryNotifier):
        with self._lock:
            if notifier in self._subscribers:
                self._subscribers.remove(notifier)

    def _notify(self, key: str, event: str):
        if not self.notify_keyspace_events:
            return
        channel = f"__keyspace@{self.db_id}__:{key}"
        with self._lock:
            subscribers = list(self._subscribers)
        for notifier in subscribers:
            notifier._deliver(channel, event)

    def __repr__(self):
        return f"MemoryStore(db_id={self.db_id}, keys={len(self)})"
