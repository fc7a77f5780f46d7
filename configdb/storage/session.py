"""Store session abstraction.

The narrow interface the config DB client needs from a hash-keyed store.
A session is owned by exactly one ConfigStore handle and is never shared
through module-level state.
"""
from __future__ import annotations
from typing import Protocol, Dict, List, Optional, Sequence, Tuple, Any

from configdb.core.dto import Command


class Notifier(Protocol):  # pragma: no cover - structural typing helper
    """Pattern subscription to keyspace-change notifications."""

    def psubscribe(self, pattern: str) -> None:
        """Request a subscription; a 'psubscribe' message confirms it."""
        ...

    def punsubscribe(self, pattern: str) -> None: ...

    def next_message(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Block for the next message; timeout=None waits forever.

        Messages are dicts with 'type', 'pattern', 'channel' and 'data'.
        """
        ...

    def close(self) -> None: ...


class StoreSession(Protocol):  # pragma: no cover - structural typing helper
    db_id: int

    def ping(self) -> bool:
        """Raise ConnectionFailure if the store cannot be reached."""
        ...

    def get(self, key: str) -> Optional[str]: ...

    def hgetall(self, key: str) -> Dict[str, str]: ...

    def hset(self, key: str, mapping: Dict[str, str]) -> int: ...

    def hdel(self, key: str, *fields: str) -> int: ...

    def delete(self, *keys: str) -> int: ...

    def keys(self, pattern: str) -> List[str]: ...

    def scan(self, cursor: int, match: str, count: int) -> Tuple[int, List[str]]: ...

    def execute_batch(
        self,
        commands: Sequence[Command],
        transaction: bool = True,
        raise_on_error: bool = True,
    ) -> List[Any]:
        """Send all commands in one round trip and return replies in order.

        With raise_on_error=False a failed command yields its exception
        object in place of the reply.
        """
        ...

    def pubsub(self) -> Notifier: ...

    def close(self) -> None: ...
