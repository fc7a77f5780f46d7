"""
Store session backed by a Redis server through redis-py.
"""
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence, Tuple, Any

import redis
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    ResponseError,
    TimeoutError as RedisTimeoutError,
)

from configdb.core.config import DatabaseInfo, InstanceInfo
from configdb.core.dto import Command
from configdb.core.exceptions import CommandError, ConnectionFailure

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(what: str):
    """Re-raise redis-py errors as config DB errors."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        raise ConnectionFailure(f"{what}: {e}") from e
    except ResponseError as e:
        raise CommandError(f"{what}: {e}") from e


class RedisNotifier:
    """Keyspace notification subscription over a redis-py PubSub."""

    def __init__(self, pubsub):
        self._pubsub = pubsub

    def psubscribe(self, pattern: str):
        with _translate_errors(f"PSUBSCRIBE {pattern}"):
            self._pubsub.psubscribe(pattern)

    def punsubscribe(self, pattern: str):
        with _translate_errors(f"PUNSUBSCRIBE {pattern}"):
            self._pubsub.punsubscribe(pattern)

    def next_message(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        # redis-py blocks without limit when timeout is None
        with _translate_errors("pubsub receive"):
            return self._pubsub.get_message(timeout=timeout)

    def close(self):
        self._pubsub.close()


class RedisSession:
    """One connection context to a single logical Redis database."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 6379,
        db_id: int = 0,
        unix_socket_path: Optional[str] = None,
        socket_timeout: Optional[float] = None,
        client: Optional[redis.Redis] = None,
    ):
        """
        Initialize the session. No network traffic happens until ping().

        Args:
            host: Server hostname (ignored with unix_socket_path)
            port: Server TCP port
            db_id: Logical database number
            unix_socket_path: Connect through a unix socket instead of TCP
            socket_timeout: Per-command socket timeout in seconds
            client: Pre-built redis.Redis client (must use decode_responses=True)
        """
        self.db_id = db_id
        if client is None:
            if unix_socket_path:
                client = redis.Redis(
                    unix_socket_path=unix_socket_path,
                    db=db_id,
                    socket_timeout=socket_timeout,
                    decode_responses=True,
                )
            else:
                client = redis.Redis(
                    host=host,
                    port=port,
                    db=db_id,
                    socket_timeout=socket_timeout,
                    decode_responses=True,
                )
        self.client = client

    @classmethod
    def from_database_info(
        cls,
        info: DatabaseInfo,
        instance: InstanceInfo,
        use_unix_socket_path: bool = False,
    ) -> "RedisSession":
        """Build a session for a database described by the database config."""
        unix_socket_path = instance.unix_socket_path if use_unix_socket_path else None
        return cls(
            host=instance.hostname,
            port=instance.port,
            db_id=info.id,
            unix_socket_path=unix_socket_path,
        )

    def ping(self) -> bool:
        with _translate_errors(f"connect to db {self.db_id}"):
            return self.client.ping()

    def get(self, key: str) -> Optional[str]:
        with _translate_errors(f"GET {key}"):
            return self.client.get(key)

    def hgetall(self, key: str) -> Dict[str, str]:
        with _translate_errors(f"HGETALL {key}"):
            return self.client.hgetall(key)

    def hset(self, key: str, mapping: Dict[str, str]) -> int:
        with _translate_errors(f"HSET {key}"):
            return self.client.hset(key, mapping=mapping)

    def hdel(self, key: str, *fields: str) -> int:
        if not fields:
            return 0
        with _translate_errors(f"HDEL {key}"):
            return self.client.hdel(key, *fields)

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with _translate_errors("DEL"):
            return self.client.delete(*keys)

    def keys(self, pattern: str) -> List[str]:
        with _translate_errors(f"KEYS {pattern}"):
            return self.client.keys(pattern)

    def scan(self, cursor: int, match: str, count: int) -> Tuple[int, List[str]]:
        with _translate_errors(f"SCAN {cursor} MATCH {match}"):
            next_cursor, keys = self.client.scan(cursor=cursor, match=match, count=count)
        return int(next_cursor), list(keys)

    def execute_batch(
        self,
        commands: Sequence[Command],
        transaction: bool = True,
        raise_on_error: bool = True,
    ) -> List[Any]:
        pipe = self.client.pipeline(transaction=transaction)
        for command in commands:
            pipe.execute_command(*command.to_args())
        logger.debug("Executing pipeline of %d commands on db %d", len(commands), self.db_id)
        with _translate_errors(f"pipeline of {len(commands)} commands"):
            return pipe.execute(raise_on_error=raise_on_error)

    def pubsub(self) -> RedisNotifier:
        return RedisNotifier(self.client.pubsub())

    def close(self):
        self.client.close()

    def __repr__(self):
        return f"RedisSession(db_id={self.db_id})"
