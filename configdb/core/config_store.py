"""
ConfigStore - table-structured configuration on top of a flat hash store.
"""
import logging
import time
from typing import Callable, List, Optional

from configdb.core.config import DatabaseConfig, DatabaseInfo
from configdb.core.dto import Command, CommandType, ConfigData, FieldMap, Key, TableData
from configdb.core.entry import merge_command, merge_entry, read_entry, replace_entry
from configdb.core.exceptions import CommandError, ConnectionFailure, NotConnectedError
from configdb.core.init_gate import INIT_INDICATOR, InitGate
from configdb.core.pipeline import BatchPipeline
from configdb.core.scanner import REDIS_SCAN_BATCH_SIZE, CursorScanner
from configdb.storage.key_codec import KeyCodec
from configdb.storage.redis_session import RedisSession
from configdb.storage.session import StoreSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[DatabaseInfo], StoreSession]


class ConfigStore:
    """
    Client for one configuration database.

    Data is addressed as table -> key -> {field: value}. Each entry lives
    in one hash whose flat key is UPPER(table) + separator + key. Bulk
    operations here issue one command at a time; PipeConfigStore batches
    them.
    """

    def __init__(
        self,
        database_config: Optional[DatabaseConfig] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        """
        Initialize the client. Nothing is opened until connect().

        Args:
            database_config: Database ids, separators and instances
                (default: loaded from CONFIGDB_DATABASE_CONFIG or built-in)
            session_factory: Builds the store session of a database
                (default: a RedisSession on the database's instance)
        """
        if database_config is None:
            database_config = DatabaseConfig.from_env()
        self.database_config = database_config
        self.session_factory = session_factory or self._redis_session

        self._session: Optional[StoreSession] = None
        self._codec: Optional[KeyCodec] = None
        self._db_name: Optional[str] = None
        self.init_gate: Optional[InitGate] = None

    def _redis_session(self, info: DatabaseInfo) -> RedisSession:
        return RedisSession.from_database_info(
            info,
            self.database_config.get_instance(info.name),
            use_unix_socket_path=self.database_config.use_unix_socket_path,
        )

    # Connection lifecycle

    def connect(self, wait_for_init: bool = True, retry_on: bool = False):
        """
        Connect to CONFIG_DB.

        Args:
            wait_for_init: Block until CONFIG_DB_INITIALIZED is set
            retry_on: Keep retrying while the store is unreachable
        """
        self.db_connect("CONFIG_DB", wait_for_init=wait_for_init, retry_on=retry_on)

    def db_connect(self, db_name: str, wait_for_init: bool = False, retry_on: bool = False):
        """
        Connect to any database of the database config.

        The key separator is re-derived from the database on every connect.

        Raises:
            UnknownDatabaseError: If db_name is not configured
            ConnectionFailure: If the store is unreachable (after retries)
        """
        info = self.database_config.get_database(db_name)
        if self._session is not None:
            self.close()

        session = self._open_session(info, retry_on)
        self._session = session
        self._codec = KeyCodec(info.separator)
        self._db_name = db_name
        logger.info("Connected to %s (db %d, separator %r)", db_name, info.id, info.separator)

        if wait_for_init:
            self.init_gate = InitGate(session, info.id)
            self.init_gate.wait()

    def _open_session(self, info: DatabaseInfo, retry_on: bool) -> StoreSession:
        max_retries = self.database_config.max_retries
        attempt = 0
        while True:
            session = self.session_factory(info)
            try:
                session.ping()
                return session
            except ConnectionFailure as e:
                session.close()
                if not retry_on or (max_retries is not None and attempt >= max_retries):
                    raise
                attempt += 1
                logger.warning(
                    "Connection to %s failed (attempt %d): %s; retrying in %.1fs",
                    info.name, attempt, e, self.database_config.retry_interval,
                )
                time.sleep(self.database_config.retry_interval)

    def close(self):
        """Disconnect. Stored data is not affected."""
        if self._session is None:
            return
        self._session.close()
        logger.info("Disconnected from %s", self._db_name)
        self._session = None
        self._codec = None
        self._db_name = None
        self.init_gate = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def session(self) -> StoreSession:
        if self._session is None:
            raise NotConnectedError("Config store is not connected")
        return self._session

    @property
    def codec(self) -> KeyCodec:
        if self._codec is None:
            raise NotConnectedError("Config store is not connected")
        return self._codec

    @property
    def db_name(self) -> Optional[str]:
        return self._db_name

    def get_key_separator(self) -> str:
        return self.codec.separator

    def serialize_key(self, key: Key) -> str:
        """Join a composite key tuple into its row string."""
        return self.codec.join_key(key)

    def deserialize_key(self, row: str) -> Key:
        """Split a row string into a composite key tuple (or a plain string)."""
        return self.codec.deserialize_key(row)

    # Entries

    def set_entry(self, table: str, key: Key, data: Optional[FieldMap]):
        """
        Write a table entry, removing fields in the db which are not in data.

        Args:
            table: Table name
            key: Entry key, or a tuple of keys for a multi-key table
            data: {'field': 'value', ...}; {} or None deletes the entry
        """
        self._validate_data(data)
        replace_entry(self.session, self.codec.encode(table, key), data)

    def mod_entry(self, table: str, key: Key, data: Optional[FieldMap]):
        """
        Write the given fields of a table entry, keeping the others.

        Args:
            table: Table name
            key: Entry key, or a tuple of keys for a multi-key table
            data: {'field': 'value', ...}; {} or None deletes the entry
        """
        self._validate_data(data)
        merge_entry(self.session, self.codec.encode(table, key), data)

    def get_entry(self, table: str, key: Key) -> FieldMap:
        """Read a table entry; {} if the table or entry does not exist."""
        return read_entry(self.session, self.codec.encode(table, key))

    # Tables

    def get_keys(self, table: str, split: bool = True) -> List[str]:
        """
        Read all keys of a table.

        Args:
            table: Table name
            split: Strip the "<TABLE><sep>" prefix and return only the row key

        Returns:
            List of keys, [] if the table does not exist
        """
        keys = self.session.keys(self.codec.table_pattern(table))
        if not split:
            return list(keys)
        return [self.codec.strip_table(key) for key in keys]

    def get_table(self, table: str) -> TableData:
        """
        Read an entire table. Non-hash keys under the table prefix are skipped.

        Returns:
            {'row_key': {'field': 'value', ...}, ...}, {} if the table does not exist
        """
        data = {}
        for key in self.session.keys(self.codec.table_pattern(table)):
            try:
                entry = read_entry(self.session, key)
            except CommandError as e:
                logger.debug("Skipping non-hash key %s: %s", key, e)
                continue
            if entry:
                data[self.codec.strip_table(key)] = entry
        return data

    def delete_table(self, table: str):
        """Delete every entry of a table. Deleting a missing table is a no-op."""
        keys = self.session.keys(self.codec.table_pattern(table))
        if keys:
            self.session.delete(*keys)
        logger.debug("Deleted %d entries of %s", len(keys), table.upper())

    # Whole configuration

    def mod_config(self, data: ConfigData):
        """
        Write multiple tables. Entries and fields not in data are kept.

        Args:
            data: {'TABLE': {'row_key': {'field': 'value', ...}, ...}, ...}
                  An empty table mapping deletes the whole table; an empty
                  entry mapping deletes that entry.
        """
        for table, table_data in data.items():
            if not table_data:
                self.delete_table(table)
                continue
            for key, fields in table_data.items():
                self.mod_entry(table, key, fields)

    def get_config(self) -> ConfigData:
        """
        Read all configuration data.

        Keys without a separator and the initialization marker are skipped.

        Returns:
            {'TABLE': {'row_key': {'field': 'value', ...}, ...}, ...}
        """
        data = {}
        for key in self.session.keys("*"):
            if key == INIT_INDICATOR:
                continue
            decoded = self.codec.try_decode(key)
            if decoded is None:
                continue
            try:
                entry = read_entry(self.session, key)
            except CommandError as e:
                logger.debug("Skipping non-hash key %s: %s", key, e)
                continue
            if entry:
                table, row = decoded
                data.setdefault(table, {})[row] = entry
        return data

    @staticmethod
    def _validate_data(data):
        if data is not None and not isinstance(data, dict):
            raise TypeError(f"Entry data must be a dict or None, got {type(data).__name__}")


class PipeConfigStore(ConfigStore):
    """
    ConfigStore whose bulk operations use cursor scans and pipelines.

    delete_table, mod_config and get_config never issue KEYS; table
    deletion and whole-config writes go out as one batch per call, and
    get_config reads one pipelined batch per scan round.
    """

    def __init__(
        self,
        database_config: Optional[DatabaseConfig] = None,
        session_factory: Optional[SessionFactory] = None,
        scan_batch_size: int = REDIS_SCAN_BATCH_SIZE,
    ):
        super().__init__(database_config=database_config, session_factory=session_factory)
        self.scan_batch_size = scan_batch_size

    def _scanner(self) -> CursorScanner:
        return CursorScanner(self.session, batch_size=self.scan_batch_size)

    def _delete_table(self, pipe: BatchPipeline, table: str) -> int:
        """Queue a DEL for every key of a table; the caller executes the pipe."""
        queued = 0
        for batch in self._scanner().batches(self.codec.table_pattern(table)):
            for key in batch:
                pipe.enqueue(Command(CommandType.DEL, key))
                queued += 1
        return queued

    def delete_table(self, table: str):
        pipe = BatchPipeline(self.session)
        queued = self._delete_table(pipe, table)
        pipe.execute()
        logger.debug("Deleted %d entries of %s", queued, table.upper())

    def mod_config(self, data: ConfigData):
        pipe = BatchPipeline(self.session)
        for table, table_data in data.items():
            if not table_data:
                self._delete_table(pipe, table)
                continue
            for key, fields in table_data.items():
                self._validate_data(fields)
                pipe.enqueue(merge_command(self.codec.encode(table, key), fields))
        sent = pipe.execute()
        logger.debug("mod_config sent %d commands for %d tables", sent, len(data))

    def get_config(self) -> ConfigData:
        """
        Read all configuration data, one pipelined batch per scan round.

        Not a point-in-time snapshot: entries changed between rounds may be
        read partially updated.
        """
        data = {}
        pipe = BatchPipeline(self.session)
        for batch in self._scanner().batches("*"):
            queued = []
            for key in batch:
                if key == INIT_INDICATOR:
                    continue
                decoded = self.codec.try_decode(key)
                if decoded is None:
                    continue
                pipe.enqueue(Command(CommandType.HGETALL, key))
                queued.append(decoded)

            pipe.execute(raise_on_error=False)
            for table, row in queued:
                entry = pipe.dequeue_reply()
                if entry:
                    data.setdefault(table, {})[row] = entry
        return data
