"""
Database layout configuration: ids, separators and server instances.

The JSON file format is the one of a SONiC database_config.json:

    {
        "INSTANCES": {"redis": {"hostname": "127.0.0.1", "port": 6379,
                                "unix_socket_path": "/var/run/redis/redis.sock"}},
        "DATABASES": {"CONFIG_DB": {"id": 4, "separator": "|", "instance": "redis"}}
    }
"""
import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from configdb.core.exceptions import ConfigFileError, UnknownDatabaseError

logger = logging.getLogger(__name__)

# Environment variable pointing at a database_config.json
CONFIG_PATH_ENV = "CONFIGDB_DATABASE_CONFIG"

DEFAULT_INSTANCE = "redis"


@dataclass
class InstanceInfo:
    """Location of one store server."""
    hostname: str = "127.0.0.1"
    port: int = 6379
    unix_socket_path: Optional[str] = None


@dataclass
class DatabaseInfo:
    """Identity of one logical database."""
    name: str
    id: int
    separator: str
    instance: str = DEFAULT_INSTANCE


_DEFAULT_DATABASES = [
    DatabaseInfo("APPL_DB", 0, ":"),
    DatabaseInfo("ASIC_DB", 1, ":"),
    DatabaseInfo("COUNTERS_DB", 2, ":"),
    DatabaseInfo("LOGLEVEL_DB", 3, ":"),
    DatabaseInfo("CONFIG_DB", 4, "|"),
    DatabaseInfo("PFC_WD_DB", 5, ":"),
    DatabaseInfo("FLEX_COUNTER_DB", 5, ":"),
    DatabaseInfo("STATE_DB", 6, "|"),
    DatabaseInfo("SNMP_OVERLAY_DB", 7, "|"),
]


class DatabaseConfig:
    """Lookup table from database name to id, separator and instance."""

    def __init__(
        self,
        databases: Optional[Dict[str, DatabaseInfo]] = None,
        instances: Optional[Dict[str, InstanceInfo]] = None,
        use_unix_socket_path: bool = False,
        retry_interval: float = 1.0,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize the database config.

        Args:
            databases: Databases by name (default: SONiC layout)
            instances: Server instances by name (default: one local redis)
            use_unix_socket_path: Prefer the instance unix socket over TCP
            retry_interval: Seconds between connection attempts when retrying
            max_retries: Max extra attempts when retrying (None: retry forever)
        """
        if databases is None:
            databases = {db.name: db for db in _DEFAULT_DATABASES}
        if instances is None:
            instances = {DEFAULT_INSTANCE: InstanceInfo()}
        if retry_interval < 0:
            raise ValueError("retry_interval cannot be negative")
        if max_retries is not None and max_retries < 0:
            raise ValueError("max_retries cannot be negative")

        self.databases = databases
        self.instances = instances
        self.use_unix_socket_path = use_unix_socket_path
        self.retry_interval = retry_interval
        self.max_retries = max_retries

    @classmethod
    def from_file(cls, path: str, **kwargs) -> "DatabaseConfig":
        """
        Load a database_config.json file.

        Args:
            path: Path of the JSON file
            **kwargs: Extra DatabaseConfig arguments (retry settings, ...)

        Raises:
            ConfigFileError: If the file is missing or malformed
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except OSError as e:
            raise ConfigFileError(f"Cannot read database config '{path}': {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"Invalid JSON in database config '{path}': {e}") from e

        try:
            instances = {
                name: InstanceInfo(
                    hostname=entry.get("hostname", "127.0.0.1"),
                    port=int(entry.get("port", 6379)),
                    unix_socket_path=entry.get("unix_socket_path"),
                )
                for name, entry in raw.get("INSTANCES", {}).items()
            }
            databases = {
                name: DatabaseInfo(
                    name=name,
                    id=int(entry["id"]),
                    separator=entry["separator"],
                    instance=entry.get("instance", DEFAULT_INSTANCE),
                )
                for name, entry in raw["DATABASES"].items()
            }
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ConfigFileError(f"Malformed database config '{path}': {e}") from e

        if not instances:
            instances = {DEFAULT_INSTANCE: InstanceInfo()}
        for db in databases.values():
            if db.instance not in instances:
                raise ConfigFileError(
                    f"Database {db.name} refers to unknown instance '{db.instance}'"
                )

        logger.info("Loaded %d databases from %s", len(databases), path)
        return cls(databases=databases, instances=instances, **kwargs)

    @classmethod
    def from_env(cls, **kwargs) -> "DatabaseConfig":
        """Load the file named by CONFIGDB_DATABASE_CONFIG, else use defaults."""
        path = os.environ.get(CONFIG_PATH_ENV)
        if path:
            return cls.from_file(path, **kwargs)
        return cls(**kwargs)

    def get_database(self, db_name: str) -> DatabaseInfo:
        try:
            return self.databases[db_name]
        except KeyError:
            raise UnknownDatabaseError(db_name) from None

    def get_separator(self, db_name: str) -> str:
        return self.get_database(db_name).separator

    def get_dbid(self, db_name: str) -> int:
        return self.get_database(db_name).id

    def get_instance(self, db_name: str) -> InstanceInfo:
        db = self.get_database(db_name)
        return self.instances[db.instance]

    def get_dblist(self) -> list:
        return list(self.databases)
