"""
configdb - table-structured configuration client for hash-keyed stores.
"""
import logging

from configdb.core.config_store import ConfigStore, PipeConfigStore
from configdb.core.config import DatabaseConfig, DatabaseInfo, InstanceInfo
from configdb.core.dto import Command, CommandType, GateState, ScanResult
from configdb.core.exceptions import (
    ConfigDBError,
    ConnectionFailure,
    NotConnectedError,
    UnknownDatabaseError,
    MalformedKeyError,
    CommandError,
    ConfigFileError,
)
from configdb.core.init_gate import InitGate, INIT_INDICATOR
from configdb.core.pipeline import BatchPipeline
from configdb.core.scanner import CursorScanner, REDIS_SCAN_BATCH_SIZE
from configdb.core.logging_config import setup_logging
from configdb.storage.key_codec import KeyCodec
from configdb.storage.memory import MemoryStore
from configdb.storage.redis_session import RedisSession

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"
__all__ = [
    "ConfigStore",
    "PipeConfigStore",
    "DatabaseConfig",
    "DatabaseInfo",
    "InstanceInfo",
    "Command",
    "CommandType",
    "GateState",
    "ScanResult",
    "ConfigDBError",
    "ConnectionFailure",
    "NotConnectedError",
    "UnknownDatabaseError",
    "MalformedKeyError",
    "CommandError",
    "ConfigFileError",
    "InitGate",
    "INIT_INDICATOR",
    "BatchPipeline",
    "CursorScanner",
    "REDIS_SCAN_BATCH_SIZE",
    "setup_logging",
    "KeyCodec",
    "MemoryStore",
    "RedisSession",
]
