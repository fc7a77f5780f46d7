"""
Entry mutation policies applied to a single flat hash key.

replace: the entry's field set becomes exactly the new data's field set.
merge:   the given fields are written, other existing fields are kept.

In both policies empty (or None) data deletes the whole entry.
"""
import logging
from typing import Optional

from configdb.core.dto import Command, CommandType, FieldMap
from configdb.storage.session import StoreSession

logger = logging.getLogger(__name__)


def read_entry(session: StoreSession, flat_key: str) -> FieldMap:
    """Return all fields of an entry, or {} if it does not exist."""
    return session.hgetall(flat_key) or {}


def replace_entry(session: StoreSession, flat_key: str, data: Optional[FieldMap]):
    """
    Write an entry and prune the fields missing from `data`.

    Reads the entry first to compute the stale fields, then sends HSET and
    HDEL as one transaction. A concurrent writer can still race between
    the read and the transaction.
    """
    if not data:
        session.delete(flat_key)
        return

    original = read_entry(session, flat_key)
    commands = [Command(CommandType.HSET, flat_key, mapping=dict(data))]
    stale = tuple(name for name in original if name not in data)
    if stale:
        logger.debug("Pruning %d fields from %s", len(stale), flat_key)
        commands.append(Command(CommandType.HDEL, flat_key, fields=stale))
    session.execute_batch(commands, transaction=True)


def merge_entry(session: StoreSession, flat_key: str, data: Optional[FieldMap]):
    """Write the given fields, leaving other fields of the entry untouched."""
    if not data:
        session.delete(flat_key)
        return
    session.hset(flat_key, dict(data))


def merge_command(flat_key: str, data: Optional[FieldMap]) -> Command:
    """The merge policy as a single command for a batch pipeline."""
    if not data:
        return Command(CommandType.DEL, flat_key)
    return Command(CommandType.HSET, flat_key, mapping=dict(data))
