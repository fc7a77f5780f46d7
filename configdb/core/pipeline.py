"""
BatchPipeline - queues store commands and sends them in one round trip.
"""
import logging
from collections import deque
from typing import Any, Optional

from configdb.core.dto import Command
from configdb.storage.session import StoreSession

logger = logging.getLogger(__name__)


class BatchPipeline:
    """
    Ordered batch of store commands.

    Replies are handed back strictly in enqueue order: the Nth call to
    dequeue_reply() after execute() returns the reply of the Nth enqueued
    command. Callers rely on this pairing to rebuild structured results.
    """

    def __init__(self, session: StoreSession, transaction: bool = True):
        """
        Initialize the pipeline.

        Args:
            session: Store session the batch is sent on
            transaction: Wrap the batch in MULTI/EXEC
        """
        self.session = session
        self.transaction = transaction
        self._commands = deque()
        self._replies = deque()
        self.total_executed = 0

    def enqueue(self, command: Command):
        """Append a command to the batch."""
        self._commands.append(command)

    def execute(self, raise_on_error: bool = True) -> int:
        """
        Send every queued command together and buffer the replies.

        Replies left over from a previous execute() are discarded.

        Args:
            raise_on_error: Raise CommandError if any command failed;
                otherwise failed commands yield no reply

        Returns:
            Number of commands sent
        """
        commands = list(self._commands)
        self._commands.clear()
        self._replies.clear()
        if not commands:
            return 0

        replies = self.session.execute_batch(
            commands,
            transaction=self.transaction,
            raise_on_error=raise_on_error,
        )
        if len(replies) != len(commands):
            logger.warning(
                "Pipeline returned %d replies for %d commands", len(replies), len(commands)
            )
        self._replies.extend(replies)
        self.total_executed += len(commands)
        return len(commands)

    def dequeue_reply(self) -> Optional[Any]:
        """
        Pop the reply of the oldest command not yet consumed.

        Returns:
            The reply, or None if it is missing or the command failed
        """
        if not self._replies:
            logger.warning("Pipeline reply missing")
            return None
        reply = self._replies.popleft()
        if isinstance(reply, Exception):
            logger.warning("Pipeline command failed: %s", reply)
            return None
        return reply

    def reset(self):
        """Drop queued commands and buffered replies."""
        self._commands.clear()
        self._replies.clear()

    @property
    def pending(self) -> int:
        """Number of commands queued and not yet executed."""
        return len(self._commands)

    def __len__(self) -> int:
        return self.pending
