"""
InitGate - blocks until a database's initialization marker is set.
"""
import logging
from typing import Optional

from configdb.core.dto import GateState
from configdb.storage.session import Notifier, StoreSession

logger = logging.getLogger(__name__)

# Written by the external initializer once the database is populated
INIT_INDICATOR = "CONFIG_DB_INITIALIZED"


def keyspace_channel(db_id: int, key: str) -> str:
    """Keyspace notification channel of one key."""
    return f"__keyspace@{db_id}__:{key}"


class InitGate:
    """
    One-shot gate: UNCHECKED -> (WAITING_FOR_SIGNAL ->) READY.

    The wait is woken by keyspace notifications instead of polling. It
    has no timeout: if the store never delivers notifications (e.g.
    notify-keyspace-events is disabled) wait() blocks forever. Callers
    that need a deadline must enforce it around wait().
    """

    def __init__(self, session: StoreSession, db_id: int, marker: str = INIT_INDICATOR):
        """
        Initialize the gate.

        Args:
            session: Store session of the database to watch
            db_id: Database number used in the notification channel
            marker: Key whose non-empty value signals readiness
        """
        self.session = session
        self.marker = marker
        self.pattern = keyspace_channel(db_id, marker)
        self.state = GateState.UNCHECKED
        self.wakeups = 0

    def wait(self) -> GateState:
        """Block until the marker is non-empty. Returns READY."""
        if self.state == GateState.READY:
            return self.state

        if self._marker_set():
            self._transition(GateState.READY)
            return self.state

        notifier = self.session.pubsub()
        notifier.psubscribe(self.pattern)
        self._transition(GateState.WAITING_FOR_SIGNAL)
        try:
            self._await_subscription(notifier)
            # Re-check once subscribed: the marker may have been written
            # between the first check and the subscription.
            while not self._marker_set():
                self._await_signal(notifier)
        finally:
            notifier.punsubscribe(self.pattern)
            notifier.close()

        self._transition(GateState.READY)
        return self.state

    def _await_subscription(self, notifier: Notifier):
        """Block until the store confirms the pattern subscription is active."""
        while True:
            message = notifier.next_message(timeout=None)
            if message is not None and message.get("type") == "psubscribe":
                return

    def _await_signal(self, notifier: Notifier):
        """Suspend until a notification about the marker key arrives."""
        while True:
            message = notifier.next_message(timeout=None)
            if message is None or message.get("type") != "pmessage":
                continue
            if self._channel_key(message.get("channel", "")) == self.marker:
                self.wakeups += 1
                return

    def _marker_set(self) -> bool:
        value: Optional[str] = self.session.get(self.marker)
        return bool(value)

    @staticmethod
    def _channel_key(channel: str) -> str:
        pos = channel.find(":")
        if pos < 0:
            return ""
        return channel[pos + 1:]

    def _transition(self, state: GateState):
        logger.info("Init gate on %s: %s -> %s", self.marker, self.state.value, state.value)
        self.state = state
