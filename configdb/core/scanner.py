"""
CursorScanner - drives SCAN cursors to exhaustion in bounded batches.
"""
import logging
from typing import Iterator, List

from configdb.core.dto import ScanResult
from configdb.storage.session import StoreSession

logger = logging.getLogger(__name__)

# Keys examined per SCAN call, shared by every scan-based operation
REDIS_SCAN_BATCH_SIZE = 30


class CursorScanner:
    """
    Incremental enumeration of flat keys matching a glob pattern.

    SCAN is weakly consistent: keys created or deleted while a scan is in
    progress may be returned zero or more times, and a key can appear in
    more than one batch. Results are eventually complete, not a
    transactional view of the keyspace.
    """

    def __init__(self, session: StoreSession, batch_size: int = REDIS_SCAN_BATCH_SIZE):
        """
        Initialize the scanner.

        Args:
            session: Store session to scan
            batch_size: COUNT hint passed to every SCAN call
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.session = session
        self.batch_size = batch_size

    def step(self, pattern: str, cursor: int = 0) -> ScanResult:
        """
        Run one SCAN call.

        Args:
            pattern: Glob pattern (e.g. "PORT|*")
            cursor: Cursor returned by the previous step, 0 to start

        Returns:
            ScanResult whose cursor is 0 once the scan is complete
        """
        next_cursor, keys = self.session.scan(cursor, pattern, self.batch_size)
        return ScanResult(cursor=next_cursor, keys=keys)

    def batches(self, pattern: str) -> Iterator[List[str]]:
        """
        Yield key batches until the store reports the scan complete.

        Empty batches are skipped; the scan still continues past them.
        """
        cursor = 0
        rounds = 0
        while True:
            result = self.step(pattern, cursor)
            rounds += 1
            if result.keys:
                yield result.keys
            if result.done:
                break
            cursor = result.cursor
        logger.debug("Scan of %r finished after %d rounds", pattern, rounds)

    def scan(self, pattern: str) -> List[str]:
        """Collect every matching key, without duplicates, in first-seen order."""
        seen = set()
        keys = []
        for batch in self.batches(pattern):
            for key in batch:
                if key not in seen:
                    seen.add(key)
                    keys.append(key)
        return keys
