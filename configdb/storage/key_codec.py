"""
Mapping between (table, key) pairs and flat hash keys.
"""
from typing import Optional, Tuple
from configdb.core.dto import Key
from configdb.core.exceptions import MalformedKeyError

# Prefix wildcard understood by KEYS/SCAN
WILDCARD = "*"


class KeyCodec:
    """Encodes table entries into flat keys and back for one database."""

    def __init__(self, separator: str):
        """
        Initialize the codec.

        Args:
            separator: Table/key separator of the database (e.g. "|" or ":")
        """
        if not isinstance(separator, str) or not separator:
            raise ValueError("Separator must be a non-empty string")
        self.separator = separator

    def join_key(self, key: Key) -> str:
        """
        Join a composite key into its row string.

        Components are joined with the separator as-is. A component that
        itself contains the separator cannot be recovered by split_key().
        """
        if isinstance(key, str):
            return key
        if isinstance(key, (tuple, list)):
            return self.separator.join(key)
        raise TypeError(f"Key must be a string or tuple, got {type(key).__name__}")

    def split_key(self, row: str) -> Tuple[str, ...]:
        """Split a row string into its composite key components."""
        return tuple(row.split(self.separator))

    def deserialize_key(self, row: str) -> Key:
        """Return a plain string for single keys, a tuple for composite ones."""
        parts = self.split_key(row)
        if len(parts) == 1:
            return parts[0]
        return parts

    def encode(self, table: str, key: Key) -> str:
        """
        Build the flat key of a table entry.

        Args:
            table: Table name (case-insensitive)
            key: Row key or tuple of key components

        Returns:
            UPPER(table) + separator + key
        """
        self._validate_table(table)
        return table.upper() + self.separator + self.join_key(key)

    def decode(self, flat_key: str) -> Tuple[str, str]:
        """
        Split a flat key at the first separator.

        Raises:
            MalformedKeyError: If the key does not belong to any table
        """
        pos = flat_key.find(self.separator)
        if pos < 0:
            raise MalformedKeyError(
                f"Key '{flat_key}' has no '{self.separator}' separator"
            )
        return flat_key[:pos], flat_key[pos + len(self.separator):]

    def try_decode(self, flat_key: str) -> Optional[Tuple[str, str]]:
        """Like decode() but returns None for keys outside any table."""
        try:
            return self.decode(flat_key)
        except MalformedKeyError:
            return None

    def strip_table(self, flat_key: str) -> str:
        """Return the row part of a flat key, or "" if it has no separator."""
        decoded = self.try_decode(flat_key)
        if decoded is None:
            return ""
        return decoded[1]

    def table_pattern(self, table: str) -> str:
        """Pattern matching every flat key of a table."""
        self._validate_table(table)
        return table.upper() + self.separator + WILDCARD

    def _validate_table(self, table: str):
        if not isinstance(table, str):
            raise TypeError(f"Table must be a string, got {type(table).__name__}")
        if not table:
            raise ValueError("Table name cannot be empty")

    def __repr__(self):
        return f"KeyCodec(separator={self.separator!r})"

