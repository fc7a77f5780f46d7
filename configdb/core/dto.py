"""
Data Transfer Objects for the config DB client.
"""
from dataclasses import dataclass, field
from typing import Dict, Tuple, Union
from enum import Enum


FieldMap = Dict[str, str]
TableData = Dict[str, FieldMap]
ConfigData = Dict[str, TableData]

# A table key is either a plain row string or an ordered tuple of components
Key = Union[str, Tuple[str, ...]]


class CommandType(Enum):
    """Store commands queued into a batch pipeline."""
    HGETALL = "HGETALL"
    HSET = "HSET"
    HDEL = "HDEL"
    DEL = "DEL"


class GateState(Enum):
    """States of the startup initialization gate."""
    UNCHECKED = "UNCHECKED"
    WAITING_FOR_SIGNAL = "WAITING_FOR_SIGNAL"
    READY = "READY"


@dataclass
class Command:
    """A single store command targeting one flat key."""
    op: CommandType
    key: str
    mapping: FieldMap = field(default_factory=dict)
    fields: Tuple[str, ...] = ()

    def to_args(self) -> list:
        """Flatten into the positional arguments of the wire command."""
        args = [self.op.value, self.key]
        if self.op == CommandType.HSET:
            for name, value in self.mapping.items():
                args.extend((name, value))
        elif self.op == CommandType.HDEL:
            args.extend(self.fields)
        return args

    def __str__(self):
        return " ".join(str(a) for a in self.to_args())


@dataclass
class ScanResult:
    """One bounded batch returned by a cursor scan."""
    cursor: int
    keys: list

    @property
    def done(self) -> bool:
        return self.cursor == 0
