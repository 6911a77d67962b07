"""Value model for BIT programs.

Every memory cell, the jump register and every intermediate expression
result is represented by a `Value`: an integer magnitude tagged with a
`ValueKind`. Constants start out as UNDEFINED and only acquire meaning
when a typed operator or a write consumes them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


JUMP_REGISTER_ADDRESS = -1


class ValueKind(IntEnum):
    """Kind tag of a value.

    The integer codes are significant: the legacy operator guards compare
    magnitudes against them.
    """
    UNDEFINED = 0
    BIT = 1
    ADDRESS_OF_A_BIT = 2


@dataclass(frozen=True)
class Value:
    magnitude: int
    kind: ValueKind = ValueKind.UNDEFINED

    def __repr__(self) -> str:
        return f"{self.kind.name}({self.magnitude})"

    # Convenience constructors
    @staticmethod
    def undefined(magnitude: int = 0) -> 'Value':
        return Value(magnitude, ValueKind.UNDEFINED)

    @staticmethod
    def bit(magnitude: int) -> 'Value':
        return Value(magnitude, ValueKind.BIT)

    @staticmethod
    def address(magnitude: int) -> 'Value':
        return Value(magnitude, ValueKind.ADDRESS_OF_A_BIT)

    @property
    def is_address(self) -> bool:
        return self.kind == ValueKind.ADDRESS_OF_A_BIT

    @property
    def is_bit(self) -> bool:
        return self.kind == ValueKind.BIT


def is_legal_bit(magnitude: int) -> bool:
    return magnitude in (0, 1)


def to_string(value: Value) -> str:
    """Render a value for trace output."""
    if value.kind == ValueKind.ADDRESS_OF_A_BIT:
        return f"&{value.magnitude}"
    if value.kind == ValueKind.BIT:
        return str(value.magnitude)
    return f"?{value.magnitude}"
