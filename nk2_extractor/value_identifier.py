"""Entry and value type pair identifying a value within an item."""
import struct
from dataclasses import dataclass
from typing import Dict, Iterator, List

from .errors import (
    ArgumentError, ErrorDomain, InputError, RuntimeErrorCode, raise_error,
)

UINT16_MAX = 0xffff


@dataclass(frozen=True)
class ValueIdentifier:
    """The lookup key of a value: its entry type and its value type."""
    entry_type: int
    value_type: int

    def __post_init__(self):
        for name in ('entry_type', 'value_type'):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= UINT16_MAX:
                raise_error(
                    ErrorDomain.ARGUMENTS, ArgumentError.VALUE_OUT_OF_BOUNDS,
                    f"Invalid {name.replace('_', ' ')}: {value!r} out of bounds."
                )

    @classmethod
    def from_entry_record(cls, data: bytes) -> 'ValueIdentifier':
        """Read the identifier from the start of an entry record.

        The record starts with the value type followed by the entry type,
        both 16-bit little-endian.
        """
        if len(data) < 4:
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                "Invalid entry record data: too small."
            )
        value_type, entry_type = struct.unpack_from('<HH', data, 0)
        return cls(entry_type=entry_type, value_type=value_type)

    def __str__(self) -> str:
        return f'0x{self.entry_type:04x}:0x{self.value_type:04x}'


class ValueIdentifierTable:
    """Identifier to slot table of an item, in insertion order."""

    def __init__(self):
        self._slots: Dict[ValueIdentifier, int] = {}
        self._order: List[ValueIdentifier] = []

    def insert(self, identifier: ValueIdentifier) -> int:
        """Register an identifier and return its slot.

        Raises:
            NK2RuntimeError: The identifier already holds a slot
        """
        if identifier in self._slots:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_ALREADY_SET,
                f"Value identifier {identifier} already set."
            )
        slot = len(self._order)
        self._slots[identifier] = slot
        self._order.append(identifier)
        return slot

    def get_slot(self, identifier: ValueIdentifier):
        return self._slots.get(identifier)

    def __contains__(self, identifier: ValueIdentifier) -> bool:
        return identifier in self._slots

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[ValueIdentifier]:
        return iter(self._order)
