"""An alias (item) of the nickname cache and its values."""
import logging
import uuid
from datetime import datetime
from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple, Union

from . import codepage as codepage_module
from .codepage import DEFAULT_CODEPAGE, Codepage
from .constants import (
    ENTRY_VALUE_FLAG_MATCH_ANY_VALUE_TYPE, ENTRY_VALUE_FLAGS_SUPPORTED,
)
from .errors import (
    ArgumentError, ErrorDomain, NK2Error, RuntimeErrorCode, raise_error,
)
from .record_entry import RecordEntry
from .value_identifier import ValueIdentifier, ValueIdentifierTable
from .value_type import ValueType, is_string_type

logger = logging.getLogger(__name__)


class EntryValue(NamedTuple):
    """Value returned by Item.get_entry_value."""
    value_type: int
    data: bytes


def _other_string_type(value_type: int) -> int:
    if value_type == ValueType.STRING_ASCII:
        return ValueType.STRING_UNICODE
    return ValueType.STRING_ASCII


class Item:
    """The values of one alias, in the order they are stored on disk.

    Items own copies of their values and remain usable after the file they
    were read from is closed.
    """

    def __init__(
        self,
        entries: Iterable[RecordEntry] = (),
        ascii_codepage: Union[int, str, Codepage] = DEFAULT_CODEPAGE,
        index: Optional[int] = None,
        offset: Optional[int] = None,
        recovered: bool = False
    ):
        self.ascii_codepage = codepage_module.get_codepage(ascii_codepage)
        self.index = index
        self.offset = offset
        self.recovered = recovered
        self._table = ValueIdentifierTable()
        self._entries: List[RecordEntry] = []
        for entry in entries:
            self.append_entry(entry)

    def append_entry(self, entry: RecordEntry) -> None:
        """Add a value; identifiers must be unique within an item.

        Raises:
            NK2RuntimeError: An entry with the same identifier exists
        """
        self._table.insert(entry.identifier)
        self._entries.append(entry)

    def set_ascii_codepage(self, ascii_codepage: Union[int, str, Codepage]) -> None:
        self.ascii_codepage = codepage_module.get_codepage(ascii_codepage)
        for entry in self._entries:
            entry.ascii_codepage = self.ascii_codepage

    def amount_of_entries(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RecordEntry]:
        return iter(self._entries)

    def _check_index(self, entry_index: int) -> None:
        if not isinstance(entry_index, int) or not 0 <= entry_index < len(self._entries):
            raise_error(
                ErrorDomain.ARGUMENTS, ArgumentError.VALUE_OUT_OF_BOUNDS,
                f"Invalid entry index: {entry_index!r} value out of bounds."
            )

    def get_entry_type(self, entry_index: int) -> Tuple[int, int]:
        """Get the (entry type, value type) of the entry at an index."""
        self._check_index(entry_index)
        identifier = self._entries[entry_index].identifier
        return identifier.entry_type, identifier.value_type

    def get_record_entry(self, entry_index: int) -> RecordEntry:
        self._check_index(entry_index)
        return self._entries[entry_index]

    def get_record_entries(self) -> List[RecordEntry]:
        return list(self._entries)

    def _find_entry(self, entry_type: int, value_type: int = 0) -> Optional[RecordEntry]:
        if value_type == 0:
            for entry in self._entries:
                if entry.entry_type == entry_type:
                    return entry
            return None
        slot = self._table.get_slot(ValueIdentifier(entry_type, value_type))
        if slot is None:
            return None
        return self._entries[slot]

    def get_value_type(self, entry_type: int) -> Optional[int]:
        entry = self._find_entry(entry_type)
        return entry.value_type if entry is not None else None

    def get_entry_value(
        self,
        entry_type: int,
        value_type: int = 0,
        flags: int = 0
    ) -> Optional[EntryValue]:
        """Look up a value by entry type and optionally value type.

        Args:
            entry_type: The property identifier, e.g. 0x3001 for the display name
            value_type: The value type to match, 0 for the first entry with the
                entry type
            flags: ENTRY_VALUE_FLAG_MATCH_ANY_VALUE_TYPE falls back to the first
                entry with the entry type when the value type does not match

        Returns:
            The value, or None when no entry matches. String values include
            their end-of-string character; an 8-bit string requested as
            Unicode (or the reverse) is converted using the ASCII codepage.

        Raises:
            NK2Error: Unsupported flags or a value that cannot be decoded
        """
        if flags & ~ENTRY_VALUE_FLAGS_SUPPORTED:
            raise_error(
                ErrorDomain.ARGUMENTS, ArgumentError.UNSUPPORTED_VALUE,
                f"Unsupported flags: 0x{flags:02x}."
            )
        # Range check of both types
        ValueIdentifier(entry_type, value_type)

        entry = self._find_entry(entry_type, value_type)
        try:
            if entry is not None:
                return self._entry_value(entry)

            if is_string_type(value_type):
                entry = self._find_entry(entry_type, _other_string_type(value_type))
                if entry is not None:
                    return self._converted_string_value(entry, value_type)

            if flags & ENTRY_VALUE_FLAG_MATCH_ANY_VALUE_TYPE:
                entry = self._find_entry(entry_type)
                if entry is not None:
                    return self._entry_value(entry)
        except NK2Error as e:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.GET_FAILED,
                f"Unable to retrieve value of entry 0x{entry_type:04x}.", e
            )
        return None

    @staticmethod
    def _entry_value(entry: RecordEntry) -> EntryValue:
        data = entry.get_data()
        if entry.value_type == ValueType.STRING_UNICODE:
            # Validates the UTF-16 data before it is handed out
            entry.get_data_as_utf16_string_size()
            if len(data) < 2 or data[-2:] != b'\x00\x00' or len(data) % 2:
                data = codepage_module.encode_utf16_stream(entry.get_data_as_string())
        elif entry.value_type == ValueType.STRING_ASCII:
            if not data.endswith(b'\x00'):
                data = data + b'\x00'
        return EntryValue(entry.value_type, data)

    def _converted_string_value(self, entry: RecordEntry, value_type: int) -> EntryValue:
        text = entry.get_data_as_string()
        if value_type == ValueType.STRING_UNICODE:
            data = codepage_module.encode_utf16_stream(text)
        else:
            data = codepage_module.encode_byte_stream(text, self.ascii_codepage)
        logger.debug(
            f"Converted entry 0x{entry.entry_type:04x} from value type "
            f"0x{entry.value_type:04x} to 0x{value_type:04x}"
        )
        return EntryValue(value_type, data)

    # Typed lookups; None when the entry type is absent

    def _typed_entry(self, entry_type: int, *value_types: int) -> Optional[RecordEntry]:
        for value_type in value_types:
            entry = self._find_entry(entry_type, value_type)
            if entry is not None:
                return entry
        return None

    def get_entry_value_boolean(self, entry_type: int) -> Optional[bool]:
        entry = self._typed_entry(entry_type, ValueType.BOOLEAN)
        return entry.get_data_as_boolean() if entry else None

    def get_entry_value_32bit(self, entry_type: int) -> Optional[int]:
        entry = self._typed_entry(entry_type, ValueType.INTEGER_32BIT_SIGNED)
        return entry.get_data_as_32bit_integer() if entry else None

    def get_entry_value_64bit(self, entry_type: int) -> Optional[int]:
        entry = self._typed_entry(
            entry_type, ValueType.INTEGER_64BIT_SIGNED, ValueType.FILETIME
        )
        if entry is None:
            return None
        if entry.value_type == ValueType.FILETIME:
            return entry.get_data_as_filetime()
        return entry.get_data_as_64bit_integer()

    def get_entry_value_filetime(self, entry_type: int) -> Optional[int]:
        entry = self._typed_entry(entry_type, ValueType.FILETIME)
        return entry.get_data_as_filetime() if entry else None

    def get_entry_value_datetime(self, entry_type: int) -> Optional[datetime]:
        entry = self._typed_entry(entry_type, ValueType.FILETIME)
        return entry.get_data_as_datetime() if entry else None

    def get_entry_value_size(self, entry_type: int) -> Optional[int]:
        entry = self._typed_entry(
            entry_type, ValueType.INTEGER_32BIT_SIGNED, ValueType.INTEGER_64BIT_SIGNED
        )
        return entry.get_data_as_size() if entry else None

    def get_entry_value_floating_point(self, entry_type: int) -> Optional[float]:
        entry = self._typed_entry(entry_type, ValueType.FLOAT_32BIT, ValueType.DOUBLE_64BIT)
        return entry.get_data_as_floating_point() if entry else None

    def get_entry_value_string(self, entry_type: int) -> Optional[str]:
        entry = self._typed_entry(entry_type, ValueType.STRING_UNICODE, ValueType.STRING_ASCII)
        return entry.get_data_as_string() if entry else None

    def get_entry_value_utf8_string(self, entry_type: int) -> Optional[bytes]:
        entry = self._typed_entry(entry_type, ValueType.STRING_UNICODE, ValueType.STRING_ASCII)
        return entry.get_data_as_utf8_string() if entry else None

    def get_entry_value_utf16_string(self, entry_type: int) -> Optional[bytes]:
        entry = self._typed_entry(entry_type, ValueType.STRING_UNICODE, ValueType.STRING_ASCII)
        return entry.get_data_as_utf16_string() if entry else None

    def get_entry_value_binary_data(self, entry_type: int) -> Optional[bytes]:
        entry = self._typed_entry(entry_type, ValueType.BINARY_DATA)
        return entry.get_data_as_binary_data() if entry else None

    def get_entry_value_guid(self, entry_type: int) -> Optional[uuid.UUID]:
        entry = self._typed_entry(entry_type, ValueType.GUID)
        return entry.get_data_as_guid() if entry else None

    def __repr__(self) -> str:
        return f"Item(index={self.index}, entries={len(self._entries)}, recovered={self.recovered})"
