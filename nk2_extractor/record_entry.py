"""Typed property values of an NK2 item.

A record entry owns a copy of its (decrypted) value bytes and decodes them
on request according to its value type.
"""
import logging
import struct
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, List, MutableSequence, Optional, Union

from . import codepage as codepage_module
from .codepage import DEFAULT_CODEPAGE, Codepage
from .errors import (
    ErrorDomain, InputError, RuntimeErrorCode, raise_error,
)
from .value_identifier import ValueIdentifier
from .value_type import (
    FIXED_DATA_SIZES, GUID_SIZE, ValueType, get_base_type,
    get_fixed_data_size, get_value_type_identifier, is_multi_value,
)

logger = logging.getLogger(__name__)

FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)
FLOATINGTIME_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)

# Unpack formats of fixed-size values, also used for multi-value elements
_FIXED_FORMATS = {
    ValueType.INTEGER_16BIT_SIGNED: '<H',
    ValueType.BOOLEAN: '<H',
    ValueType.INTEGER_32BIT_SIGNED: '<I',
    ValueType.ERROR: '<I',
    ValueType.FLOAT_32BIT: '<f',
    ValueType.DOUBLE_64BIT: '<d',
    ValueType.CURRENCY: '<Q',
    ValueType.FLOATINGTIME: '<d',
    ValueType.INTEGER_64BIT_SIGNED: '<Q',
    ValueType.FILETIME: '<Q',
}

_VARIABLE_ELEMENT_TYPES = (
    ValueType.STRING_ASCII, ValueType.STRING_UNICODE, ValueType.BINARY_DATA,
)


def filetime_to_datetime(filetime: int) -> datetime:
    """Convert FILETIME ticks (100ns since 1601-01-01 UTC) to a datetime."""
    return FILETIME_EPOCH + timedelta(microseconds=filetime // 10)


def floatingtime_to_datetime(floatingtime: float) -> datetime:
    """Convert an OLE automation date (days since 1899-12-30) to a datetime."""
    return FLOATINGTIME_EPOCH + timedelta(days=floatingtime)


class RecordEntry:
    """A single typed value of an item."""

    def __init__(
        self,
        identifier: ValueIdentifier,
        data: bytes,
        ascii_codepage: Union[int, Codepage] = DEFAULT_CODEPAGE
    ):
        self.identifier = identifier
        self.ascii_codepage = codepage_module.get_codepage(ascii_codepage)
        self._data = bytes(data)
        self._validate_size()

    def _validate_size(self) -> None:
        value_type = self.value_type
        data_size = len(self._data)
        fixed_size = get_fixed_data_size(value_type)
        if fixed_size is not None and data_size != fixed_size:
            raise_error(
                ErrorDomain.INPUT, InputError.VALUE_MISMATCH,
                f"Invalid data size {data_size} for value type "
                f"{get_value_type_identifier(value_type)}, expected {fixed_size}."
            )
        if value_type == ValueType.GUID and data_size != GUID_SIZE:
            raise_error(
                ErrorDomain.INPUT, InputError.VALUE_MISMATCH,
                f"Invalid GUID data size: {data_size}."
            )
        if is_multi_value(value_type):
            element_size = self._multi_value_element_size()
            if element_size and data_size % element_size != 0:
                raise_error(
                    ErrorDomain.INPUT, InputError.VALUE_MISMATCH,
                    f"Invalid data size {data_size} for value type "
                    f"{get_value_type_identifier(value_type)}: not a multiple of {element_size}."
                )

    def _multi_value_element_size(self) -> Optional[int]:
        base_type = get_base_type(self.value_type)
        if base_type == ValueType.GUID:
            return GUID_SIZE
        return FIXED_DATA_SIZES.get(base_type)

    @property
    def entry_type(self) -> int:
        return self.identifier.entry_type

    @property
    def value_type(self) -> int:
        return self.identifier.value_type

    def get_data_size(self) -> int:
        return len(self._data)

    def get_data(self) -> bytes:
        return self._data

    def _require_type(self, *value_types: int) -> None:
        if self.value_type not in value_types:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.UNSUPPORTED_VALUE,
                f"Unsupported value type {get_value_type_identifier(self.value_type)} "
                f"of entry 0x{self.entry_type:04x}."
            )

    def _unpack(self, value_type: int) -> Any:
        return struct.unpack(_FIXED_FORMATS[value_type], self._data)[0]

    # Fixed-size values

    def get_data_as_boolean(self) -> bool:
        self._require_type(ValueType.BOOLEAN)
        return self._unpack(ValueType.BOOLEAN) != 0

    def get_data_as_16bit_integer(self) -> int:
        self._require_type(ValueType.INTEGER_16BIT_SIGNED)
        return self._unpack(ValueType.INTEGER_16BIT_SIGNED)

    def get_data_as_32bit_integer(self) -> int:
        self._require_type(ValueType.INTEGER_32BIT_SIGNED, ValueType.ERROR)
        return self._unpack(self.value_type)

    def get_data_as_64bit_integer(self) -> int:
        self._require_type(ValueType.INTEGER_64BIT_SIGNED, ValueType.CURRENCY)
        return self._unpack(self.value_type)

    def get_data_as_filetime(self) -> int:
        self._require_type(ValueType.FILETIME)
        return self._unpack(ValueType.FILETIME)

    def get_data_as_datetime(self) -> datetime:
        return filetime_to_datetime(self.get_data_as_filetime())

    def get_data_as_floatingtime(self) -> float:
        self._require_type(ValueType.FLOATINGTIME)
        return self._unpack(ValueType.FLOATINGTIME)

    def get_data_as_size(self) -> int:
        self._require_type(ValueType.INTEGER_32BIT_SIGNED, ValueType.INTEGER_64BIT_SIGNED)
        return self._unpack(self.value_type)

    def get_data_as_floating_point(self) -> float:
        self._require_type(ValueType.FLOAT_32BIT, ValueType.DOUBLE_64BIT)
        return self._unpack(self.value_type)

    def get_data_as_guid(self) -> uuid.UUID:
        self._require_type(ValueType.GUID)
        return uuid.UUID(bytes_le=self._data)

    def get_data_as_binary_data(self) -> bytes:
        self._require_type(ValueType.BINARY_DATA)
        return self._data

    # Strings

    def _is_utf16(self) -> bool:
        return self.value_type == ValueType.STRING_UNICODE

    def get_data_as_string(self) -> str:
        """Decode a string value, without its end-of-string character."""
        self._require_type(ValueType.STRING_ASCII, ValueType.STRING_UNICODE)
        if self._is_utf16():
            text = codepage_module.decode_utf16_stream(self._data)
        else:
            text = codepage_module.decode_byte_stream(self._data, self.ascii_codepage)
        return text.rstrip(codepage_module.END_OF_STRING)

    def get_data_as_utf8_string_size(self) -> int:
        self._require_type(ValueType.STRING_ASCII, ValueType.STRING_UNICODE)
        if self._is_utf16():
            return codepage_module.utf8_string_size_from_utf16_stream(self._data)
        return codepage_module.utf8_string_size_from_byte_stream(self._data, self.ascii_codepage)

    def copy_to_utf8_string(self, buffer: bytearray) -> int:
        self._require_type(ValueType.STRING_ASCII, ValueType.STRING_UNICODE)
        if self._is_utf16():
            return codepage_module.utf8_string_copy_from_utf16_stream(buffer, self._data)
        return codepage_module.utf8_string_copy_from_byte_stream(
            buffer, self._data, self.ascii_codepage
        )

    def get_data_as_utf8_string(self) -> bytes:
        """UTF-8 encoded string value, end-of-string character included."""
        buffer = bytearray(self.get_data_as_utf8_string_size())
        self.copy_to_utf8_string(buffer)
        return bytes(buffer)

    def get_data_as_utf16_string_size(self) -> int:
        self._require_type(ValueType.STRING_ASCII, ValueType.STRING_UNICODE)
        if self._is_utf16():
            return codepage_module.utf16_string_size_from_utf16_stream(self._data)
        return codepage_module.utf16_string_size_from_byte_stream(self._data, self.ascii_codepage)

    def copy_to_utf16_string(self, buffer: MutableSequence[int]) -> int:
        self._require_type(ValueType.STRING_ASCII, ValueType.STRING_UNICODE)
        if self._is_utf16():
            return codepage_module.utf16_string_copy_from_utf16_stream(buffer, self._data)
        return codepage_module.utf16_string_copy_from_byte_stream(
            buffer, self._data, self.ascii_codepage
        )

    def get_data_as_utf16_string(self) -> bytes:
        """UTF-16 little-endian string value, end-of-string character included."""
        return codepage_module.encode_utf16_stream(self.get_data_as_string())

    # Multiple values

    def get_data_as_multi_value(self) -> List[Any]:
        """Decode every element of a multi-valued property.

        Fixed-size elements are packed back to back; strings and binary data
        start with a 32-bit element count followed by 32-bit element offsets.
        """
        if not is_multi_value(self.value_type):
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.UNSUPPORTED_VALUE,
                f"Value type {get_value_type_identifier(self.value_type)} "
                f"of entry 0x{self.entry_type:04x} is not multi-valued."
            )
        base_type = get_base_type(self.value_type)
        if base_type == ValueType.GUID:
            return [
                uuid.UUID(bytes_le=self._data[offset:offset + GUID_SIZE])
                for offset in range(0, len(self._data), GUID_SIZE)
            ]
        if base_type in _FIXED_FORMATS:
            value_format = _FIXED_FORMATS[base_type]
            values = [value for (value,) in struct.iter_unpack(value_format, self._data)]
            if base_type == ValueType.FILETIME:
                return [filetime_to_datetime(value) for value in values]
            return values
        if base_type in _VARIABLE_ELEMENT_TYPES:
            return [
                self._decode_element(base_type, element)
                for element in self._split_variable_elements()
            ]
        raise_error(
            ErrorDomain.RUNTIME, RuntimeErrorCode.UNSUPPORTED_VALUE,
            f"Unsupported multi-value type {get_value_type_identifier(self.value_type)}."
        )

    def _split_variable_elements(self) -> List[bytes]:
        data = self._data
        if len(data) < 4:
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                "Invalid multi-value data: missing element count."
            )
        count = struct.unpack_from('<I', data, 0)[0]
        table_end = 4 + count * 4
        if table_end > len(data):
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                f"Invalid multi-value data: {count} element offsets exceed data size."
            )
        offsets = list(struct.unpack_from(f'<{count}I', data, 4)) + [len(data)]
        elements = []
        for index in range(count):
            start, end = offsets[index], offsets[index + 1]
            if start < table_end or end < start or end > len(data):
                raise_error(
                    ErrorDomain.INPUT, InputError.INVALID_DATA,
                    f"Invalid multi-value element {index} offset: {start}."
                )
            elements.append(data[start:end])
        return elements

    def _decode_element(self, base_type: int, element: bytes) -> Any:
        if base_type == ValueType.STRING_UNICODE:
            text = codepage_module.decode_utf16_stream(element)
        elif base_type == ValueType.STRING_ASCII:
            text = codepage_module.decode_byte_stream(element, self.ascii_codepage)
        else:
            return element
        return text.rstrip(codepage_module.END_OF_STRING)

    def get_value(self) -> Any:
        """Decode the value into the closest Python type."""
        value_type = self.value_type
        if value_type == ValueType.NULL:
            return None
        if value_type == ValueType.BOOLEAN:
            return self.get_data_as_boolean()
        if value_type == ValueType.FILETIME:
            return self.get_data_as_datetime()
        if value_type == ValueType.FLOATINGTIME:
            return self.get_data_as_floatingtime()
        if value_type == ValueType.GUID:
            return self.get_data_as_guid()
        if value_type in (ValueType.STRING_ASCII, ValueType.STRING_UNICODE):
            return self.get_data_as_string()
        if is_multi_value(value_type):
            return self.get_data_as_multi_value()
        if value_type in _FIXED_FORMATS:
            return self._unpack(value_type)
        return self._data

    def __repr__(self) -> str:
        return (
            f"RecordEntry(entry_type=0x{self.entry_type:04x}, "
            f"value_type={get_value_type_identifier(self.value_type)}, "
            f"size={len(self._data)})"
        )
