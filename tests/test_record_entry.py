"""Tests for typed access to record entry values."""
import struct
import uuid
from datetime import datetime, timezone

import pytest

from nk2_extractor.codepage import Codepage
from nk2_extractor.errors import (
    ErrorDomain, InputError, NK2Error, OutputError, RuntimeErrorCode,
)
from nk2_extractor.record_entry import (
    RecordEntry, filetime_to_datetime, floatingtime_to_datetime,
)
from nk2_extractor.value_identifier import ValueIdentifier
from nk2_extractor.value_type import ValueType


def make_entry(value_type, data, entry_type=0x3001, ascii_codepage=Codepage.WINDOWS_1252):
    return RecordEntry(ValueIdentifier(entry_type, value_type), data, ascii_codepage)


class TestFixedValues:

    def test_integers(self):
        assert make_entry(ValueType.INTEGER_16BIT_SIGNED, b'\x34\x12').get_data_as_16bit_integer() == 0x1234
        assert make_entry(ValueType.INTEGER_32BIT_SIGNED, struct.pack('<I', 42)).get_data_as_32bit_integer() == 42
        assert make_entry(ValueType.ERROR, struct.pack('<I', 0x8004010f)).get_data_as_32bit_integer() == 0x8004010f
        entry = make_entry(ValueType.INTEGER_64BIT_SIGNED, struct.pack('<Q', 1 << 40))
        assert entry.get_data_as_64bit_integer() == 1 << 40
        assert entry.get_data_as_size() == 1 << 40

    def test_boolean(self):
        assert make_entry(ValueType.BOOLEAN, b'\x01\x00').get_data_as_boolean() is True
        assert make_entry(ValueType.BOOLEAN, b'\x00\x00').get_data_as_boolean() is False

    def test_floating_point(self):
        assert make_entry(ValueType.DOUBLE_64BIT, struct.pack('<d', 2.5)).get_data_as_floating_point() == 2.5
        assert make_entry(ValueType.FLOAT_32BIT, struct.pack('<f', 0.5)).get_data_as_floating_point() == 0.5

    def test_filetime(self):
        entry = make_entry(ValueType.FILETIME, struct.pack('<Q', 132223104000000000))
        assert entry.get_data_as_filetime() == 132223104000000000
        assert entry.get_data_as_datetime() == datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert entry.get_value() == datetime(2020, 1, 1, tzinfo=timezone.utc)

    def test_floatingtime(self):
        entry = make_entry(ValueType.FLOATINGTIME, struct.pack('<d', 2.0))
        assert entry.get_data_as_floatingtime() == 2.0
        assert floatingtime_to_datetime(2.0) == datetime(1900, 1, 1, tzinfo=timezone.utc)

    def test_filetime_epoch(self):
        assert filetime_to_datetime(0) == datetime(1601, 1, 1, tzinfo=timezone.utc)

    def test_guid(self):
        value = uuid.UUID('00020329-0000-0000-c000-000000000046')
        entry = make_entry(ValueType.GUID, value.bytes_le)
        assert entry.get_data_as_guid() == value

    @pytest.mark.parametrize('value_type, data', [
        (ValueType.INTEGER_32BIT_SIGNED, b'\x01\x00'),
        (ValueType.BOOLEAN, b'\x01'),
        (ValueType.FILETIME, b'\x00' * 4),
        (ValueType.GUID, b'\x00' * 10),
        (ValueType.MULTI_VALUE_INTEGER_32BIT_SIGNED, b'\x00' * 6),
    ])
    def test_size_mismatch(self, value_type, data):
        with pytest.raises(NK2Error) as exc_info:
            make_entry(value_type, data)
        assert exc_info.value.matches(ErrorDomain.INPUT, InputError.VALUE_MISMATCH)

    def test_wrong_type_accessor(self):
        entry = make_entry(ValueType.INTEGER_32BIT_SIGNED, struct.pack('<I', 1))
        with pytest.raises(NK2Error) as exc_info:
            entry.get_data_as_string()
        assert exc_info.value.matches(ErrorDomain.RUNTIME, RuntimeErrorCode.UNSUPPORTED_VALUE)
        with pytest.raises(NK2Error):
            entry.get_data_as_boolean()


class TestStrings:

    def test_ascii_string_uses_codepage(self):
        entry = make_entry(ValueType.STRING_ASCII, b'\xcf\xf0\xe8\x00', ascii_codepage=Codepage.WINDOWS_1251)
        assert entry.get_data_as_string() == 'При'
        assert entry.get_data_as_utf8_string() == 'При\x00'.encode('utf-8')
        assert entry.get_data_as_utf16_string() == 'При\x00'.encode('utf-16-le')

    def test_unicode_string(self):
        entry = make_entry(ValueType.STRING_UNICODE, 'Jos\xe9\x00'.encode('utf-16-le'))
        assert entry.get_data_as_string() == 'Jos\xe9'
        assert entry.get_data_as_utf8_string_size() == 6
        assert entry.get_data_as_utf16_string_size() == 5
        assert entry.get_value() == 'Jos\xe9'

    def test_single_character_ascii_string_uses_codepage(self):
        entry = make_entry(ValueType.STRING_ASCII, b'\xe9\x00', ascii_codepage=Codepage.WINDOWS_1251)
        assert entry.get_data_as_string() == '\u0439'
        assert entry.get_data_as_utf8_string() == '\u0439\x00'.encode('utf-8')
        assert entry.get_data_as_utf16_string() == '\u0439\x00'.encode('utf-16-le')

    def test_ascii_string_is_never_read_as_utf16(self):
        entry = make_entry(ValueType.STRING_ASCII, b'A\x00n\x00')
        assert entry.get_data_as_string() == 'A\x00n'

    def test_copy_to_utf8_string(self):
        entry = make_entry(ValueType.STRING_ASCII, b'abc\x00')
        buffer = bytearray(entry.get_data_as_utf8_string_size())
        assert entry.copy_to_utf8_string(buffer) == 4
        assert bytes(buffer) == b'abc\x00'

        with pytest.raises(NK2Error) as exc_info:
            entry.copy_to_utf8_string(bytearray(3))
        assert exc_info.value.matches(ErrorDomain.OUTPUT, OutputError.INSUFFICIENT_SPACE)

    def test_copy_to_utf16_string(self):
        entry = make_entry(ValueType.STRING_UNICODE, 'ab'.encode('utf-16-le'))
        buffer = [0] * entry.get_data_as_utf16_string_size()
        assert entry.copy_to_utf16_string(buffer) == 3
        assert buffer == [0x61, 0x62, 0]

    def test_invalid_utf16(self):
        entry = make_entry(ValueType.STRING_UNICODE, b'\x00\xd8')
        with pytest.raises(NK2Error) as exc_info:
            entry.get_data_as_string()
        assert exc_info.value.matches(ErrorDomain.INPUT, InputError.INVALID_DATA)


class TestMultiValue:

    def test_fixed_elements(self):
        entry = make_entry(ValueType.MULTI_VALUE_INTEGER_32BIT_SIGNED, struct.pack('<3I', 1, 2, 3))
        assert entry.get_data_as_multi_value() == [1, 2, 3]
        assert entry.get_value() == [1, 2, 3]

    def test_string_elements(self):
        first = 'a\x00'.encode('utf-16-le')
        second = 'bc\x00'.encode('utf-16-le')
        header = struct.pack('<3I', 2, 12, 12 + len(first))
        entry = make_entry(ValueType.MULTI_VALUE_STRING_UNICODE, header + first + second)
        assert entry.get_data_as_multi_value() == ['a', 'bc']

    def test_truncated_offsets(self):
        entry = make_entry(ValueType.MULTI_VALUE_BINARY_DATA, struct.pack('<2I', 5, 12))
        with pytest.raises(NK2Error) as exc_info:
            entry.get_data_as_multi_value()
        assert exc_info.value.matches(ErrorDomain.INPUT, InputError.INVALID_DATA)

    def test_single_value_is_not_multi_value(self):
        entry = make_entry(ValueType.BINARY_DATA, b'\x01\x02')
        with pytest.raises(NK2Error):
            entry.get_data_as_multi_value()
        assert entry.get_value() == b'\x01\x02'
        assert entry.get_data_as_binary_data() == b'\x01\x02'
