"""Tests for opening NK2 files and reading their items."""
import io
import struct
from datetime import datetime, timezone

import pytest

from nk2_builder import (
    PT_BINARY, PT_CLSID, PT_LONG, PT_MV_LONG, PT_STRING8, PT_UNICODE, Entry,
    NK2Builder, ascii_string, build_contacts_file, contact_entries, open_image,
    unicode_string, write_image,
)
from nk2_extractor import File, check_file_signature, open_file
from nk2_extractor.codepage import Codepage
from nk2_extractor.constants import (
    ContentType, EncryptionType, FileState, FileType,
)
from nk2_extractor.errors import (
    ArgumentError, ErrorDomain, InputError, IOErrorCode, NK2Error,
    RuntimeErrorCode,
)
from nk2_extractor.value_type import ValueType


class TestOpen:

    def test_open_path(self, contacts_path):
        nk2_file = File()
        nk2_file.open(contacts_path)
        try:
            assert nk2_file.is_open
            assert nk2_file.state == FileState.OPEN
            assert nk2_file.name == str(contacts_path)
            assert nk2_file.amount_of_items() == 10
            assert nk2_file.get_size() == contacts_path.stat().st_size
        finally:
            nk2_file.close()
        assert nk2_file.state == FileState.CLOSED

    def test_file_information(self, contacts_file):
        assert contacts_file.get_type() == FileType.TYPE_32BIT
        assert contacts_file.get_format_version() == 0x0a
        assert contacts_file.get_content_type() == ContentType.PAB
        assert contacts_file.get_encryption_values() == (EncryptionType.NONE, 0)
        assert contacts_file.get_modification_datetime() == datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert contacts_file.scan_errors == []

    def test_open_twice(self, contacts_file, contacts_image):
        with pytest.raises(NK2Error) as exc_info:
            contacts_file.open(io.BytesIO(contacts_image))
        assert exc_info.value.matches(ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_ALREADY_SET)

    def test_write_mode_unsupported(self, contacts_image):
        with pytest.raises(NK2Error) as exc_info:
            File().open(io.BytesIO(contacts_image), mode='w')
        assert exc_info.value.matches(ErrorDomain.ARGUMENTS, ArgumentError.UNSUPPORTED_VALUE)

    def test_signature_mismatch(self, contacts_image):
        image = b'\x00\x01\x02\x03' + contacts_image[4:]
        nk2_file = File()
        with pytest.raises(NK2Error) as exc_info:
            nk2_file.open(io.BytesIO(image))
        error = exc_info.value
        assert error.matches(ErrorDomain.INPUT, InputError.SIGNATURE_MISMATCH)
        assert error.chain.top.code == IOErrorCode.OPEN_FAILED
        assert not nk2_file.is_open
        assert len(nk2_file) == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(NK2Error) as exc_info:
            File().open(tmp_path / 'missing.nk2')
        assert exc_info.value.matches(ErrorDomain.IO, IOErrorCode.INVALID_RESOURCE)

    @pytest.mark.parametrize('image', [b'', b'\x0d\xf0', b'\x0d\xf0\xad\xba' + b'\x00' * 12])
    def test_too_small(self, image):
        with pytest.raises(NK2Error) as exc_info:
            File().open(io.BytesIO(image))
        assert exc_info.value.matches(ErrorDomain.INPUT, InputError.INVALID_DATA)

    def test_unsupported_version(self, contacts_image):
        image = contacts_image[:4] + struct.pack('<I', 0x0c) + contacts_image[8:]
        with pytest.raises(NK2Error) as exc_info:
            File().open(io.BytesIO(image))
        assert exc_info.value.matches(ErrorDomain.INPUT, InputError.VALUE_MISMATCH)

    def test_check_file_signature(self, tmp_path, contacts_path):
        assert check_file_signature(contacts_path) is True
        other = write_image(tmp_path, b'not an nk2 file', 'other.bin')
        assert check_file_signature(other) is False

    def test_open_file_helper(self, contacts_path):
        with open_file(contacts_path, ascii_codepage='windows-1250') as nk2_file:
            assert nk2_file.get_ascii_codepage() == Codepage.WINDOWS_1250
            assert nk2_file.amount_of_items() == 10

    def test_unopened_file(self):
        nk2_file = File()
        with pytest.raises(NK2Error) as exc_info:
            nk2_file.amount_of_items()
        assert exc_info.value.matches(ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_MISSING)
        # Closing an unopened file is harmless
        nk2_file.close()


class TestItems:

    def test_every_item_matches_disk_count(self, contacts_file, contacts_builder):
        for item_index in range(contacts_file.amount_of_items()):
            item = contacts_file.get_item(item_index)
            assert item.index == item_index
            assert item.offset == contacts_builder.item_offsets[item_index]
            assert item.amount_of_entries() == len(contacts_builder.items[item_index])

    @pytest.mark.parametrize('index', [-1, 10, 11])
    def test_item_index_out_of_bounds(self, contacts_file, index):
        with pytest.raises(NK2Error) as exc_info:
            contacts_file.get_item(index)
        assert exc_info.value.matches(ErrorDomain.ARGUMENTS, ArgumentError.VALUE_OUT_OF_BOUNDS)

    def test_display_name_of_third_alias(self, contacts_file):
        item = contacts_file.get_item(3)
        value = item.get_entry_value(entry_type=0x3001, value_type=0)
        assert value.value_type == ValueType.STRING_ASCII
        assert value.data == 'Jos\xe9 Garc\xeda'.encode('cp1252') + b'\x00'
        assert item.get_entry_value_string(0x3001) == 'Jos\xe9 Garc\xeda'

    def test_values_of_an_alias(self, contacts_file):
        item = contacts_file.get_item(5)
        assert item.get_entry_value_string(0x3003) == 'contact5@example.com'
        assert item.get_entry_value_32bit(0x5ff6) == 5
        assert item.get_entry_value_boolean(0x0ffe) is True
        assert item.get_entry_value(0x6001) is None

    def test_items_survive_close(self, contacts_image):
        nk2_file = open_image(contacts_image)
        items = list(nk2_file.items())
        nk2_file.close()

        assert items[9].get_entry_value_string(0x3001) == 'Contact 9'
        with pytest.raises(NK2Error) as exc_info:
            nk2_file.get_item(0)
        assert exc_info.value.matches(ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_MISSING)

    def test_codepage_applies_to_items(self, contacts_image):
        nk2_file = open_image(contacts_image, ascii_codepage=Codepage.WINDOWS_1251)
        with nk2_file:
            assert nk2_file.get_item(3).get_entry_value_string(0x3001) == 'Josй Garcнa'
            nk2_file.set_ascii_codepage('windows-1252')
            assert nk2_file.get_item(3).get_entry_value_string(0x3001) == 'Jos\xe9 Garc\xeda'

    def test_set_unsupported_codepage(self, contacts_file):
        with pytest.raises(NK2Error) as exc_info:
            contacts_file.set_ascii_codepage('utf-7')
        assert exc_info.value.matches(ErrorDomain.ARGUMENTS, ArgumentError.UNSUPPORTED_VALUE)

    def test_corrupt_item_fails_alone(self):
        builder = build_contacts_file(3)
        builder.items[1].append(Entry(0x6002, PT_CLSID, b'\x00' * 10))
        with open_image(builder.build()) as nk2_file:
            assert nk2_file.amount_of_items() == 3
            nk2_file.get_item(0)
            nk2_file.get_item(2)
            with pytest.raises(NK2Error) as exc_info:
                nk2_file.get_item(1)
        error = exc_info.value
        assert error.chain.top.code == RuntimeErrorCode.GET_FAILED
        assert error.matches(ErrorDomain.INPUT, InputError.VALUE_MISMATCH)

    def test_multi_value_and_guid(self):
        builder = NK2Builder()
        builder.add_item([
            (0x3001, PT_UNICODE, unicode_string('Multi')),
            (0x6100, PT_MV_LONG, struct.pack('<3I', 1, 2, 3)),
            (0x6101, PT_CLSID, bytes(range(16))),
        ])
        with open_image(builder.build()) as nk2_file:
            item = nk2_file.get_item(0)
        assert item.get_record_entry(1).get_data_as_multi_value() == [1, 2, 3]
        assert item.get_entry_value_guid(0x6101).bytes_le == bytes(range(16))


class TestLayouts:

    def test_64bit_layout(self):
        builder = build_contacts_file(4, file_type=64)
        with open_image(builder.build()) as nk2_file:
            assert nk2_file.get_type() == FileType.TYPE_64BIT
            assert nk2_file.get_format_version() == 0x0b
            assert nk2_file.amount_of_items() == 4
            item = nk2_file.get_item(2)
        assert item.get_entry_value_string(0x3003) == 'contact2@example.com'

    @pytest.mark.parametrize('encryption_type', [EncryptionType.COMPRESSIBLE, EncryptionType.HIGH])
    @pytest.mark.parametrize('file_type', [32, 64])
    def test_encrypted_values(self, encryption_type, file_type):
        builder = build_contacts_file(
            4, file_type=file_type, encryption_type=int(encryption_type),
            encryption_key=0x1234abcd
        )
        with open_image(builder.build()) as nk2_file:
            assert nk2_file.get_encryption_values() == (encryption_type, 0x1234abcd)
            item = nk2_file.get_item(3)
        assert item.get_entry_value_string(0x3001) == 'Jos\xe9 Garc\xeda'
        assert item.get_entry_value_string(0x39fe) == 'contact3@example.com'
        assert item.get_entry_value_32bit(0x5ff6) == 3

    @pytest.mark.parametrize('file_type', [32, 64])
    def test_chained_values(self, file_type):
        long_name = 'A rather long display name that is stored out of line'
        builder = NK2Builder(file_type=file_type)
        builder.add_item(contact_entries(0))
        builder.add_item([
            Entry(0x3001, PT_STRING8, ascii_string(long_name), chained=True, block_size=7),
            Entry(0x300b, PT_BINARY, bytes(range(40)), chained=True, block_size=16),
            (0x5ff6, PT_LONG, struct.pack('<I', 1)),
        ])
        with open_image(builder.build()) as nk2_file:
            item = nk2_file.get_item(1)
            assert nk2_file.get_item(0).get_entry_value_string(0x3001) == 'Contact 0'
        assert item.get_entry_value_string(0x3001) == long_name
        assert item.get_entry_value_binary_data(0x300b) == bytes(range(40))

    def test_chained_values_encrypted(self):
        builder = NK2Builder(encryption_type=2, encryption_key=0xdeadbeef)
        builder.add_item([
            Entry(0x3001, PT_UNICODE, unicode_string('Chained and encrypted'), chained=True),
        ])
        with open_image(builder.build()) as nk2_file:
            item = nk2_file.get_item(0)
        assert item.get_entry_value_string(0x3001) == 'Chained and encrypted'

    def test_looping_chain_is_corrupt_item(self):
        builder = NK2Builder()
        builder.add_item([
            Entry(0x3001, PT_STRING8, ascii_string('loop loop loop'), chained=True, block_size=4),
        ])
        image = bytearray(builder.build())
        second_block = builder.chain_block_offsets[1]
        # Point the second block back at itself
        struct.pack_into('<I', image, second_block, second_block)
        with open_image(bytes(image)) as nk2_file:
            with pytest.raises(NK2Error) as exc_info:
                nk2_file.get_item(0)
        assert exc_info.value.matches(ErrorDomain.INPUT, InputError.INVALID_DATA)


class TestItemTable:

    def test_table_without_terminator(self):
        builder = build_contacts_file(2, terminator=False)
        with open_image(builder.build()) as nk2_file:
            assert nk2_file.amount_of_items() == 2
            assert nk2_file.get_modification_time() == builder.modification_time

    @pytest.mark.parametrize('terminator', [True, False])
    def test_footer_located_by_chain_blocks(self, terminator):
        # Zero low dword: the footer alone looks like a terminator
        modification_time = 0x01d5c03600000000
        builder = NK2Builder(terminator=terminator, modification_time=modification_time)
        entries = contact_entries(0)
        entries.append(Entry(0x8005, PT_BINARY, b'\xaa' * 40, chained=True, block_size=16))
        builder.add_item(entries)
        with open_image(builder.build()) as nk2_file:
            assert nk2_file.get_modification_time() == modification_time
            assert nk2_file.get_item(0).get_entry_value_binary_data(0x8005) == b'\xaa' * 40

    def test_terminator_before_declared_count(self):
        builder = build_contacts_file(2, number_of_items=5)
        with open_image(builder.build()) as nk2_file:
            assert nk2_file.amount_of_items() == 2
            assert nk2_file.scan_errors == []

    def test_scan_stops_at_malformed_record(self):
        builder = build_contacts_file(3)
        builder.items[1].insert(0, Entry(0x6003, 0x0099, b'????'))
        with open_image(builder.build()) as nk2_file:
            assert nk2_file.amount_of_items() == 1
            assert len(nk2_file.scan_errors) == 1
            assert nk2_file.scan_errors[0].matches(ErrorDomain.INPUT, InputError.UNSUPPORTED_VALUE)
            # The footer is taken from the end of the file
            assert nk2_file.get_modification_time() == builder.modification_time
            assert nk2_file.get_item(0).get_entry_value_string(0x3001) == 'Contact 0'
