"""Tests for the text exporter writing one directory per alias."""
import logging
import struct
import threading
from unittest.mock import patch

import pytest

from nk2_builder import (
    PT_STRING8, Entry, NK2Builder, ascii_string, build_contacts_file, open_image,
)
from nk2_extractor.errors import ErrorDomain, InputError, NK2InputError, error_set
from nk2_extractor.export import TextExporter
from nk2_extractor.export.alias_data import collect_aliases
from nk2_extractor.export.text_exporter import format_hexdump, sanitize_filename


@pytest.fixture
def single_entry_item():
    builder = NK2Builder().add_item([(0x3001, PT_STRING8, ascii_string('Ann'))])
    with open_image(builder.build()) as nk2_file:
        return nk2_file.get_item(0)


class TestFormatting:

    def test_hexdump_short(self):
        assert format_hexdump(b'Ann\x00') == (
            '00000000: ' + '41 6e 6e 00'.ljust(48) + '  Ann.\n\n'
        )

    def test_hexdump_lines(self):
        data = bytes(range(0x41, 0x41 + 20))
        lines = format_hexdump(data).split('\n')
        assert lines[0] == (
            '00000000: 41 42 43 44 45 46 47 48  49 4a 4b 4c 4d 4e 4f 50  ABCDEFGHIJKLMNOP'
        )
        assert lines[1] == '00000010: ' + '51 52 53 54'.ljust(48) + '  QRST'
        assert lines[2:] == ['', '']

    def test_hexdump_empty(self):
        assert format_hexdump(b'') == '\n'

    def test_hexdump_unprintable(self):
        assert format_hexdump(b'\x00\x7f\xe9\t').splitlines()[0].endswith('  ....')

    @pytest.mark.parametrize('name, expected', [
        ('Alias00001', 'Alias00001'),
        ('a/b\\c:d', 'a_b_c_d'),
        ('tab\there', 'tab_here'),
        ('what?*<>', 'what____'),
        ('del\x7f', 'del_'),
    ])
    def test_sanitize_filename(self, name, expected):
        assert sanitize_filename(name) == expected


class TestTextExporter:

    def test_item_values_file(self, text_exporter, single_entry_item, tmp_path):
        success, message = text_exporter.export_items([single_entry_item], tmp_path / "export")

        assert success is True
        assert message == f"Exported 1 of 1 aliases to {tmp_path / 'export'}"
        values = (tmp_path / "export" / "Alias00001" / "ItemValues.txt").read_text(encoding='utf-8')
        assert values == (
            "Number of entries:\t1\n"
            "Entry:\t\t\t0\n"
            "Entry type:\t\t0x00003001\n"
            "Value type:\t\t0x0000001e\n"
            "Value:\n"
            + format_hexdump(b'Ann\x00')
        )

    def test_directories_numbered_from_one(self, text_exporter, contact_items, tmp_path):
        success, message = text_exporter.export_items(contact_items, tmp_path)
        assert success is True
        assert "Exported 10 of 10" in message
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            f"Alias{number:05d}" for number in range(1, 11)
        ]
        text = (tmp_path / "Alias00004" / "ItemValues.txt").read_text(encoding='utf-8')
        assert text.startswith("Number of entries:\t7\n")
        assert text.count("Entry type:") == 7

    def test_existing_directory_is_skipped(self, text_exporter, contact_items, tmp_path, caplog):
        (tmp_path / "Alias00002").mkdir()
        with caplog.at_level(logging.INFO, logger='nk2_extractor'):
            success, message = text_exporter.export_items(contact_items[:3], tmp_path)

        assert success is True
        assert "Exported 2 of 3" in message
        assert not (tmp_path / "Alias00002" / "ItemValues.txt").exists()
        assert (tmp_path / "Alias00003" / "ItemValues.txt").exists()
        assert "it already exists" in caplog.text

    def test_without_item_values(self, contact_items, tmp_path):
        exporter = TextExporter({'dump_item_values': False})
        exporter.export_items(contact_items[:2], tmp_path)
        assert (tmp_path / "Alias00001").is_dir()
        assert list((tmp_path / "Alias00001").iterdir()) == []

    def test_failing_alias_does_not_stop_export(self, text_exporter, contact_items, tmp_path):
        error = NK2InputError(
            error_set(None, ErrorDomain.INPUT, InputError.INVALID_DATA, "Unreadable value.")
        )
        with patch.object(TextExporter, 'write_item_values', side_effect=[None, error, None]):
            success, message = text_exporter.export_items(contact_items[:3], tmp_path)

        assert success is True
        assert "Exported 2 of 3" in message
        assert (tmp_path / "Alias00003").is_dir()

    def test_export_empty_list(self, text_exporter, tmp_path):
        success, message = text_exporter.export_items([], tmp_path / "export")
        assert success is False
        assert message == "No aliases to export"
        assert not (tmp_path / "export").exists()

    def test_target_is_a_file(self, text_exporter, contact_items, tmp_path):
        target = tmp_path / "export"
        target.write_text("occupied")
        success, message = text_exporter.export_items(contact_items, target)
        assert success is False
        assert "Unable to make directory" in message

    def test_progress_and_cancel(self, text_exporter, contact_items, tmp_path):
        calls = []
        text_exporter.export_items(
            contact_items[:3], tmp_path / "a",
            progress_callback=lambda done, total: calls.append((done, total))
        )
        assert calls == [(1, 3), (2, 3), (3, 3)]

        cancel_event = threading.Event()
        cancel_event.set()
        success, _ = text_exporter.export_items(contact_items, tmp_path / "b", cancel_event=cancel_event)
        assert success is False
        assert list((tmp_path / "b").iterdir()) == []

    def test_directories_follow_item_index(self, text_exporter, contact_items, tmp_path):
        text_exporter.export_items([contact_items[0], contact_items[2]], tmp_path)
        assert sorted(p.name for p in tmp_path.iterdir()) == ['Alias00001', 'Alias00003']

    def test_corrupt_item_keeps_later_numbers(self, text_exporter, tmp_path):
        builder = build_contacts_file(3)
        builder.items[1].append(
            Entry(0x8005, PT_STRING8, ascii_string('loop loop loop'), chained=True, block_size=4)
        )
        image = bytearray(builder.build())
        second_block = builder.chain_block_offsets[1]
        struct.pack_into('<I', image, second_block, second_block)
        with open_image(bytes(image)) as nk2_file:
            items = collect_aliases(nk2_file)

        success, message = text_exporter.export_items(items, tmp_path)

        assert success is True
        assert "Exported 2 of 2" in message
        assert sorted(p.name for p in tmp_path.iterdir()) == ['Alias00001', 'Alias00003']
        text = (tmp_path / "Alias00003" / "ItemValues.txt").read_text(encoding='utf-8')
        assert format_hexdump(ascii_string("Contact 2")) in text

    def test_recovered_items_have_own_directories(self, text_exporter, tmp_path):
        builder = build_contacts_file(2)
        builder.add_slack_item([(0x3001, PT_STRING8, ascii_string('Gone'))])
        with open_image(builder.build()) as nk2_file:
            items = collect_aliases(nk2_file, include_recovered=True)

        text_exporter.export_items(items, tmp_path)

        assert sorted(p.name for p in tmp_path.iterdir()) == [
            'Alias00001', 'Alias00002', 'RecoveredAlias00001',
        ]
