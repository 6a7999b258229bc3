"""Constants for export functionality.

This module defines field names and formats used when exporting aliases.
"""
import string

from ..constants import EXPORT_FIELDS_V1

EXPORT_FIELD_IDS = [field['id'] for field in EXPORT_FIELDS_V1]

# Columns of the per entry table
ENTRY_FIELDS = [
    'alias_index', 'entry_index', 'entry_type', 'property_name',
    'value_type', 'value_type_identifier', 'data_size', 'value',
]

ALIAS_DIRECTORY_PREFIX = 'Alias'
RECOVERED_ALIAS_DIRECTORY_PREFIX = 'RecoveredAlias'
ITEM_VALUES_FILENAME = 'ItemValues.txt'

# Characters replaced by an underscore in exported file names
UNSAFE_FILENAME_CHARACTERS = frozenset('!$%&*+/:;<>?@\\~')

HEXDUMP_PRINTABLE = frozenset(
    (string.ascii_letters + string.digits + string.punctuation + ' ').encode('ascii')
)
