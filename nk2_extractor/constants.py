"""Constants used throughout the NK2 extractor."""
from enum import IntEnum
from typing import Any, Dict, List

# Version information
VERSION: str = '1.0.0'

# File header
FILE_SIGNATURE: bytes = b'\x0d\xf0\xad\xba'
FILE_HEADER_SIZE: int = 16
ENCRYPTION_KEY_SIZE: int = 4
FILE_FOOTER_SIZE: int = 12

FORMAT_VERSION_32BIT: int = 0x0000000a
FORMAT_VERSION_64BIT: int = 0x0000000b

FORMAT_FLAGS_CONTENT_TYPE_MASK: int = 0x000000ff
FORMAT_FLAGS_ENCRYPTION_TYPE_MASK: int = 0x0000ff00
FORMAT_FLAGS_ENCRYPTION_TYPE_SHIFT: int = 8

# Item records
ENTRY_RECORD_SIZE: int = 16
NUMBER_OF_ENTRIES_SIZE: int = 4
VALUE_DATA_ARRAY_SIZE: int = 8

# Flags for Item.get_entry_value
ENTRY_VALUE_FLAG_MATCH_ANY_VALUE_TYPE: int = 0x01
ENTRY_VALUE_FLAGS_SUPPORTED: int = ENTRY_VALUE_FLAG_MATCH_ANY_VALUE_TYPE

# Access flags
ACCESS_FLAG_READ: int = 0x01
ACCESS_FLAG_WRITE: int = 0x02

# Block alignment used when reporting unallocated space
INDEX_NODE_BLOCK_SIZE: int = 16
DATA_BLOCK_SIZE: int = 64

# Heuristic bounds for recovering item records from unallocated space
RECOVERY_MAXIMUM_NUMBER_OF_ENTRIES: int = 256

# Difference between the FILETIME epoch (1601-01-01) and the Unix epoch, in 100ns ticks
FILETIME_UNIX_EPOCH_DELTA: int = 116444736000000000


class ContentType(IntEnum):
    """What the nickname cache was produced for."""
    PAB = 1
    PST = 2
    OST = 3


class FileType(IntEnum):
    """On-disk layout variant; decides the width of size and offset fields."""
    TYPE_32BIT = 32
    TYPE_64BIT = 64


class EncryptionType(IntEnum):
    NONE = 0
    COMPRESSIBLE = 1
    HIGH = 2


class UnallocatedBlockType(IntEnum):
    """Kinds of allocation analysed for unallocated space."""
    INDEX_NODE = ord('n')
    DATA = ord('d')


class FileState(IntEnum):
    UNOPENED = 0
    OPEN = 1
    CLOSED = 2


# Common alias properties exported per item
EXPORT_FIELDS_V1: List[Dict[str, Any]] = [
    {
        'id': 'index',
        'name': 'Index',
        'description': 'Position of the alias in the nickname cache',
        'type': 'number',
    },
    {
        'id': 'display_name',
        'name': 'Display Name',
        'description': 'Display name of the recipient',
        'type': 'string',
    },
    {
        'id': 'email_address',
        'name': 'Email Address',
        'description': 'Email address of the recipient',
        'type': 'string',
    },
    {
        'id': 'address_type',
        'name': 'Address Type',
        'description': 'Address type such as SMTP or EX',
        'type': 'string',
    },
    {
        'id': 'smtp_address',
        'name': 'SMTP Address',
        'description': 'SMTP address of the recipient',
        'type': 'string',
    },
    {
        'id': 'search_key',
        'name': 'Search Key',
        'description': 'Address search key',
        'type': 'string',
    },
    {
        'id': 'nickname',
        'name': 'Nickname',
        'description': 'Autocomplete nickname shown in the dropdown',
        'type': 'string',
    },
    {
        'id': 'account',
        'name': 'Account',
        'description': 'Account name of the recipient',
        'type': 'string',
    },
    {
        'id': 'number_of_entries',
        'name': 'Entries',
        'description': 'Number of values stored for the alias',
        'type': 'number',
    },
    {
        'id': 'recovered',
        'name': 'Recovered',
        'description': 'Alias was recovered from unallocated space',
        'type': 'boolean',
    },
]
