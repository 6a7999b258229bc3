"""
NK2 Extractor - A tool to read and export Outlook nickname cache (NK2) files.
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .codepage import Codepage, get_codepage, get_codepage_name
from .config import ConfigManager, get_config
from .constants import (
    ENTRY_VALUE_FLAG_MATCH_ANY_VALUE_TYPE, ContentType, EncryptionType,
    FileState, FileType, UnallocatedBlockType,
)
from .errors import (
    ErrorChain, ErrorDomain, NK2ArgumentsError, NK2ConversionError, NK2Error,
    NK2InputError, NK2IOError, NK2RuntimeError, error_fprint, error_free,
    error_set, error_sprint,
)
from .file import File, check_file_signature, open_file
from .item import EntryValue, Item
from .logging_config import setup_logging
from .record_entry import RecordEntry
from .value_identifier import ValueIdentifier
from .value_type import ValueType

__all__ = [
    'Codepage',
    'ConfigManager',
    'ContentType',
    'ENTRY_VALUE_FLAG_MATCH_ANY_VALUE_TYPE',
    'EncryptionType',
    'EntryValue',
    'ErrorChain',
    'ErrorDomain',
    'File',
    'FileState',
    'FileType',
    'Item',
    'NK2ArgumentsError',
    'NK2ConversionError',
    'NK2Error',
    'NK2IOError',
    'NK2InputError',
    'NK2RuntimeError',
    'RecordEntry',
    'UnallocatedBlockType',
    'ValueIdentifier',
    'ValueType',
    'check_file_signature',
    'error_fprint',
    'error_free',
    'error_set',
    'error_sprint',
    'get_codepage',
    'get_codepage_name',
    'get_config',
    'open_file',
    'setup_logging',
]
