"""MAPI property value types as stored in NK2 entries."""
from enum import IntEnum
from typing import Dict, Optional

from .errors import ErrorDomain, InputError, raise_error

MULTI_VALUE_FLAG = 0x1000


class ValueType(IntEnum):
    """MAPI property types (PT_*)."""
    UNSPECIFIED = 0x0000
    NULL = 0x0001
    INTEGER_16BIT_SIGNED = 0x0002
    INTEGER_32BIT_SIGNED = 0x0003
    FLOAT_32BIT = 0x0004
    DOUBLE_64BIT = 0x0005
    CURRENCY = 0x0006
    FLOATINGTIME = 0x0007
    ERROR = 0x000a
    BOOLEAN = 0x000b
    OBJECT = 0x000d
    INTEGER_64BIT_SIGNED = 0x0014
    STRING_ASCII = 0x001e
    STRING_UNICODE = 0x001f
    FILETIME = 0x0040
    GUID = 0x0048
    SERVER_IDENTIFIER = 0x00fb
    RESTRICTION = 0x00fd
    RULE_ACTION = 0x00fe
    BINARY_DATA = 0x0102

    MULTI_VALUE_INTEGER_16BIT_SIGNED = 0x1002
    MULTI_VALUE_INTEGER_32BIT_SIGNED = 0x1003
    MULTI_VALUE_FLOAT_32BIT = 0x1004
    MULTI_VALUE_DOUBLE_64BIT = 0x1005
    MULTI_VALUE_CURRENCY = 0x1006
    MULTI_VALUE_FLOATINGTIME = 0x1007
    MULTI_VALUE_INTEGER_64BIT_SIGNED = 0x1014
    MULTI_VALUE_STRING_ASCII = 0x101e
    MULTI_VALUE_STRING_UNICODE = 0x101f
    MULTI_VALUE_FILETIME = 0x1040
    MULTI_VALUE_GUID = 0x1048
    MULTI_VALUE_BINARY_DATA = 0x1102


# Exact on-disk size of values stored inline in the entry record
FIXED_DATA_SIZES: Dict[int, int] = {
    ValueType.NULL: 0,
    ValueType.INTEGER_16BIT_SIGNED: 2,
    ValueType.BOOLEAN: 2,
    ValueType.INTEGER_32BIT_SIGNED: 4,
    ValueType.FLOAT_32BIT: 4,
    ValueType.ERROR: 4,
    ValueType.DOUBLE_64BIT: 8,
    ValueType.CURRENCY: 8,
    ValueType.FLOATINGTIME: 8,
    ValueType.INTEGER_64BIT_SIGNED: 8,
    ValueType.FILETIME: 8,
}

GUID_SIZE = 16

STRING_TYPES = (ValueType.STRING_ASCII, ValueType.STRING_UNICODE)

IDENTIFIERS: Dict[int, str] = {
    ValueType.UNSPECIFIED: 'PT_UNSPECIFIED',
    ValueType.NULL: 'PT_NULL',
    ValueType.INTEGER_16BIT_SIGNED: 'PT_SHORT',
    ValueType.INTEGER_32BIT_SIGNED: 'PT_LONG',
    ValueType.FLOAT_32BIT: 'PT_FLOAT',
    ValueType.DOUBLE_64BIT: 'PT_DOUBLE',
    ValueType.CURRENCY: 'PT_CURRENCY',
    ValueType.FLOATINGTIME: 'PT_APPTIME',
    ValueType.ERROR: 'PT_ERROR',
    ValueType.BOOLEAN: 'PT_BOOLEAN',
    ValueType.OBJECT: 'PT_OBJECT',
    ValueType.INTEGER_64BIT_SIGNED: 'PT_I8',
    ValueType.STRING_ASCII: 'PT_STRING8',
    ValueType.STRING_UNICODE: 'PT_UNICODE',
    ValueType.FILETIME: 'PT_SYSTIME',
    ValueType.GUID: 'PT_CLSID',
    ValueType.SERVER_IDENTIFIER: 'PT_SVREID',
    ValueType.RESTRICTION: 'PT_SRESTRICT',
    ValueType.RULE_ACTION: 'PT_ACTIONS',
    ValueType.BINARY_DATA: 'PT_BINARY',
}

DESCRIPTIONS: Dict[int, str] = {
    ValueType.UNSPECIFIED: 'Unspecified',
    ValueType.NULL: 'Null',
    ValueType.INTEGER_16BIT_SIGNED: 'Integer 16-bit signed',
    ValueType.INTEGER_32BIT_SIGNED: 'Integer 32-bit signed',
    ValueType.FLOAT_32BIT: 'Floating point single precision (32-bit)',
    ValueType.DOUBLE_64BIT: 'Floating point double precision (64-bit)',
    ValueType.CURRENCY: 'Currency (64-bit)',
    ValueType.FLOATINGTIME: 'Application time (64-bit)',
    ValueType.ERROR: 'Error (32-bit)',
    ValueType.BOOLEAN: 'Boolean',
    ValueType.OBJECT: 'Embedded object',
    ValueType.INTEGER_64BIT_SIGNED: 'Integer 64-bit signed',
    ValueType.STRING_ASCII: 'ASCII string',
    ValueType.STRING_UNICODE: 'Unicode string',
    ValueType.FILETIME: 'Filetime',
    ValueType.GUID: 'GUID',
    ValueType.SERVER_IDENTIFIER: 'Server identifier',
    ValueType.RESTRICTION: 'Restriction',
    ValueType.RULE_ACTION: 'Rule action',
    ValueType.BINARY_DATA: 'Binary data',
}


def is_known_value_type(value_type: int) -> bool:
    return value_type in ValueType._value2member_map_


def is_multi_value(value_type: int) -> bool:
    return bool(value_type & MULTI_VALUE_FLAG)


def get_base_type(value_type: int) -> int:
    return value_type & ~MULTI_VALUE_FLAG


def is_string_type(value_type: int) -> bool:
    return value_type in STRING_TYPES


def get_fixed_data_size(value_type: int) -> Optional[int]:
    """Get the exact data size of an inline value type.

    Returns:
        The size in bytes, or None for types with an explicit size field

    Raises:
        NK2InputError: The value type is unknown
    """
    if not is_known_value_type(value_type):
        raise_error(
            ErrorDomain.INPUT, InputError.UNSUPPORTED_VALUE,
            f"Unsupported value type: 0x{value_type:04x}."
        )
    return FIXED_DATA_SIZES.get(value_type)


def get_value_type_identifier(value_type: int) -> str:
    base_identifier = IDENTIFIERS.get(get_base_type(value_type))
    if base_identifier is None:
        return f'0x{value_type:04x}'
    if is_multi_value(value_type):
        return base_identifier.replace('PT_', 'PT_MV_', 1)
    return base_identifier


def get_value_type_description(value_type: int) -> str:
    description = DESCRIPTIONS.get(get_base_type(value_type))
    if description is None:
        return 'Unknown'
    if is_multi_value(value_type):
        return f'Multiple {description.lower()}'
    return description
