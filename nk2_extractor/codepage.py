"""Codepage handling and string conversion.

Strings in an NK2 file are stored either as 8-bit text in the codepage the
file was written with, or as UTF-16 little-endian. The helpers below convert
between those encodings and UTF-8.

Conversions come in two phases: a ``*_size_from_*`` call that reports how big
the result is (end-of-string character included, UTF-16 sizes in 16-bit
units) and a ``*_copy_from_*`` call that writes into a buffer the caller
sized. The ``decode_*``/``encode_*`` helpers return owned values directly.
"""
import logging
from enum import IntEnum
from typing import Dict, MutableSequence, Union

from .errors import (
    ArgumentError, ConversionError, ErrorDomain, InputError, NK2Error,
    OutputError, raise_error,
)

logger = logging.getLogger(__name__)

END_OF_STRING = '\x00'


class Codepage(IntEnum):
    """Supported 8-bit codepages, valued by their Windows identifier."""
    ASCII = 20127

    ISO_8859_1 = 28591
    ISO_8859_2 = 28592
    ISO_8859_3 = 28593
    ISO_8859_4 = 28594
    ISO_8859_5 = 28595
    ISO_8859_6 = 28596
    ISO_8859_7 = 28597
    ISO_8859_8 = 28598
    ISO_8859_9 = 28599
    ISO_8859_10 = 28600
    ISO_8859_11 = 28601
    ISO_8859_13 = 28603
    ISO_8859_14 = 28604
    ISO_8859_15 = 28605
    ISO_8859_16 = 28606

    KOI8_R = 20866
    KOI8_U = 21866

    WINDOWS_874 = 874
    WINDOWS_932 = 932
    WINDOWS_936 = 936
    WINDOWS_949 = 949
    WINDOWS_950 = 950
    WINDOWS_1250 = 1250
    WINDOWS_1251 = 1251
    WINDOWS_1252 = 1252
    WINDOWS_1253 = 1253
    WINDOWS_1254 = 1254
    WINDOWS_1255 = 1255
    WINDOWS_1256 = 1256
    WINDOWS_1257 = 1257
    WINDOWS_1258 = 1258


DEFAULT_CODEPAGE = Codepage.WINDOWS_1252


def _canonical_name(codepage: Codepage) -> str:
    if codepage == Codepage.ASCII:
        return 'ascii'
    if codepage.name.startswith('ISO_8859_'):
        return 'iso-8859-' + codepage.name[len('ISO_8859_'):]
    if codepage.name.startswith('KOI8_'):
        return codepage.name.lower()
    return f'cp{int(codepage)}'


# Canonical names double as Python codec names
CODEPAGE_NAMES: Dict[Codepage, str] = {
    codepage: _canonical_name(codepage) for codepage in Codepage
}


def _build_aliases() -> Dict[str, Codepage]:
    aliases = {}
    for codepage, name in CODEPAGE_NAMES.items():
        aliases[name.replace('_', '-')] = codepage
        aliases[str(int(codepage))] = codepage
        if codepage.name.startswith('WINDOWS_'):
            aliases[f'windows-{int(codepage)}'] = codepage
    aliases['us-ascii'] = Codepage.ASCII
    for number in list(range(1, 12)) + list(range(13, 17)):
        aliases[f'iso8859-{number}'] = Codepage(28590 + number)
    return aliases


CODEPAGE_ALIASES = _build_aliases()


def get_codepage(value: Union[int, str, Codepage]) -> Codepage:
    """Resolve a codepage number or name.

    Args:
        value: A Codepage, its Windows identifier or one of its names
            (e.g. ``cp1252``, ``windows-1252``, ``iso-8859-1``, ``koi8-r``)

    Returns:
        The matching Codepage

    Raises:
        NK2InputError: The codepage is not supported
    """
    if isinstance(value, Codepage):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return Codepage(value)
        except ValueError:
            pass
    elif isinstance(value, str):
        key = value.strip().lower().replace('_', '-')
        if key in CODEPAGE_ALIASES:
            return CODEPAGE_ALIASES[key]
    raise_error(
        ErrorDomain.INPUT, InputError.UNSUPPORTED_VALUE,
        f"Unsupported ASCII codepage: {value!r}."
    )


def get_codepage_name(codepage: Union[int, Codepage]) -> str:
    """Get the canonical name of a codepage, e.g. ``cp1252``."""
    return CODEPAGE_NAMES[get_codepage(codepage)]


def is_supported_codepage(value: Union[int, str, Codepage]) -> bool:
    try:
        get_codepage(value)
    except NK2Error:
        return False
    return True


def _terminated(text: str) -> str:
    if text.endswith(END_OF_STRING):
        return text
    return text + END_OF_STRING


def decode_byte_stream(data: bytes, codepage: Union[int, Codepage]) -> str:
    """Decode 8-bit text in the given codepage."""
    codec = get_codepage_name(codepage)
    try:
        return bytes(data).decode(codec)
    except UnicodeDecodeError as exc:
        raise_error(
            ErrorDomain.CONVERSION, ConversionError.INPUT_FAILED,
            f"Unable to convert byte stream from codepage {codec}.", exc
        )


def decode_utf16_stream(data: bytes) -> str:
    """Decode UTF-16 little-endian text.

    Surrogate pairs are combined; an unpaired surrogate or a truncated code
    unit is invalid data.
    """
    try:
        return bytes(data).decode('utf-16-le')
    except UnicodeDecodeError as exc:
        raise_error(
            ErrorDomain.INPUT, InputError.INVALID_DATA,
            "Invalid UTF-16 stream.", exc
        )


def decode_utf8(data: bytes) -> str:
    try:
        return bytes(data).decode('utf-8')
    except UnicodeDecodeError as exc:
        raise_error(
            ErrorDomain.CONVERSION, ConversionError.INPUT_FAILED,
            "Invalid UTF-8 string.", exc
        )


def encode_byte_stream(text: str, codepage: Union[int, Codepage]) -> bytes:
    """Encode text in the given codepage, end-of-string character included."""
    codec = get_codepage_name(codepage)
    try:
        return _terminated(text).encode(codec)
    except UnicodeEncodeError as exc:
        raise_error(
            ErrorDomain.CONVERSION, ConversionError.OUTPUT_FAILED,
            f"Unable to represent string in codepage {codec}.", exc
        )


def encode_utf16_stream(text: str) -> bytes:
    """Encode text as UTF-16 little-endian, end-of-string character included."""
    try:
        return _terminated(text).encode('utf-16-le')
    except UnicodeEncodeError as exc:
        raise_error(
            ErrorDomain.CONVERSION, ConversionError.OUTPUT_FAILED,
            "Unable to encode string as UTF-16.", exc
        )


def encode_utf8(text: str) -> bytes:
    try:
        return _terminated(text).encode('utf-8')
    except UnicodeEncodeError as exc:
        raise_error(
            ErrorDomain.CONVERSION, ConversionError.OUTPUT_FAILED,
            "Unable to encode string as UTF-8.", exc
        )


def _copy_bytes(encoded: bytes, buffer: bytearray) -> int:
    if not isinstance(buffer, (bytearray, memoryview)):
        raise_error(
            ErrorDomain.ARGUMENTS, ArgumentError.INVALID_VALUE,
            "Invalid buffer, expected a bytearray."
        )
    if len(buffer) < len(encoded):
        raise_error(
            ErrorDomain.OUTPUT, OutputError.INSUFFICIENT_SPACE,
            f"Buffer too small: {len(buffer)} bytes, {len(encoded)} required."
        )
    buffer[:len(encoded)] = encoded
    return len(encoded)


def _copy_units(encoded: bytes, buffer: MutableSequence[int]) -> int:
    units = [
        int.from_bytes(encoded[index:index + 2], 'little')
        for index in range(0, len(encoded), 2)
    ]
    if len(buffer) < len(units):
        raise_error(
            ErrorDomain.OUTPUT, OutputError.INSUFFICIENT_SPACE,
            f"Buffer too small: {len(buffer)} units, {len(units)} required."
        )
    for index, unit in enumerate(units):
        buffer[index] = unit
    return len(units)


# UTF-8 targets

def utf8_string_size_from_byte_stream(data: bytes, codepage: Union[int, Codepage]) -> int:
    return len(encode_utf8(decode_byte_stream(data, codepage)))


def utf8_string_copy_from_byte_stream(
    buffer: bytearray, data: bytes, codepage: Union[int, Codepage]
) -> int:
    return _copy_bytes(encode_utf8(decode_byte_stream(data, codepage)), buffer)


def utf8_string_size_from_utf16_stream(data: bytes) -> int:
    return len(encode_utf8(decode_utf16_stream(data)))


def utf8_string_copy_from_utf16_stream(buffer: bytearray, data: bytes) -> int:
    return _copy_bytes(encode_utf8(decode_utf16_stream(data)), buffer)


# UTF-16 targets, sized in 16-bit units

def utf16_string_size_from_byte_stream(data: bytes, codepage: Union[int, Codepage]) -> int:
    return len(encode_utf16_stream(decode_byte_stream(data, codepage))) // 2


def utf16_string_copy_from_byte_stream(
    buffer: MutableSequence[int], data: bytes, codepage: Union[int, Codepage]
) -> int:
    return _copy_units(encode_utf16_stream(decode_byte_stream(data, codepage)), buffer)


def utf16_string_size_from_utf16_stream(data: bytes) -> int:
    return len(encode_utf16_stream(decode_utf16_stream(data))) // 2


def utf16_string_copy_from_utf16_stream(buffer: MutableSequence[int], data: bytes) -> int:
    return _copy_units(encode_utf16_stream(decode_utf16_stream(data)), buffer)


# Byte stream targets

def byte_stream_size_from_utf8(utf8_string: bytes, codepage: Union[int, Codepage]) -> int:
    return len(encode_byte_stream(decode_utf8(utf8_string), codepage))


def byte_stream_copy_from_utf8(
    buffer: bytearray, utf8_string: bytes, codepage: Union[int, Codepage]
) -> int:
    return _copy_bytes(encode_byte_stream(decode_utf8(utf8_string), codepage), buffer)
