"""File header of an NK2 file."""
import logging
import struct
from dataclasses import dataclass

from ..constants import (
    ENCRYPTION_KEY_SIZE, FILE_FOOTER_SIZE, FILE_HEADER_SIZE, FILE_SIGNATURE,
    FORMAT_FLAGS_CONTENT_TYPE_MASK, FORMAT_FLAGS_ENCRYPTION_TYPE_MASK,
    FORMAT_FLAGS_ENCRYPTION_TYPE_SHIFT, FORMAT_VERSION_32BIT,
    FORMAT_VERSION_64BIT, ContentType, EncryptionType, FileType,
)
from ..errors import ErrorDomain, InputError, raise_error
from .io_handle import IOHandle

logger = logging.getLogger(__name__)

_HEADER_STRUCT = struct.Struct('<4sIII')


@dataclass(frozen=True)
class FormatLayout:
    """Width dependent parts of the on-disk layout, chosen once per file."""
    file_type: FileType
    size_field_width: int

    @property
    def size_field_format(self) -> str:
        return '<I' if self.size_field_width == 4 else '<Q'

    @property
    def chain_flag(self) -> int:
        return 1 << (self.size_field_width * 8 - 1)

    def read_size_field(self, data: bytes, offset: int = 0) -> int:
        return struct.unpack_from(self.size_field_format, data, offset)[0]


LAYOUTS = {
    FORMAT_VERSION_32BIT: FormatLayout(FileType.TYPE_32BIT, 4),
    FORMAT_VERSION_64BIT: FormatLayout(FileType.TYPE_64BIT, 8),
}


@dataclass
class FileHeader:
    format_version: int
    format_flags: int
    number_of_items: int
    content_type: ContentType
    encryption_type: EncryptionType
    encryption_key: int = 0

    @property
    def layout(self) -> FormatLayout:
        return LAYOUTS[self.format_version]

    @property
    def file_type(self) -> FileType:
        return self.layout.file_type

    @property
    def size(self) -> int:
        if self.encryption_type == EncryptionType.NONE:
            return FILE_HEADER_SIZE
        return FILE_HEADER_SIZE + ENCRYPTION_KEY_SIZE

    @classmethod
    def from_bytes(cls, data: bytes) -> 'FileHeader':
        """Parse the fixed part of the header.

        The encryption key, when present, is read separately since its
        presence depends on the flags.

        Raises:
            NK2InputError: The data is not a supported NK2 header
        """
        if len(data) < len(FILE_SIGNATURE):
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                "Invalid file header data: too small."
            )
        if bytes(data[:len(FILE_SIGNATURE)]) != FILE_SIGNATURE:
            raise_error(
                ErrorDomain.INPUT, InputError.SIGNATURE_MISMATCH,
                "Unsupported file signature."
            )
        if len(data) < FILE_HEADER_SIZE:
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                "Invalid file header data: too small."
            )
        _, format_version, format_flags, number_of_items = _HEADER_STRUCT.unpack_from(data, 0)

        logger.debug(
            f"File header: version 0x{format_version:08x}, "
            f"flags 0x{format_flags:08x}, {number_of_items} items"
        )
        if format_version not in LAYOUTS:
            raise_error(
                ErrorDomain.INPUT, InputError.VALUE_MISMATCH,
                f"Unsupported format version: 0x{format_version:08x}."
            )
        content_value = format_flags & FORMAT_FLAGS_CONTENT_TYPE_MASK
        try:
            content_type = ContentType(content_value)
        except ValueError:
            raise_error(
                ErrorDomain.INPUT, InputError.VALUE_MISMATCH,
                f"Unsupported content type: 0x{content_value:02x}."
            )
        encryption_value = (
            (format_flags & FORMAT_FLAGS_ENCRYPTION_TYPE_MASK)
            >> FORMAT_FLAGS_ENCRYPTION_TYPE_SHIFT
        )
        try:
            encryption_type = EncryptionType(encryption_value)
        except ValueError:
            raise_error(
                ErrorDomain.INPUT, InputError.VALUE_MISMATCH,
                f"Unsupported encryption type: 0x{encryption_value:02x}."
            )
        return cls(
            format_version=format_version,
            format_flags=format_flags,
            number_of_items=number_of_items,
            content_type=content_type,
            encryption_type=encryption_type,
        )

    @classmethod
    def read(cls, io_handle: IOHandle) -> 'FileHeader':
        """Read and validate the header at the start of the stream."""
        file_size = io_handle.get_size()
        signature = io_handle.read_at(0, len(FILE_SIGNATURE))
        if len(signature) < len(FILE_SIGNATURE):
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                f"Invalid file size: {file_size} bytes, too small for a signature."
            )
        if signature != FILE_SIGNATURE:
            raise_error(
                ErrorDomain.INPUT, InputError.SIGNATURE_MISMATCH,
                "Unsupported file signature."
            )
        if file_size < FILE_HEADER_SIZE + FILE_FOOTER_SIZE:
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                f"Invalid file size: {file_size} bytes, too small for header and footer."
            )
        header = cls.from_bytes(io_handle.read_exact(0, FILE_HEADER_SIZE))

        if header.encryption_type != EncryptionType.NONE:
            if file_size < header.size + FILE_FOOTER_SIZE:
                raise_error(
                    ErrorDomain.INPUT, InputError.INVALID_DATA,
                    f"Invalid file size: {file_size} bytes, too small for encryption key."
                )
            key_data = io_handle.read_exact(FILE_HEADER_SIZE, ENCRYPTION_KEY_SIZE)
            header.encryption_key = struct.unpack('<I', key_data)[0]
        return header
