"""Structural reading of item records and value chains.

Scanning an item record only walks its structure (entry headers and size
fields) to learn where it ends; value bytes are read later, when the item is
materialized.
"""
import logging
import struct
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..constants import (
    ENTRY_RECORD_SIZE, NUMBER_OF_ENTRIES_SIZE, VALUE_DATA_ARRAY_SIZE,
)
from ..errors import ErrorDomain, InputError, raise_error
from ..value_identifier import ValueIdentifier
from ..value_type import ValueType, get_fixed_data_size, get_value_type_identifier
from .file_header import FormatLayout
from .io_handle import IOHandle
from .range_list import ByteRange

logger = logging.getLogger(__name__)

_ENTRY_STRUCT = struct.Struct('<HHI8s')


@dataclass
class EntryDescriptor:
    """Location of one value within an item record."""
    identifier: ValueIdentifier
    record_offset: int
    value_data_array: bytes
    data_offset: Optional[int] = None
    data_size: int = 0
    chain_offset: Optional[int] = None

    @property
    def is_chained(self) -> bool:
        return self.chain_offset is not None


@dataclass
class ItemDescriptor:
    """Location and shape of an item record."""
    offset: int
    number_of_entries: int
    size: int
    entries: List[EntryDescriptor] = field(default_factory=list)

    @property
    def end(self) -> int:
        return self.offset + self.size


def read_number_of_entries(io_handle: IOHandle, offset: int) -> int:
    data = io_handle.read_exact(offset, NUMBER_OF_ENTRIES_SIZE)
    return struct.unpack('<I', data)[0]


def scan_item_record(
    io_handle: IOHandle,
    offset: int,
    layout: FormatLayout,
    end_offset: int,
    maximum_number_of_entries: Optional[int] = None,
    allow_unidentified: bool = True
) -> Optional[ItemDescriptor]:
    """Walk the item record at offset without reading value bytes.

    Args:
        io_handle: Stream to read from
        offset: Offset of the record's entry count
        layout: Layout variant of the file
        end_offset: No part of the record may extend past this offset
        maximum_number_of_entries: Optional upper bound on the entry count
        allow_unidentified: Whether entries with entry type 0x0000 or value
            type PT_UNSPECIFIED are accepted

    Returns:
        The item descriptor, or None when the entry count is 0 (end of table)

    Raises:
        NK2Error: The record is malformed or runs past end_offset
    """
    if offset + NUMBER_OF_ENTRIES_SIZE > end_offset:
        raise_error(
            ErrorDomain.INPUT, InputError.INVALID_DATA,
            f"Item record at offset {offset} (0x{offset:08x}) exceeds data bounds."
        )
    number_of_entries = read_number_of_entries(io_handle, offset)
    if number_of_entries == 0:
        return None
    if maximum_number_of_entries is not None and number_of_entries > maximum_number_of_entries:
        raise_error(
            ErrorDomain.INPUT, InputError.INVALID_DATA,
            f"Number of entries {number_of_entries} exceeds maximum."
        )
    size_field_width = layout.size_field_width
    entries = []
    current = offset + NUMBER_OF_ENTRIES_SIZE

    for entry_index in range(number_of_entries):
        if current + ENTRY_RECORD_SIZE > end_offset:
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                f"Entry {entry_index} at offset {current} exceeds data bounds."
            )
        value_type, entry_type, _, value_data_array = _ENTRY_STRUCT.unpack(
            io_handle.read_exact(current, ENTRY_RECORD_SIZE)
        )
        if not allow_unidentified and (
                entry_type == 0 or value_type == ValueType.UNSPECIFIED):
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                f"Entry {entry_index} at offset {current} has no entry or value type."
            )
        identifier = ValueIdentifier(entry_type=entry_type, value_type=value_type)
        descriptor = EntryDescriptor(
            identifier=identifier,
            record_offset=current,
            value_data_array=value_data_array,
        )
        fixed_size = get_fixed_data_size(value_type)
        current += ENTRY_RECORD_SIZE

        if fixed_size is not None:
            if fixed_size > VALUE_DATA_ARRAY_SIZE:
                raise_error(
                    ErrorDomain.INPUT, InputError.VALUE_MISMATCH,
                    f"Fixed-size value type {get_value_type_identifier(value_type)} too large."
                )
            descriptor.data_size = fixed_size
        else:
            if current + size_field_width > end_offset:
                raise_error(
                    ErrorDomain.INPUT, InputError.INVALID_DATA,
                    f"Size field of entry {entry_index} exceeds data bounds."
                )
            size_value = layout.read_size_field(
                io_handle.read_exact(current, size_field_width)
            )
            current += size_field_width

            if size_value & layout.chain_flag:
                descriptor.data_size = size_value & ~layout.chain_flag
                descriptor.chain_offset = struct.unpack_from(
                    layout.size_field_format, value_data_array, 0
                )[0]
            else:
                if current + size_value > end_offset:
                    raise_error(
                        ErrorDomain.INPUT, InputError.INVALID_DATA,
                        f"Value data of entry {entry_index} ({size_value} bytes) "
                        f"exceeds data bounds."
                    )
                descriptor.data_offset = current
                descriptor.data_size = size_value
                current += size_value
        entries.append(descriptor)

    return ItemDescriptor(
        offset=offset,
        number_of_entries=number_of_entries,
        size=current - offset,
        entries=entries,
    )


def read_value_chain(
    io_handle: IOHandle,
    layout: FormatLayout,
    first_offset: int,
    total_size: int,
    file_size: int
) -> Tuple[bytes, List[ByteRange]]:
    """Reassemble a value stored out of line as a chain of blocks.

    Each block holds the offset of the next block (0 ends the chain), the
    size of its data and the data itself.

    Returns:
        The reassembled bytes and the extent of every block

    Raises:
        NK2InputError: A block is out of bounds, the chain loops, or the
            reassembled size differs from total_size
    """
    width = layout.size_field_width
    block_header_size = 2 * width
    chunks = []
    extents = []
    visited = set()
    collected = 0
    offset = first_offset

    while offset != 0:
        if offset in visited:
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                f"Value chain loops at offset {offset} (0x{offset:08x})."
            )
        visited.add(offset)
        if offset < 0 or offset + block_header_size > file_size:
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                f"Value chain block offset {offset} (0x{offset:08x}) out of bounds."
            )
        header = io_handle.read_exact(offset, block_header_size)
        next_offset = layout.read_size_field(header, 0)
        block_data_size = layout.read_size_field(header, width)
        if offset + block_header_size + block_data_size > file_size:
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                f"Value chain block at offset {offset} (0x{offset:08x}) exceeds file size."
            )
        if collected + block_data_size > total_size:
            raise_error(
                ErrorDomain.INPUT, InputError.VALUE_MISMATCH,
                f"Value chain data exceeds declared size {total_size}."
            )
        chunks.append(io_handle.read_exact(offset + block_header_size, block_data_size))
        extents.append(ByteRange(offset, block_header_size + block_data_size))
        collected += block_data_size
        offset = next_offset

    if collected != total_size:
        raise_error(
            ErrorDomain.INPUT, InputError.VALUE_MISMATCH,
            f"Value chain size {collected} does not match declared size {total_size}."
        )
    return b''.join(chunks), extents


def read_entry_data(
    io_handle: IOHandle,
    layout: FormatLayout,
    entry: EntryDescriptor,
    file_size: int
) -> bytes:
    """Read the raw (still encrypted) value bytes of an entry."""
    if entry.is_chained:
        data, _ = read_value_chain(
            io_handle, layout, entry.chain_offset, entry.data_size, file_size
        )
        return data
    if entry.data_offset is not None:
        return io_handle.read_exact(entry.data_offset, entry.data_size)
    return entry.value_data_array[:entry.data_size]
