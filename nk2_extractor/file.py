"""
Reading of NK2 nickname cache files.

A File validates the header when opened and indexes the item table without
decoding any values. Items are decoded on request and hold copies of their
data, so they stay usable after the file is closed.
"""
import logging
from datetime import datetime
from typing import BinaryIO, Dict, Iterator, List, Optional, Tuple, Union

from . import codepage as codepage_module
from .codepage import DEFAULT_CODEPAGE, Codepage
from .constants import (
    DATA_BLOCK_SIZE, FILE_FOOTER_SIZE, FILE_SIGNATURE, INDEX_NODE_BLOCK_SIZE,
    NUMBER_OF_ENTRIES_SIZE, RECOVERY_MAXIMUM_NUMBER_OF_ENTRIES, ContentType,
    EncryptionType, FileState, FileType, UnallocatedBlockType,
)
from .core.encryption import decrypt
from .core.file_footer import FileFooter
from .core.file_header import FileHeader
from .core.io_handle import IOHandle, PathType, create_io_handle
from .core.item_record import (
    ItemDescriptor, read_entry_data, read_value_chain, scan_item_record,
)
from .core.range_list import ByteRange, RangeList
from .errors import (
    ArgumentError, ErrorDomain, IOErrorCode, NK2Error, RuntimeErrorCode,
    raise_error,
)
from .item import Item
from .record_entry import RecordEntry, filetime_to_datetime

logger = logging.getLogger(__name__)

SourceType = Union[PathType, BinaryIO]

UnallocatedBlock = ByteRange

BLOCK_SIZES = {
    UnallocatedBlockType.INDEX_NODE: INDEX_NODE_BLOCK_SIZE,
    UnallocatedBlockType.DATA: DATA_BLOCK_SIZE,
}


class File:
    """An NK2 nickname cache file, opened read-only."""

    def __init__(self, ascii_codepage: Union[int, str, Codepage] = DEFAULT_CODEPAGE):
        self.state = FileState.UNOPENED
        self.name: Optional[str] = None
        self.scan_errors: List[NK2Error] = []
        self._ascii_codepage = codepage_module.get_codepage(ascii_codepage)
        self._io_handle: Optional[IOHandle] = None
        self._header: Optional[FileHeader] = None
        self._footer: Optional[FileFooter] = None
        self._footer_offset = 0
        self._terminator_offset: Optional[int] = None
        self._size = 0
        self._item_descriptors: List[ItemDescriptor] = []
        self._unallocated: Optional[Dict[UnallocatedBlockType, RangeList]] = None
        self._allocated: Optional[Dict[UnallocatedBlockType, RangeList]] = None
        self._recovered_descriptors: Optional[List[ItemDescriptor]] = None

    # Lifecycle

    def open(self, source: SourceType, mode: str = 'r') -> None:
        """Open a file by path or file object and index its items.

        Args:
            source: Path (str, bytes or os.PathLike) or seekable binary file object
            mode: Access mode, only read access is supported

        Raises:
            NK2Error: The file could not be opened or is not a valid NK2 file
        """
        if self.state != FileState.UNOPENED:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_ALREADY_SET,
                "Invalid file: already opened."
            )
        if mode not in ('r', 'rb'):
            raise_error(
                ErrorDomain.ARGUMENTS, ArgumentError.UNSUPPORTED_VALUE,
                f"Unsupported access mode: {mode!r}, only read access is supported."
            )
        io_handle = create_io_handle(source)
        try:
            io_handle.open()
            self._read_file_structures(io_handle)
        except NK2Error as e:
            self._discard(io_handle)
            raise_error(
                ErrorDomain.IO, IOErrorCode.OPEN_FAILED,
                f"Unable to open file: {io_handle.name}.", e
            )
        self._io_handle = io_handle
        self.name = io_handle.name
        self.state = FileState.OPEN
        logger.info(
            f"Opened {self.name}: {len(self._item_descriptors)} items, "
            f"{self._header.file_type.name}, {self._header.content_type.name}, "
            f"encryption {self._header.encryption_type.name}"
        )

    def _discard(self, io_handle: IOHandle) -> None:
        try:
            io_handle.close()
        except NK2Error as e:
            logger.warning(f"Unable to close {io_handle.name}: {e}")
        self._header = None
        self._footer = None
        self._terminator_offset = None
        self._item_descriptors = []
        self.scan_errors = []

    def _read_file_structures(self, io_handle: IOHandle) -> None:
        self._size = io_handle.get_size()
        self._header = FileHeader.read(io_handle)
        layout = self._header.layout
        footer_limit = self._size - FILE_FOOTER_SIZE
        offset = self._header.size
        table_complete = True

        while len(self._item_descriptors) < self._header.number_of_items:
            item_index = len(self._item_descriptors)
            try:
                descriptor = scan_item_record(io_handle, offset, layout, footer_limit)
            except NK2Error as e:
                logger.warning(
                    f"Item table scan stopped at item {item_index} "
                    f"offset {offset} (0x{offset:08x}): {e}"
                )
                self.scan_errors.append(e)
                table_complete = False
                break
            if descriptor is None:
                self._terminator_offset = offset
                offset += NUMBER_OF_ENTRIES_SIZE
                break
            logger.debug(
                f"Item {item_index} at offset 0x{offset:08x}: "
                f"{descriptor.number_of_entries} entries, {descriptor.size} bytes"
            )
            self._item_descriptors.append(descriptor)
            offset = descriptor.end

        if table_complete and self._terminator_offset is None:
            offset = self._skip_trailing_terminator(io_handle, offset)

        if len(self._item_descriptors) < self._header.number_of_items:
            logger.warning(
                f"Found {len(self._item_descriptors)} of "
                f"{self._header.number_of_items} items declared in the header"
            )
        self._footer_offset = offset if table_complete else footer_limit
        self._footer = FileFooter.from_bytes(
            io_handle.read_exact(self._footer_offset, FILE_FOOTER_SIZE)
        )

    def _skip_trailing_terminator(self, io_handle: IOHandle, offset: int) -> int:
        """Step over a zero entry count that follows the last declared item.

        Value chains are stored after the footer, so the first chain block,
        when there is one, shows whether the footer starts at offset or one
        word later. Otherwise a terminator is assumed when two zero words
        precede a complete footer; the footer itself starts with a zero word,
        so an unterminated table whose modification time has a zero low
        dword is then read one word late.
        """
        chain_offsets = [
            entry.chain_offset
            for descriptor in self._item_descriptors
            for entry in descriptor.entries
            if entry.is_chained
        ]
        if chain_offsets:
            first_block = min(chain_offsets)
            if first_block == offset + FILE_FOOTER_SIZE:
                return offset
            if first_block == offset + NUMBER_OF_ENTRIES_SIZE + FILE_FOOTER_SIZE:
                self._terminator_offset = offset
                return offset + NUMBER_OF_ENTRIES_SIZE

        if offset + NUMBER_OF_ENTRIES_SIZE + FILE_FOOTER_SIZE > self._size:
            return offset
        data = io_handle.read_exact(offset, 2 * NUMBER_OF_ENTRIES_SIZE)
        if data != bytes(2 * NUMBER_OF_ENTRIES_SIZE):
            return offset
        self._terminator_offset = offset
        return offset + NUMBER_OF_ENTRIES_SIZE

    def close(self) -> None:
        """Release the stream. Header information and the item index are kept."""
        if self.state != FileState.OPEN:
            logger.debug("File is not open, nothing to close")
            return
        try:
            self._io_handle.close()
        finally:
            self._io_handle = None
            self.state = FileState.CLOSED
        logger.debug(f"Closed {self.name}")

    @property
    def is_open(self) -> bool:
        return self.state == FileState.OPEN

    def __enter__(self) -> 'File':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # File information

    def _require_header(self) -> FileHeader:
        if self._header is None:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_MISSING,
                "Invalid file: not opened."
            )
        return self._header

    def _require_open(self) -> IOHandle:
        if self.state != FileState.OPEN:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_MISSING,
                "Invalid file: missing file IO handle, file is not open."
            )
        return self._io_handle

    def get_size(self) -> int:
        self._require_header()
        return self._size

    def get_content_type(self) -> ContentType:
        return self._require_header().content_type

    def get_type(self) -> FileType:
        return self._require_header().file_type

    def get_format_version(self) -> int:
        return self._require_header().format_version

    def get_encryption_values(self) -> Tuple[EncryptionType, int]:
        header = self._require_header()
        return header.encryption_type, header.encryption_key

    def get_modification_time(self) -> int:
        """Modification time as FILETIME ticks."""
        self._require_header()
        return self._footer.modification_time

    def get_modification_datetime(self) -> datetime:
        return filetime_to_datetime(self.get_modification_time())

    def get_ascii_codepage(self) -> Codepage:
        return self._ascii_codepage

    def set_ascii_codepage(self, ascii_codepage: Union[int, str, Codepage]) -> None:
        """Set the codepage used for 8-bit strings of items read from now on.

        Raises:
            NK2ArgumentsError: The codepage is not supported
        """
        try:
            self._ascii_codepage = codepage_module.get_codepage(ascii_codepage)
        except NK2Error as e:
            raise_error(
                ErrorDomain.ARGUMENTS, ArgumentError.UNSUPPORTED_VALUE,
                f"Unable to set ASCII codepage: {ascii_codepage!r}.", e
            )

    # Items

    def amount_of_items(self) -> int:
        self._require_header()
        return len(self._item_descriptors)

    def __len__(self) -> int:
        return len(self._item_descriptors)

    def _check_item_index(self, item_index: int, count: int) -> None:
        if not isinstance(item_index, int) or not 0 <= item_index < count:
            raise_error(
                ErrorDomain.ARGUMENTS, ArgumentError.VALUE_OUT_OF_BOUNDS,
                f"Invalid item index: {item_index!r} value out of bounds."
            )

    def _read_item(
        self,
        descriptor: ItemDescriptor,
        item_index: int,
        recovered: bool = False
    ) -> Item:
        io_handle = self._require_open()
        header = self._header
        item = Item(
            ascii_codepage=self._ascii_codepage,
            index=item_index,
            offset=descriptor.offset,
            recovered=recovered,
        )
        for entry_index, entry in enumerate(descriptor.entries):
            try:
                data = read_entry_data(io_handle, header.layout, entry, self._size)
                data = decrypt(data, header.encryption_type, header.encryption_key)
                item.append_entry(RecordEntry(entry.identifier, data, self._ascii_codepage))
            except NK2Error as e:
                raise_error(
                    ErrorDomain.RUNTIME, RuntimeErrorCode.GET_FAILED,
                    f"Unable to read entry {entry_index} ({entry.identifier}) "
                    f"of item {item_index}.", e
                )
        return item

    def get_item(self, item_index: int) -> Item:
        """Decode the item at a 0-based index.

        Raises:
            NK2ArgumentsError: The index is out of bounds
            NK2RuntimeError: The file is not open or the item is corrupt
        """
        self._require_open()
        self._check_item_index(item_index, len(self._item_descriptors))
        try:
            return self._read_item(self._item_descriptors[item_index], item_index)
        except NK2Error as e:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.GET_FAILED,
                f"Unable to retrieve item: {item_index}.", e
            )

    def items(self) -> Iterator[Item]:
        for item_index in range(len(self._item_descriptors)):
            yield self.get_item(item_index)

    # Unallocated space

    def _read_allocation_tables(self) -> None:
        io_handle = self._require_open()
        header = self._header
        index_extents = RangeList()
        data_extents = RangeList()

        index_extents.add(0, header.size)
        for descriptor in self._item_descriptors:
            index_extents.add(descriptor.offset, descriptor.size)
        if self._terminator_offset is not None:
            index_extents.add(self._terminator_offset, NUMBER_OF_ENTRIES_SIZE)
        index_extents.add(self._footer_offset, FILE_FOOTER_SIZE)

        for item_index, descriptor in enumerate(self._item_descriptors):
            for entry in descriptor.entries:
                if not entry.is_chained:
                    continue
                try:
                    _, extents = read_value_chain(
                        io_handle, header.layout, entry.chain_offset,
                        entry.data_size, self._size
                    )
                except NK2Error as e:
                    logger.warning(f"Skipping value chain of item {item_index}: {e}")
                    continue
                for extent in extents:
                    data_extents.add(extent.offset, extent.size)

        self._allocated = {
            UnallocatedBlockType.INDEX_NODE: index_extents,
            UnallocatedBlockType.DATA: data_extents,
        }
        self._unallocated = {
            block_type: extents.complement(self._size).aligned(BLOCK_SIZES[block_type])
            for block_type, extents in self._allocated.items()
        }
        logger.debug(
            "Unallocated blocks: "
            + ", ".join(
                f"{block_type.name} {len(blocks)}"
                for block_type, blocks in self._unallocated.items()
            )
        )

    def _get_unallocated(self, block_type: UnallocatedBlockType) -> RangeList:
        try:
            block_type = UnallocatedBlockType(block_type)
        except ValueError:
            raise_error(
                ErrorDomain.ARGUMENTS, ArgumentError.UNSUPPORTED_VALUE,
                f"Unsupported unallocated block type: {block_type!r}."
            )
        if self._unallocated is None:
            self._read_allocation_tables()
        return self._unallocated[block_type]

    def amount_of_unallocated_blocks(self, block_type: UnallocatedBlockType) -> int:
        return len(self._get_unallocated(block_type))

    def get_unallocated_block(
        self,
        block_type: UnallocatedBlockType,
        block_index: int
    ) -> UnallocatedBlock:
        blocks = self._get_unallocated(block_type)
        if not isinstance(block_index, int) or not 0 <= block_index < len(blocks):
            raise_error(
                ErrorDomain.ARGUMENTS, ArgumentError.VALUE_OUT_OF_BOUNDS,
                f"Invalid unallocated block index: {block_index!r} value out of bounds."
            )
        return blocks[block_index]

    def get_allocated_ranges(self, block_type: UnallocatedBlockType) -> RangeList:
        self._get_unallocated(block_type)
        return self._allocated[UnallocatedBlockType(block_type)]

    # Recovery

    def recover_items(self) -> int:
        """Scan unallocated space for item records that still parse.

        Returns:
            The number of recovered items
        """
        io_handle = self._require_open()
        if self._unallocated is None:
            self._read_allocation_tables()
        used = RangeList()
        for extents in self._allocated.values():
            for extent in extents:
                used.add(extent.offset, extent.size)

        recovered = []
        for gap in used.complement(self._size):
            offset = gap.offset
            while offset + NUMBER_OF_ENTRIES_SIZE <= gap.end:
                descriptor = self._probe_item_record(io_handle, offset, gap.end, len(recovered))
                if descriptor is None:
                    offset += 1
                    continue
                logger.info(
                    f"Recovered item at offset {offset} (0x{offset:08x}) "
                    f"with {descriptor.number_of_entries} entries"
                )
                recovered.append(descriptor)
                offset = descriptor.end

        self._recovered_descriptors = recovered
        return len(recovered)

    def _probe_item_record(
        self,
        io_handle: IOHandle,
        offset: int,
        end_offset: int,
        recovered_index: int
    ) -> Optional[ItemDescriptor]:
        try:
            descriptor = scan_item_record(
                io_handle, offset, self._header.layout, end_offset,
                maximum_number_of_entries=RECOVERY_MAXIMUM_NUMBER_OF_ENTRIES,
                allow_unidentified=False
            )
            if descriptor is None:
                return None
            self._read_item(descriptor, recovered_index, recovered=True)
        except NK2Error:
            return None
        return descriptor

    def amount_of_recovered_items(self) -> int:
        if self._recovered_descriptors is None:
            self.recover_items()
        return len(self._recovered_descriptors)

    def get_recovered_item(self, item_index: int) -> Item:
        count = self.amount_of_recovered_items()
        self._check_item_index(item_index, count)
        try:
            return self._read_item(
                self._recovered_descriptors[item_index], item_index, recovered=True
            )
        except NK2Error as e:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.GET_FAILED,
                f"Unable to retrieve recovered item: {item_index}.", e
            )

    def recovered_items(self) -> Iterator[Item]:
        for item_index in range(self.amount_of_recovered_items()):
            yield self.get_recovered_item(item_index)

    def __repr__(self) -> str:
        return f"File(name={self.name!r}, state={self.state.name}, items={len(self._item_descriptors)})"


def open_file(
    source: SourceType,
    ascii_codepage: Optional[Union[int, str, Codepage]] = None
) -> File:
    """Open an NK2 file for reading."""
    nk2_file = File()
    if ascii_codepage is not None:
        nk2_file.set_ascii_codepage(ascii_codepage)
    nk2_file.open(source)
    return nk2_file


def check_file_signature(source: SourceType) -> bool:
    """Check whether a file starts with the NK2 signature."""
    io_handle = create_io_handle(source)
    io_handle.open()
    try:
        return io_handle.read_at(0, len(FILE_SIGNATURE)) == FILE_SIGNATURE
    finally:
        io_handle.close()
