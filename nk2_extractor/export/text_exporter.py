"""Text export of alias values.

Every alias gets its own directory named after its item index
(``Alias00001`` for item 0, ``RecoveredAlias00001`` for recovered item 0)
holding an ``ItemValues.txt`` file that lists each entry with a hexdump of
its value.
"""
import logging
from pathlib import Path
from threading import Event
from typing import Callable, Iterable, Optional, TextIO, Tuple, Union

from ..errors import NK2Error, error_sprint
from ..item import Item
from . import constants

logger = logging.getLogger(__name__)


def sanitize_filename(name: str) -> str:
    """Replace control and reserved characters in a file name with '_'."""
    return ''.join(
        '_' if ord(character) < 0x20 or ord(character) == 0x7f
        or character in constants.UNSAFE_FILENAME_CHARACTERS
        else character
        for character in name
    )


def format_hexdump(data: bytes) -> str:
    """Hexdump with 16 bytes per line: offset, hex bytes and printable text."""
    lines = []
    for offset in range(0, len(data), 16):
        chunk = data[offset:offset + 16]
        hex_bytes = ' '.join(f'{byte:02x}' for byte in chunk[:8])
        if len(chunk) > 8:
            hex_bytes += '  ' + ' '.join(f'{byte:02x}' for byte in chunk[8:])
        text = ''.join(
            chr(byte) if byte in constants.HEXDUMP_PRINTABLE else '.'
            for byte in chunk
        )
        lines.append(f'{offset:08x}: {hex_bytes:<48}  {text}\n')
    return ''.join(lines) + '\n'


class TextExporter:
    """Writes alias values as text files in a directory tree."""

    def __init__(self, config: Optional[dict] = None):
        """Initialize the text exporter.

        Args:
            config: Optional configuration dictionary
        """
        self.config = config or {}
        self.dump_item_values = self.config.get('dump_item_values', True)

    def write_item_values(self, item: Item, stream: TextIO) -> None:
        stream.write(f"Number of entries:\t{item.amount_of_entries()}\n")
        for entry_index, entry in enumerate(item):
            stream.write(f"Entry:\t\t\t{entry_index}\n")
            stream.write(f"Entry type:\t\t0x{entry.entry_type:08x}\n")
            stream.write(f"Value type:\t\t0x{entry.value_type:08x}\n")
            stream.write("Value:\n")
            stream.write(format_hexdump(entry.get_data()))

    def alias_directory_name(self, item: Item, position: int) -> str:
        """Directory name of an alias, numbered from its item index plus one.

        Recovered items get their own prefix so they never share a name with
        a live alias. Items without an index fall back to their 1-based
        position in the export.
        """
        prefix = (
            constants.RECOVERED_ALIAS_DIRECTORY_PREFIX if item.recovered
            else constants.ALIAS_DIRECTORY_PREFIX
        )
        alias_number = position if item.index is None else item.index + 1
        return sanitize_filename(f"{prefix}{alias_number:05d}")

    def export_alias(self, item: Item, directory_name: str, target: Union[str, Path]) -> bool:
        """Export one alias into the named directory below target.

        Returns:
            bool: False when the alias directory already exists and was skipped
        """
        alias_path = Path(target) / directory_name
        logger.info(f"Processing alias: {directory_name} in path: {target}")
        if alias_path.exists():
            logger.info(f"Skipping alias directory: {alias_path} it already exists.")
            return False
        alias_path.mkdir(parents=True)
        logger.debug(f"Created directory: {alias_path}.")

        if self.dump_item_values:
            values_path = alias_path / constants.ITEM_VALUES_FILENAME
            with open(values_path, 'w', encoding='utf-8', newline='\n') as f:
                self.write_item_values(item, f)
        return True

    def export_items(
        self,
        items: Iterable[Item],
        target: Union[str, Path],
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_event: Optional[Event] = None
    ) -> Tuple[bool, str]:
        """Export aliases to a directory.

        Args:
            items: Items to export; directories are numbered by item index
            target: Export directory, created when missing
            progress_callback: Optional callback for progress updates
            cancel_event: Optional event to cancel the export

        Returns:
            Tuple[bool, str]: (success, message) - success status and message
        """
        items = list(items)
        if not items:
            msg = "No aliases to export"
            logger.warning(msg)
            return False, msg

        target = Path(target)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Unable to make directory: {target}: {e}"
            logger.error(msg)
            return False, msg

        exported = 0
        for position, item in enumerate(items, 1):
            if cancel_event and cancel_event.is_set():
                msg = "Export cancelled by user"
                logger.info(msg)
                return False, msg
            try:
                directory_name = self.alias_directory_name(item, position)
                if self.export_alias(item, directory_name, target):
                    exported += 1
            except NK2Error as e:
                logger.error(
                    f"Unable to export alias {position}:\n{error_sprint(e.chain)}"
                )
            except OSError as e:
                logger.error(f"Unable to export alias {position}: {e}")
            if progress_callback:
                progress_callback(position, len(items))

        msg = f"Exported {exported} of {len(items)} aliases to {target}"
        logger.info(msg)
        return True, msg
