#!/usr/bin/env python3
"""Command-line interface for NK2 Extractor.

This module provides a command-line interface for showing information about
Outlook nickname cache (NK2) files and exporting their aliases to various
formats.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from nk2_extractor import __version__
from nk2_extractor.codepage import get_codepage
from nk2_extractor.config import ConfigManager
from nk2_extractor.constants import EncryptionType, UnallocatedBlockType
from nk2_extractor.errors import NK2Error, error_backtrace_sprint
from nk2_extractor.export import EXPORTERS, collect_aliases
from nk2_extractor.file import File
from nk2_extractor.logging_config import LogErrors, get_logger, setup_logging

logger = get_logger('cli')

EXPORT_EXTENSIONS = {
    'json': '.json',
    'csv': '.csv',
    'excel': '.xlsx',
}


class CLIApp:
    """Command-line application for NK2 Extractor."""

    def __init__(self, stdout: Optional[TextIO] = None):
        """Initialize the CLI application.

        Args:
            stdout: Stream for command output, defaults to sys.stdout
        """
        self.parser = self._create_parser()
        self.args = None
        self.config: Optional[ConfigManager] = None
        self.stdout = stdout or sys.stdout

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create and configure the argument parser."""
        parser = argparse.ArgumentParser(
            prog='nk2-extractor',
            description='Show information about and export aliases from Outlook NK2 files.'
        )

        parser.add_argument(
            '-v', '--version',
            action='version',
            version=f'%(prog)s {__version__}'
        )

        # Configuration options
        config_group = parser.add_argument_group('Configuration')
        config_group.add_argument(
            '-c', '--codepage',
            type=str,
            help='Codepage of 8-bit strings, e.g. windows-1252 or koi8-r '
                 '(default: from configuration, windows-1252)'
        )
        config_group.add_argument(
            '--config',
            type=str,
            help='Path to configuration file (INI, YAML or JSON)'
        )

        # Debug options
        debug_group = parser.add_argument_group('Debugging')
        debug_group.add_argument(
            '--debug',
            action='store_true',
            help='Enable debug logging'
        )
        debug_group.add_argument(
            '--log-file',
            type=str,
            help='Write a JSON log to this file'
        )

        subparsers = parser.add_subparsers(dest='command', metavar='command')
        subparsers.required = True

        info_parser = subparsers.add_parser('info', help='Show information about an NK2 file')
        info_parser.add_argument('source', type=str, help='NK2 file')
        info_parser.add_argument(
            '--unallocated',
            action='store_true',
            help='List unallocated blocks'
        )

        export_parser = subparsers.add_parser('export', help='Export aliases from an NK2 file')
        export_parser.add_argument('source', type=str, help='NK2 file')
        export_parser.add_argument(
            '-f', '--format',
            choices=sorted(EXPORTERS),
            help='Output format (default: from configuration, text)'
        )
        export_parser.add_argument(
            '-o', '--output',
            type=str,
            help='Output directory for text, output file for the other formats '
                 '(default: derived from the configured output directory)'
        )
        export_parser.add_argument(
            '-r', '--recover',
            action='store_true',
            help='Also export items recovered from unallocated space'
        )

        return parser

    def _load_config(self) -> None:
        """Load configuration from file and command line arguments."""
        self.config = ConfigManager(self.args.config)
        if self.args.codepage:
            self.config.set('nk2', 'ascii_codepage', self.args.codepage)
        if self.args.debug:
            self.config.set('logging', 'log_level', 'DEBUG')
        if self.args.log_file:
            self.config.set('logging', 'log_file', self.args.log_file)

    def _open_file(self) -> Optional[File]:
        codepage = self.config.get_ascii_codepage()
        if self.args.codepage:
            try:
                codepage = get_codepage(self.args.codepage)
            except NK2Error as e:
                logger.error(f"Unsupported codepage: {self.args.codepage}\n{error_backtrace_sprint(e.chain)}")
                return None

        nk2_file = File(ascii_codepage=codepage)
        try:
            nk2_file.open(self.args.source)
        except NK2Error as e:
            logger.error(f"Unable to open: {self.args.source}\n{error_backtrace_sprint(e.chain)}")
            return None
        return nk2_file

    def _print(self, text: str = '') -> None:
        self.stdout.write(text + '\n')

    def _run_info(self) -> int:
        nk2_file = self._open_file()
        if nk2_file is None:
            return 1

        with nk2_file:
            modification_time = nk2_file.get_modification_datetime()
            encryption_type, encryption_key = nk2_file.get_encryption_values()

            self._print("Nickfile information:")
            self._print(
                f"\tLast modification time\t: "
                f"{modification_time.strftime('%b %d, %Y %H:%M:%S.%f')} UTC"
            )
            self._print(f"\tNumber of aliases\t: {nk2_file.amount_of_items()}")
            self._print(f"\tFormat version\t\t: 0x{nk2_file.get_format_version():02x}")
            self._print(f"\tFile type\t\t: {nk2_file.get_type().value}-bit")
            self._print(f"\tContent type\t\t: {nk2_file.get_content_type().name}")
            if encryption_type == EncryptionType.NONE:
                self._print("\tEncryption\t\t: none")
            else:
                self._print(
                    f"\tEncryption\t\t: {encryption_type.name.lower()} (key: 0x{encryption_key:08x})"
                )
            if nk2_file.scan_errors:
                self._print(f"\tScan errors\t\t: {len(nk2_file.scan_errors)}")
            self._print()

            if self.args.unallocated:
                for block_type in UnallocatedBlockType:
                    count = nk2_file.amount_of_unallocated_blocks(block_type)
                    self._print(f"Unallocated {block_type.name.lower().replace('_', ' ')} blocks:")
                    for block_index in range(count):
                        block = nk2_file.get_unallocated_block(block_type, block_index)
                        self._print(
                            f"\t{block_index}: offset: 0x{block.offset:08x} "
                            f"size: {block.size}"
                        )
                    if count == 0:
                        self._print("\tNone")
                    self._print()
        return 0

    def _default_output(self, export_format: str) -> Path:
        output_dir = Path(self.config.get_output_dir())
        stem = Path(self.args.source).stem or 'nk2'
        if export_format == 'text':
            return output_dir / stem
        return output_dir / f"{stem}{EXPORT_EXTENSIONS[export_format]}"

    def _run_export(self) -> int:
        export_format = self.args.format or self.config.get('export', 'format', 'text')
        if export_format not in EXPORTERS:
            logger.error(f"Unsupported export format: {export_format}")
            return 1
        include_recovered = (
            self.args.recover or self.config.get_boolean('nk2', 'recover_items', False)
        )

        nk2_file = self._open_file()
        if nk2_file is None:
            return 1

        with nk2_file:
            items = collect_aliases(nk2_file, include_recovered=include_recovered)
            source = {
                'filename': nk2_file.name,
                'number_of_aliases': nk2_file.amount_of_items(),
                'modification_time': nk2_file.get_modification_datetime().isoformat(),
            }

        output = Path(self.args.output) if self.args.output else self._default_output(export_format)
        exporter_config = {
            'dump_item_values': self.config.get_boolean('export', 'dump_item_values', True),
        }
        exporter = EXPORTERS[export_format](exporter_config)

        logger.info(f"Exporting {len(items)} aliases to {output} as {export_format}")
        if export_format == 'json':
            success, msg = exporter.export_items(
                items, output,
                pretty_print=self.config.get_boolean('export', 'json_pretty_print', True),
                source=source
            )
        else:
            success, msg = exporter.export_items(items, output)

        if not success:
            logger.error(msg)
            return 1
        self._print(msg)
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI application.

        Args:
            argv: Command line arguments, defaults to sys.argv[1:]

        Returns:
            Process exit code
        """
        self.args = self.parser.parse_args(argv)
        self._load_config()

        setup_logging(
            log_level=self.config.get('logging', 'log_level', 'INFO'),
            log_file=self.config.get_log_file()
        )
        logger.debug(f"Command line arguments: {self.args}")

        with LogErrors(logger, f"Command {self.args.command} failed"):
            if self.args.command == 'info':
                return self._run_info()
            return self._run_export()


def main() -> None:
    """Entry point for the CLI application."""
    try:
        app = CLIApp()
        sys.exit(app.run())
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
