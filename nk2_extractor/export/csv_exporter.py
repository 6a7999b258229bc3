"""CSV export functionality for NK2 Extractor.

This module writes one row per alias with the common address fields, and
can write a second report summarizing which entry types occur in a file.
"""
import csv
import logging
from pathlib import Path
from threading import Event
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pandas as pd

from .. import constants
from ..item import Item
from .alias_data import alias_to_dict, entry_to_dict

logger = logging.getLogger(__name__)


class CSVExporter:
    """Handles the export of alias data to CSV format."""

    def __init__(self, config: Optional[dict] = None):
        """Initialize the CSV exporter.

        Args:
            config: Optional configuration dictionary
        """
        self.config = config or {}
        self._setup_field_formatters()

    def _setup_field_formatters(self) -> None:
        """Set up field formatters for CSV export."""
        self._field_formatters = {}

        type_formatters = {
            'string': str,
            'number': str,
            'boolean': lambda x: str(x).lower(),
        }

        for field in constants.EXPORT_FIELDS_V1:
            field_id = field['id']
            field_type = field.get('type', 'string')
            self._field_formatters[field_id] = type_formatters.get(field_type, str)

        self.fields = [field['id'] for field in constants.EXPORT_FIELDS_V1]

    def export_items(
        self,
        items: List[Item],
        output_path: Union[str, Path],
        include_headers: bool = True,
        encoding: str = 'utf-8-sig',  # BOM for Excel
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_event: Optional[Event] = None
    ) -> Tuple[bool, str]:
        """Export aliases to a CSV file.

        Args:
            items: Items to export
            output_path: Path to the output CSV file
            include_headers: Whether to include headers in the CSV
            encoding: File encoding to use
            progress_callback: Optional callback function(processed: int, total: int)
            cancel_event: Optional threading.Event to cancel the export

        Returns:
            Tuple[bool, str]: (success, message) - success status and message
        """
        if not items:
            msg = "No aliases to export"
            logger.warning(msg)
            return False, msg

        output_path = Path(output_path)
        total_items = len(items)
        processed = 0
        temp_path = output_path.with_suffix('.tmp' + output_path.suffix)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)

            with temp_path.open('w', newline='', encoding=encoding) as f:
                writer = csv.DictWriter(f, fieldnames=self.fields)

                if include_headers:
                    writer.writerow({
                        field['id']: field.get('name', field['id'])
                        for field in constants.EXPORT_FIELDS_V1
                    })

                for item in items:
                    if cancel_event and cancel_event.is_set():
                        msg = "Export cancelled by user"
                        logger.info(msg)
                        f.close()
                        temp_path.unlink()
                        return False, msg

                    writer.writerow(self._format_alias_row(alias_to_dict(item, include_entries=False)))
                    processed += 1
                    if progress_callback and (processed % 10 == 0 or processed == total_items):
                        progress_callback(processed, total_items)

            temp_path.replace(output_path)

            msg = f"Successfully exported {processed} of {total_items} aliases to {output_path}"
            logger.info(msg)
            return True, msg

        except (OSError, csv.Error) as e:
            error_msg = f"Error exporting aliases: {str(e)}"
            logger.error(error_msg, exc_info=True)

            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as cleanup_error:
                    logger.error(f"Failed to clean up temp file: {cleanup_error}")

            return False, error_msg

    def _format_alias_row(self, alias: Dict[str, Any]) -> Dict[str, str]:
        formatted = {}
        for field in self.fields:
            value = alias.get(field)
            formatter = self._field_formatters.get(field, str)
            formatted[field] = formatter(value) if value is not None else ''
        return formatted

    def export_entry_summary(
        self,
        items: List[Item],
        output_path: Union[str, Path]
    ) -> str:
        """Write how often each entry and value type combination occurs.

        Returns:
            The path of the written report
        """
        rows = [
            entry_to_dict(item, entry_index)
            for item in items
            for entry_index in range(item.amount_of_entries())
        ]
        columns = ['entry_type', 'property_name', 'value_type', 'value_type_identifier']
        df = pd.DataFrame(rows, columns=columns + ['alias_index'])

        summary = (
            df.groupby(columns, dropna=False)
            .agg(count=('alias_index', 'size'), aliases=('alias_index', 'nunique'))
            .reset_index()
            .sort_values(['count', 'entry_type'], ascending=[False, True])
        )
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        summary.to_csv(output_path, index=False)

        logger.info(f"Entry summary exported to {output_path}")
        return str(output_path)
