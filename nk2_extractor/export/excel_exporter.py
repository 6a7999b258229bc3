"""Excel export functionality for NK2 Extractor.

This module exports aliases to an XLSX workbook with an "Aliases" sheet
(one row per alias) and an "Entries" sheet (one row per entry).
"""
import logging
from pathlib import Path
from threading import Event
from typing import Any, Callable, List, Optional, Tuple, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .. import constants
from ..item import Item
from .alias_data import alias_to_dict
from .constants import ENTRY_FIELDS

logger = logging.getLogger(__name__)

# Excel cells hold at most 32767 characters
MAXIMUM_CELL_LENGTH = 32767


class ExcelExporter:
    """Handles the export of alias data to Excel format."""

    def __init__(self, config: Optional[dict] = None):
        """Initialize the Excel exporter.

        Args:
            config: Optional configuration dictionary
        """
        self.config = config or {}
        self.fields = [field['id'] for field in constants.EXPORT_FIELDS_V1]
        self._setup_styles()

    def _setup_styles(self) -> None:
        """Initialize Excel styles."""
        thin = Side(style='thin')
        self.styles = {
            'header': {
                'font': Font(bold=True, color='FFFFFF'),
                'fill': PatternFill(start_color='4F81BD', end_color='4F81BD', fill_type='solid'),
                'alignment': Alignment(horizontal='center', vertical='center', wrap_text=True),
                'border': Border(left=thin, right=thin, top=thin, bottom=thin),
            },
            'data': {
                'alignment': Alignment(vertical='top', wrap_text=True),
            },
        }

    def _write_header(self, worksheet, names: List[str]) -> None:
        for col_num, name in enumerate(names, 1):
            cell = worksheet.cell(row=1, column=col_num, value=name)
            cell.font = self.styles['header']['font']
            cell.fill = self.styles['header']['fill']
            cell.alignment = self.styles['header']['alignment']
            cell.border = self.styles['header']['border']
        worksheet.freeze_panes = 'A2'

    @staticmethod
    def _cell_value(value: Any) -> Any:
        if value is None:
            return ''
        if isinstance(value, list):
            value = '; '.join(str(element) for element in value)
        if isinstance(value, str) and len(value) > MAXIMUM_CELL_LENGTH:
            return value[:MAXIMUM_CELL_LENGTH]
        return value

    def export_items(
        self,
        items: List[Item],
        output_path: Union[str, Path],
        include_entries: bool = True,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_event: Optional[Event] = None
    ) -> Tuple[bool, str]:
        """Export aliases to an Excel file.

        Args:
            items: Items to export
            output_path: Path to the output Excel file
            include_entries: Whether to add the "Entries" worksheet
            progress_callback: Optional callback for progress updates
            cancel_event: Optional event to cancel the export

        Returns:
            Tuple[bool, str]: (success, message) - success status and message
        """
        if not items:
            msg = "No aliases to export"
            logger.warning(msg)
            return False, msg

        output_path = Path(output_path)
        temp_path = output_path.with_suffix('.tmp' + output_path.suffix)
        total_items = len(items)

        try:
            wb = Workbook()
            if 'Sheet' in wb.sheetnames:
                wb.remove(wb['Sheet'])

            ws_aliases = wb.create_sheet("Aliases")
            self._write_header(ws_aliases, [
                field.get('name', field['id']) for field in constants.EXPORT_FIELDS_V1
            ])
            ws_entries = None
            if include_entries:
                ws_entries = wb.create_sheet("Entries")
                self._write_header(
                    ws_entries, [name.replace('_', ' ').title() for name in ENTRY_FIELDS]
                )

            for processed, item in enumerate(items, 1):
                if cancel_event and cancel_event.is_set():
                    return False, "Export cancelled by user"

                alias = alias_to_dict(item, include_entries=include_entries)
                ws_aliases.append([self._cell_value(alias.get(field)) for field in self.fields])
                if ws_entries is not None:
                    for entry in alias['entries']:
                        ws_entries.append(
                            [self._cell_value(entry.get(field)) for field in ENTRY_FIELDS]
                        )
                if progress_callback:
                    progress_callback(processed, total_items)

            self._auto_size_columns(ws_aliases)
            if ws_entries is not None:
                self._auto_size_columns(ws_entries)

            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(temp_path)
            temp_path.replace(output_path)

            msg = f"Successfully exported {total_items} aliases to {output_path}"
            logger.info(msg)
            return True, msg

        except OSError as e:
            error_msg = f"Error exporting to Excel: {str(e)}"
            logger.error(error_msg, exc_info=True)

            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as cleanup_error:
                    logger.error(f"Failed to clean up temp file: {cleanup_error}")

            return False, error_msg

    def _auto_size_columns(self, worksheet) -> None:
        """Auto-size columns in the worksheet."""
        for column in worksheet.columns:
            column_letter = get_column_letter(column[0].column)
            max_length = max(
                (len(str(cell.value)) for cell in column if cell.value is not None),
                default=0
            )
            adjusted_width = (max_length + 2) * 1.2
            worksheet.column_dimensions[column_letter].width = min(50, max(10, adjusted_width))
