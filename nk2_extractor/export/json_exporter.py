"""JSON export functionality for NK2 Extractor.

This module exports aliases with all their entries to JSON, with support for
pretty-printing and custom serialization.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Event
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..item import Item
from .alias_data import alias_to_dict
from .constants import EXPORT_FIELD_IDS

logger = logging.getLogger(__name__)


class JSONExporter:
    """Handles the export of alias data to JSON format."""

    def __init__(self, config: Optional[dict] = None):
        """Initialize the JSON exporter.

        Args:
            config: Optional configuration dictionary
        """
        self.config = config or {}
        self.fields = EXPORT_FIELD_IDS

    def _build_export_data(
        self,
        items: List[Item],
        include_metadata: bool,
        source: Optional[Dict[str, Any]],
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_event: Optional[Event] = None
    ) -> Optional[Dict[str, Any]]:
        export_data = {
            'metadata': {
                'export_date': datetime.now(timezone.utc).isoformat(),
                'format': 'json',
                'version': '1.0',
                'record_count': len(items),
                'fields': self.fields,
                'source': source or {},
            } if include_metadata else None,
            'aliases': []
        }
        for item in items:
            if cancel_event and cancel_event.is_set():
                return None
            export_data['aliases'].append(alias_to_dict(item))
            if progress_callback and (len(export_data['aliases']) % 10 == 0 or
                                      len(export_data['aliases']) == len(items)):
                progress_callback(len(export_data['aliases']), len(items))
        return export_data

    def export_items(
        self,
        items: List[Item],
        output_path: Union[str, Path],
        pretty_print: bool = True,
        include_metadata: bool = True,
        source: Optional[Dict[str, Any]] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_event: Optional[Event] = None
    ) -> Tuple[bool, str]:
        """Export aliases to a JSON file.

        Args:
            items: Items to export
            output_path: Path to the output JSON file
            pretty_print: Whether to format the JSON with indentation
            include_metadata: Whether to include export metadata
            source: Optional file information added to the metadata
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

        try:
            export_data = self._build_export_data(
                items, include_metadata, source, progress_callback, cancel_event
            )
            if export_data is None:
                msg = "Export cancelled by user"
                logger.info(msg)
                return False, msg

            output_path.parent.mkdir(parents=True, exist_ok=True)
            # Write to temporary file first
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(
                    export_data,
                    f,
                    indent=2 if pretty_print else None,
                    ensure_ascii=False,
                    default=self._json_serializer
                )

            # Rename temp file to final name
            temp_path.replace(output_path)

            msg = f"Successfully exported {len(items)} aliases to {output_path}"
            logger.info(msg)
            return True, msg

        except (OSError, TypeError, ValueError) as e:
            error_msg = f"Error exporting to JSON: {str(e)}"
            logger.error(error_msg, exc_info=True)

            # Clean up temp file if it exists
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as cleanup_error:
                    logger.error(f"Failed to clean up temp file: {cleanup_error}")

            return False, error_msg

    @staticmethod
    def _json_serializer(obj: Any) -> Any:
        """Custom JSON serializer for non-serializable objects."""
        if isinstance(obj, bytes):
            return obj.hex()
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, '__str__'):
            return str(obj)
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

    def export_to_string(
        self,
        items: List[Item],
        pretty_print: bool = True,
        include_metadata: bool = True
    ) -> str:
        """Export aliases to a JSON string.

        Returns:
            JSON string containing the exported data
        """
        export_data = self._build_export_data(items, include_metadata, None)
        return json.dumps(
            export_data,
            indent=2 if pretty_print else None,
            ensure_ascii=False,
            default=self._json_serializer
        )
