"""
Export functionality for NK2 Extractor.

This package provides exporters that save aliases in different formats.
"""

from .alias_data import alias_to_dict, collect_aliases
from .csv_exporter import CSVExporter
from .excel_exporter import ExcelExporter
from .json_exporter import JSONExporter
from .text_exporter import TextExporter

EXPORTERS = {
    'text': TextExporter,
    'json': JSONExporter,
    'csv': CSVExporter,
    'excel': ExcelExporter,
}

__all__ = [
    'CSVExporter',
    'ExcelExporter',
    'JSONExporter',
    'TextExporter',
    'EXPORTERS',
    'alias_to_dict',
    'collect_aliases',
]
