"""Test configuration and fixtures for the NK2 Extractor test suite."""
import logging
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add the project root and this directory to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from nk2_builder import (  # noqa: E402
    NK2Builder, build_contacts_file, open_image, write_image,
)
from nk2_extractor.export import (  # noqa: E402
    CSVExporter, ExcelExporter, JSONExporter, TextExporter,
)

# --- Fixtures ---

@pytest.fixture
def contacts_builder() -> NK2Builder:
    """Builder holding ten typical aliases; alias 3 has a non-ASCII name."""
    return build_contacts_file(10)


@pytest.fixture
def contacts_image(contacts_builder) -> bytes:
    return contacts_builder.build()


@pytest.fixture
def contacts_path(tmp_path, contacts_image) -> Path:
    """Write the ten alias file to disk."""
    return write_image(tmp_path, contacts_image, 'Stream_Autocomplete.nk2')


@pytest.fixture
def contacts_file(contacts_image):
    """Open the ten alias file and close it after the test."""
    nk2_file = open_image(contacts_image)
    yield nk2_file
    nk2_file.close()


@pytest.fixture
def contact_items(contacts_file):
    return list(contacts_file.items())


# Exporters
@pytest.fixture
def text_exporter():
    """Return a TextExporter instance."""
    return TextExporter()


@pytest.fixture
def csv_exporter():
    """Return a CSVExporter instance."""
    return CSVExporter()


@pytest.fixture
def excel_exporter():
    """Return an ExcelExporter instance."""
    return ExcelExporter()


@pytest.fixture
def json_exporter():
    """Return a JSONExporter instance."""
    return JSONExporter()


@pytest.fixture
def temp_config():
    """Create a temporary config file for testing."""
    with tempfile.NamedTemporaryFile(mode='w+', suffix='.ini', delete=False) as f:
        f.write(
            "[nk2]\n"
            "ascii_codepage = koi8-r\n"
            "recover_items = 1\n"
            "\n"
            "[export]\n"
            "output_dir = output\n"
            "format = json\n"
            "dump_item_values = 0\n"
            "\n"
            "[logging]\n"
            "log_level = DEBUG\n"
            "log_file = test_nk2_extractor.log\n"
        )
        config_path = f.name

    yield config_path

    try:
        os.unlink(config_path)
    except OSError:
        pass


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo logging configuration and excepthook changes made by a test."""
    excepthook = sys.excepthook
    root_logger = logging.getLogger()
    package_logger = logging.getLogger('nk2_extractor')
    saved = {
        logger: (list(logger.handlers), logger.level, logger.propagate)
        for logger in (root_logger, package_logger)
    }
    yield
    sys.excepthook = excepthook
    for logger, (handlers, level, propagate) in saved.items():
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate
