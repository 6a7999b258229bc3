"""Tests for the configuration management system."""
import json
import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

# Add the project root to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from nk2_extractor import config as config_module
from nk2_extractor.codepage import Codepage
from nk2_extractor.config import ConfigManager, get_config, load_config

# Sample config content for testing
SAMPLE_CONFIG = """
[nk2]
ascii_codepage = windows-1251
recover_items = True

[export]
output_dir = nk2_export
format = csv
fields = display_name, email_address,smtp_address
"""


@pytest.fixture
def temp_config(tmp_path):
    """Create a temporary config file for testing."""
    config_path = tmp_path / "test_config.ini"
    with open(config_path, 'w') as f:
        f.write(SAMPLE_CONFIG)
    return str(config_path)


@pytest.fixture
def reset_shared_config():
    """Give each test a fresh shared configuration instance."""
    with patch.object(config_module, '_config', None):
        yield


def test_config_loading(temp_config):
    """Test that config loads correctly from file."""
    config = ConfigManager(temp_config)
    assert config.get('export', 'format') == 'csv'
    assert config.get('export', 'output_dir') == 'nk2_export'
    assert config.get_boolean('nk2', 'recover_items') is True


def test_config_defaults():
    """Test that default values are set correctly."""
    with patch('os.path.exists', return_value=False):
        config = ConfigManager('missing.ini')
    assert config.get('nk2', 'ascii_codepage') == 'windows-1252'
    assert config.get_boolean('nk2', 'recover_items') is False
    assert config.get('export', 'format') == 'text'
    assert config.get_boolean('export', 'dump_item_values') is True
    assert config.get('logging', 'log_level') == 'INFO'
    assert config.get_log_file() is None


def test_config_get_list(temp_config):
    """Test getting a list from config."""
    config = ConfigManager(temp_config)
    fields = config.get_list('export', 'fields')
    assert fields == ['display_name', 'email_address', 'smtp_address']
    assert config.get_list('nonexistent', 'nonexistent', ['default']) == ['default']


def test_config_get_int_and_boolean_fallbacks(temp_config):
    config = ConfigManager(temp_config)
    assert config.get_int('nonexistent', 'nonexistent', 42) == 42
    assert config.get_int('export', 'format', 7) == 7
    assert config.get_boolean('nonexistent', 'nonexistent', True) is True
    assert config.get_boolean('export', 'format', False) is False


def test_config_get_ascii_codepage(temp_config):
    config = ConfigManager(temp_config)
    assert config.get_ascii_codepage() == Codepage.WINDOWS_1251

    config.set('nk2', 'ascii_codepage', '28605')
    assert config.get_ascii_codepage() == Codepage.ISO_8859_15


def test_config_unsupported_codepage_falls_back(temp_config, caplog):
    """An unknown codepage is reported and Windows-1252 is used."""
    config = ConfigManager(temp_config)
    config.set('nk2', 'ascii_codepage', 'ebcdic')
    with caplog.at_level('WARNING', logger='nk2_extractor'):
        assert config.get_ascii_codepage() == Codepage.WINDOWS_1252
    assert 'ebcdic' in caplog.text


def test_config_yaml_and_json(tmp_path):
    yaml_path = tmp_path / 'config.yaml'
    with open(yaml_path, 'w') as f:
        yaml.dump({'nk2': {'ascii_codepage': 'koi8-r', 'recover_items': True},
                   'export': {'format': 'excel'}}, f)
    config = ConfigManager(str(yaml_path))
    assert config.get_ascii_codepage() == Codepage.KOI8_R
    assert config.get_boolean('nk2', 'recover_items') is True
    assert config.get('export', 'format') == 'excel'
    # Untouched defaults survive
    assert config.get('export', 'output_dir') == 'export'

    json_path = tmp_path / 'config.json'
    json_path.write_text(json.dumps({'logging': {'log_level': 'DEBUG', 'log_file': None}}))
    config = ConfigManager(str(json_path))
    assert config.get('logging', 'log_level') == 'DEBUG'
    assert config.get_log_file() is None


def test_config_invalid_file_is_reported(tmp_path):
    yaml_path = tmp_path / 'broken.yaml'
    yaml_path.write_text("- just\n- a list\n")
    config = ConfigManager()
    assert config.load_config(str(yaml_path)) is False
    assert config.get('export', 'format') == 'text'


def test_config_save(temp_config, tmp_path):
    """Test saving config to a new file."""
    config = ConfigManager(temp_config)
    config.set('export', 'json_pretty_print', False)
    new_path = str(tmp_path / "saved" / "new_config.ini")
    assert config.save_config(new_path) is True
    assert os.path.exists(new_path)

    new_config = ConfigManager(new_path)
    assert new_config.get('export', 'format') == 'csv'
    assert new_config.get_boolean('export', 'json_pretty_print', True) is False


def test_get_output_dir_creates_directory(tmp_path):
    config = ConfigManager()
    config.set('export', 'output_dir', str(tmp_path / 'out'))
    output_dir = config.get_output_dir()
    assert os.path.isdir(output_dir)
    assert os.path.isabs(output_dir)


def test_get_config_singleton(temp_config, reset_shared_config):
    """Test that get_config returns a singleton instance."""
    config1 = get_config(temp_config)
    config2 = get_config(temp_config)
    assert config1 is config2
    assert config1.get('export', 'format') == 'csv'


def test_load_config_returns_new_instance(temp_config, reset_shared_config):
    assert load_config(temp_config) is not load_config(temp_config)
