#!/usr/bin/env python3
#-*- coding: utf-8 -*-
#
# LLM Rewrite: In-Place File Transformation Through an LLM CLI
# Copyright (C) 2025 Peter J. Marko
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
# Filename: tests/test_config_loader.py

import pytest
from configparser import ConfigParser

from config_loader import (DEFAULT_CLI_COMMAND, DEFAULT_ERROR_SUFFIX, DEFAULT_LOCK_SUFFIX,
                           DEFAULT_TEMP_MARKER, RewriteSettings, get_config_value,
                           load_app_config)

# A valid config content for happy path testing
VALID_CONFIG_CONTENT = """
[General]
default_log_level = DEBUG

[LLM]
cli_command = llm --no-stream  ; streaming off for slow terminals
model_name = gpt-4o-mini

[Filenames]
temp_marker = draft
lock_suffix = .busy

[Editor]
open_command = code --goto {path}:{line}
"""


@pytest.fixture
def mock_config_file(tmp_path):
    """A fixture to create a temporary config file for testing."""
    def _create_file(content):
        config_path = tmp_path / "config.ini"
        config_path.write_text(content)
        return str(config_path)
    return _create_file


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("LLM_REWRITE_MODEL", raising=False)
    monkeypatch.delenv("LLM_REWRITE_CONFIG", raising=False)


def _parse(content):
    config = ConfigParser()
    config.read_string(content)
    return config


def test_get_config_value_happy_path(mock_config_file):
    """
    Tests the get_config_value helper with correct types.
    """
    config = load_app_config(mock_config_file("[General]\nretries = 3\n\n[LLM]\nmodel_name = gpt-4o\n"))

    retries = get_config_value(config, 'General', 'retries', value_type=int)
    assert retries == 3
    assert isinstance(retries, int)

    model = get_config_value(config, 'LLM', 'model_name', value_type=str)
    assert model == 'gpt-4o'


def test_get_config_value_strips_inline_comments():
    config = _parse(VALID_CONFIG_CONTENT)
    assert get_config_value(config, 'LLM', 'cli_command') == 'llm --no-stream'


def test_get_config_value_fallback():
    config = _parse("[General]\nkey = value")
    assert get_config_value(config, 'General', 'missing_key', fallback=123) == 123


def test_get_config_value_fallback_key():
    config = _parse("[LLM]\nmodel = gpt-4o")
    assert get_config_value(config, 'LLM', 'model_name', fallback_key='model') == 'gpt-4o'


def test_get_config_value_missing_section():
    """
    Tests that None is returned when a section is missing and no fallback is provided.
    """
    config = _parse("[General]\nkey = value")
    assert get_config_value(config, 'MissingSection', 'some_key') is None


def test_get_config_value_invalid_type():
    """
    Tests that None is returned for incorrect data types when no fallback is provided.
    """
    config = _parse("[General]\nnum = not_a_number")
    assert get_config_value(config, 'General', 'num', value_type=int) is None


def test_get_config_value_none_string():
    config = _parse("[LLM]\nmodel_name = None")
    assert get_config_value(config, 'LLM', 'model_name', fallback='x') is None


def test_settings_defaults_from_empty_config():
    settings = RewriteSettings.from_config(ConfigParser())

    assert settings.cli_command == DEFAULT_CLI_COMMAND
    assert settings.model_name is None
    assert settings.temp_marker == DEFAULT_TEMP_MARKER
    assert settings.error_suffix == DEFAULT_ERROR_SUFFIX
    assert settings.lock_suffix == DEFAULT_LOCK_SUFFIX
    assert settings.open_command is None


def test_settings_read_from_config():
    settings = RewriteSettings.from_config(_parse(VALID_CONFIG_CONTENT))

    assert settings.cli_command == 'llm --no-stream'
    assert settings.model_name == 'gpt-4o-mini'
    assert settings.temp_marker == 'draft'
    assert settings.error_suffix == DEFAULT_ERROR_SUFFIX
    assert settings.lock_suffix == '.busy'
    assert settings.open_command == 'code --goto {path}:{line}'
    assert settings.default_log_level == 'DEBUG'


def test_empty_values_fall_back_to_defaults():
    settings = RewriteSettings.from_config(_parse("[LLM]\ncli_command =\nmodel_name =\n"))
    assert settings.cli_command == DEFAULT_CLI_COMMAND
    assert settings.model_name is None


def test_model_precedence(monkeypatch):
    config = _parse(VALID_CONFIG_CONTENT)

    monkeypatch.setenv("LLM_REWRITE_MODEL", "claude-3-haiku")
    assert RewriteSettings.from_config(config).model_name == 'claude-3-haiku'
    assert RewriteSettings.from_config(config, model_override='gpt-4o').model_name == 'gpt-4o'


def test_load_app_config_from_environment_override(mock_config_file, monkeypatch):
    monkeypatch.setenv("LLM_REWRITE_CONFIG", mock_config_file(VALID_CONFIG_CONTENT))

    config = load_app_config()

    assert get_config_value(config, 'Filenames', 'temp_marker') == 'draft'


def test_load_app_config_missing_file_is_empty(tmp_path):
    config = load_app_config(str(tmp_path / "absent.ini"))
    assert config.sections() == []

# === End of tests/test_config_loader.py ===
