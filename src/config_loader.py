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
# Filename: src/config_loader.py

"""
Configuration for llm-rewrite (config_loader.py)

Every module reads its settings through this one place. On import the module
locates `config.ini`, loads `.env`, and exposes the result as globals.

Lookup order for the INI file:
    1. An explicit path passed to `load_app_config()` (the CLI's --config_path).
    2. The file named by the `LLM_REWRITE_CONFIG` environment variable.
    3. `config.ini` in the project root (the directory holding pyproject.toml,
       or the working directory for an installed copy).

`.env` may hold API keys for the LLM CLI and `LLM_REWRITE_MODEL`. Variables it
sets are inherited by the CLI subprocess.

`get_config_value()` reads one typed value, ignoring trailing `;`/`#` comments
and falling back quietly when the value is absent or malformed.
`RewriteSettings.from_config()` gathers everything a rewrite needs.

Usage:
    from config_loader import APP_CONFIG, RewriteSettings, get_config_value

    settings = RewriteSettings.from_config(APP_CONFIG, model_override=args.model)
"""

import configparser
import os
import logging
import pathlib
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

CONFIG_FILENAME = "config.ini"
DOTENV_FILENAME = ".env"
CONFIG_OVERRIDE_ENV = "LLM_REWRITE_CONFIG"
MODEL_OVERRIDE_ENV = "LLM_REWRITE_MODEL"

DEFAULT_CLI_COMMAND = "llm"
DEFAULT_TEMP_MARKER = "llmtmp"
DEFAULT_ERROR_SUFFIX = ".llm-error.txt"
DEFAULT_LOCK_SUFFIX = ".llm-rewrite.lock"

# Imported before the CLI configures logging, so give this logger its own handler.
logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logger.addHandler(_handler)
    logger.setLevel(logging.INFO)


def get_project_root() -> str:
    """The nearest ancestor of this file holding pyproject.toml, else the CWD."""
    for candidate in pathlib.Path(__file__).resolve().parents:
        if (candidate / "pyproject.toml").is_file():
            return str(candidate)
    return os.getcwd()

PROJECT_ROOT = get_project_root()


def _resolve_config_path(config_path: Optional[str]) -> pathlib.Path:
    if config_path:
        logger.debug(f"Config: using explicit path {config_path}")
        return pathlib.Path(config_path)
    env_path = os.getenv(CONFIG_OVERRIDE_ENV)
    if env_path and pathlib.Path(env_path).is_file():
        logger.debug(f"Config: using {env_path} from ${CONFIG_OVERRIDE_ENV}")
        return pathlib.Path(env_path)
    return pathlib.Path(PROJECT_ROOT) / CONFIG_FILENAME


def load_app_config(config_path: Optional[str] = None) -> configparser.ConfigParser:
    """
    Reads the INI file chosen by the lookup order above.

    A missing or unparsable file leaves the parser empty, so every
    `get_config_value()` call returns its fallback.
    """
    parser = configparser.ConfigParser()
    path = _resolve_config_path(config_path)
    if not path.is_file():
        logger.debug(f"Config: {path} does not exist; built-in defaults apply.")
        return parser
    try:
        # 'utf-8-sig' tolerates a BOM left by Windows editors.
        parser.read(path, encoding='utf-8-sig')
        logger.debug(f"Config: loaded {path}")
    except configparser.Error as e:
        logger.error(f"Config: cannot parse {path}: {e}")
    return parser


def load_env_vars() -> bool:
    """Loads the first .env found in the project root or the CWD. Returns True on success."""
    candidates = [pathlib.Path(PROJECT_ROOT) / DOTENV_FILENAME, pathlib.Path.cwd() / DOTENV_FILENAME]
    dotenv_path = next((p for p in candidates if p.is_file()), None)
    if dotenv_path is None:
        logger.debug("No .env file; the LLM CLI will use its own key store or the environment.")
        return False
    if load_dotenv(dotenv_path):
        logger.debug(f"Loaded environment from {dotenv_path}")
        return True
    logger.warning(f"{dotenv_path} exists but set no variables.")
    return False


def _strip_inline_comment(raw_value: str) -> str:
    for marker in (';', '#'):
        raw_value = raw_value.split(marker, 1)[0]
    return raw_value.strip()


def get_config_value(config: configparser.ConfigParser, section: str, key: str,
                     fallback=None, value_type=str, fallback_key=None):
    """
    Reads `[section] key` as `value_type` (str, int, float or bool).

    `fallback_key` is consulted when `key` is absent. The fallback is returned
    for a missing section or key, and for a value that does not convert. A
    string value of "none" (any case) reads as None.
    """
    if not config.has_section(section):
        return fallback

    found_key = next((k for k in (key, fallback_key) if k and config.has_option(section, k)), None)
    if found_key is None:
        return fallback

    raw_value = config.get(section, found_key)
    value = _strip_inline_comment(raw_value)

    if value_type is str:
        return None if value.lower() == 'none' else value
    if value_type is bool:
        converted = configparser.ConfigParser.BOOLEAN_STATES.get(value.lower())
        if converted is None:
            logger.warning(f"Config: [{section}] {found_key} = '{raw_value}' is not a boolean; using {fallback!r}.")
            return fallback
        return converted
    if value_type in (int, float):
        try:
            return value_type(value)
        except ValueError:
            logger.warning(f"Config: [{section}] {found_key} = '{raw_value}' is not "
                           f"{value_type.__name__}; using {fallback!r}.")
            return fallback

    logger.error(f"Config: cannot read [{section}] {key} as {value_type.__name__}; using {fallback!r}.")
    return fallback


@dataclass(frozen=True)
class RewriteSettings:
    """All configurable knobs of a rewrite, resolved once per invocation."""
    cli_command: str = DEFAULT_CLI_COMMAND
    model_name: Optional[str] = None
    temp_marker: str = DEFAULT_TEMP_MARKER
    error_suffix: str = DEFAULT_ERROR_SUFFIX
    lock_suffix: str = DEFAULT_LOCK_SUFFIX
    open_command: Optional[str] = None
    default_log_level: str = "INFO"

    @classmethod
    def from_config(cls, config: configparser.ConfigParser, model_override: Optional[str] = None):
        """
        Builds settings from a loaded config.

        The model is taken from `model_override` (the --model flag), then the
        LLM_REWRITE_MODEL environment variable, then `[LLM] model_name`. An empty
        value means "let the LLM CLI use its own default model".
        """
        def read(section, key, default):
            return get_config_value(config, section, key, fallback=default) or default

        model_name = (model_override
                      or os.getenv(MODEL_OVERRIDE_ENV)
                      or get_config_value(config, 'LLM', 'model_name', fallback_key='model'))
        return cls(
            cli_command=read('LLM', 'cli_command', DEFAULT_CLI_COMMAND),
            model_name=model_name or None,
            temp_marker=read('Filenames', 'temp_marker', DEFAULT_TEMP_MARKER),
            error_suffix=read('Filenames', 'error_suffix', DEFAULT_ERROR_SUFFIX),
            lock_suffix=read('Filenames', 'lock_suffix', DEFAULT_LOCK_SUFFIX),
            open_command=read('Editor', 'open_command', None),
            default_log_level=read('General', 'default_log_level', 'INFO'),
        )

# Global config object, loaded once
APP_CONFIG = load_app_config()
ENV_LOADED = load_env_vars()

# === End of src/config_loader.py ===
