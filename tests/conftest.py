#!/usr/bin/env python3
# -*- coding: utf-8 -*-
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
# Filename: tests/conftest.py

import json
import os
import shlex
import sys

import pytest

# Add the 'src' directory to the Python path so modules like 'command_builder'
# can be imported directly by tests.
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(project_root, 'src')

if src_path not in sys.path:
    sys.path.insert(0, src_path)

from config_loader import RewriteSettings
from editor_host import EditorHost

FAKE_CLI_TEMPLATE = '''
import json
import sys
import time

with open({argv_log!r}, "w", encoding="utf-8") as f_log:
    json.dump(sys.argv[1:], f_log)
stdin_text = sys.stdin.read()
with open({stdin_log!r}, "w", encoding="utf-8") as f_log:
    f_log.write(stdin_text)
time.sleep({delay!r})
sys.stdout.write({output!r})
sys.stdout.flush()
sys.stderr.write({stderr!r})
sys.exit({exit_code!r})
'''


class FakeLLMCli:
    """A stand-in for the `llm` executable that records how it was called."""

    def __init__(self, directory, output="", exit_code=0, stderr="", delay=0.0):
        self.script_path = directory / "fake_llm.py"
        self.argv_log = directory / "fake_llm_argv.json"
        self.stdin_log = directory / "fake_llm_stdin.txt"
        self.script_path.write_text(FAKE_CLI_TEMPLATE.format(
            argv_log=str(self.argv_log), stdin_log=str(self.stdin_log),
            output=output, exit_code=exit_code, stderr=stderr, delay=delay,
        ), encoding="utf-8")

    @property
    def command(self) -> str:
        return f"{shlex.quote(sys.executable)} {shlex.quote(str(self.script_path))}"

    def settings(self, **overrides) -> RewriteSettings:
        return RewriteSettings(cli_command=self.command, **overrides)

    @property
    def argv(self):
        return json.loads(self.argv_log.read_text(encoding="utf-8"))

    @property
    def stdin_text(self) -> str:
        return self.stdin_log.read_text(encoding="utf-8")


@pytest.fixture
def fake_llm(tmp_path):
    """Factory fixture: fake_llm(output="...", exit_code=0, stderr="", delay=0.0)."""
    cli_dir = tmp_path / "fake_cli"
    cli_dir.mkdir()

    def _create(**kwargs):
        return FakeLLMCli(cli_dir, **kwargs)
    return _create


class RecordingHost(EditorHost):
    """EditorHost that records every call instead of touching an editor."""

    def __init__(self, live_stream=None, on_save=None):
        self.calls = []
        self.messages = []
        self.errors = []
        self.live_stream = live_stream
        self.on_save = on_save

    def save_pending(self, path):
        self.calls.append(("save_pending", path))
        if self.on_save is not None:
            self.on_save(path)

    def open_live_view(self, artifact_path):
        self.calls.append(("open_live_view", artifact_path))
        return self.live_stream

    def close_live_view(self, stream):
        self.calls.append(("close_live_view", stream))

    def reopen(self, path, line):
        self.calls.append(("reopen", path, line))

    def show_error_listing(self, listing_path):
        self.calls.append(("show_error_listing", listing_path))

    def info(self, message):
        self.messages.append(message)

    def error(self, message):
        self.errors.append(message)

    def called(self, name):
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def recording_host():
    return RecordingHost()


@pytest.fixture
def host_factory():
    return RecordingHost


@pytest.fixture
def five_line_file(tmp_path):
    path = tmp_path / "sample.py"
    path.write_text("L1\nL2\nL3\nL4\nL5\n", encoding="utf-8")
    return path

# === End of tests/conftest.py ===
