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
# Filename: src/file_utils.py

"""
Provides shared utility functions for file operations.

Source files are read and written as UTF-8 with 'surrogateescape', so bytes
that are not valid UTF-8 survive a read/write round trip unchanged. Lines are
split on LF only; other characters that str.splitlines() treats as breaks
(form feed, vertical tab, U+2028, ...) stay inside their line, which keeps
line numbers identical to those of editors and `sed -n`.
"""
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Sequence

SOURCE_ENCODING = 'utf-8'
SOURCE_ERRORS = 'surrogateescape'


def read_text(path: Path) -> str:
    """Reads a file without newline translation."""
    with open(path, 'r', encoding=SOURCE_ENCODING, errors=SOURCE_ERRORS, newline='') as f_in:
        return f_in.read()


def split_raw_lines(text: str) -> List[str]:
    """Splits on LF, keeping each line's terminator. An unterminated last line is kept as is."""
    pieces = text.split('\n')
    raw_lines = [piece + '\n' for piece in pieces[:-1]]
    if pieces[-1]:
        raw_lines.append(pieces[-1])
    return raw_lines


def strip_terminator(raw_line: str) -> str:
    if raw_line.endswith('\n'):
        raw_line = raw_line[:-1]
    if raw_line.endswith('\r'):
        raw_line = raw_line[:-1]
    return raw_line


def split_lines(text: str) -> List[str]:
    """Splits on LF (or CRLF) and drops the terminators."""
    return [strip_terminator(line) for line in split_raw_lines(text)]


def read_raw_lines(path: Path) -> List[str]:
    return split_raw_lines(read_text(path))


def read_lines(path: Path) -> List[str]:
    """Reads a text file as a list of lines without line terminators."""
    return split_lines(read_text(path))


def detect_newline(raw_lines: Sequence[str]) -> str:
    """The terminator of the first terminated line, CRLF or LF (the default)."""
    for line in raw_lines:
        if line.endswith('\n'):
            return '\r\n' if line.endswith('\r\n') else '\n'
    return '\n'


def is_empty_or_missing(path: Path) -> bool:
    path = Path(path)
    return not path.is_file() or path.stat().st_size == 0


def atomic_write_text(path: Path, content: str):
    """
    Replaces the content of `path` with `content`, written verbatim.

    The content is written to a temporary file in the same directory and moved
    over the target with os.replace(), so readers see either the old or the new
    file. The target's permission bits are kept.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, 'w', encoding=SOURCE_ENCODING, errors=SOURCE_ERRORS, newline='') as f_tmp:
            f_tmp.write(content)
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise


def remove_if_exists(path: Path) -> bool:
    """Deletes a file if present. Returns True if a file was removed."""
    path = Path(path)
    if not path.exists():
        return False
    try:
        path.unlink()
        logging.debug(f"Removed {path}")
        return True
    except OSError as e:
        logging.warning(f"Could not remove {path}: {e}")
        return False

# === End of src/file_utils.py ===
