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
# Filename: src/output_sanitizer.py

"""
Sanitizer for Raw LLM Output.

Converts the lines an LLM CLI wrote to the temp artifact into the lines that
are spliced back into the source file. The cleaning steps run in a fixed order:

1.  **Fence stripping**: drop an opening code fence (any line starting with
    ```` ``` ````, whatever info string follows) on the first line, then a
    bare closing fence on the last remaining line. At most one line per end;
    fences inside the content are kept.
2.  **Trailing blank removal**: drop one trailing empty or whitespace-only line.
3.  **Whitespace normalization**: whitespace-only lines become empty lines.

`splice_lines()` then replaces the requested range of the original file;
`splice_into_file_text()` does the same while keeping line terminators.
"""

import re
from typing import List, Optional, Sequence

from file_utils import detect_newline, split_lines
from rewrite_request import LineRange

OPENING_FENCE_RE = re.compile(r"^```.*$")
CLOSING_FENCE_RE = re.compile(r"^```\s*$")


def strip_code_fences(lines: Sequence[str]) -> List[str]:
    result = list(lines)
    if result and OPENING_FENCE_RE.match(result[0]):
        result = result[1:]
    if result and CLOSING_FENCE_RE.match(result[-1]):
        result = result[:-1]
    return result


def drop_trailing_blank(lines: Sequence[str]) -> List[str]:
    result = list(lines)
    if result and not result[-1].strip():
        result = result[:-1]
    return result


def normalize_blank_lines(lines: Sequence[str]) -> List[str]:
    """Replaces lines made only of whitespace with empty lines."""
    return ["" if line.isspace() else line for line in lines]


def sanitize_lines(lines: Sequence[str]) -> List[str]:
    """Runs the full cleaning sequence on raw artifact lines."""
    cleaned = strip_code_fences(lines)
    cleaned = drop_trailing_blank(cleaned)
    return normalize_blank_lines(cleaned)


def sanitize_text(text: str) -> List[str]:
    return sanitize_lines(split_lines(text))


def splice_lines(original: Sequence[str], replacement: Sequence[str],
                 line_range: Optional[LineRange] = None) -> List[str]:
    """
    Returns `original[:start-1] + replacement + original[end:]`.

    With no range the replacement becomes the whole content.
    """
    if line_range is None:
        return list(replacement)
    before = list(original[:line_range.start - 1])
    after = list(original[line_range.end:])
    return before + list(replacement) + after


def splice_into_file_text(original_raw: Sequence[str], replacement: Sequence[str],
                          line_range: Optional[LineRange] = None) -> str:
    """
    Splices `replacement` (lines without terminators) into `original_raw`
    (lines with their terminators) and returns the new file text.

    Lines outside the range are kept byte for byte. Replacement lines take the
    file's newline convention, and the file keeps or lacks its final newline
    as before.
    """
    newline = detect_newline(original_raw)
    end = line_range.end if line_range is not None else len(original_raw)
    ends_terminated = end < len(original_raw) or not original_raw or original_raw[-1].endswith('\n')

    block = newline.join(replacement)
    if replacement and ends_terminated:
        block += newline
    return "".join(splice_lines(original_raw, [block] if block else [], line_range))

# === End of src/output_sanitizer.py ===
