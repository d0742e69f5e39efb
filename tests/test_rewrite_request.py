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
# Filename: tests/test_rewrite_request.py

import dataclasses
from pathlib import Path

import pytest

from rewrite_request import (InvalidLineRange, InvalidStateTransition, LineRange, RewriteContext,
                             RewriteRequest, RewriteState)


@pytest.mark.parametrize("text, expected", [
    ("2,3", LineRange(2, 3)),
    ("2:3", LineRange(2, 3)),
    ("10-25", LineRange(10, 25)),
    (" 4 , 9 ", LineRange(4, 9)),
    ("7", LineRange(7, 7)),
])
def test_parse_line_range(text, expected):
    assert LineRange.parse(text) == expected


@pytest.mark.parametrize("text", ["", "a,b", "3,", ",3", "1,2,3", "-1,2"])
def test_parse_rejects_malformed_range(text):
    with pytest.raises(InvalidLineRange):
        LineRange.parse(text)


def test_range_must_start_at_one_or_later():
    with pytest.raises(InvalidLineRange):
        LineRange(0, 3)


def test_range_end_before_start():
    with pytest.raises(InvalidLineRange):
        LineRange.parse("5,2")


def test_clamp_end_to_last_line():
    assert LineRange(2, 99).clamp(5) == LineRange(2, 5)
    assert LineRange(2, 3).clamp(5) == LineRange(2, 3)


def test_clamp_rejects_start_beyond_file():
    with pytest.raises(InvalidLineRange, match="after the last line"):
        LineRange(7, 9).clamp(5)


def test_clamp_on_empty_file_accepts_first_line():
    assert LineRange(1, 10).clamp(0) == LineRange(1, 1)


def test_request_is_immutable():
    request = RewriteRequest(Path("a.py"), "do it")
    with pytest.raises(dataclasses.FrozenInstanceError):
        request.instruction = "something else"


def _context():
    request = RewriteRequest(Path("a.py"), "do it")
    return RewriteContext(request=request, source_path=Path("a.py"),
                          artifact_path=Path("a.llmtmp.py"),
                          error_listing_path=Path("a.py.llm-error.txt"), line_range=None)


def test_state_machine_happy_path():
    context = _context()
    assert context.state is RewriteState.IDLE
    assert context.transition(RewriteState.DISPATCHED) is RewriteState.IDLE
    context.transition(RewriteState.RUNNING)
    context.transition(RewriteState.COMMITTED)
    assert context.is_finished


def test_state_machine_failure_from_dispatched():
    context = _context()
    context.transition(RewriteState.DISPATCHED)
    context.transition(RewriteState.FAILED)
    assert context.state is RewriteState.FAILED


def test_finished_rewrite_cannot_move_again():
    context = _context()
    context.transition(RewriteState.DISPATCHED)
    context.transition(RewriteState.RUNNING)
    context.transition(RewriteState.FAILED)
    with pytest.raises(InvalidStateTransition):
        context.transition(RewriteState.COMMITTED)


def test_cannot_commit_without_running():
    context = _context()
    context.transition(RewriteState.DISPATCHED)
    with pytest.raises(InvalidStateTransition):
        context.transition(RewriteState.COMMITTED)

# === End of tests/test_rewrite_request.py ===
