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
# Filename: src/rewrite_request.py

"""
Request Model for a Single Rewrite.

Defines the immutable request submitted by the user, the line range it targets,
the explicit state machine a rewrite moves through, and the error taxonomy
shared by the dispatcher, the job runner and the output writer.

State machine:
    IDLE -> DISPATCHED -> RUNNING -> COMMITTED
                                  -> FAILED
A request may also fail straight from DISPATCHED when the job never starts.
"""

import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class RewriteError(Exception):
    """Base class for every failure of a rewrite attempt."""


class MissingInstruction(RewriteError):
    """The instruction argument was empty."""


class NoFileContext(RewriteError):
    """The command was invoked without a file it could read."""


class InvalidLineRange(RewriteError):
    """The requested line range does not describe lines of the file."""


class RewriteInProgress(RewriteError):
    """Another rewrite of the same file has not completed yet."""


class EmptyOrMissingArtifact(RewriteError):
    """The pipeline produced no output."""


class PipelineFailed(RewriteError):
    """The pipeline exited with a non-zero status or could not be started."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class InvalidStateTransition(RewriteError):
    """A rewrite was moved to a state that is not reachable from its current one."""


_RANGE_RE = re.compile(r"^\s*(\d+)\s*(?:[,:-]\s*(\d+)\s*)?$")


@dataclass(frozen=True)
class LineRange:
    """An inclusive, 1-indexed span of lines."""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 1:
            raise InvalidLineRange(f"Line range must start at line 1 or later (got {self.start}).")
        if self.end < self.start:
            raise InvalidLineRange(f"Line range end {self.end} is before its start {self.start}.")

    @classmethod
    def parse(cls, text: str) -> "LineRange":
        """Parses 'START,END', 'START:END', 'START-END' or a single line number."""
        match = _RANGE_RE.match(text or "")
        if not match:
            raise InvalidLineRange(f"Cannot parse line range '{text}'. Expected START,END.")
        start = int(match.group(1))
        end = int(match.group(2)) if match.group(2) else start
        return cls(start, end)

    def clamp(self, line_count: int) -> "LineRange":
        """
        Fits the range to a file with `line_count` lines.

        The end is clamped to the last line. A start beyond the last line of a
        non-empty file is an error; an empty file accepts a range starting at 1.
        """
        last_line = max(line_count, 1)
        if self.start > last_line:
            raise InvalidLineRange(
                f"Line range {self.start}-{self.end} starts after the last line ({line_count}).")
        return LineRange(self.start, min(self.end, last_line))

    def __str__(self):
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class RewriteRequest:
    """
    What the user asked for: rewrite `line_range` of `source_path` following
    `instruction`. A `line_range` of None means the whole file.
    """
    source_path: Optional[Path]
    instruction: str
    line_range: Optional[LineRange] = None


class RewriteState(Enum):
    IDLE = "idle"
    DISPATCHED = "dispatched"
    RUNNING = "running"
    COMMITTED = "committed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    RewriteState.IDLE: {RewriteState.DISPATCHED, RewriteState.FAILED},
    RewriteState.DISPATCHED: {RewriteState.RUNNING, RewriteState.FAILED},
    RewriteState.RUNNING: {RewriteState.COMMITTED, RewriteState.FAILED},
    RewriteState.COMMITTED: set(),
    RewriteState.FAILED: set(),
}


@dataclass
class RewriteContext:
    """
    Everything the completion callback needs about the request it completes.

    The context travels on the job handle, so a second dispatch can never
    overwrite the paths or range a pending callback is about to read.
    """
    request: RewriteRequest
    source_path: Path
    artifact_path: Path
    error_listing_path: Path
    line_range: Optional[LineRange]
    pipeline: object = None
    live_stream: object = None
    state: RewriteState = RewriteState.IDLE
    error: Optional[RewriteError] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def transition(self, new_state: RewriteState) -> RewriteState:
        """Moves to `new_state` atomically and returns the previous state."""
        with self._lock:
            previous = self.state
            if new_state not in _ALLOWED_TRANSITIONS[previous]:
                raise InvalidStateTransition(
                    f"Cannot move rewrite of {self.source_path.name} from "
                    f"{previous.value} to {new_state.value}.")
            self.state = new_state
            return previous

    @property
    def is_finished(self) -> bool:
        return self.state in (RewriteState.COMMITTED, RewriteState.FAILED)

# === End of src/rewrite_request.py ===
