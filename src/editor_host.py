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
# Filename: src/editor_host.py

"""
Host Integration Seam.

A rewrite touches the user's editor in a handful of places: unsaved edits are
written before the file is read, the artifact is shown while output streams
in, the original file is reopened at the rewritten region afterwards, and a
failure opens an error listing. `EditorHost` names those side effects.
Editor plugins subclass it; `ConsoleHost` implements it for a terminal.
"""

import logging
import shlex
import subprocess
import sys
from pathlib import Path
from typing import IO, Optional

from colorama import Fore, Style


class EditorHost:
    """Side effects a rewrite asks of the program hosting it. Defaults do nothing."""

    def save_pending(self, path: Path):
        """Writes any unsaved in-memory edits of `path` to disk."""

    def open_live_view(self, artifact_path: Path) -> Optional[IO[str]]:
        """Shows the artifact while it fills. Returns the stream output is copied to, or None."""
        return None

    def close_live_view(self, stream: Optional[IO[str]]):
        pass

    def reopen(self, path: Path, line: int):
        """Replaces the live view with `path`, cursor on `line`."""

    def show_error_listing(self, listing_path: Path):
        pass

    def info(self, message: str):
        logging.info(message)

    def error(self, message: str):
        logging.error(message)


class ConsoleHost(EditorHost):
    """
    Terminal host for the `llm-rewrite` command.

    LLM output streams to stdout as it arrives (unless quiet). `reopen` prints
    the location of the rewritten region, or launches `open_command` when one is
    configured; `{path}` and `{line}` in the command are substituted, e.g.
    `vim +{line} {path}`.
    """

    def __init__(self, quiet: bool = False, open_command: Optional[str] = None,
                 stream: Optional[IO[str]] = None, err_stream: Optional[IO[str]] = None):
        self.quiet = quiet
        self.open_command = open_command
        self.stream = stream if stream is not None else sys.stdout
        self.err_stream = err_stream if err_stream is not None else sys.stderr

    def save_pending(self, path: Path):
        logging.debug(f"Console host keeps no unsaved buffers for {path}.")

    def open_live_view(self, artifact_path: Path) -> Optional[IO[str]]:
        if self.quiet:
            return None
        print(f"{Fore.CYAN}--- Streaming LLM output into {Path(artifact_path).name} ---{Fore.RESET}", file=self.stream)
        return self.stream

    def close_live_view(self, stream: Optional[IO[str]]):
        if stream is not None:
            print(f"{Fore.CYAN}--- End of LLM output ---{Fore.RESET}", file=self.stream)

    def reopen(self, path: Path, line: int):
        if not self.open_command:
            logging.debug(f"Rewritten region starts at {path}:{line}")
            return
        argv = [token.replace("{path}", str(path)).replace("{line}", str(line))
                for token in shlex.split(self.open_command)]
        logging.info(f"Opening {path} at line {line}: {' '.join(argv)}")
        try:
            subprocess.run(argv, check=False)
        except OSError as e:
            logging.warning(f"Could not launch editor command '{argv[0]}': {e}")

    def show_error_listing(self, listing_path: Path):
        try:
            listing = Path(listing_path).read_text(encoding='utf-8', errors='replace')
        except OSError as e:
            logging.warning(f"Could not read error listing {listing_path}: {e}")
            return
        print(f"\n{Fore.YELLOW}--- Error listing: {listing_path} ---{Fore.RESET}", file=self.err_stream)
        print(listing.rstrip(), file=self.err_stream)
        print(f"{Fore.YELLOW}--- End of error listing ---{Fore.RESET}", file=self.err_stream)

    def info(self, message: str):
        print(f"{Fore.GREEN}{message}{Style.RESET_ALL}", file=self.stream)

    def error(self, message: str):
        print(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}", file=self.err_stream)

# === End of src/editor_host.py ===
