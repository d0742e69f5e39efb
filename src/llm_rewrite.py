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
# Filename: src/llm_rewrite.py

"""
Command-Line Front-End for llm-rewrite.

Rewrites a file, or a range of its lines, by piping it through the `llm` CLI
and writing the cleaned-up output back in place.

Key Features:
-   **Range Rewrites**: `--range 10,25` replaces only lines 10 to 25; the rest
    of the file is kept byte for byte.
-   **Live Output**: the model's output streams to the terminal while it is
    generated (suppressed by `--quiet`).
-   **Safe Failure**: if the LLM CLI fails or produces nothing, the file is not
    touched and an error listing `<file>.llm-error.txt` is written.
-   **Dry Run**: `--dry-run` prints the equivalent shell pipeline and exits.
-   **Stale Locks**: `--unlock` clears the lock of a crashed run.

Usage:
    llm-rewrite app.py "convert the callbacks to async/await"
    llm-rewrite app.py -r 40,72 "add docstrings" -m gpt-4o-mini
    llm-rewrite app.py --unlock

Exit Codes:
    0: Rewrite committed (or dry run / unlock done)
    1: The rewrite failed; the file is unchanged
    2: Invalid usage (missing instruction, no file, bad range, file busy)
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, just_fix_windows_console

from config_loader import APP_CONFIG, RewriteSettings, load_app_config
from editor_host import ConsoleHost
from inflight_registry import InFlightRegistry
from job_runner import JobRunner
from rewrite_dispatcher import dispatch_rewrite, prepare_context
from rewrite_request import LineRange, RewriteError, RewriteRequest, RewriteState

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


class CustomFormatter(logging.Formatter):
    """Custom formatter to add colors to log levels."""
    log_format = "%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    FORMATS = {
        logging.WARNING: Fore.YELLOW + log_format + Style.RESET_ALL,
        logging.ERROR: Fore.RED + log_format + Style.RESET_ALL,
        logging.CRITICAL: Fore.RED + log_format + Style.RESET_ALL,
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.log_format)
        formatter = logging.Formatter(log_fmt, datefmt='%Y-%m-%d %H:%M:%S')
        return formatter.format(record)


def setup_logging(verbose: int, quiet: bool, default_level: str = "WARNING") -> str:
    """Configures the root logger on stderr, leaving stdout for the live LLM output."""
    if quiet:
        log_level_str = "ERROR"
    elif verbose >= 2:
        log_level_str = "DEBUG"
    elif verbose == 1:
        log_level_str = "INFO"
    else:
        log_level_str = default_level

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(CustomFormatter())
    logging.basicConfig(level=getattr(logging, log_level_str.upper(), logging.WARNING),
                        handlers=[handler], force=True)
    return log_level_str


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llm-rewrite",
        description="Rewrites a file (or a range of its lines) in place through the `llm` CLI.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("file", nargs='?', default=None, help="The file to rewrite.")
    parser.add_argument("instruction", nargs='*', help="What the LLM should do with the file.")
    parser.add_argument("-r", "--range", dest="line_range", default=None,
                        help="Inclusive 1-indexed line range to replace, e.g. '10,25'. Default: whole file.")
    parser.add_argument("-m", "--model", default=None,
                        help="LLM model passed to the CLI as -m. Overrides [LLM] model_name and LLM_REWRITE_MODEL.")
    parser.add_argument("--dry-run", action="store_true", help="Print the shell pipeline that would run and exit.")
    parser.add_argument("--unlock", action="store_true", help="Remove a stale rewrite lock for FILE and exit.")
    parser.add_argument("--open", action="store_true",
                        help="Open the file at the rewritten region afterwards ([Editor] open_command or $EDITOR).")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity level (-v for INFO, -vv for DEBUG).")
    parser.add_argument("--quiet", action="store_true", help="Do not stream LLM output; only report the result.")
    parser.add_argument("--config_path", default=None, help="Path to an alternative config.ini.")
    return parser


def resolve_open_command(settings: RewriteSettings) -> Optional[str]:
    if settings.open_command:
        return settings.open_command
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR")
    if editor:
        return f"{editor} +{{line}} {{path}}"
    logging.warning("--open given but neither [Editor] open_command nor $EDITOR is set.")
    return None


def print_error(message: str):
    print(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    just_fix_windows_console()
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_app_config(args.config_path) if args.config_path else APP_CONFIG
    settings = RewriteSettings.from_config(config, model_override=args.model)
    log_level_str = setup_logging(args.verbose, args.quiet, settings.default_log_level)
    logging.debug(f"llm-rewrite log level set to: {log_level_str}")

    registry = InFlightRegistry(settings.lock_suffix)

    if args.unlock:
        if not args.file:
            print_error("--unlock needs the FILE whose lock should be removed.")
            return EXIT_USAGE
        if registry.force_unlock(Path(args.file)):
            print(f"Removed stale rewrite lock for {args.file}.")
        else:
            print(f"No rewrite lock found for {args.file}.")
        return EXIT_OK

    instruction = " ".join(args.instruction).strip()
    host = ConsoleHost(quiet=args.quiet,
                       open_command=resolve_open_command(settings) if args.open else None)

    try:
        line_range = LineRange.parse(args.line_range) if args.line_range else None
        request = RewriteRequest(Path(args.file) if args.file else None, instruction, line_range)

        if args.dry_run:
            context = prepare_context(request, settings)
            print(context.pipeline.shell_command)
            return EXIT_OK

        runner = JobRunner(max_workers=1)
        try:
            job = dispatch_rewrite(request, runner, host, registry, settings)
            try:
                runner.wait(job)
            except KeyboardInterrupt:
                print(f"\n{Fore.YELLOW}Interrupted by user (Ctrl+C). Cancelling rewrite...{Style.RESET_ALL}",
                      file=sys.stderr)
                job.cancel()
                runner.wait(job)
        finally:
            runner.shutdown()
    except RewriteError as e:
        print_error(str(e))
        return EXIT_USAGE

    return EXIT_OK if job.context.state is RewriteState.COMMITTED else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())

# === End of src/llm_rewrite.py ===
