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
# Filename: src/command_builder.py

"""
Pipeline Builder and Runner for the LLM CLI.

Turns a rewrite request into the pipeline

    <extract-range> | llm [-m <model>] -s <prompt> | tee <temp-artifact>

and executes it. The range is extracted in-process and written to the CLI's
standard input; the CLI's standard output is copied line by line to the temp
artifact and to an optional live stream, which is what `tee` does in a shell.

Key Features:
-   **Temp Artifact Naming**: `temp_artifact_path()` inserts a marker before the
    final extension (`app.py` -> `app.llmtmp.py`) so anything that detects the
    language from the extension still recognises the artifact.
-   **Prompt Rendering**: `render_prompt()` fills the fixed system prompt with
    the user's instruction and the source path.
-   **Shell Rendering**: every `Pipeline` can render the equivalent shell
    command, used for debug logging and `--dry-run`.
-   **Failure Contract**: `run_pipeline()` never raises for a failing CLI. A
    missing executable is reported as exit code 127 with an explanatory stderr.
"""

import logging
import shlex
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, IO, List, Optional, Tuple

from config_loader import RewriteSettings
from file_utils import read_lines
from rewrite_request import LineRange, RewriteRequest

PROMPT_TEMPLATE = (
    "Output raw code only — no fences, headings, explanations, comments beyond "
    "in-code documentation, or non-code text. Preserve indentation/formatting "
    "conventions. Add meaningful in-code documentation for maintainability. Do "
    "not ask for clarification; resolve ambiguity by generating the most logical "
    "functional code. INSTRUCTION: {instruction}. Use the content supplied for "
    "file {file_path} as baseline/context; infer the target language from its "
    "extension. If no baseline content was supplied, generate from scratch per "
    "the instruction."
)

COMMAND_NOT_FOUND_EXIT = 127


def temp_artifact_path(source_path: Path, marker: str) -> Path:
    """Inserts `.marker` before the last extension of `source_path`."""
    source_path = Path(source_path)
    if source_path.suffix:
        return source_path.with_name(f"{source_path.stem}.{marker}{source_path.suffix}")
    return source_path.with_name(f"{source_path.name}.{marker}")


def error_listing_path(source_path: Path, suffix: str) -> Path:
    source_path = Path(source_path)
    return source_path.with_name(f"{source_path.name}{suffix}")


def render_prompt(instruction: str, file_path) -> str:
    return PROMPT_TEMPLATE.format(instruction=instruction, file_path=str(file_path))


def extract_range_lines(source_path: Path, line_range: Optional[LineRange] = None) -> List[str]:
    lines = read_lines(source_path)
    if line_range is None:
        return lines
    return lines[line_range.start - 1:line_range.end]


@dataclass(frozen=True)
class Pipeline:
    """A fully resolved pipeline, ready to run."""
    argv: Tuple[str, ...]
    stdin_text: str
    source_path: Path
    artifact_path: Path
    line_range: Optional[LineRange] = None

    @property
    def shell_command(self) -> str:
        """The equivalent shell pipeline."""
        if self.line_range is None:
            extract = f"cat {shlex.quote(str(self.source_path))}"
        else:
            span = f"{self.line_range.start},{self.line_range.end}p"
            extract = f"sed -n {shlex.quote(span)} {shlex.quote(str(self.source_path))}"
        tee = f"tee {shlex.quote(str(self.artifact_path))}"
        return " | ".join([extract, shlex.join(self.argv), tee])


@dataclass(frozen=True)
class PipelineResult:
    returncode: int
    stderr: str = ""
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


def build_llm_argv(prompt: str, settings: RewriteSettings) -> Tuple[str, ...]:
    """`<cli_command> [-m <model>] -s <prompt>`; the model flag only when one is configured."""
    argv = shlex.split(settings.cli_command)
    if settings.model_name:
        argv += ["-m", settings.model_name]
    argv += ["-s", prompt]
    return tuple(argv)


def build_pipeline(request: RewriteRequest, settings: RewriteSettings,
                   artifact_path: Optional[Path] = None,
                   line_range: Optional[LineRange] = None) -> Pipeline:
    """
    Assembles the pipeline for `request`.

    `line_range` is the range already fitted to the file; it defaults to the
    request's own range.
    """
    source_path = Path(request.source_path)
    if artifact_path is None:
        artifact_path = temp_artifact_path(source_path, settings.temp_marker)
    if line_range is None:
        line_range = request.line_range

    prompt = render_prompt(request.instruction, source_path)
    selected = extract_range_lines(source_path, line_range)
    return Pipeline(
        argv=build_llm_argv(prompt, settings),
        stdin_text="".join(f"{line}\n" for line in selected),
        source_path=source_path,
        artifact_path=Path(artifact_path),
        line_range=line_range,
    )


def _feed_stdin(process: subprocess.Popen, text: str):
    try:
        process.stdin.write(text)
    except BrokenPipeError:
        # The CLI exited before reading its input; the exit status reports why.
        logging.debug("LLM CLI closed its standard input early.")
    finally:
        try:
            process.stdin.close()
        except BrokenPipeError:
            pass


def run_pipeline(pipeline: Pipeline, live_stream: Optional[IO[str]] = None,
                 on_spawn: Optional[Callable[[subprocess.Popen], None]] = None) -> PipelineResult:
    """
    Runs the pipeline to completion, teeing the CLI's output into the artifact.

    `on_spawn` receives the process as soon as it exists so the caller can
    terminate it. Blocks until the CLI exits; call it from a worker thread.
    """
    logging.debug(f"Running pipeline: {pipeline.shell_command}")
    start_time = time.time()
    try:
        process = subprocess.Popen(
            list(pipeline.argv),
            stdin=subprocess.PIPE, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
            text=True, encoding='utf-8', errors='replace'
        )
    except OSError as e:
        logging.error(f"Could not start LLM CLI '{pipeline.argv[0]}': {e}")
        return PipelineResult(
            returncode=COMMAND_NOT_FOUND_EXIT,
            stderr=f"LLM CLI '{pipeline.argv[0]}' could not be started: {e}",
            duration=time.time() - start_time,
        )

    if on_spawn is not None:
        on_spawn(process)

    stderr_chunks: List[str] = []
    stderr_thread = threading.Thread(target=lambda: stderr_chunks.append(process.stderr.read()), daemon=True)
    stdin_thread = threading.Thread(target=_feed_stdin, args=(process, pipeline.stdin_text), daemon=True)
    stderr_thread.start()
    stdin_thread.start()

    with open(pipeline.artifact_path, 'w', encoding='utf-8') as f_artifact:
        for line in iter(process.stdout.readline, ''):
            f_artifact.write(line)
            f_artifact.flush()
            if live_stream is not None:
                live_stream.write(line)
                live_stream.flush()

    returncode = process.wait()
    stdin_thread.join()
    stderr_thread.join()
    process.stdout.close()
    process.stderr.close()

    duration = time.time() - start_time
    logging.info(f"LLM CLI exited with code {returncode} after {duration:.2f}s.")
    return PipelineResult(returncode=returncode, stderr="".join(stderr_chunks), duration=duration)

# === End of src/command_builder.py ===
