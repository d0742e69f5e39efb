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
# Filename: src/rewrite_dispatcher.py

"""
Dispatcher for a Single Rewrite.

`dispatch_rewrite()` is the entry point editor integrations call. It:

1.  Validates the request (`MissingInstruction`, `NoFileContext`,
    `InvalidLineRange`) before touching anything.
2.  Asks the host to save unsaved edits, then fits the range to the file and
    builds the pipeline from the file's current content.
3.  Registers the file as in-flight (`RewriteInProgress` if it already is).
4.  Creates the empty temp artifact and opens the live view on it.
5.  Submits the pipeline to the job runner with `complete_rewrite` as the
    completion callback and returns the job without waiting.

The job's context carries the request, paths and range to the callback.
"""

import functools
import logging
from pathlib import Path
from typing import Optional

from command_builder import build_pipeline, error_listing_path, run_pipeline, temp_artifact_path
from config_loader import APP_CONFIG, RewriteSettings
from editor_host import EditorHost
from file_utils import read_lines, remove_if_exists
from inflight_registry import InFlightRegistry
from job_runner import Job, JobRunner
from output_writer import complete_rewrite
from rewrite_request import (MissingInstruction, NoFileContext, RewriteContext, RewriteError,
                             RewriteRequest, RewriteState)

USAGE_HINT = "Usage: llm-rewrite FILE INSTRUCTION..., e.g. llm-rewrite app.py \"add type hints\"."


def validate_request(request: RewriteRequest) -> Path:
    """Checks the file, then the instruction. Returns the resolved source path."""
    if request.source_path is None or str(request.source_path) == "":
        raise NoFileContext(f"No file to rewrite was given. {USAGE_HINT}")
    source_path = Path(request.source_path).expanduser()
    if not source_path.is_file():
        raise NoFileContext(f"{source_path} is not an existing file. {USAGE_HINT}")
    if not request.instruction or not request.instruction.strip():
        raise MissingInstruction(f"An instruction is required. {USAGE_HINT}")
    return source_path.resolve()


def prepare_context(request: RewriteRequest, settings: RewriteSettings,
                    host: Optional[EditorHost] = None) -> RewriteContext:
    """Validates `request` and resolves everything the job needs. No files are created."""
    source_path = validate_request(request)
    if host is not None:
        host.save_pending(source_path)

    line_range = request.line_range
    if line_range is not None:
        line_range = line_range.clamp(len(read_lines(source_path)))

    artifact_path = temp_artifact_path(source_path, settings.temp_marker)
    pipeline = build_pipeline(request, settings, artifact_path=artifact_path, line_range=line_range)
    return RewriteContext(
        request=request,
        source_path=source_path,
        artifact_path=artifact_path,
        error_listing_path=error_listing_path(source_path, settings.error_suffix),
        line_range=line_range,
        pipeline=pipeline,
    )


def dispatch_rewrite(request: RewriteRequest, runner: JobRunner, host: EditorHost,
                     registry: InFlightRegistry,
                     settings: Optional[RewriteSettings] = None) -> Job:
    """Starts a rewrite and returns its job immediately."""
    if settings is None:
        settings = RewriteSettings.from_config(APP_CONFIG)

    context = prepare_context(request, settings, host)
    registry.acquire(context.source_path, context)
    try:
        remove_if_exists(context.error_listing_path)
        context.artifact_path.write_text("", encoding='utf-8')
    except OSError as e:
        registry.release(context.source_path)
        raise RewriteError(f"Could not create temp artifact {context.artifact_path}: {e}") from e

    try:
        context.live_stream = host.open_live_view(context.artifact_path)
        context.transition(RewriteState.DISPATCHED)

        def work(job: Job):
            context.transition(RewriteState.RUNNING)
            return run_pipeline(context.pipeline, live_stream=context.live_stream, on_spawn=job.attach_process)

        job = runner.submit(work, context,
                            on_complete=functools.partial(complete_rewrite, host=host, registry=registry))
    except BaseException:
        # Nothing was submitted, so no completion callback will clean up.
        context.transition(RewriteState.FAILED)
        remove_if_exists(context.artifact_path)
        registry.release(context.source_path)
        raise

    span = str(context.line_range) if context.line_range else "whole file"
    logging.info(f"Dispatched rewrite of {context.source_path.name} ({span}) as job {job.job_id}.")
    logging.debug(f"Pipeline: {context.pipeline.shell_command}")
    return job

# === End of src/rewrite_dispatcher.py ===
