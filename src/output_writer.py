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
# Filename: src/output_writer.py

"""
Completion Handler: Commits or Rejects a Finished Rewrite.

`complete_rewrite()` is registered as the job's completion callback and runs
once per job on the host's main thread. It decides between two outcomes:

-   **Failure**: the job raised, the LLM CLI exited non-zero, or the temp
    artifact is missing or empty. The artifact is deleted, an error listing
    (reason, exit code, command, stderr) is written next to the source, the
    original file is reopened untouched and the error is reported.
-   **Commit**: the artifact is sanitized, spliced into the file as it is on
    disk now, and written back atomically. The artifact is deleted and the
    file is reopened at the first line of the replaced region.

The source file is written only on the commit path, after the new content
has been fully computed.
"""

import datetime
import logging
from typing import Optional

from command_builder import PipelineResult
from editor_host import EditorHost
from file_utils import (atomic_write_text, is_empty_or_missing, read_lines, read_raw_lines,
                        remove_if_exists, split_raw_lines)
from job_runner import Job
from output_sanitizer import sanitize_lines, splice_into_file_text
from rewrite_request import (EmptyOrMissingArtifact, PipelineFailed, RewriteContext,
                             RewriteError, RewriteState)

STDERR_TAIL_CHARS = 4000


def detect_failure(context: RewriteContext, job: Job) -> Optional[RewriteError]:
    """Returns the error that makes this job a failure, or None if it can be committed."""
    try:
        result: PipelineResult = job.result()
    except Exception as e:
        return PipelineFailed(f"Rewrite job for {context.source_path.name} raised {type(e).__name__}: {e}")

    if job.cancel_requested:
        return PipelineFailed(f"Rewrite of {context.source_path.name} was cancelled.",
                              returncode=result.returncode, stderr=result.stderr)
    if not result.succeeded:
        return PipelineFailed(
            f"LLM CLI exited with code {result.returncode} while rewriting {context.source_path.name}.",
            returncode=result.returncode, stderr=result.stderr)
    if is_empty_or_missing(context.artifact_path):
        return EmptyOrMissingArtifact(
            f"LLM produced no output for {context.source_path.name}; the file was left unchanged.")
    return None


def format_error_listing(context: RewriteContext, failure: RewriteError) -> str:
    lines = [
        f"llm-rewrite failure report ({datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')})",
        f"File: {context.source_path}",
        f"Range: {context.line_range if context.line_range else 'whole file'}",
        f"Instruction: {context.request.instruction}",
        f"Reason: {failure}",
    ]
    if isinstance(failure, PipelineFailed) and failure.returncode is not None:
        lines.append(f"Exit code: {failure.returncode}")
    if context.pipeline is not None:
        lines.append(f"Command: {context.pipeline.shell_command}")
    stderr = failure.stderr.strip() if isinstance(failure, PipelineFailed) else ""
    lines.append("")
    lines.append("--- LLM CLI stderr ---")
    lines.append(stderr[-STDERR_TAIL_CHARS:] if stderr else "(empty)")
    return "\n".join(lines) + "\n"


def _first_line(context: RewriteContext) -> int:
    return context.line_range.start if context.line_range else 1


def _fail(context: RewriteContext, host: EditorHost, failure: RewriteError):
    context.error = failure
    remove_if_exists(context.artifact_path)
    context.transition(RewriteState.FAILED)

    listing_written = False
    try:
        context.error_listing_path.write_text(format_error_listing(context, failure), encoding='utf-8')
        listing_written = True
    except OSError as e:
        logging.warning(f"Could not write error listing {context.error_listing_path}: {e}")

    host.reopen(context.source_path, _first_line(context))
    if listing_written:
        host.show_error_listing(context.error_listing_path)
    host.error(str(failure))


def _commit(context: RewriteContext, host: EditorHost):
    sanitized = sanitize_lines(read_lines(context.artifact_path))
    original = read_raw_lines(context.source_path) if context.source_path.exists() else []
    new_text = splice_into_file_text(original, sanitized, context.line_range)

    atomic_write_text(context.source_path, new_text)
    remove_if_exists(context.artifact_path)
    context.transition(RewriteState.COMMITTED)

    first_line = _first_line(context)
    if context.line_range:
        span = f"lines {context.line_range.start}-{context.line_range.end}"
    else:
        span = f"all {len(original)} lines" if original else "the empty file"
    host.reopen(context.source_path, first_line)
    host.info(f"Rewrote {span} of {context.source_path.name} with {len(sanitized)} line(s) of LLM output.")
    logging.info(f"Committed rewrite of {context.source_path} ({len(original)} -> {len(split_raw_lines(new_text))} lines).")


def complete_rewrite(job: Job, host: EditorHost, registry=None) -> RewriteContext:
    """Completion callback: commit the job's output or report why it cannot be."""
    context: RewriteContext = job.context
    host.close_live_view(context.live_stream)
    try:
        failure = detect_failure(context, job)
        if failure is not None:
            _fail(context, host, failure)
            return context
        try:
            _commit(context, host)
        except OSError as e:
            _fail(context, host, RewriteError(f"Could not write {context.source_path.name}: {e}"))
        return context
    finally:
        if registry is not None:
            registry.release(context.source_path)

# === End of src/output_writer.py ===
