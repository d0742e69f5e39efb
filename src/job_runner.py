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
# Filename: src/job_runner.py

"""
Asynchronous Job Runner.

Runs blocking work (an LLM CLI pipeline) on a thread pool and hands the
finished job back to the host's main thread.

Work submitted with `submit()` starts immediately on a worker thread and the
call returns a `Job` handle without waiting. When the work ends, successfully
or by raising, the job is queued. The host drains that queue from its own
thread with `process_completions()` (an editor calls it from its event loop,
the CLI calls `wait()`), so completion callbacks never run concurrently with
the host's code.

Each `Job` carries the typed context object of the request it belongs to.
"""

import itertools
import logging
import queue
import subprocess
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

_job_ids = itertools.count(1)


class Job:
    """Handle for one piece of submitted work."""

    def __init__(self, context: Any, on_complete: Optional[Callable[["Job"], None]] = None):
        self.job_id = next(_job_ids)
        self.context = context
        self.on_complete = on_complete
        self.future: Optional[Future] = None
        self.process: Optional[subprocess.Popen] = None
        self.cancel_requested = False
        self._completed = threading.Event()

    def attach_process(self, process: subprocess.Popen):
        """Records the subprocess doing the work so `cancel()` can stop it."""
        self.process = process
        if self.cancel_requested:
            self._terminate()

    def cancel(self):
        """Terminates the running subprocess. The completion callback still fires."""
        self.cancel_requested = True
        self._terminate()

    def _terminate(self):
        if self.process is not None and self.process.poll() is None:
            logging.info(f"Terminating job {self.job_id} (pid {self.process.pid}).")
            self.process.terminate()

    @property
    def done(self) -> bool:
        """True once the work has finished, even if the callback has not run yet."""
        return self.future is not None and self.future.done()

    @property
    def completed(self) -> bool:
        """True once the completion callback has run."""
        return self._completed.is_set()

    def result(self):
        """The work's return value; re-raises the exception the work raised."""
        return self.future.result()

    def exception(self) -> Optional[BaseException]:
        return self.future.exception()

    def __repr__(self):
        state = "completed" if self.completed else ("done" if self.done else "running")
        return f"<Job {self.job_id} {state}>"


class JobRunner:
    """Thread-pool runner whose completion callbacks run on the pumping thread."""

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="llm-rewrite")
        self._completions: "queue.Queue[Job]" = queue.Queue()

    def submit(self, work: Callable[[Job], Any], context: Any = None,
               on_complete: Optional[Callable[[Job], None]] = None) -> Job:
        """Starts `work(job)` on a worker thread and returns the job without waiting."""
        job = Job(context, on_complete)
        job.future = self._executor.submit(work, job)
        job.future.add_done_callback(lambda _future: self._completions.put(job))
        logging.debug(f"Submitted job {job.job_id}.")
        return job

    def process_completions(self, timeout: Optional[float] = 0) -> int:
        """
        Runs the callbacks of finished jobs on the calling thread.

        Waits up to `timeout` seconds for the first finished job (None waits
        forever, 0 only drains what is already queued). Returns the number of
        callbacks run.
        """
        processed = 0
        block = timeout is None or timeout > 0
        while True:
            try:
                job = self._completions.get(block=block and processed == 0, timeout=timeout if block else None)
            except queue.Empty:
                return processed
            self._complete(job)
            processed += 1

    def _complete(self, job: Job):
        try:
            if job.on_complete is not None:
                job.on_complete(job)
        finally:
            job._completed.set()

    def wait(self, job: Job, poll_interval: float = 0.1, timeout: Optional[float] = None) -> Job:
        """
        Pumps completions until `job`'s callback has run.

        Raises TimeoutError if `timeout` seconds pass first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not job.completed:
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"Job {job.job_id} did not complete within {timeout}s.")
            self.process_completions(timeout=poll_interval)
        return job

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)
        if wait:
            self.process_completions(timeout=0)

# === End of src/job_runner.py ===
