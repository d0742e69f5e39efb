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
# Filename: src/inflight_registry.py

"""
Registry of rewrites that have been dispatched but not yet completed.

One rewrite per source file at a time. Inside a process the registry keeps a
dictionary keyed by the resolved source path; across processes (two CLI runs
on the same file) it holds a lock file next to the source, created in
exclusive mode so that only one caller can own it.

A lock file left behind by a crashed run is removed with `force_unlock()`
(`llm-rewrite FILE --unlock`).
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from config_loader import DEFAULT_LOCK_SUFFIX
from file_utils import remove_if_exists
from rewrite_request import RewriteInProgress


def lock_file_path(source_path: Path, suffix: str = DEFAULT_LOCK_SUFFIX) -> Path:
    source_path = Path(source_path)
    return source_path.with_name(f".{source_path.name}{suffix}")


class InFlightRegistry:

    def __init__(self, lock_suffix: str = DEFAULT_LOCK_SUFFIX):
        self.lock_suffix = lock_suffix
        self._pending: Dict[Path, Any] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(source_path: Path) -> Path:
        return Path(source_path).resolve()

    def acquire(self, source_path: Path, context: Any = None):
        """
        Registers a pending rewrite of `source_path`.

        Raises RewriteInProgress if one is already pending, in this process or
        in another one.
        """
        key = self._key(source_path)
        with self._lock:
            if key in self._pending:
                raise RewriteInProgress(f"A rewrite of {key.name} is already running in this session.")
            lock_path = lock_file_path(key, self.lock_suffix)
            try:
                with open(lock_path, 'x', encoding='utf-8') as f_lock:
                    f_lock.write(str(os.getpid()))
            except FileExistsError:
                holder = self._read_holder(lock_path)
                raise RewriteInProgress(
                    f"A rewrite of {key.name} is already running (lock held by pid {holder}). "
                    f"If that run crashed, clear it with --unlock.") from None
            self._pending[key] = context
            logging.debug(f"Acquired rewrite lock {lock_path}")

    def release(self, source_path: Path):
        key = self._key(source_path)
        with self._lock:
            if key not in self._pending:
                logging.debug(f"Releasing {key.name}, which was not registered in this session.")
            self._pending.pop(key, None)
            remove_if_exists(lock_file_path(key, self.lock_suffix))

    def is_pending(self, source_path: Path) -> bool:
        key = self._key(source_path)
        with self._lock:
            return key in self._pending or lock_file_path(key, self.lock_suffix).exists()

    def get(self, source_path: Path) -> Optional[Any]:
        with self._lock:
            return self._pending.get(self._key(source_path))

    def force_unlock(self, source_path: Path) -> bool:
        """Removes a stale lock file. Returns True if one was removed."""
        key = self._key(source_path)
        with self._lock:
            self._pending.pop(key, None)
            return remove_if_exists(lock_file_path(key, self.lock_suffix))

    @staticmethod
    def _read_holder(lock_path: Path) -> str:
        try:
            return lock_path.read_text(encoding='utf-8').strip() or "unknown"
        except OSError:
            return "unknown"

# === End of src/inflight_registry.py ===
