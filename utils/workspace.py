#!/usr/bin/env python3
"""Scoped ownership of the single local working copy.

A run acquires the working copy for its whole duration. Serialization is
process-internal only; there is no lock file. On failure the tree is left
exactly as it was for manual inspection.
"""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from typing import Iterator

from utils.errors import FilesystemError, WorkspaceBusyError

logger = logging.getLogger(__name__)


class WorkingCopy:
    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._lock = threading.Lock()

    @contextmanager
    def acquire(self) -> Iterator["WorkingCopy"]:
        """Hold the working copy for one run.

        Raises:
            WorkspaceBusyError: If another run in this process holds it
            FilesystemError: If the path is not a git working copy
        """
        if not self._lock.acquire(blocking=False):
            raise WorkspaceBusyError(f"Working copy {self.path} is already in use")
        try:
            if not os.path.exists(os.path.join(self.path, ".git")):
                raise FilesystemError(f"Not a git working copy: {self.path}", code="NOT_A_REPO", path=self.path)
            logger.debug(f"Acquired working copy {self.path}")
            yield self
        finally:
            self._lock.release()
            logger.debug(f"Released working copy {self.path}")
