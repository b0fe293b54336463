#!/usr/bin/env python3
"""Typed errors for the activity agent.

Every error carries a short ``code`` for friendly handling at the CLI, the
same way the GitHub and git clients report failures.
"""

from __future__ import annotations

from typing import Optional, Sequence


class AgentError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN"):
        super().__init__(message)
        self.code = code


class ConfigurationError(AgentError):
    """Raised at startup for a bad run config or a missing credential."""

    def __init__(self, message: str, code: str = "CONFIG"):
        super().__init__(message, code=code)


class VcsCommandError(AgentError):
    """Raised when a local git operation exits non-zero."""

    def __init__(
        self,
        message: str,
        code: str = "GIT",
        *,
        command: Optional[Sequence[str]] = None,
        stderr: str = "",
    ):
        super().__init__(message, code=code)
        self.command = list(command or [])
        self.stderr = stderr


class RemoteApiError(AgentError):
    """Raised when the hosting API rejects a call."""

    def __init__(self, message: str, code: str = "UNKNOWN", *, status: Optional[int] = None):
        super().__init__(message, code=code)
        self.status = status


class FilesystemError(AgentError):
    """Raised when reading or writing a target file fails."""

    def __init__(self, message: str, code: str = "IO", *, path: Optional[str] = None):
        super().__init__(message, code=code)
        self.path = path


class WorkspaceBusyError(AgentError):
    def __init__(self, message: str, code: str = "BUSY"):
        super().__init__(message, code=code)
