#!/usr/bin/env python3
"""Data structures owned by a single run of the activity agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Stage(str, Enum):
    """Stages of the run state machine."""
    IDLE = "IDLE"
    BRANCHING = "BRANCHING"
    MUTATING = "MUTATING"
    COMMITTING = "COMMITTING"
    PUSHING = "PUSHING"
    REQUESTING = "REQUESTING"
    WAITING = "WAITING"
    MERGING = "MERGING"
    CLEANING_UP = "CLEANING_UP"
    FAILED = "FAILED"


class EditStrategy(str, Enum):
    ANNOTATE = "annotate"
    SPACER = "spacer"
    REINDENT = "reindent"
    TODO_STAMP = "todo-stamp"


@dataclass
class BranchHandle:
    name: str
    primary: str


@dataclass
class PullRequestHandle:
    number: int
    html_url: str
    head: str
    base: str


@dataclass
class MergeResult:
    merged: bool
    sha: Optional[str]
    message: str


@dataclass
class FileMutation:
    """Edits applied to one file; ``strategies`` lists them in application order."""
    path: str
    line_count: int
    edit_count: int
    strategies: List[EditStrategy] = field(default_factory=list)


@dataclass
class MutationPlan:
    targets: List[str] = field(default_factory=list)
    mutations: List[FileMutation] = field(default_factory=list)
    seeded: bool = False  # default files were written first

    @property
    def file_count(self) -> int:
        return len(self.targets)


@dataclass
class RunOutcome:
    status: str
    stage: Optional[Stage] = None
    cause: Optional[str] = None
    code: Optional[str] = None
    branch: Optional[str] = None
    pr_number: Optional[int] = None
    files_changed: int = 0
    seeded: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def success(cls, **kw) -> "RunOutcome":
        return cls(status="success", **kw)

    @classmethod
    def failed(cls, stage: Stage, cause: str, **kw) -> "RunOutcome":
        return cls(status="failed", stage=stage, cause=cause, **kw)

    def describe(self) -> str:
        if self.ok:
            seeded = " (seeded default files)" if self.seeded else ""
            return f"success: {self.files_changed} files, PR #{self.pr_number}, branch {self.branch}{seeded}"
        return f"failed-at-stage({self.stage.value if self.stage else '?'}): {self.cause}"
