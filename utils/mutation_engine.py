#!/usr/bin/env python3
"""Randomized, harmless textual edits for the activity agent.

The engine picks a random subset of candidate files and applies a random
number of small line edits to each one. Nothing here is deterministic unless
a seeded ``random.Random`` and a fixed clock are injected, which is how the
tests replay exact selections.

Edit indices are drawn against the file's original line count, while the
spacer strategy grows the in-memory line list. Later edits in the same file
may therefore land on a shifted line. This relaxed multi-edit behavior is
intentional: ``k`` edits are attempted, not ``k`` distinct lines touched.

TODO stamps overwrite prose lines, blank lines and comments. In code and
config formats a code line is never overwritten: the stamp is inserted as its
own comment line above the statement, so Python, Rust and YAML keep parsing.
A spacer after an unterminated last line first adds the missing terminator
and then the blank line.
"""

from __future__ import annotations

import logging
import os
import random
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from configs.config import Config
from utils.errors import FilesystemError
from utils.run_models import EditStrategy, FileMutation, MutationPlan

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
MARKER_TEXT = "bot-update"

STRATEGIES: Tuple[EditStrategy, ...] = (
    EditStrategy.ANNOTATE,
    EditStrategy.SPACER,
    EditStrategy.REINDENT,
    EditStrategy.TODO_STAMP,
)


@dataclass(frozen=True)
class FileSyntax:
    """Comment tokens and whitespace rules for one file type."""
    comment_open: Optional[str]
    comment_close: str = ""
    indent_sensitive: bool = False
    prose: bool = False

    @property
    def has_comments(self) -> bool:
        return self.comment_open is not None

    def comment(self, text: str) -> str:
        if self.comment_close:
            return f"{self.comment_open} {text} {self.comment_close}"
        return f"{self.comment_open} {text}"

    def is_comment(self, stripped: str) -> bool:
        return bool(self.comment_open) and stripped.startswith(self.comment_open)


SYNTAX_BY_EXTENSION = {
    "rs": FileSyntax("//"),
    "py": FileSyntax("#", indent_sensitive=True),
    "toml": FileSyntax("#"),
    "yaml": FileSyntax("#", indent_sensitive=True),
    "yml": FileSyntax("#", indent_sensitive=True),
    "md": FileSyntax("<!--", "-->", prose=True),
    "txt": FileSyntax("#", prose=True),
    # JSON has no comments; only whitespace edits are harmless there
    "json": FileSyntax(None),
}

DEFAULT_SYNTAX = FileSyntax("#")


def syntax_for(path: str) -> FileSyntax:
    _, ext = os.path.splitext(path)
    return SYNTAX_BY_EXTENSION.get(ext[1:].lower(), DEFAULT_SYNTAX)


def split_lines(text: str) -> List[str]:
    """Split on ``\\n`` keeping each line's terminator (``\\n`` or ``\\r\\n``)."""
    if not text:
        return []
    pieces = text.split("\n")
    lines = [p + "\n" for p in pieces[:-1]]
    if pieces[-1]:
        lines.append(pieces[-1])
    return lines


def split_eol(line: str) -> Tuple[str, str]:
    if line.endswith("\r\n"):
        return line[:-2], "\r\n"
    if line.endswith("\n"):
        return line[:-1], "\n"
    return line, ""


def detect_eol(lines: Sequence[str]) -> str:
    for line in lines:
        _, eol = split_eol(line)
        if eol:
            return eol
    return "\n"


def _leading_ws(body: str) -> str:
    return body[: len(body) - len(body.lstrip(" \t"))]


def _continues(body: str) -> bool:
    return body.rstrip().endswith("\\")


def _statement_start(lines: Sequence[str], index: int) -> int:
    while index > 0 and _continues(split_eol(lines[index - 1])[0]):
        index -= 1
    return index


def _statement_end(lines: Sequence[str], index: int) -> int:
    while index < len(lines) - 1 and _continues(split_eol(lines[index])[0]):
        index += 1
    return index


def _comment_indent(lines: Sequence[str], index: int) -> str:
    """Indentation of the first non-blank line at or after ``index``."""
    for line in lines[index:]:
        body, _ = split_eol(line)
        if body.strip():
            return _leading_ws(body)
    return ""


def read_text(path: str) -> str:
    """Read a file without newline translation; missing files read as empty."""
    try:
        with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
            return f.read()
    except FileNotFoundError:
        return ""
    except OSError as e:
        raise FilesystemError(f"Failed to read {path}: {e}", path=path)


def write_text_atomic(path: str, content: str) -> None:
    """Replace ``path`` with ``content`` via a temp file and ``os.replace``."""
    dirname = os.path.dirname(os.path.abspath(path))
    tmp_path = None
    try:
        os.makedirs(dirname, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(dir=dirname, prefix=".tmp_", suffix=os.path.splitext(path)[1])
        with os.fdopen(tmp_fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if os.path.exists(path):
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise FilesystemError(f"Failed to write {path}: {e}", path=path)


class MutationEngine:
    """Selects target files and rewrites them with small random edits."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        now: Optional[Callable[[], datetime]] = None,
        *,
        indent_unit: str = Config.INDENT_UNIT,
        max_indent_units: int = Config.MAX_INDENT_UNITS,
    ):
        self.rng = rng or random.Random()
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.indent_unit = indent_unit
        self.max_indent_units = max_indent_units

    # -------- Selection --------
    def select_targets(self, candidates: Sequence[str], min_files: int, max_files: int) -> List[str]:
        """Choose between min_files and max_files distinct candidates.

        Both bounds are clamped to the number of candidates available.
        """
        upper = min(max_files, len(candidates))
        lower = min(min_files, upper)
        if upper <= 0:
            return []
        count = self.rng.randint(lower, upper)
        return self.rng.sample(list(candidates), count)

    def edit_count(self, line_count: int, min_lines: int, max_lines: int) -> int:
        upper = min(max_lines, line_count)
        lower = min(min_lines, upper)
        return self.rng.randint(lower, upper)

    # -------- Mutation --------
    def mutate(self, path: str, min_lines: int, max_lines: int) -> FileMutation:
        """Apply random edits to one file and rewrite it atomically.

        An empty or missing file receives a single marker line.

        Raises:
            FilesystemError: If the file cannot be read or written
        """
        syntax = syntax_for(path)
        lines = split_lines(read_text(path))
        original_count = len(lines)
        eol = detect_eol(lines)
        stamp = self.now().strftime(TIMESTAMP_FORMAT)

        applied: List[EditStrategy] = []
        if original_count == 0:
            lines = [eol]
            applied.append(self.apply_edit(lines, 0, EditStrategy.ANNOTATE, syntax, eol, stamp))
        else:
            for _ in range(self.edit_count(original_count, min_lines, max_lines)):
                index = self.rng.randrange(original_count)
                strategy = self.rng.choice(STRATEGIES)
                applied.append(self.apply_edit(lines, index, strategy, syntax, eol, stamp))

        write_text_atomic(path, "".join(lines))
        logger.debug(f"Mutated {path}: {len(applied)} edits over {original_count} lines")
        return FileMutation(path=path, line_count=original_count, edit_count=len(applied), strategies=applied)

    def apply_edit(
        self,
        lines: List[str],
        index: int,
        strategy: EditStrategy,
        syntax: FileSyntax,
        eol: str,
        stamp: str,
    ) -> EditStrategy:
        """Apply one edit in place and return the strategy actually used."""
        if strategy in (EditStrategy.ANNOTATE, EditStrategy.TODO_STAMP) and not syntax.has_comments:
            strategy = EditStrategy.SPACER
        if strategy == EditStrategy.REINDENT and syntax.indent_sensitive:
            strategy = EditStrategy.SPACER

        body, line_eol = split_eol(lines[index])
        # a trailing comment would swallow a backslash continuation
        if strategy == EditStrategy.ANNOTATE and _continues(body):
            strategy = EditStrategy.TODO_STAMP

        if strategy == EditStrategy.ANNOTATE:
            lines[index] = self._annotate(body, syntax, stamp) + line_eol
        elif strategy == EditStrategy.SPACER:
            end = _statement_end(lines, index)
            body, line_eol = split_eol(lines[end])
            if not line_eol:
                lines[end] = body + eol
                line_eol = eol
            lines.insert(end + 1, line_eol)
        elif strategy == EditStrategy.REINDENT:
            content = body.lstrip(" \t")
            current = _leading_ws(body) if content else body
            # never pick the indentation the line already has
            choices = [u for u in range(self.max_indent_units + 1) if self.indent_unit * u != current]
            lines[index] = self.indent_unit * self.rng.choice(choices) + content + line_eol
        elif strategy == EditStrategy.TODO_STAMP:
            todo = syntax.comment(f"TODO: revisit ({stamp})")
            stripped = body.strip()
            if syntax.prose or not stripped or syntax.is_comment(stripped):
                indent = _leading_ws(body) if stripped else _comment_indent(lines, index)
                lines[index] = indent + todo + (line_eol or eol)
            else:
                # code lines stay; the stamp goes above the statement
                start = _statement_start(lines, index)
                lines.insert(start, _comment_indent(lines, start) + todo + eol)
        return strategy

    def _annotate(self, body: str, syntax: FileSyntax, stamp: str) -> str:
        marker = f"{MARKER_TEXT} {stamp}"
        stripped = body.strip()
        if not stripped:
            return body + syntax.comment(marker)
        if syntax.is_comment(stripped):
            trimmed = body.rstrip()
            close = syntax.comment_close
            if close and trimmed.endswith(close):
                return trimmed[: -len(close)].rstrip() + f" [{marker}] " + close
            return trimmed + f" [{marker}]"
        return body.rstrip() + "  " + syntax.comment(marker)

    # -------- Plan --------
    def build_plan(
        self,
        root: str,
        candidates: Sequence[str],
        file_range: Tuple[int, int],
        line_range: Tuple[int, int],
    ) -> MutationPlan:
        """Select targets under ``root`` and mutate each of them."""
        targets = self.select_targets(candidates, *file_range)
        logger.info(f"Will modify {len(targets)} of {len(candidates)} candidate files")
        plan = MutationPlan(targets=targets)
        for rel in targets:
            plan.mutations.append(self.mutate(os.path.join(root, rel), *line_range))
        return plan
