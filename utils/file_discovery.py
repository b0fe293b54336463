#!/usr/bin/env python3
"""Candidate file discovery for the mutation engine.

Walks the working copy and returns repository-relative POSIX paths of text
files with an allow-listed extension. Recomputed every run.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Tuple

from utils.errors import FilesystemError

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = frozenset({"rs", "py", "txt", "md", "toml", "json", "yaml", "yml"})

SKIP_DIRS = frozenset({
    ".git",
    "target",
    "build",
    "dist",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
})

SKIP_FILES = frozenset({"Cargo.lock"})

# (relative path, content) written when the repository has no candidates
SEED_FILES: Tuple[Tuple[str, str], ...] = (
    (
        "README.md",
        "# Repository Activity\n\nThis repository is maintained by an automation bot.\n",
    ),
    (
        "src/lib.py",
        '"""Sample library module."""\n\n\ndef hello() -> str:\n    return "Hello, world!"\n',
    ),
)


def is_candidate(name: str) -> bool:
    if name in SKIP_FILES:
        return False
    _, ext = os.path.splitext(name)
    return ext[1:].lower() in TEXT_EXTENSIONS


def collect_candidates(root: str) -> List[str]:
    """Return sorted candidate paths under ``root``.

    Raises:
        FilesystemError: If the root cannot be walked
    """
    base = Path(root)
    if not base.is_dir():
        raise FilesystemError(f"Repository path is not a directory: {root}", code="NOT_FOUND", path=root)

    errors: List[OSError] = []
    result: List[str] = []
    for dirpath, dirnames, filenames in os.walk(base, onerror=errors.append):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for fname in filenames:
            if not is_candidate(fname):
                continue
            full = Path(dirpath) / fname
            if not full.is_file():
                continue
            result.append(full.relative_to(base).as_posix())

    if errors:
        raise FilesystemError(f"Failed to walk {root}: {errors[0]}", path=root)

    result.sort()
    logger.debug(f"Discovered {len(result)} candidate files under {root}")
    return result


def write_seed_files(root: str) -> List[str]:
    """Create the default seed files; existing files are left alone.

    Returns:
        Relative paths actually written
    """
    written: List[str] = []
    for rel, content in SEED_FILES:
        target = Path(root) / rel
        if target.exists():
            continue
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise FilesystemError(f"Failed to write seed file {rel}: {e}", path=str(target))
        written.append(rel)
    logger.info(f"Seeded {len(written)} default files: {', '.join(written) or 'none'}")
    return written
