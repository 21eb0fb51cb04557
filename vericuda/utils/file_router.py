from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

import pathspec

SKIPPED_DIRS = {"venv", ".venv", "__pycache__", ".git", ".vericuda-trace", "node_modules"}


def load_vericudaignore(root: Path) -> pathspec.PathSpec:
    ignore_file = root / ".vericudaignore"
    if not ignore_file.exists():
        return pathspec.PathSpec.from_lines("gitwildmatch", [])
    return pathspec.PathSpec.from_lines("gitwildmatch", ignore_file.read_text(encoding="utf-8").splitlines())


def discover_bundle_files(root: Path, extra_excludes: Iterable[str] | None = None) -> List[Path]:
    """Obligation bundles (``*.json``) under ``root``, honouring ``.vericudaignore``."""
    spec = load_vericudaignore(root)
    excludes = set(extra_excludes or [])
    files: List[Path] = []
    for path in sorted(root.rglob("*.json")):
        rel = path.relative_to(root).as_posix()
        if any(part in SKIPPED_DIRS for part in path.relative_to(root).parts):
            continue
        if rel in excludes or spec.match_file(rel):
            continue
        files.append(path)
    return files
