"""enforce-aaa Directory Scanner — find the PHP files to annotate.

Walks a project directory, respects .gitignore and the include/exclude
patterns of the project configuration.

Usage:
    from enforce_aaa.scanner import discover_files
    files = discover_files("tests/")
"""

from __future__ import annotations

import fnmatch
import os
from typing import List, Optional, Set

from enforce_aaa.config import AaaConfig

PHP_EXTENSIONS = {".php"}


# ---------------------------------------------------------------------------
# Gitignore Parser
# ---------------------------------------------------------------------------

def _parse_gitignore(root: str) -> List[str]:
    """Parse .gitignore patterns from a directory."""
    patterns: List[str] = []
    gitignore_path = os.path.join(root, ".gitignore")
    if os.path.isfile(gitignore_path):
        with open(gitignore_path, "r") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    patterns.append(line)
    # Always ignore common directories
    patterns.extend([
        ".git", "vendor", "node_modules", "var", ".idea",
    ])
    return patterns


def _is_ignored(path: str, patterns: List[str], root: str) -> bool:
    """Check if a path matches any gitignore pattern."""
    rel = os.path.relpath(path, root)
    basename = os.path.basename(path)
    for pattern in patterns:
        if fnmatch.fnmatch(basename, pattern):
            return True
        if fnmatch.fnmatch(rel, pattern):
            return True
        if fnmatch.fnmatch(rel, pattern.rstrip("/") + "/*"):
            return True
    return False


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------

def discover_files(root: str, config: Optional[AaaConfig] = None,
                   extensions: Optional[Set[str]] = None,
                   ignore_patterns: Optional[List[str]] = None) -> List[str]:
    """Discover PHP files in a directory tree.

    Args:
        root: Root directory to scan
        config: Include/exclude patterns, matched against paths relative to root
        extensions: File extensions to include (default: .php)
        ignore_patterns: Gitignore-style patterns to exclude
    """
    if config is None:
        config = AaaConfig()

    if extensions is None:
        extensions = PHP_EXTENSIONS

    if ignore_patterns is None:
        ignore_patterns = _parse_gitignore(root)

    files: List[str] = []
    root = os.path.abspath(root)

    for dirpath, dirnames, filenames in os.walk(root):
        # Filter out ignored directories (in-place to prevent os.walk descent)
        dirnames[:] = [
            d for d in dirnames
            if not _is_ignored(os.path.join(dirpath, d), ignore_patterns, root)
        ]

        for filename in filenames:
            filepath = os.path.join(dirpath, filename)
            ext = os.path.splitext(filename)[1]
            if ext not in extensions or _is_ignored(filepath, ignore_patterns, root):
                continue
            if config.accepts(os.path.relpath(filepath, root)):
                files.append(filepath)

    return sorted(files)
