"""enforce-aaa Auto-Fix — apply the AAA marker rule to PHP files.

Parses each file, runs `EnforceAaaPatternRector` on every class method
and writes the file back only when some marker changed. A file that
cannot be read or parsed is reported on its FixResult and never stops
the other files from being processed.

Usage:
    enforce-aaa fix tests/                # Annotate all test files in-place
    enforce-aaa fix tests/ --dry-run      # Show what would change
    enforce-aaa check tests/              # Exit 1 if anything would change
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from enforce_aaa.config import AaaConfig
from enforce_aaa.errors import AaaError, ParseError, io_error
from enforce_aaa.php_adapter import parse_php, print_php
from enforce_aaa.rector import EnforceAaaPatternRector

logger = logging.getLogger(__name__)


@dataclass
class MethodFix:
    """A test method whose phase markers were rewritten."""
    method: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {"method": self.method, "line": self.line}


@dataclass
class FixResult:
    """Result of running the rule on a file."""
    filepath: str
    fixes_applied: List[MethodFix] = field(default_factory=list)
    methods_scanned: int = 0
    original_source: str = ""
    fixed_source: str = ""
    dry_run: bool = False
    error: Optional[AaaError] = None

    @property
    def changed(self) -> bool:
        return self.original_source != self.fixed_source

    @property
    def summary(self) -> str:
        if self.error is not None:
            return f"❌ {self.filepath}: {self.error.message}"
        applied = len(self.fixes_applied)
        if applied == 0:
            return f"✅ {self.filepath}: No changes."
        verb = "would be annotated" if self.dry_run else "annotated"
        return f"⚡ {self.filepath}: {applied} method{'s' if applied != 1 else ''} {verb}"

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "file": self.filepath,
            "changed": self.changed,
            "dry_run": self.dry_run,
            "methods_scanned": self.methods_scanned,
            "fixes": [f.to_dict() for f in self.fixes_applied],
        }
        if self.error is not None:
            d["error"] = self.error.to_dict()
        return d


def fix_source(source: str, filename: str = "<php>") -> Tuple[str, List[MethodFix], int]:
    """Apply the rule to PHP source.

    Returns (fixed_source, fixes, methods_scanned). Raises ParseError.
    """
    php_file = parse_php(source, filename=filename)
    rector = EnforceAaaPatternRector()
    fixes: List[MethodFix] = []

    for method in php_file.methods:
        if rector.refactor(method) is not None:
            line = method.location.line if method.location else 0
            fixes.append(MethodFix(method=method.name, line=line))

    if not fixes:
        return source, fixes, len(php_file.methods)
    return print_php(php_file), fixes, len(php_file.methods)


def fix_file(filepath: str, dry_run: bool = False) -> FixResult:
    """Annotate one PHP file.

    Args:
        filepath: Path to source file.
        dry_run: If True, compute the changes without writing them.

    Returns:
        FixResult with the annotated methods, or the error that stopped it.
    """
    result = FixResult(filepath=filepath, dry_run=dry_run)

    try:
        with open(filepath, "r", encoding="utf-8", newline="") as f:
            source = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("%s: %s", filepath, e)
        result.error = io_error(filepath, str(e))
        return result

    result.original_source = source
    result.fixed_source = source

    try:
        fixed_source, fixes, scanned = fix_source(source, filename=filepath)
    except ParseError as e:
        logger.warning("%s: skipped, %s", filepath, e)
        result.error = e.errors[0]
        return result

    result.fixes_applied = fixes
    result.methods_scanned = scanned
    result.fixed_source = fixed_source

    if result.changed and not dry_run:
        try:
            with open(filepath, "w", encoding="utf-8", newline="") as f:
                f.write(fixed_source)
        except OSError as e:
            logger.warning("%s: %s", filepath, e)
            result.error = io_error(filepath, str(e), action="write")
            result.fixes_applied = []
            result.fixed_source = source
            return result
        logger.info("%s: annotated %d method(s)", filepath, len(fixes))

    return result


def fix_directory(dirpath: str, dry_run: bool = False,
                  config: Optional[AaaConfig] = None) -> List[FixResult]:
    """Fix all PHP files in a directory."""
    from enforce_aaa.scanner import discover_files

    return [fix_file(path, dry_run=dry_run) for path in discover_files(dirpath, config)]


def format_fix_result(result: FixResult, verbose: bool = False) -> str:
    """Format a FixResult for terminal output."""
    lines = [result.summary]

    if verbose and result.error is not None and result.error.location:
        lines.append(f"  at {result.error.location}")

    if verbose:
        for fix in result.fixes_applied:
            lines.append(f"  ⚡ L{fix.line}: {fix.method}")

    return "\n".join(lines)


def format_fix_diff(result: FixResult) -> str:
    """Show a unified diff of changes."""
    if not result.changed:
        return "No changes."

    diff = difflib.unified_diff(
        result.original_source.splitlines(keepends=True),
        result.fixed_source.splitlines(keepends=True),
        fromfile=f"a/{result.filepath}",
        tofile=f"b/{result.filepath}",
    )
    return "".join(diff)
