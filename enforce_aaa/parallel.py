"""enforce-aaa Parallel Fixing — Multi-process file processing.

Every file is annotated independently of the others, so large test
suites can be spread over a process pool.

Usage:
    from enforce_aaa.parallel import parallel_fix
    results = parallel_fix("tests/", workers=4)
"""

from __future__ import annotations

import logging
from multiprocessing import Pool, cpu_count
from typing import List, Optional, Tuple

from enforce_aaa.autofix import FixResult, fix_file
from enforce_aaa.config import AaaConfig
from enforce_aaa.scanner import discover_files

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Worker function (must be top-level for pickling)
# ---------------------------------------------------------------------------

def _fix_single_file(args: Tuple[str, bool]) -> FixResult:
    filepath, dry_run = args
    return fix_file(filepath, dry_run=dry_run)


# ---------------------------------------------------------------------------
# Parallel Fixer
# ---------------------------------------------------------------------------

def parallel_fix(root: str, dry_run: bool = False, workers: int = 0,
                 config: Optional[AaaConfig] = None) -> List[FixResult]:
    """Annotate the PHP files under `root` using a process pool.

    Args:
        root: Root directory to scan
        dry_run: Compute changes without writing files
        workers: Number of worker processes (0 = auto = cpu_count)
        config: Include/exclude patterns

    Returns:
        One FixResult per file, in discovery order
    """
    files = discover_files(root, config)
    if not files:
        return []

    # Determine worker count
    if workers <= 0:
        workers = min(cpu_count(), len(files), 8)  # Cap at 8 workers
    workers = max(1, workers)

    work_items = [(f, dry_run) for f in files]

    if workers == 1 or len(files) <= 2:
        # Sequential for small sets (avoid multiprocessing overhead)
        return [_fix_single_file(item) for item in work_items]

    logger.info("Annotating %d files with %d workers", len(files), workers)
    with Pool(processes=workers) as pool:
        return pool.map(_fix_single_file, work_items)
