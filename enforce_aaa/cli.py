"""enforce-aaa CLI — Command-line interface for the AAA marker rule.

Commands:
  enforce-aaa fix <path>             — Annotate test methods in-place
  enforce-aaa check <path>           — Exit 1 if any file would change
  enforce-aaa describe               — Show the rule with a before/after sample
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from enforce_aaa import __version__
from enforce_aaa.autofix import (
    FixResult, fix_directory, fix_file, format_fix_diff, format_fix_result,
)
from enforce_aaa.config import AaaConfig, load_config
from enforce_aaa.errors import ConfigError
from enforce_aaa.rector import EnforceAaaPatternRector


def _load_config(args: argparse.Namespace) -> AaaConfig:
    target = args.target
    start_dir = target if os.path.isdir(target) else os.path.dirname(os.path.abspath(target))
    return load_config(getattr(args, "config", None), start_dir=start_dir)


def _run(args: argparse.Namespace, config: AaaConfig, dry_run: bool) -> List[FixResult]:
    target = args.target
    if os.path.isfile(target):
        return [fix_file(target, dry_run=dry_run)]

    if getattr(args, "parallel", False) or config.parallel:
        from enforce_aaa.parallel import parallel_fix
        workers = getattr(args, "workers", None) or config.parallel_workers
        return parallel_fix(target, dry_run=dry_run, workers=workers, config=config)

    return fix_directory(target, dry_run=dry_run, config=config)


def _report(results: List[FixResult], fmt: str, show_diff: bool) -> None:
    changed = [r for r in results if r.changed]
    failed = [r for r in results if r.error is not None]

    if fmt == "json":
        print(json.dumps({
            "files": [r.to_dict() for r in results],
            "files_scanned": len(results),
            "files_changed": len(changed),
            "files_failed": len(failed),
        }, indent=2))
        return

    for result in results:
        if result.changed or result.error is not None:
            print(format_fix_result(result, verbose=True))
            if show_diff and result.changed:
                print(format_fix_diff(result))

    if not changed and not failed:
        print("✅ No changes.")
    else:
        methods = sum(len(r.fixes_applied) for r in results)
        print(f"\n⚡ {methods} method(s) in {len(changed)} of {len(results)} file(s).")


def cmd_fix(args: argparse.Namespace) -> int:
    """Annotate test methods with Arrange / Act / Assert markers."""
    if not os.path.exists(args.target):
        print(json.dumps({"error": f"Not found: {args.target}"}))
        return 1

    try:
        config = _load_config(args)
    except ConfigError as e:
        print(e.error.to_json())
        return 1

    dry_run = args.dry_run or config.dry_run
    results = _run(args, config, dry_run=dry_run)
    _report(results, args.format or config.format, show_diff=args.diff)

    return 1 if any(r.error is not None for r in results) else 0


def cmd_check(args: argparse.Namespace) -> int:
    """Dry run that fails when any file is missing markers."""
    if not os.path.exists(args.target):
        print(json.dumps({"error": f"Not found: {args.target}"}))
        return 1

    try:
        config = _load_config(args)
    except ConfigError as e:
        print(e.error.to_json())
        return 1

    results = _run(args, config, dry_run=True)
    _report(results, args.format or config.format, show_diff=args.diff)

    return 1 if any(r.changed or r.error is not None for r in results) else 0


def cmd_describe(args: argparse.Namespace) -> int:
    """Print the rule definition."""
    definition = EnforceAaaPatternRector().get_rule_definition()
    if args.format == "json":
        print(json.dumps(definition.to_dict(), indent=2))
        return 0

    print(definition.description)
    for sample in definition.code_samples:
        print("\nBefore:\n")
        print(sample.bad_code)
        print("After:\n")
        print(sample.good_code)
    return 0


def _configure_logging(verbosity: int) -> None:
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="enforce-aaa",
        description="Enforce the Arrange-Act-Assert layout in PHPUnit test methods",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress (-v) or rule decisions (-vv)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # fix
    p_fix = subparsers.add_parser("fix", help="Annotate test methods in-place")
    p_fix.add_argument("target", help="PHP file or directory")
    p_fix.add_argument("--dry-run", action="store_true", dest="dry_run",
                       help="Show what would change without writing files")
    p_fix.add_argument("--diff", action="store_true", help="Print a unified diff per changed file")
    p_fix.add_argument("--format", choices=["pretty", "json"], default=None,
                       help="Output format (default: from config, else pretty)")
    p_fix.add_argument("--config", default=None, help="Path to .aaarc.yml / .aaarc.json")
    p_fix.add_argument("--parallel", action="store_true", help="Process files in a process pool")
    p_fix.add_argument("--workers", type=int, default=0, help="Worker processes (0 = auto)")
    p_fix.set_defaults(func=cmd_fix)

    # check
    p_check = subparsers.add_parser("check", help="Exit 1 if any test method lacks AAA markers")
    p_check.add_argument("target", help="PHP file or directory")
    p_check.add_argument("--diff", action="store_true", help="Print a unified diff per file that would change")
    p_check.add_argument("--format", choices=["pretty", "json"], default=None,
                         help="Output format (default: from config, else pretty)")
    p_check.add_argument("--config", default=None, help="Path to .aaarc.yml / .aaarc.json")
    p_check.add_argument("--parallel", action="store_true", help="Process files in a process pool")
    p_check.add_argument("--workers", type=int, default=0, help="Worker processes (0 = auto)")
    p_check.set_defaults(func=cmd_check)

    # describe
    p_describe = subparsers.add_parser("describe", help="Show the rule with a before/after sample")
    p_describe.add_argument("--format", choices=["pretty", "json"], default="pretty")
    p_describe.set_defaults(func=cmd_describe)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args.verbose)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
