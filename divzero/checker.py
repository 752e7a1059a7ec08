#!/usr/bin/env python3
"""
Divide-by-zero checker for Java sources.

Parses each file with tree-sitter, runs the sign analysis over every
method, constructor, initializer and lambda, and reports integral
division / remainder sites whose divisor is not provably non-zero.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from loguru import logger

from divzero.abstract_interpreter import DivByZeroInterpreter, UnitResult
from divzero.config import AnalysisConfig
from divzero.syntaxer.context import AnalysisContext
from divzero.syntaxer.issues import Issue
from divzero.syntaxer.utils import create_java_parser

log = logging.getLogger(__name__)


@dataclass
class FileResult:
    """Findings for one source file."""

    path: Optional[str]
    issues: List[Issue] = field(default_factory=list)
    units: List[UnitResult] = field(default_factory=list)
    has_syntax_errors: bool = False


@dataclass
class CheckReport:
    """Aggregate over all checked files."""

    files: List[FileResult] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def issues(self) -> List[Issue]:
        return [issue for f in self.files for issue in f.issues]

    @property
    def clean(self) -> bool:
        return not self.issues and not self.errors

    def to_dict(self) -> dict:
        return {
            "files": len(self.files),
            "issues": [issue.to_dict() for issue in self.issues],
            "errors": dict(self.errors),
        }


class DivByZeroChecker:
    """
    Runs the analysis on sources, files and directories.

    Example:
        report = DivByZeroChecker().check_paths([Path("src/main/java")])
        for issue in report.issues:
            print(issue.format())
    """

    def __init__(self, config: AnalysisConfig | None = None):
        self.config = config or AnalysisConfig()
        self.parser = create_java_parser()

    def check_source(self, source: bytes | str, path: str | None = None) -> FileResult:
        if isinstance(source, str):
            source = source.encode("utf-8")
        tree = self.parser.parse(source)
        result = FileResult(path=path, has_syntax_errors=tree.root_node.has_error)
        if result.has_syntax_errors:
            log.warning("%s: syntax errors, results may be incomplete", path or "<source>")

        context = AnalysisContext(tree, source, path)
        interpreter = DivByZeroInterpreter(context, self.config)
        result.units = interpreter.run()
        result.issues = interpreter.issues
        for issue in result.issues:
            log.debug("divide.by.zero: %s", issue)
        return result

    def check_file(self, path: Path) -> FileResult:
        log.debug("parse sourcefile %s", path)
        return self.check_source(path.read_bytes(), str(path))

    def find_java_files(self, directory: Path) -> List[Path]:
        """All Java files below a directory, in a stable order."""
        return sorted(p for p in directory.rglob("*.java") if p.is_file())

    def check_paths(self, paths: Iterable[Path]) -> CheckReport:
        report = CheckReport()
        for path in paths:
            if path.is_dir():
                files = self.find_java_files(path)
                if not files:
                    log.warning("No Java files found in %s", path)
            else:
                files = [path]
            for source_file in files:
                try:
                    report.files.append(self.check_file(source_file))
                except OSError as e:
                    log.error("Could not read %s: %s", source_file, e)
                    report.errors[str(source_file)] = str(e)
        return report


def _configure_logging(quiet: bool, verbose: bool) -> None:
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(message)s")

    logger.remove()
    logger.add(sys.stderr, format="[{level}] {message}", level="DEBUG" if verbose else "WARNING")
    logger.enable("divzero")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="divzero",
        description="Divide-by-zero checker - prove integer divisors non-zero with a sign analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Single file
  divzero src/main/java/com/example/Accounts.java

  # Directory mode - all Java files below the directory
  divzero src/main/java

  # Machine readable output
  divzero --format json src/main/java
        """,
    )
    parser.add_argument("paths", nargs="+", type=Path, metavar="PATH",
                        help="Java source files or directories")
    parser.add_argument("--format", choices=("text", "json"), default="text",
                        help="Output format (default: text)")
    parser.add_argument("--known-types-only", action="store_true",
                        help="Only check divisions whose operand types are both known integral")
    parser.add_argument("--max-loop-iterations", type=int, default=AnalysisConfig.max_loop_iterations,
                        help="Passes over a loop body before widening (default: %(default)s)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Quiet mode: only print findings")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Trace the abstract interpreter")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.quiet, args.verbose)

    try:
        config = AnalysisConfig(
            max_loop_iterations=args.max_loop_iterations,
            known_types_only=args.known_types_only,
        )
    except ValueError as e:
        parser.error(str(e))

    for path in args.paths:
        if not path.exists():
            log.error(f"Path not found: {path}")
            sys.exit(1)

    checker = DivByZeroChecker(config)
    report = checker.check_paths(args.paths)

    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        for issue in report.issues:
            print(issue.format())

    log.info(
        "%d file(s) checked, %d divide-by-zero issue(s), %d error(s)",
        len(report.files), len(report.issues), len(report.errors),
    )
    status = 0 if report.clean else 1
    sys.exit(status)


if __name__ == "__main__":
    main()
