"""Command-line front end for the scrubber.

Reads a file (or stdin), runs the pattern-only pipeline and writes the
sanitized text to stdout.  Statistics go to stderr so piped output stays
clean.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Final

from config import get_settings
from scrubber.decision import Decision
from scrubber.options import MODE_BLOCK, MODE_SANITIZE, BlockThreshold, SanitizeOptions
from scrubber.patterns import PatternCatalogError
from scrubber.pipeline import get_sanitizer

EXIT_OK: Final[int] = 0
EXIT_BLOCKED: Final[int] = 1
EXIT_USAGE: Final[int] = 2


class CLIError(RuntimeError):
    """CLI failure with an explicit process exit code."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {raw!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError("threshold must be at least 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrubber",
        description=(
            "Detect and redact secrets and prompt-injection phrases.\n\n"
            "Examples:\n"
            "  scrubber config.yml                 Redact secrets in a file\n"
            "  cat .env | scrubber                 Read from stdin\n"
            "  scrubber --block --secrets 1 app.log\n"
            "  scrubber -q < input.txt > output.txt\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("file", nargs="?", default=None, help="Input file (default: stdin)")
    parser.add_argument(
        "-m",
        "--mode",
        choices=(MODE_SANITIZE, MODE_BLOCK),
        default=MODE_SANITIZE,
        help="Decision mode (default: sanitize).",
    )
    parser.add_argument(
        "-b",
        "--block",
        dest="mode",
        action="store_const",
        const=MODE_BLOCK,
        help="Shorthand for --mode block.",
    )
    parser.add_argument(
        "-s",
        "--secrets",
        type=_positive_int,
        default=None,
        help="Block threshold for secrets (default: 3).",
    )
    parser.add_argument(
        "-i",
        "--injections",
        type=_positive_int,
        default=None,
        help="Block threshold for injections (default: 2).",
    )
    parser.add_argument(
        "--high-severity",
        type=_positive_int,
        default=None,
        help="Block threshold for critical/high findings (default: 1).",
    )
    parser.add_argument(
        "--no-injections",
        dest="detect_injections",
        action="store_false",
        help="Only look for secrets.",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress statistics output.")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show per-pattern threat counts."
    )
    return parser


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_input(path: str | None) -> str:
    if path:
        try:
            return Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CLIError(f"cannot read {path}: {type(exc).__name__}") from None
    if sys.stdin is None or sys.stdin.isatty():
        raise CLIError("no input provided; pass a file or pipe content on stdin")
    return sys.stdin.read()


def _build_options(args: argparse.Namespace) -> SanitizeOptions:
    settings = get_settings()
    threshold = BlockThreshold(
        secrets=args.secrets or settings.block_secrets_threshold,
        injections=args.injections or settings.block_injections_threshold,
        high_severity=args.high_severity or settings.block_high_severity_threshold,
    )
    return SanitizeOptions(
        mode=args.mode,
        block_threshold=threshold,
        detect_injections=args.detect_injections,
    )


def _format_threats(decision: Decision) -> str:
    by_name = decision.summary.by_name
    if not by_name:
        return ""
    catalog = get_sanitizer().scanner.catalog
    lines = ["Threats detected:"]
    for name, count in sorted(by_name.items()):
        pattern = catalog.get(name)
        severity = pattern.severity if pattern is not None else "medium"
        lines.append(f"  - {name} ({severity}): {count}x")
    return "\n".join(lines)


def _report(decision: Decision, args: argparse.Namespace) -> None:
    if args.quiet:
        return
    if decision.blocked:
        print(f"BLOCKED: {decision.reason}", file=sys.stderr)
    else:
        stats = []
        if decision.summary.secrets:
            stats.append(f"{decision.summary.secrets} secret(s) redacted")
        if decision.summary.injections:
            stats.append(f"{decision.summary.injections} injection(s) removed")
        if stats:
            print(", ".join(stats), file=sys.stderr)
        else:
            print("No threats detected - content is clean", file=sys.stderr)
    if args.verbose:
        details = _format_threats(decision)
        if details:
            print(details, file=sys.stderr)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, sanitize the input, and return the process exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:
        return EXIT_USAGE if exc.code else EXIT_OK

    settings = get_settings()
    level = logging.DEBUG if args.verbose else max(
        getattr(logging, settings.log_level, logging.INFO), logging.WARNING
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        content = _read_input(args.file)
        decision = get_sanitizer().sanitize_sync(content, _build_options(args))
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    except PatternCatalogError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_BLOCKED

    if decision.blocked:
        _report(decision, args)
        return EXIT_BLOCKED

    sys.stdout.write(decision.sanitized_text or "")
    sys.stdout.flush()
    _report(decision, args)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    return run_cli(argv)


def cli_entrypoint() -> None:
    """Console-script entrypoint."""
    raise SystemExit(run_cli())


if __name__ == "__main__":
    cli_entrypoint()
