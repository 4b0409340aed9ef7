from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from guidesync.app import ALL_KINDS, clear_cache, describe_policy, run_reconciliation
from guidesync.config import ConfigurationError, configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from guidesync.domain.pipeline import ReconciliationReport

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile the guide against the codex")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("check", "Report discrepancies without changing the guide"),
        ("fix", "Apply auto-correctable discrepancies to the guide"),
    ):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument(
            "--kind",
            action="append",
            choices=[str(kind) for kind in ALL_KINDS],
            help="Kind to reconcile; repeat for several (default: all kinds)",
        )

    cache = subparsers.add_parser("cache", help="Document cache commands")
    cache_sub = cache.add_subparsers(dest="cache_command", required=True)
    cache_clear = cache_sub.add_parser("clear", help="Drop cached documents")
    cache_clear.add_argument(
        "--prefix",
        type=str,
        help="Only drop documents whose URL starts with this prefix",
    )

    subparsers.add_parser("policy", help="Print the classification policy table")

    return parser.parse_args(list(argv))


def _print_policy() -> None:
    for row in describe_policy():
        print(f"{row.kind:<8} {row.field:<22} {row.disposition:<13} {row.reason}")  # noqa: T201


def _exit_code(report: ReconciliationReport) -> int:
    return 1 if report.fatal_error is not None else 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command in {"check", "fix"}:
            report = run_reconciliation(
                kinds=parsed_args.kind,
                apply_write_backs=parsed_args.command == "fix",
            )
            sys.exit(_exit_code(report))
        elif parsed_args.command == "cache" and parsed_args.cache_command == "clear":
            count = clear_cache(prefix=parsed_args.prefix)
            log.info("Removed %d cached documents", count)
        elif parsed_args.command == "policy":
            _print_policy()
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except (ConfigurationError, ValueError):
        log.exception("Configuration error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point; reads ``.env`` before running ``main``."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
