"""CLI entry point: check every alias and deactivate the breached ones."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional, Sequence

from scripts.aliaswatch.config import load_config
from scripts.aliaswatch.errors import RunAborted
from scripts.aliaswatch.logging_config import configure_logging
from scripts.aliaswatch.models import CheckResult, Report
from scripts.aliaswatch.pipeline import build_pipeline

logger = logging.getLogger("aliaswatch.cli")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def _status_label(result: CheckResult) -> str:
    if result.error is not None:
        return f"ERROR ({result.error.value}): {result.error_message}"
    if result.deactivated:
        return "deactivated"
    if result.breached:
        return "breached (not deactivated)"
    return "ok"


def print_table(report: Report, out=None) -> None:
    out = out or sys.stdout
    fmt = "{:<40}  {:<40}  {}"
    print(fmt.format("ADDRESS", "BREACHES", "STATUS"), file=out)
    print("-" * 110, file=out)
    for r in report:
        names = ", ".join(b.name for b in r.breaches) or "-"
        print(fmt.format(r.alias.address, names, _status_label(r)), file=out)
    s = report.summary()
    print(
        f"\n{s['checked']} checked, {s['breached']} breached, "
        f"{s['deactivated']} deactivated, {s['errors']} errors",
        file=out,
    )


def print_json(report: Report, out=None) -> None:
    print(json.dumps(report.to_dict(), indent=2), file=out or sys.stdout)


def cmd_check(args: argparse.Namespace) -> int:
    """Run the full check; returns the process exit code."""
    try:
        config = load_config(args.env_file)
    except ValueError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    pipeline, clients = build_pipeline(config, dry_run=args.dry_run)
    try:
        report = pipeline.run()
    except RunAborted as exc:
        err = exc.error
        print(
            f"Aborted: {err.SERVICE} {err.kind.value} error: {err.args[0]} "
            f"({len(exc.report)} aliases checked before the failure)",
            file=sys.stderr,
        )
        return EXIT_FATAL
    finally:
        for client in clients:
            client.close()

    if args.format == "json":
        print_json(report)
    else:
        print_table(report)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="aliaswatch",
        description="Deactivate AnonAddy aliases found in Have I Been Pwned breaches",
        epilog=(
            "HIBP rate limits are waited out and the same alias is retried, up to "
            "HIBP_MAX_RATE_LIMIT_RETRIES times (default 3). An alias still rate "
            "limited after that is reported with a rate_limited error and the "
            "run moves on."
        ),
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report breached aliases without deactivating them",
    )
    parser.add_argument(
        "--format", "-f",
        choices=["table", "json"],
        default="table",
        help="Report format (default: table)",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Load environment variables from this file instead of ./.env",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        help="Log level for the JSON log on stderr (default: INFO)",
    )
    parser.set_defaults(func=cmd_check)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
