from __future__ import annotations

import argparse
import sys

from cmdpool._logging import setup_logging
from cmdpool.config import ConfigError, RunConfiguration, load_configuration
from cmdpool.executor import Orchestrator, RunSummary

from .args import build_parser
from .report import ConsoleReporter, print_header, print_summary


def run_cli(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        setup_logging(level=args.log_level)
        return cmd_run(args)

    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        return 130


def main() -> None:
    sys.exit(run_cli())


def cmd_run(args: argparse.Namespace) -> int:
    config = _config_from(args)
    print_header(config)
    summary = _run_with(config)
    print_summary(summary)
    return 1 if summary.failed else 0


def _config_from(args: argparse.Namespace) -> RunConfiguration:
    command: list[str] = list(args.command)
    if command and command[0] == "--":
        command = command[1:]

    overrides = {
        "command": command or None,
        "concurrency": args.concurrency,
        "total_tasks": args.total_tasks,
        "timeout": args.timeout,
        "delay_ms": args.delay_ms,
        "quiet": args.quiet,
        "stop_on_fail": args.stop_on_fail,
    }
    return load_configuration(args.config, overrides)


def _run_with(config: RunConfiguration) -> RunSummary:
    reporter = ConsoleReporter(quiet=config.quiet)
    orchestrator = Orchestrator(config, on_event=reporter)
    return orchestrator.run()
