from __future__ import annotations

import argparse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmdpool",
        description="A command pool to run multiple commands in parallel.",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to a run profile (.yml/.yaml, .toml, .json)",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=None,
        help="Number of concurrent tasks (default: 1)",
    )
    parser.add_argument(
        "-n",
        "--total-tasks",
        type=int,
        default=None,
        help="Total number of tasks to execute (default: run until interrupted)",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=None,
        help="Per-task timeout in seconds",
    )
    parser.add_argument(
        "-d",
        "--delay",
        dest="delay_ms",
        type=int,
        default=None,
        help="Delay between initial task launches in milliseconds (default: 100)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=None,
        help="Hide command output, only show task start/end info",
    )
    parser.add_argument(
        "--stop-on-fail",
        action="store_true",
        default=None,
        help="Stop launching new tasks after the first failure",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG, INFO, WARNING, ERROR); overrides CMDPOOL_LOG_LEVEL",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="The command and its arguments to execute",
    )

    return parser
