"""Command-line interface for release-deployer."""

from __future__ import annotations

import argparse
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import AppConfig, load_config
from .executor import Executor, LocalExecutor, SecureShell
from .utils.logging import get_logger, set_verbose
from .workflow import DeploymentWorkflow, HostDeployResult

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_DEPLOY_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-deployer",
        description="Upload a release tarball to the configured hosts and unpack it via SSH.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file (default: config/default_config.json).",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging."
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    deploy_parser = subparsers.add_parser(
        "deploy", help="Upload a tarball to the configured hosts"
    )
    deploy_parser.add_argument("tarball", help="Release tarball to upload")
    deploy_parser.add_argument(
        "--host",
        dest="hosts",
        action="append",
        default=None,
        help="Only deploy to this configured host (repeatable)",
    )
    deploy_parser.add_argument(
        "--local", "-L", action="store_true",
        help="Run every step on this machine instead of over SSH",
    )
    return parser


def create_executor(config: AppConfig, local: bool = False) -> Executor:
    if local:
        return LocalExecutor(config.executor)
    return SecureShell(config.executor)


def print_summary(results: List[HostDeployResult], console: Optional[Console] = None) -> None:
    table = Table(title="Deployment summary")
    table.add_column("Host")
    table.add_column("Authority")
    table.add_column("Result")
    for result in results:
        if result.ok:
            outcome = Text("deployed", style="green")
        else:
            outcome = Text(f"failed during {result.failed_step}: {result.error}", style="red")
        # never echo the password part of the authority
        table.add_row(result.name, result.authority.split("@", 1)[-1], outcome)
    (console or Console()).print(table)


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_CONFIG_ERROR

    if args.command == "deploy":
        if not config.hosts:
            logger.error("No hosts configured")
            return EXIT_CONFIG_ERROR
        workflow = DeploymentWorkflow(config, create_executor(config, args.local))
        try:
            results = workflow.run(args.tarball, args.hosts)
        except (FileNotFoundError, ValueError) as exc:
            logger.error("%s", exc)
            return EXIT_CONFIG_ERROR
        print_summary(results)
        return EXIT_OK if all(result.ok for result in results) else EXIT_DEPLOY_FAILED

    parser.error(f"Unknown command {args.command}")
    return EXIT_CONFIG_ERROR
