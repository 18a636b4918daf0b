#!/usr/bin/env python3
"""CLI entry point for kafka-getting-started.

Runs the Kafka getting-started guide against the current kubectl context and
checks that it works as documented:
- kafka-getting-started helm
- kafka-getting-started stackablectl

Exit codes: 0 success, 1 invalid argument or failed preflight, 2-8 the
failing phase's error (see common.TutorialError), 130 interrupted.
"""

import argparse
import json
import logging
import signal
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

from common import InstallMode, InvalidArgumentError
from config import ConfigError, get_base_dir, load_config
from scenarios import Orchestrator, get_scenario
from validation import format_preflight_results, run_preflight_checks

SCENARIO_NAME = 'getting-started'

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

logger = logging.getLogger(__name__)


def get_version() -> str:
    """Installed package version, or 'dev' when running from a checkout."""
    try:
        return version('kafka-getting-started')
    except PackageNotFoundError:
        return 'dev'


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with 1 instead of 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    """Build the command-line parser."""
    parser = ArgumentParser(
        prog='kafka-getting-started',
        description='Run the Kafka getting-started guide and verify it works'
    )
    parser.add_argument(
        'mode',
        nargs='?',
        metavar='{helm,stackablectl}',
        help='Operator installation method'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'kafka-getting-started {get_version()}'
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='YAML config overriding the guide defaults (default: $KAFKA_TUTORIAL_CONFIG or ./kafka-tutorial.yaml)'
    )
    parser.add_argument(
        '--report-dir', '-r',
        type=Path,
        default=get_base_dir() / 'reports',
        help='Directory for run reports'
    )
    parser.add_argument(
        '--skip', '-s',
        action='append',
        default=[],
        help='Phases to skip (can be repeated)'
    )
    parser.add_argument(
        '--list-phases',
        action='store_true',
        help='List phases for the selected mode and exit'
    )
    parser.add_argument(
        '--timeout', '-t',
        type=int,
        help='Overall timeout in seconds. Checked between phases (does not interrupt running phases).'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show the commands that would be executed without running them'
    )
    parser.add_argument(
        '--preflight',
        action='store_true',
        help='Run preflight checks only (no scenario execution)'
    )
    parser.add_argument(
        '--skip-preflight',
        action='store_true',
        help='Skip preflight checks before scenario execution'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--json-output',
        action='store_true',
        help='Output structured JSON to stdout (logs go to stderr)'
    )
    return parser


def configure_logging(verbose: bool = False, json_output: bool = False) -> None:
    """Configure root logging; JSON output mode keeps stdout clean."""
    root_logger = logging.getLogger()
    if json_output:
        # Remove existing handlers and redirect to stderr
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        root_logger.addHandler(stderr_handler)
        root_logger.setLevel(logging.INFO)
    else:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    if verbose:
        root_logger.setLevel(logging.DEBUG)


def _handle_sigterm(signum, frame):
    """Turn SIGTERM into KeyboardInterrupt so the cleanup stack unwinds."""
    raise KeyboardInterrupt(f"signal {signum}")


def _handle_results(args, orchestrator: Orchestrator, success: bool) -> int:
    """Handle JSON output and return exit code."""
    if args.json_output and not args.dry_run:
        print(json.dumps(orchestrator.report.to_dict(orchestrator.context), indent=2))

    if orchestrator.error is not None:
        print(f"Error: {orchestrator.error}", file=sys.stderr)
    elif orchestrator.interrupted:
        print("Interrupted.", file=sys.stderr)

    if success and not orchestrator.interrupted:
        return 0
    return orchestrator.exit_code or 1


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, json_output=args.json_output)

    # Validate mode before anything touches the cluster
    try:
        mode = InstallMode.parse(args.mode)
    except InvalidArgumentError as e:
        if args.mode is None:
            print("Installation method argument ('helm' or 'stackablectl') required.", file=sys.stderr)
        else:
            print(str(e), file=sys.stderr)
        parser.print_usage(sys.stderr)
        return e.exit_code

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    scenario = get_scenario(SCENARIO_NAME, mode)

    if args.list_phases:
        print(f"Phases for '{SCENARIO_NAME}' with {mode.value}:")
        for name, _action, desc in scenario.get_phases(config):
            print(f"  {name}: {desc}")
        return 0

    # Handle --preflight mode (standalone check, no scenario)
    if args.preflight:
        logger.info(f"Running preflight checks for {mode.value} mode")
        ok, results = run_preflight_checks(config, mode)
        print(format_preflight_results(mode, results))
        return 0 if ok else 1

    if not args.skip_preflight and not args.dry_run:
        ok, results = run_preflight_checks(config, mode)
        if not ok:
            print(format_preflight_results(mode, results), file=sys.stderr)
            print("\nUse --skip-preflight to bypass these checks", file=sys.stderr)
            return 1
        logger.info("Pre-flight validation passed")

    orchestrator = Orchestrator(
        scenario=scenario,
        config=config,
        report_dir=args.report_dir,
        skip_phases=args.skip,
        timeout=args.timeout,
        dry_run=args.dry_run
    )

    previous = signal.signal(signal.SIGTERM, _handle_sigterm)
    try:
        success = orchestrator.run()
    finally:
        signal.signal(signal.SIGTERM, previous)

    return _handle_results(args, orchestrator, success)


if __name__ == '__main__':
    sys.exit(main())
