from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .coordinator import prepare_directory, run_scrape
from .errors import ConfigurationError
from .logging_config import setup_logging, log_event
from .models import RunConfig
from .schema import load_schema
from .settings import load_settings

logger = logging.getLogger('cli')

EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser('rolescout', description='Scrape job listings per role into Excel workbooks.')
    ap.add_argument('--location', required=True, help='Location for the job search')
    ap.add_argument('--experience', required=True, type=int, help='Years of experience to match against listed ranges')
    ap.add_argument('--roles', required=True, nargs='+', help='Job roles to search for (space or comma separated)')
    ap.add_argument('--freshness', type=int, default=7, help='Only listings posted within this many days')
    ap.add_argument('--timeout', type=float, default=60, help='Per-role time limit in minutes')
    ap.add_argument('--directory', type=Path, default=Path.home() / 'Downloads', help='Directory to save the Excel files')
    ap.add_argument('--concurrency', type=int, help='Max roles scraped at once (default: all roles)')
    ap.add_argument('--schema', type=Path, help='YAML file overriding the result page selectors')
    ap.add_argument('--headed', action='store_true', help='Show the browser window')
    ap.add_argument('--debug', action='store_true', help='Enable debug logging')
    return ap


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig.build(
        location=args.location,
        experience=args.experience,
        roles=args.roles,
        freshness=args.freshness,
        timeout_minutes=args.timeout,
        directory=args.directory,
        concurrency=args.concurrency,
        headless=not args.headed,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug)
    try:
        config = config_from_args(args)
        try:
            schema = load_schema(args.schema)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        prepare_directory(config.directory)
    except ConfigurationError as e:
        logger.error(str(e))
        log_event('config_error', message=str(e))
        return EXIT_CONFIG_ERROR
    summary = run_scrape(config, settings=load_settings(), schema=schema)
    return summary.exit_code


if __name__ == '__main__':
    sys.exit(main())
