#!/usr/bin/env python3
"""
Command line entry point for the parameter harvester.
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger

from . import __version__
from .config import load_config, validate_config
from .errors import ConfigurationError
from .orchestrator import HarvestRunner
from .output import OUTPUT_FORMATS, load_domain_list, print_results, write_results
from .url_discovery.url_cleaner import DEFAULT_PLACEHOLDER

BANNER = r"""
                                         __
    ____  ____ __________ _____ ___     / /_  ____ _______   _____  _____/ /_
   / __ \/ __ `/ ___/ __ `/ __ `__ \   / __ \/ __ `/ ___/ | / / _ \/ ___/ __/
  / /_/ / /_/ / /  / /_/ / / / / / /  / / / / /_/ / /   | |/ /  __(__  ) /_
 / .___/\__,_/_/   \__,_/_/ /_/ /_/  /_/ /_/\__,_/_/    |___/\___/____/\__/
/_/                                                                  [v{version}]
              param-harvest - Parameterized URL Harvester
"""


def setup_logging(level: str = 'INFO', log_file: Optional[str] = None):
    """Configure loguru sinks; logs go to stderr so stdout stays clean for results."""
    logger.remove()

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level,
        colorize=True
    )

    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG",
            rotation="50 MB",
            retention="30 days",
            enqueue=True
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='param-harvest',
        description='Harvest parameterized URLs for target domains from public archives and threat-intel APIs',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Single domain, plain output to stdout
  %(prog)s -d example.com

  # Domain list, JSON written to a file
  %(prog)s -l domains.txt -f json -o results.json

  # Custom placeholder for query values
  %(prog)s -d example.com --canary FUZZ
        """
    )

    parser.add_argument('-d', '--domain', type=str, help='Target domain (e.g., example.com)')
    parser.add_argument('-l', '--list', type=str, dest='domain_list',
                        help='File containing a list of domains/subdomains')
    parser.add_argument('--config', type=str, help='Path to configuration file (default is config.yaml)')
    parser.add_argument('-c', '--concurrency', type=int, metavar='N',
                        help='Number of domains processed concurrently')
    parser.add_argument('-f', '--output-format', choices=OUTPUT_FORMATS, default='plain',
                        help='Output format: plain or json (default: plain)')
    parser.add_argument('--canary', type=str, default=DEFAULT_PLACEHOLDER,
                        help='Placeholder for URL query parameter values')
    parser.add_argument('-o', '--output', type=str,
                        help='Output file for results (printed to stdout when omitted)')
    parser.add_argument('--timeout', type=float, metavar='SECONDS',
                        help='Time budget for the whole run (default: 300)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    parser.add_argument('--silent', action='store_true', help='Do not print the banner')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser


def collect_domains(args: argparse.Namespace) -> List[str]:
    domains = []
    if args.domain:
        domains.append(args.domain.strip())
    if args.domain_list:
        domains.extend(load_domain_list(args.domain_list))
    return [d for d in domains if d]


def main(argv: Optional[List[str]] = None) -> int:
    """Run the harvester and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.silent:
        print(BANNER.format(version=__version__), file=sys.stderr)

    setup_logging('DEBUG' if args.verbose else 'INFO')
    logger.info("Starting param-harvest...")

    try:
        config = validate_config(load_config(args.config))
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    # Re-apply with the configured level and file sink
    level = 'DEBUG' if args.verbose else str(config.get('log_level') or 'INFO').upper()
    setup_logging(level, config.get('log_file'))

    if args.concurrency:
        config['concurrency'] = args.concurrency
    config['placeholder'] = args.canary

    try:
        domains = collect_domains(args)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    if not domains:
        logger.error("No domains provided. Use -d or -l flag to supply target domains.")
        return 1

    runner = HarvestRunner(config, logger=logger)
    try:
        results = runner.run(domains, concurrency=config['concurrency'], time_budget=args.timeout)
    except KeyboardInterrupt:
        logger.warning("Harvest interrupted by user")
        return 130
    finally:
        runner.close()

    stats = runner.get_statistics()
    logger.info(f"Harvested {stats['total_urls']} URLs across {stats['domains']} domains "
                f"({stats['sources']['errors_count']} source errors)")

    if args.output:
        try:
            write_results(args.output, results, args.output_format)
        except OSError as e:
            logger.error(f"Failed to write output file: {e}")
    else:
        print_results(results, args.output_format)

    return 0


if __name__ == '__main__':
    sys.exit(main())
