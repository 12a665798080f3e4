#!/usr/bin/env python3
"""
Subzone Resolver CLI

Resolve a postal code, street address or development name to a subzone
and print the result as JSON.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config_manager import ConfigManager
from .core.confidence import get_confidence_message
from .errors import ConfigurationError
from .factory import build_resolver

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subzone-resolver",
        description="Subzone Resolver - map Singapore addresses to URA subzones",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Resolve a postal code
  %(prog)s 560123

  # Resolve an address and pick the second alternate match
  %(prog)s "38 Lorong 30 Geylang" --candidate 1

  # Use a configuration file
  %(prog)s "Tampines" --config resolver.yaml

  # Write an example configuration
  %(prog)s --example-config resolver.yaml
        """
    )

    parser.add_argument(
        'query',
        nargs='?',
        help='Postal code, street address or development name'
    )
    parser.add_argument(
        '--candidate',
        type=int,
        metavar='N',
        help='Resolve alternate candidate N of the query instead of the best match'
    )

    # Configuration options
    parser.add_argument(
        '-c', '--config',
        type=Path,
        help='Resolver configuration YAML file (default: from environment)'
    )
    parser.add_argument(
        '--example-config',
        type=Path,
        metavar='OUTPUT',
        help='Write an example configuration file and exit'
    )

    # Output options
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Minimal output (errors only)'
    )
    return parser


def configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose, args.quiet)

    if args.example_config:
        ConfigManager().save_example_config(args.example_config)
        if not args.quiet:
            print(f"Example configuration written to {args.example_config}", file=sys.stderr)
        return 0

    if not args.query:
        parser.error("query is required unless using --example-config")

    try:
        config_manager = ConfigManager(args.config)
        config = config_manager.load() if args.config else config_manager.from_environment()
        resolver = build_resolver(config)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.error(f"Configuration error: {e}")
        return 2

    if args.candidate is not None:
        result = resolver.resolve_candidate(args.query, args.candidate)
        if result is None:
            print(json.dumps({"error": "Candidate not found"}))
            return 1
    else:
        result = resolver.resolve(args.query)
        if result is None:
            print(json.dumps({"error": "Unable to resolve address"}))
            return 1

    payload = {
        "resolved_address": result.to_dict(),
        "message": get_confidence_message(result.confidence, result.subzone_name),
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
