#!/usr/bin/env python3
"""
Deploy, remove or describe the WebSocket API of a service.

Usage: websockets-deployer {deploy,remove,info} [--config serverless.yml]
                           [--stage STAGE] [--region REGION] [--verbose]
"""

import argparse
import logging
import sys

from botocore.exceptions import BotoCoreError, NoCredentialsError

from .config import DEFAULT_CONFIG_FILE, ServiceConfig
from .errors import DeployerError
from .plugin import STRATEGIES, WebsocketsPlugin
from .reconciler import DEFAULT_MAX_WORKERS

logger = logging.getLogger(__name__)

COMMANDS = {
    'deploy': 'after:deploy:deploy',
    'remove': 'after:remove:remove',
    'info': 'after:info:info',
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Deploy the WebSocket API of a service')
    parser.add_argument('command', choices=sorted(COMMANDS),
                        help='Lifecycle operation to run')
    parser.add_argument('--config', default=DEFAULT_CONFIG_FILE,
                        help=f'Service file (default: {DEFAULT_CONFIG_FILE})')
    parser.add_argument('--stage', help='Deployment stage (overrides the service file)')
    parser.add_argument('--region', help='AWS region (overrides the service file)')
    parser.add_argument('--strategy', default='full-resync', choices=sorted(STRATEGIES),
                        help='Route reconcile strategy (default: full-resync)')
    parser.add_argument('--max-workers', type=int, default=DEFAULT_MAX_WORKERS,
                        help=f'Concurrent remote calls (default: {DEFAULT_MAX_WORKERS})')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')
    return parser


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    # boto's own debug output drowns ours
    for name in ('boto3', 'botocore', 'urllib3'):
        logging.getLogger(name).setLevel(logging.WARNING)


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    if args.max_workers <= 0:
        logger.error("--max-workers must be a positive integer")
        return 1

    try:
        config = ServiceConfig.load(args.config, stage=args.stage, region=args.region)
        logger.info(f"Service: {config.service}")
        logger.info(f"Stage: {config.stage}")
        logger.info(f"Region: {config.region}")

        plugin = WebsocketsPlugin(config, strategy=args.strategy,
                                  max_workers=args.max_workers)
        plugin.hooks[COMMANDS[args.command]]()
        return 0

    except NoCredentialsError:
        logger.error("AWS credentials not found. Please configure your credentials.")
        return 1
    except (DeployerError, BotoCoreError) as e:
        logger.error(f"❌ {args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
