"""CLI script to manage guest vouchers on the configured UniFi controller.

Usage:
    python scripts/vouchers.py types
    python scripts/vouchers.py list
    python scripts/vouchers.py issue "480,0,,," [--amount 5]
    python scripts/vouchers.py revoke <voucher-id>

Connection details and voucher types are read from the same environment
variables (or .env file) as the web service. ``--voucher-types`` overrides
VOUCHER_TYPES for a single run.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure project root is in the Python path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from voucher_service.cache import VoucherCache
from voucher_service.config import Settings
from voucher_service.durations import format_duration
from voucher_service.exceptions import ConfigFormatError, SyncError
from voucher_service.main import build_controller_client
from voucher_service.services.lifecycle import LifecycleStatus, VoucherLifecycleOrchestrator
from voucher_service.services.synchronizer import CacheSynchronizer
from voucher_service.voucher_types import decode, describe_type

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Issue, list and revoke guest vouchers on a UniFi controller"
    )
    parser.add_argument(
        "--voucher-types",
        type=str,
        default=None,
        help="Voucher type configuration (default: VOUCHER_TYPES env var)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("types", help="Show the configured voucher types")
    commands.add_parser("list", help="Sync and list vouchers from the controller")

    issue = commands.add_parser("issue", help="Create vouchers of a configured type")
    issue.add_argument("type", help="Voucher type key, e.g. '480,0,,,'")
    issue.add_argument(
        "--amount",
        type=int,
        default=1,
        help="Number of vouchers to create (default: 1)",
    )

    revoke = commands.add_parser("revoke", help="Remove a voucher by id")
    revoke.add_argument("voucher_id", help="Controller id of the voucher")
    return parser


async def _run(parsed_args, config: Settings) -> int:
    client = build_controller_client(config)
    cache = VoucherCache()
    synchronizer = CacheSynchronizer(client, cache)
    try:
        if parsed_args.command == "list":
            try:
                await synchronizer.refresh()
            except SyncError as e:
                logger.error("Unable to list vouchers: %s", e.message)
                return 1
            for voucher in cache.snapshot().vouchers:
                print(
                    f"{voucher.id}\t{voucher.display_code}\t"
                    f"{format_duration(voucher.duration_minutes)}\t"
                    f"{'multi-use' if voucher.is_multi_use else 'single-use'}"
                )
            return 0

        orchestrator = VoucherLifecycleOrchestrator(client, synchronizer, config.VOUCHER_TYPES)
        if parsed_args.command == "issue":
            outcome = await orchestrator.issue(parsed_args.type, parsed_args.amount)
        else:
            outcome = await orchestrator.revoke(parsed_args.voucher_id)

        if not outcome.mutated:
            logger.error("%s", outcome.message)
            return 1
        for code in outcome.codes:
            print(code)
        if outcome.status is LifecycleStatus.MUTATED_BUT_REFRESH_FAILED:
            logger.warning("%s", outcome.message)
            return 2
        logger.info("%s", outcome.message)
        return 0
    finally:
        await client.close()


def main(args=None):
    """Main entry point for the voucher CLI script.

    Args:
        args: Command-line arguments (defaults to sys.argv if None).

    Returns:
        Exit code (0 for success, 1 for failure, 2 when the controller
        applied a change but the voucher list could not be refreshed).
    """
    parsed_args = _build_parser().parse_args(args)

    if parsed_args.voucher_types is not None:
        config = Settings(VOUCHER_TYPES=parsed_args.voucher_types)
    else:
        from voucher_service.config import settings as config

    try:
        voucher_types = decode(config.VOUCHER_TYPES)
    except ConfigFormatError as e:
        logger.error("Invalid voucher type configuration: %s", e)
        return 1

    if parsed_args.command == "types":
        for definition in voucher_types:
            print(f"[{definition.index}] {definition.key}\t{describe_type(definition)}")
        return 0

    return asyncio.run(_run(parsed_args, config))


if __name__ == "__main__":
    sys.exit(main())
