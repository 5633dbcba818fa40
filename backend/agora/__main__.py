"""Agora CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from uuid import UUID

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from agora import __version__
from agora.config import get_settings
from agora.database import close_db, get_db_info, get_db_session, init_db
from agora.utils.errors import AgoraError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from agora.observability import initialize_logfire

        initialize_logfire(get_settings(), service_name="agora-cli")
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create database tables."""

    async def _run() -> None:
        try:
            await init_db()
        finally:
            await close_db()

    try:
        asyncio.run(_run())
        print(f"\n✓ Database initialized at {get_db_info()['url']}\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Agora Configuration ===\n")
        print(f"Environment: {settings.environment}")
        print(f"Database: {get_db_info()['url']}")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Settlement:")
        print(f"  House Cut: {settings.settlement.house_cut_pct:.0%}")
        print(f"  Native Currency: {settings.settlement.native_currency} "
              f"({settings.settlement.native_decimals} decimals)")
        print(f"  Scan Interval: {settings.settlement.scan_interval_seconds}s")
        print(f"  Transfer Timeout: {settings.settlement.transfer_timeout_seconds}s")
        print(f"  Stalled After: {settings.settlement.stalled_after_minutes} min\n")

        print("Ledger:")
        print(f"  Network: {settings.ledger.network}")
        print(f"  Mode: {'PAPER' if settings.ledger.paper_mode else 'LIVE'}")
        print(f"  RPC: {settings.ledger.rpc_url}\n")

        print("Oracle:")
        print(f"  Base URL: {settings.oracle.base_url}")
        print(f"  Assets: {', '.join(f'{k}={v}' for k, v in settings.oracle.asset_ids.items())}\n")

        print("Secrets:")
        print(f"  Treasury Key: {'✓ Set' if settings.treasury_encryption_key else '✗ Not set'}")
        print(f"  Telegram: {'✓ Set' if settings.telegram_bot_token else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1


def cmd_scan(args: argparse.Namespace) -> int:
    """Run the deadline scanner once."""
    _init_logfire()

    from agora.services.trigger_service import run_expiry_scan

    async def _run() -> dict:
        try:
            async with get_db_session() as db:
                return await run_expiry_scan(db)
        finally:
            await close_db()

    try:
        stats = asyncio.run(_run())
        print(f"\n✓ Scan complete: {stats['due']} due, {stats['settled']} settled, "
              f"{stats['skipped']} skipped, {stats['failed']} failed\n")
        return 0
    except Exception as e:
        logger.error(f"Scan failed: {e}", exc_info=True)
        print(f"\n❌ Scan failed: {e}\n")
        return 1


def cmd_settle(args: argparse.Namespace) -> int:
    """Manually settle one event."""
    _init_logfire()

    from agora.services.trigger_service import manual_settle

    async def _run():
        try:
            async with get_db_session() as db:
                return await manual_settle(db, UUID(args.event_id))
        finally:
            await close_db()

    try:
        result = asyncio.run(_run())
    except AgoraError as e:
        print(f"\n❌ {e.code}: {e.message}\n")
        return 1

    print(f"\n=== Event {result.event_id} ===\n")
    print(f"Status: {result.status.value}")
    print(f"Winning Option: {result.winning_option_label or '-'}")
    print(f"Winners: {len(result.winner_user_ids)}")
    for payout in result.payouts:
        detail = payout.transfer_id if payout.transfer_id else payout.failure_reason
        print(f"  • {payout.recipient}: {payout.amount} {payout.currency} "
              f"[{payout.outcome.value}] {detail}")
    print()
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP API."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "agora.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Agora: event settlement and payout engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Agora {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser("init-db", help="Create database tables")
    parser_init.set_defaults(func=cmd_init_db)

    parser_config = subparsers.add_parser("config", help="Display merged configuration")
    parser_config.set_defaults(func=cmd_config)

    parser_scan = subparsers.add_parser("scan", help="Settle every due event once")
    parser_scan.set_defaults(func=cmd_scan)

    parser_settle = subparsers.add_parser("settle", help="Manually settle one event")
    parser_settle.add_argument("event_id", help="Event UUID")
    parser_settle.set_defaults(func=cmd_settle)

    parser_serve = subparsers.add_parser("serve", help="Start the HTTP API")
    parser_serve.add_argument("--host", default=None)
    parser_serve.add_argument("--port", type=int, default=None)
    parser_serve.add_argument("--reload", action="store_true")
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
