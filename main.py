"""
Main entrypoint.

    python main.py serve [ADDRESS ...]   API server; polls ADDRESS (or WALLETS env, else every stored wallet)
    python main.py sync ADDRESS          run one reconciliation pass and print the result as JSON
    python main.py list ADDRESS          print committed activities as JSON

Env: SOLANA_RPC_URL, SOLANA_NETWORK, BACKEND_URL, ACTIVITY_DB_URL, API_HOST, API_PORT, etc.
"""

import argparse
import asyncio
import json
import os
import sys

# Configure structured JSON logging before other imports that may log
from wallet_activity.activity_logging import get_logger
from wallet_activity.config.settings import get_settings
from wallet_activity.core.exceptions import ActivitySyncError

logger = get_logger("main")


def _serve(addresses: list[str]) -> None:
    import uvicorn

    from wallet_activity.api_server.app import create_app

    settings = get_settings()
    env_wallets = [w.strip() for w in os.getenv("WALLETS", "").split(",") if w.strip()]
    wallets = addresses or env_wallets
    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        wallet_count=len(wallets),
        poll_source="configured" if wallets else "store",
    )
    uvicorn.run(
        create_app(poll_addresses=wallets or None, poll_tracked=not wallets),
        host=settings.api_host,
        port=settings.api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


async def _sync(address: str) -> dict:
    from wallet_activity.sync.factory import build_service

    service, _ = build_service(get_settings())
    result = await service.run_pass(address)
    await service.drain_patches()
    return result.to_dict()


async def _list(address: str) -> list[dict]:
    from wallet_activity.sync.factory import build_service

    service, _ = build_service(get_settings())
    return [a.to_dict() for a in await service.get_merged_activities(address)]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Wallet activity reconciliation")
    sub = parser.add_subparsers(dest="command", required=True)
    serve = sub.add_parser("serve", help="run the API server (and poller)")
    serve.add_argument("addresses", nargs="*")
    sync = sub.add_parser("sync", help="run one reconciliation pass")
    sync.add_argument("address")
    show = sub.add_parser("list", help="print committed activities")
    show.add_argument("address")
    args = parser.parse_args(argv)

    try:
        if args.command == "serve":
            _serve(args.addresses)
            return 0
        if args.command == "sync":
            print(json.dumps(asyncio.run(_sync(args.address)), indent=2))
            return 0
        print(json.dumps(asyncio.run(_list(args.address)), indent=2))
        return 0
    except ActivitySyncError as e:
        logger.error("main_command_failed", command=args.command, error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
