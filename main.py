#!/usr/bin/env python3
"""
Launchpad Trader - Unified Entry Point
======================================

Watch Raydium Launchpad trades and run resilient exits.

Usage:
    # Stream launchpad trades and log them
    python main.py watch

    # Sell the whole position in a token (primary venue, Jupiter fallback)
    python main.py sell --mint <MINT> --pool <POOL> \\
        --virtual-sol 35000000000 --virtual-token 900000000000000

    # Show resolved configuration only
    python main.py show-config

Environment overrides use the LAUNCHPAD_ prefix
(LAUNCHPAD_RPC_URL, LAUNCHPAD_KEYPAIR_PATH, LAUNCHPAD_RELAY_API_KEY, ...).
"""
import asyncio
import argparse
import json
import logging
import sys
import time

from solana.rpc.async_api import AsyncClient

from launchpad_trader.core.config import TraderConfig, load_keypair
from launchpad_trader.errors import ConfigError
from launchpad_trader.execution import (
    BlockhashCache,
    ConfirmationVerifier,
    FallbackVenueClient,
    JupiterClient,
    LoggingSellObserver,
    PrimaryVenueClient,
    ResilientSellExecutor,
    RpcLedger,
    ZeroSlotRelay,
)
from launchpad_trader.feeds import TransactionStream
from launchpad_trader.models import DexType, SellOutcome, TradeInfo
from launchpad_trader.parsing import TradeEventExtractor


logger = logging.getLogger("launchpad_trader")


def setup_logging(verbose: bool = False, level: str = "INFO"):
    """Configure logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def build_config(args) -> TraderConfig:
    """Environment config with command-line overrides applied."""
    config = TraderConfig.from_env()
    if args.rpc:
        config.endpoints.rpc_url = args.rpc
    if args.ws:
        config.endpoints.ws_url = args.ws
    if args.keypair:
        config.keypair_path = args.keypair
    if args.slippage_bps is not None:
        config.swap.slippage_bps = args.slippage_bps
    return config.validate()


def show_config(config: TraderConfig):
    """Display resolved configuration."""
    print(f"\n{'='*60}")
    print("  LAUNCHPAD TRADER CONFIGURATION")
    print(f"{'='*60}")
    print(json.dumps(config.to_dict(), indent=2))
    print(f"{'='*60}\n")


async def watch(config: TraderConfig):
    """Stream launchpad trades until interrupted."""
    extractor = TradeEventExtractor(config.launchpad)

    async def on_trade(trade: TradeInfo):
        logger.info(
            "%s %s | price=%d liq=%.2f SOL sol=%+.4f tokens=%+.0f%s",
            "BUY " if trade.is_buy else "SELL",
            trade.mint,
            trade.price,
            trade.liquidity,
            trade.sol_change,
            trade.token_change,
            " (low confidence)" if trade.low_confidence else "",
        )

    stream = TransactionStream(
        config.endpoints.ws_url,
        config.launchpad.program_id,
        extractor,
        on_trade,
    )
    try:
        await stream.run()
    finally:
        stream.stop()
        logger.info("Stream stats: %s", stream.stats)


def position_from_args(args) -> TradeInfo:
    """Position record for a manual sell."""
    has_reserves = bool(args.virtual_sol and args.virtual_token)
    return TradeInfo(
        dex_type=DexType.RAYDIUM_LAUNCHPAD,
        slot=0,
        signature="",
        pool_id=args.pool or "",
        mint=args.mint,
        timestamp=int(time.time()),
        is_buy=False,
        price=args.virtual_sol * 10**6 // args.virtual_token if has_reserves else 0,
        virtual_sol_reserves=args.virtual_sol or 0,
        virtual_token_reserves=args.virtual_token or 0,
        low_confidence=not has_reserves,
    )


async def sell(config: TraderConfig, trade: TradeInfo) -> SellOutcome:
    """Run one resilient sell and return its outcome."""
    wallet = load_keypair(config.keypair_path)
    rpc = AsyncClient(config.endpoints.rpc_url)

    try:
        relay = ZeroSlotRelay(
            config.endpoints.relay_url,
            config.relay_tip_account,
            api_key=config.endpoints.relay_api_key,
        )
        executor = ResilientSellExecutor(
            primary=PrimaryVenueClient(rpc, relay, config.launchpad),
            fallback=FallbackVenueClient(
                rpc,
                JupiterClient(config.endpoints.jupiter_url),
                config.launchpad.quote_mint,
            ),
            verifier=ConfirmationVerifier(RpcLedger(rpc), config.retry.verify_backoff),
            blockhash_source=BlockhashCache(rpc),
            wallet=wallet,
            retry_config=config.retry,
            observer=LoggingSellObserver(logger),
        )

        logger.info("Selling %s as %s", trade.mint, wallet.pubkey())
        return await executor.execute_sell(trade, config.swap)
    finally:
        await rpc.close()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Launchpad Trader",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py watch --verbose
  python main.py sell --mint <MINT> --slippage-bps 1500
  python main.py show-config
        """,
    )

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--rpc", help="RPC endpoint (overrides LAUNCHPAD_RPC_URL)")
    parser.add_argument("--ws", help="Websocket endpoint (overrides LAUNCHPAD_WS_URL)")
    parser.add_argument("--keypair", help="Keypair file (overrides LAUNCHPAD_KEYPAIR_PATH)")
    parser.add_argument(
        "--slippage-bps",
        type=int,
        default=None,
        help="Slippage tolerance in basis points (default: 1000)",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("watch", help="Stream and log launchpad trades")
    commands.add_parser("show-config", help="Show configuration and exit")

    sell_parser = commands.add_parser("sell", help="Sell a position")
    sell_parser.add_argument("--mint", required=True, help="Token mint to sell")
    sell_parser.add_argument("--pool", help="Launchpad pool state (derived if omitted)")
    sell_parser.add_argument(
        "--virtual-sol",
        type=int,
        default=0,
        help="Quote reserve in lamports (without reserves only the fallback can sell)",
    )
    sell_parser.add_argument("--virtual-token", type=int, default=0, help="Base reserve in base units")

    args = parser.parse_args()

    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(args.verbose, config.log_level)

    if args.command == "show-config":
        show_config(config)
        return 0

    try:
        if args.command == "watch":
            asyncio.run(watch(config))
            return 0

        outcome = asyncio.run(sell(config, position_from_args(args)))
    except ConfigError as e:
        logger.error("%s", e)
        return 2
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130

    print(json.dumps(outcome.to_dict(), indent=2))
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
