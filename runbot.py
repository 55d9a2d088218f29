#!/usr/bin/env python3
"""
GridVault Bot - launcher.

Usage:
    python runbot.py [--config configs/grid.yml] [--env-file .env] [--auto-start]

Settings come from the environment / .env (see trading_config/settings.py);
an optional YAML file overrides the grid parameters.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

import dotenv
from pydantic import ValidationError

from database.connection import connect_database
from database.repositories import (
    GridStateRepository,
    LogRepository,
    QuoteRepository,
    TradeRepository,
)
from grid_bot import GridBot
from helpers.event_notifier import GridHistoryRecorder
from helpers.unified_logger import UnifiedLogger, get_core_logger, log_stage
from providers import AggregatorQuoteService, RelayExecutor, SimulatedExecutor
from strategies.control.grid_controller import GridBotController
from strategies.control.server import app, set_strategy_controller
from strategies.grid import GridStrategy
from trading_config import BotSettings, load_config_from_yaml


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Run the GridVault grid trading bot.")

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Optional YAML grid config (strategy: grid) overriding the GRID_* settings.",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Path to the environment file (default: .env).",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: LOG_LEVEL setting, INFO).",
    )
    parser.add_argument(
        "--no-api",
        action="store_true",
        help="Do not start the control API server.",
    )
    parser.add_argument(
        "--auto-start",
        action="store_true",
        help="Start ticking immediately instead of waiting for POST /control start.",
    )

    return parser.parse_args()


def setup_logging(log_level: str):
    """Route stdlib loggers to the console and quiet noisy libraries."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(
            '%(asctime)s.%(msecs)03d - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        )
    )
    root_logger.addHandler(console_handler)

    for name in ("httpx", "httpcore", "urllib3", "requests", "asyncio", "databases", "aiosqlite", "uvicorn"):
        logging.getLogger(name).setLevel(logging.WARNING)


class GridBotRunner:
    """Wires settings, storage, providers and the control API around a GridBot."""

    def __init__(self, settings, grid_config, *, enable_api: bool = True, auto_start: bool = False):
        self.settings = settings
        self.grid_config = grid_config
        self.enable_api = enable_api
        self.auto_start = auto_start
        self.logger = get_core_logger("runner")

        self.db = None
        self.bot = None
        self.quote_service = None
        self.executor = None
        self.shutdown_event = asyncio.Event()
        self._control_server = None
        self._control_server_task: Optional[asyncio.Task] = None

    async def setup(self) -> None:
        settings = self.settings

        self.db = await connect_database(settings.database_url)
        trades = TradeRepository(self.db)
        quotes = QuoteRepository(self.db)
        logs = LogRepository(self.db)

        self.quote_service = AggregatorQuoteService(
            network="mainnet" if settings.sui_network == "mainnet" else "testnet",
            aggregator_url=settings.aggregator_api_url,
        )

        missing = settings.validate_for_trading()
        if missing:
            self.logger.warning(f"Missing configuration: {', '.join(missing)}")
            self.logger.warning("Bot will run in simulation mode (no real trades)")
            self.executor = SimulatedExecutor()
        else:
            self.executor = RelayExecutor(
                relay_url=settings.execution_relay_url,
                vault_id=settings.vault_id,
                trader_cap_id=settings.trader_cap_id,
                coin_type_a=self.grid_config.coin_type_a,
                coin_type_b=self.grid_config.coin_type_b,
                tx_timeout_ms=settings.tx_timeout_ms,
                api_key=settings.execution_relay_api_key,
            )
            self.logger.info("Configuration valid, executing through relay")

        account_id = settings.account_id
        history = GridHistoryRecorder(account_id, trades=trades, quotes=quotes, logs=logs)
        strategy = GridStrategy(self.grid_config, account_id=account_id)

        self.bot = GridBot(
            strategy,
            price_source=self.quote_service,
            quote_provider=self.quote_service,
            executor=self.executor,
            store=GridStateRepository(self.db),
            history=history,
            account_id=account_id,
            tick_interval=settings.tick_interval_ms / 1000,
            execution_timeout=settings.execution_timeout,
            simulation=bool(missing),
        )
        await self.bot.initialize()

        if self.enable_api:
            set_strategy_controller(GridBotController(self.bot, trades, quotes, logs))

    def request_shutdown(self, reason: str = "Unknown") -> None:
        if not self.shutdown_event.is_set():
            self.logger.info(f"Shutdown requested: {reason}")
            self.shutdown_event.set()
        if self._control_server is not None:
            self._control_server.should_exit = True

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
            except (NotImplementedError, RuntimeError):
                # e.g. Windows event loops
                signal.signal(sig, lambda signum, frame: self.request_shutdown(signal.Signals(signum).name))

    async def _start_control_server(self) -> None:
        import uvicorn

        host, port = self.settings.api_host, self.settings.api_port
        config = uvicorn.Config(
            app=app,
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
            loop="asyncio",
        )
        server = uvicorn.Server(config)
        self._control_server = server

        async def _serve():
            try:
                await server.serve()
            except (OSError, SystemExit) as e:
                self.logger.error(f"Control API server failed on {host}:{port}: {e}")

        self._control_server_task = asyncio.create_task(_serve())

        for _ in range(20):
            if server.started or self._control_server_task.done():
                break
            await asyncio.sleep(0.25)

        if server.started:
            self.logger.info(f"Control API listening on http://{host}:{port}")
        else:
            self.logger.error(f"Control API did not start on {host}:{port}; continuing without it")

        # uvicorn replaces our handlers while serving
        self._install_signal_handlers()

    async def _stop_control_server(self) -> None:
        if self._control_server_task is None:
            return
        self._control_server.should_exit = True
        try:
            await asyncio.wait_for(self._control_server_task, timeout=5.0)
        except asyncio.TimeoutError:
            self._control_server_task.cancel()
        self._control_server_task = None
        self._control_server = None

    async def graceful_shutdown(self) -> None:
        """Stop ticking (waiting for a running tick), then the API, then storage."""
        if self.bot is not None:
            await self.bot.stop()
        await self._stop_control_server()

        for closable in (self.quote_service, self.executor):
            close = getattr(closable, "close", None)
            if close is not None:
                await close()

        if self.db is not None and self.db.is_connected:
            await self.db.disconnect()
        self.logger.info("Shutdown complete")
        UnifiedLogger.flush_all_handlers()

    async def run(self) -> None:
        self._install_signal_handlers()
        try:
            await self.setup()
            if self.enable_api:
                await self._start_control_server()

            log_stage(self.logger, "GridVault Bot is ready", icon="🚀")
            self.logger.info(f"Account: {self.settings.account_id}")
            self.logger.info(f"Tick interval: {self.settings.tick_interval_ms}ms")
            if self.enable_api:
                self.logger.info(f"API: http://{self.settings.api_host}:{self.settings.api_port}")

            if self.auto_start:
                self.bot.start()
            elif self.enable_api:
                self.logger.info('Use POST /control with {"command": "start"} to begin trading')
            else:
                self.logger.warning("No control API and no auto-start; starting the bot now")
                self.bot.start()

            await self.shutdown_event.wait()
        finally:
            await self.graceful_shutdown()


async def main():
    """Main entry point."""
    args = parse_arguments()

    env_path = Path(args.env_file)
    if env_path.exists():
        dotenv.load_dotenv(env_path)
    elif args.env_file != ".env":
        print(f"Env file not found: {env_path.resolve()}")
        sys.exit(1)

    if args.log_level:
        os.environ['LOG_LEVEL'] = args.log_level

    try:
        settings = BotSettings()
        grid_config = settings.build_grid_config()
    except ValidationError as e:
        print(f"Error: Invalid settings:\n{e}")
        sys.exit(1)

    os.environ.setdefault('LOG_LEVEL', settings.log_level)
    setup_logging(os.environ['LOG_LEVEL'])

    if args.config:
        try:
            loaded = load_config_from_yaml(Path(args.config))
            grid_config = grid_config.with_updates(**loaded["config"])
        except (OSError, ValueError) as e:
            print(f"Error: Invalid config file {args.config}: {e}")
            sys.exit(1)
        print(f"\n✓ Loaded grid configuration from: {args.config}\n")

    runner = GridBotRunner(
        settings,
        grid_config,
        enable_api=not args.no_api,
        auto_start=args.auto_start or settings.auto_start,
    )
    await runner.run()


if __name__ == "__main__":
    asyncio.run(main())
