#!/usr/bin/env python3
"""
SOY Lottery Operator

Entry point for one scheduled run: check the current round, close and commit
when it has expired, reveal and draw, start the next round, and report
problems to Telegram. Meant to be triggered by cron or a systemd timer.
"""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Load environment variables from .env in the working directory
from dotenv import load_dotenv

load_dotenv(Path.cwd() / '.env')

from soy_operator.blockchain.client import BlockchainClient
from soy_operator.lottery.errors import ConfigError
from soy_operator.lottery.models import LotteryConfig, OperationResult, Outcome
from soy_operator.lottery.operator import LotteryOperator, collect_alerts
from soy_operator.lottery.state import PendingRevealStore
from soy_operator.notifier import TelegramNotifier
from soy_operator.utils.config import get_config_value, load_config, require_config_value
from soy_operator.utils.logger import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 130


class LotteryOperatorApp:
    """Wires the blockchain client, operator and notifier for a single run."""

    def __init__(self, config: Dict[str, Any], notifier: Optional[TelegramNotifier] = None):
        self.config = config
        self.notifier = notifier or TelegramNotifier.from_config(config)
        self.blockchain_client: Optional[BlockchainClient] = None
        self.operator: Optional[LotteryOperator] = None

    def _display_config_summary(self):
        """Log key configuration options for diagnostics."""
        logger.info("=" * 60)
        logger.info("CONFIGURATION SUMMARY")
        logger.info("=" * 60)
        logger.info(f"RPC URL: {get_config_value(self.config, 'blockchain.rpc_url', 'Not configured')}")
        logger.info(f"Chain ID: {get_config_value(self.config, 'blockchain.chain_id', 'Not configured')}")
        logger.info(f"Lottery: {get_config_value(self.config, 'blockchain.lottery_address', 'Not configured')}")
        logger.info(f"RNG: {get_config_value(self.config, 'blockchain.rng_address', 'Not configured')}")
        logger.info(f"Round alignment: {get_config_value(self.config, 'lottery.align')}s")
        logger.info(f"State file: {get_config_value(self.config, 'operator.state_file')}")
        logger.info(f"Telegram alerts: {'enabled' if self.notifier.enabled else 'disabled'}")
        logger.info("=" * 60)

    async def initialize(self):
        """Connect to the chain and build the operator."""
        self._display_config_summary()

        lottery_config = LotteryConfig.from_config(self.config)
        require_config_value(self.config, "blockchain.operator_private_key")

        self.blockchain_client = BlockchainClient(self.config)
        await self.blockchain_client.initialize()

        store = PendingRevealStore(get_config_value(self.config, 'operator.state_file', 'pending_reveal.json'))
        self.operator = LotteryOperator(self.blockchain_client, lottery_config, self.config, store=store)

    async def run(self) -> int:
        """Run one operator cycle, deliver alerts and return the process exit code."""
        try:
            await self.initialize()
            results = await self.operator.run_cycle()
        except Exception as e:
            logger.error(f"Operator run failed: {e}")
            results = [
                OperationResult(action="initialize", outcome=Outcome.FAILED, message=str(e), alerts=[str(e)])
            ]
        finally:
            await self.stop()

        for result in results:
            logger.info(f"{result.action}: {result.outcome.value} {result.message}")

        await self.deliver_alerts(results)
        return exit_code_for(results)

    async def deliver_alerts(self, results: List[OperationResult]) -> None:
        for message in collect_alerts(results):
            await self.notifier.send(message)

    async def stop(self):
        if self.blockchain_client:
            await self.blockchain_client.close()


def exit_code_for(results: List[OperationResult]) -> int:
    return EXIT_FAILED if any(result.failed for result in results) else EXIT_OK


async def main() -> int:
    """Main entry point for a scheduled operator run"""
    try:
        config = load_config()
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG

    app = LotteryOperatorApp(config)

    # SIGTERM cancels the run, e.g. while waiting for the reveal block
    task = asyncio.current_task()
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, task.cancel)
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers not supported on this platform")

    try:
        return await app.run()
    except asyncio.CancelledError:
        state_file = get_config_value(config, 'operator.state_file')
        logger.warning(f"Operator run cancelled; pending reveal state kept in {state_file}")
        return EXIT_CANCELLED


def cli():
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Operator run interrupted by user")
        code = EXIT_CANCELLED
    sys.exit(code)


if __name__ == "__main__":
    cli()
