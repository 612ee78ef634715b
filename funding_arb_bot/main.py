"""
Main entry point for the funding rate arbitrage bot.

Wires the configured venues, price source, notifier, ledger, evaluator and
position manager into an ``ArbitrageEngine`` and runs it until SIGINT or
SIGTERM.
"""

import asyncio
import logging
import signal
from typing import Optional

from .bot.arbitrage_engine import ArbitrageEngine
from .bot.funding_oracle import FundingRateOracle
from .bot.opportunity_evaluator import OpportunityEvaluator
from .bot.position_ledger import PositionLedger
from .bot.position_manager import PositionManager
from .exchange import BaseVenueConnector, create_connector
from .models.config import FundingBotConfig, PriceSourceType
from .notifications import CompositeNotifier, LoggingNotifier, Notifier, TelegramNotifier
from .pricing import FallbackPriceSource, PriceSource, StaticPriceSource, VenueMarkPriceSource


def build_price_source(config: FundingBotConfig, venue_a: BaseVenueConnector,
                       venue_b: BaseVenueConnector) -> PriceSource:
    pricing = config.pricing
    static = StaticPriceSource(pricing.static_prices)
    if pricing.source == PriceSourceType.STATIC.value:
        return static

    mark_venue = venue_a if pricing.mark_venue == "venue_a" else venue_b
    mark = VenueMarkPriceSource(mark_venue, timeout=config.bot.venue_timeout_seconds)
    if pricing.source == PriceSourceType.MARK.value:
        return mark
    return FallbackPriceSource([mark, static])


def build_notifier(config: FundingBotConfig) -> Notifier:
    notifiers = [LoggingNotifier()]
    telegram = config.monitoring.telegram
    if telegram.enabled:
        notifiers.append(TelegramNotifier(telegram.bot_token, telegram.chat_id))
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)


class FundingArbitrageBot:
    """
    Main bot application that coordinates all components.

    Venues, notifier and price source can be injected; anything left out is
    built from the configuration.
    """

    def __init__(self, config: FundingBotConfig,
                 venue_a: Optional[BaseVenueConnector] = None,
                 venue_b: Optional[BaseVenueConnector] = None,
                 notifier: Optional[Notifier] = None,
                 price_source: Optional[PriceSource] = None,
                 close_positions_on_exit: Optional[bool] = None):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

        testnet = config.trading.testnet
        self.venue_a = venue_a or create_connector(config.get_venue_config("venue_a"), testnet)
        self.venue_b = venue_b or create_connector(config.get_venue_config("venue_b"), testnet)
        self.venue_a.set_testnet(testnet)
        self.venue_b.set_testnet(testnet)

        self.notifier = notifier or build_notifier(config)
        self.price_source = price_source or build_price_source(config, self.venue_a, self.venue_b)
        self.close_positions_on_exit = (config.bot.close_positions_on_exit
                                        if close_positions_on_exit is None else close_positions_on_exit)

        bot_config = config.bot
        trading = config.trading
        self.ledger = PositionLedger()
        self.oracle = FundingRateOracle(self.venue_a, self.venue_b, timeout=bot_config.venue_timeout_seconds)
        self.evaluator = OpportunityEvaluator(self.venue_a, self.venue_b, self.ledger,
                                              trading.min_funding_rate_diff)
        self.position_manager = PositionManager(
            self.ledger,
            self.price_source,
            position_size_usd=trading.position_size_usd,
            max_position_usd=trading.max_position_usd,
            notifier=self.notifier,
            venue_timeout=bot_config.venue_timeout_seconds,
            notifier_timeout=bot_config.notifier_timeout_seconds,
        )
        self.engine = ArbitrageEngine(
            self.oracle,
            self.evaluator,
            self.position_manager,
            trading.markets,
            evaluation_interval=bot_config.evaluation_interval_seconds,
        )

    async def initialize(self) -> None:
        """Connect both venues"""
        self.logger.info(f"🚀 Initializing {self.config.bot.name}...")
        await self.venue_a.connect()
        await self.venue_b.connect()
        self.logger.info(f"📊 Trading {', '.join(self.config.trading.markets)} between "
                         f"{self.venue_a.name} and {self.venue_b.name} "
                         f"({'testnet' if self.config.trading.testnet else 'mainnet'})")
        for venue in (self.venue_a, self.venue_b):
            if venue.dry_run:
                self.logger.warning(f"🧪 {venue.name} runs in dry-run mode, its orders are simulated")

    async def run(self) -> None:
        """Run until a stop signal arrives, then shut down gracefully"""
        try:
            await self.initialize()
            self._install_signal_handlers()
            await self.engine.run()
        finally:
            self._remove_signal_handlers()
            await self.stop()

    def request_stop(self) -> None:
        self.engine.request_stop()

    async def stop(self) -> None:
        """Close positions if configured, then release venue and notifier resources"""
        self.logger.info("🔴 Stopping bot...")
        if self.close_positions_on_exit:
            await self.position_manager.close_all_positions(reason="bot stopping")
        else:
            open_positions = await self.ledger.snapshot()
            if open_positions:
                self.logger.warning(f"Leaving {len(open_positions)} positions open: "
                                    f"{', '.join(str(p) for p in open_positions)}")

        for venue in (self.venue_a, self.venue_b):
            try:
                await venue.disconnect()
            except Exception as e:
                self.logger.error(f"Error disconnecting {venue.name}: {e}")

        try:
            await self.notifier.close()
        except Exception as e:
            self.logger.error(f"Error closing notifier: {e}")

        self.logger.info("✅ Bot stopped")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                # add_signal_handler is unavailable on Windows event loops
                self.logger.debug(f"Cannot install handler for {sig.name}")

    def _remove_signal_handlers(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

    def _on_signal(self, sig: signal.Signals) -> None:
        self.logger.info(f"Received {sig.name}, shutting down after the current cycle")
        self.request_stop()


def run_bot(config: FundingBotConfig, close_positions_on_exit: Optional[bool] = None) -> None:
    """Blocking entry point used by the command line"""
    bot = FundingArbitrageBot(config, close_positions_on_exit=close_positions_on_exit)
    asyncio.run(bot.run())
