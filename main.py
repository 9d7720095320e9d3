"""
Main entry point for the Jupiter DCA Monitor.

Watches Jupiter DCA positions for two tracked tokens, relays open/close
events and periodic summaries to Telegram, and serves the latest snapshot
to the dashboard over HTTP.
"""

import asyncio
import logging
import sys

import uvicorn
from dotenv import load_dotenv

from dcamonitor.api.server import create_app
from dcamonitor.dca import DcaAccountSource
from dcamonitor.monitor.config import MonitorSettings
from dcamonitor.monitor.logging_config import setup_logging
from dcamonitor.monitor.position_monitor import PositionMonitor
from dcamonitor.monitor.state import StateStore
from dcamonitor.telegram import TelegramNotifier
from dcamonitor.utils.token_metadata import TokenMetadataResolver

# Load environment variables
load_dotenv()

logger = logging.getLogger("dcamonitor")


async def main(settings: MonitorSettings) -> None:
    """
    Wire the components together and serve until interrupted.

    ## Task Orchestration
    The HTTP server and the monitor loop share one event loop. The monitor
    is started immediately when `AUTO_START` is set, otherwise through
    `POST /start`. When the server exits the monitor is stopped and every
    client is closed.
    """
    logger.info("=== DCA Monitor Starting ===")

    tracked = settings.tracked_tokens
    store = StateStore(
        settings.state_file,
        [token.symbol for token in tracked],
        resume=settings.resume_state,
    )
    source = DcaAccountSource(
        settings.rpc_endpoint,
        [token.mint for token in tracked],
        program_id=settings.program_id,
    )
    resolver = TokenMetadataResolver(tracked)
    notifier = TelegramNotifier.from_token(
        settings.telegram_bot_token, settings.telegram_chat_id
    )
    monitor = PositionMonitor(
        source,
        resolver,
        notifier,
        store,
        tracked,
        poll_interval=settings.poll_interval,
        summary_interval=settings.summary_interval,
        fetch_timeout=settings.fetch_timeout,
    )

    server = uvicorn.Server(
        uvicorn.Config(
            create_app(store, monitor),
            host=settings.http_host,
            port=settings.http_port,
            log_config=None,
        )
    )
    logger.info(
        f"Web interface available at http://{settings.http_host}:{settings.http_port}"
    )

    try:
        if settings.auto_start:
            await monitor.start()
        await server.serve()
    finally:
        monitor.stop()
        await monitor.wait_stopped()
        try:
            await asyncio.wait_for(notifier.flush(), timeout=10)
        except asyncio.TimeoutError:
            logger.warning("Timed out flushing pending alerts")
        await notifier.close()
        await resolver.aclose()
        await source.close()
        logger.info("=== DCA Monitor Stopped ===")


if __name__ == "__main__":
    try:
        settings = MonitorSettings.from_env()
    except ValueError as e:
        sys.exit(f"Invalid configuration: {e}")

    setup_logging(settings.log_level)

    try:
        asyncio.run(main(settings))
    except KeyboardInterrupt:
        logger.info("Shutdown completed gracefully")
