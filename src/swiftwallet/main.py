"""Main entry point - runs the ledger API."""

import asyncio
import logging
import signal

import uvicorn

from swiftwallet.api.app import create_app
from swiftwallet.config import get_settings

logger = logging.getLogger(__name__)


class Application:
    """Main application wrapping the API server."""

    def __init__(self):
        self.settings = get_settings()
        self.server = None
        self._shutdown_event = asyncio.Event()

    async def start(self):
        """Start all services."""
        # Configure logging
        log_level = logging.DEBUG if self.settings.debug else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        logger.info("Starting SwiftWallet...")
        logger.info(f"Environment: {self.settings.environment}")

        task = asyncio.create_task(self._run_api())
        logger.info("API task created")

        # Wait for shutdown signal or server exit
        waiter = asyncio.create_task(self._shutdown_event.wait())
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)

        if self.server is not None:
            self.server.should_exit = True
        waiter.cancel()
        await asyncio.gather(task, waiter, return_exceptions=True)
        logger.info("Shutdown complete")

    async def _run_api(self):
        """Run the FastAPI server. Database setup happens in the app lifespan."""
        try:
            app = create_app()
            config = uvicorn.Config(
                app,
                host=self.settings.api_host,
                port=self.settings.api_port,
                log_level="debug" if self.settings.debug else "info",
            )
            self.server = uvicorn.Server(config)
            logger.info(f"Starting API server on {self.settings.api_host}:{self.settings.api_port}")
            await self.server.serve()
        except asyncio.CancelledError:
            logger.info("API server cancelled")
        except Exception as e:
            logger.error(f"API error: {e}")
            raise

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()


def main():
    """Main entry point."""
    app = Application()

    # Setup signal handlers
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
