"""Command line interface for running the API server."""
import asyncio
import logging
import signal
import uvicorn

from config import settings_conf
from database import init_db, close as db_close

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings_conf['log_level']),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

server = None
should_exit = False

def handle_shutdown(signum, frame):
    """Handle shutdown signals gracefully."""
    global should_exit
    logger.info("Shutdown signal received. Cleaning up...")
    should_exit = True

class UvicornServer:
    """Wrapper for running uvicorn with proper lifecycle management."""

    def __init__(self, app_path: str = "api:app", host: str = "0.0.0.0", port: int = 8000):
        self.config = uvicorn.Config(
            app_path,
            host=host,
            port=port,
            log_level=settings_conf['log_level'].lower()
        )
        self.server = uvicorn.Server(self.config)

    async def run(self):
        """Run the server in a way that can be stopped."""
        await self.server.serve()

    async def stop(self):
        """Stop the server."""
        self.server.should_exit = True

async def main():
    """Initialize the database, then serve the API until a shutdown signal."""
    global server, should_exit

    try:
        signal.signal(signal.SIGINT, handle_shutdown)
        signal.signal(signal.SIGTERM, handle_shutdown)

        logger.info("Initializing database...")
        await init_db()

        server = UvicornServer(host=settings_conf['api_host'], port=settings_conf['api_port'])
        api_task = asyncio.create_task(server.run(), name="api")
        logger.info(f"API listening on {settings_conf['api_host']}:{settings_conf['api_port']}")

        while not should_exit:
            await asyncio.sleep(1)
            if api_task.done():
                exc = None if api_task.cancelled() else api_task.exception()
                if exc:
                    logger.error(f"API server failed with error: {exc}")
                break

        logger.info("Starting cleanup...")
        if not api_task.done():
            await server.stop()
            await api_task

    except Exception as e:
        logger.error(f"Fatal error: {e}")
    finally:
        logger.info("Closing database connections...")
        await db_close()
        logger.info("Cleanup complete.")

if __name__ == "__main__":
    asyncio.run(main())
