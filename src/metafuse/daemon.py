"""Daemon orchestrator for the MetaFuse lookup service."""

import sys

import uvicorn

from metafuse.api.app import create_app
from metafuse.config import Config
from metafuse.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


class DaemonOrchestrator:
    """Orchestrates the daemon lifecycle."""

    def __init__(self, config: Config):
        """Initialize daemon orchestrator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.app = create_app(config)

    def run(self):
        """Run the FastAPI server under uvicorn until interrupted."""
        logger.info("Starting daemon", host=self.config.api.host, port=self.config.api.port)

        try:
            uvicorn.run(
                self.app,
                host=self.config.api.host,
                port=self.config.api.port,
                log_level=self.config.logging.level,
                access_log=False,  # RequestLoggingMiddleware logs requests
            )
        except KeyboardInterrupt:
            logger.info("Daemon interrupted by user")
        except Exception as e:
            logger.exception("Daemon error", error=str(e))
            sys.exit(1)
        finally:
            logger.info("Daemon stopped")


def start_daemon(config: Config):
    """Start the daemon.

    Args:
        config: Application configuration
    """
    setup_logging(config.logging)
    DaemonOrchestrator(config).run()
