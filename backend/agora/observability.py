"""Logfire observability initialization and instrumentation."""

import logging

import logfire

from agora import __version__
from agora.config import Settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Root logging format shared by the API, workers and CLI."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def initialize_logfire(settings: Settings, service_name: str = "agora") -> None:
    """
    Initialize Logfire.

    Must be called once per process at startup. Instruments:
    - HTTPX clients (price oracle, ledger RPC and signer)
    - Python logging (bridged to Logfire)

    A missing token only disables observability.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name=service_name,
            service_version=__version__,
            environment="paper" if settings.ledger.paper_mode else settings.environment,
        )

        logfire.instrument_httpx()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
