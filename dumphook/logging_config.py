"""Logging for backup runs: stdout always, Loki when enabled.

Every record carries the run_id of the run that emitted it, so the lines of
one run can be pulled out of Loki with {service="backup"} |= "<run_id>".
Runs are labelled by database and delivery type.
"""

import logging
import os
import sys
from typing import Dict
from typing import Protocol

from loki_logger_handler.loki_logger_handler import LokiLoggerHandler

from dumphook.services.run_id_service import run_id_context


LOG_FORMAT = "%(asctime)s - [%(run_id)s] - %(name)s - %(levelname)s - %(message)s"

# httpx logs request URLs at INFO and Telegram URLs contain the bot token
QUIET_LOGGERS = ("httpx", "httpcore")


class LoggingConfig(Protocol):
    log_level: str
    loki_enabled: bool
    loki_url: str
    environment: str
    database_type: str
    delivery_type: str


class RunIDFilter(logging.Filter):
    """Fills record.run_id from run_id_context unless the record already has one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = run_id_context.get()
        return True


def loki_labels(config: LoggingConfig, service_name: str) -> Dict[str, str]:
    return {
        "service": service_name,
        "environment": config.environment,
        "database": config.database_type or "unset",
        "delivery": config.delivery_type or "unset",
        "host": os.getenv("HOSTNAME", "unknown"),
    }


def setup_loki_logging(config: LoggingConfig, service_name: str) -> logging.Logger:
    """Install stdout (and Loki) handlers on the root logger, replacing any existing ones.

    Args:
        config: Application configuration
        service_name: Loki "service" label and name of the returned logger

    Returns:
        The service logger
    """
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    loki_missing_url = config.loki_enabled and not config.loki_url
    if config.loki_enabled and config.loki_url:
        handlers.append(
            LokiLoggerHandler(
                url=config.loki_url,
                labels=loki_labels(config, service_name),
                timeout=10,
                compressed=True,
            )
        )

    run_id_filter = RunIDFilter()
    for handler in handlers:
        handler.addFilter(run_id_filter)

    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logger = logging.getLogger(service_name)
    if loki_missing_url:
        logger.warning("LOKI_ENABLED is set but LOKI_URL is empty; logging to stdout only")
    return logger
