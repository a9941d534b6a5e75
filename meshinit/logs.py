"""
Logging setup for the supervisor process.

Called once by the entry point, never by the orchestrator, so the core can be
driven from tests without touching global logging state. Console output goes
to stderr; stdout belongs to the workload.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

from .config import Config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_initialized = False


def init_observability(config: Config) -> bool:
    """
    Configure root logging from the config.

    Returns True if logging was configured by this call, False if an earlier
    call already did it.
    """
    global _initialized
    if _initialized:
        return False

    log_formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(log_formatter)
    handlers = [console_handler]

    # Rotating file handler (auto-compaction)
    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(log_formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=config.log_level, handlers=handlers, force=True)

    # httpx logs every request at INFO; the readiness loop would flood the console
    logging.getLogger("httpx").setLevel(max(logging.WARNING, logging.getLogger().level))

    _initialized = True
    return True
