# logging_config.py
import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, List, Optional

CONSOLE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# uvicorn logs through our handlers instead of its own
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS = ("pymongo", "apscheduler", "passlib", "multipart")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _logger(level: str, handlers: List[str]) -> Dict[str, Any]:
    return {'handlers': list(handlers), 'level': level, 'propagate': False}


def build_logging_config(log_level: str = "INFO", log_file: Optional[str] = None) -> Dict[str, Any]:
    """dictConfig for the API: stdout always, plus a rotating file in production."""
    handlers: Dict[str, Any] = {
        'console': {
            'level': log_level,
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
            'stream': 'ext://sys.stdout'
        }
    }
    if log_file:
        handlers['file'] = {
            'level': log_level,
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'detailed',
            'filename': log_file,
            'maxBytes': LOG_FILE_MAX_BYTES,
            'backupCount': LOG_FILE_BACKUPS
        }
    names = list(handlers)

    loggers = {'': _logger(log_level, names)}
    loggers.update({name: _logger('INFO', names) for name in UVICORN_LOGGERS})
    loggers.update({name: _logger('WARNING', names) for name in QUIET_LOGGERS})

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {'format': CONSOLE_FORMAT, 'datefmt': DATE_FORMAT},
            'detailed': {'format': FILE_FORMAT, 'datefmt': DATE_FORMAT},
        },
        'handlers': handlers,
        'loggers': loggers,
    }


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_level, log_file))

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured with level: {log_level}")
    if log_file:
        logger.info(f"Log file: {log_file}")
