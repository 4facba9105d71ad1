"""Logging setup for PayLedger.

Library modules only call ``logging.getLogger(__name__)``; the embedding
application calls ``setup_logging`` once at start-up.
"""
import copy
import logging
import logging.config

from payledger.config import LOGGING_CONFIG, LOG_FILE_MAX_BYTES, LOG_FILE_BACKUP_COUNT


def setup_logging(level=None, log_file=None):
    """Apply the PayLedger logging configuration.

    Args:
        level: Optional level (name or int) for the ``payledger`` logger.
        log_file: Optional path; adds a rotating file handler when given.

    Returns:
        The configured ``payledger`` logger.
    """
    config = copy.deepcopy(LOGGING_CONFIG)

    if log_file:
        config['handlers']['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'standard',
            'filename': log_file,
            'maxBytes': LOG_FILE_MAX_BYTES,
            'backupCount': LOG_FILE_BACKUP_COUNT,
            'level': logging.INFO,
            'encoding': 'utf-8',
        }
        config['loggers']['payledger']['handlers'].append('file')

    if level is not None:
        if isinstance(level, str):
            level = level.upper()
        config['loggers']['payledger']['level'] = level

    logging.config.dictConfig(config)
    return logging.getLogger('payledger')
