"""
Logging setup for extraction runs.

Human readable lines by default; JSON lines (one object per record, details as
top-level keys) when ``json_logs`` is requested, which is what CI pipelines
usually want to ingest.
"""

import logging
import sys

from pythonjsonlogger import jsonlogger

LOGGER_NAME = 'stablepo'
TEXT_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'
JSON_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'

_HANDLER_ATTR = '_stablepo_handler'
_RESERVED = frozenset(logging.LogRecord(None, 0, '', 0, '', (), None).__dict__) | {'message', 'asctime'}


def configure_logging(level='INFO', json_logs: bool = False, stream=None) -> logging.Logger:
    """Install (or replace) the stablepo stream handler and set its level."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_logs:
        handler.setFormatter(jsonlogger.JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    return logger


def log_event(action: str, description: str, level: int = logging.INFO, **details) -> None:
    """Emit a structured record.

    Example: log_event('CATALOG_WRITTEN', 'Wrote en.po', path='en.po', messages=12)
    """
    extra = {'action': action}
    for key, value in details.items():
        # LogRecord reserves some attribute names
        extra[f'{key}_' if key in _RESERVED else key] = value
    logging.getLogger(f'{LOGGER_NAME}.events').log(level, description, extra=extra)

