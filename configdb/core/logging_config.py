"""
Logging setup for applications embedding the config DB client.

The library itself only emits records through logging.getLogger(__name__);
it never installs handlers on import.
"""
import logging
import sys

from pythonjsonlogger.json import JsonFormatter


class ConfigDBJsonFormatter(JsonFormatter):
    """JSON formatter with standardized field names."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = self.formatTime(record)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record.pop('levelname', None)
        log_record.pop('name', None)


def setup_logging(level: str = "INFO", json_format: bool = True) -> logging.Logger:
    """
    Attach a stderr handler to the "configdb" logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: Emit JSON lines instead of plain text

    Returns:
        The configured "configdb" logger
    """
    if json_format:
        formatter = ConfigDBJsonFormatter(fmt='%(timestamp)s %(level)s %(logger)s %(message)s')
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s')

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    logger = logging.getLogger("configdb")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()
    logger.addHandler(handler)
    return logger
