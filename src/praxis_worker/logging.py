import logging
import sys

from pythonjsonlogger import jsonlogger

_QUIET_LOGGERS = ["pika", "urllib3", "httpx", "ddtrace"]


def _is_json_handler(handler: logging.Handler) -> bool:
    return isinstance(handler.formatter, jsonlogger.JsonFormatter)


def setup_logging():
    """
    Configures structured JSON logging for the worker process.

    The formatter emits timestamp, level, logger name, message, trace_id and
    span_id. Any previously installed JSON handler is replaced so repeated
    calls leave exactly one stdout handler, and chatty client libraries are
    limited to warnings.

    Returns:
        logging.Logger: The configured root logger instance.
    """
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s"
    )
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    root_logger.handlers = [
        h for h in root_logger.handlers if not _is_json_handler(h)
    ]
    root_logger.addHandler(stream_handler)

    for logger_name in _QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    return root_logger
