import logging
import sys
import json
from datetime import datetime, timezone
import os


class StructuredFormatter(logging.Formatter):
    """Outputs one JSON object per log record"""

    CONTEXT_ATTRIBUTES = ("request_id", "path", "method", "status_code", "duration", "fieldset_id")

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attribute in self.CONTEXT_ATTRIBUTES:
            if hasattr(record, attribute):
                log_data[attribute] = getattr(record, attribute)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored formatter for local development"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        message = super().format(record)
        if hasattr(record, 'extra_fields') and record.extra_fields:
            context = " ".join(f"{key}={value}" for key, value in record.extra_fields.items())
            message = f"{message} [{context}]"
        return f"{color}{message}{self.RESET}"


def setup_logging(log_level: str = None, json_logs: bool = None):
    """Configure the root logger for the API and the CLI"""
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if json_logs is None:
        json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if json_logs:
        formatter = StructuredFormatter()
    else:
        formatter = ColoredFormatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with *_ctx helpers that attach structured fields"""
    logger = logging.getLogger(name)

    def log_with_context(level: int, msg: str, **kwargs):
        extra = {}
        if kwargs:
            extra['extra_fields'] = kwargs
        logger.log(level, msg, extra=extra)

    logger.debug_ctx = lambda msg, **kw: log_with_context(logging.DEBUG, msg, **kw)
    logger.info_ctx = lambda msg, **kw: log_with_context(logging.INFO, msg, **kw)
    logger.warning_ctx = lambda msg, **kw: log_with_context(logging.WARNING, msg, **kw)
    logger.error_ctx = lambda msg, **kw: log_with_context(logging.ERROR, msg, **kw)

    return logger


class LogContext:
    """Adds attributes to every log record emitted inside the block"""

    def __init__(self, **kwargs):
        self.context = kwargs
        self.old_factory = None

    def __enter__(self):
        self.old_factory = logging.getLogRecordFactory()
        context = self.context

        def record_factory(*args, **kwargs):
            record = self.old_factory(*args, **kwargs)
            for key, value in context.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self.old_factory)
