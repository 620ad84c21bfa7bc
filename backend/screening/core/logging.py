"""
Structured Logging Configuration
Colored console lines for development, JSON lines for production and log files.

Every handler installed here carries a PIIScrubFilter: candidate contact
details must never reach a log sink, even when an exception message happens
to quote them.
"""
import json
import logging
import re
import sys
import time
from datetime import datetime, timezone
from typing import Optional

_EMAIL_RE = re.compile(r'[\w.+-]+@[\w-]+(?:\.[\w-]+)+')
_PHONE_RE = re.compile(r'(?:\+\d{1,3}[\s.-]?)?(?:\(\d{3}\)|\d{3})[\s.-]?\d{3}[\s.-]\d{4}\b')

# Pipeline context keys shown by the console formatter when present
CONTEXT_KEYS = ("candidate_id", "message_id", "provider")


class PIIScrubFilter(logging.Filter):
    """Masks e-mail addresses and phone numbers in the rendered message"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = _PHONE_RE.sub("[phone]", _EMAIL_RE.sub("[email]", message))
        if scrubbed != message:
            record.msg = scrubbed
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; `extra=` keys are copied to the top level"""

    _RESERVED = set(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key not in self._RESERVED and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
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
        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        logger_name = record.name.replace("screening.", "", 1)

        line = f"{color}{timestamp} │ {record.levelname:8}{self.RESET} │ {logger_name:24} │ {record.getMessage()}"

        context = [f"{key}={getattr(record, key)}" for key in CONTEXT_KEYS if getattr(record, key, None)]
        if context:
            line += f"  [{' '.join(context)}]"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None
) -> None:
    """
    Configure root logging for the service.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines on stdout instead of colored text
        log_file: Optional path; the file always gets JSON lines
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    scrubber = PIIScrubFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter() if json_format else ColoredFormatter())
    console_handler.addFilter(scrubber)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(scrubber)
        root_logger.addHandler(file_handler)

    # pdfminer is chatty on malformed PDFs; HTTP clients log every request
    for noisy in ("urllib3", "httpx", "httpcore", "openai", "pdfminer"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


class PerformanceLogger:
    """
    Times one pipeline step and warns when it runs past `threshold_ms`.

        with PerformanceLogger(logger, "process message 42", threshold_ms=30000) as perf:
            ...
            perf.elapsed_ms()   # while running
        perf.duration_ms        # after exit
    """

    def __init__(self, logger: logging.Logger, operation: str, threshold_ms: float = 100):
        self.logger = logger
        self.operation = operation
        self.threshold_ms = threshold_ms
        self.start_time: Optional[float] = None
        self.duration_ms: float = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def elapsed_ms(self) -> float:
        if self.start_time is None:
            return 0.0
        return (time.perf_counter() - self.start_time) * 1000

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = self.elapsed_ms()
        if exc_type is not None:
            self.logger.debug(f"{self.operation} aborted after {self.duration_ms:.0f}ms")
        elif self.duration_ms > self.threshold_ms:
            self.logger.warning(f"🐢 Slow step: {self.operation} took {self.duration_ms:.0f}ms")
        else:
            self.logger.debug(f"{self.operation} completed in {self.duration_ms:.0f}ms")
        return False
