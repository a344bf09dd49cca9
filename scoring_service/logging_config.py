"""
Logging Configuration Module

Queue-based logging for the web app: request threads and scorer worker
threads push records onto a queue that a single listener writes out, so
lines never interleave. Chatty HTTP and LLM client libraries are muted
unless debug logging is on.
"""

import logging
import logging.handlers
import sys
from queue import Queue
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"

NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "urllib3",
    "openai",
    "langchain_core",
    "langchain_deepseek",
    "langchain_ollama",
    "langchain_openai",
    "werkzeug",
]


class _MuteHttpFilter(logging.Filter):
    """Drop HTTP request/response chatter from client libraries."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name or ""
        if name.startswith("httpx") or name.startswith("httpcore"):
            return False
        msg = record.getMessage()
        return not (
            isinstance(msg, str)
            and (msg.startswith("HTTP Request:") or msg.startswith("HTTP Response:"))
        )


class ThreadSafeLoggingConfig:
    """Owns the log queue and its listener."""

    def __init__(self):
        self._log_listener: Optional[logging.handlers.QueueListener] = None
        self._log_queue: Optional[Queue] = None

    def setup_logging(self, debug: bool = False) -> None:
        """Route the root logger through a queue and start the listener."""
        self.stop()
        self._log_queue = Queue()
        queue_handler = logging.handlers.QueueHandler(self._log_queue)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        if not debug:
            console_handler.addFilter(_MuteHttpFilter())

        self._log_listener = logging.handlers.QueueListener(
            self._log_queue, console_handler, respect_handler_level=True
        )
        self._log_listener.start()

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.addHandler(queue_handler)
        root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

        if not debug:
            self._silence_noisy_libraries()

    def _silence_noisy_libraries(self) -> None:
        for name in NOISY_LOGGERS:
            noisy = logging.getLogger(name)
            if name in ("httpx", "httpcore"):
                noisy.setLevel(logging.CRITICAL)
            else:
                noisy.setLevel(logging.WARNING)

    def stop(self) -> None:
        """Stop the listener, flushing queued records."""
        if self._log_listener:
            self._log_listener.stop()
            self._log_listener = None
        self._log_queue = None


logging_config = ThreadSafeLoggingConfig()


def setup_logging(debug: bool = False) -> None:
    """Setup thread-safe logging configuration."""
    logging_config.setup_logging(debug)


def stop_logging() -> None:
    """Stop the logging listener and cleanup."""
    logging_config.stop()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
