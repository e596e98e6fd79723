"""
Centralised logging configuration.

Call `configure_logging()` once at app startup. Each module should then use:

    import logging
    logger = logging.getLogger(__name__)

and attach context through ``extra={...}`` rather than string formatting.
The formatter appends those fields to the line as ``key=value`` pairs.
"""

import logging
import sys

# Attributes every LogRecord carries; anything else came from ``extra``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS and not k.startswith("_")}
        if not context:
            return line
        pairs = " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))
        # Keep tracebacks last
        head, sep, tail = line.partition("\n")
        return f"{head} | {pairs}{sep}{tail}"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger with a context-aware formatter."""
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt = "%Y-%m-%dT%H:%M:%S"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers = [handler]

    # Quieten noisy third-party loggers
    for name in ("httpx", "httpcore", "openai", "werkzeug"):
        logging.getLogger(name).setLevel(logging.WARNING)
