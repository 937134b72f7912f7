from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger

LOGGER_NAME = "search_gateway"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# third party loggers that flood the output below WARNING
_NOISY_LOGGERS = ("httpx", "httpcore", "cassandra", "uvicorn.access")

_ANSI_RESET = "\033[0m"
_ANSI_COLORS = {
    "cyan": 36,
    "green": 32,
    "yellow": 33,
    "red": 31,
    "magenta": 35,
    "blue": 34,
    "white": 37,
}
_LEVEL_PREFIXES = (
    (logging.ERROR, "⛔ "),
    (logging.WARNING, "⚠️ "),
)


def _is_debug() -> bool:
    return os.getenv("LOG_LEVEL", "info").strip().lower() == "debug"


class CustomFormatter(logging.Formatter):
    """Renders timestamps in the configured timezone and marks warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, self.tz)
        return stamp.strftime(datefmt) if datefmt else stamp.isoformat()

    def format(self, record):
        # handlers share the record, prefix a copy only
        copy = logging.makeLogRecord(record.__dict__)
        prefix = next((p for level, p in _LEVEL_PREFIXES if copy.levelno >= level), "")
        copy.msg = prefix + copy.getMessage()
        copy.args = ()
        return super().format(copy)


class ColoredFormatter(CustomFormatter):
    """Console formatter; colors a line when the record carries a ``color`` name."""

    def format(self, record) -> str:
        line = super().format(record)
        code = _ANSI_COLORS.get(getattr(record, "color", None) or "")
        if code is None:
            return line
        return f"\033[{code}m{line}{_ANSI_RESET}"


class ColorLogger:
    """Wraps a :class:`logging.Logger` and accepts ``color=<name>`` on every log call.

    Usage::

        logger.info("sweep finished", color="green")

    Only the console handler renders colors.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        if self._logger.isEnabledFor(level):
            kwargs.setdefault("stacklevel", 3)
            self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._log(level, msg, args, color, kwargs)

    def __getattr__(self, name):
        """Everything else (setLevel, handlers, ...) goes to the wrapped logger."""
        return getattr(self._logger, name)


def build_logging_config(log_file: str, tz_name: str, level: int) -> dict:
    """dictConfig with a colored console handler and a plain file handler."""
    def formatter(cls) -> dict:
        return {"()": cls, "format": LOG_FORMAT, "datefmt": LOG_DATEFMT, "tz_name": tz_name}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": formatter(CustomFormatter),
            "colored": formatter(ColoredFormatter),
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "standard",
                "level": level,
                "filename": log_file,
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    }


def setup_logging() -> ColorLogger:
    """Configure console + file logging ($ROOT_DIR/logs/app.log) and return the gateway logger."""
    debug = _is_debug()
    level = logging.DEBUG if debug else logging.INFO
    log_dir = os.path.join(os.environ.get("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(build_logging_config(
        log_file=os.path.join(log_dir, "app.log"),
        tz_name=os.getenv("TIMEZONE", "Europe/Berlin"),
        level=level,
    ))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    return ColorLogger(logging.getLogger(LOGGER_NAME))
