"""
Logging setup shared by the AquaScore CLI and services.

Output is plain text by default or one JSON object per line when
``AQUASCORE_LOG_FMT=json``. ``AQUASCORE_LOG_LEVEL`` picks the level and
``AQUASCORE_LOG_FILE`` adds a file handler next to stderr. Records logged
through :func:`sample_logger` carry the sample id they concern.
"""

import logging
import os
import json
from datetime import datetime, timezone

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """
    Render each record as a JSON line with timestamp (ISO8601, UTC), level,
    name and message, plus ``sample_id`` and ``exc_info`` when present.
    """

    def format(self, record):
        payload = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        sample_id = getattr(record, "sample_id", None)
        if sample_id is not None:
            payload["sample_id"] = sample_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


class SampleLogAdapter(logging.LoggerAdapter):
    """Prefix messages with ``[sample_id]`` and attach the id to the record."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("sample_id", self.extra["sample_id"])
        kwargs["extra"] = extra
        return f"[{self.extra['sample_id']}] {msg}", kwargs


def sample_logger(logger: logging.Logger, sample_id: str) -> SampleLogAdapter:
    return SampleLogAdapter(logger, {"sample_id": sample_id})


class Logger:
    """
    Central logging setup for all modules.
    """

    _configured = False

    @staticmethod
    def _level(level: int | None) -> int:
        if level is not None:
            return level
        env_level = os.getenv("AQUASCORE_LOG_LEVEL", "INFO").upper()
        return getattr(logging, env_level, logging.INFO)

    @staticmethod
    def setup(
        level: int | None = None,
        fmt: str | None = None,
        datefmt: str = "%Y-%m-%d %H:%M:%S",
        filename: str | None = None,
    ) -> None:
        """
        Configure the root logger once per process.

        Args:
            level: logging level; ``AQUASCORE_LOG_LEVEL`` when omitted.
            fmt: ``"json"`` or a ``logging`` format string;
                ``AQUASCORE_LOG_FMT`` when omitted.
            datefmt: timestamp format for text output.
            filename: extra log file; ``AQUASCORE_LOG_FILE`` when omitted.
        """
        if Logger._configured:
            return
        fmt_mode = fmt if fmt is not None else os.getenv("AQUASCORE_LOG_FMT", "")
        if fmt_mode.lower() == "json":
            formatter: logging.Formatter = JSONFormatter(datefmt=datefmt)
        else:
            formatter = logging.Formatter(fmt_mode or TEXT_FORMAT, datefmt=datefmt)

        handlers: list[logging.Handler] = [logging.StreamHandler()]
        log_file = filename or os.getenv("AQUASCORE_LOG_FILE")
        if log_file:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

        root = logging.getLogger()
        root.handlers.clear()
        for handler in handlers:
            handler.setFormatter(formatter)
            root.addHandler(handler)
        root.setLevel(Logger._level(level))
        Logger._configured = True

    @staticmethod
    def get_logger(
        name: str = "aquascore", *, level: int | None = None, fmt: str | None = None
    ) -> logging.Logger:
        """
        Get a logger with the specified name, configuring logging on first use.

        Parameters:
            name: The name of the logger.
            level: Optional logging level to set up.
            fmt: Optional format string (or ``"json"``) for log messages.

        Returns:
            logging.Logger: The configured logger instance.
        """
        Logger.setup(level=level, fmt=fmt)
        return logging.getLogger(name)
