"""Centralized logging for llmsweep.

Logging must be configured once before use, normally by the CLI entry point.

Usage:
    from llmsweep.utils.logger import Logger

    Logger.configure(level="INFO", timestamps=True)

    log = Logger.get("telemetry.sampler")
    log.info("Sampler started")

    # Mirror a logger into a file for the lifetime of a session
    handler = Logger.attach_file("runner.session", "out/run_log.txt")
    ...
    Logger.detach(handler, "runner.session")
"""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_logging_level(self) -> int:
        """Convert to Python logging level."""
        level: int = getattr(logging, self.value)
        return level


class LoggerNotConfiguredError(Exception):
    """Raised when trying to use Logger before calling Logger.configure()."""

    def __init__(self) -> None:
        super().__init__(
            "Logger not configured. Call Logger.configure() at application startup."
        )


def _build_format(timestamps: bool, include_location: bool) -> str:
    parts = []
    if timestamps:
        parts.append("%(asctime)s")
    parts.append("%(levelname)s")
    parts.append("[%(name)s]")
    if include_location:
        parts.append("[%(filename)s:%(lineno)d]")
    parts.append("%(message)s")
    return " ".join(parts)


class Logger:
    """Centralized logging for llmsweep.

    All loggers live under the ``llmsweep`` root. Attempting to fetch a
    logger before configuration raises LoggerNotConfiguredError.

    Example:
        >>> Logger.configure(level="INFO")
        >>> log = Logger.get("runner.orchestrator")
        >>> log.info("Cell llama3/p1/run01: RUNNING")
    """

    _configured: bool = False
    _root_name: str = "llmsweep"

    @classmethod
    def configure(
        cls,
        level: str | LogLevel = "INFO",
        output: str | Path | TextIO | None = None,
        timestamps: bool = True,
        include_location: bool = False,
    ) -> None:
        """Configure the root logger. Must be called before any logging.

        Args:
            level: Log level name or LogLevel value.
            output: None for stdout, "stderr", a file path, or any file-like
                object.
            timestamps: Include timestamps in messages.
            include_location: Include [filename:lineno].
        """
        if isinstance(level, str):
            level = LogLevel(level.upper())

        logger = logging.getLogger(cls._root_name)
        logger.setLevel(level.to_logging_level())

        for existing_handler in logger.handlers[:]:
            logger.removeHandler(existing_handler)
            existing_handler.close()

        new_handler: logging.Handler
        if output is None:
            new_handler = logging.StreamHandler(sys.stdout)
        elif output == "stderr":
            new_handler = logging.StreamHandler(sys.stderr)
        elif isinstance(output, str | Path):
            new_handler = logging.FileHandler(str(output))
        elif hasattr(output, "write"):
            new_handler = logging.StreamHandler(output)
        else:
            raise ValueError(f"Invalid output: {type(output)}")

        new_handler.setLevel(level.to_logging_level())
        new_handler.setFormatter(
            logging.Formatter(_build_format(timestamps, include_location))
        )
        logger.addHandler(new_handler)
        logger.propagate = False

        cls._configured = True

    @classmethod
    def get(cls, name: str | None = None) -> logging.Logger:
        """Get a logger instance.

        Args:
            name: Logger name (appended to "llmsweep."). If None, returns the
                root logger.

        Raises:
            LoggerNotConfiguredError: If configure() hasn't been called.
        """
        if not cls._configured:
            raise LoggerNotConfiguredError()

        if name:
            return logging.getLogger(f"{cls._root_name}.{name}")
        return logging.getLogger(cls._root_name)

    @classmethod
    def set_level(cls, level: str | LogLevel) -> None:
        """Change log level without reconfiguring.

        Raises:
            LoggerNotConfiguredError: If configure() hasn't been called.
        """
        if not cls._configured:
            raise LoggerNotConfiguredError()

        if isinstance(level, str):
            level = LogLevel(level.upper())

        logger = logging.getLogger(cls._root_name)
        logger.setLevel(level.to_logging_level())
        for handler in logger.handlers:
            handler.setLevel(level.to_logging_level())

    @classmethod
    def attach_file(cls, name: str, path: str | Path) -> logging.FileHandler:
        """Append everything logged under ``name`` to ``path``.

        The file always receives timestamped INFO-and-above records,
        independent of the console level.

        Returns:
            The attached handler, to be passed to detach().
        """
        logger = cls.get(name)
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(str(path), mode="a", encoding="utf-8")
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
        logger.addHandler(handler)
        # The root level may be WARNING; the file still wants INFO.
        if logger.getEffectiveLevel() > logging.INFO:
            logger.setLevel(logging.INFO)
        return handler

    @classmethod
    def detach(cls, handler: logging.Handler, name: str) -> None:
        """Remove and close a handler added by attach_file()."""
        logger = logging.getLogger(f"{cls._root_name}.{name}")
        logger.removeHandler(handler)
        handler.close()

    @classmethod
    def is_configured(cls) -> bool:
        """Check if logger has been configured."""
        return cls._configured
