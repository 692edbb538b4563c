"""llmsweep utilities - logging and environment helpers."""

from llmsweep.utils.env import EnvVarError, EnvVarTypeError, get_env
from llmsweep.utils.logger import Logger, LoggerNotConfiguredError, LogLevel

__all__ = [
    # Env
    "EnvVarError",
    "EnvVarTypeError",
    "get_env",
    # Logger
    "LogLevel",
    "Logger",
    "LoggerNotConfiguredError",
]
