"""Logging configuration for the agent execution engine.

Library modules only create loggers; handlers are attached by the CLI
through ``setup_logging``. Agents log through ``AgentLoggerAdapter`` so every
line names the agent it came from.
"""

import logging
import os
import sys
from typing import Any, MutableMapping, TextIO

LOGGER_NAME = "ai_collaborator"
LOG_LEVEL_ENV = "AI_COLLABORATOR_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(level: str | None = None) -> int:
    """Resolve a level name: explicit argument > env var > WARNING."""
    name = (level or os.environ.get(LOG_LEVEL_ENV) or "WARNING").upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        print(f"Warning: Invalid log level '{name}', using WARNING", file=sys.stderr)
        return logging.WARNING
    return numeric


def setup_logging(level: str | None = None, stream: TextIO | None = None) -> logging.Logger:
    """Configure the ``ai_collaborator`` logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
               Falls back to AI_COLLABORATOR_LOG_LEVEL, then WARNING.
        stream: Where to write log lines (default: stderr).

    Returns:
        The package logger. Calling this again only updates levels.
    """
    numeric_level = resolve_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(numeric_level)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (typically ``__name__``)."""
    return logging.getLogger(name)


class AgentLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with ``[agent name]``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['agent']}] {msg}", kwargs


def get_agent_logger(name: str, agent_name: str) -> AgentLoggerAdapter:
    return AgentLoggerAdapter(logging.getLogger(name), {"agent": agent_name})
