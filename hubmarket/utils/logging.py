"""
Centralized logging configuration.

Every module logs through ``setup_logger(__name__)``. ``LOG_LEVEL`` sets the
default level and ``LOG_LEVELS`` overrides it per package, e.g.
``LOG_LEVELS=hubmarket.performance=DEBUG,hubmarket.utils.cache=WARNING``.
"""

import logging
import os
from typing import Dict, Optional
from pydantic import BaseModel, Field

def parse_level_overrides(raw: Optional[str]) -> Dict[str, str]:
    """Parse ``name=LEVEL`` pairs separated by commas; malformed pairs are skipped."""
    levels = {}
    for part in (raw or "").split(","):
        name, sep, level = part.partition("=")
        if sep and name.strip() and level.strip():
            levels[name.strip()] = level.strip().upper()
    return levels

class LogConfig(BaseModel):
    """Logging configuration, read from the environment when instantiated."""
    level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_path: Optional[str] = Field(default_factory=lambda: os.getenv("LOG_FILE"))
    overrides: Dict[str, str] = Field(default_factory=lambda: parse_level_overrides(os.getenv("LOG_LEVELS")))

    def level_for(self, name: str) -> str:
        """Level of the most specific override covering ``name``, else the default."""
        matches = [
            prefix for prefix in self.overrides
            if name == prefix or name.startswith(prefix + ".")
        ]
        if not matches:
            return self.level
        return self.overrides[max(matches, key=len)]

def setup_logger(name: str) -> logging.Logger:
    """
    Set up a logger with consistent configuration.

    Args:
        name: Name of the logger (usually __name__)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)

    # Handlers are attached once per logger name
    if not logger.handlers:
        config = LogConfig()
        level = config.level_for(name)
        logger.setLevel(level)

        formatter = logging.Formatter(
            fmt=config.format,
            datefmt=config.date_format
        )

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if config.file_path:
            file_handler = logging.FileHandler(config.file_path)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
