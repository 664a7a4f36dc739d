"""User-facing output with the trellis message prefixes."""
from __future__ import annotations

import sys


class Console:
    """Console output handler with a configurable level.

    Levels: none < error < info < debug. Informational output goes to
    stdout, warnings and errors to stderr.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    PREFIX = "====> "

    def __init__(self, level: str = "info") -> None:
        if level not in self.LEVELS:
            raise ValueError(f"Unknown console level: {level}")
        self.level_name = level
        self.level = self.LEVELS[level]

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"{self.PREFIX}{message}")

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(f"{self.PREFIX}DEBUG: {message}")

    def warning(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"{self.PREFIX}WARNING: {message}", file=sys.stderr)

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"{self.PREFIX}ERROR: {message}", file=sys.stderr)
