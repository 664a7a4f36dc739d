"""Shared helpers for running external tools and loading configuration."""

from .command_runner import (
    COMMAND_NOT_FOUND,
    CommandResult,
    CommandRunner,
    RecordedCommand,
    RecordingCommandRunner,
    SubprocessCommandRunner,
    format_command,
)
from .config_loader import ConfigLoader, FILE_LOADERS, load_config_file

__all__ = [
    "COMMAND_NOT_FOUND",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
    "ConfigLoader",
    "FILE_LOADERS",
    "load_config_file",
]
