"""Error taxonomy for trellis.

Every error is terminal: the CLI reports it on one line and exits 1.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence


class TrellisError(Exception):
    """Base class for all errors reported to the user."""


class ConfigError(TrellisError):
    """Configuration could not be resolved."""


class InvalidConfigValue(ConfigError):
    def __init__(self, option: str, value: Any, reason: str) -> None:
        super().__init__(f"Invalid value {value!r} for '{option}': {reason}")
        self.option = option
        self.value = value
        self.reason = reason


class ConfigFileError(ConfigError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot load configuration file {path}: {reason}")
        self.path = path


class CacheDirectoryError(ConfigError):
    def __init__(self, name: str, path: Path, reason: str) -> None:
        super().__init__(f"Cannot create {name} cache directory {path}: {reason}")
        self.name = name
        self.path = path


class MalformedStageToken(TrellisError):
    def __init__(self, token: str, reason: str) -> None:
        super().__init__(f"Malformed stage token {token!r}: {reason}")
        self.token = token


class StageDiscoveryError(TrellisError):
    """A stage group could not be mapped onto exactly one definition file."""


class StageFileNotFound(StageDiscoveryError):
    def __init__(self, group: str, filename: str, root: Path) -> None:
        super().__init__(
            f"Definition file not found: {filename} "
            f"(searched {root} and all of its subdirectories)"
        )
        self.group = group
        self.root = root


class AmbiguousStageFile(StageDiscoveryError):
    def __init__(self, group: str, filename: str, matches: Sequence[Path]) -> None:
        listing = ", ".join(str(path) for path in matches)
        super().__init__(
            f"Ambiguous definition file for stage group '{group}': "
            f"{len(matches)} files named {filename} found ({listing})"
        )
        self.group = group
        self.matches = tuple(matches)


class UsageError(TrellisError):
    """The command line could not be understood."""


class MissingCommand(UsageError):
    def __init__(self) -> None:
        super().__init__("No command given (expected one of: build-builder, build, run, clean, update)")


class UnsupportedCommand(UsageError):
    def __init__(self, command: str) -> None:
        super().__init__(f"Unsupported command: {command}")
        self.command = command


class CommandFailure(TrellisError):
    """An external tool exited non-zero."""

    def __init__(self, description: str, exit_code: int) -> None:
        super().__init__(f"{description} failed with exit code {exit_code}")
        self.description = description
        self.exit_code = exit_code


class BuildFailure(CommandFailure):
    def __init__(self, tag: str, exit_code: int) -> None:
        super().__init__(f"Build of {tag}", exit_code)
        self.tag = tag


class ImageNotFound(TrellisError):
    def __init__(self, image: str) -> None:
        super().__init__(f"Container image not found: {image}. Run 'trellis build' first.")
        self.image = image


class ToolUnavailable(TrellisError):
    def __init__(self, tool: str, hint: str) -> None:
        super().__init__(f"{tool} is not available. {hint}")
        self.tool = tool
