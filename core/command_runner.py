"""Run external tools synchronously, or record them for a dry run."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence
import os
import shlex
import subprocess


COMMAND_NOT_FOUND = 127


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Represents the outcome of an executed command."""

    command: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_command(command: Sequence[str], env: Mapping[str, str] | None = None) -> str:
    """Render ``command`` as a copy-pasteable shell line, prefixed by ``env`` assignments."""

    parts: List[str] = [f"{key}={shlex.quote(value)}" for key, value in sorted((env or {}).items())]
    parts.extend(shlex.quote(part) for part in command)
    return " ".join(parts)


class CommandRunner:
    """Abstract command runner interface.

    ``capture`` collects stdout/stderr into the result; otherwise the child
    inherits the terminal so long builds stream their output live. Runners
    never raise on a non-zero exit, callers decide what a failure means.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        capture: bool = False,
        note: str | None = None,
    ) -> CommandResult:
        raise NotImplementedError


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`."""

    @staticmethod
    def _merge_environment(env: Mapping[str, str] | None) -> Dict[str, str] | None:
        if not env:
            return None
        merged = os.environ.copy()
        merged.update(env)
        return merged

    def run(
        self,
        command: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        capture: bool = False,
        note: str | None = None,
    ) -> CommandResult:
        argv = tuple(command)
        try:
            process = subprocess.run(
                argv,
                env=self._merge_environment(env),
                capture_output=capture,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            # Same convention as the shell for a missing executable.
            return CommandResult(command=argv, returncode=COMMAND_NOT_FOUND, stderr=str(exc))

        return CommandResult(
            command=argv,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
        )


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    env: Dict[str, str] = field(default_factory=dict)
    note: str | None = None
    capture: bool = False


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them."""

    def __init__(self) -> None:
        self.commands: List[RecordedCommand] = []

    def run(
        self,
        command: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        capture: bool = False,
        note: str | None = None,
    ) -> CommandResult:
        self.commands.append(
            RecordedCommand(command=list(command), env=dict(env or {}), note=note, capture=capture)
        )
        return CommandResult(command=tuple(command), returncode=0)

    def iter_formatted(self) -> Iterable[str]:
        for record in self.commands:
            parts: List[str] = ["[dry-run]"]
            if record.note:
                parts.append(record.note)
            parts.append(format_command(record.command, record.env))
            yield " ".join(parts)


__all__ = [
    "COMMAND_NOT_FOUND",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
]
