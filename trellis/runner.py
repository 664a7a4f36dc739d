"""Running the built rootfs image and deploying it with bootc."""
from __future__ import annotations

from typing import List, Sequence

from core.command_runner import CommandRunner

from .console import Console
from .constants import BOOTC, PODMAN
from .errors import CommandFailure, ImageNotFound, ToolUnavailable
from .podman import local_image


class ContainerRunner:
    def __init__(
        self,
        runner: CommandRunner,
        console: Console,
        *,
        podman: str = PODMAN,
        bootc: str = BOOTC,
    ) -> None:
        self._runner = runner
        self._console = console
        self._podman = podman
        self._bootc = bootc

    def run_command(self, tag: str, args: Sequence[str]) -> List[str]:
        return [
            self._podman,
            "run",
            "--net",
            "host",
            "--cap-add",
            "all",
            "--rm",
            "-it",
            local_image(tag),
            *args,
        ]

    def ensure_image_exists(self, tag: str) -> None:
        image = local_image(tag)
        result = self._runner.run(
            [self._podman, "image", "exists", image],
            capture=True,
            note="Check image",
        )
        if not result.ok:
            raise ImageNotFound(image)

    def run(self, tag: str, args: Sequence[str]) -> None:
        """Run ``args`` inside a throwaway container of the image ``tag``."""

        self.ensure_image_exists(tag)
        result = self._runner.run(self.run_command(tag, args), note="Run")
        if not result.ok:
            raise CommandFailure("podman run", result.returncode)

    def upgrade(self) -> None:
        """Deploy the freshly built rootfs as the next boot entry."""

        probe = self._runner.run([self._bootc, "--version"], capture=True, note="Check bootc")
        if not probe.ok:
            raise ToolUnavailable(BOOTC, "Install bootc to use the update command.")

        self._console.info("Running bootc upgrade...")
        result = self._runner.run([self._bootc, "upgrade"], note="Upgrade")
        if not result.ok:
            raise CommandFailure("bootc upgrade", result.returncode)
