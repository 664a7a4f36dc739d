"""Removal of container images left behind by builds."""
from __future__ import annotations

from typing import List, Sequence

from core.command_runner import CommandRunner

from .console import Console
from .constants import PODMAN
from .errors import CommandFailure
from .planner import BuildStep
from .podman import local_image


class ImageCleaner:
    def __init__(self, runner: CommandRunner, console: Console, *, podman: str = PODMAN) -> None:
        self._runner = runner
        self._console = console
        self._podman = podman

    def prune(self) -> None:
        result = self._runner.run([self._podman, "system", "prune"], note="Prune")
        if not result.ok:
            raise CommandFailure("podman system prune", result.returncode)

    @staticmethod
    def intermediate_images(steps: Sequence[BuildStep]) -> List[str]:
        final_tags = {step.tag for step in steps if step.is_final}
        images: List[str] = []
        for step in steps:
            if step.tag in final_tags:
                continue
            image = local_image(step.tag)
            if image not in images:
                images.append(image)
        return images

    def remove_intermediate(self, steps: Sequence[BuildStep]) -> int:
        """Remove the non-final images of a completed plan; returns how many were removed.

        A failed removal is reported but does not fail the build that
        produced the images.
        """

        images = self.intermediate_images(steps)
        if not images:
            return 0

        result = self._runner.run(
            [self._podman, "rmi", "-f", *images],
            capture=True,
            note="Remove intermediate images",
        )
        if not result.ok:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            self._console.warning(f"Could not remove intermediate images: {detail}")
            return 0

        self._console.info(f"Removed {len(images)} intermediate images")
        return len(images)
