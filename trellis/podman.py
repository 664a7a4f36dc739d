"""Assemble and run ``podman build`` invocations for planned build steps."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence

from core.command_runner import CommandRunner, format_command

from .config import BuildConfig
from .console import Console
from .constants import (
    AUR_CACHE_MOUNT,
    BASE_IMAGE_ARG,
    BUILD_CACHE_ENV,
    HOOKS_DIR_ARG,
    LOCALHOST_PREFIX,
    NO_PARENT_IMAGE,
    PACMAN_CACHE_MOUNT,
    PODMAN,
)
from .errors import BuildFailure
from .planner import BuildKind, BuildStep


def local_image(tag: str) -> str:
    return f"{LOCALHOST_PREFIX}{tag}"


class PodmanCommandBuilder:
    """Collects ``podman build`` arguments in a fixed, readable order."""

    def __init__(self, executable: str = PODMAN) -> None:
        self._args: List[str] = [executable, "build"]

    @classmethod
    def for_rootfs_construction(cls, executable: str = PODMAN) -> "PodmanCommandBuilder":
        # pacstrap inside the build needs host networking, mounts and device nodes.
        return (
            cls(executable)
            .network_host()
            .add_capability("sys_admin")
            .add_capability("mknod")
            .squash()
        )

    def network_host(self) -> "PodmanCommandBuilder":
        self._args.extend(["--net", "host"])
        return self

    def add_capability(self, capability: str) -> "PodmanCommandBuilder":
        self._args.extend(["--cap-add", capability])
        return self

    def squash(self) -> "PodmanCommandBuilder":
        self._args.append("--squash")
        return self

    def no_cache(self, enabled: bool) -> "PodmanCommandBuilder":
        if enabled:
            self._args.append("--no-cache")
        return self

    def definition(self, path: Path) -> "PodmanCommandBuilder":
        self._args.extend(["-f", str(path)])
        return self

    def build_arg(self, key: str, value: str) -> "PodmanCommandBuilder":
        self._args.extend(["--build-arg", f"{key}={value}"])
        return self

    def target(self, target: str) -> "PodmanCommandBuilder":
        self._args.extend(["--target", target])
        return self

    def tag(self, tag: str) -> "PodmanCommandBuilder":
        self._args.extend(["-t", tag])
        return self

    def volume(self, source: Path, destination: str, *, read_only: bool = False) -> "PodmanCommandBuilder":
        spec = f"{source}:{destination}"
        if read_only:
            spec = f"{spec}:ro"
        self._args.extend(["-v", spec])
        return self

    def build_context(self, context: str) -> "PodmanCommandBuilder":
        self._args.extend(["--build-context", context])
        return self

    def context_dir(self, path: Path) -> "PodmanCommandBuilder":
        self._args.append(str(path))
        return self

    def build(self) -> List[str]:
        return list(self._args)


class BuildExecutor:
    """Run build steps one at a time, stopping at the first failure."""

    def __init__(self, runner: CommandRunner, console: Console, *, podman: str = PODMAN) -> None:
        self._runner = runner
        self._console = console
        self._podman = podman

    @staticmethod
    def environment(config: BuildConfig) -> Dict[str, str]:
        if config.podman_build_cache:
            return {}
        return {BUILD_CACHE_ENV: "false"}

    def command(self, step: BuildStep, config: BuildConfig) -> List[str]:
        base_image = local_image(step.base_image) if step.base_image else NO_PARENT_IMAGE
        builder = (
            PodmanCommandBuilder.for_rootfs_construction(self._podman)
            .no_cache(not config.podman_build_cache)
            .definition(step.definition_path)
            .build_arg(BASE_IMAGE_ARG, base_image)
            .target(step.target)
            .tag(step.tag)
        )
        if step.kind is BuildKind.ROOTFS:
            self._add_rootfs_options(builder, config)
        return builder.context_dir(step.definition_path.parent).build()

    @staticmethod
    def _add_rootfs_options(builder: PodmanCommandBuilder, config: BuildConfig) -> None:
        for context in config.extra_contexts:
            builder.build_context(str(context))
        if config.pacman_cache is not None:
            builder.volume(config.pacman_cache, PACMAN_CACHE_MOUNT)
        if config.aur_cache is not None:
            builder.volume(config.aur_cache, AUR_CACHE_MOUNT)
        if config.hooks_dir is not None:
            builder.volume(config.hooks_dir, str(config.hooks_dir), read_only=True)
            builder.build_arg(HOOKS_DIR_ARG, str(config.hooks_dir))
        for mount in config.extra_mounts:
            builder.volume(mount, str(mount))

    def execute(self, step: BuildStep, config: BuildConfig) -> None:
        command = self.command(step, config)
        env = self.environment(config)
        self._console.debug(format_command(command, env))
        result = self._runner.run(command, env=env, note=f"Build {step.tag}")
        if not result.ok:
            raise BuildFailure(step.tag, result.returncode)

    def execute_plan(self, steps: Sequence[BuildStep], config: BuildConfig) -> None:
        total = len(steps)
        for index, step in enumerate(steps, start=1):
            self._console.info(f"Building stage {index}/{total}: {step.spec} -> {step.tag}")
            self.execute(step, config)


__all__ = ["BuildExecutor", "PodmanCommandBuilder", "local_image"]
