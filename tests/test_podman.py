from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
from dataclasses import replace
from pathlib import Path
from typing import List, Mapping, Sequence
import io
import unittest

from core.command_runner import CommandResult, CommandRunner, RecordingCommandRunner
from trellis.cleaner import ImageCleaner
from trellis.config import BuildConfig, BuildContext
from trellis.console import Console
from trellis.errors import BuildFailure, CommandFailure, ImageNotFound, ToolUnavailable
from trellis.planner import BuildKind, BuildStep
from trellis.podman import BuildExecutor
from trellis.runner import ContainerRunner
from trellis.stages import StageSpec


class ScriptedRunner(CommandRunner):
    """Records commands and answers with queued return codes (0 once the queue is empty)."""

    def __init__(self, returncodes: Sequence[int] = ()) -> None:
        self.returncodes = list(returncodes)
        self.commands: List[List[str]] = []
        self.envs: List[Mapping[str, str]] = []

    def run(self, command, *, env=None, capture=False, note=None) -> CommandResult:
        self.commands.append(list(command))
        self.envs.append(dict(env or {}))
        code = self.returncodes.pop(0) if self.returncodes else 0
        return CommandResult(command=tuple(command), returncode=code, stderr="boom" if code else "")


def _config(**overrides) -> BuildConfig:
    config = BuildConfig(
        builder_tag="trellis-builder",
        rootfs_tag="trellis-rootfs",
        builder_stages=(),
        rootfs_stages=(),
        pacman_cache=None,
        aur_cache=None,
        src_dir=Path("/srv/src"),
        hooks_dir=None,
        podman_build_cache=False,
        auto_clean=False,
        extra_contexts=(),
        extra_mounts=(),
    )
    return replace(config, **overrides)


def _step(tag: str, token: str, base_image: str | None, *, is_final: bool, kind: BuildKind = BuildKind.ROOTFS) -> BuildStep:
    group, _, stage = token.partition(":")
    spec = StageSpec(group=group, stage=stage or group)
    return BuildStep(
        tag=tag,
        definition_path=Path("/srv/src") / group / f"Definition.{group}",
        target=spec.stage,
        base_image=base_image,
        is_final=is_final,
        kind=kind,
        spec=spec,
    )


class BuildExecutorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.console = Console("none")

    def test_first_step_builds_from_scratch(self) -> None:
        executor = BuildExecutor(RecordingCommandRunner(), self.console)
        command = executor.command(_step("trellis-rootfs", "base", None, is_final=True), _config())
        self.assertEqual(
            command,
            [
                "podman", "build",
                "--net", "host",
                "--cap-add", "sys_admin",
                "--cap-add", "mknod",
                "--squash",
                "--no-cache",
                "-f", "/srv/src/base/Definition.base",
                "--build-arg", "BASE_IMAGE=scratch",
                "--target", "base",
                "-t", "trellis-rootfs",
                "/srv/src/base",
            ],
        )

    def test_later_step_uses_previous_local_image(self) -> None:
        executor = BuildExecutor(RecordingCommandRunner(), self.console)
        step = _step("trellis-rootfs", "multi:stage2", "trellis-rootfs-multi-stage1", is_final=True)
        command = executor.command(step, _config(podman_build_cache=True))
        self.assertIn("BASE_IMAGE=localhost/trellis-rootfs-multi-stage1", command)
        self.assertEqual(command[command.index("--target") + 1], "stage2")
        self.assertNotIn("--no-cache", command)

    def test_build_cache_switch_controls_environment(self) -> None:
        self.assertEqual(BuildExecutor.environment(_config()), {"BUILDAH_LAYERS": "false"})
        self.assertEqual(BuildExecutor.environment(_config(podman_build_cache=True)), {})

    def test_rootfs_steps_get_caches_hooks_mounts_and_contexts(self) -> None:
        config = _config(
            pacman_cache=Path("/cache/pacman"),
            aur_cache=Path("/cache/aur"),
            hooks_dir=Path("/etc/trellis/hooks.d"),
            extra_contexts=(BuildContext("files", "/srv/files"),),
            extra_mounts=(Path("/srv/keys"),),
        )
        executor = BuildExecutor(RecordingCommandRunner(), self.console)
        command = executor.command(_step("trellis-rootfs", "base", None, is_final=True), config)

        self.assertIn("files=/srv/files", command)
        self.assertEqual(command[command.index("files=/srv/files") - 1], "--build-context")
        self.assertIn("/cache/pacman:/var/cache/pacman/pkg", command)
        self.assertIn("/cache/aur:/var/cache/trellis/aur", command)
        self.assertIn("/etc/trellis/hooks.d:/etc/trellis/hooks.d:ro", command)
        self.assertIn("HOOKS_DIR=/etc/trellis/hooks.d", command)
        self.assertIn("/srv/keys:/srv/keys", command)
        self.assertEqual(command[-1], "/srv/src/base")

    def test_builder_steps_skip_rootfs_only_options(self) -> None:
        config = _config(
            pacman_cache=Path("/cache/pacman"),
            hooks_dir=Path("/etc/trellis/hooks.d"),
            extra_contexts=(BuildContext("files", "/srv/files"),),
        )
        executor = BuildExecutor(RecordingCommandRunner(), self.console)
        step = _step("trellis-builder", "base", None, is_final=True, kind=BuildKind.BUILDER)
        command = executor.command(step, config)
        self.assertNotIn("-v", command)
        self.assertNotIn("--build-context", command)

    def test_plan_runs_in_order_with_environment(self) -> None:
        runner = ScriptedRunner()
        steps = [
            _step("trellis-rootfs-base", "base", None, is_final=False),
            _step("trellis-rootfs", "gpu", "trellis-rootfs-base", is_final=True),
        ]
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            BuildExecutor(runner, Console()).execute_plan(steps, _config())

        self.assertEqual([command[command.index("-t") + 1] for command in runner.commands], ["trellis-rootfs-base", "trellis-rootfs"])
        self.assertEqual(runner.envs, [{"BUILDAH_LAYERS": "false"}] * 2)
        self.assertIn("Building stage 1/2: base -> trellis-rootfs-base", buffer.getvalue())
        self.assertIn("Building stage 2/2: gpu -> trellis-rootfs", buffer.getvalue())

    def test_failed_step_halts_the_plan(self) -> None:
        runner = ScriptedRunner([0, 3])
        steps = [
            _step("trellis-rootfs-a", "a", None, is_final=False),
            _step("trellis-rootfs-b", "b", "trellis-rootfs-a", is_final=False),
            _step("trellis-rootfs", "c", "trellis-rootfs-b", is_final=True),
        ]
        with self.assertRaises(BuildFailure) as ctx:
            BuildExecutor(runner, self.console).execute_plan(steps, _config())
        self.assertEqual(ctx.exception.tag, "trellis-rootfs-b")
        self.assertEqual(ctx.exception.exit_code, 3)
        self.assertEqual(len(runner.commands), 2)


class ContainerRunnerTests(unittest.TestCase):
    def test_run_checks_image_then_runs(self) -> None:
        runner = ScriptedRunner()
        ContainerRunner(runner, Console("none")).run("trellis-rootfs", ["ls", "-la"])
        self.assertEqual(
            runner.commands,
            [
                ["podman", "image", "exists", "localhost/trellis-rootfs"],
                ["podman", "run", "--net", "host", "--cap-add", "all", "--rm", "-it", "localhost/trellis-rootfs", "ls", "-la"],
            ],
        )

    def test_missing_image_is_reported(self) -> None:
        runner = ScriptedRunner([1])
        with self.assertRaises(ImageNotFound):
            ContainerRunner(runner, Console("none")).run("trellis-rootfs", [])
        self.assertEqual(len(runner.commands), 1)

    def test_run_failure_carries_exit_code(self) -> None:
        runner = ScriptedRunner([0, 42])
        with self.assertRaises(CommandFailure) as ctx:
            ContainerRunner(runner, Console("none")).run("trellis-rootfs", ["false"])
        self.assertEqual(ctx.exception.exit_code, 42)

    def test_upgrade_requires_bootc(self) -> None:
        runner = ScriptedRunner([127])
        with self.assertRaises(ToolUnavailable):
            ContainerRunner(runner, Console("none")).upgrade()
        self.assertEqual(runner.commands, [["bootc", "--version"]])

    def test_upgrade_runs_bootc_upgrade(self) -> None:
        runner = ScriptedRunner()
        ContainerRunner(runner, Console("none")).upgrade()
        self.assertEqual(runner.commands, [["bootc", "--version"], ["bootc", "upgrade"]])


class ImageCleanerTests(unittest.TestCase):
    def _steps(self) -> List[BuildStep]:
        return [
            _step("trellis-rootfs-base", "base", None, is_final=False),
            _step("trellis-rootfs-multi-a", "multi:a", "trellis-rootfs-base", is_final=False),
            _step("trellis-rootfs-base", "base", "trellis-rootfs-multi-a", is_final=False),
            _step("trellis-rootfs", "gpu", "trellis-rootfs-base", is_final=True),
        ]

    def test_prune(self) -> None:
        runner = ScriptedRunner()
        ImageCleaner(runner, Console("none")).prune()
        self.assertEqual(runner.commands, [["podman", "system", "prune"]])

    def test_prune_failure(self) -> None:
        with self.assertRaises(CommandFailure):
            ImageCleaner(ScriptedRunner([125]), Console("none")).prune()

    def test_intermediate_images_exclude_final_and_duplicates(self) -> None:
        self.assertEqual(
            ImageCleaner.intermediate_images(self._steps()),
            ["localhost/trellis-rootfs-base", "localhost/trellis-rootfs-multi-a"],
        )

    def test_remove_intermediate(self) -> None:
        runner = ScriptedRunner()
        removed = ImageCleaner(runner, Console("none")).remove_intermediate(self._steps())
        self.assertEqual(removed, 2)
        self.assertEqual(
            runner.commands,
            [["podman", "rmi", "-f", "localhost/trellis-rootfs-base", "localhost/trellis-rootfs-multi-a"]],
        )

    def test_failed_removal_only_warns(self) -> None:
        buffer = io.StringIO()
        with redirect_stderr(buffer):
            removed = ImageCleaner(ScriptedRunner([1]), Console()).remove_intermediate(self._steps())
        self.assertEqual(removed, 0)
        self.assertIn("WARNING: Could not remove intermediate images: boom", buffer.getvalue())

    def test_single_step_plan_has_nothing_to_remove(self) -> None:
        runner = ScriptedRunner()
        steps = [_step("trellis-rootfs", "base", None, is_final=True)]
        self.assertEqual(ImageCleaner(runner, Console("none")).remove_intermediate(steps), 0)
        self.assertEqual(runner.commands, [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
