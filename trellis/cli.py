"""Command line interface for trellis."""
from __future__ import annotations

from argparse import REMAINDER, ArgumentParser, Namespace, RawDescriptionHelpFormatter
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Sequence
import os
import sys

from core.command_runner import CommandRunner, RecordingCommandRunner, SubprocessCommandRunner

from .cleaner import ImageCleaner
from .config import DEFAULTS, OPTIONS, BuildConfig, config_file_path, load_config_values, resolve
from .console import Console
from .discovery import StageFileLocator
from .errors import MissingCommand, TrellisError, UnsupportedCommand, UsageError
from .planner import BuildKind, BuildPlanner
from .podman import BuildExecutor
from .runner import ContainerRunner
from .stages import StageSpec


_COMMANDS_HELP = """\
commands:
  build-builder  (Re-)build the builder image from --builder-stages
  build          Build the rootfs image from --rootfs-stages
  run [ARGS...]  Run ARGS in a throwaway container of the rootfs image
  clean          Remove unused container images
  update         Build the rootfs image, then deploy it with bootc upgrade
"""


class _ArgumentParser(ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise UsageError(message)


@dataclass(slots=True)
class Session:
    config: BuildConfig
    console: Console
    runner: CommandRunner


def _make_runner(dry_run: bool) -> SubprocessCommandRunner | RecordingCommandRunner:
    return RecordingCommandRunner() if dry_run else SubprocessCommandRunner()


def _build_parser() -> ArgumentParser:
    parser = _ArgumentParser(
        prog="trellis",
        description="Build a layered rootfs container image from stage definition files.",
        epilog=_COMMANDS_HELP,
        formatter_class=RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Configuration file (default: $TRELLIS_CONFIG or /etc/trellis/trellis.toml)",
    )
    for option in OPTIONS.values():
        parser.add_argument(
            f"--{option.name}",
            dest=option.field,
            metavar=option.metavar,
            default=None,
            help=option.help,
        )
    parser.add_argument("-n", "--dry-run", action="store_true", help="Print commands without executing them")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print every external command before running it")
    parser.add_argument("command", nargs="?", help="Command to run (see below)")
    parser.add_argument("args", nargs=REMAINDER, help="Arguments passed to the command run by 'run'")
    return parser


def _cli_overrides(args: Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for option in OPTIONS.values():
        value = getattr(args, option.field, None)
        if value is not None:
            overrides[option.name] = value
    return overrides


def _resolve_config(args: Namespace, environ: Mapping[str, str]) -> BuildConfig:
    path, required = config_file_path(getattr(args, "config", None), environ)
    file_values = load_config_values(path, required=required)
    return resolve(DEFAULTS, file_values, _cli_overrides(args))


def _reject_arguments(args: Namespace) -> None:
    extra = getattr(args, "args", None) or []
    if extra:
        raise UsageError(f"'{args.command}' does not take arguments: {' '.join(extra)}")


def _build_stages(session: Session, kind: BuildKind, final_tag: str, stages: Sequence[StageSpec]) -> None:
    console = session.console
    planner = BuildPlanner(StageFileLocator(session.config.src_dir))
    steps = planner.plan(kind, final_tag, stages)
    if not steps:
        console.info(f"No {kind.value} stages requested, nothing to build")
        return

    BuildExecutor(session.runner, console).execute_plan(steps, session.config)
    console.info(f"{kind.value.capitalize()} image {final_tag} built successfully")

    if session.config.auto_clean:
        ImageCleaner(session.runner, console).remove_intermediate(steps)


def _handle_build_builder(args: Namespace, session: Session) -> None:
    _reject_arguments(args)
    config = session.config
    _build_stages(session, BuildKind.BUILDER, config.builder_tag, config.builder_stages)


def _handle_build(args: Namespace, session: Session) -> None:
    _reject_arguments(args)
    config = session.config
    _build_stages(session, BuildKind.ROOTFS, config.rootfs_tag, config.rootfs_stages)


def _handle_run(args: Namespace, session: Session) -> None:
    ContainerRunner(session.runner, session.console).run(session.config.rootfs_tag, list(args.args or []))


def _handle_clean(args: Namespace, session: Session) -> None:
    _reject_arguments(args)
    ImageCleaner(session.runner, session.console).prune()
    session.console.info("System cleaned successfully")


def _handle_update(args: Namespace, session: Session) -> None:
    _handle_build(args, session)
    ContainerRunner(session.runner, session.console).upgrade()
    session.console.info("Update completed successfully")


COMMANDS: Dict[str, Callable[[Namespace, Session], None]] = {
    "build-builder": _handle_build_builder,
    "build": _handle_build,
    "run": _handle_run,
    "clean": _handle_clean,
    "update": _handle_update,
}


def _select_handler(command: str | None) -> Callable[[Namespace, Session], None]:
    if not command:
        raise MissingCommand()
    handler = COMMANDS.get(command)
    if handler is None:
        raise UnsupportedCommand(command)
    return handler


def _emit_dry_run_output(runner: RecordingCommandRunner) -> None:
    for line in runner.iter_formatted():
        print(line)


def main(argv: Iterable[str] | None = None) -> int:
    arguments = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    console = Console()

    try:
        args = parser.parse_args(arguments)
    except UsageError as exc:
        console.error(str(exc))
        parser.print_usage(sys.stderr)
        return 1
    except SystemExit as exc:  # --help
        return exc.code if isinstance(exc.code, int) else 0

    if args.verbose:
        console = Console("debug")

    try:
        handler = _select_handler(args.command)
        config = _resolve_config(args, os.environ)
        runner = _make_runner(args.dry_run)
        handler(args, Session(config=config, console=console, runner=runner))
    except MissingCommand as exc:
        console.error(str(exc))
        parser.print_usage(sys.stderr)
        return 1
    except TrellisError as exc:
        console.error(str(exc))
        return 1
    except KeyboardInterrupt:
        console.error("Interrupted")
        return 1

    if isinstance(runner, RecordingCommandRunner):
        _emit_dry_run_output(runner)
    console.info("Successful")
    return 0


__all__ = ["COMMANDS", "Session", "main"]
