"""Configuration resolution.

Three layers are merged option by option: command line overrides win over
the configuration file, which wins over the built-in defaults. Every option
is declared once in :data:`OPTIONS` together with its parser, so the CLI,
the configuration file and the defaults all go through the same checks.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence

from core.config_loader import load_config_file

from .constants import (
    CONFIG_PATH_ENV,
    DEFAULT_AUR_CACHE,
    DEFAULT_BUILDER_TAG,
    DEFAULT_CONFIG_PATH,
    DEFAULT_HOOKS_DIR,
    DEFAULT_PACMAN_CACHE,
    DEFAULT_ROOTFS_TAG,
    DEFAULT_SRC_DIR,
)
from .errors import CacheDirectoryError, ConfigFileError, InvalidConfigValue
from .parsing import parse_bool, split_list
from .stages import StageSpec, parse_stage_tokens


@dataclass(frozen=True, slots=True)
class BuildContext:
    """An extra ``podman build --build-context`` entry."""

    name: str
    location: str

    def __str__(self) -> str:
        return f"{self.name}={self.location}"


@dataclass(frozen=True, slots=True)
class BuildConfig:
    builder_tag: str
    rootfs_tag: str
    builder_stages: tuple[StageSpec, ...]
    rootfs_stages: tuple[StageSpec, ...]
    pacman_cache: Path | None
    aur_cache: Path | None
    src_dir: Path
    hooks_dir: Path | None
    podman_build_cache: bool
    auto_clean: bool
    extra_contexts: tuple[BuildContext, ...]
    extra_mounts: tuple[Path, ...]


def _text(option: str, raw: Any) -> str:
    if raw is None:
        raise InvalidConfigValue(option, raw, "no value configured")
    if not isinstance(raw, str):
        raise InvalidConfigValue(option, raw, "expected a string")
    return raw


def _items(option: str, raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return split_list(raw)
    if isinstance(raw, (list, tuple)):
        for item in raw:
            if not isinstance(item, str):
                raise InvalidConfigValue(option, item, "list entries must be strings")
        return list(raw)
    raise InvalidConfigValue(option, raw, "expected a comma delimited string or a list of strings")


def _canonical(text: str) -> Path:
    return Path(text).expanduser().resolve()


def _parse_tag(option: str, raw: Any) -> str:
    tag = _text(option, raw)
    if not tag:
        raise InvalidConfigValue(option, raw, "tag cannot be empty")
    return tag


def _parse_flag(option: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return parse_bool(option, _text(option, raw))


def _parse_stages(option: str, raw: Any) -> tuple[StageSpec, ...]:
    return tuple(parse_stage_tokens(_items(option, raw)))


def _parse_path(option: str, raw: Any) -> Path:
    text = _text(option, raw)
    if not text:
        raise InvalidConfigValue(option, raw, "path cannot be empty")
    return _canonical(text)


def _parse_optional_path(option: str, raw: Any) -> Path | None:
    if raw is None:
        return None
    text = _text(option, raw)
    return _canonical(text) if text else None


def _parse_contexts(option: str, raw: Any) -> tuple[BuildContext, ...]:
    contexts: List[BuildContext] = []
    for item in _items(option, raw):
        name, sep, location = item.partition("=")
        if not sep or not name or not location:
            raise InvalidConfigValue(option, item, "expected name=path")
        if "://" not in location:
            location = str(_canonical(location))
        contexts.append(BuildContext(name=name, location=location))
    return tuple(contexts)


def _parse_mounts(option: str, raw: Any) -> tuple[Path, ...]:
    mounts: List[Path] = []
    for item in _items(option, raw):
        if not item:
            raise InvalidConfigValue(option, raw, "mount paths cannot be empty")
        mounts.append(_canonical(item))
    return tuple(mounts)


@dataclass(frozen=True, slots=True)
class Option:
    name: str
    section: str
    parse: Callable[[str, Any], Any]
    metavar: str
    help: str

    @property
    def field(self) -> str:
        return self.name.replace("-", "_")


OPTIONS: Dict[str, Option] = {
    option.name: option
    for option in (
        Option("builder-stages", "build", _parse_stages, "LIST", "A comma delimited list of the builder image stages to build"),
        Option("rootfs-stages", "build", _parse_stages, "LIST", "A comma delimited list of the rootfs image stages to build"),
        Option("builder-tag", "build", _parse_tag, "TAG", "Name of the tag to use for the builder image"),
        Option("rootfs-tag", "build", _parse_tag, "TAG", "Name of the tag to use for the rootfs image"),
        Option("podman-build-cache", "build", _parse_flag, "BOOL", "Enable/disable the podman build layer cache (0/1, false/true, no/yes)"),
        Option("auto-clean", "build", _parse_flag, "BOOL", "Remove intermediate stage images after a successful build (0/1, false/true, no/yes)"),
        Option("extra-contexts", "build", _parse_contexts, "LIST", "A comma delimited list of name=path build contexts"),
        Option("extra-mounts", "build", _parse_mounts, "LIST", "A comma delimited list of directories or files to bind mount"),
        Option("pacman-cache", "environment", _parse_optional_path, "PATH", "Path to a persistent pacman package cache"),
        Option("aur-cache", "environment", _parse_optional_path, "PATH", "Path to use as a persistent AUR package build cache"),
        Option("src-dir", "environment", _parse_path, "PATH", "Path to the directory with the stage definition files"),
        Option("hooks-dir", "environment", _parse_optional_path, "PATH", "Directory of hook scripts mounted into rootfs builds"),
    )
}

DEFAULTS: Mapping[str, Any] = {
    "builder-stages": "",
    "rootfs-stages": "",
    "builder-tag": DEFAULT_BUILDER_TAG,
    "rootfs-tag": DEFAULT_ROOTFS_TAG,
    "podman-build-cache": "false",
    "auto-clean": "false",
    "extra-contexts": "",
    "extra-mounts": "",
    "pacman-cache": DEFAULT_PACMAN_CACHE,
    "aur-cache": DEFAULT_AUR_CACHE,
    "src-dir": DEFAULT_SRC_DIR,
    "hooks-dir": DEFAULT_HOOKS_DIR,
}

_SECTIONS = frozenset(option.section for option in OPTIONS.values())


def _check_names(values: Mapping[str, Any], origin: str) -> None:
    for name, value in values.items():
        if name not in OPTIONS:
            raise InvalidConfigValue(name, value, f"unknown option in {origin}")


def _pick(name: str, layers: Sequence[tuple[str, Mapping[str, Any]]]) -> tuple[Any, str | None]:
    for origin, layer in layers:
        value = layer.get(name)
        if value is not None:
            return value, origin
    return None, None


def _ensure_cache_dirs(config: BuildConfig) -> None:
    for name, path in (("pacman", config.pacman_cache), ("AUR", config.aur_cache)):
        if path is None:
            continue
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheDirectoryError(name, path, exc.strerror or str(exc)) from exc


def resolve(
    defaults: Mapping[str, Any],
    config_file_values: Mapping[str, Any],
    cli_overrides: Mapping[str, Any],
) -> BuildConfig:
    """Merge the three configuration layers into one :class:`BuildConfig`.

    Paths are canonicalized here, once, and the package and AUR cache
    directories are created when configured.
    """

    layers = (
        ("command line", cli_overrides),
        ("configuration file", config_file_values),
        ("defaults", defaults),
    )
    for origin, values in layers:
        _check_names(values, origin)

    fields: Dict[str, Any] = {}
    origins: Dict[str, str | None] = {}
    for option in OPTIONS.values():
        raw, origin = _pick(option.name, layers)
        fields[option.field] = option.parse(option.name, raw)
        origins[option.name] = origin

    hooks_dir: Path | None = fields["hooks_dir"]
    if hooks_dir is not None and not hooks_dir.is_dir():
        if origins["hooks-dir"] != "defaults":
            raise InvalidConfigValue("hooks-dir", str(hooks_dir), "not a directory")
        fields["hooks_dir"] = None

    config = BuildConfig(**fields)
    if config.builder_tag == config.rootfs_tag:
        raise InvalidConfigValue("rootfs-tag", config.rootfs_tag, "builder and rootfs tags must be different")

    _ensure_cache_dirs(config)
    return config


def config_file_path(cli_value: str | None, environ: Mapping[str, str]) -> tuple[Path, bool]:
    """Return the configuration file to read and whether it must exist."""

    if cli_value:
        return Path(cli_value).expanduser(), True
    env_value = environ.get(CONFIG_PATH_ENV)
    if env_value:
        return Path(env_value).expanduser(), True
    return Path(DEFAULT_CONFIG_PATH), False


def flatten_config_sections(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map ``[build]``/``[environment]`` tables onto option names.

    Keys may be spelled with underscores or dashes.
    """

    values: Dict[str, Any] = {}
    for section, table in data.items():
        if section not in _SECTIONS:
            raise InvalidConfigValue(str(section), table, "unknown configuration section")
        if not isinstance(table, Mapping):
            raise InvalidConfigValue(str(section), table, "expected a table")
        for key, value in table.items():
            name = str(key).replace("_", "-")
            option = OPTIONS.get(name)
            if option is None or option.section != section:
                raise InvalidConfigValue(f"{section}.{key}", value, "unknown configuration key")
            values[name] = value
    return values


def load_config_values(path: Path, *, required: bool) -> Dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigFileError(path, "file does not exist")
        return {}
    try:
        data = load_config_file(path)
    except (OSError, ValueError, TypeError, RuntimeError) as exc:
        raise ConfigFileError(path, str(exc)) from exc
    return flatten_config_sections(data)


__all__ = [
    "BuildConfig",
    "BuildContext",
    "DEFAULTS",
    "OPTIONS",
    "Option",
    "config_file_path",
    "flatten_config_sections",
    "load_config_values",
    "resolve",
]
