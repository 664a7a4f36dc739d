"""Default paths, tags and naming used throughout trellis."""
from __future__ import annotations

DEFAULT_CONFIG_PATH = "/etc/trellis/trellis.toml"
CONFIG_PATH_ENV = "TRELLIS_CONFIG"

DEFAULT_HOOKS_DIR = "/etc/trellis/hooks.d"
DEFAULT_SRC_DIR = "/var/lib/trellis/src"
DEFAULT_PACMAN_CACHE = "/var/cache/pacman/pkg"
DEFAULT_AUR_CACHE = "/var/cache/trellis/aur"

DEFAULT_BUILDER_TAG = "trellis-builder"
DEFAULT_ROOTFS_TAG = "trellis-rootfs"

# Intermediate tags are "<prefix>-<kind>-<stage>" or "<prefix>-<kind>-<group>-<stage>".
INTERMEDIATE_TAG_PREFIX = "trellis"
LOCALHOST_PREFIX = "localhost/"

DEFINITION_PREFIX = "Definition."

# Mount points inside the build container.
PACMAN_CACHE_MOUNT = "/var/cache/pacman/pkg"
AUR_CACHE_MOUNT = "/var/cache/trellis/aur"

BASE_IMAGE_ARG = "BASE_IMAGE"
HOOKS_DIR_ARG = "HOOKS_DIR"
NO_PARENT_IMAGE = "scratch"

# Read by buildah underneath podman build.
BUILD_CACHE_ENV = "BUILDAH_LAYERS"

PODMAN = "podman"
BOOTC = "bootc"
