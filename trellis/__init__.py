"""Layered rootfs image builds driven by stage definition files."""

__version__ = "0.4.0"
