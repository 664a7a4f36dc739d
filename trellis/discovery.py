"""Discovery of stage definition files inside the source tree."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List
import os

from .constants import DEFINITION_PREFIX
from .errors import AmbiguousStageFile, StageFileNotFound


def definition_filename(group: str) -> str:
    return f"{DEFINITION_PREFIX}{group}"


class StageFileLocator:
    """Find the single ``Definition.<group>`` file under a source root.

    The root itself is searched first, then every subdirectory at any depth.
    Symlinked directories are not followed. More than one match anywhere is
    an error; there is no precedence between locations.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._found: Dict[str, Path] = {}

    @property
    def root(self) -> Path:
        return self._root

    def candidates(self, group: str) -> List[Path]:
        filename = definition_filename(group)
        matches: List[Path] = []

        top_level = self._root / filename
        if top_level.is_file():
            matches.append(top_level)

        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames.sort()
            current = Path(dirpath)
            if current == self._root:
                continue
            if filename in filenames and (current / filename).is_file():
                matches.append(current / filename)

        return matches

    def locate(self, group: str) -> Path:
        cached = self._found.get(group)
        if cached is not None:
            return cached

        filename = definition_filename(group)
        matches = self.candidates(group)
        if not matches:
            raise StageFileNotFound(group, filename, self._root)
        if len(matches) > 1:
            raise AmbiguousStageFile(group, filename, matches)

        self._found[group] = matches[0]
        return matches[0]


def locate(root: Path, group: str) -> Path:
    return StageFileLocator(root).locate(group)


__all__ = ["StageFileLocator", "definition_filename", "locate"]
