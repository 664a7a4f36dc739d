"""Turn an ordered stage list into a chain of image builds."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Sequence

from .constants import INTERMEDIATE_TAG_PREFIX
from .discovery import StageFileLocator
from .stages import StageSpec


class BuildKind(str, Enum):
    BUILDER = "builder"
    ROOTFS = "rootfs"


@dataclass(frozen=True, slots=True)
class BuildStep:
    tag: str
    definition_path: Path
    target: str
    base_image: str | None
    is_final: bool
    kind: BuildKind
    spec: StageSpec


def intermediate_tag(kind: BuildKind, spec: StageSpec) -> str:
    if spec.is_multi_stage:
        return f"{INTERMEDIATE_TAG_PREFIX}-{kind.value}-{spec.group}-{spec.stage}"
    return f"{INTERMEDIATE_TAG_PREFIX}-{kind.value}-{spec.stage}"


class BuildPlanner:
    """Chain stages so that each build starts from the image of the one before.

    The last stage is tagged with the caller's final tag, every other stage
    gets a tag derived from its kind, group and stage name. All definition
    files are located while planning, so discovery errors surface before
    anything is built.
    """

    def __init__(self, locator: StageFileLocator) -> None:
        self._locator = locator

    def plan(self, kind: BuildKind, final_tag: str, stages: Sequence[StageSpec]) -> List[BuildStep]:
        steps: List[BuildStep] = []
        last_tag: str | None = None
        last_index = len(stages) - 1

        for index, spec in enumerate(stages):
            definition_path = self._locator.locate(spec.group)
            is_final = index == last_index
            tag = final_tag if is_final else intermediate_tag(kind, spec)
            steps.append(
                BuildStep(
                    tag=tag,
                    definition_path=definition_path,
                    target=spec.stage,
                    base_image=last_tag,
                    is_final=is_final,
                    kind=kind,
                    spec=spec,
                )
            )
            last_tag = tag

        return steps


__all__ = ["BuildKind", "BuildPlanner", "BuildStep", "intermediate_tag"]
