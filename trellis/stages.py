"""Stage list parsing.

A stage list is an ordered, comma delimited sequence of tokens. A token is
either ``stage`` (the definition file is named after the stage) or
``group:stage`` (build target ``stage`` inside the definition file of
``group``). The order is the build dependency order and duplicates are kept.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .errors import MalformedStageToken
from .parsing import split_list


@dataclass(frozen=True, slots=True)
class StageSpec:
    group: str
    stage: str

    @property
    def is_multi_stage(self) -> bool:
        return self.group != self.stage

    @property
    def token(self) -> str:
        return f"{self.group}:{self.stage}" if self.is_multi_stage else self.stage

    def __str__(self) -> str:
        return self.token


def parse_stage_token(token: str) -> StageSpec:
    if token.count(":") > 1:
        raise MalformedStageToken(token, "expected 'stage' or 'group:stage'")
    if "/" in token:
        raise MalformedStageToken(token, "stage and group names cannot contain '/'")

    group, sep, stage = token.partition(":")
    if not sep:
        stage = group
    if not group or not stage:
        raise MalformedStageToken(token, "stage and group names cannot be empty")
    return StageSpec(group=group, stage=stage)


def parse_stage_tokens(tokens: Iterable[str]) -> List[StageSpec]:
    return [parse_stage_token(token) for token in tokens]


def parse_stage_list(csv: str) -> List[StageSpec]:
    """Parse ``"base,multi:stage1,multi:stage2"`` into ordered :class:`StageSpec` values."""

    return parse_stage_tokens(split_list(csv))


def join_stage_list(stages: Iterable[StageSpec]) -> str:
    return ",".join(spec.token for spec in stages)


__all__ = [
    "StageSpec",
    "join_stage_list",
    "parse_stage_list",
    "parse_stage_token",
    "parse_stage_tokens",
]
