"""Immutable records built from skill and agent definitions."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from designkit.knowledge.predicates import Predicate


@dataclass(frozen=True)
class SkillArgument:
    name: str
    description: str = ""
    required: bool = False


@dataclass(frozen=True)
class Skill:
    """A trigger-activated unit of the plugin (``skills/<id>/SKILL.md``)."""

    skill_id: str
    agent_id: str
    triggers: Tuple[str, ...] = ()
    arguments: Tuple[SkillArgument, ...] = ()
    description: str = ""
    path: Optional[Path] = None

    @property
    def required_arguments(self) -> Tuple[SkillArgument, ...]:
        return tuple(a for a in self.arguments if a.required)


@dataclass(frozen=True)
class ConditionalFile:
    predicate: Predicate
    path: str
    description: str = ""

    @property
    def predicate_description(self) -> str:
        return self.description or self.predicate.describe()


@dataclass(frozen=True)
class Agent:
    """The consumer of a skill's knowledge files (``agents/<id>.md``)."""

    agent_id: str
    primary_files: Tuple[str, ...] = ()
    conditional_files: Tuple[ConditionalFile, ...] = ()
    description: str = ""
    path: Optional[Path] = None


@dataclass(frozen=True)
class AgentManifest:
    """What ``SkillRegistry.resolve`` hands to the knowledge loader."""

    skill_id: str
    agent_id: str
    primary_files: Tuple[str, ...]
    conditional_files: Tuple[ConditionalFile, ...] = ()
    # skill directory relative to the plugin root, e.g. "skills/ds-audit"
    reference_dir: Optional[str] = None

    def all_paths(self) -> Tuple[str, ...]:
        return self.primary_files + tuple(c.path for c in self.conditional_files)
