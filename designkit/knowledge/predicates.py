"""
Load conditions for conditional knowledge files.

Agents declare conditions in their frontmatter as single-key mappings::

    conditional:
      - when: {project_type: marketing}
        path: knowledge/marketing/landing-pages.md
        description: "Marketing projects"

Each key maps to one tagged predicate; unknown keys are rejected when the
registry is built.
"""

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class LoadContext:
    """What the loader knows about the current request and project."""

    project_type: Optional[str] = None
    framework: Optional[str] = None
    features: FrozenSet[str] = frozenset()
    request_text: str = ""
    project_dir: Optional[str] = None
    skill_id: Optional[str] = None

    @classmethod
    def from_config(cls, config: Optional[dict], **kwargs) -> "LoadContext":
        """Build a context from a (possibly partial) project config mapping."""
        project_type = None
        framework = None
        if isinstance(config, dict):
            project = config.get("project")
            if isinstance(project, dict) and isinstance(project.get("type"), str):
                project_type = project["type"]
            stack = config.get("stack")
            if isinstance(stack, dict) and isinstance(stack.get("framework"), str):
                framework = stack["framework"]
        features = frozenset(f.lower() for f in kwargs.pop("features", ()) or ())
        return cls(
            project_type=project_type,
            framework=framework,
            features=features,
            **kwargs,
        )


class Predicate:
    """Base class for load conditions."""

    key = ""

    def __call__(self, context: LoadContext) -> bool:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class ProjectTypeIs(Predicate):
    value: str
    key = "project_type"

    def __call__(self, context: LoadContext) -> bool:
        return context.project_type == self.value

    def describe(self) -> str:
        return f"project type is {self.value}"


@dataclass(frozen=True)
class FrameworkIs(Predicate):
    value: str
    key = "framework"

    def __call__(self, context: LoadContext) -> bool:
        return context.framework == self.value

    def describe(self) -> str:
        return f"framework is {self.value}"


@dataclass(frozen=True)
class FeatureRequested(Predicate):
    """True when the feature is listed in the context or named in the request."""

    name: str
    key = "feature"
    _pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        pattern = re.compile(r"\b" + re.escape(self.name.lower()) + r"\b")
        object.__setattr__(self, "_pattern", pattern)

    def __call__(self, context: LoadContext) -> bool:
        if self.name.lower() in context.features:
            return True
        return bool(self._pattern.search(context.request_text.lower()))

    def describe(self) -> str:
        return f"{self.name} requested"


PREDICATE_TYPES = {
    ProjectTypeIs.key: ProjectTypeIs,
    FrameworkIs.key: FrameworkIs,
    FeatureRequested.key: FeatureRequested,
}


def parse_predicate(spec) -> Predicate:
    """Turn a ``when:`` frontmatter value into a predicate.

    Accepts ``{project_type: marketing}`` or the shorthand string
    ``"project_type:marketing"``.

    Raises:
        ValueError: unknown predicate key or malformed value.
    """
    if isinstance(spec, str):
        key, sep, value = spec.partition(":")
        if not sep:
            raise ValueError(f"Malformed condition: {spec!r}")
        spec = {key.strip(): value.strip()}

    if not isinstance(spec, dict) or len(spec) != 1:
        raise ValueError(f"Condition must be a single-key mapping, got {spec!r}")

    key, value = next(iter(spec.items()))
    predicate_cls = PREDICATE_TYPES.get(str(key).strip())
    if predicate_cls is None:
        known = ", ".join(sorted(PREDICATE_TYPES))
        raise ValueError(f"Unknown condition '{key}' (expected one of: {known})")
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Condition '{key}' needs a non-empty string value")
    return predicate_cls(value.strip())
