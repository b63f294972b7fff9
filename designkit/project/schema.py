"""
Project configuration schema (version 3).

The record lives at ``<project>/.design-system/config.yaml``::

    schema_version: 3
    project:
      name: acme-web
      type: application          # application | marketing | hybrid
    stack:
      framework: next            # next | remix | vite
      ui_library: shadcn
      state_management: zustand
      testing:
        unit: vitest
        e2e: playwright
    customizations: []
    components:
      installed: [button, dialog]
      custom: []
"""

import copy
import difflib
from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, get_args

from pydantic import BaseModel, ConfigDict, StrictStr, StringConstraints

SCHEMA_VERSION = 3

ProjectType = Literal["application", "marketing", "hybrid"]
Framework = Literal["next", "remix", "vite"]
UiLibrary = Literal["shadcn", "radix", "headlessui", "custom"]
StateManagement = Literal["zustand", "redux", "jotai", "context", "none"]
UnitTestRunner = Literal["vitest", "jest", "none"]
E2eTestRunner = Literal["playwright", "cypress", "none"]

PROJECT_TYPES = get_args(ProjectType)
FRAMEWORKS = get_args(Framework)
UI_LIBRARIES = get_args(UiLibrary)
STATE_MANAGEMENT = get_args(StateManagement)
UNIT_TEST_RUNNERS = get_args(UnitTestRunner)
E2E_TEST_RUNNERS = get_args(E2eTestRunner)

NonEmptyStr = Annotated[str, StringConstraints(strict=True, strip_whitespace=True, min_length=1)]


# ----------------------------------------------------------------------
# Current-schema record
# ----------------------------------------------------------------------

class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProjectInfo(_Section):
    name: NonEmptyStr
    type: ProjectType


class RunnerConfig(_Section):
    unit: UnitTestRunner
    e2e: E2eTestRunner


class StackConfig(_Section):
    framework: Framework
    ui_library: UiLibrary
    state_management: StateManagement
    testing: RunnerConfig


class ComponentsConfig(_Section):
    installed: List[StrictStr]
    custom: List[StrictStr]


class ProjectConfig(BaseModel):
    """A v3 record. Unknown top-level keys and ``schema_version`` are checked
    by the validator, so they are ignored here."""

    model_config = ConfigDict(extra="ignore")

    project: ProjectInfo
    stack: StackConfig
    customizations: List[Any]
    components: ComponentsConfig


# ----------------------------------------------------------------------
# Field metadata for prompting, filling and suggestions
# ----------------------------------------------------------------------

KIND_STR = "str"
KIND_ENUM = "enum"
KIND_LIST = "list"


@dataclass(frozen=True)
class FieldSpec:
    path: str
    kind: str
    choices: Tuple[str, ...] = ()
    prompt: str = ""
    # lists default to empty; scalars have no computable default
    has_default: bool = False

    def default(self) -> Any:
        return [] if self.kind == KIND_LIST else None

    def describe(self) -> str:
        if self.kind == KIND_ENUM:
            return f"{self.path} (one of: {', '.join(self.choices)})"
        return self.path


FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("project.name", KIND_STR, prompt="Project name"),
    FieldSpec("project.type", KIND_ENUM, PROJECT_TYPES, prompt="Project type"),
    FieldSpec("stack.framework", KIND_ENUM, FRAMEWORKS, prompt="Framework"),
    FieldSpec("stack.ui_library", KIND_ENUM, UI_LIBRARIES, prompt="UI library"),
    FieldSpec("stack.state_management", KIND_ENUM, STATE_MANAGEMENT, prompt="State management"),
    FieldSpec("stack.testing.unit", KIND_ENUM, UNIT_TEST_RUNNERS, prompt="Unit test runner"),
    FieldSpec("stack.testing.e2e", KIND_ENUM, E2E_TEST_RUNNERS, prompt="E2E test runner"),
    FieldSpec("customizations", KIND_LIST, has_default=True),
    FieldSpec("components.installed", KIND_LIST, has_default=True),
    FieldSpec("components.custom", KIND_LIST, has_default=True),
)

FIELDS_BY_PATH: Dict[str, FieldSpec] = {f.path: f for f in FIELDS}

TOP_LEVEL_KEYS = ("schema_version", "project", "stack", "customizations", "components")

# Common spellings mapped to their canonical enum value.
ENUM_ALIASES: Dict[str, Dict[str, str]] = {
    "project.type": {
        "app": "application",
        "web-app": "application",
        "landing": "marketing",
        "website": "marketing",
    },
    "stack.framework": {
        "nextjs": "next",
        "next.js": "next",
        "remix-run": "remix",
        "vitejs": "vite",
        "react-vite": "vite",
    },
    "stack.ui_library": {
        "shadcn/ui": "shadcn",
        "shadcn-ui": "shadcn",
        "radix-ui": "radix",
        "headless": "headlessui",
        "headless-ui": "headlessui",
    },
    "stack.state_management": {
        "redux-toolkit": "redux",
        "rtk": "redux",
        "react-context": "context",
        "": "none",
    },
    "stack.testing.unit": {"jest-dom": "jest"},
    "stack.testing.e2e": {"playwright-test": "playwright"},
}

MISSING = object()


def get_path(data: Any, dotted: str) -> Any:
    """Value at a dotted path, or ``MISSING``."""
    node = data
    for part in dotted.split("."):
        if not isinstance(node, dict) or part not in node:
            return MISSING
        node = node[part]
    return node


def set_path(data: dict, dotted: str, value: Any):
    """Set a dotted path, creating (or replacing non-mapping) parents."""
    parts = dotted.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def delete_path(data: dict, dotted: str) -> bool:
    parts = dotted.split(".")
    node = get_path(data, ".".join(parts[:-1])) if len(parts) > 1 else data
    if isinstance(node, dict) and parts[-1] in node:
        del node[parts[-1]]
        return True
    return False


def suggest_enum(spec: FieldSpec, value: Any) -> Optional[str]:
    """Closest allowed value for a mistyped enum entry, or None."""
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    if key in spec.choices:
        return key
    alias = ENUM_ALIASES.get(spec.path, {}).get(key)
    if alias is not None:
        return alias
    close = difflib.get_close_matches(key, spec.choices, n=1, cutoff=0.6)
    return close[0] if close else None


def coerce_value(spec: FieldSpec, value: Any) -> Any:
    """Normalise a user-supplied value for *spec*; returns ``MISSING`` if unusable."""
    if value is None:
        return MISSING
    if spec.kind == KIND_ENUM:
        suggestion = suggest_enum(spec, value)
        return suggestion if suggestion is not None else MISSING
    if spec.kind == KIND_LIST:
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return list(value) if isinstance(value, (list, tuple)) else MISSING
    text = str(value).strip()
    return text or MISSING


def build_config(values: Dict[str, Any]) -> dict:
    """A current-schema mapping from ``{dotted path: value}``; lists default to []."""
    data: dict = {"schema_version": SCHEMA_VERSION}
    for spec in FIELDS:
        if spec.path in values:
            set_path(data, spec.path, copy.deepcopy(values[spec.path]))
        elif spec.has_default:
            set_path(data, spec.path, spec.default())
    return data
