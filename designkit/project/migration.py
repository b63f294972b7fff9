"""
Schema migration for project configuration.

Three shapes have existed:

- v1: flat root: ``name``, ``type``, ``framework``, ``ui_library``,
  ``state_management``, ``testing`` (string) and ``components`` (list)
- v2: nested ``project``/``stack`` but ``stack.testing`` is one string
- v3: ``stack.testing.unit`` / ``stack.testing.e2e`` (current)

Each step is a pure transform. After the last step every required field
without a computable default is requested through ``fill_missing``.
"""

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from designkit.errors import SchemaMismatchError
from designkit.project.schema import (
    E2E_TEST_RUNNERS,
    FIELDS,
    MISSING,
    SCHEMA_VERSION,
    UNIT_TEST_RUNNERS,
    FieldSpec,
    coerce_value,
    get_path,
    set_path,
)
from designkit.report import Issue, Severity

logger = logging.getLogger(__name__)

FillMissing = Callable[[FieldSpec], Optional[Any]]

V1_ROOT_KEYS = ("name", "type", "framework", "ui_library", "state_management", "testing")


def detect_schema_version(data: dict) -> int:
    """Infer the schema version from the record's shape.

    Root ``framework``/``testing`` keys only mark a v1 record when neither
    ``project`` nor ``stack`` is already a mapping; otherwise they are stray
    keys in a nested record.
    """
    nested = any(isinstance(data.get(key), dict) for key in ("project", "stack"))
    if not nested and any(key in data for key in ("framework", "testing")):
        return 1
    stack = data.get("stack")
    if isinstance(stack, dict) and isinstance(stack.get("testing"), str):
        return 2
    return SCHEMA_VERSION


def _section(data: dict, key: str) -> dict:
    # a scalar or list where a section belongs carries nothing to keep
    value = data.get(key)
    return dict(value) if isinstance(value, dict) else {}


def _v1_to_v2(data: dict) -> dict:
    out = {k: copy.deepcopy(v) for k, v in data.items() if k not in V1_ROOT_KEYS}

    project = _section(out, "project")
    if "name" in data and "name" not in project:
        project["name"] = data["name"]
    if "type" in data and "type" not in project:
        project["type"] = data["type"]
    if project:
        out["project"] = project

    stack = _section(out, "stack")
    for key in ("framework", "ui_library", "state_management", "testing"):
        if key in data and key not in stack:
            stack[key] = data[key]
    if stack:
        out["stack"] = stack

    components = out.get("components")
    if isinstance(components, list):
        out["components"] = {"installed": components, "custom": []}
    return out


def _split_runners(text: str) -> List[str]:
    return [p for p in re.split(r"[\s,+/&]+", text.strip().lower()) if p]


def _v2_to_v3(data: dict) -> dict:
    out = copy.deepcopy(data)
    stack = out.get("stack")
    if not isinstance(stack, dict):
        return out

    testing = stack.get("testing")
    if isinstance(testing, dict):
        return out
    nested: Dict[str, str] = {}
    if isinstance(testing, str):
        for runner in _split_runners(testing):
            if runner in UNIT_TEST_RUNNERS and runner != "none" and "unit" not in nested:
                nested["unit"] = runner
            elif runner in E2E_TEST_RUNNERS and runner != "none" and "e2e" not in nested:
                nested["e2e"] = runner
        # "none" on its own means neither kind of test runner
        if _split_runners(testing) == ["none"]:
            nested = {"unit": "none", "e2e": "none"}
    stack["testing"] = nested
    return out


@dataclass(frozen=True)
class MigrationStep:
    from_version: int
    to_version: int
    transform: Callable[[dict], dict]
    description: str


STEPS: Dict[int, MigrationStep] = {
    1: MigrationStep(1, 2, _v1_to_v2, "move flat root keys under project/stack"),
    2: MigrationStep(2, 3, _v2_to_v3, "split stack.testing into unit/e2e"),
}


def upgrade_shape(data: dict) -> dict:
    """Apply the structural steps only (no filling); input is not mutated."""
    current = copy.deepcopy(data)
    version = detect_schema_version(current)
    while version < SCHEMA_VERSION:
        step = STEPS[version]
        current = step.transform(current)
        version = step.to_version
    return current


@dataclass
class MigrationResult:
    data: dict
    from_version: int
    to_version: int
    steps: List[str] = field(default_factory=list)
    filled: Dict[str, Any] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.steps or self.filled)


def fill_missing_fields(
    data: dict, fill_missing: Optional[FillMissing] = None
) -> Tuple[Dict[str, Any], List[Issue]]:
    """Fill absent required fields in place, as far as possible.

    Lists get their empty default; other fields are requested from
    ``fill_missing``.

    Returns:
        (``{dotted path: value}`` for every field filled, issues for the
        fields that are still missing)
    """
    filled: Dict[str, Any] = {}
    unresolved: List[Issue] = []

    for spec in FIELDS:
        if get_path(data, spec.path) not in (MISSING, None):
            continue
        if spec.has_default:
            value = spec.default()
        else:
            supplied = fill_missing(spec) if fill_missing is not None else None
            value = coerce_value(spec, supplied)
            if value is MISSING:
                unresolved.append(Issue(
                    Severity.HIGH, "missing-field",
                    f"required field {spec.describe()} has no value",
                    path=spec.path,
                ))
                continue
        set_path(data, spec.path, value)
        filled[spec.path] = value
    return filled, unresolved


def fill_required(data: dict, fill_missing: Optional[FillMissing] = None) -> Dict[str, Any]:
    """Like :func:`fill_missing_fields` but all-or-nothing.

    Raises:
        SchemaMismatchError: some required field is still missing afterwards.
    """
    filled, unresolved = fill_missing_fields(data, fill_missing)
    if unresolved:
        raise SchemaMismatchError(
            "Required fields are missing: " + ", ".join(i.path for i in unresolved),
            unresolved,
        )
    return filled


def migrate(data: dict, fill_missing: Optional[FillMissing] = None) -> MigrationResult:
    """Bring *data* to the current schema version (input is not mutated).

    Raises:
        SchemaMismatchError: a newly required value could not be obtained.
    """
    from_version = detect_schema_version(data)
    current = copy.deepcopy(data)
    version = from_version
    steps: List[str] = []

    while version < SCHEMA_VERSION:
        step = STEPS[version]
        current = step.transform(current)
        steps.append(f"v{step.from_version} -> v{step.to_version}: {step.description}")
        logger.info("Config migration %s", steps[-1])
        version = step.to_version

    if current.get("schema_version") != SCHEMA_VERSION:
        current = {"schema_version": SCHEMA_VERSION, **{k: v for k, v in current.items() if k != "schema_version"}}

    filled = fill_required(current, fill_missing)
    return MigrationResult(
        data=current,
        from_version=from_version,
        to_version=SCHEMA_VERSION,
        steps=steps,
        filled=filled,
    )
