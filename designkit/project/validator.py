"""
Project configuration validation.

A configuration record is in one of four states:

    MISSING -> (init) -> VALID
    MALFORMED            terminal until a human fixes or resets the file
    OUTDATED_SCHEMA -> (migrate) -> VALID
    VALID                may still carry field-level issues

Field and reference problems are accumulated over the whole pass; parse
failures stop the pass immediately.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set

import yaml
from pydantic import ValidationError

from designkit.errors import (
    ConfigNotFoundError,
    ConfigParseError,
    ReferenceInconsistencyError,
    SchemaMismatchError,
)
from designkit.paths import config_path_for
from designkit.project.migration import V1_ROOT_KEYS, detect_schema_version, upgrade_shape
from designkit.project.schema import (
    FIELDS,
    FIELDS_BY_PATH,
    KIND_ENUM,
    KIND_LIST,
    SCHEMA_VERSION,
    TOP_LEVEL_KEYS,
    FieldSpec,
    ProjectConfig,
    get_path,
    suggest_enum,
)
from designkit.report import Fix, Issue, Report, Severity

logger = logging.getLogger(__name__)

COMPONENT_DIRS = ("components", "src/components", "app/components")
COMPONENT_SUFFIXES = {".tsx", ".ts", ".jsx", ".js", ".vue", ".svelte"}


class ConfigState(Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    OUTDATED_SCHEMA = "outdated_schema"
    VALID = "valid"


@dataclass
class ValidationResult:
    state: ConfigState
    config_path: Path
    report: Report
    data: Optional[dict] = None         # record as stored
    view: Optional[dict] = None         # record in current-schema shape
    schema_version: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def status(self):
        return self.report.status

    @property
    def issues(self) -> List[Issue]:
        return self.report.issues


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------

def parse_config_text(text: str, source: Optional[str] = None) -> dict:
    """Parse YAML text into a mapping.

    Raises:
        ConfigParseError: invalid YAML or a non-mapping document, with the
            line/column of the problem when the parser reports one.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        problem = getattr(e, "problem", None) or str(e)
        raise ConfigParseError(
            f"Invalid YAML: {problem}",
            path=source,
            line=mark.line + 1 if mark is not None else None,
            column=mark.column + 1 if mark is not None else None,
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(
            f"Configuration must be a mapping, got {type(data).__name__}",
            path=source,
            line=1,
        )
    return data


# ----------------------------------------------------------------------
# Field / reference checks
# ----------------------------------------------------------------------

def _enum_message(value, choices) -> str:
    return f"invalid enum value '{value}', expected one of [{', '.join(choices)}]"


def _has_duplicates(items: list) -> bool:
    seen = []
    for item in items:
        if item in seen:
            return True
        seen.append(item)
    return False


def _missing_issue(spec: FieldSpec) -> Issue:
    return Issue(
        Severity.HIGH, "missing-field",
        f"required field {spec.describe()} is missing",
        path=spec.path,
    )


def _issues_from_error(error: dict) -> List[Issue]:
    """Translate one pydantic error entry into designkit issues."""
    loc = tuple(error["loc"])
    kind = error["type"]
    value = error.get("input")
    path = ".".join(str(part) for part in loc if not isinstance(part, int))

    if kind == "extra_forbidden":
        path = ".".join(str(part) for part in loc)
        return [Issue(
            Severity.MEDIUM, "unknown-key",
            f"unknown key '{path}'",
            path=path,
            fix=Fix("delete", path, description=f"remove key '{path}'"),
        )]

    spec = FIELDS_BY_PATH.get(path)
    if spec is None:
        # a whole section is absent or is not a mapping
        return [_missing_issue(s) for s in FIELDS if s.path.startswith(path + ".")]

    if any(isinstance(part, int) for part in loc):
        return [Issue(Severity.HIGH, "invalid-type", "component names must be strings", path=path)]

    if kind == "missing" or value is None:
        return [_missing_issue(spec)]

    if spec.kind == KIND_ENUM:
        if not isinstance(value, str):
            return [Issue(
                Severity.HIGH, "invalid-type",
                f"expected a string, got {type(value).__name__}",
                path=path,
            )]
        suggestion = suggest_enum(spec, value)
        fix = None
        if suggestion is not None:
            fix = Fix("set", path, suggestion, description=f"set {path} to '{suggestion}'")
        return [Issue(
            Severity.HIGH, "invalid-enum",
            _enum_message(value, spec.choices),
            path=path,
            fix=fix,
        )]

    if spec.kind == KIND_LIST:
        fix = None
        if isinstance(value, str):
            fix = Fix("set", path, [value], description=f"wrap {path} in a list")
        return [Issue(
            Severity.HIGH, "invalid-type",
            f"expected a list, got {type(value).__name__}",
            path=path,
            fix=fix,
        )]

    return [Issue(Severity.HIGH, "invalid-type", "expected a non-empty string", path=path)]


def _field_order(issue: Issue) -> int:
    for index, spec in enumerate(FIELDS):
        if spec.path == issue.path:
            return index
    return len(FIELDS)


def check_fields(view: dict) -> List[Issue]:
    """Required-field, type and enum checks against :class:`ProjectConfig`."""
    try:
        ProjectConfig.model_validate(view)
        errors = []
    except ValidationError as e:
        errors = e.errors()

    issues: List[Issue] = []
    seen = set()
    for error in errors:
        for issue in _issues_from_error(error):
            if (issue.code, issue.path) in seen:
                continue
            seen.add((issue.code, issue.path))
            issues.append(issue)

    flagged = {issue.path for issue in issues}
    for spec in FIELDS:
        value = get_path(view, spec.path)
        if spec.kind != KIND_LIST or spec.path in flagged or not isinstance(value, list):
            continue
        if _has_duplicates(value):
            issues.append(Issue(
                Severity.LOW, "duplicate-entries",
                "list contains duplicate entries",
                path=spec.path,
                fix=Fix("dedupe", spec.path, safe=True,
                        description=f"remove duplicate entries from {spec.path}"),
            ))

    issues.sort(key=_field_order)
    return issues


def check_unknown_keys(data: dict) -> List[Issue]:
    issues = []
    legacy = set(V1_ROOT_KEYS) if detect_schema_version(data) == 1 else set()
    for key in data:
        if key in TOP_LEVEL_KEYS or key in legacy:
            continue
        issues.append(Issue(
            Severity.MEDIUM, "unknown-key",
            f"unknown top-level key '{key}'",
            path=str(key),
            fix=Fix("delete", str(key), description=f"remove top-level key '{key}'"),
        ))
    return issues


def _normalize_component(name: str) -> str:
    return name.lower().replace("-", "").replace("_", "").replace(" ", "")


def find_component_files(project_root) -> Optional[Set[str]]:
    """Normalised stems of component files, or None without a components dir."""
    root = Path(project_root)
    dirs = [root / d for d in COMPONENT_DIRS if (root / d).is_dir()]
    if not dirs:
        return None
    stems: Set[str] = set()
    for base in dirs:
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = [d for d in dirnames if d not in {"node_modules", ".git"}]
            for filename in filenames:
                path = Path(dirpath) / filename
                if path.suffix in COMPONENT_SUFFIXES:
                    stems.add(_normalize_component(path.stem))
                    if path.stem == "index":
                        stems.add(_normalize_component(path.parent.name))
    return stems


def check_references(view: dict, project_root) -> List[Issue]:
    """Components listed in the config with no file in the project."""
    names = []
    for path in ("components.installed", "components.custom"):
        value = get_path(view, path)
        if isinstance(value, list):
            names.extend((path, v) for v in value if isinstance(v, str))
    if not names:
        return []

    stems = find_component_files(project_root)
    if stems is None:
        return [Issue(
            Severity.INFO, "no-components-dir",
            "no components directory found; component references not checked",
        )]

    issues = []
    reported = set()
    for path, name in names:
        if _normalize_component(name) in stems or (path, name) in reported:
            continue
        reported.add((path, name))
        issues.append(Issue(
            Severity.LOW, "orphaned-component",
            f"component '{name}' is listed but no matching file exists",
            path=path,
            fix=Fix("remove_item", path, name,
                    description=f"remove '{name}' from {path}"),
        ))
    return issues


def validate_data(data: dict, project_root=None) -> List[Issue]:
    """Every issue for a parsed record, outdated shapes included."""
    issues: List[Issue] = []
    version = detect_schema_version(data)
    if version < SCHEMA_VERSION:
        issues.append(Issue(
            Severity.HIGH, "outdated-schema",
            f"configuration uses schema v{version}; current is v{SCHEMA_VERSION}",
            fix=Fix("migrate", description=f"migrate from schema v{version} to v{SCHEMA_VERSION}"),
        ))
    elif "schema_version" in data and data["schema_version"] != SCHEMA_VERSION:
        issues.append(Issue(
            Severity.LOW, "schema-version",
            f"schema_version is {data['schema_version']!r} but the record has the v{SCHEMA_VERSION} shape",
            path="schema_version",
            fix=Fix("set", "schema_version", SCHEMA_VERSION, safe=True,
                    description=f"set schema_version to {SCHEMA_VERSION}"),
        ))

    view = upgrade_shape(data)
    issues.extend(check_unknown_keys(data))
    issues.extend(check_fields(view))
    if project_root is not None:
        issues.extend(check_references(view, project_root))
    return issues


# ----------------------------------------------------------------------
# Project-level entry points
# ----------------------------------------------------------------------

def _recovery_options(issues: List[Issue]) -> List[str]:
    codes = {i.code for i in issues}
    options = []
    if "outdated-schema" in codes:
        options.append(f"Run /ds-repair --fix to migrate the configuration to schema v{SCHEMA_VERSION}")
    if "missing-field" in codes:
        options.append("Run /ds-repair --fix and supply the missing values when prompted")
    if any(i.fix is not None and i.code != "outdated-schema" for i in issues):
        options.append("Run /ds-repair --fix to review the proposed fixes")
    return options


def validate_project(project_root) -> ValidationResult:
    """Locate, parse and validate a project's configuration record."""
    config_path = config_path_for(project_root)
    report = Report(title=f"Configuration {config_path}")

    if not config_path.is_file():
        report.add(Issue(
            Severity.CRITICAL, "config-missing",
            "no design-system configuration found; run /ds-init to create one",
            path=str(config_path),
        ))
        report.recovery.append("Run /ds-init (designkit init) to create the configuration")
        return ValidationResult(ConfigState.MISSING, config_path, report,
                                error=ConfigNotFoundError(config_path))

    try:
        text = config_path.read_text(encoding="utf-8")
        data = parse_config_text(text, source=str(config_path))
    except (ConfigParseError, OSError, UnicodeDecodeError) as e:
        error = e
        if not isinstance(e, ConfigParseError):
            error = ConfigParseError(f"Cannot read configuration: {e}", path=str(config_path))
        report.add(Issue(
            Severity.CRITICAL, "config-malformed", str(error),
            path=str(config_path), line=error.line, column=error.column,
        ))
        where = f" at line {error.line}" if error.line is not None else ""
        report.recovery.append(f"Fix the YAML syntax{where} by hand")
        report.recovery.append("Reset with /ds-init --force (existing values are discarded)")
        logger.error("Configuration is malformed: %s", error)
        return ValidationResult(ConfigState.MALFORMED, config_path, report, error=error)

    version = detect_schema_version(data)
    report.extend(validate_data(data, project_root))
    report.recovery.extend(_recovery_options(report.issues))
    state = ConfigState.OUTDATED_SCHEMA if version < SCHEMA_VERSION else ConfigState.VALID
    return ValidationResult(
        state=state,
        config_path=config_path,
        report=report,
        data=data,
        view=upgrade_shape(data),
        schema_version=version,
    )


def load_project_config(project_root, strict_references: bool = False) -> dict:
    """Strict read used by operations that need a usable record.

    Raises:
        ConfigNotFoundError: no record exists.
        ConfigParseError: the record is malformed.
        SchemaMismatchError: outdated shape or HIGH field issues.
        ReferenceInconsistencyError: with ``strict_references`` only.
    """
    result = validate_project(project_root)
    if result.error is not None:
        raise result.error

    blocking = [i for i in result.issues if i.severity is Severity.HIGH]
    if blocking:
        raise SchemaMismatchError(
            f"Configuration has {len(blocking)} schema issue(s); run /ds-repair",
            blocking,
        )
    if strict_references:
        orphans = [i for i in result.issues if i.code == "orphaned-component"]
        if orphans:
            raise ReferenceInconsistencyError(
                f"{len(orphans)} component reference(s) do not match project files",
                orphans,
            )
    return result.data


def fixable_issues(issues: List[Issue]) -> Dict[str, List[Issue]]:
    """Split issues into ``safe`` (auto-applied) and ``confirm`` groups."""
    groups: Dict[str, List[Issue]] = {"safe": [], "confirm": []}
    for issue in issues:
        if issue.fix is None:
            continue
        groups["safe" if issue.fix.safe else "confirm"].append(issue)
    return groups
