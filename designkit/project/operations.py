"""
Operations that change a project's configuration record: init and repair.

Every change goes through an :class:`~designkit.approval_gate.ApprovalGate`;
nothing is written to disk unless the record actually changed and the
required approvals were given.
"""

import copy
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from designkit.approval_gate import ApprovalGate
from designkit.errors import ConfigError, SchemaMismatchError
from designkit.paths import config_path_for
from designkit.project.detect import detect_stack
from designkit.project.git import has_uncommitted_changes
from designkit.project.migration import FillMissing, fill_missing_fields, fill_required, migrate
from designkit.project.schema import (
    FIELDS_BY_PATH,
    MISSING,
    build_config,
    coerce_value,
    delete_path,
    get_path,
    set_path,
)
from designkit.project.validator import ConfigState, validate_data, validate_project
from designkit.report import Fix, Issue, Report, Severity

logger = logging.getLogger(__name__)


@dataclass
class RepairResult:
    report: Report
    state: ConfigState
    applied: List[Fix] = field(default_factory=list)
    declined: List[Fix] = field(default_factory=list)
    migrated: List[str] = field(default_factory=list)
    filled: Dict[str, Any] = field(default_factory=dict)
    written: bool = False
    aborted: bool = False
    message: str = ""


@dataclass
class InitResult:
    config_path: Path
    data: dict
    detected: Dict[str, Any] = field(default_factory=dict)
    written: bool = False


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def apply_fix(data: dict, fix: Fix) -> bool:
    """Apply *fix* to *data* in place. Returns True if anything changed."""
    if fix.action == "set":
        if get_path(data, fix.path) == fix.value:
            return False
        set_path(data, fix.path, copy.deepcopy(fix.value))
        return True

    if fix.action == "delete":
        return delete_path(data, fix.path)

    if fix.action in ("dedupe", "remove_item"):
        items = get_path(data, fix.path)
        if not isinstance(items, list):
            return False
        if fix.action == "dedupe":
            kept: list = []
            for item in items:
                if item not in kept:
                    kept.append(item)
        else:
            kept = [item for item in items if item != fix.value]
        if kept == items:
            return False
        set_path(data, fix.path, kept)
        return True

    raise ValueError(f"Fix action '{fix.action}' cannot be applied to a mapping")


def write_config(path: Path, data: dict):
    """Replace *path* with *data* as YAML, never leaving a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".config-", suffix=".yaml", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    logger.info("Wrote %s", path)


def _trace(gate: ApprovalGate, operation: str, target: str, args: dict, result: str):
    if gate.trace_logger is not None:
        gate.trace_logger.log(
            operation=operation,
            target=target,
            args=args,
            result=result,
            session_id=gate.session_id,
        )


# ----------------------------------------------------------------------
# Repair
# ----------------------------------------------------------------------

def repair_project(
    project_root,
    gate: Optional[ApprovalGate] = None,
    fill_missing: Optional[FillMissing] = None,
    apply: bool = True,
) -> RepairResult:
    """Validate a project's configuration and, with ``apply``, fix what can be fixed.

    A missing or malformed record is never touched. Outdated records are
    migrated (with approval), missing required values are requested through
    ``fill_missing``, safe fixes are applied automatically and the rest only
    when the gate approves them.
    """
    gate = gate or ApprovalGate()
    result = validate_project(project_root)

    if result.state in (ConfigState.MISSING, ConfigState.MALFORMED):
        logger.warning("Not repairing %s: configuration is %s", result.config_path, result.state.value)
        return RepairResult(
            report=result.report,
            state=result.state,
            aborted=True,
            message=str(result.error),
        )

    if not apply:
        return RepairResult(report=result.report, state=result.state)

    data = copy.deepcopy(result.data)
    migrated: List[str] = []
    filled: Dict[str, Any] = {}

    if result.state is ConfigState.OUTDATED_SCHEMA:
        migrate_fix = next(i.fix for i in result.issues if i.code == "outdated-schema")
        if not gate.approve_fix(migrate_fix):
            return RepairResult(
                report=result.report,
                state=result.state,
                declined=[migrate_fix],
                aborted=True,
                message="Schema migration declined; configuration left unchanged",
            )
        try:
            migration = migrate(data, fill_missing)
        except SchemaMismatchError as e:
            logger.warning("Migration of %s aborted: %s", result.config_path, e)
            report = Report(title=result.report.title, recovery=list(result.report.recovery))
            report.extend(result.report.issues)
            report.extend(e.issues)
            return RepairResult(
                report=report,
                state=result.state,
                aborted=True,
                message=str(e),
            )
        data = migration.data
        migrated = migration.steps
        filled.update(migration.filled)
    else:
        newly_filled, _ = fill_missing_fields(data, fill_missing)
        filled.update(newly_filled)

    applied: List[Fix] = []
    declined: List[Fix] = []
    for issue in validate_data(data, project_root):
        fix = issue.fix
        if fix is None or fix.action == "migrate":
            continue
        if gate.approve_fix(fix):
            if apply_fix(data, fix):
                applied.append(fix)
        else:
            declined.append(fix)

    changed = data != result.data
    if not changed:
        logger.info("Nothing to write for %s", result.config_path)
        return RepairResult(
            report=result.report,
            state=result.state,
            applied=applied,
            declined=declined,
            message="No changes",
        )

    config_path = result.config_path
    if has_uncommitted_changes(config_path):
        approved = gate.request(
            "config:write-uncommitted",
            f"Overwrite {config_path}, which has uncommitted changes",
            details={"path": str(config_path)},
        )
        if not approved:
            return RepairResult(
                report=result.report,
                state=result.state,
                applied=applied,
                declined=declined,
                migrated=migrated,
                filled=filled,
                aborted=True,
                message=f"{config_path} has uncommitted changes; nothing written",
            )

    write_config(config_path, data)
    _trace(gate, "config:write", str(config_path),
           {"applied": [f.description or f.action for f in applied], "migrated": migrated,
            "filled": sorted(filled)},
           "written")

    after = validate_project(project_root)
    return RepairResult(
        report=after.report,
        state=after.state,
        applied=applied,
        declined=declined,
        migrated=migrated,
        filled=filled,
        written=True,
        message=f"Updated {config_path}",
    )


# ----------------------------------------------------------------------
# Init
# ----------------------------------------------------------------------

def init_project(
    project_root,
    values: Optional[Dict[str, Any]] = None,
    fill_missing: Optional[FillMissing] = None,
    gate: Optional[ApprovalGate] = None,
    force: bool = False,
    detect: bool = True,
) -> InitResult:
    """Create ``.design-system/config.yaml`` for a project.

    Values come from (lowest to highest priority) stack detection,
    ``values`` and, for anything still missing, ``fill_missing``.

    Raises:
        ConfigError: a configuration already exists and re-initialising it
            was not forced and approved.
        SchemaMismatchError: a required value could not be obtained; nothing
            is written.
    """
    gate = gate or ApprovalGate()
    config_path = config_path_for(project_root)

    if config_path.exists():
        if not force:
            raise ConfigError(f"{config_path} already exists; use --force to re-initialise it")
        approved = gate.request(
            "config:overwrite",
            f"Discard the existing configuration at {config_path}",
            details={"path": str(config_path)},
        )
        if not approved:
            raise ConfigError(f"Re-initialising {config_path} was declined")

    detected = detect_stack(project_root) if detect else {}
    merged: Dict[str, Any] = dict(detected)
    for path, value in (values or {}).items():
        spec = FIELDS_BY_PATH.get(path)
        if spec is None:
            raise ConfigError(f"Unknown configuration field: {path}")
        coerced = coerce_value(spec, value)
        if coerced is MISSING:
            raise SchemaMismatchError(
                f"Invalid value for {spec.describe()}: {value!r}",
                [Issue(Severity.HIGH, "invalid-enum", f"invalid value {value!r}", path=path)],
            )
        merged[path] = coerced

    data = build_config(merged)
    fill_required(data, fill_missing)

    write_config(config_path, data)
    _trace(gate, "config:init", str(config_path), {"detected": detected}, "written")
    return InitResult(config_path=config_path, data=data, detected=detected, written=True)


# ----------------------------------------------------------------------
# Diagnose
# ----------------------------------------------------------------------

def diagnose(project_root=None, registry=None) -> Report:
    """One report covering the project configuration and the skill registry."""
    report = Report(title="designkit diagnosis")

    if project_root is not None:
        result = validate_project(project_root)
        report.extend(result.issues)
        report.recovery.extend(result.report.recovery)

    if registry is not None:
        registry_issues = registry.check_integrity()
        report.extend(registry_issues)
        if any(i.severity.rank >= Severity.MEDIUM.rank for i in registry_issues):
            report.recovery.append("Fix the skill/agent definitions listed above in the plugin tree")

    logger.info("Diagnosis: %s (%d issues)", report.status.value, len(report.issues))
    return report
