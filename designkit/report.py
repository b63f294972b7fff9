"""
Diagnostic report primitives shared by registry checks and config validation.

Every user-visible failure is a list of severity-tagged issues plus a short
list of recovery options; the overall status is derived from the issues.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.INFO: 0,
}


class Status(Enum):
    HEALTHY = "HEALTHY"
    NEEDS_REPAIR = "NEEDS REPAIR"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class Fix:
    """A proposed change to a config mapping.

    ``action`` is one of ``set``, ``delete``, ``dedupe``, ``remove_item`` or
    ``migrate``; ``path`` is a dotted field path. Only ``safe`` fixes may be
    applied without confirmation.
    """

    action: str
    path: str = ""
    value: Any = None
    safe: bool = False
    description: str = ""


@dataclass(frozen=True)
class Issue:
    severity: Severity
    code: str
    message: str
    path: str = ""
    line: Optional[int] = None
    column: Optional[int] = None
    fix: Optional[Fix] = None

    def format(self) -> str:
        where = f" [{self.path}]" if self.path else ""
        if self.line is not None:
            where += f" (line {self.line}" + (f", column {self.column})" if self.column is not None else ")")
        return f"{self.severity.value:<8} {self.code}{where}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "path": self.path,
            "line": self.line,
            "column": self.column,
        }
        if self.fix is not None:
            data["fix"] = {
                "action": self.fix.action,
                "path": self.fix.path,
                "value": self.fix.value,
                "safe": self.fix.safe,
                "description": self.fix.description,
            }
        return data


def status_for(issues: List[Issue]) -> Status:
    """CRITICAL if any critical issue, NEEDS REPAIR for HIGH/MEDIUM, else HEALTHY."""
    worst = max((i.severity.rank for i in issues), default=-1)
    if worst >= Severity.CRITICAL.rank:
        return Status.CRITICAL
    if worst >= Severity.MEDIUM.rank:
        return Status.NEEDS_REPAIR
    return Status.HEALTHY


@dataclass
class Report:
    """Accumulated issues for one diagnostic pass."""

    title: str = "designkit report"
    issues: List[Issue] = field(default_factory=list)
    recovery: List[str] = field(default_factory=list)

    @property
    def status(self) -> Status:
        return status_for(self.issues)

    def add(self, issue: Issue):
        self.issues.append(issue)

    def extend(self, issues):
        self.issues.extend(issues)

    def by_severity(self, severity: Severity) -> List[Issue]:
        return [i for i in self.issues if i.severity is severity]

    def sorted_issues(self) -> List[Issue]:
        # stable: keeps discovery order within one severity
        return sorted(self.issues, key=lambda i: -i.severity.rank)

    def format(self) -> str:
        lines = [f"{self.title}: {self.status.value}"]
        if not self.issues:
            lines.append("  no issues found")
        for issue in self.sorted_issues():
            lines.append("  " + issue.format())
        if self.recovery:
            lines.append("")
            lines.append("Recovery options:")
            for n, option in enumerate(self.recovery, 1):
                lines.append(f"  {n}. {option}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "status": self.status.value,
            "issues": [i.to_dict() for i in self.sorted_issues()],
            "recovery": list(self.recovery),
        }
