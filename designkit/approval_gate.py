"""
designkit Approval Gate — risk-based confirmation for configuration changes.

Classifies every proposed change into one of three risk levels and, for
anything above AUTO, asks the user through a synchronous ``confirm``
callback before it is applied.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class RiskLevel(Enum):
    AUTO = "AUTO"          # Safe, idempotent: apply immediately
    CONFIRM = "CONFIRM"    # Needs user approval
    CRITICAL = "CRITICAL"  # Needs explicit approval; may clobber someone's work


# Action name → risk level mapping
ACTION_RISK_MAP: Dict[str, RiskLevel] = {
    # AUTO
    "fix:dedupe": RiskLevel.AUTO,
    # CONFIRM
    "fix:set": RiskLevel.CONFIRM,
    "fix:delete": RiskLevel.CONFIRM,
    "fix:remove_item": RiskLevel.CONFIRM,
    "fix:migrate": RiskLevel.CONFIRM,
    "config:write": RiskLevel.CONFIRM,
    # CRITICAL
    "config:write-uncommitted": RiskLevel.CRITICAL,
    "config:overwrite": RiskLevel.CRITICAL,
}


@dataclass(frozen=True)
class ApprovalRequest:
    action: str
    summary: str
    risk: RiskLevel
    details: Dict[str, Any] = field(default_factory=dict)

    def prompt(self) -> str:
        text = f"[{self.risk.value}] {self.summary}"
        if self.details:
            text += f"\n  {_format_args(self.details)}"
        return text


ConfirmFn = Callable[[ApprovalRequest], bool]


class ApprovalGate:
    """Gate that checks risk level and optionally asks the user before a change.

    Without a ``confirm`` callback every request above AUTO is denied, unless
    ``assume_yes`` is set (non-interactive ``--yes``).
    """

    def __init__(
        self,
        confirm: Optional[ConfirmFn] = None,
        assume_yes: bool = False,
        trace_logger=None,
        session_id: str = "",
    ):
        self.confirm = confirm
        self.assume_yes = assume_yes
        self.trace_logger = trace_logger
        self.session_id = session_id
        self.decisions: List[Tuple[ApprovalRequest, bool]] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(self, action: str, safe: bool = False) -> RiskLevel:
        if safe:
            return RiskLevel.AUTO
        return ACTION_RISK_MAP.get(action, RiskLevel.CONFIRM)

    def request(
        self,
        action: str,
        summary: str,
        details: Optional[dict] = None,
        safe: bool = False,
    ) -> bool:
        """Return True if *action* may proceed."""
        req = ApprovalRequest(
            action=action,
            summary=summary,
            risk=self.classify(action, safe),
            details=dict(details or {}),
        )

        if req.risk == RiskLevel.AUTO:
            approved, approved_by = True, "auto"
        elif self.assume_yes:
            approved, approved_by = True, "assume-yes"
        elif self.confirm is None:
            logger.warning("Approval required for %s but no confirm callback; denying.", action)
            approved, approved_by = False, "no-confirm"
        else:
            approved = bool(self.confirm(req))
            approved_by = "user"

        self.decisions.append((req, approved))
        logger.info("%s %s (%s, %s)", "Approved" if approved else "Denied", action, req.risk.value, approved_by)

        if self.trace_logger is not None:
            self.trace_logger.log(
                operation=action,
                target=summary,
                args=req.details,
                result="approved" if approved else "denied",
                approval_level=req.risk.value,
                approved_by=approved_by,
                session_id=self.session_id,
            )
        return approved

    def approve_fix(self, fix) -> bool:
        """Shorthand for a :class:`designkit.report.Fix`."""
        details = {"path": fix.path} if fix.path else {}
        if fix.value is not None:
            details["value"] = fix.value
        return self.request(
            f"fix:{fix.action}",
            fix.description or f"{fix.action} {fix.path}",
            details=details,
            safe=fix.safe,
        )


def _format_args(args: dict, max_len: int = 200) -> str:
    """Pretty-print request details, truncating if too long."""
    text = ", ".join(f"{k}={v!r}" for k, v in args.items())
    if len(text) > max_len:
        text = text[:max_len] + "..."
    return text
