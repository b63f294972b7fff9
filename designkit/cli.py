#!/usr/bin/env python3
"""
designkit command line interface.

    designkit skills                      list registered skills
    designkit route "fix accessibility"   show which skill/agent/knowledge a request gets
    designkit check                       config + registry diagnosis
    designkit validate                    config diagnosis only
    designkit repair [--fix] [--yes]      repair the config (interactive)
    designkit init [--force] [--set k=v]  create the config
    designkit --trace-db t.db trace       show the audit trail

Exit codes: 0 healthy, 1 needs repair, 2 critical or error.
"""

import argparse
import json
import logging
import os
import sys
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from designkit import __version__
from designkit.approval_gate import ApprovalGate, ApprovalRequest
from designkit.errors import DesignKitError
from designkit.knowledge import KnowledgeLoader
from designkit.paths import DEFAULT_PLUGIN_ROOT
from designkit.project import diagnose, init_project, repair_project, validate_project
from designkit.project.schema import FieldSpec, KIND_ENUM
from designkit.report import Report, Status
from designkit.router import SkillRouter
from designkit.skills import SkillRegistry
from designkit.trace_logger import TraceLogger

logger = logging.getLogger(__name__)

EXIT_CODES = {
    Status.HEALTHY: 0,
    Status.NEEDS_REPAIR: 1,
    Status.CRITICAL: 2,
}
EXIT_ERROR = 2


# ----------------------------------------------------------------------
# Interactive prompts
# ----------------------------------------------------------------------

def _ask(question: str) -> str:
    try:
        return input(question)
    except EOFError:
        return ""


def prompt_confirm(request: ApprovalRequest) -> bool:
    answer = _ask(f"{request.prompt()}\nProceed? [y/N] ").strip().lower()
    return answer in ("y", "yes")


def prompt_field(spec: FieldSpec) -> Optional[str]:
    label = spec.prompt or spec.path
    if spec.kind == KIND_ENUM:
        label += f" ({'/'.join(spec.choices)})"
    answer = _ask(f"{label}: ").strip()
    return answer or None


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def _parse_assignments(items: List[str]) -> Dict[str, str]:
    values = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"Expected key=value, got {item!r}")
        values[key.strip()] = value.strip()
    return values


def _emit_report(report: Report, as_json: bool) -> int:
    if as_json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(report.format())
    return EXIT_CODES[report.status]


def _make_gate(args, trace_logger) -> ApprovalGate:
    return ApprovalGate(
        confirm=None if args.yes else prompt_confirm,
        assume_yes=args.yes,
        trace_logger=trace_logger,
        session_id=args.session,
    )


# ----------------------------------------------------------------------
# Subcommands
# ----------------------------------------------------------------------

def cmd_skills(args, registry: SkillRegistry, trace_logger) -> int:
    for skill in registry.skills():
        triggers = ", ".join(skill.triggers) or "-"
        print(f"/{skill.skill_id:<20} agent={skill.agent_id:<24} triggers: {triggers}")
    return 0


def cmd_route(args, registry: SkillRegistry, trace_logger) -> int:
    router = SkillRouter(
        registry,
        KnowledgeLoader(registry.plugin_root),
        fallback_skill=args.fallback or None,
        trace_logger=trace_logger,
        session_id=args.session,
    )
    dispatch = router.route(
        args.text,
        project_dir=args.project,
        argument=args.argument,
        features=args.feature or (),
    )

    if args.json:
        print(json.dumps({
            "skill": dispatch.skill_id,
            "agent": dispatch.agent_id,
            "via": dispatch.via,
            "argument": dispatch.argument,
            "matched_phrase": dispatch.matched_phrase,
            "documents": [
                {"path": d.path, "source": str(d.source), "level": d.level, "required": d.required}
                for d in dispatch.documents
            ],
            "missing_arguments": [a.name for a in dispatch.missing_arguments],
        }, ensure_ascii=False, indent=2))
        return 0

    print(f"skill:  {dispatch.skill_id} (via {dispatch.via})")
    print(f"agent:  {dispatch.agent_id}")
    if dispatch.matched_phrase:
        print(f"phrase: {dispatch.matched_phrase}")
    if dispatch.argument:
        print(f"argument: {dispatch.argument}")
    for arg in dispatch.missing_arguments:
        print(f"missing argument: {arg.name}" + (f" ({arg.description})" if arg.description else ""))
    print("knowledge:")
    for doc in dispatch.documents:
        print(f"  {doc.path}  [{doc.level}]")
    if args.show_content:
        for doc in dispatch.documents:
            print(f"\n===== {doc.path} =====\n{doc.content}")
    return 0


def cmd_check(args, registry: SkillRegistry, trace_logger) -> int:
    report = diagnose(args.project, registry)
    return _emit_report(report, args.json)


def cmd_validate(args, registry, trace_logger) -> int:
    result = validate_project(args.project)
    return _emit_report(result.report, args.json)


def cmd_repair(args, registry, trace_logger) -> int:
    gate = _make_gate(args, trace_logger)
    result = repair_project(
        args.project,
        gate=gate,
        fill_missing=None if args.yes else prompt_field,
        apply=args.fix,
    )
    code = _emit_report(result.report, args.json)
    if args.json:
        return code

    for step in result.migrated:
        print(f"migrated: {step}")
    for path, value in result.filled.items():
        print(f"filled: {path} = {value!r}")
    for fix in result.applied:
        print(f"applied: {fix.description or fix.action}")
    for fix in result.declined:
        print(f"declined: {fix.description or fix.action}")
    if result.message:
        print(result.message)
    if result.aborted and code == 0:
        return EXIT_ERROR
    return code


def cmd_init(args, registry, trace_logger) -> int:
    gate = _make_gate(args, trace_logger)
    result = init_project(
        args.project,
        values=_parse_assignments(args.set),
        fill_missing=None if args.yes else prompt_field,
        gate=gate,
        force=args.force,
        detect=not args.no_detect,
    )
    if result.detected:
        print("detected: " + ", ".join(f"{k}={v}" for k, v in result.detected.items()))
    print(f"Created {result.config_path}")
    return 0


def cmd_trace(args, registry, trace_logger) -> int:
    if trace_logger is None:
        raise DesignKitError("No audit trail configured; pass --trace-db or set DESIGNKIT_TRACE_DB")
    filters = {"session_id": args.session or None, "operation": args.operation, "limit": args.limit}
    if args.json:
        print(trace_logger.export(**filters))
        return 0
    for record in trace_logger.records(**filters):
        decision = f" [{record['approval_level']} by {record['approved_by']}]" if record["approval_level"] else ""
        print(f"{record['timestamp']}  {record['session_id']:<12}  {record['operation']:<24} "
              f"{record['target']} -> {record['result']}{decision}")
    return 0


COMMANDS = {
    "skills": cmd_skills,
    "route": cmd_route,
    "check": cmd_check,
    "validate": cmd_validate,
    "repair": cmd_repair,
    "init": cmd_init,
    "trace": cmd_trace,
}


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="designkit",
        description="Skill routing and project configuration for the design-system plugin",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--plugin-root", default=os.getenv("DESIGNKIT_PLUGIN_ROOT") or str(DEFAULT_PLUGIN_ROOT),
                        help="Plugin tree with skills/, agents/ and knowledge/")
    parser.add_argument("--trace-db", default=os.getenv("DESIGNKIT_TRACE_DB", ""),
                        help="SQLite file for the audit trail (disabled when empty)")
    parser.add_argument("--log-level", default=os.getenv("DESIGNKIT_LOG_LEVEL", "WARNING"),
                        help="Logging level (default: WARNING)")
    parser.add_argument("--session", default="", help="Session id recorded in the audit trail")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("skills", help="List registered skills")

    p = sub.add_parser("route", help="Route a request to a skill and load its knowledge")
    p.add_argument("text", help="Request text or /skill-name [argument]")
    p.add_argument("--project", default=".", help="Project directory (default: .)")
    p.add_argument("--argument", help="Skill argument (overrides one parsed from a /command)")
    p.add_argument("--feature", action="append", help="Requested feature, repeatable")
    p.add_argument("--fallback", default=os.getenv("DESIGNKIT_FALLBACK_SKILL", "design-system"),
                   help="Skill used when nothing matches (empty to disable)")
    p.add_argument("--show-content", action="store_true", help="Print knowledge file contents")
    p.add_argument("--json", action="store_true")

    for name, help_text in (
        ("check", "Diagnose project configuration and skill registry"),
        ("validate", "Diagnose project configuration only"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--project", default=".", help="Project directory (default: .)")
        p.add_argument("--json", action="store_true")

    p = sub.add_parser("repair", help="Repair the project configuration")
    p.add_argument("--project", default=".", help="Project directory (default: .)")
    p.add_argument("--fix", action="store_true", help="Apply fixes (default: report only)")
    p.add_argument("--yes", action="store_true", help="Approve every change without asking")
    p.add_argument("--json", action="store_true")

    p = sub.add_parser("init", help="Create the project configuration")
    p.add_argument("--project", default=".", help="Project directory (default: .)")
    p.add_argument("--set", action="append", metavar="FIELD=VALUE",
                   help="Field value, e.g. project.type=application (repeatable)")
    p.add_argument("--force", action="store_true", help="Re-initialise an existing configuration")
    p.add_argument("--yes", action="store_true", help="Approve every change without asking")
    p.add_argument("--no-detect", action="store_true", help="Do not read package.json")

    p = sub.add_parser("trace", help="Show the audit trail (filtered by --session when given)")
    p.add_argument("--operation", help="Operation name, or a family such as 'fix:'")
    p.add_argument("--limit", type=int, help="Only the newest N records")
    p.add_argument("--json", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
    )
    if not args.session and args.command != "trace":
        args.session = uuid.uuid4().hex[:12]

    trace_logger = TraceLogger(args.trace_db) if args.trace_db else None
    try:
        registry = None
        if args.command in ("skills", "route", "check"):
            registry = SkillRegistry.load(Path(args.plugin_root))
        return COMMANDS[args.command](args, registry, trace_logger)
    except (DesignKitError, argparse.ArgumentTypeError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        if trace_logger is not None:
            trace_logger.close()


if __name__ == "__main__":
    sys.exit(main())
