"""Shared pytest fixtures for designkit tests."""

import textwrap
from pathlib import Path

import pytest

VALID_CONFIG = """\
schema_version: 3
project:
  name: acme-web
  type: application
stack:
  framework: next
  ui_library: shadcn
  state_management: zustand
  testing:
    unit: vitest
    e2e: playwright
customizations: []
components:
  installed: [button]
  custom: []
"""


def write_file(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


def write_skill(root: Path, skill_id: str, agent: str, triggers=(), extra: str = "") -> Path:
    trigger_lines = "".join(f"  - {t}\n" for t in triggers)
    content = f"---\nname: {skill_id}\nagent: {agent}\ntriggers:\n{trigger_lines}{extra}---\n\n# {skill_id}\n"
    if not triggers:
        content = f"---\nname: {skill_id}\nagent: {agent}\n{extra}---\n\n# {skill_id}\n"
    return write_file(root / "skills" / skill_id / "SKILL.md", content)


def write_agent(root: Path, agent_id: str, primary=(), conditional: str = "") -> Path:
    primary_lines = "".join(f"    - {p}\n" for p in primary)
    content = f"---\nname: {agent_id}\nknowledge:\n  primary:\n{primary_lines}"
    if conditional:
        content += "  conditional:\n" + conditional
    content += "---\n\nAgent body.\n"
    return write_file(root / "agents" / f"{agent_id}.md", content)


def write_config(project: Path, text: str = VALID_CONFIG) -> Path:
    return write_file(project / ".design-system" / "config.yaml", text)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path."""
    return str(tmp_path / "test_trace.db")


@pytest.fixture
def plugin_root(tmp_path):
    """A small plugin tree: three skills, three agents, core knowledge files."""
    root = tmp_path / "plugin"
    write_file(root / "knowledge" / "core" / "principles.md", "# Principles\n")
    write_file(root / "knowledge" / "accessibility" / "wcag.md", "# WCAG checklist\n")
    write_file(root / "knowledge" / "components" / "patterns.md", "# Core patterns\n")
    write_file(root / "knowledge" / "marketing" / "landing.md", "# Landing pages\n")
    write_file(root / "knowledge" / "components" / "virtualization.md", "# Virtualization\n")

    write_agent(root, "general-agent", ["knowledge/core/principles.md"])
    write_agent(root, "accessibility-agent", ["knowledge/accessibility/wcag.md"])
    write_agent(
        root, "component-agent",
        ["knowledge/components/patterns.md", "${CLAUDE_PLUGIN_ROOT}/knowledge/core/principles.md"],
        conditional=(
            "    - when: {project_type: marketing}\n"
            "      path: knowledge/marketing/landing.md\n"
            "    - when: {feature: virtualization}\n"
            "      path: knowledge/components/virtualization.md\n"
            "      description: Long lists\n"
            "    - when: {framework: remix}\n"
            "      path: knowledge/frameworks/remix.md\n"
        ),
    )

    write_skill(root, "design-system", "general-agent", ["design system"])
    write_skill(root, "ds-accessibility", "accessibility-agent", ["fix accessibility", "a11y"])
    write_skill(
        root, "ds-component", "component-agent", ["create component", "component"],
        extra="arguments:\n  - name: name\n    required: true\n",
    )
    return root


@pytest.fixture
def project_dir(tmp_path):
    """An empty project directory (no configuration yet)."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def configured_project(project_dir):
    """A project with a valid v3 configuration and a matching component file."""
    write_config(project_dir)
    write_file(project_dir / "components" / "Button.tsx", "export function Button() {}\n")
    return project_dir


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Ensure no local settings leak into tests."""
    for name in ("DESIGNKIT_PLUGIN_ROOT", "DESIGNKIT_FALLBACK_SKILL", "DESIGNKIT_TRACE_DB", "DESIGNKIT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def no_git(monkeypatch):
    """Treat every file as committed unless a test says otherwise."""
    monkeypatch.setattr("designkit.project.operations.has_uncommitted_changes", lambda path: False)
