"""Tests for designkit.cli."""

import json
from unittest.mock import patch

import pytest
import yaml

from conftest import VALID_CONFIG, write_config


def _run(*argv):
    from designkit.cli import main
    return main(list(argv))


class TestSkillsAndRoute:
    def test_skills_lists_registry(self, plugin_root, capsys):
        assert _run("--plugin-root", str(plugin_root), "skills") == 0
        out = capsys.readouterr().out
        assert "/ds-accessibility" in out
        assert "fix accessibility" in out

    def test_route_json(self, plugin_root, project_dir, capsys):
        code = _run("--plugin-root", str(plugin_root), "route", "fix accessibility issues",
                    "--project", str(project_dir), "--json")
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["skill"] == "ds-accessibility"
        assert data["agent"] == "accessibility-agent"
        assert data["documents"][0]["path"] == "knowledge/accessibility/wcag.md"

    def test_route_text_with_content(self, plugin_root, project_dir, capsys):
        _run("--plugin-root", str(plugin_root), "route", "/ds-component", "--project", str(project_dir),
             "--show-content")
        out = capsys.readouterr().out
        assert "missing argument: name" in out
        assert "# Core patterns" in out

    def test_route_unknown_command_is_error(self, plugin_root, project_dir, capsys):
        code = _run("--plugin-root", str(plugin_root), "route", "/ds-nope", "--project", str(project_dir))
        assert code == 2
        assert "Unknown skill: ds-nope" in capsys.readouterr().err

    def test_route_fallback_from_env(self, plugin_root, project_dir, monkeypatch, capsys):
        monkeypatch.setenv("DESIGNKIT_FALLBACK_SKILL", "ds-accessibility")
        _run("--plugin-root", str(plugin_root), "route", "hello", "--project", str(project_dir), "--json")
        assert json.loads(capsys.readouterr().out)["via"] == "fallback"

    def test_plugin_root_from_env(self, plugin_root, monkeypatch, capsys):
        monkeypatch.setenv("DESIGNKIT_PLUGIN_ROOT", str(plugin_root))
        assert _run("skills") == 0
        assert "/ds-component" in capsys.readouterr().out


class TestCheckAndValidate:
    def test_healthy(self, configured_project, capsys):
        assert _run("validate", "--project", str(configured_project)) == 0
        assert "HEALTHY" in capsys.readouterr().out

    def test_needs_repair(self, configured_project, capsys):
        write_config(configured_project, VALID_CONFIG.replace("framework: next", "framework: nextjs"))
        assert _run("validate", "--project", str(configured_project), "--json") == 1
        report = json.loads(capsys.readouterr().out)
        assert report["status"] == "NEEDS REPAIR"
        assert report["issues"][0]["fix"]["value"] == "next"

    def test_missing_is_critical(self, project_dir, capsys):
        assert _run("validate", "--project", str(project_dir)) == 2
        out = capsys.readouterr().out
        assert "CRITICAL" in out
        assert "Recovery options:" in out

    def test_check_includes_registry(self, plugin_root, configured_project, capsys):
        code = _run("--plugin-root", str(plugin_root), "check", "--project", str(configured_project), "--json")
        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert [i["code"] for i in report["issues"]] == ["missing-knowledge-file"]


class TestRepairAndInit:
    def test_repair_report_only_by_default(self, configured_project):
        text = VALID_CONFIG.replace("framework: next", "framework: nextjs")
        write_config(configured_project, text)
        assert _run("repair", "--project", str(configured_project)) == 1
        assert (configured_project / ".design-system" / "config.yaml").read_text() == text

    def test_repair_fix_prompts(self, configured_project, capsys):
        write_config(configured_project, VALID_CONFIG.replace("framework: next", "framework: nextjs"))
        with patch("builtins.input", return_value="y") as mock_input:
            code = _run("repair", "--project", str(configured_project), "--fix")
        assert code == 0
        assert "Proceed?" in mock_input.call_args[0][0]
        assert "applied: set stack.framework to 'next'" in capsys.readouterr().out

    def test_repair_fix_declined(self, configured_project):
        write_config(configured_project, VALID_CONFIG.replace("framework: next", "framework: nextjs"))
        with patch("builtins.input", return_value="n"):
            assert _run("repair", "--project", str(configured_project), "--fix") == 1

    def test_repair_malformed(self, project_dir, capsys):
        write_config(project_dir, "project: [\n")
        assert _run("repair", "--project", str(project_dir), "--fix", "--yes") == 2
        assert "Fix the YAML syntax at line" in capsys.readouterr().out

    def test_init_with_prompts(self, project_dir):
        answers = iter(["demo", "application", "vite", "radix", "none", "vitest", "none"])
        with patch("builtins.input", side_effect=lambda prompt: next(answers)):
            assert _run("init", "--project", str(project_dir)) == 0
        data = yaml.safe_load((project_dir / ".design-system" / "config.yaml").read_text())
        assert data["project"] == {"name": "demo", "type": "application"}
        assert data["stack"]["testing"] == {"unit": "vitest", "e2e": "none"}

    def test_init_non_interactive(self, project_dir):
        sets = []
        for pair in ("project.name=demo", "project.type=marketing", "stack.framework=next",
                     "stack.ui_library=shadcn", "stack.state_management=jotai",
                     "stack.testing.unit=jest", "stack.testing.e2e=cypress"):
            sets += ["--set", pair]
        assert _run("init", "--project", str(project_dir), "--yes", *sets) == 0

    def test_init_incomplete_non_interactive(self, project_dir, capsys):
        assert _run("init", "--project", str(project_dir), "--yes", "--set", "project.name=x") == 2
        assert "Required fields are missing" in capsys.readouterr().err

    def test_init_bad_assignment(self, project_dir, capsys):
        assert _run("init", "--project", str(project_dir), "--yes", "--set", "oops") == 2
        assert "key=value" in capsys.readouterr().err

    def test_init_existing(self, configured_project, capsys):
        assert _run("init", "--project", str(configured_project), "--yes") == 2
        assert "already exists" in capsys.readouterr().err


class TestTraceDb:
    def test_trace_written(self, plugin_root, project_dir, tmp_db):
        from designkit.trace_logger import TraceLogger
        _run("--plugin-root", str(plugin_root), "--trace-db", tmp_db, "--session", "cli",
             "route", "a11y", "--project", str(project_dir))
        tracer = TraceLogger(tmp_db)
        records = tracer.records(session_id="cli")
        tracer.close()
        assert [r["target"] for r in records] == ["ds-accessibility"]

    def test_trace_command_lists_session(self, plugin_root, project_dir, tmp_db, capsys):
        for session in ("one", "two"):
            _run("--plugin-root", str(plugin_root), "--trace-db", tmp_db, "--session", session,
                 "route", "a11y", "--project", str(project_dir))
        capsys.readouterr()

        assert _run("--trace-db", tmp_db, "--session", "two", "trace") == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        assert "dispatch" in lines[0] and "ds-accessibility -> ok" in lines[0]

    def test_trace_command_json(self, configured_project, tmp_db, capsys):
        write_config(configured_project, VALID_CONFIG.replace("installed: [button]", "installed: [button, button]"))
        _run("--trace-db", tmp_db, "repair", "--project", str(configured_project), "--fix", "--yes")
        capsys.readouterr()

        assert _run("--trace-db", tmp_db, "trace", "--operation", "fix:", "--json") == 0
        (record,) = json.loads(capsys.readouterr().out)
        assert record["operation"] == "fix:dedupe"
        assert record["approval_level"] == "AUTO"

    def test_trace_without_db(self, capsys):
        assert _run("trace") == 2
        assert "--trace-db" in capsys.readouterr().err


def test_subcommand_required():
    with pytest.raises(SystemExit):
        _run()
