"""Tests for designkit.project.validator — config states and field checks."""

import pytest

from conftest import VALID_CONFIG, write_config, write_file

V1_CONFIG = """\
name: legacy-site
type: marketing
framework: nextjs
ui_library: radix
state_management: none
testing: jest
components: [button, card]
"""

V2_CONFIG = """\
project:
  name: acme
  type: application
stack:
  framework: vite
  ui_library: headlessui
  state_management: redux
  testing: vitest + playwright
customizations: []
components:
  installed: []
  custom: []
"""


def _codes(result):
    return [i.code for i in result.issues]


class TestConfigStates:
    def test_missing(self, project_dir):
        from designkit.errors import ConfigNotFoundError
        from designkit.project.validator import ConfigState, validate_project
        from designkit.report import Status

        result = validate_project(project_dir)
        assert result.state is ConfigState.MISSING
        assert result.status is Status.CRITICAL
        assert _codes(result) == ["config-missing"]
        assert isinstance(result.error, ConfigNotFoundError)
        assert any("/ds-init" in option for option in result.report.recovery)

    def test_malformed_reports_line(self, project_dir):
        from designkit.errors import ConfigParseError
        from designkit.project.validator import ConfigState, validate_project

        write_config(project_dir, "project:\n  name: acme\n  type: [application\nstack: {}\n")
        result = validate_project(project_dir)

        assert result.state is ConfigState.MALFORMED
        assert result.status.value == "CRITICAL"
        assert isinstance(result.error, ConfigParseError)
        assert result.error.line is not None
        assert result.issues[0].line == result.error.line
        assert len(result.report.recovery) == 2
        assert result.data is None

    def test_non_mapping_is_malformed(self, project_dir):
        from designkit.project.validator import ConfigState, validate_project
        write_config(project_dir, "- just\n- a list\n")
        result = validate_project(project_dir)
        assert result.state is ConfigState.MALFORMED
        assert result.error.line == 1

    def test_valid(self, configured_project):
        from designkit.project.validator import ConfigState, validate_project
        from designkit.report import Status

        result = validate_project(configured_project)
        assert result.state is ConfigState.VALID
        assert result.status is Status.HEALTHY
        assert result.issues == []
        assert result.view["stack"]["testing"] == {"unit": "vitest", "e2e": "playwright"}

    def test_outdated_v1(self, project_dir):
        from designkit.project.validator import ConfigState, validate_project
        from designkit.report import Status

        write_config(project_dir, V1_CONFIG)
        result = validate_project(project_dir)

        assert result.state is ConfigState.OUTDATED_SCHEMA
        assert result.schema_version == 1
        assert result.status is Status.NEEDS_REPAIR
        assert "outdated-schema" in _codes(result)
        # legacy root keys are expected in a v1 record
        assert "unknown-key" not in _codes(result)
        # the view is already in the current shape
        assert result.view["project"]["name"] == "legacy-site"
        assert result.view["stack"]["testing"]["unit"] == "jest"

    def test_outdated_v2(self, project_dir):
        from designkit.project.validator import ConfigState, validate_project
        write_config(project_dir, V2_CONFIG)
        result = validate_project(project_dir)
        assert result.state is ConfigState.OUTDATED_SCHEMA
        assert result.schema_version == 2
        assert result.view["stack"]["testing"] == {"unit": "vitest", "e2e": "playwright"}


class TestFieldChecks:
    def test_invalid_enum_with_suggestion(self, configured_project):
        from designkit.project.validator import validate_project
        from designkit.report import Severity, Status

        text = VALID_CONFIG.replace("framework: next", "framework: nextjs")
        write_config(configured_project, text)
        result = validate_project(configured_project)

        assert result.status is Status.NEEDS_REPAIR
        (issue,) = result.issues
        assert issue.severity is Severity.HIGH
        assert issue.code == "invalid-enum"
        assert issue.path == "stack.framework"
        assert issue.message == "invalid enum value 'nextjs', expected one of [next, remix, vite]"
        assert issue.fix.action == "set"
        assert issue.fix.value == "next"
        assert not issue.fix.safe

    def test_invalid_enum_without_suggestion(self, configured_project):
        from designkit.project.validator import validate_project
        write_config(configured_project, VALID_CONFIG.replace("ui_library: shadcn", "ui_library: bootstrap"))
        (issue,) = validate_project(configured_project).issues
        assert issue.code == "invalid-enum"
        assert issue.fix is None

    def test_missing_required_fields(self, configured_project):
        from designkit.project.validator import validate_project
        text = VALID_CONFIG.replace("  type: application\n", "").replace("    e2e: playwright\n", "")
        write_config(configured_project, text)
        issues = validate_project(configured_project).issues
        assert {(i.code, i.path) for i in issues} == {
            ("missing-field", "project.type"),
            ("missing-field", "stack.testing.e2e"),
        }

    def test_all_issues_collected_in_one_pass(self, configured_project):
        from designkit.project.validator import validate_project
        text = (
            VALID_CONFIG
            .replace("type: application", "type: app")
            .replace("framework: next", "framework: angular")
            .replace("customizations: []", "customizations: dark-mode")
            + "theme: dark\n"
        )
        write_config(configured_project, text)
        codes = sorted(_codes(validate_project(configured_project)))
        assert codes == ["invalid-enum", "invalid-enum", "invalid-type", "unknown-key"]

    def test_duplicate_list_entries_are_low(self, configured_project):
        from designkit.project.validator import validate_project
        from designkit.report import Status
        write_config(configured_project, VALID_CONFIG.replace("installed: [button]", "installed: [button, button]"))
        result = validate_project(configured_project)
        assert result.status is Status.HEALTHY
        (issue,) = result.issues
        assert issue.code == "duplicate-entries"
        assert issue.fix.safe

    def test_schema_version_mismatch_is_safe_fix(self, configured_project):
        from designkit.project.validator import validate_project
        write_config(configured_project, VALID_CONFIG.replace("schema_version: 3", "schema_version: 2"))
        (issue,) = validate_project(configured_project).issues
        assert issue.code == "schema-version"
        assert issue.fix.safe


class TestReferenceChecks:
    def test_orphaned_component(self, configured_project):
        from designkit.project.validator import validate_project
        from designkit.report import Severity
        write_config(configured_project, VALID_CONFIG.replace("installed: [button]", "installed: [button, date-picker]"))
        (issue,) = validate_project(configured_project).issues
        assert issue.code == "orphaned-component"
        assert issue.severity is Severity.LOW
        assert issue.fix.action == "remove_item"
        assert issue.fix.value == "date-picker"

    def test_component_name_normalisation(self, configured_project):
        from designkit.project.validator import validate_project
        write_file(configured_project / "src" / "components" / "date-picker" / "index.tsx", "export {}\n")
        write_config(configured_project, VALID_CONFIG.replace("installed: [button]", "installed: [button, DatePicker]"))
        assert validate_project(configured_project).issues == []

    def test_no_components_directory(self, project_dir):
        from designkit.project.validator import validate_project
        write_config(project_dir)
        (issue,) = validate_project(project_dir).issues
        assert issue.code == "no-components-dir"


class TestLoadProjectConfig:
    def test_returns_data(self, configured_project):
        from designkit.project import load_project_config
        assert load_project_config(configured_project)["project"]["name"] == "acme-web"

    def test_missing_raises(self, project_dir):
        from designkit.errors import ConfigNotFoundError
        from designkit.project import load_project_config
        with pytest.raises(ConfigNotFoundError, match="/ds-init"):
            load_project_config(project_dir)

    def test_malformed_raises(self, project_dir):
        from designkit.errors import ConfigParseError
        from designkit.project import load_project_config
        write_config(project_dir, "project: [\n")
        with pytest.raises(ConfigParseError):
            load_project_config(project_dir)

    def test_schema_mismatch_raises(self, configured_project):
        from designkit.errors import SchemaMismatchError
        from designkit.project import load_project_config
        write_config(configured_project, VALID_CONFIG.replace("framework: next", "framework: nextjs"))
        with pytest.raises(SchemaMismatchError) as exc:
            load_project_config(configured_project)
        assert exc.value.issues[0].path == "stack.framework"

    def test_strict_references(self, configured_project):
        from designkit.errors import ReferenceInconsistencyError
        from designkit.project import load_project_config
        write_config(configured_project, VALID_CONFIG.replace("installed: [button]", "installed: [ghost]"))
        assert load_project_config(configured_project)
        with pytest.raises(ReferenceInconsistencyError):
            load_project_config(configured_project, strict_references=True)


class TestNonMappingSections:
    @pytest.mark.parametrize("text", [
        "framework: next\nproject: acme\n",
        "testing: vitest\nstack: next\n",
    ])
    def test_legacy_record_with_scalar_section_is_reported(self, project_dir, text):
        from designkit.project.validator import ConfigState, validate_project
        from designkit.report import Status
        write_config(project_dir, text)
        result = validate_project(project_dir)
        assert result.state is ConfigState.OUTDATED_SCHEMA
        assert result.status is Status.NEEDS_REPAIR
        assert "outdated-schema" in _codes(result)
        assert ("missing-field", "project.name") in {(i.code, i.path) for i in result.issues}

    def test_scalar_section_in_current_record(self, configured_project):
        from designkit.project.validator import validate_project
        text = VALID_CONFIG.replace("stack:\n", "stack: next\nold_stack:\n")
        write_config(configured_project, text)
        paths = {i.path for i in validate_project(configured_project).issues if i.code == "missing-field"}
        assert paths == {
            "stack.framework", "stack.ui_library", "stack.state_management",
            "stack.testing.unit", "stack.testing.e2e",
        }

    def test_stray_legacy_key_in_current_record(self, configured_project):
        from designkit.project.validator import ConfigState, validate_project
        write_config(configured_project, VALID_CONFIG + "testing: jest\n")
        result = validate_project(configured_project)
        assert result.state is ConfigState.VALID
        (issue,) = result.issues
        assert (issue.code, issue.path) == ("unknown-key", "testing")
        assert issue.fix.action == "delete"


class TestSchemaModel:
    def test_unknown_nested_key(self, configured_project):
        from designkit.project.validator import validate_project
        from designkit.report import Severity
        write_config(configured_project, VALID_CONFIG.replace("  ui_library: shadcn\n", "  ui_library: shadcn\n  theme: dark\n"))
        (issue,) = validate_project(configured_project).issues
        assert (issue.code, issue.path, issue.severity) == ("unknown-key", "stack.theme", Severity.MEDIUM)
        assert issue.fix.path == "stack.theme"

    def test_non_string_enum(self, configured_project):
        from designkit.project.validator import validate_project
        write_config(configured_project, VALID_CONFIG.replace("framework: next", "framework: 3"))
        (issue,) = validate_project(configured_project).issues
        assert issue.code == "invalid-type"
        assert issue.message == "expected a string, got int"

    def test_blank_name(self, configured_project):
        from designkit.project.validator import validate_project
        write_config(configured_project, VALID_CONFIG.replace("name: acme-web", "name: '  '"))
        (issue,) = validate_project(configured_project).issues
        assert (issue.code, issue.path) == ("invalid-type", "project.name")

    def test_null_value_counts_as_missing(self, configured_project):
        from designkit.project.validator import validate_project
        write_config(configured_project, VALID_CONFIG.replace("type: application", "type:"))
        (issue,) = validate_project(configured_project).issues
        assert (issue.code, issue.path) == ("missing-field", "project.type")

    def test_non_string_component_name(self, configured_project):
        from designkit.project.validator import validate_project
        write_config(configured_project, VALID_CONFIG.replace("installed: [button]", "installed: [button, 7, 8]"))
        issues = validate_project(configured_project).issues
        assert [(i.code, i.path, i.message) for i in issues] == [
            ("invalid-type", "components.installed", "component names must be strings"),
        ]

    def test_string_list_gets_wrap_fix(self, configured_project):
        from designkit.project.validator import validate_project
        write_config(configured_project, VALID_CONFIG.replace("customizations: []", "customizations: dark-mode"))
        (issue,) = validate_project(configured_project).issues
        assert issue.fix.value == ["dark-mode"]

    def test_issues_follow_field_order(self, configured_project):
        from designkit.project.validator import validate_project
        text = (
            VALID_CONFIG
            .replace("e2e: playwright", "e2e: selenium")
            .replace("type: application", "type: blog")
        )
        write_config(configured_project, text)
        assert [i.path for i in validate_project(configured_project).issues] == [
            "project.type", "stack.testing.e2e",
        ]
