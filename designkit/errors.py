"""
designkit error hierarchy.

Library code raises these; the CLI turns them into reports and exit codes.
"""

from typing import List, Optional


class DesignKitError(Exception):
    """Base class for every error raised by designkit."""


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------

class RegistryError(DesignKitError):
    """The skill/agent definitions could not be assembled into a registry."""


class SkillDefinitionError(RegistryError):
    """A skill or agent definition file is unreadable or incomplete."""

    def __init__(self, path, message: str):
        self.path = str(path)
        super().__init__(f"{path}: {message}")


class UnknownSkillError(RegistryError, KeyError):
    """No skill with the requested identifier (and no usable fallback)."""

    def __init__(self, skill_id: str):
        self.skill_id = skill_id
        super().__init__(skill_id)

    def __str__(self) -> str:
        return f"Unknown skill: {self.skill_id}"


class UnknownAgentError(RegistryError, KeyError):
    """A skill references an agent that is not defined."""

    def __init__(self, agent_id: str, skill_id: Optional[str] = None):
        self.agent_id = agent_id
        self.skill_id = skill_id
        super().__init__(agent_id)

    def __str__(self) -> str:
        if self.skill_id:
            return f"Skill '{self.skill_id}' references unknown agent '{self.agent_id}'"
        return f"Unknown agent: {self.agent_id}"


class TriggerCollisionError(RegistryError):
    """The same trigger phrase is declared by more than one skill."""

    def __init__(self, phrase: str, skill_ids: List[str]):
        self.phrase = phrase
        self.skill_ids = list(skill_ids)
        super().__init__(
            f"Trigger phrase '{phrase}' is declared by several skills: "
            + ", ".join(self.skill_ids)
        )


# ----------------------------------------------------------------------
# Knowledge
# ----------------------------------------------------------------------

class KnowledgeFileNotFoundError(DesignKitError, FileNotFoundError):
    """A required knowledge file exists at none of the resolution levels."""

    def __init__(self, path: str, searched: Optional[list] = None):
        self.path = path
        self.searched = [str(p) for p in (searched or [])]
        super().__init__(f"Required knowledge file not found: {path}")

    def __str__(self) -> str:
        return self.args[0]


# ----------------------------------------------------------------------
# Project configuration
# ----------------------------------------------------------------------

class ConfigError(DesignKitError):
    """Base class for project configuration failures."""


class ConfigNotFoundError(ConfigError, FileNotFoundError):
    """The project has no configuration record yet."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(
            f"No design-system configuration found at {path}; run /ds-init to create one"
        )

    def __str__(self) -> str:
        return self.args[0]


class ConfigParseError(ConfigError):
    """The configuration file is not structurally valid YAML / not a mapping."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.path = path
        self.line = line
        self.column = column
        location = ""
        if line is not None:
            location = f" (line {line}"
            location += f", column {column})" if column is not None else ")"
        super().__init__(f"{message}{location}")


class SchemaMismatchError(ConfigError):
    """The record parses but violates the required-field/enum schema."""

    def __init__(self, message: str, issues: Optional[list] = None):
        self.issues = list(issues or [])
        super().__init__(message)


class ReferenceInconsistencyError(ConfigError):
    """A cross-reference between the config and the file system does not hold."""

    def __init__(self, message: str, issues: Optional[list] = None):
        self.issues = list(issues or [])
        super().__init__(message)
