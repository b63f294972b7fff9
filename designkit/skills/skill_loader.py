"""
designkit skills — Markdown definition loader

Skills live in ``skills/<skill-id>/SKILL.md`` and agents in
``agents/<agent-id>.md`` under the plugin root. Both are markdown files with
YAML frontmatter; only the frontmatter carries structure, the body is prose
handed to the assistant runtime untouched.
"""

import logging
import re
from pathlib import Path
from typing import List, Tuple

import yaml

from designkit.errors import SkillDefinitionError
from designkit.knowledge.predicates import parse_predicate
from designkit.paths import normalize_relative_path
from designkit.skills.models import Agent, ConditionalFile, Skill, SkillArgument

logger = logging.getLogger(__name__)

SKILL_FILENAME = "SKILL.md"

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")


def parse_frontmatter(content: str) -> Tuple[dict, str]:
    """Split markdown content into (frontmatter mapping, body).

    Content without a frontmatter block yields ``({}, content)``.

    Raises:
        yaml.YAMLError: the frontmatter block is not valid YAML.
        ValueError: the frontmatter is valid YAML but not a mapping.
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return {}, content

    header = yaml.safe_load(match.group(1))
    body = content[match.end():].strip()
    if header is None:
        return {}, body
    if not isinstance(header, dict):
        raise ValueError("frontmatter must be a mapping")
    return header, body


def normalize_phrase(text: str) -> str:
    """Lower-case and collapse whitespace runs, for trigger comparison."""
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


class SkillLoader:
    """Load and parse skill and agent definition files."""

    def __init__(self, plugin_root):
        self.plugin_root = Path(plugin_root)
        self.skills_dir = self.plugin_root / "skills"
        self.agents_dir = self.plugin_root / "agents"

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    def list_skills(self) -> List[Skill]:
        """Load every ``skills/*/SKILL.md``, in directory-name order."""
        if not self.skills_dir.is_dir():
            logger.warning("Skills directory not found: %s", self.skills_dir)
            return []

        skills = []
        for skill_dir in sorted(p for p in self.skills_dir.iterdir() if p.is_dir()):
            skill_md = skill_dir / SKILL_FILENAME
            if not skill_md.is_file():
                logger.debug("Skipping %s (no %s)", skill_dir.name, SKILL_FILENAME)
                continue
            skills.append(self.load_skill(skill_md))
        return skills

    def load_skill(self, path: Path) -> Skill:
        """Parse one SKILL.md into a :class:`Skill`."""
        header = self._read_header(path)

        skill_id = str(header.get("name") or path.parent.name).strip()
        agent_id = header.get("agent")
        if not isinstance(agent_id, str) or not agent_id.strip():
            raise SkillDefinitionError(path, "skill must name exactly one agent ('agent: <id>')")

        triggers = header.get("triggers", [])
        if isinstance(triggers, str):
            triggers = self._split_items(triggers)
        if not isinstance(triggers, list):
            raise SkillDefinitionError(path, "'triggers' must be a list of phrases")

        return Skill(
            skill_id=skill_id,
            agent_id=agent_id.strip(),
            triggers=tuple(self._clean_triggers(triggers)),
            arguments=tuple(self._parse_arguments(path, header.get("arguments", []))),
            description=str(header.get("description", "") or ""),
            path=path,
        )

    def _clean_triggers(self, triggers: list) -> list:
        cleaned = []
        seen = set()
        for trigger in triggers:
            phrase = normalize_phrase(str(trigger))
            if not phrase or phrase in seen:
                continue
            seen.add(phrase)
            cleaned.append(phrase)
        return cleaned

    def _parse_arguments(self, path: Path, raw) -> list:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise SkillDefinitionError(path, "'arguments' must be a list")

        arguments = []
        for item in raw:
            if isinstance(item, str):
                item = {"name": item}
            if not isinstance(item, dict) or not item.get("name"):
                raise SkillDefinitionError(path, f"argument entry needs a name: {item!r}")
            arguments.append(SkillArgument(
                name=str(item["name"]),
                description=str(item.get("description", "") or ""),
                required=self._as_bool(item.get("required", False)),
            ))
        return arguments

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def list_agents(self) -> List[Agent]:
        """Load every ``agents/*.md`` (README.md excluded)."""
        if not self.agents_dir.is_dir():
            logger.warning("Agents directory not found: %s", self.agents_dir)
            return []

        agents = []
        for path in sorted(self.agents_dir.glob("*.md")):
            if path.name == "README.md":
                continue
            agents.append(self.load_agent(path))
        return agents

    def load_agent(self, path: Path) -> Agent:
        """Parse one agent definition into an :class:`Agent`."""
        header = self._read_header(path)
        agent_id = str(header.get("name") or path.stem).strip()

        knowledge = header.get("knowledge") or {}
        if not isinstance(knowledge, dict):
            raise SkillDefinitionError(path, "'knowledge' must be a mapping")

        primary_raw = knowledge.get("primary") or []
        if not isinstance(primary_raw, list):
            raise SkillDefinitionError(path, "'knowledge.primary' must be a list")
        try:
            primary = tuple(normalize_relative_path(p) for p in primary_raw)
        except ValueError as e:
            raise SkillDefinitionError(path, str(e)) from e

        return Agent(
            agent_id=agent_id,
            primary_files=primary,
            conditional_files=tuple(self._parse_conditional(path, knowledge.get("conditional") or [])),
            description=str(header.get("description", "") or ""),
            path=path,
        )

    def _parse_conditional(self, path: Path, raw) -> list:
        if not isinstance(raw, list):
            raise SkillDefinitionError(path, "'knowledge.conditional' must be a list")

        entries = []
        for item in raw:
            if not isinstance(item, dict) or "when" not in item or "path" not in item:
                raise SkillDefinitionError(
                    path, f"conditional entry needs 'when' and 'path': {item!r}"
                )
            try:
                predicate = parse_predicate(item["when"])
                file_path = normalize_relative_path(item["path"])
            except ValueError as e:
                raise SkillDefinitionError(path, str(e)) from e
            entries.append(ConditionalFile(
                predicate=predicate,
                path=file_path,
                description=str(item.get("description", "") or ""),
            ))
        return entries

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _read_header(self, path: Path) -> dict:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SkillDefinitionError(path, f"cannot read file: {e}") from e
        try:
            header, _ = parse_frontmatter(content)
        except (yaml.YAMLError, ValueError) as e:
            raise SkillDefinitionError(path, f"invalid frontmatter: {e}") from e
        if not header:
            raise SkillDefinitionError(path, "missing YAML frontmatter")
        return header

    def _split_items(self, text: str) -> list:
        """Split comma-separated text into cleaned items."""
        if not text:
            return []
        parts = [p.strip(" .:;\"'") for p in text.split(",")]
        return [p for p in parts if p]

    def _as_bool(self, value) -> bool:
        """Coerce YAML/frontmatter values into bool."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"true", "1", "yes", "y", "on"}
        return bool(value)
