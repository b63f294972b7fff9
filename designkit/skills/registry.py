"""
designkit Skills Registry — immutable skill → agent → knowledge manifest map.
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from designkit.errors import (
    RegistryError,
    TriggerCollisionError,
    UnknownAgentError,
    UnknownSkillError,
)
from designkit.report import Issue, Severity
from designkit.skills.models import Agent, AgentManifest, Skill
from designkit.skills.skill_loader import SkillLoader, normalize_phrase

logger = logging.getLogger(__name__)


class SkillRegistry:
    """Registry that indexes all skills and their agents.

    Built once (usually via :meth:`load`) and never mutated afterwards; pass
    it explicitly to the matcher, loader and router.
    """

    def __init__(
        self,
        skills: Iterable[Skill],
        agents: Iterable[Agent],
        plugin_root: Optional[Path] = None,
    ):
        self.plugin_root = Path(plugin_root) if plugin_root is not None else None

        agent_index: Dict[str, Agent] = {}
        for agent in agents:
            if agent.agent_id in agent_index:
                raise RegistryError(f"Duplicate agent id: {agent.agent_id}")
            agent_index[agent.agent_id] = agent

        skill_index: Dict[str, Skill] = {}
        for skill in skills:
            if skill.skill_id in skill_index:
                raise RegistryError(f"Duplicate skill id: {skill.skill_id}")
            if skill.agent_id not in agent_index:
                raise UnknownAgentError(skill.agent_id, skill.skill_id)
            skill_index[skill.skill_id] = skill

        self._check_trigger_collisions(skill_index.values())

        self._skills: Mapping[str, Skill] = MappingProxyType(skill_index)
        self._agents: Mapping[str, Agent] = MappingProxyType(agent_index)

        if self._skills:
            logger.info(
                "Skills registry: %d skills, %d agents indexed",
                len(self._skills), len(self._agents),
            )
        else:
            logger.info("Skills registry: no skills found")

    @classmethod
    def load(cls, plugin_root) -> "SkillRegistry":
        """Scan ``<plugin_root>/skills`` and ``<plugin_root>/agents``."""
        loader = SkillLoader(plugin_root)
        return cls(loader.list_skills(), loader.list_agents(), plugin_root=loader.plugin_root)

    @staticmethod
    def _check_trigger_collisions(skills: Iterable[Skill]):
        owners: Dict[str, str] = {}
        for skill in skills:
            for raw in skill.triggers:
                phrase = normalize_phrase(raw)
                other = owners.get(phrase)
                if other is not None and other != skill.skill_id:
                    raise TriggerCollisionError(phrase, [other, skill.skill_id])
                owners[phrase] = skill.skill_id

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __contains__(self, skill_id) -> bool:
        return skill_id in self._skills

    def __len__(self) -> int:
        return len(self._skills)

    def get(self, skill_id: str) -> Optional[Skill]:
        """Get a skill by id, or None."""
        return self._skills.get(skill_id)

    def skill(self, skill_id: str) -> Skill:
        skill = self._skills.get(skill_id)
        if skill is None:
            raise UnknownSkillError(skill_id)
        return skill

    def agent(self, agent_id: str) -> Agent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise UnknownAgentError(agent_id)
        return agent

    def skills(self) -> List[Skill]:
        """All skills in declaration order."""
        return list(self._skills.values())

    def agents(self) -> List[Agent]:
        return list(self._agents.values())

    def resolve(self, skill_id: str) -> AgentManifest:
        """Map a skill id to its agent and ordered knowledge manifest.

        Raises:
            UnknownSkillError: the skill is not registered.
        """
        skill = self.skill(skill_id)
        agent = self._agents[skill.agent_id]

        reference_dir = None
        if skill.path is not None and self.plugin_root is not None:
            try:
                reference_dir = skill.path.parent.relative_to(self.plugin_root).as_posix()
            except ValueError:
                reference_dir = None

        return AgentManifest(
            skill_id=skill.skill_id,
            agent_id=agent.agent_id,
            primary_files=agent.primary_files,
            conditional_files=agent.conditional_files,
            reference_dir=reference_dir,
        )

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def check_integrity(self) -> List[Issue]:
        """Report manifest paths that do not resolve and other loose ends."""
        issues: List[Issue] = []

        for skill in self._skills.values():
            if not skill.triggers:
                issues.append(Issue(
                    Severity.INFO, "no-triggers",
                    f"Skill '{skill.skill_id}' has no trigger phrases (reachable only as /{skill.skill_id})",
                    path=skill.skill_id,
                ))

        used_agents = {s.agent_id for s in self._skills.values()}
        for agent in self._agents.values():
            if agent.agent_id not in used_agents:
                issues.append(Issue(
                    Severity.INFO, "unused-agent",
                    f"Agent '{agent.agent_id}' is not referenced by any skill",
                    path=agent.agent_id,
                ))
            if not agent.primary_files:
                issues.append(Issue(
                    Severity.HIGH, "empty-manifest",
                    f"Agent '{agent.agent_id}' declares no primary knowledge files",
                    path=agent.agent_id,
                ))

            if self.plugin_root is None:
                continue
            for rel in agent.primary_files:
                if not (self.plugin_root / rel).is_file():
                    issues.append(Issue(
                        Severity.HIGH, "missing-knowledge-file",
                        f"Primary file of agent '{agent.agent_id}' not found: {rel}",
                        path=rel,
                    ))
            for conditional in agent.conditional_files:
                if not (self.plugin_root / conditional.path).is_file():
                    issues.append(Issue(
                        Severity.LOW, "missing-knowledge-file",
                        f"Conditional file of agent '{agent.agent_id}' not found: {conditional.path}",
                        path=conditional.path,
                    ))
        return issues
