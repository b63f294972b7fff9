"""
designkit Router — turn a user request into a skill dispatch.

A request is either an explicit ``/skill-name [argument]`` command or free
text matched against trigger phrases. The chosen skill's agent manifest is
resolved and its knowledge documents are loaded for the current project.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from designkit.errors import UnknownSkillError
from designkit.knowledge import KnowledgeDocument, KnowledgeLoader, LoadContext
from designkit.project.validator import ConfigState, validate_project
from designkit.skills.matcher import TriggerMatcher
from designkit.skills.models import SkillArgument
from designkit.skills.registry import SkillRegistry

logger = logging.getLogger(__name__)

VIA_COMMAND = "command"
VIA_TRIGGER = "trigger"
VIA_FALLBACK = "fallback"


@dataclass
class Dispatch:
    """Everything the assistant runtime needs to run one skill."""

    skill_id: str
    agent_id: str
    via: str
    argument: Optional[str] = None
    matched_phrase: Optional[str] = None
    documents: List[KnowledgeDocument] = field(default_factory=list)
    missing_arguments: Tuple[SkillArgument, ...] = ()

    @property
    def document_paths(self) -> List[str]:
        return [d.path for d in self.documents]


class SkillRouter:
    """Routes requests to skills and loads their knowledge."""

    def __init__(
        self,
        registry: SkillRegistry,
        loader: KnowledgeLoader,
        fallback_skill: Optional[str] = "design-system",
        trace_logger=None,
        session_id: str = "",
    ):
        self.registry = registry
        self.loader = loader
        self.matcher = TriggerMatcher(registry)
        self.fallback_skill = fallback_skill
        self.trace_logger = trace_logger
        self.session_id = session_id

        if fallback_skill and fallback_skill not in registry:
            logger.warning("Fallback skill '%s' is not registered; unmatched requests will fail", fallback_skill)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, text: str) -> Tuple[str, str, Optional[str], Optional[str]]:
        """Pick a skill for *text*.

        Returns:
            (skill_id, via, argument, matched_phrase)

        Raises:
            UnknownSkillError: an unregistered ``/command``, or no match and
                no registered fallback skill.
        """
        command = self.matcher.parse_command(text)
        if command is not None:
            return command.skill_id, VIA_COMMAND, command.argument, None

        matches = self.matcher.match_all(text)
        if matches:
            best = matches[0]
            return best.skill_id, VIA_TRIGGER, None, best.phrase

        if self.fallback_skill and self.fallback_skill in self.registry:
            logger.info("No trigger matched; falling back to %s", self.fallback_skill)
            return self.fallback_skill, VIA_FALLBACK, None, None

        raise UnknownSkillError((text or "").strip() or "<empty request>")

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def context_for(
        self,
        text: str,
        skill_id: str,
        project_dir=None,
        features: Iterable[str] = (),
    ) -> LoadContext:
        """Load context from the project config; an unusable config is not fatal."""
        config = None
        if project_dir is not None:
            result = validate_project(project_dir)
            if result.state in (ConfigState.VALID, ConfigState.OUTDATED_SCHEMA):
                config = result.view
            elif result.state is ConfigState.MISSING:
                logger.info("No project configuration in %s; loading knowledge without project context", project_dir)
            else:
                logger.warning(
                    "Project configuration is %s; loading knowledge without project context",
                    result.state.value,
                )
        return LoadContext.from_config(
            config,
            features=features,
            request_text=text or "",
            project_dir=str(project_dir) if project_dir is not None else None,
            skill_id=skill_id,
        )

    # ------------------------------------------------------------------
    # Main routing
    # ------------------------------------------------------------------

    def route(
        self,
        text: str,
        project_dir=None,
        argument: Optional[str] = None,
        features: Iterable[str] = (),
    ) -> Dispatch:
        """Select a skill, resolve its agent and load the agent's knowledge.

        Raises:
            UnknownSkillError: nothing to dispatch to.
            KnowledgeFileNotFoundError: a required knowledge file is missing.
        """
        skill_id, via, parsed_argument, phrase = self.select(text)
        skill = self.registry.skill(skill_id)
        manifest = self.registry.resolve(skill_id)
        if argument is None:
            argument = parsed_argument

        context = self.context_for(text, skill_id, project_dir, features)
        documents = self.loader.load(manifest, context)

        missing = skill.required_arguments if argument is None else ()
        dispatch = Dispatch(
            skill_id=skill_id,
            agent_id=manifest.agent_id,
            via=via,
            argument=argument,
            matched_phrase=phrase,
            documents=documents,
            missing_arguments=missing,
        )
        logger.info(
            "Dispatch %s -> %s via %s (%d documents)",
            skill_id, manifest.agent_id, via, len(documents),
        )

        if self.trace_logger is not None:
            self.trace_logger.log(
                operation="dispatch",
                target=skill_id,
                args={
                    "text": text,
                    "via": via,
                    "agent": manifest.agent_id,
                    "documents": dispatch.document_paths,
                },
                result="ok",
                session_id=self.session_id,
            )
        return dispatch
