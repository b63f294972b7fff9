"""
Trigger matching — free text or ``/skill-name [argument]`` → skill id.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from designkit.errors import UnknownSkillError
from designkit.skills.registry import SkillRegistry
from designkit.skills.skill_loader import normalize_phrase

logger = logging.getLogger(__name__)

_COMMAND_RE = re.compile(r"^\s*/([A-Za-z0-9][\w-]*)(?:\s+(.*?))?\s*$", re.DOTALL)


@dataclass(frozen=True)
class TriggerMatch:
    skill_id: str
    phrase: str
    order: int  # declaration position of the skill in the registry


@dataclass(frozen=True)
class CommandInvocation:
    skill_id: str
    argument: Optional[str] = None


class TriggerMatcher:
    """Case-insensitive substring matcher over the registry's trigger phrases.

    When several phrases match, the longest phrase wins; equal lengths fall
    back to registry declaration order.
    """

    def __init__(self, registry: SkillRegistry):
        self.registry = registry
        self._phrases = []
        for order, skill in enumerate(registry.skills()):
            for raw in skill.triggers:
                phrase = normalize_phrase(raw)
                if phrase:
                    self._phrases.append((phrase, skill.skill_id, order))

    def match_all(self, text: str) -> List[TriggerMatch]:
        """Every skill whose triggers occur in *text*, best first.

        A skill appears once, with its longest matching phrase.
        """
        if not text:
            return []
        haystack = normalize_phrase(text)

        best = {}
        for phrase, skill_id, order in self._phrases:
            if phrase not in haystack:
                continue
            current = best.get(skill_id)
            if current is None or len(phrase) > len(current.phrase):
                best[skill_id] = TriggerMatch(skill_id, phrase, order)

        return sorted(best.values(), key=lambda m: (-len(m.phrase), m.order))

    def match(self, text: str) -> Optional[str]:
        """Best-matching skill id, or None when nothing matches."""
        matches = self.match_all(text)
        if not matches:
            return None
        if len(matches) > 1:
            logger.debug(
                "Trigger overlap for %r: %s -> picked %s",
                text, [m.skill_id for m in matches], matches[0].skill_id,
            )
        return matches[0].skill_id

    def parse_command(self, text: str) -> Optional[CommandInvocation]:
        """Parse ``/skill-name [argument]``; None if *text* is not a command.

        Raises:
            UnknownSkillError: the command names an unregistered skill.
        """
        match = _COMMAND_RE.match(text or "")
        if not match:
            return None
        skill_id = match.group(1)
        if skill_id not in self.registry:
            raise UnknownSkillError(skill_id)
        argument = match.group(2) or None
        return CommandInvocation(skill_id, argument)
