"""
designkit Skills System

Skills are markdown files whose YAML frontmatter names trigger phrases and one
agent; agents name the knowledge files they need. The markdown bodies are
instructions for the assistant runtime, not executable code.
"""

from designkit.skills.skill_loader import SkillLoader
from designkit.skills.registry import SkillRegistry
from designkit.skills.matcher import TriggerMatcher

__all__ = ["SkillLoader", "SkillRegistry", "TriggerMatcher"]
