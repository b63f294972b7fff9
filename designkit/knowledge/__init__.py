"""designkit Knowledge — conditional predicates and the knowledge loader."""

from designkit.knowledge.predicates import (
    FeatureRequested,
    FrameworkIs,
    LoadContext,
    ProjectTypeIs,
)
from designkit.knowledge.loader import KnowledgeDocument, KnowledgeLoader

__all__ = [
    "FeatureRequested",
    "FrameworkIs",
    "KnowledgeDocument",
    "KnowledgeLoader",
    "LoadContext",
    "ProjectTypeIs",
]
