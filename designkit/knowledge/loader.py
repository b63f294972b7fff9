"""
designkit Knowledge Loader — materialise the documents an agent needs.

Each logical document (a path relative to the plugin root) is looked up at
three levels, most specific first; the first hit wins and later levels are
not read:

1. project override   ``<project>/.design-system/overrides/<path>``
2. skill reference    ``<plugin_root>/skills/<skill>/references/<basename>``
3. core knowledge     ``<plugin_root>/<path>``
"""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from designkit.errors import KnowledgeFileNotFoundError
from designkit.knowledge.predicates import LoadContext
from designkit.paths import normalize_relative_path, overrides_dir_for
from designkit.skills.models import AgentManifest

logger = logging.getLogger(__name__)

LEVEL_PROJECT = "project"
LEVEL_SKILL = "skill"
LEVEL_CORE = "core"


@dataclass(frozen=True)
class KnowledgeDocument:
    path: str      # logical path as declared in the agent manifest
    source: Path   # file actually read
    level: str     # project | skill | core
    content: str
    required: bool = True


class KnowledgeLoader:
    """Resolve and read knowledge files relative to an explicit plugin root."""

    def __init__(self, plugin_root):
        self.plugin_root = Path(plugin_root)

    def candidates(
        self,
        path: str,
        manifest: Optional[AgentManifest] = None,
        context: Optional[LoadContext] = None,
    ) -> List[Tuple[str, Path]]:
        """Ordered (level, file) lookup locations for one logical document."""
        rel = normalize_relative_path(path)
        found = []
        if context is not None and context.project_dir:
            found.append((LEVEL_PROJECT, overrides_dir_for(context.project_dir) / rel))
        if manifest is not None and manifest.reference_dir:
            name = PurePosixPath(rel).name
            found.append((LEVEL_SKILL, self.plugin_root / manifest.reference_dir / "references" / name))
        found.append((LEVEL_CORE, self.plugin_root / rel))
        return found

    def resolve(
        self,
        path: str,
        manifest: Optional[AgentManifest] = None,
        context: Optional[LoadContext] = None,
    ) -> Optional[Tuple[str, Path]]:
        """First existing (level, file) for *path*, or None."""
        for level, candidate in self.candidates(path, manifest, context):
            if candidate.is_file():
                return level, candidate
        return None

    def load(
        self,
        manifest: AgentManifest,
        context: Optional[LoadContext] = None,
    ) -> List[KnowledgeDocument]:
        """Read the manifest's primary files, then conditional files whose
        predicate holds for *context*, in manifest order.

        Raises:
            KnowledgeFileNotFoundError: a primary file exists at no level.
        """
        context = context or LoadContext()
        documents: List[KnowledgeDocument] = []
        seen = set()

        for path in manifest.primary_files:
            if path in seen:
                continue
            doc = self._read(path, manifest, context, required=True)
            if doc is None:
                searched = [c for _, c in self.candidates(path, manifest, context)]
                logger.error("Required knowledge file missing for %s: %s", manifest.agent_id, path)
                raise KnowledgeFileNotFoundError(path, searched)
            seen.add(path)
            documents.append(doc)

        for conditional in manifest.conditional_files:
            if conditional.path in seen:
                continue
            if not conditional.predicate(context):
                logger.debug("Skipping %s (%s)", conditional.path, conditional.predicate_description)
                continue
            doc = self._read(conditional.path, manifest, context, required=False)
            if doc is None:
                logger.warning(
                    "Conditional knowledge file not found, skipping: %s (%s)",
                    conditional.path, conditional.predicate_description,
                )
                continue
            seen.add(conditional.path)
            documents.append(doc)

        logger.info(
            "Loaded %d knowledge documents for %s/%s",
            len(documents), manifest.skill_id, manifest.agent_id,
        )
        return documents

    def _read(self, path, manifest, context, required) -> Optional[KnowledgeDocument]:
        resolved = self.resolve(path, manifest, context)
        if resolved is None:
            return None
        level, source = resolved
        if level != LEVEL_CORE:
            logger.info("Using %s-level %s for %s", level, source, path)
        return KnowledgeDocument(
            path=path,
            source=source,
            level=level,
            content=source.read_text(encoding="utf-8"),
            required=required,
        )
