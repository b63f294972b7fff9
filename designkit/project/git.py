"""Working-tree checks before designkit writes a file."""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def has_uncommitted_changes(path) -> bool:
    """True if *path* is modified, staged or untracked in its git work tree.

    Outside a git repository (or without git installed) there is nothing to
    protect, so this returns False.
    """
    path = Path(path)
    if not path.exists():
        return False
    try:
        proc = subprocess.run(
            ["git", "status", "--porcelain", "--", path.name],
            cwd=str(path.parent),
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        logger.debug("git not installed; skipping uncommitted-change check")
        return False

    if proc.returncode != 0:
        logger.debug("Not a git work tree (%s): %s", path.parent, proc.stderr.strip())
        return False
    return bool(proc.stdout.strip())
