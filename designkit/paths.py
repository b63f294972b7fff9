"""Well-known locations: the bundled plugin tree and per-project directories."""

import re
from pathlib import Path, PurePosixPath

# Per-project directory holding config.yaml and knowledge overrides.
PROJECT_DIRNAME = ".design-system"
CONFIG_FILENAME = "config.yaml"
OVERRIDES_DIRNAME = "overrides"

# Plugin tree installed as package data.
DEFAULT_PLUGIN_ROOT = Path(__file__).resolve().parent / "plugin"

_ROOT_PLACEHOLDER_RE = re.compile(r"^\$\{[A-Z_]*PLUGIN_ROOT\}/")


def project_dir_for(project_root) -> Path:
    return Path(project_root) / PROJECT_DIRNAME


def config_path_for(project_root) -> Path:
    return project_dir_for(project_root) / CONFIG_FILENAME


def overrides_dir_for(project_root) -> Path:
    return project_dir_for(project_root) / OVERRIDES_DIRNAME


def normalize_relative_path(raw: str) -> str:
    """Normalise a manifest path to a POSIX path relative to the plugin root.

    A leading ``${PLUGIN_ROOT}/`` placeholder is stripped; absolute paths and
    paths that climb out of the root are rejected with ValueError.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"Invalid knowledge path: {raw!r}")
    text = _ROOT_PLACEHOLDER_RE.sub("", raw.strip())
    path = PurePosixPath(text.replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts:
        raise ValueError(f"Knowledge path must stay inside the plugin root: {raw!r}")
    return str(path)
