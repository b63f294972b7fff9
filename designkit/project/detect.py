"""Best-effort stack detection from a project's package.json."""

import json
import logging
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

# (field, value, markers): the first matching entry per field wins.
# Order matters: remix and next projects also depend on vite/react tooling.
DEPENDENCY_MARKERS = (
    ("stack.framework", "next", ("next",)),
    ("stack.framework", "remix", ("@remix-run/react", "@remix-run/node", "@remix-run/dev")),
    ("stack.framework", "vite", ("vite",)),
    ("stack.ui_library", "headlessui", ("@headlessui/react",)),
    ("stack.ui_library", "radix", ("@radix-ui/react-slot", "@radix-ui/react-dialog", "@radix-ui/themes")),
    ("stack.state_management", "zustand", ("zustand",)),
    ("stack.state_management", "redux", ("@reduxjs/toolkit", "redux")),
    ("stack.state_management", "jotai", ("jotai",)),
    ("stack.testing.unit", "vitest", ("vitest",)),
    ("stack.testing.unit", "jest", ("jest",)),
    ("stack.testing.e2e", "playwright", ("@playwright/test", "playwright")),
    ("stack.testing.e2e", "cypress", ("cypress",)),
)


def read_package_json(project_root) -> dict:
    path = Path(project_root) / "package.json"
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Cannot read %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def detect_stack(project_root) -> Dict[str, str]:
    """Guess config values (``{dotted path: value}``) for a project.

    Only fields with clear evidence are returned; ``project.type`` is never
    guessed.
    """
    root = Path(project_root)
    package = read_package_json(root)

    deps = set()
    for section in ("dependencies", "devDependencies", "peerDependencies"):
        block = package.get(section)
        if isinstance(block, dict):
            deps.update(block)

    detected: Dict[str, str] = {}
    name = package.get("name")
    if isinstance(name, str) and name.strip():
        detected["project.name"] = name.strip()

    # shadcn/ui is vendored source; its marker is components.json
    if (root / "components.json").is_file():
        detected["stack.ui_library"] = "shadcn"

    for path, value, markers in DEPENDENCY_MARKERS:
        if path in detected:
            continue
        if any(marker in deps for marker in markers):
            detected[path] = value

    if detected:
        logger.info("Detected from package.json: %s", detected)
    return detected
