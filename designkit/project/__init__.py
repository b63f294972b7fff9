from designkit.project.operations import diagnose, init_project, repair_project
from designkit.project.validator import ConfigState, load_project_config, validate_project

__all__ = [
    "ConfigState",
    "diagnose",
    "init_project",
    "load_project_config",
    "repair_project",
    "validate_project",
]
