"""
Repository sync and deploy command execution module.
"""
from .models import (
    CommandResult,
    DeployStatus,
    DeployTask,
    Project,
    ProjectsConfig,
    SyncOutcome,
    SyncResult,
    load_projects,
)
from .repository import RepositorySync
from .runner import CommandRunner
from .scheduler import DeployScheduler

__all__ = [
    "CommandResult",
    "DeployStatus",
    "DeployTask",
    "Project",
    "ProjectsConfig",
    "SyncOutcome",
    "SyncResult",
    "load_projects",
    "RepositorySync",
    "CommandRunner",
    "DeployScheduler",
]
