"""
Project configuration and deploy task models.
"""
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..exceptions import ConfigurationError
from ..webhook.models import GitProvider


def _env_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Project(BaseModel):
    """A deployable project, loaded once from the projects file."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Unique project key")
    token: str = Field(..., repr=False, description="GitLab token or GitHub HMAC secret")
    provider: GitProvider = Field(GitProvider.GITLAB, description="Git provider type")
    env: Dict[str, str] = Field(default_factory=dict, description="Extra environment for commands")
    commands: List[str] = Field(default_factory=list, description="Shell commands, run in order")
    stop_on_failure: Optional[bool] = Field(
        None, description="Stop at the first failing command (None inherits the global setting)"
    )

    @field_validator("env", mode="before")
    @classmethod
    def _stringify_env(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            # YAML turns `PORT: 8080` into an int
            return {str(k): _env_value(v) for k, v in value.items()}
        return value


class ProjectsConfig(BaseModel):
    """Set of configured projects."""

    projects: List[Project] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> "ProjectsConfig":
        seen = set()
        for project in self.projects:
            if project.name in seen:
                raise ValueError(f"duplicate project name: {project.name}")
            seen.add(project.name)
        return self

    def get_project(self, name: str) -> Optional[Project]:
        """Look up a project by name."""
        for project in self.projects:
            if project.name == name:
                return project
        return None


def load_projects(path: Union[str, Path]) -> ProjectsConfig:
    """
    Load the projects file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated projects configuration

    Raises:
        ConfigurationError: If the file is missing, not YAML, or invalid
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Config file not found: {path}")
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}")

    if data is None:
        data = {}

    try:
        return ProjectsConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid config file {path}: {e}",
            details={"errors": e.error_count()},
        )


class DeployStatus(str, Enum):
    """Deploy execution status."""
    PENDING = "pending"
    SYNCING = "syncing"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class SyncOutcome(str, Enum):
    """What the repository sync did to the working copy."""
    CLONED = "cloned"
    UP_TO_DATE = "up_to_date"
    FAST_FORWARD = "fast_forward"


class SyncResult(BaseModel):
    """Result of a repository sync."""

    path: str
    outcome: SyncOutcome
    head: Optional[str] = None


class CommandResult(BaseModel):
    """Captured outcome of one deploy command."""

    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


class DeployTask(BaseModel):
    """One deployment triggered by an event."""

    task_id: str = Field(..., description="Unique task identifier")
    project_name: str = Field(..., description="Configured project name")
    provider: GitProvider = Field(..., description="Git provider type")
    repository_identifier: str = Field(..., description="Cache directory name")
    clone_url: str = Field(..., description="Repository clone URL")
    branch: str = Field(..., description="Branch the working copy tracks")

    status: DeployStatus = Field(DeployStatus.PENDING, description="Task status")
    repository_path: Optional[str] = None
    sync_outcome: Optional[SyncOutcome] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    error_message: Optional[str] = None
    results: List[CommandResult] = Field(default_factory=list)

    @property
    def is_finished(self) -> bool:
        return self.status in (DeployStatus.SUCCESS, DeployStatus.FAILED)
