"""
Web API routes.
"""
from typing import Optional, List
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from ..deploy.models import DeployStatus, DeployTask, ProjectsConfig
from ..deploy.scheduler import DeployScheduler


class ProjectResponse(BaseModel):
    """Response model for project. Never carries the token or env values."""
    name: str
    provider: str
    commands: int
    env_keys: List[str]
    stop_on_failure: Optional[bool] = None


class CommandResultResponse(BaseModel):
    """Response model for a command result."""
    command: str
    returncode: int
    stdout: str
    stderr: str
    duration: float


class DeployResponse(BaseModel):
    """Response model for deploy task."""
    task_id: str
    project_name: str
    provider: str
    repository_identifier: str
    branch: str
    status: str
    repository_path: Optional[str] = None
    sync_outcome: Optional[str] = None
    error_message: Optional[str] = None
    results: List[CommandResultResponse] = []
    created_at: str
    started_at: Optional[str] = None
    finished_at: Optional[str] = None


def _deploy_response(task: DeployTask) -> DeployResponse:
    return DeployResponse(
        task_id=task.task_id,
        project_name=task.project_name,
        provider=task.provider.value,
        repository_identifier=task.repository_identifier,
        branch=task.branch,
        status=task.status.value,
        repository_path=task.repository_path,
        sync_outcome=task.sync_outcome.value if task.sync_outcome else None,
        error_message=task.error_message,
        results=[CommandResultResponse(**r.model_dump()) for r in task.results],
        created_at=task.created_at.isoformat(),
        started_at=task.started_at.isoformat() if task.started_at else None,
        finished_at=task.finished_at.isoformat() if task.finished_at else None,
    )


def _projects(request: Request) -> ProjectsConfig:
    return request.app.state.projects


def _scheduler(request: Request) -> DeployScheduler:
    return request.app.state.scheduler


def create_api_router() -> APIRouter:
    """Create API router. Projects and scheduler are read from app state."""

    router = APIRouter(prefix="/api")

    # Project endpoints

    @router.get("/projects", response_model=List[ProjectResponse])
    async def list_projects(request: Request):
        """List configured projects."""
        return [
            ProjectResponse(
                name=p.name,
                provider=p.provider.value,
                commands=len(p.commands),
                env_keys=sorted(p.env),
                stop_on_failure=p.stop_on_failure,
            )
            for p in _projects(request).projects
        ]

    # Deploy endpoints

    @router.get("/deploys", response_model=List[DeployResponse])
    async def list_deploys(
        request: Request,
        project: Optional[str] = Query(None),
        status: Optional[DeployStatus] = Query(None),
        limit: int = Query(100, ge=1, le=500)
    ):
        """List recent deploys with optional filters."""
        tasks = _scheduler(request).list_tasks(project_name=project, status=status, limit=limit)
        return [_deploy_response(t) for t in tasks]

    @router.get("/deploys/{task_id}", response_model=DeployResponse)
    async def get_deploy(task_id: str, request: Request):
        """Get deploy by ID."""
        task = _scheduler(request).get_task(task_id)
        if not task:
            raise HTTPException(status_code=404, detail="Deploy not found")

        return _deploy_response(task)

    return router
