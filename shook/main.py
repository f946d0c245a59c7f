"""
Shook - Main application entry point.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .webhook import WebhookHandler
from .deploy import (
    CommandRunner,
    DeployScheduler,
    Project,
    ProjectsConfig,
    RepositorySync,
    load_projects,
)
from .exceptions import UnknownProjectError, WebhookError
from .web import create_api_router
from .config import settings
from .logger import logger


# Global instances
projects: ProjectsConfig = None
scheduler: DeployScheduler = None
webhook_handler: WebhookHandler = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global projects, scheduler, webhook_handler

    # Load projects
    projects = load_projects(settings.config_file)
    logger.info(f"Loaded {len(projects.projects)} projects from {settings.config_file}")

    # Initialize deploy scheduler
    repository_sync = RepositorySync(
        cache_root=settings.cache_root,
        git_timeout=settings.git_timeout,
    )
    runner = CommandRunner(
        stop_on_failure=settings.stop_on_failure,
        timeout=settings.command_timeout,
    )
    scheduler = DeployScheduler(
        repository_sync,
        runner,
        max_tasks=settings.task_max_memory,
    )
    logger.info(f"Deploy scheduler initialized (cache root {settings.cache_root})")

    # Initialize webhook handler
    webhook_handler = WebhookHandler(max_payload_size=settings.max_payload_size)
    webhook_handler.on_deploy(scheduler.schedule)
    logger.info("Webhook handler initialized")

    app.state.projects = projects
    app.state.scheduler = scheduler

    logger.info(
        f"Application started at {datetime.now(timezone.utc).isoformat()} "
        f"on {settings.host}:{settings.port}"
    )

    yield

    # Cleanup
    logger.info("Shutting down application...")

    running = scheduler.running_count()
    if running:
        logger.info(f"Waiting for {running} running deploys to complete...")
        if not await scheduler.wait_idle(settings.shutdown_grace_period):
            logger.warning(
                f"{scheduler.running_count()} deploys still running, forcing shutdown"
            )

    logger.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Webhook-driven deployment service",
    version=settings.app_version,
    lifespan=lifespan,
    debug=settings.debug
)
app.include_router(create_api_router())


@app.exception_handler(WebhookError)
async def webhook_error_handler(request: Request, exc: WebhookError):
    """Map request-time errors to their HTTP status."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def get_project(project_name: str) -> Project:
    """Look up a configured project or raise UnknownProjectError."""
    project = projects.get_project(project_name)
    if project is None:
        logger.warning(f"Request for unknown project {project_name}")
        raise UnknownProjectError(project_name)
    return project


# Webhook endpoints
@app.post("/webhook/{project_name}")
async def webhook(project_name: str, request: Request):
    """GitLab/GitHub webhook endpoint."""
    project = get_project(project_name)
    return await webhook_handler.handle_webhook(request, project)


@app.get("/trigger/{project_name}")
async def trigger(project_name: str, path: str, repo: str):
    """Manually trigger a deploy, bypassing webhook authentication."""
    project = get_project(project_name)
    response = await webhook_handler.handle_trigger(project, path, repo)
    if response is None:
        return JSONResponse(
            status_code=500,
            content={"status": "ignored", "project": project.name, "deploy": False},
        )
    return response


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "projects": len(projects.projects) if projects else 0,
        "running_deploys": scheduler.running_count() if scheduler else 0,
    }


if __name__ == "__main__":
    from .cli import main

    main()
