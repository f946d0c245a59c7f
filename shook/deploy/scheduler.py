"""
Deploy scheduler: runs repository sync and deploy commands in the background.
"""
import asyncio
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from ..exceptions import SyncError
from ..logger import logger
from ..webhook.models import WebhookEvent
from .models import DeployStatus, DeployTask, Project
from .repository import RepositorySync
from .runner import CommandRunner


class DeployScheduler:
    """Schedules deploy tasks and tracks them in memory."""

    def __init__(
        self,
        repository_sync: RepositorySync,
        runner: CommandRunner,
        max_tasks: int = 1000,
    ):
        """
        Initialize deploy scheduler.

        Args:
            repository_sync: Working copy manager
            runner: Deploy command runner
            max_tasks: Number of tasks to keep in memory
        """
        self.repository_sync = repository_sync
        self.runner = runner
        self.max_tasks = max_tasks

        # In-memory task tracking
        self.tasks: Dict[str, DeployTask] = {}

        # Keyed by ("project", name) and ("repository", identifier). A deploy
        # holds its project lock, then the lock of the cache directory it syncs.
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._background: Set[asyncio.Task] = set()

    def _lock_for(self, kind: str, name: str) -> asyncio.Lock:
        lock = self._locks.get((kind, name))
        if lock is None:
            lock = asyncio.Lock()
            self._locks[(kind, name)] = lock
        return lock

    async def schedule(self, project: Project, event: WebhookEvent) -> DeployTask:
        """
        Schedule a deployment for an accepted event.

        Returns as soon as the task is queued; the work runs detached.

        Args:
            project: Project to deploy
            event: Event that passed the deploy policy

        Returns:
            Created task
        """
        task_id = f"{project.name}_{uuid.uuid4().hex[:8]}"

        task = DeployTask(
            task_id=task_id,
            project_name=project.name,
            provider=event.provider,
            repository_identifier=event.repository_identifier,
            clone_url=event.clone_url,
            branch=event.default_branch,
            status=DeployStatus.PENDING,
        )

        self.tasks[task_id] = task
        self._cleanup_old_tasks()

        background = asyncio.create_task(self._execute_task(task, project))
        self._background.add(background)
        background.add_done_callback(self._background.discard)

        logger.info(f"Deploy {task_id} scheduled for {project.name}")
        return task

    async def _execute_task(self, task: DeployTask, project: Project):
        """Sync the working copy, then run the project's commands."""
        project_lock = self._lock_for("project", project.name)
        repository_lock = self._lock_for("repository", task.repository_identifier)
        if project_lock.locked() or repository_lock.locked():
            logger.info(
                f"Deploy {task.task_id} waiting for previous deploy of "
                f"{project.name} ({task.repository_identifier})"
            )

        async with project_lock, repository_lock:
            task.started_at = datetime.utcnow()
            try:
                task.status = DeployStatus.SYNCING
                sync_result = await asyncio.to_thread(
                    self.repository_sync.sync,
                    task.repository_identifier,
                    task.clone_url,
                    task.branch,
                )
                task.repository_path = sync_result.path
                task.sync_outcome = sync_result.outcome

                task.status = DeployStatus.RUNNING
                task.results = await asyncio.to_thread(
                    self.runner.run, project, sync_result.path
                )

                failed = [r for r in task.results if not r.succeeded]
                if failed:
                    task.status = DeployStatus.FAILED
                    task.error_message = f"{len(failed)} of {len(task.results)} commands failed"
                else:
                    task.status = DeployStatus.SUCCESS

            except SyncError as e:
                task.status = DeployStatus.FAILED
                task.error_message = str(e)
                logger.error(f"Deploy {task.task_id} failed to sync {task.repository_identifier}: {e}")

            except Exception as e:
                task.status = DeployStatus.FAILED
                task.error_message = str(e)
                logger.error(f"Deploy {task.task_id} failed: {e}", exc_info=True)

            finally:
                task.finished_at = datetime.utcnow()

        elapsed = (task.finished_at - task.started_at).total_seconds()
        logger.info(
            f"Deploy {task.task_id} finished with status {task.status.value} in {elapsed:.1f}s"
        )

    def _cleanup_old_tasks(self):
        """Drop the oldest finished tasks to bound memory."""
        if len(self.tasks) <= self.max_tasks:
            return

        # Get finished tasks sorted by finish time
        finished_tasks = [
            (task_id, task) for task_id, task in self.tasks.items()
            if task.is_finished and task.finished_at is not None
        ]
        finished_tasks.sort(key=lambda x: x[1].finished_at)

        to_remove = len(self.tasks) - self.max_tasks
        for task_id, _ in finished_tasks[:to_remove]:
            del self.tasks[task_id]

    def get_task(self, task_id: str) -> Optional[DeployTask]:
        """Get task by ID."""
        return self.tasks.get(task_id)

    def list_tasks(
        self,
        project_name: Optional[str] = None,
        status: Optional[DeployStatus] = None,
        limit: int = 100
    ) -> List[DeployTask]:
        """
        List tasks with optional filters, newest first.

        Args:
            project_name: Filter by project
            status: Filter by status
            limit: Maximum number of tasks to return
        """
        tasks = list(self.tasks.values())

        if project_name:
            tasks = [t for t in tasks if t.project_name == project_name]

        if status:
            tasks = [t for t in tasks if t.status == status]

        tasks.sort(key=lambda t: t.created_at, reverse=True)

        return tasks[:limit]

    def running_count(self) -> int:
        """Number of deploys not yet finished."""
        return sum(1 for task in self.tasks.values() if not task.is_finished)

    async def wait_idle(self, timeout: float) -> bool:
        """
        Wait for background deploys to finish.

        Returns:
            True if nothing is left running
        """
        pending = set(self._background)
        if not pending:
            return True
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        return not still_running
