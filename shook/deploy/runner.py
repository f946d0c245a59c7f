"""
Sequential execution of a project's deploy commands.
"""
import os
import subprocess
import time
from typing import List, Optional

from ..logger import logger
from .models import CommandResult, Project


class CommandRunner:
    """Runs deploy commands one after another through bash."""

    SHELL = "bash"

    def __init__(self, stop_on_failure: bool = False, timeout: Optional[int] = None):
        """
        Initialize command runner.

        Args:
            stop_on_failure: Default policy after a non-zero exit
            timeout: Timeout in seconds for each command, None for no limit
        """
        self.stop_on_failure = stop_on_failure
        self.timeout = timeout

    def run(
        self,
        project: Project,
        cwd: Optional[str] = None,
        stop_on_failure: Optional[bool] = None,
    ) -> List[CommandResult]:
        """
        Run the project's commands in declared order.

        Args:
            project: Project whose commands and environment are used
            cwd: Working directory, normally the repository working copy
            stop_on_failure: Override for this run; falls back to the
                project's setting, then the runner default

        Returns:
            One result per command that was started
        """
        if stop_on_failure is None:
            stop_on_failure = project.stop_on_failure
        if stop_on_failure is None:
            stop_on_failure = self.stop_on_failure

        env = {**os.environ, **project.env}
        results: List[CommandResult] = []

        logger.debug(f"Running {len(project.commands)} commands for {project.name}")
        for command in project.commands:
            result = self._execute(command, env, cwd)
            results.append(result)

            logger.debug(f"[{project.name}] {command!r} exited with {result.returncode}")
            if result.stdout:
                logger.debug(f"[{project.name}] stdout: {result.stdout.rstrip()}")
            if result.stderr:
                logger.debug(f"[{project.name}] stderr: {result.stderr.rstrip()}")

            if not result.succeeded:
                logger.warning(
                    f"[{project.name}] command {command!r} failed with exit status {result.returncode}"
                )
                if stop_on_failure:
                    skipped = len(project.commands) - len(results)
                    if skipped:
                        logger.warning(f"[{project.name}] skipping {skipped} remaining commands")
                    break

        return results

    def _execute(self, command: str, env: dict, cwd: Optional[str]) -> CommandResult:
        started = time.monotonic()
        try:
            completed = subprocess.run(
                [self.SHELL, "-c", command],
                env=env,
                cwd=cwd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                command=command,
                returncode=-1,
                stdout=_text(e.stdout),
                stderr=_text(e.stderr) + f"\ncommand timed out after {self.timeout} seconds",
                duration=time.monotonic() - started,
            )
        except OSError as e:
            return CommandResult(
                command=command,
                returncode=127,
                stderr=str(e),
                duration=time.monotonic() - started,
            )

        return CommandResult(
            command=command,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            duration=time.monotonic() - started,
        )


def _text(output) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output
