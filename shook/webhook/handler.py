"""
Webhook request handler.
"""
from typing import Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from fastapi import Request

from ..exceptions import AuthenticationError, PayloadTooLargeError
from ..logger import TRACE, logger
from .models import GitProvider, WebhookEvent
from .parser import WebhookParser, WebhookParserFactory

if TYPE_CHECKING:
    from ..deploy.models import DeployTask, Project

DeployCallback = Callable[["Project", WebhookEvent], Awaitable[Optional["DeployTask"]]]


class WebhookHandler:
    """Handles incoming webhook requests."""

    def __init__(self, max_payload_size: int = 262_144):
        self.max_payload_size = max_payload_size
        self._parsers: Dict[GitProvider, WebhookParser] = {
            provider: WebhookParserFactory.create(provider) for provider in GitProvider
        }
        self._deploy_callbacks: list[DeployCallback] = []

    def on_deploy(self, callback: DeployCallback):
        """Register callback for events that pass the deploy policy."""
        self._deploy_callbacks.append(callback)

    def parser_for(self, provider: GitProvider) -> WebhookParser:
        return self._parsers[provider]

    async def handle_webhook(self, request: Request, project: "Project") -> dict:
        """
        Handle incoming webhook request.

        Args:
            request: FastAPI request object
            project: Project matched from the request path

        Returns:
            Response dict

        Raises:
            PayloadTooLargeError: If the body exceeds the size limit
            AuthenticationError: If the token or signature does not verify
            PayloadDecodeError: If the body is not a valid payload
        """
        # Raw body is needed as-is for signature verification
        body = await self._read_body(request)

        parser = self.parser_for(project.provider)
        signature = request.headers.get(parser.signature_header)

        if not parser.verify_signature(body, signature, project.token):
            logger.warning(
                f"{parser.signature_header} verification failed for project {project.name}"
            )
            raise AuthenticationError(
                "Invalid webhook signature",
                details={"project": project.name},
            )
        logger.debug(f"{parser.signature_header} header verified for project {project.name}")

        logger.log(TRACE, f"Payload for project {project.name}: {body.decode(errors='replace')}")
        event = parser.parse(body)
        parser.dump(event)

        return await self._dispatch(project, parser, event)

    async def handle_trigger(self, project: "Project", path: str, repo: str) -> Optional[dict]:
        """
        Handle a manual trigger by synthesizing a merged event.

        Returns:
            Response dict, or None if the event did not pass the deploy policy
        """
        parser = self.parser_for(project.provider)
        logger.debug(f"Trigger for project {project.name}: path={path} repo={repo}")

        event = parser.parse_payload(parser.synthesize_merge(path, repo))
        parser.dump(event)

        response = await self._dispatch(project, parser, event)
        if not response["deploy"]:
            return None
        return response

    async def _dispatch(self, project: "Project", parser: WebhookParser, event: WebhookEvent) -> dict:
        if not parser.should_deploy(event):
            logger.info(
                f"Event for {project.name} ignored: action={event.action} "
                f"target_branch={event.target_branch} merge_state={event.merge_state}"
            )
            return {
                "status": "ignored",
                "project": project.name,
                "deploy": False,
            }

        logger.info(f"Deploying {project.name} from {event.repository_full_name}")

        task_id = None
        for callback in self._deploy_callbacks:
            try:
                task = await callback(project, event)
                if task is not None:
                    task_id = task.task_id
            except Exception as e:
                # Log error but don't fail the webhook
                logger.error(f"Error in deploy callback for {project.name}: {e}", exc_info=True)

        return {
            "status": "accepted",
            "project": project.name,
            "deploy": True,
            "task_id": task_id,
        }

    async def _read_body(self, request: Request) -> bytes:
        """Read the request body, refusing anything above the size limit."""
        body = bytearray()
        async for chunk in request.stream():
            # limit max size of in-memory payload
            if len(body) + len(chunk) > self.max_payload_size:
                raise PayloadTooLargeError(
                    f"Payload exceeds {self.max_payload_size} bytes"
                )
            body.extend(chunk)
        return bytes(body)
