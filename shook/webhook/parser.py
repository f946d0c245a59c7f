"""
Webhook payload parsers for different Git providers.
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, Type
import hmac
import hashlib

from pydantic import BaseModel, ValidationError

from ..exceptions import PayloadDecodeError
from ..logger import logger
from .models import (
    GitHubWebhook,
    GitLabWebhook,
    GitProvider,
    UNDEFINED,
    WebhookEvent,
)
from .policy import should_deploy


class WebhookParser(ABC):
    """Abstract base class for webhook parsers."""

    provider: GitProvider
    signature_header: str
    payload_model: Type[BaseModel]

    def parse(self, body: bytes) -> WebhookEvent:
        """
        Decode a raw request body into a unified WebhookEvent.

        Raises:
            PayloadDecodeError: If the body is not JSON or has the wrong shape
        """
        try:
            payload = self.payload_model.model_validate_json(body)
        except ValidationError as e:
            raise PayloadDecodeError(
                f"Invalid {self.provider.value} payload",
                details={"errors": e.error_count()},
            ) from e
        return payload.to_event()

    def parse_payload(self, payload: Dict[str, Any]) -> WebhookEvent:
        """Validate an already decoded payload into a unified WebhookEvent."""
        try:
            model = self.payload_model.model_validate(payload)
        except ValidationError as e:
            raise PayloadDecodeError(
                f"Invalid {self.provider.value} payload",
                details={"errors": e.error_count()},
            ) from e
        return model.to_event()

    @abstractmethod
    def verify_signature(self, payload_body: bytes, signature: Optional[str], secret: str) -> bool:
        """Verify webhook signature."""
        pass

    def should_deploy(self, event: WebhookEvent) -> bool:
        """Decide whether the event triggers a deployment."""
        return should_deploy(event)

    @abstractmethod
    def synthesize_merge(self, path: str, repo: str) -> Dict[str, Any]:
        """Build a canonical merged-into-main payload for manual triggers."""
        pass

    def dump(self, event: WebhookEvent):
        """Log the normalized event at debug level."""
        logger.debug(
            f"{self.provider.value} webhook event: kind={event.event_kind} "
            f"action={event.action}"
        )
        logger.debug(
            f"{self.provider.value} webhook repository: name={event.repository_identifier} "
            f"namespace={event.namespace} clone_url={event.clone_url} "
            f"ssh_url={event.ssh_url} default_branch={event.default_branch}"
        )
        logger.debug(
            f"{self.provider.value} webhook merge: target_branch={event.target_branch} "
            f"source_branch={event.source_branch} state={event.state} "
            f"merge_state={event.merge_state} merged={event.is_merged}"
        )
        if event.pr_number:
            logger.debug(
                f"{self.provider.value} webhook pull_request: number={event.pr_number} "
                f"title={event.pr_title} sender={event.sender}"
            )


class GitLabWebhookParser(WebhookParser):
    """Parser for GitLab merge request hooks."""

    provider = GitProvider.GITLAB
    signature_header = "X-Gitlab-Token"
    payload_model = GitLabWebhook

    def verify_signature(self, payload_body: bytes, signature: Optional[str], secret: str) -> bool:
        """Verify GitLab webhook token (X-Gitlab-Token)."""
        if not secret or signature is None:
            return False

        return hmac.compare_digest(signature.encode(), secret.encode())

    def synthesize_merge(self, path: str, repo: str) -> Dict[str, Any]:
        return {
            "event_type": "merge_request",
            "project": {
                "default_branch": "main",
                "git_http_url": repo,
                "path_with_namespace": path,
            },
            "repository": {
                "url": repo,
            },
            "object_attributes": {
                "action": "merge",
                "target_branch": "main",
                "source_branch": "staging",
                "state": "merged",
                "merge_status": "merged",
            },
        }


class GitHubWebhookParser(WebhookParser):
    """Parser for GitHub pull_request webhooks."""

    provider = GitProvider.GITHUB
    signature_header = "X-Hub-Signature-256"
    payload_model = GitHubWebhook

    SIGNATURE_PREFIX = "sha256="

    def verify_signature(self, payload_body: bytes, signature: Optional[str], secret: str) -> bool:
        """Verify GitHub webhook signature (X-Hub-Signature-256)."""
        if not secret or signature is None:
            return False

        if not signature.startswith(self.SIGNATURE_PREFIX):
            return False

        expected_signature = hmac.new(
            secret.encode(),
            payload_body,
            hashlib.sha256
        ).hexdigest()

        received = signature[len(self.SIGNATURE_PREFIX):]
        return hmac.compare_digest(received.encode(), expected_signature.encode())

    def synthesize_merge(self, path: str, repo: str) -> Dict[str, Any]:
        name = path.split("/")[-1] if path else UNDEFINED
        return {
            "action": "closed",
            "repository": {
                "name": name,
                "full_name": path,
                "clone_url": repo,
                "default_branch": "main",
            },
            "pull_request": {
                "state": "closed",
                "merged": True,
                "head": {"ref": "staging"},
                "base": {"ref": "main"},
            },
        }


class WebhookParserFactory:
    """Factory for creating webhook parsers."""

    _parsers = {
        GitProvider.GITLAB: GitLabWebhookParser,
        GitProvider.GITHUB: GitHubWebhookParser,
    }

    @classmethod
    def create(cls, provider: GitProvider) -> WebhookParser:
        """Create parser for given provider."""
        parser_class = cls._parsers.get(provider)
        if not parser_class:
            raise ValueError(f"Unsupported provider: {provider}")
        return parser_class()
