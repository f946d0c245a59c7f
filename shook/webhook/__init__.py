"""
Webhook handling module.
"""
from .models import WebhookEvent, GitProvider, GitLabWebhook, GitHubWebhook, UNDEFINED
from .parser import WebhookParser, WebhookParserFactory
from .policy import should_deploy, should_deploy_github, should_deploy_gitlab
from .handler import WebhookHandler

__all__ = [
    "WebhookEvent",
    "GitProvider",
    "GitLabWebhook",
    "GitHubWebhook",
    "UNDEFINED",
    "WebhookParser",
    "WebhookParserFactory",
    "should_deploy",
    "should_deploy_github",
    "should_deploy_gitlab",
    "WebhookHandler",
]
