"""
Deploy policy: decides whether a normalized event triggers a deployment.

Comparisons are exact; no case folding and no branch aliases.
"""
from .models import GitProvider, WebhookEvent


TRUNK_BRANCH = "main"


def should_deploy_gitlab(target_branch: str, action: str, merge_status: str) -> bool:
    """Merge request merged into the trunk branch."""
    return target_branch == TRUNK_BRANCH and action == "merge" and merge_status == "merged"


def should_deploy_github(action: str, merged: bool, target_branch: str) -> bool:
    """Pull request closed by a merge into the trunk branch."""
    # GitHub sends "closed" when a pull request is merged
    return action == "closed" and merged is True and target_branch == TRUNK_BRANCH


def should_deploy(event: WebhookEvent) -> bool:
    """Apply the policy of the event's provider."""
    if event.provider == GitProvider.GITLAB:
        return should_deploy_gitlab(event.target_branch, event.action, event.merge_state)
    if event.provider == GitProvider.GITHUB:
        return should_deploy_github(event.action, event.is_merged, event.target_branch)
    return False
