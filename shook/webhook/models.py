"""
Webhook event models and abstractions.

Provider payloads are modelled as records of optional fields; accessors apply
the sentinel defaults when read, so an absent field and an explicitly empty
one stay distinguishable on the record itself.
"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, StrictBool


UNDEFINED = "undefined"


def _or_undefined(value: Optional[str]) -> str:
    return UNDEFINED if value is None else value


class GitProvider(str, Enum):
    """Supported Git providers."""
    GITLAB = "gitlab"
    GITHUB = "github"


class WebhookEvent(BaseModel):
    """Unified merge event model across different Git providers."""

    provider: GitProvider = Field(..., description="Git provider type")
    event_kind: str = Field(UNDEFINED, description="Provider event type")
    action: str = Field(UNDEFINED, description="Merge/pull request action")
    target_branch: str = Field(UNDEFINED, description="Branch merged into")
    source_branch: str = Field(UNDEFINED, description="Branch merged from")
    state: str = Field(UNDEFINED, description="Merge/pull request state")
    merge_state: str = Field(UNDEFINED, description="Merge status")
    is_merged: bool = Field(False, description="Whether the change was merged")
    repository_identifier: str = Field(UNDEFINED, description="Repository name, used as cache key")
    repository_full_name: str = Field(UNDEFINED, description="Repository path (namespace/name)")
    namespace: str = Field(UNDEFINED, description="Owner or group")
    default_branch: str = Field(UNDEFINED, description="Remote default branch")
    clone_url: str = Field(UNDEFINED, description="URL the working copy is cloned from")
    ssh_url: str = Field(UNDEFINED, description="SSH clone URL")
    http_url: str = Field(UNDEFINED, description="HTTP clone URL")
    pr_number: int = Field(0, description="Pull request number")
    pr_title: str = Field(UNDEFINED, description="Pull request title")
    sender: str = Field(UNDEFINED, description="User who triggered the event")


# GitLab payload records

class GitLabRepository(BaseModel):
    url: Optional[str] = None


class GitLabProject(BaseModel):
    default_branch: Optional[str] = None
    git_ssh_url: Optional[str] = None
    git_http_url: Optional[str] = None
    path_with_namespace: Optional[str] = None


class GitLabAttributes(BaseModel):
    action: Optional[str] = None
    target_branch: Optional[str] = None
    source_branch: Optional[str] = None
    state: Optional[str] = None
    merge_status: Optional[str] = None


class GitLabWebhook(BaseModel):
    """GitLab merge request hook payload."""

    event_type: Optional[str] = None
    project: GitLabProject = Field(default_factory=GitLabProject)
    repository: GitLabRepository = Field(default_factory=GitLabRepository)
    object_attributes: GitLabAttributes = Field(default_factory=GitLabAttributes)

    def event_kind(self) -> str:
        return _or_undefined(self.event_type)

    def default_branch(self) -> str:
        return _or_undefined(self.project.default_branch)

    def project_namespace(self) -> str:
        path = self.project.path_with_namespace
        if path is None:
            return UNDEFINED
        return path.split("/")[0]

    def project_name(self) -> str:
        path = self.project.path_with_namespace
        if path is None:
            return UNDEFINED
        return path.split("/")[-1]

    def path_with_namespace(self) -> str:
        return _or_undefined(self.project.path_with_namespace)

    def ssh_url(self) -> str:
        return _or_undefined(self.project.git_ssh_url)

    def http_url(self) -> str:
        return _or_undefined(self.project.git_http_url)

    def repository_url(self) -> str:
        return _or_undefined(self.repository.url)

    def action(self) -> str:
        return _or_undefined(self.object_attributes.action)

    def target_branch(self) -> str:
        return _or_undefined(self.object_attributes.target_branch)

    def source_branch(self) -> str:
        return _or_undefined(self.object_attributes.source_branch)

    def state(self) -> str:
        return _or_undefined(self.object_attributes.state)

    def merge_status(self) -> str:
        return _or_undefined(self.object_attributes.merge_status)

    def to_event(self) -> WebhookEvent:
        """Normalize into a provider-agnostic event."""
        return WebhookEvent(
            provider=GitProvider.GITLAB,
            event_kind=self.event_kind(),
            action=self.action(),
            target_branch=self.target_branch(),
            source_branch=self.source_branch(),
            state=self.state(),
            merge_state=self.merge_status(),
            is_merged=self.merge_status() == "merged",
            repository_identifier=self.project_name(),
            repository_full_name=self.path_with_namespace(),
            namespace=self.project_namespace(),
            default_branch=self.default_branch(),
            clone_url=self.repository_url(),
            ssh_url=self.ssh_url(),
            http_url=self.http_url(),
        )


# GitHub payload records

class GitHubUser(BaseModel):
    login: Optional[str] = None


class GitHubRepository(BaseModel):
    name: Optional[str] = None
    full_name: Optional[str] = None
    clone_url: Optional[str] = None
    ssh_url: Optional[str] = None
    default_branch: Optional[str] = None


class GitHubRef(BaseModel):
    ref: Optional[str] = None
    sha: Optional[str] = None


class GitHubPullRequest(BaseModel):
    number: Optional[int] = None
    state: Optional[str] = None
    title: Optional[str] = None
    merged: Optional[StrictBool] = None
    merged_at: Optional[str] = None
    head: GitHubRef = Field(default_factory=GitHubRef)
    base: GitHubRef = Field(default_factory=GitHubRef)


class GitHubWebhook(BaseModel):
    """GitHub pull_request event payload."""

    action: Optional[str] = None
    repository: GitHubRepository = Field(default_factory=GitHubRepository)
    pull_request: Optional[GitHubPullRequest] = None
    sender: Optional[GitHubUser] = None

    def get_action(self) -> str:
        return _or_undefined(self.action)

    def repository_name(self) -> str:
        return _or_undefined(self.repository.name)

    def repository_full_name(self) -> str:
        return _or_undefined(self.repository.full_name)

    def repository_owner(self) -> str:
        full_name = self.repository.full_name
        if full_name is None:
            return UNDEFINED
        return full_name.split("/")[0]

    def default_branch(self) -> str:
        if self.repository.default_branch is None:
            return "main"  # GitHub default
        return self.repository.default_branch

    def clone_url(self) -> str:
        return _or_undefined(self.repository.clone_url)

    def ssh_url(self) -> str:
        return _or_undefined(self.repository.ssh_url)

    def is_merged(self) -> bool:
        if self.pull_request is None:
            return False
        return self.pull_request.merged is True

    def pr_state(self) -> str:
        if self.pull_request is None:
            return UNDEFINED
        return _or_undefined(self.pull_request.state)

    def target_branch(self) -> str:
        if self.pull_request is None:
            return UNDEFINED
        return _or_undefined(self.pull_request.base.ref)

    def source_branch(self) -> str:
        if self.pull_request is None:
            return UNDEFINED
        return _or_undefined(self.pull_request.head.ref)

    def pr_number(self) -> int:
        if self.pull_request is None:
            return 0
        return self.pull_request.number or 0

    def pr_title(self) -> str:
        if self.pull_request is None:
            return UNDEFINED
        return _or_undefined(self.pull_request.title)

    def sender_login(self) -> str:
        if self.sender is None:
            return UNDEFINED
        return _or_undefined(self.sender.login)

    def to_event(self) -> WebhookEvent:
        """Normalize into a provider-agnostic event."""
        merged = self.is_merged()
        return WebhookEvent(
            provider=GitProvider.GITHUB,
            event_kind="pull_request" if self.pull_request is not None else UNDEFINED,
            action=self.get_action(),
            target_branch=self.target_branch(),
            source_branch=self.source_branch(),
            state=self.pr_state(),
            merge_state="merged" if merged else self.pr_state(),
            is_merged=merged,
            repository_identifier=self.repository_name(),
            repository_full_name=self.repository_full_name(),
            namespace=self.repository_owner(),
            default_branch=self.default_branch(),
            clone_url=self.clone_url(),
            ssh_url=self.ssh_url(),
            http_url=self.clone_url(),
            pr_number=self.pr_number(),
            pr_title=self.pr_title(),
            sender=self.sender_login(),
        )
