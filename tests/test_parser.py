"""Tests for provider payload decoding and request verification."""

from __future__ import annotations

import hashlib
import hmac
import json

import pytest

from shook.exceptions import PayloadDecodeError
from shook.webhook import UNDEFINED, GitProvider, WebhookParserFactory
from shook.webhook.parser import GitHubWebhookParser, GitLabWebhookParser


def _body(payload) -> bytes:
    return json.dumps(payload).encode()


class TestGitLabParser:
    """Tests for GitLab merge request decoding."""

    def setup_method(self) -> None:
        self.parser = GitLabWebhookParser()

    def test_parse_full_payload(self, gitlab_payload) -> None:
        event = self.parser.parse(_body(gitlab_payload))

        assert event.provider == GitProvider.GITLAB
        assert event.event_kind == "merge_request"
        assert event.repository_identifier == "repo"
        assert event.namespace == "user"
        assert event.repository_full_name == "user/repo"
        assert event.ssh_url == "git@example.com/user/repo.git"
        assert event.http_url == "https://example.com/user/repo.git"
        assert event.clone_url == "git@example.com/user/repo.git"
        assert event.default_branch == "main"
        assert event.action == "merge"
        assert event.target_branch == "main"
        assert event.source_branch == "staging"
        assert event.state == "merged"
        assert event.merge_state == "merged"

    def test_missing_action_defaults_to_sentinel(self, gitlab_payload) -> None:
        del gitlab_payload["object_attributes"]["action"]

        event = self.parser.parse(_body(gitlab_payload))

        assert event.action == UNDEFINED
        assert event.target_branch == "main"

    def test_missing_fields(self) -> None:
        payload = {
            "project": {},
            "repository": {"url": "git@example.com/user/repo.git"},
            "object_attributes": {"target_branch": "main", "source_branch": "staging"},
        }

        event = self.parser.parse(_body(payload))

        assert event.event_kind == UNDEFINED
        assert event.ssh_url == UNDEFINED
        assert event.http_url == UNDEFINED
        assert event.clone_url == "git@example.com/user/repo.git"
        assert event.action == UNDEFINED
        assert event.state == UNDEFINED
        assert event.merge_state == UNDEFINED
        assert event.repository_identifier == UNDEFINED
        assert event.namespace == UNDEFINED

    def test_empty_object_decodes(self) -> None:
        event = self.parser.parse(b"{}")

        assert event.action == UNDEFINED
        assert event.clone_url == UNDEFINED
        assert event.is_merged is False

    def test_nested_namespace(self, gitlab_payload) -> None:
        gitlab_payload["project"]["path_with_namespace"] = "group/subgroup/service"

        event = self.parser.parse(_body(gitlab_payload))

        assert event.namespace == "group"
        assert event.repository_identifier == "service"

    def test_unknown_fields_are_ignored(self, gitlab_payload) -> None:
        gitlab_payload["user"] = {"name": "someone"}
        gitlab_payload["object_attributes"]["iid"] = 7

        event = self.parser.parse(_body(gitlab_payload))

        assert event.action == "merge"

    @pytest.mark.parametrize(
        "body",
        [
            b"not json",
            b"",
            b"[1, 2, 3]",
            b'{"object_attributes": "merged"}',
            b'{"object_attributes": {"action": 5}}',
        ],
    )
    def test_malformed_payload_raises(self, body: bytes) -> None:
        with pytest.raises(PayloadDecodeError):
            self.parser.parse(body)

    def test_token_verification(self) -> None:
        assert self.parser.verify_signature(b"{}", "t1", "t1")
        assert not self.parser.verify_signature(b"{}", "T1", "t1")
        assert not self.parser.verify_signature(b"{}", "t1 ", "t1")
        assert not self.parser.verify_signature(b"{}", None, "t1")
        assert not self.parser.verify_signature(b"{}", "", "")


class TestGitHubParser:
    """Tests for GitHub pull request decoding."""

    SECRET = "test_secret"
    BODY = b"test payload"
    SIGNATURE = "sha256=fb9fb46a0a4c5edf7c9f524414be12d1eef6847c7b34dac98757920731e51169"

    def setup_method(self) -> None:
        self.parser = GitHubWebhookParser()

    def test_parse_pull_request_event(self, github_payload) -> None:
        event = self.parser.parse(_body(github_payload))

        assert event.provider == GitProvider.GITHUB
        assert event.event_kind == "pull_request"
        assert event.action == "closed"
        assert event.repository_identifier == "test-repo"
        assert event.repository_full_name == "user/test-repo"
        assert event.namespace == "user"
        assert event.clone_url == "https://github.com/user/test-repo.git"
        assert event.ssh_url == "git@github.com:user/test-repo.git"
        assert event.default_branch == "main"
        assert event.is_merged is True
        assert event.merge_state == "merged"
        assert event.state == "closed"
        assert event.target_branch == "main"
        assert event.source_branch == "feature-branch"
        assert event.pr_number == 123
        assert event.pr_title == "Test PR"
        assert event.sender == "testuser"

    def test_event_without_pull_request(self) -> None:
        payload = {"action": "created", "repository": {"name": "test-repo"}}

        event = self.parser.parse(_body(payload))

        assert event.is_merged is False
        assert event.event_kind == UNDEFINED
        assert event.target_branch == UNDEFINED
        assert event.source_branch == UNDEFINED
        assert event.pr_number == 0
        assert event.sender == UNDEFINED

    def test_default_branch_falls_back_to_main(self, github_payload) -> None:
        del github_payload["repository"]["default_branch"]

        event = self.parser.parse(_body(github_payload))

        assert event.default_branch == "main"

    def test_closed_without_merge(self, github_payload) -> None:
        github_payload["pull_request"]["merged"] = False

        event = self.parser.parse(_body(github_payload))

        assert event.is_merged is False
        assert event.merge_state == "closed"

    @pytest.mark.parametrize("merged", ["true", 1, "yes"])
    def test_merged_flag_must_be_boolean(self, github_payload, merged) -> None:
        github_payload["pull_request"]["merged"] = merged

        with pytest.raises(PayloadDecodeError):
            self.parser.parse(_body(github_payload))

    def test_known_signature(self) -> None:
        assert self.parser.verify_signature(self.BODY, self.SIGNATURE, self.SECRET)

    def test_signature_matches_hmac(self, github_payload) -> None:
        body = _body(github_payload)
        digest = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()

        assert self.parser.verify_signature(body, f"sha256={digest}", "s3cret")

    def test_altered_body_fails(self) -> None:
        assert not self.parser.verify_signature(b"test paylaod", self.SIGNATURE, self.SECRET)
        assert not self.parser.verify_signature(self.BODY + b" ", self.SIGNATURE, self.SECRET)

    def test_altered_secret_fails(self) -> None:
        assert not self.parser.verify_signature(self.BODY, self.SIGNATURE, "test_secreT")

    def test_invalid_signatures_fail(self) -> None:
        assert not self.parser.verify_signature(self.BODY, "sha256=invalid", self.SECRET)
        assert not self.parser.verify_signature(self.BODY, "invalid_format", self.SECRET)
        assert not self.parser.verify_signature(self.BODY, None, self.SECRET)

    def test_prefix_is_required(self) -> None:
        bare = self.SIGNATURE[len("sha256="):]
        assert not self.parser.verify_signature(self.BODY, bare, self.SECRET)
        assert not self.parser.verify_signature(self.BODY, "sha1=" + bare, self.SECRET)


class TestSynthesizedMerge:
    """Manual trigger payloads pass each provider's policy."""

    @pytest.mark.parametrize("provider", list(GitProvider))
    def test_synthesized_event_deploys(self, provider: GitProvider) -> None:
        parser = WebhookParserFactory.create(provider)

        event = parser.parse_payload(
            parser.synthesize_merge("user/webapp", "https://example.com/user/webapp.git")
        )

        assert parser.should_deploy(event)
        assert event.repository_identifier == "webapp"
        assert event.clone_url == "https://example.com/user/webapp.git"
        assert event.default_branch == "main"


@pytest.mark.parametrize("provider", list(GitProvider))
def test_parsers_apply_provider_policy(provider: GitProvider, monkeypatch) -> None:
    seen = []
    monkeypatch.setattr("shook.webhook.parser.should_deploy", lambda event: seen.append(event) or False)
    parser = WebhookParserFactory.create(provider)
    event = parser.parse_payload(parser.synthesize_merge("user/webapp", "https://example.com/user/webapp.git"))

    assert parser.should_deploy(event) is False
    assert seen == [event]


def test_factory_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError):
        WebhookParserFactory.create("gitea")
