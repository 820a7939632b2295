"""Tests for the PyGithub-backed forge against a fake client."""

import datetime

import pytest
from github.GithubException import (
    BadCredentialsException, GithubException, RateLimitExceededException,
)
from github.GithubObject import NotSet

from pystakk.forge import CreatePrParams, Forge, PrState
from pystakk.forge.github import GitHubForge, map_github_error
from pystakk.typing import (
    ForgeAuthError, ForgeConflictError, ForgeError, ForgeNotFoundError, ForgeRateLimitError,
)
from pystakk.tests.fake_pygithub import FakeGithub, FakeRepository


@pytest.fixture
def client() -> FakeGithub:
    return FakeGithub()


@pytest.fixture
def repo(client: FakeGithub) -> FakeRepository:
    return client.add_repo("acme/widgets", default_branch="trunk")


@pytest.fixture
def forge(client: FakeGithub, repo: FakeRepository) -> GitHubForge:
    return GitHubForge(client, "acme", "widgets")  # type: ignore[arg-type]


class TestQueries:
    def test_satisfies_protocol(self, forge: GitHubForge) -> None:
        assert isinstance(forge, Forge)

    def test_identity_and_default_branch(self, forge: GitHubForge) -> None:
        assert forge.get_authenticated_identity() == "octocat"
        assert forge.get_default_branch() == "trunk"

    def test_find_pr_filters_by_owner_and_head(self, forge: GitHubForge, repo: FakeRepository) -> None:
        repo.add_pull("other", "main")
        wanted = repo.add_pull("feat", "main")
        pr = forge.find_pr_by_head("feat")
        assert pr is not None
        assert pr.number == wanted.number
        assert pr.url == "https://github.com/acme/widgets/pull/2"
        assert pr.state == PrState.OPEN
        assert repo.pull_queries == [{"state": "all", "head": "acme:feat"}]

    def test_find_pr_none(self, forge: GitHubForge) -> None:
        assert forge.find_pr_by_head("feat") is None

    def test_open_pr_preferred(self, forge: GitHubForge, repo: FakeRepository) -> None:
        repo.add_pull("feat", "main", state="closed")
        repo.add_pull("feat", "main")
        pr = forge.find_pr_by_head("feat")
        assert pr is not None and pr.number == 2

    def test_merged_state(self, forge: GitHubForge, repo: FakeRepository) -> None:
        repo.add_pull("feat", "main", state="closed",
                      merged_at=datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc))
        pr = forge.find_pr_by_head("feat")
        assert pr is not None and pr.is_merged

    def test_closed_state(self, forge: GitHubForge, repo: FakeRepository) -> None:
        repo.add_pull("feat", "main", state="closed")
        pr = forge.find_pr_by_head("feat")
        assert pr is not None and pr.state == PrState.CLOSED


class TestMutations:
    def test_create_pr(self, forge: GitHubForge, repo: FakeRepository) -> None:
        pr = forge.create_pr(CreatePrParams(title="Add feat", head="feat", base="main",
                                            body="Details", draft=True))
        assert pr.head_ref == "feat"
        assert pr.base_ref == "main"
        assert repo.created == [{"title": "Add feat", "body": "Details", "draft": True,
                                 "base": "main", "head": "feat"}]

    def test_create_pr_without_body(self, forge: GitHubForge, repo: FakeRepository) -> None:
        forge.create_pr(CreatePrParams(title="Add feat", head="feat", base="main"))
        assert repo.created[0]["body"] is NotSet

    def test_create_pr_recovers_existing(self, forge: GitHubForge, repo: FakeRepository) -> None:
        existing = repo.add_pull("feat", "main")
        repo.failures["create_pull"] = GithubException(422, {
            "message": "Validation Failed",
            "errors": [{"message": "A pull request already exists for acme:feat."}],
        }, None)
        pr = forge.create_pr(CreatePrParams(title="Add feat", head="feat", base="main"))
        assert pr.number == existing.number

    def test_create_pr_validation_error(self, forge: GitHubForge, repo: FakeRepository) -> None:
        repo.failures["create_pull"] = GithubException(422, {
            "message": "Validation Failed", "errors": [{"message": "No commits between main and feat"}],
        }, None)
        with pytest.raises(ForgeConflictError) as exc_info:
            forge.create_pr(CreatePrParams(title="Add feat", head="feat", base="main"))
        assert "No commits between" in str(exc_info.value)

    def test_update_base(self, forge: GitHubForge, repo: FakeRepository) -> None:
        pull = repo.add_pull("feat", "old")
        forge.update_pr_base(pull.number, "new")
        assert pull.base.ref == "new"

    def test_update_base_missing_pr(self, forge: GitHubForge) -> None:
        with pytest.raises(ForgeNotFoundError):
            forge.update_pr_base(42, "main")

    def test_comments(self, forge: GitHubForge, repo: FakeRepository) -> None:
        pull = repo.add_pull("feat", "main")
        created = forge.create_comment(pull.number, "hello")
        assert [c.body for c in forge.list_comments(pull.number)] == ["hello"]

        forge.update_comment(created.id, "bye")
        assert repo.comments[pull.number][0].body == "bye"

    def test_update_unseen_comment_patches_directly(self, forge: GitHubForge, client: FakeGithub) -> None:
        forge.update_comment(555, "bye")
        assert client.requester.requests == [{
            "verb": "PATCH",
            "url": "/repos/acme/widgets/issues/comments/555",
            "input": {"body": "bye"},
        }]


class TestErrors:
    def test_bad_credentials(self, forge: GitHubForge, client: FakeGithub) -> None:
        client.user_failure = BadCredentialsException(401, {"message": "Bad credentials"}, None)
        with pytest.raises(ForgeAuthError):
            forge.get_authenticated_identity()

    def test_missing_repository(self, client: FakeGithub) -> None:
        forge = GitHubForge(client, "acme", "nope")  # type: ignore[arg-type]
        with pytest.raises(ForgeNotFoundError):
            forge.get_default_branch()

    def test_rate_limit(self) -> None:
        error = map_github_error(RateLimitExceededException(
            403, {"message": "API rate limit exceeded"}, {"retry-after": "30"}))
        assert isinstance(error, ForgeRateLimitError)
        assert error.retry_after_seconds == 30

    def test_forbidden(self) -> None:
        error = map_github_error(GithubException(403, {"message": "Resource not accessible"}, None))
        assert isinstance(error, ForgeAuthError)

    def test_server_error(self) -> None:
        error = map_github_error(GithubException(502, {"message": "Bad Gateway"}, None))
        assert type(error) is ForgeError
        assert "502" in str(error)

    def test_query_errors_are_translated(self, forge: GitHubForge, repo: FakeRepository) -> None:
        repo.failures["get_pulls"] = GithubException(500, {"message": "boom"}, None)
        with pytest.raises(ForgeError):
            forge.find_pr_by_head("feat")
