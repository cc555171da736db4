from __future__ import annotations

import pytest

from gitlab_service.builds.history import commits_between
from gitlab_service.builds.history import find_previous_sha
from gitlab_service.errors import NotFoundError
from gitlab_service.errors import SearchExhaustedError
from gitlab_service.gitlab.schemas import GitLabCommit
from gitlab_service.gitlab.schemas import GitLabPipeline
from gitlab_service.gitlab.source import StaticGitLabSource

pytestmark = pytest.mark.anyio


def _pipelines(*shas: str, ref: str = "develop") -> list[GitLabPipeline]:
    return [
        GitLabPipeline(
            id=1000 - i,
            sha=sha,
            ref=ref,
            web_url=f"https://gitlab.example.com/pipelines/{1000 - i}",
            created_at="2025-02-06T12:00:00Z",
        )
        for i, sha in enumerate(shas)
    ]


def _commit_log(*items: tuple[str, str], ref: str = "develop") -> dict[str, list[GitLabCommit]]:
    commits = [
        GitLabCommit(
            id=sha,
            created_at="2025-02-06T12:34:56Z",
            message=message,
            author_name="Test User",
            author_email="test@example.com",
            web_url=f"https://gitlab.example.com/commit/{sha}",
        )
        for sha, message in items
    ]
    return {ref: commits}


async def test_find_previous_sha_simple() -> None:
    source = StaticGitLabSource(pipelines=_pipelines("123", "122"))
    assert await find_previous_sha(source=source, ref="develop", current_sha="123") == "122"


async def test_find_previous_sha_skips_retriggered_pipelines() -> None:
    source = StaticGitLabSource(pipelines=_pipelines("124", "123", "123", "123", "122"))
    assert await find_previous_sha(source=source, ref="develop", current_sha="123") == "122"


async def test_find_previous_sha_crosses_pages() -> None:
    source = StaticGitLabSource(pipelines=_pipelines("125", "124", "123", "123", "122"))
    previous = await find_previous_sha(source=source, ref="develop", current_sha="123", per_page=2)
    assert previous == "122"
    assert [c[2] for c in source.calls] == [1, 2, 3]


async def test_find_previous_sha_filters_by_ref() -> None:
    source = StaticGitLabSource(pipelines=_pipelines("123", "999", ref="main") + _pipelines("123", "122"))
    assert await find_previous_sha(source=source, ref="develop", current_sha="123") == "122"


async def test_find_previous_sha_current_missing() -> None:
    source = StaticGitLabSource(pipelines=_pipelines("124", "123", "122"))
    with pytest.raises(NotFoundError):
        await find_previous_sha(source=source, ref="develop", current_sha="unknown-sha")


async def test_find_previous_sha_current_is_last() -> None:
    source = StaticGitLabSource(pipelines=_pipelines("124", "123", "123"))
    with pytest.raises(NotFoundError):
        await find_previous_sha(source=source, ref="develop", current_sha="123")


async def test_find_previous_sha_empty_listing() -> None:
    source = StaticGitLabSource()
    with pytest.raises(NotFoundError):
        await find_previous_sha(source=source, ref="develop", current_sha="123")


async def test_find_previous_sha_gives_up_after_max_pages() -> None:
    source = StaticGitLabSource(pipelines=_pipelines("125", "124", "123", "122"))
    with pytest.raises(SearchExhaustedError):
        await find_previous_sha(source=source, ref="develop", current_sha="123", max_pages=1, per_page=2)


async def test_commits_between_excludes_from_includes_to() -> None:
    source = StaticGitLabSource(commits=_commit_log(("c3", "JIRA-3"), ("c2", "JIRA-2"), ("c1", "JIRA-1")))
    commits = await commits_between(source=source, ref="develop", from_sha="c1", to_sha="c3", issue_project="JIRA")
    assert [c.id for c in commits] == ["c3", "c2"]


async def test_commits_between_skips_newer_commits_and_annotates() -> None:
    source = StaticGitLabSource(
        commits=_commit_log(
            ("c5", "Newer work JIRA-9"),
            ("c4", "Fix JIRA-1 and JIRA-1 again"),
            ("c3", "No key here"),
            ("c2", "Previous build JIRA-7"),
        )
    )
    commits = await commits_between(source=source, ref="develop", from_sha="c2", to_sha="c4", issue_project="JIRA")
    assert [c.id for c in commits] == ["c4", "c3"]
    assert commits[0].issue_keys == ["JIRA-1"]
    assert commits[1].issue_keys == []
    assert commits[0].author_email == "test@example.com"


async def test_commits_between_crosses_pages_and_stops_at_from() -> None:
    source = StaticGitLabSource(
        commits=_commit_log(("c5", ""), ("c4", ""), ("c3", ""), ("c2", ""), ("c1", ""), ("c0", ""))
    )
    commits = await commits_between(
        source=source, ref="develop", from_sha="c1", to_sha="c4", issue_project="JIRA", per_page=2
    )
    assert [c.id for c in commits] == ["c4", "c3", "c2"]
    # c1 在第 3 页，之后不再翻页
    assert [c[2] for c in source.calls] == [1, 2, 3]


async def test_commits_between_to_never_found() -> None:
    source = StaticGitLabSource(commits=_commit_log(("c3", ""), ("c2", ""), ("c1", "")))
    with pytest.raises(NotFoundError):
        await commits_between(source=source, ref="develop", from_sha="c1", to_sha="missing", issue_project="JIRA")


async def test_commits_between_swapped_shas() -> None:
    source = StaticGitLabSource(commits=_commit_log(("c3", ""), ("c2", ""), ("c1", "")))
    with pytest.raises(NotFoundError):
        await commits_between(source=source, ref="develop", from_sha="c3", to_sha="c1", issue_project="JIRA")


async def test_commits_between_from_missing_returns_tail() -> None:
    source = StaticGitLabSource(commits=_commit_log(("c3", ""), ("c2", ""), ("c1", "")))
    commits = await commits_between(source=source, ref="develop", from_sha="gone", to_sha="c2", issue_project="JIRA")
    assert [c.id for c in commits] == ["c2", "c1"]


async def test_commits_between_reads_only_requested_ref() -> None:
    source = StaticGitLabSource(commits=_commit_log(("c3", ""), ("c2", ""), ("c1", ""), ref="main"))
    with pytest.raises(NotFoundError):
        await commits_between(source=source, ref="develop", from_sha="c1", to_sha="c3", issue_project="JIRA")
    assert source.calls == [("list_commits", "develop", 1, 100)]


async def test_commits_between_gives_up_after_max_pages() -> None:
    source = StaticGitLabSource(commits=_commit_log(("c4", ""), ("c3", ""), ("c2", ""), ("c1", "")))
    with pytest.raises(SearchExhaustedError):
        await commits_between(
            source=source, ref="develop", from_sha="c1", to_sha="c4", issue_project="JIRA", max_pages=1, per_page=2
        )
