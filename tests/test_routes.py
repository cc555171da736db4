from __future__ import annotations

import httpx
from fastapi.testclient import TestClient

from gitlab_service.config import AppConfig
from gitlab_service.gitlab.client import GitLabClient
from gitlab_service.gitlab.schemas import GitLabCommit
from gitlab_service.gitlab.schemas import GitLabPipeline
from gitlab_service.gitlab.source import StaticGitLabSource
from gitlab_service.main import build_app

CONFIG = AppConfig(
    gitlab_base_url="https://gitlab.example.com",
    gitlab_token="t",
    gitlab_project_id="1",
    jira_project="JIRA",
)


def _client(source: object) -> TestClient:
    return TestClient(build_app(config=CONFIG, source=source))


def test_health() -> None:
    client = _client(StaticGitLabSource())
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/").status_code == 200


def test_get_environments(mock_gitlab_client: GitLabClient) -> None:
    response = _client(mock_gitlab_client).get("/environments")
    assert response.status_code == 200
    names = [e["name"] for e in response.json()["environments"]]
    assert names == ["staging", "production", "review"]


def test_get_environment_details(mock_gitlab_client: GitLabClient) -> None:
    response = _client(mock_gitlab_client).get("/environments/1")
    assert response.status_code == 200
    body = response.json()
    assert body["environment_name"] == "staging"
    assert body["build_version"] == "1.2.3"
    assert body["pipeline_url"] == "https://gitlab.example.com/foo/bar/-/pipelines/101"


def test_get_environment_details_upstream_error(mock_gitlab_client: GitLabClient) -> None:
    response = _client(mock_gitlab_client).get("/environments/999")
    assert response.status_code == 502
    assert "404 Environment Not Found" in response.json()["error"]


def test_get_commits_in_build(mock_gitlab_client: GitLabClient) -> None:
    response = _client(mock_gitlab_client).get("/commits/develop/sha-123")
    assert response.status_code == 200
    commits = response.json()["commits"]
    assert [c["id"] for c in commits] == ["sha-123", "commit-2"]
    assert commits[0]["issue_keys"] == ["JIRA-123"]
    assert commits[0]["author_name"] == "Test User"


def test_get_commits_in_build_not_found_is_error(mock_gitlab_client: GitLabClient) -> None:
    response = _client(mock_gitlab_client).get("/commits/develop/sha-121")
    assert response.status_code == 404
    body = response.json()
    assert set(body) == {"error"}
    assert body["error"].startswith("Failed to get commits for build sha-121: ")


def test_get_commits_in_build_ref_with_slash() -> None:
    def pipeline(pipeline_id: int, sha: str) -> GitLabPipeline:
        return GitLabPipeline(id=pipeline_id, sha=sha, ref="feature/x", web_url="u", created_at="t")

    def commit(sha: str, message: str) -> GitLabCommit:
        return GitLabCommit(id=sha, created_at="t", message=message, author_name="a", author_email="e", web_url="u")

    source = StaticGitLabSource(
        pipelines=[pipeline(2, "b"), pipeline(1, "a")],
        commits={"feature/x": [commit("b", "JIRA-7 done"), commit("a", "start")]},
    )
    response = _client(source).get("/commits/feature/x/b")
    assert response.status_code == 200
    assert [c["id"] for c in response.json()["commits"]] == ["b"]
    assert ("list_pipelines", "feature/x", 1, 100) in source.calls


def test_get_commits_in_build_blank_sha_is_bad_request() -> None:
    source = StaticGitLabSource()
    response = _client(source).get("/commits/develop/%20")
    assert response.status_code == 400
    assert response.json()["error"].endswith("sha is required")
    assert source.calls == []


def test_get_deploy_jobs(mock_gitlab_client: GitLabClient) -> None:
    response = _client(mock_gitlab_client).get("/pipelines/101/deploy-jobs")
    assert response.status_code == 200
    jobs = response.json()["deploy_jobs"]
    assert [j["id"] for j in jobs] == [201, 203]
    assert all(j["stage"] == "deploy" for j in jobs)


def test_get_deploy_jobs_empty(mock_gitlab_client: GitLabClient) -> None:
    response = _client(mock_gitlab_client).get("/pipelines/102/deploy-jobs")
    assert response.status_code == 200
    assert response.json() == {"deploy_jobs": []}


def test_trigger_deploy_job(mock_gitlab_client: GitLabClient) -> None:
    response = _client(mock_gitlab_client).post("/jobs/203/play")
    assert response.status_code == 200
    assert response.json()["status"] == "pending"


def test_trigger_deploy_job_rejected(mock_gitlab_client: GitLabClient) -> None:
    response = _client(mock_gitlab_client).post("/jobs/201/play")
    assert response.status_code == 502
    assert "400 Unplayable Job" in response.json()["error"]


def test_injected_source_creates_no_http_client(monkeypatch) -> None:
    def fail(*args: object, **kwargs: object) -> None:
        raise AssertionError("httpx.AsyncClient must not be created when a source is injected")

    monkeypatch.setattr(httpx, "AsyncClient", fail)
    app = build_app(config=CONFIG, source=StaticGitLabSource())
    assert app.title == "GitLab Build History"
