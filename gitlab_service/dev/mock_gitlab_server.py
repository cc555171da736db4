"""
本地 Mock GitLab API server（覆盖本服务用到的全部上游接口）。

用途：
- 在没有真实 GitLab 的情况下，本地跑通：
  environments -> environment details + job trace -> pipelines/commits 分页 -> deploy jobs -> play
- 单元测试通过 `httpx.ASGITransport(app=app)` 直接挂载，不需要起端口

数据约定（ref=develop，新的在前）：
- pipelines: sha-124, sha-123, sha-123(重跑), sha-122, sha-121
- commits:   sha-124, sha-123, commit-2, sha-122, commit-1, sha-121
- job 201 的日志里有 BUILD_VERSION=1.2.3，job 202 的日志里没有

启动：
  python -m gitlab_service.dev.mock_gitlab_server
"""

from __future__ import annotations

import uvicorn
from fastapi import Depends
from fastapi import FastAPI
from fastapi import Header
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.responses import PlainTextResponse

API_PREFIX = "/api/v4/projects/{project_id}"
MOCK_TOKEN = "test-token"


class MockGitLabError(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _pipeline(pipeline_id: int, sha: str, created_at: str) -> dict[str, object]:
    return {
        "id": pipeline_id,
        "sha": sha,
        "ref": "develop",
        "web_url": f"https://gitlab.example.com/foo/bar/-/pipelines/{pipeline_id}",
        "created_at": created_at,
    }


def _commit(sha: str, message: str, author: str, created_at: str) -> dict[str, object]:
    return {
        "id": sha,
        "created_at": created_at,
        "message": message,
        "author_name": author,
        "author_email": f"{author.lower().replace(' ', '.')}@example.com",
        "web_url": f"https://gitlab.example.com/foo/bar/-/commit/{sha}",
    }


def _job(job_id: int, name: str, stage: str, status: str, finished_at: str | None) -> dict[str, object]:
    return {
        "id": job_id,
        "name": name,
        "stage": stage,
        "status": status,
        "web_url": f"https://gitlab.example.com/foo/bar/-/jobs/{job_id}",
        "finished_at": finished_at,
    }


ENVIRONMENTS: list[dict[str, object]] = [
    {"id": 1, "name": "staging"},
    {"id": 2, "name": "production"},
    {"id": 3, "name": "review"},
]

ENVIRONMENT_DETAILS: dict[int, dict[str, object]] = {
    1: {
        "id": 1,
        "name": "staging",
        "external_url": "https://staging.example.com",
        "created_at": "2025-01-10T08:00:00Z",
        "last_deployment": {
            "created_at": "2025-02-10T12:00:00Z",
            "ref": "develop",
            "sha": "sha-123",
            "deployable": {
                "id": 201,
                "web_url": "https://gitlab.example.com/foo/bar/-/jobs/201",
                "status": "success",
                "pipeline": {"id": 101, "web_url": "https://gitlab.example.com/foo/bar/-/pipelines/101"},
            },
        },
    },
    2: {
        "id": 2,
        "name": "production",
        "external_url": "https://example.com",
        "created_at": "2025-01-10T08:00:00Z",
        "last_deployment": {
            "created_at": "2025-02-11T09:30:00Z",
            "ref": "main",
            "sha": "sha-100",
            "deployable": {
                "id": 202,
                "web_url": "https://gitlab.example.com/foo/bar/-/jobs/202",
                "status": "success",
                "pipeline": {"id": 102, "web_url": "https://gitlab.example.com/foo/bar/-/pipelines/102"},
            },
        },
    },
    3: {"id": 3, "name": "review", "external_url": None, "created_at": "2025-02-01T08:00:00Z", "last_deployment": None},
}

JOB_TRACES: dict[int, str] = {
    201: (
        "Running with gitlab-runner 17.0.0\n"
        "$ ./scripts/deploy.sh\n"
        "  BUILD_VERSION=1.2.3\n"
        "Job succeeded\n"
    ),
    202: "Running with gitlab-runner 17.0.0\n$ ./scripts/deploy.sh\nJob succeeded\n",
}

PIPELINES: list[dict[str, object]] = [
    _pipeline(105, "sha-124", "2025-02-10T13:00:00Z"),
    _pipeline(104, "sha-123", "2025-02-10T12:30:00Z"),
    _pipeline(101, "sha-123", "2025-02-10T11:00:00Z"),
    _pipeline(100, "sha-122", "2025-02-09T18:00:00Z"),
    _pipeline(99, "sha-121", "2025-02-08T10:00:00Z"),
]

COMMITS: list[dict[str, object]] = [
    _commit("sha-124", "Bump deps", "Dev Tester", "2025-02-10T12:55:00Z"),
    _commit("sha-123", "Fix bug JIRA-123", "Test User", "2025-02-10T10:50:00Z"),
    _commit("commit-2", "Feature added JIRA-456, refs JIRA-456", "Dev Tester", "2025-02-10T09:40:00Z"),
    _commit("sha-122", "Release JIRA-100", "Test User", "2025-02-09T17:55:00Z"),
    _commit("commit-1", "Initial layout", "Test User", "2025-02-08T11:00:00Z"),
    _commit("sha-121", "Initial commit", "Test User", "2025-02-08T09:55:00Z"),
]

PIPELINE_JOBS: dict[int, list[dict[str, object]]] = {
    101: [
        _job(200, "build", "build", "success", "2025-02-10T11:10:00Z"),
        _job(201, "deploy to staging", "deploy", "success", "2025-02-10T11:20:00Z"),
        _job(203, "deploy to production", "deploy", "manual", None),
        _job(204, "notify", "post-deploy", "success", "2025-02-10T11:21:00Z"),
    ],
    102: [_job(300, "build", "build", "success", "2025-02-11T09:00:00Z")],
}

PLAYABLE_JOBS: set[int] = {203}


def _require_token(private_token: str | None = Header(default=None, alias="PRIVATE-TOKEN")) -> None:
    if private_token != MOCK_TOKEN:
        raise MockGitLabError(status_code=401, message="401 Unauthorized")


def _paginate(items: list[dict[str, object]], page: int, per_page: int) -> list[dict[str, object]]:
    start = (page - 1) * per_page
    return items[start : start + per_page]


app = FastAPI(title="Mock GitLab API", version="0.1.0", dependencies=[Depends(_require_token)])

_played: list[dict[str, object]] = []


@app.exception_handler(MockGitLabError)
async def _mock_gitlab_error(request: Request, exc: MockGitLabError) -> JSONResponse:
    _ = request
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.get(f"{API_PREFIX}/environments")
async def list_environments(project_id: int) -> list[dict[str, object]]:
    _ = project_id
    return ENVIRONMENTS


@app.get(f"{API_PREFIX}/environments/{{environment_id}}")
async def get_environment(project_id: int, environment_id: int) -> dict[str, object]:
    _ = project_id
    if environment_id not in ENVIRONMENT_DETAILS:
        raise MockGitLabError(status_code=404, message="404 Environment Not Found")
    return ENVIRONMENT_DETAILS[environment_id]


@app.get(f"{API_PREFIX}/jobs/{{job_id}}/trace", response_class=PlainTextResponse)
async def get_job_trace(project_id: int, job_id: int) -> str:
    _ = project_id
    if job_id not in JOB_TRACES:
        raise MockGitLabError(status_code=404, message="404 Job Not Found")
    return JOB_TRACES[job_id]


@app.get(f"{API_PREFIX}/pipelines")
async def list_pipelines(project_id: int, ref: str, per_page: int = 20, page: int = 1) -> list[dict[str, object]]:
    _ = project_id
    matching = [p for p in PIPELINES if p["ref"] == ref]
    return _paginate(items=matching, page=page, per_page=per_page)


@app.get(f"{API_PREFIX}/repository/commits")
async def list_commits(project_id: int, ref_name: str, per_page: int = 20, page: int = 1) -> list[dict[str, object]]:
    _ = project_id
    if ref_name != "develop":
        return []
    return _paginate(items=COMMITS, page=page, per_page=per_page)


@app.get(f"{API_PREFIX}/pipelines/{{pipeline_id}}/jobs")
async def list_pipeline_jobs(project_id: int, pipeline_id: int) -> list[dict[str, object]]:
    _ = project_id
    if pipeline_id not in PIPELINE_JOBS:
        raise MockGitLabError(status_code=404, message="404 Pipeline Not Found")
    return PIPELINE_JOBS[pipeline_id]


@app.post(f"{API_PREFIX}/jobs/{{job_id}}/play")
async def play_job(project_id: int, job_id: int) -> dict[str, object]:
    _ = project_id
    if job_id not in PLAYABLE_JOBS:
        raise MockGitLabError(status_code=400, message="400 Unplayable Job")
    job = {
        "id": job_id,
        "name": "deploy to production",
        "stage": "deploy",
        "status": "pending",
        "created_at": "2025-02-10T11:00:00Z",
        "web_url": f"https://gitlab.example.com/foo/bar/-/jobs/{job_id}",
    }
    _played.append(job)
    return job


@app.get("/__debug__/played")
async def debug_played() -> dict[str, object]:
    return {"count": len(_played), "jobs": _played}


def main() -> None:
    uvicorn.run(app, host="127.0.0.1", port=9002)


if __name__ == "__main__":
    main()
