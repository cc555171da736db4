"""
HTTP 接入层（对外 API）。

职责：
- 把路由参数交给 `GitLabService`，不写业务逻辑
- 把业务错误翻译成 HTTP 状态码 + `{"error": "<操作失败>: <原因>"}`（只在这一层做）：
  - InvalidInputError -> 400
  - NotFoundError -> 404
  - UpstreamTimeoutError -> 504
  - 其他上游/解析错误 -> 502
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse

from gitlab_service.builds.service import GitLabService
from gitlab_service.errors import GitLabServiceError
from gitlab_service.errors import InvalidInputError
from gitlab_service.errors import NotFoundError
from gitlab_service.errors import UpstreamTimeoutError

logger = logging.getLogger(__name__)


class OperationFailedError(Exception):
    """某个对外操作失败：带上操作描述和原始业务错误，由 `register_error_handlers` 统一渲染。"""

    def __init__(self, message: str, cause: GitLabServiceError) -> None:
        super().__init__(f"{message}: {cause}")
        self.message = message
        self.cause = cause


def _status_code_for(exc: GitLabServiceError) -> int:
    if isinstance(exc, InvalidInputError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, UpstreamTimeoutError):
        return 504
    return 502


async def _operation_failed(request: Request, exc: OperationFailedError) -> JSONResponse:
    status_code = _status_code_for(exc=exc.cause)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    """把 `OperationFailedError` 渲染成 `{"error": ...}`。"""
    app.add_exception_handler(OperationFailedError, _operation_failed)


def build_gitlab_router(service: GitLabService) -> APIRouter:
    """创建对外路由（与 GitLab 上游操作一一对应）。"""
    router = APIRouter()

    @router.get("/environments")
    async def get_environments() -> dict[str, object]:
        try:
            environments = await service.get_environments()
        except GitLabServiceError as exc:
            raise OperationFailedError("Failed to get environments", exc) from exc
        return {"environments": [e.model_dump() for e in environments]}

    @router.get("/environments/{environment_id}")
    async def get_environment_details(environment_id: str) -> dict[str, object]:
        try:
            info = await service.get_environment_details(environment_id=environment_id)
        except GitLabServiceError as exc:
            raise OperationFailedError(f"Failed to get environment {environment_id}", exc) from exc
        return info.model_dump()

    # ref 可能带斜杠（feature/x），sha 永远是最后一段
    @router.get("/commits/{ref:path}/{sha}")
    async def get_commits_in_build(ref: str, sha: str) -> dict[str, object]:
        try:
            commits = await service.get_commits_in_build(ref=ref, sha=sha)
        except GitLabServiceError as exc:
            raise OperationFailedError(f"Failed to get commits for build {sha}", exc) from exc
        return {"commits": [c.model_dump() for c in commits]}

    @router.get("/pipelines/{pipeline_id}/deploy-jobs")
    async def get_deploy_jobs(pipeline_id: str) -> dict[str, object]:
        try:
            jobs = await service.get_deploy_jobs(pipeline_id=pipeline_id)
        except GitLabServiceError as exc:
            raise OperationFailedError(f"Failed to get deploy jobs for pipeline {pipeline_id}", exc) from exc
        return {"deploy_jobs": [j.model_dump() for j in jobs]}

    @router.post("/jobs/{job_id}/play")
    async def trigger_deploy_job(job_id: str) -> dict[str, object]:
        try:
            job = await service.trigger_deploy_job(job_id=job_id)
        except GitLabServiceError as exc:
            raise OperationFailedError(f"Failed to trigger deploy job {job_id}", exc) from exc
        return job.model_dump()

    return router
