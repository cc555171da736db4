"""
GitLab API 客户端（外部系统连接器）。

约定：
- 这里只做“HTTP 调用 + 错误处理 + schema 校验”，不做业务决策。
- 只有 200 算成功；其他状态码一律抛 `UpstreamError`（message 取 GitLab JSON 的 `message`）。
- 发生错误时**直接抛错**，不要吞异常（便于定位与告警）。
- 不做重试：deadline 由调用方（service 层）控制。
"""

from __future__ import annotations

import json
import logging
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from gitlab_service.errors import ParseError
from gitlab_service.errors import UpstreamError
from gitlab_service.errors import UpstreamTimeoutError
from gitlab_service.errors import UpstreamUnavailableError
from gitlab_service.gitlab.schemas import GitLabCommit
from gitlab_service.gitlab.schemas import GitLabEnvironment
from gitlab_service.gitlab.schemas import GitLabEnvironmentDetails
from gitlab_service.gitlab.schemas import GitLabErrorBody
from gitlab_service.gitlab.schemas import GitLabJob
from gitlab_service.gitlab.schemas import GitLabPipeline
from gitlab_service.gitlab.schemas import GitLabTriggeredJob

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _validate_json(schema: type[ModelT], content: bytes, path: str) -> ModelT:
    try:
        return schema.model_validate_json(content)
    except ValidationError as exc:
        logger.error(f"Unexpected GitLab response for {path}: {exc}")
        raise ParseError(f"Cannot parse GitLab response for {path}: {exc}") from exc


def parse_gitlab_error(body: str) -> str:
    """
    从错误响应体里提取可读信息。

    - 空 body：返回固定提示
    - JSON 且带 `message`：返回 message（对象类型的 message 会被序列化成文本）
    - 其他：原样返回 body
    """
    if not body.strip():
        return "GitLab API returned an empty response"
    try:
        parsed = GitLabErrorBody.model_validate_json(body)
    except ValidationError:
        return body
    if isinstance(parsed.message, str):
        return parsed.message
    return json.dumps(parsed.message, ensure_ascii=False, sort_keys=True)


class GitLabClient:
    """单项目 GitLab API client，实现 `GitLabSource` 协议。"""

    def __init__(self, project_api_url: str, private_token: str, http_client: httpx.AsyncClient) -> None:
        """
        - project_api_url: 项目级 API 前缀（例如 `https://gitlab.example.com/api/v4/projects/42`）
        - private_token: PRIVATE-TOKEN（建议用专用机器人账号）
        - http_client: 复用的 httpx.AsyncClient
        """
        self._project_api_url = project_api_url.rstrip("/")
        self._private_token = private_token
        self._http_client = http_client
        logger.info(f"GitLab API endpoint: {self._project_api_url}")

    def _headers(self) -> dict[str, str]:
        """GitLab API 鉴权头。"""
        return {"PRIVATE-TOKEN": self._private_token, "Accept": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str | int] | None = None,
    ) -> httpx.Response:
        """
        发起一次请求，并把 httpx 的各类异常映射成本服务的错误类型。

        注意：超时是传输错误的子类，必须先判断。
        """
        url = f"{self._project_api_url}{path}"
        logger.debug(f"GitLab request: {method} {url} params={params}")
        try:
            response = await self._http_client.request(method, url, headers=self._headers(), params=params)
        except httpx.TimeoutException as exc:
            logger.error(f"GitLab request timed out: {method} {url}: {exc}")
            raise UpstreamTimeoutError(f"GitLab request timed out: {method} {path}") from exc
        except httpx.TransportError as exc:
            logger.error(f"GitLab transport error: {method} {url}: {exc}")
            raise UpstreamUnavailableError(f"GitLab is unavailable: {exc}") from exc

        if response.status_code != 200:
            logger.warning(f"GitLab returned status {response.status_code} for {method} {path}")
            raise UpstreamError(status_code=response.status_code, message=parse_gitlab_error(body=response.text))
        return response

    async def _get_list(
        self,
        path: str,
        schema: type[ModelT],
        params: dict[str, str | int] | None = None,
    ) -> list[ModelT]:
        response = await self._request("GET", path, params=params)
        try:
            data = response.json()
        except ValueError as exc:
            logger.error(f"Invalid JSON from GitLab for {path}")
            raise ParseError(f"GitLab returned invalid JSON for {path}") from exc
        if not isinstance(data, list):
            raise ParseError(f"Unexpected GitLab response shape for {path}: {data}")
        try:
            return [schema.model_validate(x) for x in data]
        except ValidationError as exc:
            logger.error(f"Unexpected GitLab response for {path}: {exc}")
            raise ParseError(f"Cannot parse GitLab response for {path}: {exc}") from exc

    async def list_environments(self) -> list[GitLabEnvironment]:
        """GitLab v4 API: GET /projects/:id/environments"""
        environments = await self._get_list("/environments", GitLabEnvironment)
        logger.info(f"Fetched {len(environments)} environment(s)")
        return environments

    async def get_environment(self, environment_id: str) -> GitLabEnvironmentDetails:
        """GitLab v4 API: GET /projects/:id/environments/:environment_id"""
        path = f"/environments/{environment_id}"
        response = await self._request("GET", path)
        return _validate_json(schema=GitLabEnvironmentDetails, content=response.content, path=path)

    async def get_job_trace(self, job_id: str) -> str:
        """
        拉取 job 的原始日志（纯文本，不是 JSON）。

        GitLab v4 API: GET /projects/:id/jobs/:job_id/trace
        """
        response = await self._request("GET", f"/jobs/{job_id}/trace")
        return response.text

    async def list_pipelines(self, ref: str, page: int, per_page: int) -> list[GitLabPipeline]:
        """GitLab v4 API: GET /projects/:id/pipelines?ref=&per_page=&page=（新的在前）"""
        return await self._get_list(
            "/pipelines",
            GitLabPipeline,
            params={"ref": ref, "per_page": per_page, "page": page},
        )

    async def list_commits(self, ref: str, page: int, per_page: int) -> list[GitLabCommit]:
        """GitLab v4 API: GET /projects/:id/repository/commits?ref_name=&per_page=&page=（新的在前）"""
        return await self._get_list(
            "/repository/commits",
            GitLabCommit,
            params={"ref_name": ref, "per_page": per_page, "page": page},
        )

    async def list_pipeline_jobs(self, pipeline_id: str) -> list[GitLabJob]:
        """GitLab v4 API: GET /projects/:id/pipelines/:pipeline_id/jobs"""
        return await self._get_list(f"/pipelines/{pipeline_id}/jobs", GitLabJob)

    async def play_job(self, job_id: str) -> GitLabTriggeredJob:
        """
        触发一个 manual job。

        GitLab v4 API: POST /projects/:id/jobs/:job_id/play
        """
        path = f"/jobs/{job_id}/play"
        response = await self._request("POST", path)
        job = _validate_json(schema=GitLabTriggeredJob, content=response.content, path=path)
        logger.info(f"Deploy job started: job_id={job_id}, status={job.status}")
        return job
