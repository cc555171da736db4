"""
GitLab Service（流程编排）。

关键约定：
- 每个对外操作 = 校验入参 -> 若干次**顺序**上游调用 -> 组装结果
- 入参缺失在打上游之前就拒绝（`InvalidInputError`）
- 每个操作都跑在一个 deadline 里（`anyio.fail_after`），到期直接失败，不重试
- 错误原样向上抛；唯一例外是 BUILD_VERSION 补充失败：记 warning，字段留空
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import anyio

from gitlab_service.builds.build_version import extract_build_version
from gitlab_service.builds.history import DEFAULT_MAX_PAGES
from gitlab_service.builds.history import commits_between
from gitlab_service.builds.history import find_previous_sha
from gitlab_service.builds.jobs import deploy_jobs_of
from gitlab_service.builds.models import CommitRecord
from gitlab_service.builds.models import DeploymentInfo
from gitlab_service.builds.models import JobRecord
from gitlab_service.errors import GitLabServiceError
from gitlab_service.errors import InvalidInputError
from gitlab_service.errors import UpstreamTimeoutError
from gitlab_service.gitlab.schemas import GitLabEnvironment
from gitlab_service.gitlab.schemas import GitLabEnvironmentDetails
from gitlab_service.gitlab.schemas import GitLabTriggeredJob
from gitlab_service.gitlab.source import GitLabSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _require(name: str, value: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        logger.warning(f"Missing required parameter: {name}")
        raise InvalidInputError(f"{name} is required")
    return cleaned


def to_deployment_info(details: GitLabEnvironmentDetails) -> DeploymentInfo:
    """把 GitLab environment 详情压平成 `DeploymentInfo`（不含 build_version）。"""
    deployment = details.last_deployment
    if deployment is None:
        return DeploymentInfo(environment_name=details.name)
    info = DeploymentInfo(
        environment_name=details.name,
        deployment_date=deployment.created_at,
        ref=deployment.ref,
        sha=deployment.sha,
    )
    deployable = deployment.deployable
    if deployable is None:
        return info
    info.job_id = deployable.id
    info.job_url = deployable.web_url
    info.deploy_status = deployable.status
    if deployable.pipeline is not None:
        info.pipeline_id = deployable.pipeline.id
        info.pipeline_url = deployable.pipeline.web_url
    return info


class GitLabService:
    """对外操作的唯一入口（路由层只调用这里）。"""

    def __init__(
        self,
        source: GitLabSource,
        issue_project: str,
        request_timeout_seconds: float,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        """
        - source: 上游数据源（生产用 `GitLabClient`，测试用 `StaticGitLabSource`）
        - issue_project: issue key 前缀（例如 `JIRA`）
        - request_timeout_seconds: 单个对外操作的 deadline
        - max_pages: 分页搜索的翻页上限
        """
        self._source = source
        self._issue_project = issue_project
        self._request_timeout_seconds = request_timeout_seconds
        self._max_pages = max_pages

    async def _run(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            with anyio.fail_after(self._request_timeout_seconds):
                return await call()
        except TimeoutError as exc:
            logger.error(f"{operation} exceeded deadline of {self._request_timeout_seconds}s")
            raise UpstreamTimeoutError(f"{operation} timed out after {self._request_timeout_seconds}s") from exc

    async def get_environments(self) -> list[GitLabEnvironment]:
        environments = await self._run("get_environments", self._source.list_environments)
        logger.info(f"Fetched {len(environments)} environment(s)")
        return environments

    async def get_environment_details(self, environment_id: str) -> DeploymentInfo:
        """
        获取环境最近一次部署的信息，并尽量补上 BUILD_VERSION。

        BUILD_VERSION 是“锦上添花”：取日志失败或日志里没有，都不影响整体结果。
        """
        environment_id = _require(name="environment_id", value=environment_id)

        async def call() -> DeploymentInfo:
            details = await self._source.get_environment(environment_id=environment_id)
            info = to_deployment_info(details=details)
            if info.job_id is None:
                logger.warning(f"Environment {environment_id} has no deploy job, skipping BUILD_VERSION")
                return info
            try:
                trace = await self._source.get_job_trace(job_id=str(info.job_id))
                info.build_version = extract_build_version(log_text=trace)
            except GitLabServiceError as exc:
                logger.warning(f"Cannot get BUILD_VERSION for job {info.job_id}, skipping: {exc}")
            return info

        info = await self._run("get_environment_details", call)
        logger.info(f"Fetched deployment info for environment {info.environment_name}")
        return info

    async def get_commits_in_build(self, ref: str, sha: str) -> list[CommitRecord]:
        """上一次构建 -> 本次构建之间的提交（不含上一次，含本次）。"""
        ref = _require(name="ref", value=ref)
        sha = _require(name="sha", value=sha)

        async def call() -> list[CommitRecord]:
            try:
                previous_sha = await find_previous_sha(
                    source=self._source,
                    ref=ref,
                    current_sha=sha,
                    max_pages=self._max_pages,
                )
            except GitLabServiceError as exc:
                logger.warning(f"Previous build not found for ref={ref}, maybe the first build on this ref: {exc}")
                raise
            return await commits_between(
                source=self._source,
                ref=ref,
                from_sha=previous_sha,
                to_sha=sha,
                issue_project=self._issue_project,
                max_pages=self._max_pages,
            )

        return await self._run("get_commits_in_build", call)

    async def get_deploy_jobs(self, pipeline_id: str) -> list[JobRecord]:
        pipeline_id = _require(name="pipeline_id", value=pipeline_id)

        async def call() -> list[JobRecord]:
            jobs = await self._source.list_pipeline_jobs(pipeline_id=pipeline_id)
            return deploy_jobs_of(jobs=jobs)

        deploy_jobs = await self._run("get_deploy_jobs", call)
        logger.info(f"Found {len(deploy_jobs)} deploy job(s) in pipeline {pipeline_id}")
        return deploy_jobs

    async def trigger_deploy_job(self, job_id: str) -> GitLabTriggeredJob:
        job_id = _require(name="job_id", value=job_id)

        async def call() -> GitLabTriggeredJob:
            return await self._source.play_job(job_id=job_id)

        return await self._run("trigger_deploy_job", call)
