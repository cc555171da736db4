from __future__ import annotations

"""
上游数据源抽象。

当前提供：
- `GitLabSource` Protocol：业务逻辑只依赖这组方法（依赖倒置）
- `StaticGitLabSource`：内存实现，便于本地运行/单元测试

约定（调用方依赖）：
- `list_pipelines` / `list_commits` 按 GitLab 默认顺序返回：**新的在前**
- 页码从 1 开始；超出最后一页返回空列表
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from gitlab_service.errors import UpstreamError
from gitlab_service.gitlab.schemas import GitLabCommit
from gitlab_service.gitlab.schemas import GitLabEnvironment
from gitlab_service.gitlab.schemas import GitLabEnvironmentDetails
from gitlab_service.gitlab.schemas import GitLabJob
from gitlab_service.gitlab.schemas import GitLabPipeline
from gitlab_service.gitlab.schemas import GitLabTriggeredJob


class GitLabSource(Protocol):
    """GitLab 项目级只读/触发接口（真实实现见 `GitLabClient`）。"""

    async def list_environments(self) -> list[GitLabEnvironment]: ...

    async def get_environment(self, environment_id: str) -> GitLabEnvironmentDetails: ...

    async def get_job_trace(self, job_id: str) -> str: ...

    async def list_pipelines(self, ref: str, page: int, per_page: int) -> list[GitLabPipeline]: ...

    async def list_commits(self, ref: str, page: int, per_page: int) -> list[GitLabCommit]: ...

    async def list_pipeline_jobs(self, pipeline_id: str) -> list[GitLabJob]: ...

    async def play_job(self, job_id: str) -> GitLabTriggeredJob: ...


def _page(items: Sequence[object], page: int, per_page: int) -> list:
    start = (page - 1) * per_page
    return list(items[start : start + per_page])


def _not_found() -> UpstreamError:
    return UpstreamError(status_code=404, message="404 Not found")


@dataclass
class StaticGitLabSource:
    """
    内存数据源：只用于开发/测试。

    - pipelines/commits 会按 page/per_page 切片，模拟 GitLab 分页
    - commits 没有 ref 字段，所以按 ref 分组传入（`{ref: [commit, ...]}`）；未知 ref 返回空列表
    - 找不到的资源按 GitLab 的行为抛 404 `UpstreamError`
    - `calls` 记录每次调用（方法名 + 参数），测试里用来断言“有没有打上游”
    """

    environments: list[GitLabEnvironment] = field(default_factory=list)
    environment_details: Mapping[str, GitLabEnvironmentDetails] = field(default_factory=dict)
    traces: Mapping[str, str] = field(default_factory=dict)
    pipelines: list[GitLabPipeline] = field(default_factory=list)
    commits: Mapping[str, list[GitLabCommit]] = field(default_factory=dict)
    pipeline_jobs: Mapping[str, list[GitLabJob]] = field(default_factory=dict)
    playable_jobs: Mapping[str, GitLabTriggeredJob] = field(default_factory=dict)
    calls: list[tuple[object, ...]] = field(default_factory=list)

    async def list_environments(self) -> list[GitLabEnvironment]:
        self.calls.append(("list_environments",))
        return list(self.environments)

    async def get_environment(self, environment_id: str) -> GitLabEnvironmentDetails:
        self.calls.append(("get_environment", environment_id))
        if environment_id not in self.environment_details:
            raise _not_found()
        return self.environment_details[environment_id]

    async def get_job_trace(self, job_id: str) -> str:
        self.calls.append(("get_job_trace", job_id))
        if job_id not in self.traces:
            raise _not_found()
        return self.traces[job_id]

    async def list_pipelines(self, ref: str, page: int, per_page: int) -> list[GitLabPipeline]:
        self.calls.append(("list_pipelines", ref, page, per_page))
        return _page(items=[p for p in self.pipelines if p.ref == ref], page=page, per_page=per_page)

    async def list_commits(self, ref: str, page: int, per_page: int) -> list[GitLabCommit]:
        self.calls.append(("list_commits", ref, page, per_page))
        return _page(items=self.commits.get(ref, []), page=page, per_page=per_page)

    async def list_pipeline_jobs(self, pipeline_id: str) -> list[GitLabJob]:
        self.calls.append(("list_pipeline_jobs", pipeline_id))
        if pipeline_id not in self.pipeline_jobs:
            raise _not_found()
        return list(self.pipeline_jobs[pipeline_id])

    async def play_job(self, job_id: str) -> GitLabTriggeredJob:
        self.calls.append(("play_job", job_id))
        if job_id not in self.playable_jobs:
            raise _not_found()
        return self.playable_jobs[job_id]
