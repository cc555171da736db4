"""
Build 领域模型（Pydantic）。

用途：
- 明确对外返回的数据结构（路由层直接 `model_dump()`）
- 和 GitLab 原始 schema 分开：这里只放调用方关心的字段 + 派生字段
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from gitlab_service.gitlab.schemas import GitLabCommit


class CommitRecord(GitLabCommit):
    """GitLab 提交 + 从 message 里提取出来的 issue keys（派生字段，不来自上游）。"""

    issue_keys: list[str] = Field(default_factory=list)


class JobRecord(BaseModel):
    """pipeline 里的单个 job（对外只暴露 deploy 阶段的）。"""

    id: int
    name: str
    status: str
    stage: str
    web_url: str
    finished_at: str | None = None


class DeploymentInfo(BaseModel):
    """环境最近一次部署的汇总视图：deployment + pipeline + job + BUILD_VERSION。"""

    environment_name: str
    deployment_date: str | None = None
    ref: str | None = None
    sha: str | None = None
    pipeline_id: int | None = None
    pipeline_url: str | None = None
    job_id: int | None = None
    job_url: str | None = None
    deploy_status: str | None = None
    build_version: str | None = None
