"""
GitLab API response schemas（Pydantic）。

为什么要单独放 schema：
- GitLab 的 payload 结构复杂，直接用 dict 容易写错 key
- schema 校验失败会立刻暴露问题（比“默默 None”安全）

说明：
- 这里的字段只覆盖当前用到的子集，多余字段由 Pydantic 默认忽略
"""

from __future__ import annotations

from pydantic import BaseModel


class GitLabErrorBody(BaseModel):
    """GitLab 错误响应体：`message` 可能是字符串，也可能是对象（例如字段级校验错误）。"""

    message: object


class GitLabEnvironment(BaseModel):
    """GET /environments 列表项。"""

    id: int
    name: str


class GitLabPipelineRef(BaseModel):
    """deployable 里嵌套的 pipeline 子结构。"""

    id: int
    web_url: str


class GitLabDeployable(BaseModel):
    """last_deployment.deployable：真正执行部署的 job（通过 API 直接创建的 deployment 没有 job）。"""

    id: int
    web_url: str
    status: str
    pipeline: GitLabPipelineRef | None = None


class GitLabDeployment(BaseModel):
    """environment.last_deployment 子结构。"""

    created_at: str
    ref: str
    sha: str
    deployable: GitLabDeployable | None = None


class GitLabEnvironmentDetails(BaseModel):
    """GET /environments/:id 返回结构（从未部署过的环境没有 last_deployment）。"""

    id: int
    name: str
    external_url: str | None = None
    created_at: str | None = None
    last_deployment: GitLabDeployment | None = None


class GitLabPipeline(BaseModel):
    """GET /pipelines 列表项。"""

    id: int
    sha: str
    ref: str
    web_url: str
    created_at: str


class GitLabCommit(BaseModel):
    """GET /repository/commits 列表项。"""

    id: str
    created_at: str
    message: str
    author_name: str
    author_email: str
    web_url: str


class GitLabJob(BaseModel):
    """GET /pipelines/:id/jobs 列表项（未结束的 job 没有 finished_at）。"""

    id: int
    name: str
    status: str
    stage: str
    web_url: str
    finished_at: str | None = None


class GitLabTriggeredJob(BaseModel):
    """POST /jobs/:id/play 返回结构。"""

    id: int
    name: str
    stage: str
    status: str
    created_at: str
    web_url: str
