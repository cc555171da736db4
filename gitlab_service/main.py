"""
FastAPI 服务入口。

这里做三件事：
- 加载配置（严格校验环境变量）
- 组装外部依赖（HTTP Client / GitLabClient / GitLabService）
- 装配路由（health + GitLab 操作）

注意：
- 业务流程不写在这里（由 `builds/service.py` 负责）
- `httpx.AsyncClient` 会被复用（避免每个请求新建连接），应用关闭时释放
- 启动：`python -m gitlab_service.main`（uvicorn factory 模式，import 时不读环境变量）
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from gitlab_service.api.routes import build_gitlab_router
from gitlab_service.api.routes import register_error_handlers
from gitlab_service.builds.service import GitLabService
from gitlab_service.config import AppConfig
from gitlab_service.config import load_config_from_env
from gitlab_service.gitlab.client import GitLabClient
from gitlab_service.gitlab.source import GitLabSource

logger = logging.getLogger(__name__)


def build_app(config: AppConfig, source: GitLabSource | None = None) -> FastAPI:
    """
    创建并返回 FastAPI app（便于测试/复用）。

    - source 为空时创建共享的 `httpx.AsyncClient` + 真实 `GitLabClient`，应用关闭时释放
    - 测试可以注入 `StaticGitLabSource`，此时不创建任何 HTTP client
    """
    http_client: httpx.AsyncClient | None = None
    if source is None:
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(config.request_timeout_seconds))
        source = GitLabClient(
            project_api_url=config.project_api_url(),
            private_token=config.gitlab_token,
            http_client=http_client,
        )

    service = GitLabService(
        source=source,
        issue_project=config.jira_project,
        request_timeout_seconds=config.request_timeout_seconds,
        max_pages=config.max_pages,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if http_client is not None:
            await http_client.aclose()

    app = FastAPI(title="GitLab Build History", version="0.1.0", lifespan=lifespan)
    register_error_handlers(app)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"message": "gitlab-build-history is running"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """健康检查：用于 k8s / LB 探活。"""
        return {"status": "ok"}

    app.include_router(build_gitlab_router(service=service))
    return app


def create_app() -> FastAPI:
    """uvicorn factory：从进程环境变量加载配置。"""
    config = load_config_from_env(os.environ)
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Starting gitlab-build-history for project {config.gitlab_project_id}")
    return build_app(config=config)


def main() -> None:
    # 先校验一遍配置，缺变量时直接退出，而不是等 uvicorn 起来再报错
    config = load_config_from_env(os.environ)
    uvicorn.run("gitlab_service.main:create_app", factory=True, host="0.0.0.0", port=config.server_port)


if __name__ == "__main__":
    main()
