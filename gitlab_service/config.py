"""
应用配置加载。

设计目标：
- **严格**：缺少必要环境变量就直接报错（避免“看起来跑了其实没配置好”）
- **类型安全**：使用 Pydantic 校验 URL/数字等，减少运行时踩坑
- **可测试**：核心加载函数接收 `environ` 显式输入，便于单元测试
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, Field, HttpUrl


class AppConfig(BaseModel):
    """服务运行所需配置（GitLab 连接 + 行为参数）。"""

    gitlab_base_url: HttpUrl
    gitlab_api_path: str = "/api/v4/projects/"
    gitlab_token: str
    gitlab_project_id: str
    jira_project: str
    server_port: int = Field(default=8080, gt=0, lt=65536)
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    max_pages: int = Field(default=50, gt=0)
    log_level: str = "INFO"

    def project_api_url(self) -> str:
        """拼出项目级 API 前缀，例如 `https://gitlab.example.com/api/v4/projects/42`。"""
        base = str(self.gitlab_base_url).rstrip("/")
        path = "/" + self.gitlab_api_path.strip("/")
        return f"{base}{path}/{self.gitlab_project_id}"


def load_config_from_env(environ: Mapping[str, str]) -> AppConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`AppConfig`
    - **失败**：必填项缺失/为空则抛 `ValueError`；格式不合法由 Pydantic 抛 `ValidationError`
    """

    required_keys: tuple[str, ...] = (
        "GITLAB_BASE_URL",
        "GITLAB_API_TOKEN",
        "GITLAB_PROJECT_ID",
        "JIRA_PROJECT",
    )

    missing: list[str] = [key for key in required_keys if key not in environ or not environ[key]]
    if missing:
        raise ValueError(f"Missing required env vars: {', '.join(missing)}")

    optional: dict[str, str] = {}
    optional_keys: tuple[tuple[str, str], ...] = (
        ("GITLAB_API_PATH", "gitlab_api_path"),
        ("SERVER_PORT", "server_port"),
        ("REQUEST_TIMEOUT_SECONDS", "request_timeout_seconds"),
        ("MAX_PAGES", "max_pages"),
        ("LOG_LEVEL", "log_level"),
    )
    for env_key, field_name in optional_keys:
        value = environ.get(env_key)
        if value:
            optional[field_name] = value

    # 交给 Pydantic 做类型校验（例如 URL 合法性、端口范围）
    return AppConfig(
        gitlab_base_url=environ["GITLAB_BASE_URL"],
        gitlab_token=environ["GITLAB_API_TOKEN"],
        gitlab_project_id=environ["GITLAB_PROJECT_ID"],
        jira_project=environ["JIRA_PROJECT"],
        **optional,
    )
