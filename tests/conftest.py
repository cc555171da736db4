from __future__ import annotations

import httpx
import pytest

from gitlab_service.dev import mock_gitlab_server
from gitlab_service.gitlab.client import GitLabClient

MOCK_PROJECT_API_URL = "http://mock-gitlab/api/v4/projects/1"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def mock_gitlab_client() -> GitLabClient:
    """挂在 Mock GitLab ASGI app 上的真实 client（不走网络）。"""
    http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=mock_gitlab_server.app))
    return GitLabClient(
        project_api_url=MOCK_PROJECT_API_URL,
        private_token=mock_gitlab_server.MOCK_TOKEN,
        http_client=http_client,
    )
