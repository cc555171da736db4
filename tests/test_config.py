from __future__ import annotations

import pytest
from pydantic import ValidationError

from gitlab_service.config import load_config_from_env

REQUIRED = {
    "GITLAB_BASE_URL": "https://gitlab.example.com",
    "GITLAB_API_TOKEN": "dummy-token",
    "GITLAB_PROJECT_ID": "123",
    "JIRA_PROJECT": "JIRA",
}


def test_load_config_requires_gitlab_settings() -> None:
    with pytest.raises(ValueError):
        load_config_from_env(environ={})


def test_load_config_rejects_empty_value() -> None:
    environ = {**REQUIRED, "JIRA_PROJECT": ""}
    with pytest.raises(ValueError, match="JIRA_PROJECT"):
        load_config_from_env(environ=environ)


def test_load_config_defaults() -> None:
    cfg = load_config_from_env(environ=REQUIRED)
    assert cfg.gitlab_token == "dummy-token"
    assert cfg.gitlab_project_id == "123"
    assert cfg.jira_project == "JIRA"
    assert cfg.server_port == 8080
    assert cfg.request_timeout_seconds == 10.0
    assert cfg.max_pages == 50
    assert cfg.project_api_url() == "https://gitlab.example.com/api/v4/projects/123"


def test_load_config_optional_overrides() -> None:
    environ = {
        **REQUIRED,
        "GITLAB_API_PATH": "/gitlab/api/v4/projects",
        "SERVER_PORT": "9000",
        "REQUEST_TIMEOUT_SECONDS": "2.5",
        "MAX_PAGES": "3",
    }
    cfg = load_config_from_env(environ=environ)
    assert cfg.server_port == 9000
    assert cfg.request_timeout_seconds == 2.5
    assert cfg.max_pages == 3
    assert cfg.project_api_url() == "https://gitlab.example.com/gitlab/api/v4/projects/123"


def test_load_config_rejects_invalid_url() -> None:
    environ = {**REQUIRED, "GITLAB_BASE_URL": "not a url"}
    with pytest.raises(ValidationError):
        load_config_from_env(environ=environ)


def test_load_config_rejects_non_positive_max_pages() -> None:
    environ = {**REQUIRED, "MAX_PAGES": "0"}
    with pytest.raises(ValidationError):
        load_config_from_env(environ=environ)
