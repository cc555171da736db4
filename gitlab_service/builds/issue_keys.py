from __future__ import annotations

import re
from collections.abc import Iterable


def extract_issue_keys(message: str, project: str) -> list[str]:
    """
    从一条 commit message 里提取 issue key（例如 `JIRA-123`）。

    - 整词匹配 `<PROJECT>-<数字>`，project 会做正则转义
    - 去重，保留首次出现的顺序
    """
    pattern = re.compile(rf"\b{re.escape(project)}-\d+\b")
    return list(dict.fromkeys(pattern.findall(message)))


def collect_issue_keys(messages: Iterable[str], project: str) -> list[str]:
    """多条 message 的 issue key 并集（去重，按首次出现顺序）。"""
    keys: dict[str, None] = {}
    for message in messages:
        for key in extract_issue_keys(message=message, project=project):
            keys[key] = None
    return list(keys)
