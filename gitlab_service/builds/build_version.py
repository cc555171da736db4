from __future__ import annotations

import re

from gitlab_service.errors import NotFoundError

_BUILD_VERSION_RE = re.compile(r"^\s*BUILD_VERSION[ \t]*=[ \t]*(\S+)", re.MULTILINE)


def extract_build_version(log_text: str) -> str:
    """在 job 日志里找第一行 `BUILD_VERSION=<token>`，返回 token；找不到抛 `NotFoundError`。"""
    match = _BUILD_VERSION_RE.search(log_text)
    if match is None:
        raise NotFoundError("BUILD_VERSION not found in job log")
    return match.group(1).strip()
