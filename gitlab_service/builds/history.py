"""
Build history resolver（非 AI、纯确定性逻辑）。

职责：
- 找到同一 ref 上“上一次不同 SHA 的 pipeline”
- 取两个 SHA 之间的提交（不含 from，含 to），并标注 issue keys

前提：
- 数据源按 GitLab 默认顺序分页返回（新的在前），见 `GitLabSource`
- 翻页有上限 `max_pages`，超过抛 `SearchExhaustedError`，避免上游异常时请求无限拖长
"""

from __future__ import annotations

import logging

from gitlab_service.builds.issue_keys import extract_issue_keys
from gitlab_service.builds.models import CommitRecord
from gitlab_service.errors import NotFoundError
from gitlab_service.errors import SearchExhaustedError
from gitlab_service.gitlab.source import GitLabSource

logger = logging.getLogger(__name__)

PER_PAGE = 100
DEFAULT_MAX_PAGES = 50


async def find_previous_sha(
    source: GitLabSource,
    ref: str,
    current_sha: str,
    max_pages: int = DEFAULT_MAX_PAGES,
    per_page: int = PER_PAGE,
) -> str:
    """
    返回 `current_sha` 之前最近一次 pipeline 的 SHA（同一 ref）。

    - 同一个 SHA 可能有多次 pipeline（重跑），全部跳过
    - 从未见过 `current_sha`，或它后面没有别的 SHA：`NotFoundError`
    - 返回值永远不等于 `current_sha`
    """
    found_current = False
    for page in range(1, max_pages + 1):
        pipelines = await source.list_pipelines(ref=ref, page=page, per_page=per_page)
        logger.debug(f"Pipelines page {page} for ref={ref}: {len(pipelines)} record(s)")
        if not pipelines:
            raise NotFoundError(f"Previous pipeline SHA not found for ref={ref}, sha={current_sha}")

        for pipeline in pipelines:
            if pipeline.sha == current_sha:
                found_current = True
                continue
            if found_current:
                logger.info(f"Previous SHA for ref={ref}: {pipeline.sha}")
                return pipeline.sha

    raise SearchExhaustedError(what=f"Previous pipeline search for ref={ref}", max_pages=max_pages)


async def commits_between(
    source: GitLabSource,
    ref: str,
    from_sha: str,
    to_sha: str,
    issue_project: str,
    max_pages: int = DEFAULT_MAX_PAGES,
    per_page: int = PER_PAGE,
) -> list[CommitRecord]:
    """
    返回 `(from_sha, to_sha]` 区间内的提交，保持上游顺序（新的在前）。

    - 遇到 `to_sha` 开始收集，遇到 `from_sha` 立刻停止（from 不收）
    - 结果为空视为错误（首次构建、或 SHA 传反/不存在）：`NotFoundError`
    """
    collected: list[CommitRecord] = []
    within_range = False
    for page in range(1, max_pages + 1):
        commits = await source.list_commits(ref=ref, page=page, per_page=per_page)
        logger.debug(f"Commits page {page} for ref={ref}: {len(commits)} record(s)")
        if not commits:
            return _non_empty(commits=collected, from_sha=from_sha, to_sha=to_sha)

        for commit in commits:
            if commit.id == to_sha:
                within_range = True
            if commit.id == from_sha:
                logger.info(f"Reached from_sha={from_sha} on page {page}")
                return _non_empty(commits=collected, from_sha=from_sha, to_sha=to_sha)
            if within_range:
                collected.append(
                    CommitRecord(
                        **commit.model_dump(),
                        issue_keys=extract_issue_keys(message=commit.message, project=issue_project),
                    )
                )

    raise SearchExhaustedError(what=f"Commit range search for ref={ref}", max_pages=max_pages)


def _non_empty(commits: list[CommitRecord], from_sha: str, to_sha: str) -> list[CommitRecord]:
    if not commits:
        raise NotFoundError(f"No commits found between {from_sha} and {to_sha}")
    logger.info(f"Found {len(commits)} commit(s) between {from_sha} and {to_sha}")
    return commits
