from __future__ import annotations

from collections.abc import Iterable

from gitlab_service.builds.models import JobRecord
from gitlab_service.gitlab.schemas import GitLabJob

DEPLOY_STAGE = "deploy"


def deploy_jobs_of(jobs: Iterable[GitLabJob]) -> list[JobRecord]:
    """只保留 `stage == "deploy"` 的 job，保持原有顺序；其他 stage 直接丢弃（不是错误）。"""
    return [JobRecord.model_validate(job.model_dump()) for job in jobs if job.stage == DEPLOY_STAGE]
