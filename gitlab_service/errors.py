from __future__ import annotations

"""
错误类型。

约定：
- 在发现问题的地方抛出，中间层不吞、不改写
- 只在路由层翻译为 HTTP 状态码（见 `api/routes.py`）
"""


class GitLabServiceError(RuntimeError):
    """本服务所有业务错误的基类。"""

    pass


class InvalidInputError(GitLabServiceError):
    """缺少必填标识（environment_id / ref / sha / pipeline_id / job_id）。"""

    pass


class NotFoundError(GitLabServiceError):
    """搜索/提取没有结果：上一个 SHA、提交区间、BUILD_VERSION。"""

    pass


class SearchExhaustedError(GitLabServiceError):
    """分页超过上限仍未得出结论（防止上游异常导致无限翻页）。"""

    def __init__(self, what: str, max_pages: int) -> None:
        super().__init__(f"{what}: gave up after {max_pages} page(s)")
        self.max_pages = max_pages


class UpstreamUnavailableError(GitLabServiceError):
    """网络/传输层失败（连接不上、连接被重置等）。"""

    pass


class UpstreamTimeoutError(GitLabServiceError):
    """请求 deadline 到期，或单次上游调用超时。"""

    pass


class UpstreamError(GitLabServiceError):
    """GitLab 返回了非 200 的状态码。"""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"GitLab API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class ParseError(GitLabServiceError):
    """上游返回的 JSON 无法解析或与 schema 不符。"""

    pass
