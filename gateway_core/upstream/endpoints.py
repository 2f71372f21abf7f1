"""AI 引擎端点配置。

把“操作名”与上游 HTTP 方法/路径解耦：Gateway 只按操作名查表，
具体路径由这里集中维护，便于上游升级 API 版本。"""

from dataclasses import dataclass
from typing import Mapping

from gateway_core.domain.models import (
    OP_ANALYZE_PROJECT,
    OP_ANALYZE_TASK,
    OP_CHAT,
    OP_CREATE_TASK,
    OP_ESTIMATE_EFFORT,
    OP_INDEX_DOCUMENT,
    OP_SEARCH_DOCUMENTS,
    OP_SUGGEST_BREAKDOWN,
    OP_TRANSCRIBE,
)


API_PREFIX = "/api/v1/ai"
HEALTH_PATH = "/health"


@dataclass(frozen=True)
class Endpoint:
    """单个上游端点。"""

    operation: str
    method: str
    path: str


ENDPOINTS: Mapping[str, Endpoint] = {
    OP_CHAT: Endpoint(OP_CHAT, "POST", f"{API_PREFIX}/chat"),
    OP_CREATE_TASK: Endpoint(OP_CREATE_TASK, "POST", f"{API_PREFIX}/create-task"),
    OP_ANALYZE_TASK: Endpoint(OP_ANALYZE_TASK, "POST", f"{API_PREFIX}/analyze-task"),
    OP_ANALYZE_PROJECT: Endpoint(OP_ANALYZE_PROJECT, "POST", f"{API_PREFIX}/analyze-project"),
    OP_TRANSCRIBE: Endpoint(OP_TRANSCRIBE, "POST", f"{API_PREFIX}/transcribe"),
    OP_INDEX_DOCUMENT: Endpoint(OP_INDEX_DOCUMENT, "POST", f"{API_PREFIX}/index-document"),
    OP_SEARCH_DOCUMENTS: Endpoint(OP_SEARCH_DOCUMENTS, "GET", f"{API_PREFIX}/search-documents"),
    OP_SUGGEST_BREAKDOWN: Endpoint(OP_SUGGEST_BREAKDOWN, "POST", f"{API_PREFIX}/suggest-breakdown"),
    OP_ESTIMATE_EFFORT: Endpoint(OP_ESTIMATE_EFFORT, "POST", f"{API_PREFIX}/estimate-effort"),
}


def get_endpoint(operation: str) -> Endpoint:
    """根据操作名获取端点配置。"""

    try:
        return ENDPOINTS[operation]
    except KeyError:
        raise KeyError(f"Unknown operation: {operation!r}") from None
