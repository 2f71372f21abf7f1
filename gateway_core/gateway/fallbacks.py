"""Fallback 策略表。

当上游调用失败时，Gateway 按操作名在 FALLBACK_POLICIES 中查找对应函数，
只用本地已有的输入合成一个确定性的替代结果。

约束：
- 纯函数：相同输入得到相同输出，不含时间戳或随机数。
- 输出结构与该操作成功时的 data 结构一致。
- 可能被误认为权威内容的操作（转写、检索、索引）不合成内容：
  转写没有策略（Gateway 抛 UnavailableError），索引返回 success=false，
  检索返回空结果。
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

from gateway_core.domain.models import (
    OP_ANALYZE_PROJECT,
    OP_ANALYZE_TASK,
    OP_CHAT,
    OP_CREATE_TASK,
    OP_ESTIMATE_EFFORT,
    OP_INDEX_DOCUMENT,
    OP_SEARCH_DOCUMENTS,
    OP_SUGGEST_BREAKDOWN,
)


FallbackFn = Callable[..., Dict[str, Any]]

CHAT_APOLOGY = (
    "I'm sorry, but I'm having trouble connecting to the AI service right now. "
    "Please try again in a few moments."
)
TASK_TITLE_MAX_LENGTH = 100
DEFAULT_TASK_HOURS = 8
COMPLETED_STATUSES = frozenset({"completed", "done"})


def chat_fallback(message: str, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"response": CHAT_APOLOGY}


def create_task_fallback(description: str) -> Dict[str, Any]:
    """用描述原文生成一个待 AI 分析的任务草稿。"""
    task: Dict[str, Any] = {
        "title": description[:TASK_TITLE_MAX_LENGTH],
        "description": description,
        "priority": "medium",
        "estimatedTime": 4,
        "tags": ["pending-ai-analysis"],
        "status": "todo",
    }
    return {"task": task}


def analyze_task_fallback(
    task: Dict[str, Any],
    project_context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "analysis": {
            "complexityScore": 5,
            "estimatedHours": DEFAULT_TASK_HOURS,
            "skillsRequired": ["General"],
            "dependencies": [],
            "risks": ["Unable to perform AI analysis"],
            "recommendations": ["Manual review recommended"],
            "blockers": [],
        }
    }


def analyze_project_fallback(
    project_data: Dict[str, Any],
    tasks: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """只根据本地任务完成情况计算健康分。"""
    tasks = tasks or []
    total = len(tasks)
    completed = sum(1 for t in tasks if _task_status(t) in COMPLETED_STATUSES)
    return {
        "health": {
            "healthScore": _percent(completed, total),
            "status": "unknown",
            "insights": ["AI analysis unavailable"],
            "recommendations": ["Manual project review recommended"],
        }
    }


def suggest_breakdown_fallback(task: Dict[str, Any]) -> Dict[str, Any]:
    title = str(task.get("title") or "Task")
    return {
        "subtasks": [
            {
                "title": f"{title} - Phase 1",
                "description": "Implementation",
                "estimatedHours": 4,
                "priority": "high",
            },
            {
                "title": f"{title} - Phase 2",
                "description": "Testing and refinement",
                "estimatedHours": 3,
                "priority": "medium",
            },
        ]
    }


def estimate_effort_fallback(tasks: List[Dict[str, Any]]) -> Dict[str, Any]:
    estimates = [
        {
            "title": t.get("title", ""),
            "estimatedHours": DEFAULT_TASK_HOURS,
            "confidence": "low",
        }
        for t in tasks
    ]
    return {"estimates": estimates, "totalHours": DEFAULT_TASK_HOURS * len(tasks)}


def index_document_fallback(content: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"success": False, "message": "unavailable"}


def search_documents_fallback(
    query: str,
    limit: int = 10,
    filter: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {"results": []}


FALLBACK_POLICIES: Mapping[str, FallbackFn] = {
    OP_CHAT: chat_fallback,
    OP_CREATE_TASK: create_task_fallback,
    OP_ANALYZE_TASK: analyze_task_fallback,
    OP_ANALYZE_PROJECT: analyze_project_fallback,
    OP_SUGGEST_BREAKDOWN: suggest_breakdown_fallback,
    OP_ESTIMATE_EFFORT: estimate_effort_fallback,
    OP_INDEX_DOCUMENT: index_document_fallback,
    OP_SEARCH_DOCUMENTS: search_documents_fallback,
}


def _task_status(task: Any) -> str:
    if isinstance(task, dict):
        return str(task.get("status") or "").lower()
    return str(getattr(task, "status", "") or "").lower()


def _percent(part: int, total: int) -> int:
    if total <= 0:
        return 0
    # 四舍五入（0.5 向上），与 JS Math.round 一致
    return (200 * part + total) // (2 * total)
