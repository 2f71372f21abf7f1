"""对外 API 服务模块。

提供简化的函数接口供主应用服务器调用：
- 负责参数校验（ValidationError 直接抛给调用方）；
- 负责组装默认的 Gateway（上游客户端、存储、健康跟踪器）；
- 负责把 UnavailableError 转换成面向用户的提示语。
"""

from typing import Any, Dict, List, Optional

from gateway_core.config.settings import settings
from gateway_core.domain.conversation import ChatMessageStore
from gateway_core.domain.exceptions import UnavailableError, ValidationError
from gateway_core.domain.models import RequestContext
from gateway_core.gateway.ai_gateway import AIGateway
from gateway_core.gateway.health import ConnectionHealthTracker
from gateway_core.infrastructure.logging.logger import logger
from gateway_core.infrastructure.storage.json_store import JsonChatMessageStore
from gateway_core.upstream import create_upstream_client


_store: Optional[ChatMessageStore] = None
_gateway: Optional[AIGateway] = None

UNAVAILABLE_MESSAGES = {
    "transcribe": "Transcription service is currently unavailable. Please try again later.",
}
DEFAULT_UNAVAILABLE_MESSAGE = "AI service is currently unavailable. Please try again later."


def get_default_gateway() -> AIGateway:
    """获取默认的 AIGateway 实例（单例）。

    构造时会探测一次上游健康状态；配置了 health_check_interval 时
    启动后台周期探测。
    """
    global _store, _gateway
    if _store is None:
        _store = JsonChatMessageStore(root=settings.storage_root)
    if _gateway is None:
        upstream = create_upstream_client()
        health = ConnectionHealthTracker(upstream, settings)
        if settings.health_check_interval > 0:
            health.start(settings.health_check_interval)
        _gateway = AIGateway(upstream=upstream, store=_store, health=health)
    return _gateway


def set_default_gateway(gateway: Optional[AIGateway]) -> None:
    """替换默认 Gateway（测试或自定义装配时使用）。"""
    global _gateway
    if _gateway is not None and _gateway is not gateway:
        _gateway.health.stop()
    _gateway = gateway


def run_chat(
    user_id: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """发送聊天消息。

    Args:
        user_id: 用户ID
        message: 用户消息（必填）
        context: 上下文，可包含 type / projectId / taskId

    Returns:
        {"response": ..., "metadata": {...}}；metadata.fallback 为 True
        表示 AI 服务不可用时的本地替代回复。
    """
    _require_text(user_id, "User id is required")
    _require_text(message, "Message is required")
    return get_default_gateway().chat(user_id, message, _to_request_context(context)).to_dict()


def get_chat_history(
    user_id: str,
    project_id: Optional[str] = None,
    task_id: Optional[str] = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    """获取用户的聊天记录（按时间升序）。"""
    _require_text(user_id, "User id is required")
    if limit < 1:
        raise ValidationError("Limit must be a positive integer")
    msgs = get_default_gateway().get_chat_history(user_id, project_id=project_id, task_id=task_id, limit=limit)
    return [m.to_dict() for m in msgs]


def create_task_from_description(description: str, project_id: Optional[str] = None) -> Dict[str, Any]:
    _require_text(description, "Task description is required")
    return get_default_gateway().create_task_from_description(description, project_id).to_dict()


def analyze_task(task: Dict[str, Any], project_context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if not isinstance(task, dict) or not task:
        raise ValidationError("Task data is required")
    return get_default_gateway().analyze_task(task, project_context).to_dict()


def analyze_project(
    project_data: Dict[str, Any],
    tasks: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    if not isinstance(project_data, dict) or not project_data:
        raise ValidationError("Project data is required")
    return get_default_gateway().analyze_project(project_data, tasks or []).to_dict()


def suggest_task_breakdown(task: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(task, dict) or not task.get("title"):
        raise ValidationError("Task title is required")
    return get_default_gateway().suggest_task_breakdown(task).to_dict()


def estimate_effort(tasks: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(tasks, list) or not tasks:
        raise ValidationError("At least one task is required")
    return get_default_gateway().estimate_effort(tasks).to_dict()


def transcribe_audio(
    audio: bytes,
    filename: str = "audio.webm",
    title: Optional[str] = None,
    participants: Optional[List[str]] = None,
    date: Optional[str] = None,
) -> Dict[str, Any]:
    """转写会议音频。AI 服务不可用时抛 UnavailableError（不会伪造转写内容）。"""
    if not audio:
        raise ValidationError("Audio file is required")
    try:
        return get_default_gateway().transcribe_audio(
            audio,
            filename=filename,
            title=title,
            participants=participants,
            date=date,
        ).to_dict()
    except UnavailableError as e:
        raise _user_facing(e) from e


def index_document(content: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    _require_text(content, "Document content is required")
    return get_default_gateway().index_document(content, metadata).to_dict()


def search_documents(
    query: str,
    limit: int = 10,
    filter: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    _require_text(query, "Search query is required")
    if limit < 1:
        raise ValidationError("Limit must be a positive integer")
    return get_default_gateway().search_documents(query, limit=limit, filter=filter).to_dict()


def get_ai_status(refresh: bool = False) -> Dict[str, Any]:
    """返回 AI 引擎可用状态，refresh=True 时先同步探测一次。"""
    gateway = get_default_gateway()
    if refresh:
        gateway.check_health()
    return gateway.health.state.to_dict()


# ---- 辅助方法 ----


def _require_text(value: Any, message: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)


def _to_request_context(context: Optional[Dict[str, Any]]) -> RequestContext:
    context = context or {}
    return RequestContext(
        type=context.get("type"),
        project_id=context.get("projectId"),
        task_id=context.get("taskId"),
        filter=context.get("filter"),
        limit=context.get("limit"),
    )


def _user_facing(error: UnavailableError) -> UnavailableError:
    operation = error.extra.get("operation", "")
    logger.warning(
        "AI operation unavailable",
        extra={"extra": {"operation": operation, "error": error.message}},
    )
    return UnavailableError(
        message=UNAVAILABLE_MESSAGES.get(operation, DEFAULT_UNAVAILABLE_MESSAGE),
        operation=operation,
    )
