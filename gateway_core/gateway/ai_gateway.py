"""AI Gateway 核心模块。

每个操作都经过 execute_with_fallback：
1. 按操作名查端点并调用上游；
2. 成功时从信封中取出该操作的 data 并计时；
3. 失败（TransportError，包括 data 结构不符合预期）时记录日志并调用 fallback 策略表中的对应函数；
4. 没有 fallback 策略的操作抛出 UnavailableError。

chat 额外负责持久化：只要真正发起了上游调用，就写入一条 user 消息和一条 ai 消息。
"""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from uuid import uuid4

from gateway_core.domain.conversation import ChatMessageStore
from gateway_core.domain.exceptions import TransportError, UnavailableError, ValidationError
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
    ChatMessage,
    OperationResult,
    RequestContext,
    ResultMetadata,
)
from gateway_core.gateway.fallbacks import FALLBACK_POLICIES, FallbackFn
from gateway_core.gateway.health import ConnectionHealthTracker
from gateway_core.infrastructure.logging.logger import get_logger
from gateway_core.upstream.base import UpstreamClient
from gateway_core.upstream.endpoints import get_endpoint


logger = get_logger("gateway")

Shaper = Callable[[Dict[str, Any]], Dict[str, Any]]


def _pick(key: str, default: Any) -> Shaper:
    def shape(data: Dict[str, Any]) -> Dict[str, Any]:
        return {key: data.get(key, default)}

    return shape


def _shape_chat(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"response": str(data.get("response") or "")}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _shape_estimates(data: Dict[str, Any]) -> Dict[str, Any]:
    estimates = data.get("estimates") or []
    if not isinstance(estimates, list):
        raise TypeError(f"estimates must be a list, got {type(estimates).__name__}")
    total = data.get("totalHours")
    if total is None:
        total = sum(
            e["estimatedHours"]
            for e in estimates
            if isinstance(e, dict) and _is_number(e.get("estimatedHours"))
        )
    elif not _is_number(total):
        raise TypeError(f"totalHours must be a number, got {type(total).__name__}")
    return {"estimates": estimates, "totalHours": total}


def _shape_index(data: Dict[str, Any]) -> Dict[str, Any]:
    shaped = dict(data)
    shaped.setdefault("success", True)
    return shaped


def _shape_passthrough(data: Dict[str, Any]) -> Dict[str, Any]:
    return dict(data)


class AIGateway:
    """AI 功能的统一入口。

    所有协作者通过构造函数注入：上游客户端、聊天记录存储、fallback 策略表、
    健康跟踪器。未提供健康跟踪器时创建一个不在构造时探测的实例。
    """

    def __init__(
        self,
        upstream: UpstreamClient,
        store: ChatMessageStore,
        fallbacks: Optional[Mapping[str, FallbackFn]] = None,
        health: Optional[ConnectionHealthTracker] = None,
    ):
        self._upstream = upstream
        self._store = store
        self._fallbacks = FALLBACK_POLICIES if fallbacks is None else fallbacks
        self._health = health or ConnectionHealthTracker(upstream, probe_on_init=False)

    @property
    def health(self) -> ConnectionHealthTracker:
        return self._health

    # ---- 通用执行器 ----

    def execute_with_fallback(
        self,
        operation: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        form: Optional[Dict[str, Any]] = None,
        shape: Shaper = _shape_passthrough,
        fallback_args: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        """调用上游并在失败时切换到 fallback。

        Args:
            operation: 操作名，同时决定端点与 fallback 函数。
            json_body / params / files / form: 发往上游的请求内容。
            shape: 从信封 data 中提取该操作结果的函数。
            fallback_args: 传给 fallback 函数的关键字参数。

        Raises:
            UnavailableError: 上游失败且该操作没有 fallback 策略。
        """
        endpoint = get_endpoint(operation)
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "operation": operation,
            "path": endpoint.path,
        }
        start = time.perf_counter()
        try:
            body = self._upstream.request(
                endpoint.method,
                endpoint.path,
                json=json_body,
                params=params,
                files=files,
                data=form,
            )
            payload = _envelope_data(body)
            data = _apply_shape(shape, payload, endpoint.path)
        except TransportError as e:
            elapsed = _elapsed_ms(start)
            self._log(
                logging.WARNING,
                "AI engine call failed",
                log_ctx,
                code=e.code,
                http_status=e.http_status,
                error=e.message,
                elapsed_ms=elapsed,
            )
            fallback = self._fallbacks.get(operation)
            if fallback is None:
                raise UnavailableError(
                    message=f"AI service unavailable for {operation}: {e.message}",
                    operation=operation,
                ) from e
            data = fallback(**(fallback_args or {}))
            self._log(logging.INFO, "Returned fallback result", log_ctx, elapsed_ms=elapsed)
            return OperationResult(
                operation=operation,
                data=data,
                metadata=ResultMetadata(response_time=elapsed, fallback=True, error=True),
            )

        elapsed = _elapsed_ms(start)
        self._log(logging.INFO, "AI engine call succeeded", log_ctx, elapsed_ms=elapsed)
        return OperationResult(
            operation=operation,
            data=data,
            metadata=ResultMetadata(response_time=elapsed, model=_model_name(payload)),
        )

    # ---- 对话 ----

    def chat(
        self,
        user_id: str,
        message: str,
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        """发送一条聊天消息并持久化 user/ai 两条记录。

        message 为空时直接抛 ValidationError，不调用上游也不写存储。
        """
        if not message or not str(message).strip():
            raise ValidationError("Message is required")

        ctx = context or RequestContext()
        ctx_payload = ctx.to_payload()
        user_msg = ChatMessage(
            user=user_id,
            role="user",
            content=message,
            context=ctx.message_context(),
        )
        result = self.execute_with_fallback(
            OP_CHAT,
            json_body={"message": message, "context": ctx_payload},
            shape=_shape_chat,
            fallback_args={"message": message, "context": ctx_payload},
        )

        ai_meta: Dict[str, Any] = {"responseTime": result.metadata.response_time}
        if result.is_fallback:
            ai_meta.update({"error": True, "fallback": True})
        elif result.metadata.model:
            ai_meta["model"] = result.metadata.model
        ai_msg = ChatMessage(
            user=user_id,
            role="ai",
            content=result.data["response"],
            context=ctx.message_context(),
            metadata=ai_meta,
        )
        self._store.extend([user_msg, ai_msg])
        return result

    def get_chat_history(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
        limit: Optional[int] = 50,
    ) -> List[ChatMessage]:
        """按时间顺序返回用户最近的聊天记录。"""
        return self._store.list_messages(user_id, project_id=project_id, task_id=task_id, limit=limit)

    # ---- 任务与项目 ----

    def create_task_from_description(
        self,
        description: str,
        project_id: Optional[str] = None,
    ) -> OperationResult:
        return self.execute_with_fallback(
            OP_CREATE_TASK,
            json_body={"description": description, "projectId": project_id},
            shape=_pick("task", {}),
            fallback_args={"description": description},
        )

    def analyze_task(
        self,
        task: Dict[str, Any],
        project_context: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        return self.execute_with_fallback(
            OP_ANALYZE_TASK,
            json_body={"task": task, "projectContext": project_context or {}},
            shape=_pick("analysis", {}),
            fallback_args={"task": task, "project_context": project_context},
        )

    def analyze_project(
        self,
        project_data: Dict[str, Any],
        tasks: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> OperationResult:
        task_list = list(tasks or [])
        return self.execute_with_fallback(
            OP_ANALYZE_PROJECT,
            json_body={"projectData": project_data, "tasks": task_list},
            shape=_pick("health", {}),
            fallback_args={"project_data": project_data, "tasks": task_list},
        )

    def suggest_task_breakdown(self, task: Dict[str, Any]) -> OperationResult:
        body_task = {"title": task.get("title"), "description": task.get("description")}
        return self.execute_with_fallback(
            OP_SUGGEST_BREAKDOWN,
            json_body={"task": body_task},
            shape=_pick("subtasks", []),
            fallback_args={"task": task},
        )

    def estimate_effort(self, tasks: Sequence[Dict[str, Any]]) -> OperationResult:
        task_list = [
            {
                "title": t.get("title"),
                "description": t.get("description"),
                "priority": t.get("priority"),
            }
            for t in tasks
        ]
        return self.execute_with_fallback(
            OP_ESTIMATE_EFFORT,
            json_body={"tasks": task_list},
            shape=_shape_estimates,
            fallback_args={"tasks": list(tasks)},
        )

    # ---- 会议与文档 ----

    def transcribe_audio(
        self,
        audio: bytes,
        filename: str = "audio.webm",
        title: Optional[str] = None,
        participants: Optional[List[str]] = None,
        date: Optional[str] = None,
        content_type: str = "application/octet-stream",
    ) -> OperationResult:
        """转写音频。没有 fallback：上游失败时抛 UnavailableError。"""
        form: Dict[str, Any] = {"participants": json.dumps(participants or [])}
        if title is not None:
            form["title"] = title
        if date is not None:
            form["date"] = date
        return self.execute_with_fallback(
            OP_TRANSCRIBE,
            files={"audio": (filename, audio, content_type)},
            form=form,
        )

    def index_document(
        self,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        return self.execute_with_fallback(
            OP_INDEX_DOCUMENT,
            json_body={"content": content, "metadata": metadata or {}},
            shape=_shape_index,
            fallback_args={"content": content, "metadata": metadata},
        )

    def search_documents(
        self,
        query: str,
        limit: int = 10,
        filter: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        params: Dict[str, Any] = {"query": query, "limit": limit}
        if filter:
            params["filter"] = json.dumps(filter)
        return self.execute_with_fallback(
            OP_SEARCH_DOCUMENTS,
            params=params,
            shape=_pick("results", []),
            fallback_args={"query": query, "limit": limit, "filter": filter},
        )

    # ---- 健康状态 ----

    def check_health(self) -> bool:
        return self._health.probe()

    def is_available(self) -> bool:
        return self._health.is_available()

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


def _envelope_data(body: Any) -> Dict[str, Any]:
    """取出信封中的 data；缺少信封时把整个响应体当作 data。"""
    data = body.get("data", body) if isinstance(body, dict) else body
    if isinstance(data, dict):
        return data
    return {"value": data}


def _apply_shape(shape: Shaper, payload: Dict[str, Any], path: str) -> Dict[str, Any]:
    """按操作提取结果；data 结构不符合预期时视为 BAD_RESPONSE。"""
    try:
        return shape(payload)
    except (TypeError, ValueError, KeyError, AttributeError) as e:
        raise TransportError(
            code="BAD_RESPONSE",
            message=f"Unexpected response shape from AI engine: {e}",
            http_status=502,
            path=path,
        ) from e


def _model_name(data: Dict[str, Any]) -> Optional[str]:
    model = data.get("model")
    if not model and isinstance(data.get("metadata"), dict):
        model = data["metadata"].get("model")
    return str(model) if model else None
