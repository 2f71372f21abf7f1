"""网关统一数据模型。

本模块定义了 Gateway 与调用方、存储层之间共享的标准数据结构：

- ChatMessage: 一条持久化的聊天消息（user/ai）。
- RequestContext: 随请求传递的临时上下文，发往上游时序列化为 camelCase。
- OperationResult: 每个 Gateway 操作的统一返回值，metadata.fallback
  用于区分真实的上游结果与本地合成的替代结果。
- HealthState: 上游连接健康状态快照。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional
from uuid import uuid4


# 持久化消息角色（fallback 产生的回复同样记为 "ai"，通过 metadata 区分）
Role = Literal["user", "ai"]

ContextType = Literal["chat", "task-analysis", "task-creation", "project-analysis"]

# 操作名称，同时作为 fallback 策略表的键
OP_CHAT = "chat"
OP_CREATE_TASK = "create-task"
OP_ANALYZE_TASK = "analyze-task"
OP_ANALYZE_PROJECT = "analyze-project"
OP_TRANSCRIBE = "transcribe"
OP_INDEX_DOCUMENT = "index-document"
OP_SEARCH_DOCUMENTS = "search-documents"
OP_SUGGEST_BREAKDOWN = "suggest-breakdown"
OP_ESTIMATE_EFFORT = "estimate-effort"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MessageContext:
    """消息所属的项目/任务。"""

    project_id: Optional[str] = None
    task_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.project_id is not None:
            data["projectId"] = self.project_id
        if self.task_id is not None:
            data["taskId"] = self.task_id
        return data


@dataclass(frozen=True)
class ChatMessage:
    """一条聊天消息。创建后不可修改，存储层只追加。

    - user: 用户 ID。
    - role: "user" 为用户输入，"ai" 为 AI（或 fallback）回复。
    - metadata: model / responseTime / error / fallback 等附加信息。
    """

    user: str
    role: Role
    content: str
    context: MessageContext = field(default_factory=MessageContext)
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: f"m-{uuid4().hex}")
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user": self.user,
            "role": self.role,
            "content": self.content,
            "context": self.context.to_dict(),
            "metadata": dict(self.metadata),
            "createdAt": self.created_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        ctx = data.get("context") or {}
        return cls(
            id=data["id"],
            user=data["user"],
            role=data["role"],
            content=data.get("content") or "",
            context=MessageContext(project_id=ctx.get("projectId"), task_id=ctx.get("taskId")),
            metadata=data.get("metadata") or {},
            created_at=datetime.fromisoformat(str(data["createdAt"]).replace("Z", "+00:00")),
        )


@dataclass
class RequestContext:
    """一次请求的上下文，只在调用链上传递，不直接持久化。"""

    type: Optional[ContextType] = None
    project_id: Optional[str] = None
    task_id: Optional[str] = None
    filter: Optional[Dict[str, Any]] = None
    limit: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        """序列化为上游 JSON 使用的 camelCase 字段，省略空值。"""
        payload: Dict[str, Any] = {}
        if self.type is not None:
            payload["type"] = self.type
        if self.project_id is not None:
            payload["projectId"] = self.project_id
        if self.task_id is not None:
            payload["taskId"] = self.task_id
        if self.filter is not None:
            payload["filter"] = self.filter
        if self.limit is not None:
            payload["limit"] = self.limit
        return payload

    def message_context(self) -> MessageContext:
        return MessageContext(project_id=self.project_id, task_id=self.task_id)


@dataclass
class ResultMetadata:
    """操作结果的元数据。fallback=True 时 error 也为 True。"""

    response_time: int
    fallback: bool = False
    error: bool = False
    model: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "responseTime": self.response_time,
            "fallback": self.fallback,
        }
        if self.error:
            data["error"] = True
        if self.model:
            data["model"] = self.model
        return data


@dataclass
class OperationResult:
    """Gateway 操作的统一返回值。

    data 的结构只由操作决定，成功与 fallback 时完全一致，
    调用方只需检查 metadata.fallback。
    """

    operation: str
    data: Dict[str, Any]
    metadata: ResultMetadata

    @property
    def is_fallback(self) -> bool:
        return self.metadata.fallback

    def to_dict(self) -> Dict[str, Any]:
        payload = dict(self.data)
        payload["metadata"] = self.metadata.to_dict()
        return payload


@dataclass(frozen=True)
class HealthState:
    """上游健康状态。available 为 None 表示尚未探测。"""

    available: Optional[bool] = None
    last_checked_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": bool(self.available),
            "lastCheckedAt": (
                self.last_checked_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
                if self.last_checked_at
                else None
            ),
        }
