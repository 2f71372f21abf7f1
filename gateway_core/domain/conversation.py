from typing import List, Optional, Protocol, Sequence

from .models import ChatMessage


class ChatMessageStore(Protocol):
    """聊天记录存储协议：按用户追加，只读回放。"""

    def append(self, message: ChatMessage) -> None:
        ...

    def extend(self, messages: Sequence[ChatMessage]) -> None:
        """一次性追加多条记录：要么全部写入，要么都不写入。"""
        ...

    def list_messages(
        self,
        user: str,
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ChatMessage]:
        ...
