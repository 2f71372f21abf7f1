import json
import re
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from gateway_core.config.settings import settings
from gateway_core.domain.conversation import ChatMessageStore
from gateway_core.domain.exceptions import StoreError
from gateway_core.domain.models import ChatMessage


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class JsonChatMessageStore(ChatMessageStore):
    """按用户分文件的 JSONL 聊天记录存储，只追加不修改。"""

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._chat_root = self._root / "chats"
        self._chat_root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def append(self, message: ChatMessage) -> None:
        self.extend([message])

    def extend(self, messages: Sequence[ChatMessage]) -> None:
        # 先序列化全部记录，每个用户文件只做一次写入
        chunks: Dict[Path, List[str]] = {}
        for message in messages:
            line = json.dumps(message.to_dict(), ensure_ascii=False)
            chunks.setdefault(self._user_path(message.user), []).append(line + "\n")
        with self._lock:
            for path, lines in chunks.items():
                try:
                    with path.open("a", encoding="utf-8") as f:
                        f.write("".join(lines))
                except OSError as e:
                    raise StoreError(code="STORE_WRITE_ERROR", message=str(e), path=str(path))

    def list_messages(
        self,
        user: str,
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ChatMessage]:
        path = self._user_path(user)
        items: List[ChatMessage] = []
        if not path.exists():
            return items
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StoreError(code="STORE_READ_ERROR", message=str(e), user=user)
        for line in lines:
            try:
                msg = ChatMessage.from_dict(json.loads(line))
            except (json.JSONDecodeError, KeyError, ValueError):
                continue
            if msg.user != user:
                continue
            if project_id is not None and msg.context.project_id != project_id:
                continue
            if task_id is not None and msg.context.task_id != task_id:
                continue
            items.append(msg)
        if limit is not None and limit >= 0:
            items = items[-limit:] if limit else []
        return items

    def _user_path(self, user: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", str(user)) or "_"
        return self._chat_root / f"{safe}.jsonl"
