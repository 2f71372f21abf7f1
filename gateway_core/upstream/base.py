"""上游 AI 引擎客户端抽象接口。

Gateway 不直接依赖 httpx，而是依赖此协议：

- 默认实现为 HttpUpstreamClient（JSON over HTTP）。
- 测试中可以替换为任意假的实现。

失败时统一抛出 TransportError，本层不做重试。
"""

from typing import Any, Dict, Optional, Protocol


class UpstreamClient(Protocol):
    """AI 引擎客户端协议。

    实现者需要提供：
    - base_url: 上游基础 URL，用于日志。
    - request(...): 执行一次 HTTP 调用，返回解析后的 JSON。
    """

    base_url: str

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        ...
