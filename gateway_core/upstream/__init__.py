"""上游 AI 引擎集成层。

该包下的模块负责：
- 定义上游客户端抽象接口 (base)。
- 维护操作名与端点的映射 (endpoints)。
- 提供基于 httpx 的具体实现 (http_client)。
"""

from typing import Optional

from gateway_core.config.settings import settings
from gateway_core.upstream.base import UpstreamClient
from gateway_core.upstream.http_client import HttpUpstreamClient


def create_upstream_client(base_url: Optional[str] = None) -> UpstreamClient:
    """根据配置创建上游客户端，默认使用 settings.ai_engine_url。"""

    return HttpUpstreamClient(settings, base_url=base_url)
