"""Gateway Core 顶层包。

该包实现主应用服务器与独立 AI 引擎之间的网关：
上游 HTTP 客户端、fallback 策略表、Gateway 编排、连接健康跟踪、
聊天记录持久化，以及用于联调的 Mock AI 引擎。
"""

from gateway_core.gateway.ai_gateway import AIGateway
from gateway_core.gateway.health import ConnectionHealthTracker

__all__ = ["AIGateway", "ConnectionHealthTracker"]
