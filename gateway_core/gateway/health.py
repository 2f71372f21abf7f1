"""上游连接健康状态跟踪。

ConnectionHealthTracker 只提供“建议性”的可用信号（例如用于前端横幅），
Gateway 自身始终直接调用上游，失败后再走 fallback，不依赖这里的状态。
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from gateway_core.config.settings import settings
from gateway_core.domain.exceptions import TransportError
from gateway_core.domain.models import HealthState
from gateway_core.infrastructure.logging.logger import get_logger
from gateway_core.upstream.base import UpstreamClient
from gateway_core.upstream.endpoints import HEALTH_PATH


logger = get_logger("health")


class ConnectionHealthTracker:
    """探测上游 /health 并缓存最近一次结果。

    状态：unknown -> available / unavailable，之后每次探测自由切换。
    多线程下后写入者生效，读到稍旧的状态是可以接受的。
    """

    def __init__(
        self,
        upstream: UpstreamClient,
        cfg=settings,
        probe_on_init: bool = True,
    ):
        self._upstream = upstream
        self._timeout = float(cfg.ai_health_timeout)
        self._state = HealthState()
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        if probe_on_init:
            self.probe()

    @property
    def state(self) -> HealthState:
        with self._lock:
            return self._state

    def is_available(self) -> bool:
        """返回最近一次探测结果，不发起网络调用；未探测时视为不可用。"""
        return bool(self.state.available)

    def probe(self) -> bool:
        """调用一次健康检查端点，任何失败都返回 False 而不抛出。"""
        try:
            self._upstream.request("GET", HEALTH_PATH, timeout=self._timeout)
            available = True
            reason = None
        except TransportError as e:
            available = False
            reason = e.message

        with self._lock:
            previous = self._state.available
            self._state = HealthState(available=available, last_checked_at=datetime.now(timezone.utc))

        if previous is not available:
            level = logging.INFO if available else logging.WARNING
            logger.log(
                level,
                "AI engine availability changed",
                extra={"extra": {
                    "base_url": getattr(self._upstream, "base_url", None),
                    "available": available,
                    "previous": previous,
                    "reason": reason,
                }},
            )
        return available

    # ---- 后台周期探测 ----

    def start(self, interval: float) -> None:
        """启动后台线程，每 interval 秒探测一次。重复调用无副作用。"""
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(interval,),
            name="ai-health-probe",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    def _run(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            try:
                self.probe()
            except Exception:
                # 后台线程不能因单次探测异常退出
                logger.exception("Health probe crashed")
