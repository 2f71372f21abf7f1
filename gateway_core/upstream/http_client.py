"""AI 引擎 HTTP 客户端。

所有上游响应都使用统一信封：
- 成功: 2xx + {"success": true, "data": {...}}
- 失败: 非 2xx + {"success": false, "error": "..."}

任何失败（连接失败、超时、非 2xx、JSON 不合法、success=false）都折叠为
TransportError，并尽量携带上游返回的错误信息。本层不做重试。
"""

from typing import Any, Callable, ContextManager, Dict, Optional

import httpx

from gateway_core.config.settings import settings
from gateway_core.domain.exceptions import TransportError


ClientFactory = Callable[[float], ContextManager[httpx.Client]]


def _default_client_factory(timeout: float) -> httpx.Client:
    return httpx.Client(timeout=timeout, trust_env=False)


class HttpUpstreamClient:
    """基于 httpx 的上游客户端实现。

    base_url 与默认超时在构造时确定；client_factory 可替换，
    便于在测试中把请求路由到进程内的 ASGI 应用。
    """

    def __init__(
        self,
        cfg=settings,
        base_url: Optional[str] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._settings = cfg
        self.base_url = (base_url or cfg.ai_engine_url).rstrip("/")
        self.timeout = float(cfg.ai_request_timeout)
        self._client_factory = client_factory or _default_client_factory

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
        url = f"{self.base_url}{path}"
        effective_timeout = timeout if timeout is not None else self.timeout
        try:
            with self._client_factory(effective_timeout) as client:
                resp = client.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    files=files,
                    data=data,
                )
        except httpx.TimeoutException as e:
            raise TransportError(
                code="TIMEOUT",
                message=f"Request to {path} timed out after {effective_timeout}s",
                http_status=504,
                path=path,
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise TransportError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, path=path) from e

        body = self._parse_body(resp, path)
        if not resp.is_success:
            raise TransportError(
                code="API_ERROR",
                message=self._error_message(body) or f"AI engine returned HTTP {resp.status_code}",
                http_status=resp.status_code,
                path=path,
            )
        if isinstance(body, dict) and body.get("success") is False:
            raise TransportError(
                code="UPSTREAM_REJECTED",
                message=self._error_message(body) or "AI engine reported failure",
                http_status=resp.status_code,
                path=path,
            )
        return body

    # ---- 辅助方法 ----

    @staticmethod
    def _parse_body(resp: Any, path: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            if not resp.is_success:
                # 非 2xx 时响应体不是 JSON 也按 API_ERROR 处理
                return None
            raise TransportError(
                code="BAD_RESPONSE",
                message=f"Malformed JSON from AI engine: {e}",
                http_status=502,
                path=path,
            ) from e

    @staticmethod
    def _error_message(body: Any) -> Optional[str]:
        if isinstance(body, dict):
            msg = body.get("error") or body.get("message")
            if msg:
                return str(msg)
        return None
