"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层或调用方做统一捕获与用户提示。

- TransportError: 上游 AI 引擎调用失败（网络、超时、非 2xx、响应体异常）。
  只在 Gateway 边界被捕获并转换为 fallback 结果。
- ValidationError: 调用方参数缺失/非法，永远直接抛给调用方。
- UnavailableError: 没有 fallback 策略的操作（如音频转写）在上游失败时抛出。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 path、operation 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class TransportError(BusinessError):
    """上游调用失败：连接被拒、DNS 失败、超时、非 2xx、响应 JSON 不合法。"""

    def __init__(self, code: str, message: str, http_status: int = 502, **extra):
        super().__init__(code=code, message=message, http_status=http_status, **extra)


class ValidationError(BusinessError):
    """参数或配置校验失败。"""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", **extra):
        super().__init__(code=code, message=message, http_status=400, **extra)


class UnavailableError(BusinessError):
    """AI 服务不可用，且该操作不允许合成替代结果。"""

    def __init__(self, message: str, operation: str = "", **extra):
        super().__init__(
            code="SERVICE_UNAVAILABLE",
            message=message,
            http_status=503,
            operation=operation,
            **extra,
        )


class StoreError(BusinessError):
    """聊天记录存储读写失败。"""
