from typing import Any, Dict, Optional


class ConfigurationError(ValueError):
    """Raised at startup when an environment value cannot be parsed."""


class ProxyError(Exception):
    """Base for every failure that is answered with a JSON ``{error, detail}`` body."""

    status_code = 500
    error = "Internal error"

    def __init__(self, error: Optional[str] = None, detail: Any = None):
        self.error = error or self.error
        self.detail = detail
        super().__init__(self.error)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


class MisconfiguredError(ProxyError):
    status_code = 500
    error = "服务端未配置 ARK_API_KEY"


class BadRequestError(ProxyError):
    status_code = 400
    error = "请求参数不合法"


class InvalidBodyError(BadRequestError):
    error = "请求体不是合法 JSON"


class BodyReadError(BadRequestError):
    error = "请求体读取失败"


class BodyTooLargeError(ProxyError):
    status_code = 413
    error = "请求体过大"
