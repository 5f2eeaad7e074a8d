import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Type

import httpx
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from config import Settings
from errors import BadRequestError, MisconfiguredError
from models import (
    ImageProxyRequest,
    TextProxyRequest,
    UpstreamHTTPFailure,
    UpstreamResult,
    UpstreamSuccess,
    UpstreamTransportFailure,
)

logger = logging.getLogger("ark_proxy.proxy")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

LOG_TRUNCATE = 800


def json_utf8(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        content=content,
        status_code=status_code,
        media_type="application/json; charset=utf-8",
        headers=CORS_HEADERS,
    )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _response_body(resp: httpx.Response) -> Any:
    # NaN/Infinity would parse but cannot be rendered back as JSON
    try:
        return json.loads(resp.text, parse_constant=_reject_constant)
    except ValueError:
        return None


def _failure_detail(resp: httpx.Response) -> str:
    if resp.text.strip():
        return resp.text
    return f"HTTP {resp.status_code} {resp.reason_phrase}".rstrip()


# =============================================================================
# Forwarder
# =============================================================================

@dataclass(frozen=True)
class ProxyForwarder:
    """
    One upstream endpoint of the provider.

    The text and image endpoints share the whole forwarding path and differ
    only in the request model and the payload builder.
    """

    name: str
    url: str
    model: str
    api_key: str = field(repr=False)
    request_model: Type[BaseModel]
    payload_builder: Callable[[str, Any], Dict[str, Any]]
    invalid_message: str
    failure_message: str

    def check_credential(self) -> None:
        if not self.api_key:
            raise MisconfiguredError()

    def validate(self, body: Any) -> BaseModel:
        try:
            return self.request_model.model_validate(body)
        except ValidationError as e:
            logger.debug("Rejected %s request: %s", self.name, e.errors(include_url=False))
            raise BadRequestError(self.invalid_message)

    def build_payload(self, request: BaseModel) -> Dict[str, Any]:
        return self.payload_builder(self.model, request)

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def send(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> UpstreamResult:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Forwarding %s body (truncated): %s",
                self.name, json.dumps(payload, ensure_ascii=False)[:LOG_TRUNCATE],
            )
        try:
            resp = await client.post(self.url, headers=self.headers(), json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            message = str(e) or e.__class__.__name__
            logger.error("%s upstream call failed: %s", self.name, message)
            return UpstreamTransportFailure(message=message)

        logger.debug("%s upstream status %s, body: %s", self.name, resp.status_code, resp.text[:LOG_TRUNCATE])
        body = _response_body(resp)
        if resp.is_success:
            return UpstreamSuccess(payload=body if body is not None else {"raw": resp.text})

        logger.warning("%s upstream returned HTTP %s", self.name, resp.status_code)
        return UpstreamHTTPFailure(
            status_code=resp.status_code,
            payload=body if body is not None else _failure_detail(resp),
        )

    async def forward(self, client: httpx.AsyncClient, body: Any) -> UpstreamResult:
        self.check_credential()
        request = self.validate(body)
        return await self.send(client, self.build_payload(request))

    def render(self, result: UpstreamResult) -> JSONResponse:
        if isinstance(result, UpstreamSuccess):
            return json_utf8(result.payload)
        if isinstance(result, UpstreamHTTPFailure):
            return json_utf8({"error": self.failure_message, "detail": result.payload}, result.status_code)
        return json_utf8({"error": self.failure_message, "detail": result.message}, 500)


# =============================================================================
# Endpoint payloads
# =============================================================================

def build_text_payload(model: str, request: TextProxyRequest) -> Dict[str, Any]:
    return {"model": model, "input": request.messages}


def build_image_payload(model: str, request: ImageProxyRequest) -> Dict[str, Any]:
    return {
        "model": model,
        "prompt": request.prompt,
        "sequential_image_generation": "disabled",
        "response_format": "url",
        "size": request.size_or_default,
        "stream": False,
        "watermark": request.watermark,
    }


def text_forwarder(settings: Settings) -> ProxyForwarder:
    return ProxyForwarder(
        name="text",
        url=settings.ark_api_url,
        model=settings.ark_model,
        api_key=settings.ark_api_key,
        request_model=TextProxyRequest,
        payload_builder=build_text_payload,
        invalid_message="messages 不能为空",
        failure_message="文本代理请求失败",
    )


def image_forwarder(settings: Settings) -> ProxyForwarder:
    return ProxyForwarder(
        name="image",
        url=settings.ark_image_api_url,
        model=settings.ark_image_model,
        api_key=settings.ark_api_key,
        request_model=ImageProxyRequest,
        payload_builder=build_image_payload,
        invalid_message="prompt 不能为空",
        failure_message="图像代理请求失败",
    )
