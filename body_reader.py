import json
import logging
from typing import Any

from starlette.requests import ClientDisconnect, Request

from errors import BodyReadError, BodyTooLargeError, InvalidBodyError

logger = logging.getLogger("ark_proxy.body")

MAX_BODY_BYTES = 5 * 1024 * 1024


def _declared_length(request: Request) -> int:
    raw = request.headers.get("content-length")
    if not raw:
        return -1
    try:
        return int(raw)
    except ValueError:
        raise BodyReadError(detail="invalid Content-Length header")


async def read_body(request: Request, limit: int = MAX_BODY_BYTES) -> bytes:
    """
    Accumulate the request body in memory.

    Stops reading at the first chunk that pushes the total past ``limit``;
    the remaining bytes are never pulled from the connection.
    """
    if _declared_length(request) > limit:
        raise BodyTooLargeError()

    chunks = []
    size = 0
    try:
        async for chunk in request.stream():
            size += len(chunk)
            if size > limit:
                logger.warning("Request body exceeded %d bytes, aborting read", limit)
                raise BodyTooLargeError()
            chunks.append(chunk)
    except ClientDisconnect:
        raise BodyReadError(detail="client disconnected")
    return b"".join(chunks)


def decode_json(raw: bytes) -> Any:
    """Empty body decodes to ``{}``."""
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError):
        raise InvalidBodyError()


async def read_json_body(request: Request, limit: int = MAX_BODY_BYTES) -> Any:
    return decode_json(await read_body(request, limit))
