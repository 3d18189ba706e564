"""
Turns IOPaint backend responses into typed results.

Success responses carry a binary body (plus an optional X-seed header) or
a JSON document. Failure responses carry a plain UTF-8 text body, which is
raised verbatim as a BackendError.
"""
import logging
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from iopaint_client.core.errors import (
    BackendError,
    ResponseFormatError,
    TransportError,
)
from iopaint_client.schemas import ImageHandle, InpaintResult, MediaFile, PluginResult

logger = logging.getLogger(__name__)

SEED_HEADER = "X-seed"

T = TypeVar("T")


def body_text(response: httpx.Response) -> str:
    return response.content.decode("utf-8", errors="replace")


def raise_for_backend_error(response: httpx.Response) -> None:
    if not response.is_success:
        raise BackendError(body_text(response), status_code=response.status_code)


def wrap_transport_error(exc: Exception) -> TransportError:
    return TransportError(exc)


def _content_type(response: httpx.Response, default: Optional[str]) -> Optional[str]:
    value = response.headers.get("content-type")
    if not value:
        return default
    return value.split(";", 1)[0].strip()


def parse_seed(response: httpx.Response) -> Optional[int]:
    value = response.headers.get(SEED_HEADER)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.warning(f"Ignoring malformed {SEED_HEADER} header: {value!r}")
        return None


def decode_image(response: httpx.Response) -> ImageHandle:
    raise_for_backend_error(response)
    return ImageHandle(content=response.content, content_type=_content_type(response, "image/png"))


def decode_inpaint(response: httpx.Response) -> InpaintResult:
    image = decode_image(response)
    return InpaintResult(image=image, seed=parse_seed(response))


def decode_plugin(response: httpx.Response) -> PluginResult:
    return PluginResult(image=decode_image(response))


def decode_status(response: httpx.Response) -> None:
    """Success is purely status based, the body is discarded."""
    raise_for_backend_error(response)


def decode_json(response: httpx.Response, model: Optional[Type[T]] = None) -> Any:
    raise_for_backend_error(response)
    try:
        data = response.json()
    except ValueError as e:
        raise ResponseFormatError(f"Expected a JSON body: {e}") from e
    if model is None:
        return data
    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as e:
        raise ResponseFormatError(f"Unexpected JSON body: {e}") from e


def decode_flag(response: httpx.Response) -> bool:
    """
    /model_downloaded answers with a bare boolean, either as JSON or as
    Python's str(bool).
    """
    raise_for_backend_error(response)
    text = body_text(response).strip().strip('"').lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise ResponseFormatError(f"Expected a boolean body, got {text!r}")


def decode_media(response: httpx.Response, filename: str) -> MediaFile:
    # The caller's filename wins over anything the response says
    raise_for_backend_error(response)
    return MediaFile(
        filename=filename,
        content=response.content,
        content_type=_content_type(response, None),
    )

