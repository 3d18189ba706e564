import logging
from typing import List, Optional, Sequence, Union

import httpx

from iopaint_client.core.config import settings
from iopaint_client.schemas import (
    Attachment,
    Filename,
    InpaintResult,
    InpaintSettings,
    MediaFile,
    ModelInfo,
    PluginResult,
    Rect,
    ServerConfig,
    WireRequest,
)
from iopaint_client.services import decoder, encoder

logger = logging.getLogger(__name__)

class IOPaintClient:
    """
    Talks to an IOPaint backend. Every method is a single request/response
    exchange; the client keeps no state between calls.

    `transport` replaces the network layer (httpx.MockTransport,
    httpx.ASGITransport). It is shared by every call, so it must survive
    being closed by each short-lived AsyncClient.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.BACKEND_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self.transport = transport

    async def _send(self, request: WireRequest) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            try:
                response = await client.request(
                    request.method,
                    request.path,
                    files=request.multipart(),
                )
            except httpx.RequestError as e:
                logger.error(f"Error {request.method} {request.path}: {e!r}")
                raise decoder.wrap_transport_error(e) from e

        logger.info(f"{request.method} {request.path} -> {response.status_code}")
        if not response.is_success:
            logger.error(f"Error {request.method} {request.path}: {decoder.body_text(response)}")
        return response

    async def inpaint(
        self,
        image: Attachment,
        settings: InpaintSettings,
        cropper_rect: Rect,
        extender_rect: Rect,
        mask: Attachment,
        paint_by_example_image: Optional[Attachment] = None,
    ) -> InpaintResult:
        request = encoder.encode_inpaint(
            image,
            mask,
            settings,
            cropper_rect,
            extender_rect,
            paint_by_example_image=paint_by_example_image,
        )
        return decoder.decode_inpaint(await self._send(request))

    async def run_plugin(
        self,
        name: str,
        image: Attachment,
        upscale: Optional[Union[int, float]] = None,
        clicks: Optional[Sequence[Sequence[Union[int, float]]]] = None,
    ) -> PluginResult:
        request = encoder.encode_run_plugin(name, image, upscale=upscale, clicks=clicks)
        return decoder.decode_plugin(await self._send(request))

    async def get_server_config(self) -> ServerConfig:
        response = await self._send(encoder.encode_get("/server_config"))
        return decoder.decode_json(response, ServerConfig)

    async def switch_model(self, name: str) -> None:
        decoder.decode_status(await self._send(encoder.encode_switch_model(name)))

    async def current_model(self) -> ModelInfo:
        response = await self._send(encoder.encode_get("/model"))
        return decoder.decode_json(response, ModelInfo)

    async def fetch_model_infos(self) -> List[ModelInfo]:
        response = await self._send(encoder.encode_get("/models"))
        return decoder.decode_json(response, List[ModelInfo])

    async def model_downloaded(self, name: str) -> bool:
        response = await self._send(encoder.encode_get(encoder.model_downloaded_path(name)))
        return decoder.decode_flag(response)

    async def get_media_file(self, tab: str, filename: str) -> MediaFile:
        response = await self._send(encoder.encode_get(encoder.media_path(tab, filename)))
        return decoder.decode_media(response, filename)

    async def get_medias(self, tab: str) -> List[Filename]:
        response = await self._send(encoder.encode_get(encoder.medias_path(tab)))
        return decoder.decode_json(response, List[Filename])

    async def download_to_output(self, image: bytes, filename: str, mime_type: str) -> None:
        """Asks the backend to store an image in its output directory."""
        attachment = Attachment(filename=filename, content=image, content_type=mime_type)
        request = encoder.encode_save_image(attachment, filename)
        decoder.decode_status(await self._send(request))
