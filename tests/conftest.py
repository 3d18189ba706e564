import httpx
import pytest
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from iopaint_client.schemas import Attachment
from iopaint_client.services.iopaint_client import IOPaintClient

API_V1_STR = "/api/v1"
BASE_URL = f"http://testserver{API_V1_STR}"
PNG_BYTES = b"\x89PNG\r\n\x1a\n-fake-png"


class FakeBackend:
    """In-process IOPaint backend recording every form it receives."""

    def __init__(self):
        self.requests = []
        self.seed = "1234"
        self.current = "lama"
        self.models = {
            "lama": {"name": "lama", "path": "lama", "model_type": "inpaint"},
            "runwayml/stable-diffusion-inpainting": {
                "name": "runwayml/stable-diffusion-inpainting",
                "path": "runwayml/stable-diffusion-inpainting",
                "model_type": "diffusers_sd_inpaint",
                "need_prompt": True,
                "support_strength": True,
                "support_outpainting": True,
                "support_controlnet": True,
                "controlnets": ["lllyasviel/control_v11p_sd15_canny"],
            },
        }
        self.downloaded = {"lama"}
        self.plugins = {"RealESRGAN", "InteractiveSeg"}
        self.media = {"image": {"my photo (1).png": b"stored-image"}}
        self.saved = {}
        self.app = self._build_app()

    async def _record(self, request: Request) -> dict:
        form = await request.form()
        fields = {}
        for key, value in form.multi_items():
            if isinstance(value, str):
                fields[key] = value
            else:
                fields[key] = {
                    "filename": value.filename,
                    "content": await value.read(),
                    "content_type": value.content_type,
                }
        self.requests.append({"method": request.method, "path": request.url.path, "form": fields})
        return fields

    def last_form(self) -> dict:
        return self.requests[-1]["form"]

    def _build_app(self) -> FastAPI:
        router = APIRouter()

        @router.post("/inpaint")
        async def inpaint(request: Request):
            fields = await self._record(request)
            if fields.get("prompt") == "fail":
                return PlainTextResponse("model not found", status_code=500)
            headers = {"X-seed": self.seed} if self.seed is not None else {}
            return Response(content=PNG_BYTES, media_type="image/png", headers=headers)

        @router.post("/run_plugin")
        async def run_plugin(request: Request):
            fields = await self._record(request)
            if fields["name"] not in self.plugins:
                return PlainTextResponse(f"Plugin {fields['name']} not found", status_code=422)
            return Response(content=f"plugin:{fields['name']}".encode(), media_type="image/png")

        @router.get("/server_config")
        async def server_config():
            return {
                "plugins": [{"name": name} for name in sorted(self.plugins)],
                "enableFileManager": True,
                "enableAutoSaving": False,
                "enableControlnet": False,
                "controlnetMethod": "lllyasviel/control_v11p_sd15_canny",
                "disableModelSwitch": False,
                "isDesktop": False,
                "samplers": ["DPM++ 2M", "Euler a"],
                "removeBGModel": "briaai/RMBG-1.4",
            }

        @router.post("/model")
        async def switch_model(request: Request):
            fields = await self._record(request)
            if fields["name"] not in self.models:
                return PlainTextResponse("model not found", status_code=404)
            self.current = fields["name"]
            return self.models[self.current]

        @router.get("/model")
        async def current_model():
            return self.models[self.current]

        @router.get("/models")
        async def models():
            return list(self.models.values())

        @router.get("/model_downloaded/{name}")
        async def model_downloaded(name: str):
            return PlainTextResponse(str(name in self.downloaded))

        @router.get("/media/{tab}/{filename}")
        async def media(tab: str, filename: str):
            content = self.media.get(tab, {}).get(filename)
            if content is None:
                return PlainTextResponse(f"{filename} not found", status_code=404)
            return Response(content=content, media_type="image/png")

        @router.get("/medias/{tab}")
        async def medias(tab: str):
            if tab not in self.media:
                return PlainTextResponse(f"Unknown tab {tab}", status_code=400)
            return JSONResponse(
                [
                    {"name": name, "height": 512, "width": 512, "ctime": 1.0, "mtime": 2.0}
                    for name in self.media[tab]
                ]
            )

        @router.post("/save_image")
        async def save_image(request: Request):
            fields = await self._record(request)
            self.saved[fields["filename"]] = fields["image"]["content"]
            return PlainTextResponse("saved")

        app = FastAPI()
        app.include_router(router, prefix=API_V1_STR)
        return app


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client(backend) -> IOPaintClient:
    return IOPaintClient(base_url=BASE_URL, transport=httpx.ASGITransport(app=backend.app))


@pytest.fixture
def image() -> Attachment:
    return Attachment(filename="photo.png", content=b"image-bytes", content_type="image/png")


@pytest.fixture
def mask() -> Attachment:
    return Attachment(filename="mask.png", content=b"mask-bytes", content_type="image/png")
