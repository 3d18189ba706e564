import base64
from enum import Enum
from typing import List, Optional, Any, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field

class PowerPaintTask(str, Enum):
    TEXT_GUIDED = "text-guided"
    SHAPE_GUIDED = "shape-guided"
    OBJECT_REMOVE = "object-remove"
    OUTPAINTING = "outpainting"

class LDMSampler(str, Enum):
    DDIM = "ddim"
    PLMS = "plms"

class CV2Flag(str, Enum):
    INPAINT_NS = "INPAINT_NS"
    INPAINT_TELEA = "INPAINT_TELEA"

class Rect(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: Union[int, float] = 0
    y: Union[int, float] = 0
    width: Union[int, float] = 0
    height: Union[int, float] = 0

class FreeuConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    s1: float = 0.9
    s2: float = 0.2
    b1: float = 1.2
    b2: float = 1.4

class InpaintSettings(BaseModel):
    """Snapshot of the editor settings sent with one inpaint call."""
    model_config = ConfigDict(frozen=True)

    prompt: str = ""
    negative_prompt: str = ""

    # Seed: only sent as-is when seed_fixed, otherwise the backend picks one
    seed: int = 42
    seed_fixed: bool = False

    # Classic (erase) models
    ldm_steps: int = 30
    ldm_sampler: LDMSampler = LDMSampler.PLMS
    zits_wireframe: bool = True
    cv2_radius: int = 5
    cv2_flag: CV2Flag = CV2Flag.INPAINT_NS

    # Crop / extend modes, the backend decides precedence
    use_cropper: bool = False
    use_extender: bool = False

    # Diffusion models
    sd_mask_blur: int = 12
    sd_strength: float = 1.0
    sd_steps: int = 50
    sd_guidance_scale: float = 7.5
    sd_sampler: str = "DPM++ 2M"
    sd_match_histograms: bool = False
    sd_scale: float = 100  # percentage
    enable_freeu: bool = False
    freeu_config: FreeuConfig = Field(default_factory=FreeuConfig)
    enable_lcm_lora: bool = False

    # InstructPix2Pix
    p2p_image_guidance_scale: float = 1.5

    # ControlNet
    enable_controlnet: bool = False
    controlnet_method: Optional[str] = None
    controlnet_conditioning_scale: float = 0.4

    # PowerPaint
    powerpaint_task: PowerPaintTask = PowerPaintTask.TEXT_GUIDED

class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

class WireRequest(BaseModel):
    """
    A request ready for the transport: method, path and the ordered
    multipart entries. Text entries are plain strings, file entries are
    Attachments.
    """
    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    fields: List[Tuple[str, Union[str, Attachment]]] = []

    def names(self) -> List[str]:
        return [name for name, _ in self.fields]

    def get(self, name: str) -> Optional[Union[str, Attachment]]:
        for field_name, value in self.fields:
            if field_name == name:
                return value
        return None

    def multipart(self) -> Optional[List[Tuple[str, Tuple[Any, ...]]]]:
        """httpx `files=` argument; text parts carry no filename."""
        if not self.fields:
            return None
        parts = []
        for name, value in self.fields:
            if isinstance(value, Attachment):
                parts.append((name, (value.filename, value.content, value.content_type)))
            else:
                parts.append((name, (None, value)))
        return parts

class ImageHandle(BaseModel):
    """
    Locally addressable result image. The bytes live as long as the caller
    keeps the handle.
    """
    model_config = ConfigDict(frozen=True)

    content: bytes
    content_type: str = "image/png"

    @property
    def url(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"

class InpaintResult(BaseModel):
    image: ImageHandle
    seed: Optional[int] = None

class PluginResult(BaseModel):
    image: ImageHandle

class MediaFile(BaseModel):
    filename: str
    content: bytes
    content_type: Optional[str] = None

class ModelInfo(BaseModel):
    model_config = ConfigDict(extra="allow", protected_namespaces=())

    name: str
    path: Optional[str] = None
    model_type: Optional[str] = None
    is_single_file_diffusers: bool = False
    need_prompt: bool = False
    controlnets: List[str] = []
    support_strength: bool = False
    support_outpainting: bool = False
    support_controlnet: bool = False
    support_freeu: bool = False
    support_lcm_lora: bool = False

class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    plugins: List[Any] = []
    enableFileManager: bool = False
    enableAutoSaving: bool = False
    enableControlnet: bool = False
    controlnetMethod: Optional[str] = None
    disableModelSwitch: bool = False
    isDesktop: bool = False
    samplers: List[str] = []

class Filename(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    height: Optional[int] = None
    width: Optional[int] = None
    ctime: Optional[float] = None
    mtime: Optional[float] = None
