"""
Builds the multipart field sets sent to the IOPaint backend.

Every function here is pure: it maps typed inputs to a WireRequest and
never touches the network. Values are always sent as strings, the way a
browser FormData would send them:
- booleans as "true" / "false"
- numbers as their shortest decimal form ("50", "7.5", "0.75")
- nested records (FreeU) as one JSON string
"""
import json
import math
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple, Union
from urllib.parse import quote

from iopaint_client.schemas import (
    Attachment,
    InpaintSettings,
    PowerPaintTask,
    Rect,
    WireRequest,
)

# High resolution strategy, fixed by the protocol
HD_STRATEGY = "Crop"
HD_STRATEGY_CROP_MARGIN = 128
HD_STRATEGY_CROP_TRIGGER_SIZE = 640
HD_STRATEGY_RESIZE_LIMIT = 2048

# Tells the backend to pick a random seed
RANDOM_SEED = -1

# Left unescaped by encodeURIComponent, on top of quote's defaults
MEDIA_SAFE_CHARS = "!~*'()"

Field = Tuple[str, Union[str, Attachment]]


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def format_number(value: Union[int, float]) -> str:
    if isinstance(value, bool):
        raise TypeError("booleans must go through format_bool")
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, float):
        # repr is the shortest round-trip form, Decimal drops its exponent
        return format(Decimal(repr(value)), "f")
    return str(value)


def format_json(value) -> str:
    return json.dumps(value, separators=(",", ":"))


def normalize_settings(settings: InpaintSettings) -> InpaintSettings:
    """
    Applies cross-field rules before encoding. The extender only works
    with the outpainting task, so it overrides whatever task was picked.
    """
    if settings.use_extender and settings.powerpaint_task != PowerPaintTask.OUTPAINTING:
        return settings.model_copy(update={"powerpaint_task": PowerPaintTask.OUTPAINTING})
    return settings


def _rect_fields(prefix: str, enabled: bool, rect: Rect) -> List[Field]:
    return [
        (f"use{prefix.capitalize()}", format_bool(enabled)),
        (f"{prefix}X", format_number(rect.x)),
        (f"{prefix}Y", format_number(rect.y)),
        (f"{prefix}Height", format_number(rect.height)),
        (f"{prefix}Width", format_number(rect.width)),
    ]


def encode_inpaint(
    image: Attachment,
    mask: Attachment,
    settings: InpaintSettings,
    cropper_rect: Rect,
    extender_rect: Rect,
    paint_by_example_image: Optional[Attachment] = None,
) -> WireRequest:
    settings = normalize_settings(settings)

    fields: List[Field] = [
        ("image", image),
        ("mask", mask),
        ("ldmSteps", format_number(settings.ldm_steps)),
        ("ldmSampler", settings.ldm_sampler.value),
        ("zitsWireframe", format_bool(settings.zits_wireframe)),
        ("hdStrategy", HD_STRATEGY),
        ("hdStrategyCropMargin", format_number(HD_STRATEGY_CROP_MARGIN)),
        ("hdStrategyCropTrigerSize", format_number(HD_STRATEGY_CROP_TRIGGER_SIZE)),
        ("hdStrategyResizeLimit", format_number(HD_STRATEGY_RESIZE_LIMIT)),
        ("prompt", settings.prompt),
        ("negativePrompt", settings.negative_prompt),
    ]
    fields += _rect_fields("croper", settings.use_cropper, cropper_rect)
    fields += _rect_fields("extender", settings.use_extender, extender_rect)

    seed = settings.seed if settings.seed_fixed else RANDOM_SEED
    fields += [
        ("sdMaskBlur", format_number(settings.sd_mask_blur)),
        ("sdStrength", format_number(settings.sd_strength)),
        ("sdSteps", format_number(settings.sd_steps)),
        ("sdGuidanceScale", format_number(settings.sd_guidance_scale)),
        ("sdSampler", settings.sd_sampler),
        ("sdSeed", format_number(seed)),
        ("sdMatchHistograms", format_bool(settings.sd_match_histograms)),
        ("sdScale", format_number(settings.sd_scale / 100)),
        ("enableFreeu", format_bool(settings.enable_freeu)),
        ("freeuConfig", format_json(settings.freeu_config.model_dump())),
        ("enableLCMLora", format_bool(settings.enable_lcm_lora)),
        ("cv2Radius", format_number(settings.cv2_radius)),
        ("cv2Flag", settings.cv2_flag.value),
    ]

    if paint_by_example_image is not None:
        fields.append(("paintByExampleImage", paint_by_example_image))

    # InstructPix2Pix
    fields.append(("p2pImageGuidanceScale", format_number(settings.p2p_image_guidance_scale)))

    # ControlNet
    fields += [
        ("enable_controlnet", format_bool(settings.enable_controlnet)),
        ("controlnet_conditioning_scale", format_number(settings.controlnet_conditioning_scale)),
    ]
    if settings.controlnet_method is not None:
        fields.append(("controlnet_method", settings.controlnet_method))

    # PowerPaint
    fields.append(("powerpaintTask", settings.powerpaint_task.value))

    return WireRequest(method="POST", path="/inpaint", fields=fields)


def encode_run_plugin(
    name: str,
    image: Attachment,
    upscale: Optional[Union[int, float]] = None,
    clicks: Optional[Sequence[Sequence[Union[int, float]]]] = None,
) -> WireRequest:
    fields: List[Field] = [("name", name), ("image", image)]
    # 0 means "no upscale", same as leaving it out
    if upscale:
        fields.append(("upscale", format_number(upscale)))
    if clicks is not None:
        fields.append(("clicks", format_json([list(click) for click in clicks])))
    return WireRequest(method="POST", path="/run_plugin", fields=fields)


def encode_switch_model(name: str) -> WireRequest:
    return WireRequest(method="POST", path="/model", fields=[("name", name)])


def encode_save_image(image: Attachment, filename: str) -> WireRequest:
    return WireRequest(
        method="POST",
        path="/save_image",
        fields=[("image", image), ("filename", filename)],
    )


def encode_get(path: str) -> WireRequest:
    return WireRequest(method="GET", path=path)


def model_downloaded_path(name: str) -> str:
    return f"/model_downloaded/{name}"


def media_path(tab: str, filename: str) -> str:
    return f"/media/{tab}/{quote(filename, safe=MEDIA_SAFE_CHARS)}"


def medias_path(tab: str) -> str:
    return f"/medias/{tab}"

