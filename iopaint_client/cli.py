"""Command line access to an IOPaint backend."""
import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import aiofiles

from iopaint_client.core.config import settings
from iopaint_client.core.errors import IOPaintClientError
from iopaint_client.schemas import InpaintSettings, Rect
from iopaint_client.services.iopaint_client import IOPaintClient
from iopaint_client.services.storage import StorageService, load_attachment, storage_service


def parse_rect(value: str) -> Rect:
    parts = value.split(",")
    if len(parts) != 4:
        raise argparse.ArgumentTypeError(f"expected x,y,width,height, got {value!r}")
    try:
        x, y, width, height = (float(part) for part in parts)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid rectangle {value!r}: {exc}") from exc
    return Rect(x=x, y=y, width=width, height=height)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="iopaint-client", description="Talk to an IOPaint backend.")
    parser.add_argument("--backend", default=None, help=f"Backend URL (default: {settings.BACKEND_URL})")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    parser.add_argument("--out", "--output-dir", dest="output_dir", default=None, help="Where results are saved")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("config", help="Show the server configuration")
    sub.add_parser("models", help="List available models")
    sub.add_parser("current-model", help="Show the loaded model")

    switch = sub.add_parser("switch-model", help="Load another model")
    switch.add_argument("name")

    downloaded = sub.add_parser("downloaded", help="Check whether a model is downloaded")
    downloaded.add_argument("name")

    inpaint = sub.add_parser("inpaint", help="Inpaint an image")
    inpaint.add_argument("image", help="Path to the input image")
    inpaint.add_argument("mask", help="Path to the mask image")
    inpaint.add_argument("--settings", dest="settings_file", default=None, help="JSON file with inpaint settings")
    inpaint.add_argument("--prompt", default=None)
    inpaint.add_argument("--negative-prompt", default=None)
    inpaint.add_argument("--seed", type=int, default=None, help="Fixed seed (random when omitted)")
    inpaint.add_argument("--crop", type=parse_rect, default=None, help="Crop region x,y,width,height")
    inpaint.add_argument("--extend", type=parse_rect, default=None, help="Extension region x,y,width,height")
    inpaint.add_argument("--example", default=None, help="Exemplar image for paint-by-example")

    plugin = sub.add_parser("plugin", help="Run a backend plugin on an image")
    plugin.add_argument("name")
    plugin.add_argument("image")
    plugin.add_argument("--upscale", type=float, default=None)
    plugin.add_argument("--clicks", default=None, help='JSON list of points, e.g. "[[10, 20, 1]]"')

    medias = sub.add_parser("medias", help="List files of a media tab")
    medias.add_argument("tab")

    media = sub.add_parser("media", help="Download a file of a media tab")
    media.add_argument("tab")
    media.add_argument("filename")

    save = sub.add_parser("save", help="Store a local image in the backend output directory")
    save.add_argument("image")
    save.add_argument("--filename", default=None)
    return parser


async def build_settings(args: argparse.Namespace) -> InpaintSettings:
    data: Dict[str, Any] = {}
    if args.settings_file:
        async with aiofiles.open(args.settings_file, "r") as f:
            data = json.loads(await f.read())
    if args.prompt is not None:
        data["prompt"] = args.prompt
    if args.negative_prompt is not None:
        data["negative_prompt"] = args.negative_prompt
    if args.seed is not None:
        data["seed"] = args.seed
        data["seed_fixed"] = True
    if args.crop is not None:
        data["use_cropper"] = True
    if args.extend is not None:
        data["use_extender"] = True
    return InpaintSettings.model_validate(data)


def _dump(value: Any) -> str:
    if isinstance(value, list):
        value = [item.model_dump() if hasattr(item, "model_dump") else item for item in value]
    elif hasattr(value, "model_dump"):
        value = value.model_dump()
    return json.dumps(value, indent=2, default=str)


async def run(args: argparse.Namespace) -> str:
    client = IOPaintClient(base_url=args.backend, timeout=args.timeout)
    storage = StorageService(args.output_dir) if args.output_dir else storage_service

    if args.command == "config":
        return _dump(await client.get_server_config())
    if args.command == "models":
        return _dump(await client.fetch_model_infos())
    if args.command == "current-model":
        return _dump(await client.current_model())
    if args.command == "switch-model":
        await client.switch_model(args.name)
        return f"Switched to {args.name}"
    if args.command == "downloaded":
        return _dump(await client.model_downloaded(args.name))
    if args.command == "inpaint":
        image = await load_attachment(args.image)
        mask = await load_attachment(args.mask)
        example = await load_attachment(args.example) if args.example else None
        result = await client.inpaint(
            image,
            await build_settings(args),
            args.crop or Rect(),
            args.extend or Rect(),
            mask,
            paint_by_example_image=example,
        )
        path = await storage.save_image(result.image, f"inpaint_{result.seed if result.seed is not None else 'random'}")
        return _dump({"path": path, "seed": result.seed})
    if args.command == "plugin":
        image = await load_attachment(args.image)
        clicks = json.loads(args.clicks) if args.clicks else None
        result = await client.run_plugin(args.name, image, upscale=args.upscale, clicks=clicks)
        path = await storage.save_image(result.image, f"{args.name}_result")
        return _dump({"path": path})
    if args.command == "medias":
        return _dump(await client.get_medias(args.tab))
    if args.command == "media":
        media = await client.get_media_file(args.tab, args.filename)
        return _dump({"path": await storage.save_media(media)})
    if args.command == "save":
        image = await load_attachment(args.image)
        await client.download_to_output(image.content, args.filename or image.filename, image.content_type)
        return f"Saved {args.filename or image.filename}"
    raise ValueError(f"Unknown command {args.command}")


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    args = _build_parser().parse_args(argv)
    try:
        print(asyncio.run(run(args)))
    except IOPaintClientError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
