import mimetypes
import os
import aiofiles
from datetime import datetime
from typing import Optional
from iopaint_client.core.config import settings
from iopaint_client.schemas import Attachment, ImageHandle, MediaFile

class StorageService:
    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = base_dir or settings.OUTPUT_DIR

    def _get_day_dir(self):
        date_str = datetime.now().strftime("%Y-%m-%d")
        return os.path.join(self.base_dir, date_str)

    async def _write(self, filename: str, content: bytes) -> str:
        day_dir = self._get_day_dir()
        os.makedirs(day_dir, exist_ok=True)
        filepath = os.path.join(day_dir, os.path.basename(filename))
        async with aiofiles.open(filepath, "wb") as f:
            await f.write(content)
        return filepath

    async def save_image(self, image: ImageHandle, stem: str) -> str:
        """Saves a result image, returns local path."""
        extension = mimetypes.guess_extension(image.content_type) or ".png"
        return await self._write(f"{stem}{extension}", image.content)

    async def save_media(self, media: MediaFile) -> str:
        return await self._write(media.filename, media.content)

async def load_attachment(path: str, content_type: Optional[str] = None) -> Attachment:
    """Reads a local file into an Attachment, guessing its content type."""
    async with aiofiles.open(path, "rb") as f:
        content = await f.read()
    if content_type is None:
        content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Attachment(filename=os.path.basename(path), content=content, content_type=content_type)

storage_service = StorageService()
