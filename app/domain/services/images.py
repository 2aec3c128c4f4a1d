import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Sequence

from fastapi import UploadFile
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from app.domain.errors import InvalidInputError

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class StoredImage(BaseModel):
    url: str
    filename: str
    content_type: str
    size: int

    model_config = {"frozen": True}


class ImageProcessor(ABC):
    """Stores uploaded images and returns descriptors with public URLs."""

    def validate(self, files: Sequence[UploadFile]) -> None:
        for f in files:
            if (f.content_type or "") not in _EXTENSIONS:
                raise InvalidInputError(
                    f"Unsupported image type for '{f.filename}'",
                    details={"filename": f.filename, "content_type": f.content_type},
                )

    @abstractmethod
    async def process_many(self, files: Sequence[UploadFile]) -> List[StoredImage]:
        ...

    @abstractmethod
    async def discard(self, stored: Sequence[StoredImage]) -> None:
        """Remove images stored for a write that did not go through."""


class LocalImageProcessor(ImageProcessor):
    """Writes uploads under `upload_dir`; URLs are `url_prefix/<name>`."""

    def __init__(self, upload_dir: str, url_prefix: str):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def _write(self, name: str, content: bytes) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        (self.upload_dir / name).write_bytes(content)

    def _remove(self, names: List[str]) -> None:
        for name in names:
            (self.upload_dir / name).unlink(missing_ok=True)

    async def process_many(self, files: Sequence[UploadFile]) -> List[StoredImage]:
        self.validate(files)
        stored: List[StoredImage] = []
        try:
            for f in files:
                content = await f.read()
                name = uuid.uuid4().hex + _EXTENSIONS[f.content_type]
                await run_in_threadpool(self._write, name, content)
                stored.append(StoredImage(
                    url=f"{self.url_prefix}/{name}",
                    filename=name,
                    content_type=f.content_type,
                    size=len(content),
                ))
        except Exception:
            # a partial batch is never left behind
            await self.discard(stored)
            raise
        logger.info("images stored count=%s dir=%s", len(stored), self.upload_dir)
        return stored

    async def discard(self, stored: Sequence[StoredImage]) -> None:
        if not stored:
            return
        await run_in_threadpool(self._remove, [img.filename for img in stored])
        logger.info("images discarded count=%s dir=%s", len(stored), self.upload_dir)
