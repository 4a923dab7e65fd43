from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from app.core.config import settings
from app.models.breweries import DEFAULT_IMAGE

logger = logging.getLogger(__name__)

UPLOADS_DIR = "breweries/uploads"

ALLOWED_IMAGE_TYPES: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
    "image/svg+xml": ".svg",
    "image/webp": ".webp",
}


@dataclass
class UploadedImage:
    filename: str
    content_type: str
    content: bytes

    @property
    def size_kb(self) -> float:
        return len(self.content) / 1024


def validate_image(image: UploadedImage, *, max_kb: int | None = None) -> list[str]:
    """Return the problems with an upload; empty list means it is acceptable."""
    limit = settings.max_image_kb if max_kb is None else max_kb
    errors: list[str] = []
    if image.content_type not in ALLOWED_IMAGE_TYPES:
        errors.append("The image must be a file of type: jpeg, png, bmp, gif, svg, webp.")
    if image.size_kb > limit:
        errors.append(f"The image may not be greater than {limit} kilobytes.")
    return errors


class LocalImageStorage:
    """Public file area on local disk.

    Stored references are POSIX paths relative to the root, e.g.
    ``breweries/uploads/3f2a....png``; they are served under ``/storage``.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        if not self.root.exists():
            self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def is_default(path: str | None) -> bool:
        return not path or path == DEFAULT_IMAGE

    def _resolve(self, path: str) -> Path:
        rel = PurePosixPath(path)
        if rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"Refusing to touch path outside storage: {path!r}")
        return self.root.joinpath(*rel.parts)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def store(self, image: UploadedImage, directory: str = UPLOADS_DIR) -> str:
        ext = ALLOWED_IMAGE_TYPES.get(image.content_type) or Path(image.filename).suffix.lower()
        rel = f"{directory.strip('/')}/{uuid.uuid4().hex}{ext}"
        target = self._resolve(rel)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(image.content)
        logger.info("Stored image %s (%d bytes)", rel, len(image.content))
        return rel

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.is_file():
            logger.warning("Image %s not found, nothing to delete", path)
            return False
        target.unlink()
        logger.info("Deleted image %s", path)
        return True


def get_storage() -> LocalImageStorage:
    return LocalImageStorage(settings.storage_dir)
