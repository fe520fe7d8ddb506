"""
PantryPal Storage Service
Saves uploaded images under UPLOAD_DIR and hands back their public paths
"""

import re
import secrets
import time
from pathlib import Path
from typing import Iterable, List, Optional

import structlog
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.exceptions import ValidationError

logger = structlog.get_logger()

RECIPE_FOLDER = "recipes"
PROFILE_FOLDER = "profile"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(filename: str) -> str:
    """Keep the base name, replacing anything outside [A-Za-z0-9._-]"""
    name = Path(filename or "").name
    name = _UNSAFE_CHARS.sub("-", name).strip(".-")
    return name or "image"


class StorageService:
    """Local-disk image storage served statically at /uploads"""

    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.max_file_size = settings.MAX_FILE_SIZE
        self.allowed_types = settings.allowed_image_types

    def ensure_directories(self) -> None:
        for folder in (RECIPE_FOLDER, PROFILE_FOLDER):
            (self.upload_dir / folder).mkdir(parents=True, exist_ok=True)

    def _check_type(self, upload: UploadFile) -> None:
        if upload.content_type not in self.allowed_types:
            raise ValidationError(f"Unsupported image type: {upload.content_type}")

    @staticmethod
    def _is_empty(upload: UploadFile) -> bool:
        return not upload.filename

    async def save_image(self, upload: UploadFile, folder: str) -> str:
        """Validate and write one image; returns e.g. uploads/recipes/<file>"""
        self._check_type(upload)

        content = await upload.read()
        if len(content) > self.max_file_size:
            raise ValidationError(
                f"File {upload.filename} exceeds the {self.max_file_size // (1024 * 1024)}MB limit"
            )

        stored_name = f"{int(time.time() * 1000)}-{secrets.token_hex(3)}-{sanitize_filename(upload.filename)}"
        destination = self.upload_dir / folder / stored_name

        await run_in_threadpool(destination.parent.mkdir, parents=True, exist_ok=True)
        await run_in_threadpool(destination.write_bytes, content)

        logger.info("Image stored", folder=folder, file=stored_name, size=len(content))
        return f"uploads/{folder}/{stored_name}"

    async def save_images(self, uploads: Optional[List[UploadFile]], folder: str) -> List[str]:
        """Validate the whole batch first, then write every file in order"""
        files = [upload for upload in (uploads or []) if not self._is_empty(upload)]

        if len(files) > settings.MAX_RECIPE_IMAGES:
            raise ValidationError(f"You can upload at most {settings.MAX_RECIPE_IMAGES} images")
        for upload in files:
            self._check_type(upload)

        paths: List[str] = []
        try:
            for upload in files:
                paths.append(await self.save_image(upload, folder))
        except ValidationError:
            self.delete_files(paths)
            raise
        return paths

    async def save_optional_image(self, upload: Optional[UploadFile], folder: str) -> Optional[str]:
        if upload is None or self._is_empty(upload):
            return None
        return await self.save_image(upload, folder)

    def _resolve(self, public_path: str) -> Optional[Path]:
        prefix = "uploads/"
        if not public_path or not public_path.startswith(prefix):
            return None
        candidate = (self.upload_dir / public_path[len(prefix):]).resolve()
        if self.upload_dir.resolve() not in candidate.parents:
            return None
        return candidate

    def delete_files(self, public_paths: Iterable[str]) -> None:
        """Remove stored files; paths outside UPLOAD_DIR are ignored"""
        for public_path in public_paths:
            target = self._resolve(public_path)
            if target is None:
                continue
            target.unlink(missing_ok=True)
            logger.debug("Image removed", path=public_path)


# Global storage service instance
storage_service = StorageService()
