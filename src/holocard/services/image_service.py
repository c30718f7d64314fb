"""Image service — local uploads for the gallery.

Learn: Files land in settings.upload_dir under a fresh UUID name (the
client's filename only contributes its extension) and the row stores
the public path `/uploads/<name>`, which main.py serves as static files.
"""

import os
import uuid
from pathlib import Path

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from holocard.db.models import Image
from holocard.errors import AppError

logger = structlog.get_logger()

PUBLIC_PREFIX = "/uploads"
DEFAULT_EXTENSION = ".jpg"


class UploadFailed(AppError):
    status_code = 500
    code = "upload/upload-failed"


def _extension(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1]
    return ext.lower() if ext else DEFAULT_EXTENSION


class ImageService:
    """Store uploaded image bytes and list a user's images."""

    def __init__(self, db: AsyncSession, upload_dir: str):
        self.db = db
        self.upload_dir = Path(upload_dir)

    async def save_upload(self, user_id: int, filename: str, data: bytes) -> Image:
        """Write the file and record it. Any I/O or DB failure → UploadFailed."""
        unique_name = f"{uuid.uuid4()}{_extension(filename)}"
        target = self.upload_dir / unique_name

        try:
            await run_in_threadpool(self.upload_dir.mkdir, parents=True, exist_ok=True)
            await run_in_threadpool(target.write_bytes, data)

            image = Image(user_id=user_id, image_path=f"{PUBLIC_PREFIX}/{unique_name}")
            self.db.add(image)
            await self.db.commit()
        except (OSError, SQLAlchemyError) as e:
            await self.db.rollback()
            logger.error("image.upload_failed", user_id=user_id, error=str(e))
            raise UploadFailed("Failed to upload image.")

        logger.info("image.uploaded", user_id=user_id, path=image.image_path)
        return image

    async def list_paths(self, user_id: int) -> list[str]:
        result = await self.db.execute(
            select(Image.image_path).where(Image.user_id == user_id).order_by(Image.id)
        )
        return [path for path in result.scalars().all()]
