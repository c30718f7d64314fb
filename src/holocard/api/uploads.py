"""Image upload form action.

POST /upload (multipart, field `image`) stores the file for the signed-in
local user and redirects to the gallery. Anonymous posts go to the login
page; every failure after that answers {"error": "..."}.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from holocard.api.deps import get_settings
from holocard.auth.guard import get_auth_user
from holocard.config import Settings
from holocard.db.engine import get_db
from holocard.errors import AppError, ValidationFailed
from holocard.services.image_service import ImageService

router = APIRouter()


@router.post("/upload")
async def upload_image(
    request: Request,
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = get_auth_user(request)
    if user is None:
        return RedirectResponse(url="/auth/login", status_code=303)
    if user.provider != "local":
        raise AppError(
            "Image uploads require a local account",
            code="upload/forbidden",
            status_code=403,
        )

    if image is None or not image.filename:
        raise ValidationFailed("No image file provided.", code="upload/missing-file")

    if image.content_type not in settings.allowed_image_types:
        raise ValidationFailed(
            "Unsupported file type. Use JPEG, PNG, WebP or GIF.",
            code="upload/invalid-type",
        )

    data = await image.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise ValidationFailed(
            f"File is larger than {limit_mb}MB.",
            code="upload/file-too-large",
        )

    await ImageService(db, settings.upload_dir).save_upload(int(user.id), image.filename, data)
    return RedirectResponse(url="/gallery", status_code=303)
