"""Page loaders — the data behind each page, behind the auth guards.

Learn: Each page is a loader wrapped by require_auth/optional_auth.
Collections and create only need to know who the user is; the gallery
also lists the user's uploaded images. Images belong to local accounts,
so users signed in through GitHub or PocketBase see an empty gallery.
"""

from fastapi import APIRouter, Depends, Request

from holocard.auth.guard import optional_auth, require_auth
from holocard.auth.models import CurrentUser
from holocard.services.image_service import ImageService

router = APIRouter()


async def _load_gallery(request: Request, user: CurrentUser) -> dict:
    if user.provider != "local":
        return {"user": user.to_dict(), "images": []}

    settings = request.app.state.settings
    async with request.app.state.session_factory() as db:
        paths = await ImageService(db, settings.upload_dir).list_paths(int(user.id))
    return {
        "user": user.to_dict(),
        "images": [{"imagePath": path} for path in paths],
    }


def _load_upload_form(request: Request, user: CurrentUser) -> dict:
    settings = request.app.state.settings
    return {
        "user": user.to_dict(),
        "maxBytes": settings.max_upload_bytes,
        "allowedTypes": settings.allowed_image_types,
    }


load_home = optional_auth()
load_collections = require_auth()
load_create = require_auth()
load_gallery = require_auth(_load_gallery)
load_upload_form = require_auth(_load_upload_form)


@router.get("/")
async def home(data: dict = Depends(load_home)):
    return data


@router.get("/collections")
async def collections(data: dict = Depends(load_collections)):
    return data


@router.get("/create")
async def create(data: dict = Depends(load_create)):
    return data


@router.get("/gallery")
async def gallery(data: dict = Depends(load_gallery)):
    return data


@router.get("/upload")
async def upload_form(data: dict = Depends(load_upload_form)):
    return data
