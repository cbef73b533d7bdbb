import base64
import binascii
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from core.auth import Session, current_session, require_admin
from core.config import settings
from core.notifications import CollectingNotifier, request_notifier
from core.service import InventoryService, get_inventory_service
from schemas.inventory import NoticeOut
from schemas.settings import LogoRead

router = APIRouter()

EXT_TO_CONTENT_TYPE = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}


def _check_size(data: bytes) -> None:
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image file is empty")
    if len(data) > settings.logo_max_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Image size must be less than {settings.logo_max_bytes // (1024 * 1024)}MB",
        )


def _data_url_from_upload(data: bytes, filename: str, content_type: str) -> str:
    content_type = (content_type or "").strip().lower()
    ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
    if content_type and content_type != "application/octet-stream" and not content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")
    if not content_type or content_type == "application/octet-stream":
        if ext not in EXT_TO_CONTENT_TYPE:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")
        content_type = EXT_TO_CONTENT_TYPE[ext]
    _check_size(data)
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def _validate_data_url(data_url: str) -> str:
    data_url = data_url.strip()
    prefix, sep, payload = data_url.partition(",")
    if not sep or not prefix.startswith("data:image/") or not prefix.endswith(";base64"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="data_url must be a base64 image data URL",
        )
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="data_url is not valid base64")
    _check_size(raw)
    return data_url


@router.get("/logo", response_model=LogoRead)
async def get_logo(
    session: Session = Depends(current_session),
    inventory: InventoryService = Depends(get_inventory_service),
):
    return LogoRead(logo=await inventory.get_logo())


@router.put("/logo", response_model=LogoRead)
async def upload_logo(
    file: Optional[UploadFile] = File(None),
    data_url: Optional[str] = Form(None),
    session: Session = Depends(require_admin),
    inventory: InventoryService = Depends(get_inventory_service),
    notifier: CollectingNotifier = Depends(request_notifier),
):
    """
    Set the company logo.
    Accepts either a file upload or an image data URL; stored as a data URL.
    """
    if file:
        logo = _data_url_from_upload(await file.read(), file.filename, file.content_type)
    elif data_url:
        logo = _validate_data_url(data_url)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either 'file' or 'data_url' must be provided",
        )

    await inventory.set_logo(logo, session, notifier=notifier)
    return LogoRead(logo=logo, notices=[NoticeOut.from_notice(n) for n in notifier.notices])


@router.delete("/logo", response_model=LogoRead)
async def remove_logo(
    session: Session = Depends(require_admin),
    inventory: InventoryService = Depends(get_inventory_service),
    notifier: CollectingNotifier = Depends(request_notifier),
):
    await inventory.remove_logo(session, notifier=notifier)
    return LogoRead(logo=None, notices=[NoticeOut.from_notice(n) for n in notifier.notices])
