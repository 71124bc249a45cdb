"""QR code display routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile, status

from digital_menu.core.rbac import RequireManager
from digital_menu.db.session import DbSession
from digital_menu.schemas.qr import QRCodeGenerateRequest, QRCodeOut
from digital_menu.services.blob_storage import BlobStore, get_blob_store
from digital_menu.services.qr_service import QRCodeService

router = APIRouter()

Store = Annotated[BlobStore, Depends(get_blob_store)]


def _qr(qr) -> dict:
    return QRCodeOut.model_validate(qr).model_dump(mode="json")


@router.get("")
def get_qr_code(db: DbSession, store: Store):
    """The QR code guests currently see."""
    qr = QRCodeService(db, store).get_active()
    return {"success": True, "qrCode": _qr(qr)}


@router.post("/upload", status_code=status.HTTP_201_CREATED)
def upload_qr_code(
    db: DbSession,
    store: Store,
    current_user: RequireManager,
    image: UploadFile = File(...),
):
    """Replace the active QR code with an uploaded image."""
    qr = QRCodeService(db, store).upload(image.file.read(), image.filename or "qr", image.content_type)
    return {"success": True, "msg": "QR code uploaded successfully", "qrCode": _qr(qr)}


@router.post("/generate", status_code=status.HTTP_201_CREATED)
def generate_qr_code(body: QRCodeGenerateRequest, db: DbSession, store: Store, current_user: RequireManager):
    """Render a QR code for a menu URL and make it the active one."""
    qr = QRCodeService(db, store).generate(body.url, body.format)
    return {"success": True, "msg": "QR code generated successfully", "qrCode": _qr(qr)}
