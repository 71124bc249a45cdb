"""QR code display - the single active QR image guests scan to open the menu."""

import io
import logging
from typing import Optional

import qrcode
import qrcode.image.svg
from sqlalchemy import select
from sqlalchemy.orm import Session

from digital_menu.core.config import settings
from digital_menu.core.exceptions import NotFoundError
from digital_menu.db.session import transaction
from digital_menu.models.qr import QRCode
from digital_menu.services.blob_storage import BlobStore, delete_quietly, validate_image

logger = logging.getLogger(__name__)

QR_FOLDER = "qr-codes"


def render_qr(url: str, fmt: str = "png") -> bytes:
    """Render ``url`` as a QR image (PNG or SVG bytes)."""
    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(url)
    qr.make(fit=True)

    buffer = io.BytesIO()
    if fmt == "svg":
        img = qr.make_image(image_factory=qrcode.image.svg.SvgPathImage)
        img.save(buffer)
    else:
        img = qr.make_image(fill_color="black", back_color="white")
        img.save(buffer, format="PNG")
    return buffer.getvalue()


class QRCodeService:
    def __init__(self, db: Session, store: BlobStore):
        self.db = db
        self.store = store

    def _active(self) -> Optional[QRCode]:
        stmt = select(QRCode).where(QRCode.is_active.is_(True)).order_by(QRCode.id.desc()).limit(1)
        return self.db.scalars(stmt).first()

    def get_active(self) -> QRCode:
        qr = self._active()
        if qr is None:
            raise NotFoundError("QR code")
        return qr

    def _activate(self, data: bytes, filename: str, content_type: str) -> QRCode:
        blob = self.store.upload(data, filename, content_type, QR_FOLDER)

        previous = None
        try:
            with transaction(self.db):
                # Flush the deactivation before inserting so only one row is ever active
                for old in self.db.scalars(select(QRCode).where(QRCode.is_active.is_(True))):
                    old.is_active = False
                    previous = previous or old
                self.db.flush()
                qr = QRCode(image_url=blob.url, public_id=blob.handle, is_active=True)
                self.db.add(qr)
        except Exception:
            delete_quietly(self.store, blob.handle)
            raise

        if previous is not None:
            delete_quietly(self.store, previous.public_id)
        self.db.refresh(qr)
        logger.info(f"QR code {qr.id} activated ({blob.url})")
        return qr

    def upload(self, data: bytes, filename: str, content_type: Optional[str]) -> QRCode:
        validate_image(data, content_type, settings.qr_max_upload_size_bytes)
        return self._activate(data, filename, content_type)

    def generate(self, url: str, fmt: str = "png") -> QRCode:
        content_type = "image/svg+xml" if fmt == "svg" else "image/png"
        return self._activate(render_qr(url, fmt), f"qr.{fmt}", content_type)
