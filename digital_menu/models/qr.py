"""QR code image shown to guests."""

from sqlalchemy import Boolean, Column, Integer, String

from digital_menu.db.base import Base, TimestampMixin


class QRCode(TimestampMixin, Base):
    """Uploaded QR code image. At most one row is active at a time."""
    __tablename__ = "qr_codes"

    id = Column(Integer, primary_key=True, index=True)
    image_url = Column(String(500), nullable=False)
    public_id = Column(String(255), nullable=False)  # blob-store handle
    is_active = Column(Boolean, nullable=False, default=True, index=True)
