"""QR code schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class QRCodeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    image_url: str
    public_id: str
    is_active: bool
    created_at: Optional[datetime] = None


class QRCodeGenerateRequest(BaseModel):
    """Render a QR code pointing at ``url`` instead of uploading an image."""

    url: str = Field(min_length=1, max_length=2048)
    format: Literal["png", "svg"] = "png"
