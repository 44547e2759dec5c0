from pydantic import BaseModel, Field
from typing import Optional


class ImageUpdate(BaseModel):
    alt_text: Optional[str] = Field(None, max_length=255)
    sort_order: Optional[int] = Field(None, ge=0)


class SetMainRequest(BaseModel):
    property_id: str
    image_id: str

