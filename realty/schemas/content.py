from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from datetime import datetime
from typing import Any, List, Optional


def _required_text(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"Field '{field}' is required")
    return value


# Pages


class PageCreate(BaseModel):
    slug: str = Field(..., max_length=255)
    title: str = Field(..., max_length=255)
    content: str
    meta_description: Optional[str] = Field(None, max_length=500)
    active: StrictBool = True

    @field_validator("slug", "title", "content")
    @classmethod
    def not_blank(cls, v, info):
        return _required_text(v, info.field_name)


class PageUpdate(BaseModel):
    slug: Optional[str] = Field(None, max_length=255)
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = None
    meta_description: Optional[str] = Field(None, max_length=500)
    active: Optional[StrictBool] = None

    @field_validator("slug")
    @classmethod
    def slug_not_blank(cls, v):
        if v is not None:
            v = _required_text(v, "slug").strip()
        return v


class PageResponse(BaseModel):
    id: str
    slug: str
    title: str
    content: str
    meta_description: Optional[str] = None
    active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Sections


class SectionCreate(BaseModel):
    page_id: Optional[str] = None
    title: str = Field(..., max_length=255)
    content: str
    section_type: str = Field(..., max_length=50)
    sort_order: int = 0
    active: StrictBool = True
    meta_data: Optional[dict[str, Any]] = None

    @field_validator("title", "content", "section_type")
    @classmethod
    def not_blank(cls, v, info):
        return _required_text(v, info.field_name)


class SectionUpdate(BaseModel):
    page_id: Optional[str] = None
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = None
    section_type: Optional[str] = Field(None, max_length=50)
    sort_order: Optional[int] = None
    active: Optional[StrictBool] = None
    meta_data: Optional[dict[str, Any]] = None


class SectionResponse(BaseModel):
    id: str
    page_id: Optional[str] = None
    page_title: Optional[str] = None
    title: str
    content: str
    section_type: str
    sort_order: int
    active: bool
    meta_data: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SectionOrderItem(BaseModel):
    id: str
    sort_order: int


class SectionSortOrder(BaseModel):
    sections: List[SectionOrderItem] = Field(..., min_length=1)


# Services


class ServiceCreate(BaseModel):
    title: str = Field(..., max_length=255)
    description: str
    icon: str = Field(..., max_length=100)
    color: str = Field(..., max_length=50)
    sort_order: int = 0
    active: StrictBool = True

    @field_validator("title", "description", "icon", "color")
    @classmethod
    def not_blank(cls, v, info):
        return _required_text(v, info.field_name)


class ServiceUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    sort_order: Optional[int] = None
    active: Optional[StrictBool] = None


class ServiceResponse(BaseModel):
    id: str
    title: str
    description: str
    icon: str
    color: str
    sort_order: int
    active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
