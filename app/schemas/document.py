from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import List, Optional

from app.models.enums import DocumentType


class DocumentCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    # storage reference
    file_path: str
    file_name: str
    file_size: int = Field(..., gt=0)
    document_type: DocumentType
    mime_type: str
    opd_id: int
    uploaded_by: int
    created_date: Optional[datetime] = None
    tags: Optional[str] = None  # comma-separated
    is_public: bool = False

    @field_validator('title', 'tags', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class DocumentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    opd_id: Optional[int] = None
    created_date: Optional[datetime] = None
    tags: Optional[str] = None
    is_public: Optional[bool] = None

    @field_validator('title', 'tags', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('title', 'opd_id', 'is_public')
    @classmethod
    def not_null(cls, v):
        # Only runs for fields present in the payload
        if v is None:
            raise ValueError("cannot be null")
        return v


class DocumentFilters(BaseModel):
    q: Optional[str] = None  # title/description/tags, case-insensitive
    opd_id: Optional[int] = None
    document_type: Optional[DocumentType] = None
    date_from: Optional[datetime] = None  # inclusive, on upload_date
    date_to: Optional[datetime] = None    # inclusive, on upload_date
    tags: Optional[str] = None
    include_private: bool = False


class DocumentOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    file_path: str
    file_name: str
    file_size: int
    document_type: DocumentType
    mime_type: str
    opd_id: int
    uploaded_by: int
    upload_date: datetime
    created_date: Optional[datetime] = None
    tags: Optional[str] = None
    is_public: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DocumentPage(BaseModel):
    items: List[DocumentOut]
    total: int
    page: int
    limit: int
