from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional


class OPDCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)  # unique, e.g. "DISDIK"
    description: Optional[str] = None

    @field_validator('name', 'code', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class OPDUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    code: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None  # explicit null clears it

    @field_validator('name', 'code', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('name', 'code')
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v


class OPDOut(BaseModel):
    id: int
    name: str
    code: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
