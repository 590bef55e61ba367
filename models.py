from typing import Optional
from pydantic import BaseModel, Field, field_validator

import config

class DraperizePayload(BaseModel):
    """Request model for encoding a value."""
    value: int = Field(..., ge=0)
    spin: int = config.SPIN
    length: int = Field(config.LENGTH, ge=0, le=config.MAX_LENGTH)
    strict: bool = config.STRICT
    drawn: bool = config.DRAWN_TABLES

class DraperizeResponse(BaseModel):
    encoded: str
    spin: int
    length: int

class UndraperizePayload(BaseModel):
    """Request model for decoding a value."""
    encoded: str = Field(..., max_length=64)
    spin: int = config.SPIN
    length: Optional[int] = Field(None, ge=0, le=64)
    drawn: bool = config.DRAWN_TABLES

    @field_validator('encoded')
    def validate_encoded(cls, v):
        return v.strip()

class UndraperizeResponse(BaseModel):
    decoded: str
    value: int

class RecordCreatePayload(BaseModel):
    """Request model for creating records."""
    label: Optional[str] = Field(None, max_length=200)
    source_value: Optional[int] = Field(None, ge=0)

class RecordResponse(BaseModel):
    """Response model for a stored record."""
    public_id: str
    source_value: int
    label: Optional[str] = None
    created_at: str
