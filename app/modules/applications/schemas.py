from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class ApplicationCategory(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class ApplicationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    url: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    category: ApplicationCategory = ApplicationCategory.SECONDARY
    is_public: bool = False
    is_active: bool = True
    display_order: Optional[int] = None  # appended after the last app when omitted


class ApplicationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    url: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    category: Optional[ApplicationCategory] = None
    is_public: Optional[bool] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class ApplicationResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    url: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    category: Optional[str] = None
    is_public: bool = False
    is_active: bool = True
    display_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplicationReorder(BaseModel):
    app_ids: List[str] = Field(..., min_length=1)
