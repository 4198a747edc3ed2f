"""
Pydantic schemas for print profiles.
"""

from pydantic import BaseModel, Field

from check_ledger.models.enums import LayoutMode


class ProfileCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    layout_mode: LayoutMode = LayoutMode.STANDARD
    next_check_number: int = Field(default=1001, ge=1)


class ProfileResponse(BaseModel):
    id: str
    name: str
    layout_mode: LayoutMode
    next_check_number: int

    model_config = {"from_attributes": True}
