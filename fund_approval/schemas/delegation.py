"""
Delegation Schemas
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime


class DelegationCreate(BaseModel):
    """Create a delegation (times are UTC; naive values are taken as UTC)"""
    to_user_id: int = Field(gt=0)
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode='after')
    def validate_window(self):
        """Ensure the window is not empty"""
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class DelegationResponse(BaseModel):
    id: int
    from_user_id: int
    to_user_id: int
    starts_at: datetime
    ends_at: datetime
    created_at: datetime
    is_revoked: bool
    reason: Optional[str] = None

    class Config:
        from_attributes = True
