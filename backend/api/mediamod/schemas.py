from datetime import datetime
from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field


MediaStatus = Literal["pending", "approved", "rejected"]


class MediaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    url: str
    author: str
    status: MediaStatus
    created_at: datetime


class ModerateIn(BaseModel):
    # checked against the workflow so a bad value is a 400, not a 422
    status: str = Field(..., min_length=1, description="approved or rejected")


class AllowedTransitionsOut(BaseModel):
    media_id: str
    from_status: MediaStatus
    allowed: List[MediaStatus]


class StatesOut(BaseModel):
    states: List[MediaStatus]
    transitions: Dict[str, List[MediaStatus]]


class ErrorOut(BaseModel):
    error: str
    message: str
