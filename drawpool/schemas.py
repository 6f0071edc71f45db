from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, field_validator


class ClaimNumberRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    number: StrictInt = Field(..., description="Draw number to claim.")
    topic_id: Optional[str] = Field(None, alias="topicId", description="Competition bucket.")
    user_name: Optional[str] = Field(None, alias="userName", max_length=64)

    @field_validator("topic_id", mode="before")
    @classmethod
    def normalize_topic_id(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ValueError("topicId must be an integer or a string.")
        value = str(value).strip()
        return value or None

    @field_validator("user_name", mode="before")
    @classmethod
    def normalize_user_name(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("userName must be a string.")
        return value.strip() or None


class ClaimNumberResponse(BaseModel):
    success: bool
    message: str
    number: Optional[int] = None


class ResetRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    is_admin: StrictBool = Field(False, alias="isAdmin")


class StatusResponse(BaseModel):
    success: bool
    message: str


class UsedNumbersResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    used_numbers: List[int] = Field(..., alias="usedNumbers")


class DrawRecordsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic_drawers: Dict[str, List[str]] = Field(..., alias="topicDrawers")
    topic_numbers: Dict[str, Dict[str, int]] = Field(..., alias="topicNumbers")


class PoolConfigResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pool_min: int = Field(..., alias="poolMin")
    pool_max: int = Field(..., alias="poolMax")
