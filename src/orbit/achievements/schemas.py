"""Pydantic request/response models for achievement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from orbit.db.models import MAX_CANCELLATION_REASON_LENGTH


# --- Catalog ---


class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str
    category: str
    rarity: str
    reward: int
    hidden_icon_path: str
    opened_icon_path: str
    sputnik_requirement: str
    student_requirement: str
    hint: str | None = None
    rofl_description: str | None = None


class CatalogEntryResponse(AchievementResponse):
    unlocked_count: int = 0
    is_unlocked: bool = False


class CatalogResponse(BaseModel):
    achievements: list[CatalogEntryResponse]


# --- Awards ---


class UserBriefResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: str
    avatar: str | None = None


class IssuedAchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    achievement: AchievementResponse
    issuer: UserBriefResponse
    student: UserBriefResponse
    reward: int
    is_canceled: bool
    cancellation_reason: str | None = None
    canceler: UserBriefResponse | None = None
    created_at: datetime
    updated_at: datetime


class IssuedAchievementListResponse(BaseModel):
    items: list[IssuedAchievementResponse]
    total: int


class IssueRequest(BaseModel):
    student_id: str
    achievement_id: str


class CancelRequest(BaseModel):
    issued_achievement_id: str
    reason: str = Field(..., max_length=MAX_CANCELLATION_REASON_LENGTH)


class MarkSeenRequest(BaseModel):
    ids: list[str]


class MarkSeenResponse(BaseModel):
    updated: int


# --- Audit ---


class OperationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    actor_id: str
    issued_achievement_id: str
    created_at: datetime
    student_id: str
    achievement_id: str
    reward: int


class OperationListResponse(BaseModel):
    operations: list[OperationResponse]
    total: int
    page: int
    per_page: int
    total_pages: int
