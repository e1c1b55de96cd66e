"""Pydantic response models for rank and leaderboard endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class RankResponse(BaseModel):
    scope: str
    rank: int
    total: int


class AllRanksResponse(BaseModel):
    group: RankResponse
    institute: RankResponse
    university: RankResponse


class LeaderboardEntryResponse(BaseModel):
    position: int
    rank: int
    balance: int
    user_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    avatar: str | None = None
    group_id: int | None = None
    group_name: str | None = None
    institute_id: int | None = None
    institute_name: str | None = None
    is_current_user: bool = False
    is_hidden: bool = False


class LeaderboardResponse(BaseModel):
    scope: str
    entries: list[LeaderboardEntryResponse]
    total: int
    page: int
    per_page: int
    total_pages: int
