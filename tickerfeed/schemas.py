"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from tickerfeed.ranking.candidates import (
    AuthorRef,
    FeedMode,
    ReactionType,
    SymbolRef,
)
from tickerfeed.ranking.scoring import RankingParams, ScoreBreakdown


# ──────────────────────────── Users ───────────────────────────────────────

class UserCreate(BaseModel):
    handle: str = Field(..., min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_]+$")
    display_name: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    handle: str
    display_name: Optional[str]
    bio: Optional[str]
    created_at: datetime


class FollowRequest(BaseModel):
    follower_id: int
    followee_id: int


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    user_id: int
    text: str = Field(..., min_length=1, max_length=2000)
    reply_to_id: Optional[int] = None


class PostResponse(BaseModel):
    id: int
    user_id: int
    text: str
    created_at: datetime
    reply_to_id: Optional[int] = None
    author: Optional[AuthorRef] = None
    symbols: list[SymbolRef] = []
    reaction_counts: dict[ReactionType, int] = {}
    viewer_reactions: list[ReactionType] = []


class ReactRequest(BaseModel):
    user_id: int
    type: ReactionType


class ReactResponse(BaseModel):
    action: Literal["added", "removed"]
    type: ReactionType
    reaction_counts: dict[ReactionType, int]


# ──────────────────────────── Feed ────────────────────────────────────────

class FeedPost(PostResponse):
    """A post in a feed page; score fields are only set in for_you mode."""
    score: Optional[float] = None
    score_breakdown: Optional[ScoreBreakdown] = None


class FeedResponse(BaseModel):
    items: list[FeedPost]
    next_cursor: Optional[str]
    has_more: bool
    mode: FeedMode
    algorithm: str


class FeedDebugResponse(BaseModel):
    user_id: int
    interest_symbols: list[str]
    parameters: RankingParams
    sample_posts: list[FeedPost]
