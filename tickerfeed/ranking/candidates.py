"""
Candidate source contract for the feed ranking core.

The ranking core never talks to the database directly. It asks a
``CandidateStore`` for bounded, already-materialised result sets:

  fetch_following_candidates   — posts by followed authors, newest first
  fetch_recent_candidates      — the for_you window (no hidden, no replies)
  fetch_user_recent_posts      — the user's own posts, for interest mining
  fetch_user_recent_reactions  — the user's reactions, for interest mining

``tickerfeed.ranking.store.SqlCandidateStore`` is the SQLAlchemy
implementation; tests plug in an in-memory fake.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

from pydantic import BaseModel, Field


class ReactionType(str, Enum):
    LIKE = "LIKE"
    BOOST = "BOOST"
    BOOKMARK = "BOOKMARK"


class SymbolKind(str, Enum):
    STOCK = "STOCK"
    CRYPTO = "CRYPTO"


class FeedMode(str, Enum):
    FOR_YOU = "for_you"
    FOLLOWING = "following"


class SymbolRef(BaseModel):
    ticker: str
    # None when a bare 2-5 letter token could be either a stock or a coin
    kind: Optional[SymbolKind] = None
    exchange: Optional[str] = None


class AuthorRef(BaseModel):
    id: int
    handle: str
    display_name: Optional[str] = None
    bio: Optional[str] = None


class CandidatePost(BaseModel):
    """A post as seen by the ranking core, with its live reaction aggregate."""

    id: int
    user_id: int
    text: str
    created_at: datetime
    author: Optional[AuthorRef] = None
    symbols: list[SymbolRef] = Field(default_factory=list)
    reaction_counts: dict[ReactionType, int] = Field(default_factory=dict)
    viewer_reactions: list[ReactionType] = Field(default_factory=list)
    reply_to_id: Optional[int] = None

    @property
    def tickers(self) -> list[str]:
        return [s.ticker for s in self.symbols]


class ReactionRecord(BaseModel):
    """One of a user's reactions, joined to the reacted post's tickers."""

    post_id: int
    user_id: int
    type: ReactionType
    created_at: Optional[datetime] = None
    post_tickers: list[str] = Field(default_factory=list)


class CandidateStore(Protocol):
    async def fetch_following_candidates(
        self,
        user_id: int,
        before: Optional[datetime],
        limit: int,
    ) -> list[CandidatePost]:
        ...

    async def fetch_recent_candidates(
        self,
        since: datetime,
        before: Optional[datetime],
        max_rows: int,
        before_id: Optional[int] = None,
    ) -> list[CandidatePost]:
        """
        Newest first. Without ``before_id`` the upper bound is
        ``created_at <= before``; with it, rows strictly older than
        ``(before, before_id)`` in (created_at, id) order.
        """
        ...

    async def fetch_user_recent_posts(
        self,
        user_id: int,
        since: datetime,
        max_rows: int,
    ) -> list[CandidatePost]:
        ...

    async def fetch_user_recent_reactions(
        self,
        user_id: int,
        max_rows: int,
    ) -> list[ReactionRecord]:
        ...
