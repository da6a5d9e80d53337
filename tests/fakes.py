"""
In-memory stand-ins for the storage side of the feed.

FakeCandidateStore answers the four CandidateStore calls from plain lists
with the same filters and ordering the SQL store applies, and records each
call so tests can assert on limits and windows.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from tickerfeed.ranking.candidates import (
    AuthorRef,
    CandidatePost,
    ReactionRecord,
    ReactionType,
    SymbolRef,
)

NOW = datetime(2026, 3, 2, 15, 0, 0, tzinfo=timezone.utc)


def make_post(
    post_id: int,
    *,
    user_id: int = 2,
    age: timedelta = timedelta(0),
    tickers: tuple[str, ...] = (),
    likes: int = 0,
    boosts: int = 0,
    bookmarks: int = 0,
    reply_to_id: Optional[int] = None,
    now: datetime = NOW,
) -> CandidatePost:
    return CandidatePost(
        id=post_id,
        user_id=user_id,
        text=" ".join(f"${t}" for t in tickers) or f"post {post_id}",
        created_at=now - age,
        author=AuthorRef(id=user_id, handle=f"user{user_id}"),
        symbols=[SymbolRef(ticker=t) for t in tickers],
        reaction_counts={
            ReactionType.LIKE: likes,
            ReactionType.BOOST: boosts,
            ReactionType.BOOKMARK: bookmarks,
        },
        reply_to_id=reply_to_id,
    )


def make_reaction(
    user_id: int,
    post_id: int,
    tickers: tuple[str, ...] = (),
    *,
    type: ReactionType = ReactionType.LIKE,
    age: timedelta = timedelta(0),
) -> ReactionRecord:
    return ReactionRecord(
        post_id=post_id,
        user_id=user_id,
        type=type,
        created_at=NOW - age,
        post_tickers=list(tickers),
    )


def _newest_first(posts):
    return sorted(posts, key=lambda p: (p.created_at, p.id), reverse=True)


class FakeCandidateStore:
    def __init__(self, posts=(), reactions=(), follows=(), hidden=()) -> None:
        self.posts = list(posts)
        self.reactions = list(reactions)
        self.follows = set(follows)        # (follower_id, followee_id)
        self.hidden = set(hidden)          # post ids
        self.calls: list[tuple] = []

    async def fetch_following_candidates(self, user_id, before, limit):
        self.calls.append(("following", user_id, before, limit))
        followees = {b for a, b in self.follows if a == user_id}
        rows = [
            p for p in self.posts
            if p.user_id in followees
            and p.id not in self.hidden
            and (before is None or p.created_at < before)
        ]
        return _newest_first(rows)[:limit]

    async def fetch_recent_candidates(self, since, before, max_rows, before_id=None):
        self.calls.append(("recent", since, before, max_rows, before_id))

        def below(p):
            if before is None:
                return True
            if before_id is None:
                return p.created_at <= before
            return (p.created_at, p.id) < (before, before_id)

        rows = [
            p for p in self.posts
            if p.created_at >= since
            and below(p)
            and p.id not in self.hidden
            and p.reply_to_id is None
        ]
        return _newest_first(rows)[:max_rows]

    async def fetch_user_recent_posts(self, user_id, since, max_rows):
        self.calls.append(("user_posts", user_id, since, max_rows))
        rows = [p for p in self.posts if p.user_id == user_id and p.created_at >= since]
        return _newest_first(rows)[:max_rows]

    async def fetch_user_recent_reactions(self, user_id, max_rows):
        self.calls.append(("user_reactions", user_id, max_rows))
        rows = [r for r in self.reactions if r.user_id == user_id]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[:max_rows]


class FailingStore(FakeCandidateStore):
    """Every candidate fetch blows up the way a dropped DB connection would."""

    async def fetch_following_candidates(self, user_id, before, limit):
        raise ConnectionError("database unavailable")

    async def fetch_recent_candidates(self, since, before, max_rows, before_id=None):
        raise ConnectionError("database unavailable")
