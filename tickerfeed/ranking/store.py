"""
SQLAlchemy-backed CandidateStore.

Every fetch is one bounded query for the posts followed by a fixed number
of batched hydration queries (symbols, reaction counts, the viewer's own
reactions), so the cost does not grow with N+1 round trips.
"""
from collections import defaultdict
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tickerfeed.models import Follow, Post, PostSymbol, Reaction, Symbol
from tickerfeed.ranking.candidates import (
    AuthorRef,
    CandidatePost,
    ReactionRecord,
    ReactionType,
    SymbolRef,
)
from tickerfeed.ranking.scoring import ensure_utc


def _zero_counts() -> dict[ReactionType, int]:
    return {t: 0 for t in ReactionType}


class SqlCandidateStore:
    def __init__(self, session: AsyncSession, viewer_id: Optional[int] = None) -> None:
        self.session = session
        # Whose reactions fill CandidatePost.viewer_reactions
        self.viewer_id = viewer_id

    # ── CandidateStore ──────────────────────────────────────────────────

    async def fetch_following_candidates(
        self,
        user_id: int,
        before: Optional[datetime],
        limit: int,
    ) -> list[CandidatePost]:
        stmt = (
            select(Post)
            .join(Follow, Follow.followee_id == Post.user_id)
            .where(Follow.follower_id == user_id, Post.is_hidden.is_(False))
        )
        if before is not None:
            stmt = stmt.where(Post.created_at < before)
        stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)
        return await self._load(stmt)

    async def fetch_recent_candidates(
        self,
        since: datetime,
        before: Optional[datetime],
        max_rows: int,
        before_id: Optional[int] = None,
    ) -> list[CandidatePost]:
        stmt = select(Post).where(
            Post.created_at >= since,
            Post.is_hidden.is_(False),
            Post.reply_to_id.is_(None),
        )
        if before is not None and before_id is not None:
            # Keyset bound on the (created_at, id) ordering below
            stmt = stmt.where(
                or_(
                    Post.created_at < before,
                    and_(Post.created_at == before, Post.id < before_id),
                )
            )
        elif before is not None:
            stmt = stmt.where(Post.created_at <= before)
        stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(max_rows)
        return await self._load(stmt)

    async def fetch_user_recent_posts(
        self,
        user_id: int,
        since: datetime,
        max_rows: int,
    ) -> list[CandidatePost]:
        stmt = (
            select(Post)
            .where(Post.user_id == user_id, Post.created_at >= since)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(max_rows)
        )
        return await self._load(stmt, with_reactions=False)

    async def fetch_user_recent_reactions(
        self,
        user_id: int,
        max_rows: int,
    ) -> list[ReactionRecord]:
        rows = await self.session.execute(
            select(Reaction)
            .where(Reaction.user_id == user_id)
            .order_by(Reaction.created_at.desc(), Reaction.id.desc())
            .limit(max_rows)
        )
        reactions = rows.scalars().all()
        symbols = await self._symbols_for({r.post_id for r in reactions})
        return [
            ReactionRecord(
                post_id=r.post_id,
                user_id=r.user_id,
                type=r.type,
                created_at=ensure_utc(r.created_at),
                post_tickers=[s.ticker for s in symbols.get(r.post_id, [])],
            )
            for r in reactions
        ]

    # ── Single-post reads used by the posts router ──────────────────────

    async def fetch_post(self, post_id: int) -> Optional[CandidatePost]:
        posts = await self._load(select(Post).where(Post.id == post_id))
        return posts[0] if posts else None

    async def reaction_counts(self, post_id: int) -> dict[ReactionType, int]:
        counts = await self._counts_for({post_id})
        return counts.get(post_id) or _zero_counts()

    # ── Hydration ───────────────────────────────────────────────────────

    async def _load(self, stmt, with_reactions: bool = True) -> list[CandidatePost]:
        # Refresh rows already in the session (e.g. a post flushed this request)
        rows = await self.session.execute(stmt.execution_options(populate_existing=True))
        posts = rows.scalars().all()
        if not posts:
            return []

        ids = {p.id for p in posts}
        symbols = await self._symbols_for(ids)
        counts = await self._counts_for(ids) if with_reactions else {}
        mine = await self._viewer_reactions_for(ids) if with_reactions else {}

        return [
            CandidatePost(
                id=p.id,
                user_id=p.user_id,
                text=p.text,
                created_at=ensure_utc(p.created_at),
                reply_to_id=p.reply_to_id,
                author=(
                    AuthorRef(
                        id=p.author.id,
                        handle=p.author.handle,
                        display_name=p.author.display_name,
                        bio=p.author.bio,
                    )
                    if p.author
                    else None
                ),
                symbols=symbols.get(p.id, []),
                reaction_counts=counts.get(p.id) or _zero_counts(),
                viewer_reactions=mine.get(p.id, []),
            )
            for p in posts
        ]

    async def _symbols_for(self, post_ids: set[int]) -> dict[int, list[SymbolRef]]:
        if not post_ids:
            return {}
        rows = await self.session.execute(
            select(PostSymbol.post_id, Symbol)
            .join(Symbol, Symbol.id == PostSymbol.symbol_id)
            .where(PostSymbol.post_id.in_(post_ids))
            .order_by(PostSymbol.post_id, Symbol.id)
        )
        result: dict[int, list[SymbolRef]] = defaultdict(list)
        for post_id, symbol in rows.all():
            result[post_id].append(
                SymbolRef(ticker=symbol.ticker, kind=symbol.kind, exchange=symbol.exchange)
            )
        return result

    async def _counts_for(self, post_ids: set[int]) -> dict[int, dict[ReactionType, int]]:
        rows = await self.session.execute(
            select(Reaction.post_id, Reaction.type, func.count())
            .where(Reaction.post_id.in_(post_ids))
            .group_by(Reaction.post_id, Reaction.type)
        )
        result: dict[int, dict[ReactionType, int]] = {}
        for post_id, reaction_type, count in rows.all():
            result.setdefault(post_id, _zero_counts())[reaction_type] = count
        return result

    async def _viewer_reactions_for(self, post_ids: set[int]) -> dict[int, list[ReactionType]]:
        if self.viewer_id is None:
            return {}
        rows = await self.session.execute(
            select(Reaction.post_id, Reaction.type)
            .where(Reaction.post_id.in_(post_ids), Reaction.user_id == self.viewer_id)
            .order_by(Reaction.id)
        )
        result: dict[int, list[ReactionType]] = defaultdict(list)
        for post_id, reaction_type in rows.all():
            result[post_id].append(reaction_type)
        return result
