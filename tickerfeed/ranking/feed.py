"""
Feed assembler — turns candidates into a page.

  following │ store returns posts already in final (newest-first) order;
            │ overfetch by one to learn whether another page exists.
  ──────────┼──────────────────────────────────────────────────────────
  for_you   │ 1. interest profile for the viewer
            │ 2. newest min(limit * 3, 100) posts of the last 24h
            │ 3. score every candidate, order by total score (ties: newest)
            │ 4. drop what earlier pages served, cut to `limit`
            │ 5. slice used up: continue with the next older slice

The for_you window is walked slice by slice, each slice ranked on its own,
so a page is the best of its slice, not of the whole 24h window. The clock
of the first page is carried in the cursor and reused by later pages, so
scores do not drift between pages of one walk.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from tickerfeed.ranking.candidates import CandidatePost, CandidateStore, FeedMode
from tickerfeed.ranking.cursor import (
    PoolSlice,
    decode_following_cursor,
    decode_score_cursor,
    encode_following_cursor,
    encode_score_cursor,
    to_millis,
)
from tickerfeed.ranking.interests import get_user_interest_symbols
from tickerfeed.ranking.scoring import (
    DEFAULT_PARAMS,
    RankingParams,
    ScoreBreakdown,
    ensure_utc,
    score_breakdown,
)

DEBUG_SAMPLE_SIZE = 5


class FeedValidationError(ValueError):
    """Bad mode or page size; raised before anything is fetched."""


class ScoredPost(CandidatePost):
    # Only populated in for_you mode
    score: Optional[float] = None
    score_breakdown: Optional[ScoreBreakdown] = None


class FeedPage(BaseModel):
    mode: FeedMode
    items: list[ScoredPost] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False
    candidates_fetched: int = 0


class FeedExplanation(BaseModel):
    user_id: int
    interest_symbols: list[str]
    params: RankingParams
    sample: list[ScoredPost]


def _ranking_key(item: ScoredPost) -> tuple[float, int, int]:
    return (item.score or 0.0, to_millis(item.created_at), item.id)


class FeedAssembler:
    """Stateless per-request pipeline; safe to share across requests."""

    def __init__(self, store: CandidateStore, params: RankingParams = DEFAULT_PARAMS) -> None:
        self.store = store
        self.params = params

    # ── Public API ──────────────────────────────────────────────────────

    async def get_feed(
        self,
        user_id: int,
        mode: Union[FeedMode, str] = FeedMode.FOR_YOU,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> FeedPage:
        feed_mode, page_size = self.validate(mode, limit)
        now = now or datetime.now(timezone.utc)

        if feed_mode is FeedMode.FOLLOWING:
            return await self._following_page(user_id, cursor, page_size)
        return await self._for_you_page(user_id, cursor, page_size, now)

    def validate(self, mode: Union[FeedMode, str], limit: Optional[int]) -> tuple[FeedMode, int]:
        try:
            feed_mode = FeedMode(mode)
        except ValueError:
            raise FeedValidationError(f"Unknown feed mode: {mode!r}") from None

        page_size = self.params.default_page_size if limit is None else limit
        if not self.params.min_page_size <= page_size <= self.params.max_page_size:
            raise FeedValidationError(
                f"limit must be between {self.params.min_page_size} "
                f"and {self.params.max_page_size}, got {page_size}"
            )
        return feed_mode, page_size

    def pool_size(self, limit: int) -> int:
        return min(limit * self.params.candidate_multiplier, self.params.candidate_cap)

    def score_candidates(
        self,
        candidates: list[CandidatePost],
        interest_symbols: list[str],
        now: datetime,
    ) -> list[ScoredPost]:
        """Score and order candidates: total score, then newest, then highest id."""
        scored = []
        for post in candidates:
            breakdown = score_breakdown(
                post.created_at,
                post.reaction_counts,
                post.tickers,
                interest_symbols,
                now,
                self.params,
            )
            scored.append(
                ScoredPost(
                    **dict(post),
                    score=breakdown.total_score,
                    score_breakdown=breakdown,
                )
            )
        scored.sort(key=_ranking_key, reverse=True)
        return scored

    async def explain(
        self,
        user_id: int,
        now: Optional[datetime] = None,
        sample_size: int = DEBUG_SAMPLE_SIZE,
    ) -> FeedExplanation:
        """Interest profile plus fully broken-down scores for the newest posts."""
        now = now or datetime.now(timezone.utc)
        interests = await get_user_interest_symbols(self.store, user_id, now, self.params)
        since = now - timedelta(seconds=self.params.max_post_age_seconds)
        recent = await self.store.fetch_recent_candidates(since, now, sample_size)
        return FeedExplanation(
            user_id=user_id,
            interest_symbols=interests,
            params=self.params,
            sample=self.score_candidates(recent, interests, now),
        )

    # ── Modes ───────────────────────────────────────────────────────────

    async def _following_page(
        self,
        user_id: int,
        cursor: Optional[str],
        limit: int,
    ) -> FeedPage:
        before = decode_following_cursor(cursor)
        rows = await self.store.fetch_following_candidates(user_id, before, limit + 1)

        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = (
            encode_following_cursor(page[-1].created_at) if has_more and page else None
        )
        return FeedPage(
            mode=FeedMode.FOLLOWING,
            items=[ScoredPost(**dict(post)) for post in page],
            next_cursor=next_cursor,
            has_more=has_more,
            candidates_fetched=len(rows),
        )

    async def _for_you_page(
        self,
        user_id: int,
        cursor: Optional[str],
        limit: int,
        now: datetime,
    ) -> FeedPage:
        position = decode_score_cursor(cursor)
        if position is not None and position.pool is not None:
            current = position.pool._replace(
                size=min(position.pool.size, self.params.candidate_cap)
            )
        else:
            # Newest slice: everything created up to and including `now`
            now = ensure_utc(now)
            current = PoolSlice(now, now + timedelta(microseconds=1), 0, self.pool_size(limit))
        now = current.anchor

        interests = await get_user_interest_symbols(self.store, user_id, now, self.params)
        since = now - timedelta(seconds=self.params.max_post_age_seconds)

        # Collect limit + 1 unserved items so has_more is exact
        collected: list[tuple[ScoredPost, PoolSlice]] = []
        fetched = 0
        while True:
            candidates = await self.store.fetch_recent_candidates(
                since, current.before, current.size, before_id=current.before_id
            )
            fetched += len(candidates)
            ranked = self.score_candidates(candidates, interests, now)
            if position is not None:
                ranked = [
                    item for item in ranked
                    if not position.already_served(*_ranking_key(item))
                ]
                position = None
            collected.extend((item, current) for item in ranked)

            if len(collected) > limit or len(candidates) < current.size:
                break
            oldest = candidates[-1]
            current = current._replace(before=oldest.created_at, before_id=oldest.id)

        has_more = len(collected) > limit
        page = collected[:limit]
        next_cursor = None
        if has_more:
            last, last_slice = page[-1]
            next_cursor = encode_score_cursor(last.score, last.created_at, last.id, last_slice)

        return FeedPage(
            mode=FeedMode.FOR_YOU,
            items=[item for item, _ in page],
            next_cursor=next_cursor,
            has_more=has_more,
            candidates_fetched=fetched,
        )
