"""
Feed endpoints:
  GET /feed/        — one page of the for_you or following feed
  GET /feed/debug   — interest profile + score breakdown for recent posts

The route is thin: it checks the viewer exists, builds a SqlCandidateStore
for the request's session and hands everything else to FeedAssembler.
"""
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from tickerfeed.config import settings
from tickerfeed.database import get_db
from tickerfeed.models import User
from tickerfeed.ranking.candidates import FeedMode
from tickerfeed.ranking.cursor import is_valid_cursor
from tickerfeed.ranking.feed import FeedAssembler, FeedValidationError, ScoredPost
from tickerfeed.ranking.store import SqlCandidateStore
from tickerfeed.schemas import FeedDebugResponse, FeedPost, FeedResponse
from tickerfeed.telemetry import FEED_CANDIDATES_TOTAL, FEED_LATENCY

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)

# Read once at startup; both feed modes share it
RANKING_PARAMS = settings.ranking_params()

ALGORITHM_NAMES = {
    FeedMode.FOR_YOU: "engagement_time_interest",
    FeedMode.FOLLOWING: "chronological",
}


def _to_feed_post(item: ScoredPost) -> FeedPost:
    return FeedPost.model_validate(item.model_dump())


async def _require_user(db: AsyncSession, user_id: int) -> None:
    if not await db.get(User, user_id):
        raise HTTPException(status_code=404, detail="User not found")


@router.get("/", response_model=FeedResponse)
async def get_feed(
    user_id: int = Query(..., description="ID of the requesting user"),
    mode: FeedMode = Query(FeedMode.FOR_YOU),
    cursor: Optional[str] = Query(None, description="Opaque token from a previous page"),
    limit: int = Query(
        settings.feed_default_page_size,
        ge=settings.feed_min_page_size,
        le=settings.feed_max_page_size,
    ),
    db: AsyncSession = Depends(get_db),
):
    start_time = time.perf_counter()

    with tracer.start_as_current_span("get_feed") as span:
        span.set_attribute("user.id", user_id)
        span.set_attribute("feed.mode", mode.value)

        await _require_user(db, user_id)

        if cursor and not is_valid_cursor(mode, cursor):
            logger.debug("Ignoring malformed %s cursor (user=%s)", mode.value, user_id)

        assembler = FeedAssembler(SqlCandidateStore(db, viewer_id=user_id), RANKING_PARAMS)
        try:
            page = await assembler.get_feed(user_id, mode=mode, cursor=cursor, limit=limit)
        except FeedValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        FEED_CANDIDATES_TOTAL.labels(mode=mode.value).inc(page.candidates_fetched)
        span.set_attribute("feed.candidates", page.candidates_fetched)
        span.set_attribute("feed.items", len(page.items))
        span.set_attribute("feed.has_more", page.has_more)

        latency = time.perf_counter() - start_time
        FEED_LATENCY.labels(mode=mode.value).observe(latency)

        return FeedResponse(
            items=[_to_feed_post(item) for item in page.items],
            next_cursor=page.next_cursor,
            has_more=page.has_more,
            mode=page.mode,
            algorithm=ALGORITHM_NAMES[page.mode],
        )


@router.get("/debug", response_model=FeedDebugResponse)
async def debug_feed(
    user_id: int = Query(..., description="ID of the requesting user"),
    db: AsyncSession = Depends(get_db),
):
    """
    Explain the for_you ranking for one user: their interest tickers, the
    active weights, and the newest in-window posts with every sub-score.
    """
    with tracer.start_as_current_span("debug_feed"):
        await _require_user(db, user_id)

        assembler = FeedAssembler(SqlCandidateStore(db, viewer_id=user_id), RANKING_PARAMS)
        explanation = await assembler.explain(user_id)

        return FeedDebugResponse(
            user_id=explanation.user_id,
            interest_symbols=explanation.interest_symbols,
            parameters=explanation.params,
            sample_posts=[_to_feed_post(item) for item in explanation.sample],
        )
