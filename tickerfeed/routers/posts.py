"""
Post endpoints:
  POST /posts/            — create a post, linking the tickers found in its text
  GET  /posts/{id}        — fetch a single post with reaction counts
  POST /posts/{id}/react  — toggle a LIKE / BOOST / BOOKMARK reaction
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tickerfeed.database import get_db
from tickerfeed.models import Post, PostSymbol, Reaction, Symbol, User
from tickerfeed.ranking.store import SqlCandidateStore
from tickerfeed.schemas import PostCreate, PostResponse, ReactRequest, ReactResponse
from tickerfeed.symbols import ExtractedSymbol, extract_symbols
from tickerfeed.telemetry import POST_INGESTION_TOTAL, REACTIONS_TOGGLED_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


async def _get_or_create_symbol(db: AsyncSession, extracted: ExtractedSymbol) -> Symbol:
    exchange_clause = (
        Symbol.exchange == extracted.exchange
        if extracted.exchange
        else Symbol.exchange.is_(None)
    )
    existing = await db.execute(
        select(Symbol).where(Symbol.ticker == extracted.ticker, exchange_clause)
    )
    symbol = existing.scalar_one_or_none()
    if symbol is None:
        symbol = Symbol(
            ticker=extracted.ticker,
            kind=extracted.kind,
            exchange=extracted.exchange,
        )
        db.add(symbol)
        await db.flush()
    elif symbol.kind is None and extracted.kind is not None:
        # A later cashtag or exchange suffix settles an ambiguous bare ticker
        symbol.kind = extracted.kind
    return symbol


async def _load_post(db: AsyncSession, post_id: int, viewer_id: Optional[int] = None) -> PostResponse:
    post = await SqlCandidateStore(db, viewer_id=viewer_id).fetch_post(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return PostResponse.model_validate(post.model_dump())


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(body: PostCreate, db: AsyncSession = Depends(get_db)):
    """
    Post ingestion path:

    1. Validate the author (and the reply parent, if any).
    2. Persist the post.
    3. Extract tickers from the text and link them via post_symbols.
    """
    with tracer.start_as_current_span("create_post") as span:
        if not await db.get(User, body.user_id):
            raise HTTPException(status_code=404, detail="Author not found")
        if body.reply_to_id is not None and not await db.get(Post, body.reply_to_id):
            raise HTTPException(status_code=404, detail="Parent post not found")

        post = Post(user_id=body.user_id, text=body.text, reply_to_id=body.reply_to_id)
        db.add(post)
        await db.flush()  # materialise post.id

        extracted = extract_symbols(body.text)
        for item in extracted:
            symbol = await _get_or_create_symbol(db, item)
            db.add(PostSymbol(post_id=post.id, symbol_id=symbol.id))
        await db.flush()

        span.set_attribute("post.id", post.id)
        span.set_attribute("post.symbols", len(extracted))

        POST_INGESTION_TOTAL.inc()
        logger.info(
            "Post created: %s by user %s (%d symbols)", post.id, post.user_id, len(extracted)
        )
        return await _load_post(db, post.id)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    viewer_id: Optional[int] = Query(None, description="Fill viewer_reactions for this user"),
    db: AsyncSession = Depends(get_db),
):
    return await _load_post(db, post_id, viewer_id)


@router.post("/{post_id}/react", response_model=ReactResponse)
async def react_to_post(post_id: int, body: ReactRequest, db: AsyncSession = Depends(get_db)):
    """
    Toggle a reaction. There is at most one row per (post, user, type):
    reacting again with the same type removes it, so two calls cancel out.
    """
    with tracer.start_as_current_span("react_to_post") as span:
        if not await db.get(Post, post_id):
            raise HTTPException(status_code=404, detail="Post not found")
        if not await db.get(User, body.user_id):
            raise HTTPException(status_code=404, detail="User not found")

        existing = await db.execute(
            select(Reaction).where(
                Reaction.post_id == post_id,
                Reaction.user_id == body.user_id,
                Reaction.type == body.type,
            )
        )
        reaction = existing.scalar_one_or_none()
        if reaction is not None:
            await db.delete(reaction)
            action = "removed"
        else:
            db.add(Reaction(post_id=post_id, user_id=body.user_id, type=body.type))
            action = "added"
        await db.flush()

        counts = await SqlCandidateStore(db).reaction_counts(post_id)

        span.set_attribute("reaction.type", body.type.value)
        span.set_attribute("reaction.action", action)
        REACTIONS_TOGGLED_TOTAL.labels(type=body.type.value, action=action).inc()
        logger.info("User %s %s %s on post %s", body.user_id, action, body.type.value, post_id)

        return ReactResponse(action=action, type=body.type, reaction_counts=counts)
