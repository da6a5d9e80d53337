"""
For You scoring.

  score = α * initial_reaction_score     (log-compressed, early-boosted)
        + β * time_decay                  exp(-age_hours / 6)
        + γ * symbol_match_bonus          share of the user's interests hit

Every function here is pure: ``now`` is passed in, weights come from a
``RankingParams`` snapshot, and the same inputs always give the same float.
"""
import math
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict

DECAY_HOURS = 6.0
EARLY_REACTION_BOOST = 1.5


class RankingParams(BaseModel):
    """Scoring weights and feed knobs, read once from Settings at startup."""

    model_config = ConfigDict(frozen=True)

    like_weight: float = 1.0
    boost_weight: float = 3.0
    bookmark_weight: float = 2.0

    alpha: float = 0.4
    beta: float = 0.3
    gamma: float = 0.3

    recent_reaction_window_seconds: int = 2 * 60 * 60
    max_post_age_seconds: int = 24 * 60 * 60

    default_page_size: int = 20
    min_page_size: int = 1
    max_page_size: int = 50
    candidate_multiplier: int = 3
    candidate_cap: int = 100

    interest_lookback_days: int = 7
    interest_post_limit: int = 20
    interest_reaction_limit: int = 50
    interest_top_n: int = 10
    interest_own_post_weight: int = 3
    interest_reaction_weight: int = 1


DEFAULT_PARAMS = RankingParams()


class ScoreBreakdown(BaseModel):
    initial_reaction_score: float
    time_decay_score: float
    symbol_match_score: float
    total_score: float


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes coming back from the store are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _age(created_at: datetime, now: datetime) -> timedelta:
    return ensure_utc(now) - ensure_utc(created_at)


def time_decay(created_at: datetime, now: datetime) -> float:
    # Future-dated posts (clock skew) count as brand new
    age_hours = max(0.0, _age(created_at, now).total_seconds() / 3600)
    return math.exp(-age_hours / DECAY_HOURS)


def initial_reaction_score(
    created_at: datetime,
    counts: Mapping[str, int],
    now: datetime,
    params: RankingParams = DEFAULT_PARAMS,
) -> float:
    """
    ln(weighted reactions + 1), boosted 1.5x while the post is inside the
    recent-reaction window (boundary inclusive), rounded to 4 places.
    """
    base = (
        (counts.get("LIKE") or 0) * params.like_weight
        + (counts.get("BOOST") or 0) * params.boost_weight
        + (counts.get("BOOKMARK") or 0) * params.bookmark_weight
    )
    window = timedelta(seconds=params.recent_reaction_window_seconds)
    multiplier = EARLY_REACTION_BOOST if _age(created_at, now) <= window else 1.0
    return round(math.log(base + 1) * multiplier, 4)


def _normalize(ticker: str) -> str:
    return ticker.strip().upper()


def symbol_match_bonus(
    post_symbols: Sequence[str],
    interest_symbols: Sequence[str],
) -> float:
    if not interest_symbols:
        return 0.0

    interests = {_normalize(t) for t in interest_symbols}
    matches = sum(1 for t in post_symbols if _normalize(t) in interests)
    return min(matches / max(len(interest_symbols), 1), 1.0)


def total_score(
    created_at: datetime,
    counts: Mapping[str, int],
    post_symbols: Sequence[str],
    interest_symbols: Sequence[str],
    now: datetime,
    params: RankingParams = DEFAULT_PARAMS,
) -> float:
    return score_breakdown(
        created_at, counts, post_symbols, interest_symbols, now, params
    ).total_score


def score_breakdown(
    created_at: datetime,
    counts: Mapping[str, int],
    post_symbols: Sequence[str],
    interest_symbols: Sequence[str],
    now: datetime,
    params: RankingParams = DEFAULT_PARAMS,
) -> ScoreBreakdown:
    reaction = initial_reaction_score(created_at, counts, now, params)
    decay = time_decay(created_at, now)
    match = symbol_match_bonus(post_symbols, interest_symbols)

    total = params.alpha * reaction + params.beta * decay + params.gamma * match
    return ScoreBreakdown(
        initial_reaction_score=reaction,
        time_decay_score=decay,
        symbol_match_score=match,
        total_score=round(total, 4),
    )
