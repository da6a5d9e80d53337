"""
Interest profile: which tickers a user has been engaging with lately.

Own posts from the last 7 days count 3 per ticker occurrence, posts the
user reacted to count 1. The profile is rebuilt on every feed request and
never stored.
"""
from collections.abc import Iterable
from datetime import datetime, timedelta

from tickerfeed.ranking.candidates import CandidatePost, CandidateStore, ReactionRecord
from tickerfeed.ranking.scoring import DEFAULT_PARAMS, RankingParams


def rank_interest_symbols(
    own_posts: Iterable[CandidatePost],
    reactions: Iterable[ReactionRecord],
    params: RankingParams = DEFAULT_PARAMS,
) -> list[str]:
    """
    Weight tickers and return the top ``params.interest_top_n``.

    Ties keep first-seen order (own posts before reactions, each in the
    order the store returned them); ``sorted`` is stable so this holds.
    """
    weights: dict[str, int] = {}

    for post in own_posts:
        for ticker in post.tickers:
            weights[ticker] = weights.get(ticker, 0) + params.interest_own_post_weight

    for reaction in reactions:
        for ticker in reaction.post_tickers:
            weights[ticker] = weights.get(ticker, 0) + params.interest_reaction_weight

    ranked = sorted(weights.items(), key=lambda item: item[1], reverse=True)
    return [ticker for ticker, _ in ranked[: params.interest_top_n]]


async def get_user_interest_symbols(
    store: CandidateStore,
    user_id: int,
    now: datetime,
    params: RankingParams = DEFAULT_PARAMS,
) -> list[str]:
    since = now - timedelta(days=params.interest_lookback_days)
    # One AsyncSession cannot run two queries concurrently
    own_posts = await store.fetch_user_recent_posts(
        user_id, since, params.interest_post_limit
    )
    reactions = await store.fetch_user_recent_reactions(
        user_id, params.interest_reaction_limit
    )
    return rank_interest_symbols(own_posts, reactions, params)
