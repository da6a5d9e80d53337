"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.

Both feed modes read their parameters from here; nothing in the ranking
core keeps its own copy of these constants.
"""
from typing import Optional

from pydantic_settings import BaseSettings

from tickerfeed.ranking.scoring import RankingParams


class Settings(BaseSettings):
    # ── Database (MySQL-protocol compatible) ───────────────────────────────
    db_host: str = "tidb"
    db_port: int = 4000
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "ticker_feed"
    # Full SQLAlchemy URL; wins over the db_* fields when set
    database_url_override: Optional[str] = None

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Feed ranking weights ───────────────────────────────────────────────
    feed_reaction_score_like: float = 1.0
    feed_reaction_score_boost: float = 3.0
    feed_reaction_score_bookmark: float = 2.0

    feed_initial_reaction_weight: float = 0.4   # α
    feed_time_decay_weight: float = 0.3         # β
    feed_symbol_match_weight: float = 0.3       # γ

    feed_recent_reaction_window_seconds: int = 2 * 60 * 60
    feed_max_post_age_seconds: int = 24 * 60 * 60

    # ── Feed paging ────────────────────────────────────────────────────────
    feed_default_page_size: int = 20
    feed_min_page_size: int = 1
    feed_max_page_size: int = 50
    feed_candidate_multiplier: int = 3   # for_you pool = limit * multiplier
    feed_candidate_cap: int = 100        # ... capped here

    # ── Interest profile ───────────────────────────────────────────────────
    interest_lookback_days: int = 7
    interest_post_limit: int = 20
    interest_reaction_limit: int = 50
    interest_top_n: int = 10
    interest_own_post_weight: int = 3
    interest_reaction_weight: int = 1

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "ticker-feed-api"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def ranking_params(self) -> RankingParams:
        """Snapshot of the scoring/paging knobs handed to the ranking core."""
        return RankingParams(
            like_weight=self.feed_reaction_score_like,
            boost_weight=self.feed_reaction_score_boost,
            bookmark_weight=self.feed_reaction_score_bookmark,
            alpha=self.feed_initial_reaction_weight,
            beta=self.feed_time_decay_weight,
            gamma=self.feed_symbol_match_weight,
            recent_reaction_window_seconds=self.feed_recent_reaction_window_seconds,
            max_post_age_seconds=self.feed_max_post_age_seconds,
            default_page_size=self.feed_default_page_size,
            min_page_size=self.feed_min_page_size,
            max_page_size=self.feed_max_page_size,
            candidate_multiplier=self.feed_candidate_multiplier,
            candidate_cap=self.feed_candidate_cap,
            interest_lookback_days=self.interest_lookback_days,
            interest_post_limit=self.interest_post_limit,
            interest_reaction_limit=self.interest_reaction_limit,
            interest_top_n=self.interest_top_n,
            interest_own_post_weight=self.interest_own_post_weight,
            interest_reaction_weight=self.interest_reaction_weight,
        )


settings = Settings()
