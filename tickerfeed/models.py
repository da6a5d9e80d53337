"""
SQLAlchemy ORM models.

Tables:
  users        — user profiles
  follows      — social graph edges (follower → followee)
  posts        — post text, reply parent, moderation flag
  symbols      — normalised tickers (one row per ticker + exchange)
  post_symbols — post × symbol links written at post creation
  reactions    — one row per (post, user, type); re-reacting deletes it
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tickerfeed.database import Base
from tickerfeed.ranking.candidates import ReactionType, SymbolKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# MySQL DATETIME drops fractions unless fsp is set; cursors need milliseconds
Timestamp = DateTime(timezone=True).with_variant(
    mysql.DATETIME(timezone=True, fsp=6), "mysql"
)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    handle: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255))
    bio: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, nullable=False
    )

    posts = relationship("Post", back_populates="author", lazy="noload")


class Follow(Base):
    __tablename__ = "follows"

    follower_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), primary_key=True
    )
    followee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, nullable=False
    )

    __table_args__ = (
        # "Whose posts does X see?" walks follower_id (PK prefix);
        # "who follows X?" needs this one
        Index("idx_followee", "followee_id"),
    )


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    reply_to_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("posts.id"), nullable=True
    )
    is_hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Python-side default keeps sub-second precision for cursor ordering
    created_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, nullable=False
    )

    author = relationship("User", back_populates="posts", lazy="joined")

    __table_args__ = (
        Index("idx_posts_user", "user_id"),
        Index("idx_posts_created", "created_at"),
    )


class Symbol(Base):
    __tablename__ = "symbols"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticker: Mapped[str] = mapped_column(String(16), nullable=False)
    kind: Mapped[Optional[SymbolKind]] = mapped_column(
        Enum(SymbolKind, native_enum=False, length=10), nullable=True
    )
    exchange: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    __table_args__ = (
        UniqueConstraint("ticker", "exchange", name="uq_symbol_ticker_exchange"),
        Index("idx_symbols_ticker", "ticker"),
    )


class PostSymbol(Base):
    __tablename__ = "post_symbols"

    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id"), primary_key=True
    )
    symbol_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("symbols.id"), primary_key=True
    )


class Reaction(Base):
    __tablename__ = "reactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    type: Mapped[ReactionType] = mapped_column(
        Enum(ReactionType, native_enum=False, length=10), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", "type", name="uq_reaction_post_user_type"),
        Index("idx_reactions_user", "user_id", "created_at"),
    )
