"""
Pagination cursors.

  following  urlsafe-base64 JSON  {"createdAt": "<iso8601>"}
  for_you    "{score}_{createdAtMillis}_{postId}_{anchorUs}_{sliceUs}_{sliceId}_{sliceSize}"

The for_you cursor is the position of the last served item in score order,
followed by the pool slice it was cut from: the clock of the first page
(``anchor``) and the exclusive (created_at, id) upper bound and size of the
chronological slice. Two- and three-part cursors are still accepted; they
resume inside the newest slice.

Clients treat both as opaque. Decoding never raises: anything that does not
parse comes back as ``None`` and the feed starts again from the top.
"""
import base64
import json
import math
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

from tickerfeed.ranking.candidates import FeedMode
from tickerfeed.ranking.scoring import ensure_utc

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_millis(value: datetime) -> int:
    delta = ensure_utc(value) - _EPOCH
    return delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000


def to_micros(value: datetime) -> int:
    delta = ensure_utc(value) - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds


def from_micros(value: int) -> datetime:
    return _EPOCH + timedelta(microseconds=value)


def encode_following_cursor(created_at: datetime) -> str:
    payload = json.dumps({"createdAt": ensure_utc(created_at).isoformat()})
    return base64.urlsafe_b64encode(payload.encode()).decode()


def decode_following_cursor(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        data = json.loads(base64.urlsafe_b64decode(raw.encode()))
        return ensure_utc(datetime.fromisoformat(data["createdAt"]))
    except (ValueError, TypeError, KeyError, AttributeError):
        return None


class PoolSlice(NamedTuple):
    """A chronological slice of the for_you window: the newest ``size``
    eligible posts strictly older than (before, before_id)."""

    anchor: datetime
    before: datetime
    before_id: int
    size: int


class ScoreCursor(NamedTuple):
    score: float
    created_ms: int
    post_id: Optional[int] = None
    pool: Optional[PoolSlice] = None

    def already_served(self, score: float, created_ms: int, post_id: int) -> bool:
        """True if an item with this key was already served on an earlier page."""
        if self.post_id is None:
            return (score, created_ms) >= (self.score, self.created_ms)
        return (score, created_ms, post_id) >= (self.score, self.created_ms, self.post_id)


def encode_score_cursor(
    score: float,
    created_at: datetime,
    post_id: int,
    pool: Optional[PoolSlice] = None,
) -> str:
    raw = f"{score}_{to_millis(created_at)}_{post_id}"
    if pool is None:
        return raw
    return (
        f"{raw}_{to_micros(pool.anchor)}_{to_micros(pool.before)}"
        f"_{pool.before_id}_{pool.size}"
    )


def decode_score_cursor(raw: Optional[str]) -> Optional[ScoreCursor]:
    if not raw:
        return None
    parts = raw.split("_")
    if len(parts) not in (2, 3, 7):
        return None
    try:
        score = float(parts[0])
        created_ms = int(parts[1])
        post_id = int(parts[2]) if len(parts) >= 3 else None
        pool = None
        if len(parts) == 7:
            anchor_us, before_us, before_id, size = (int(p) for p in parts[3:])
            if size < 1 or before_id < 0:
                return None
            pool = PoolSlice(from_micros(anchor_us), from_micros(before_us), before_id, size)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(score):
        return None
    return ScoreCursor(score, created_ms, post_id, pool)


def is_valid_cursor(mode: FeedMode, raw: str) -> bool:
    if mode is FeedMode.FOLLOWING:
        return decode_following_cursor(raw) is not None
    return decode_score_cursor(raw) is not None
