"""
Like ledger and counter maintenance.

posts.like_count is a denormalized copy of COUNT(post_likes WHERE post_id=..).
Every ledger insert/delete runs in the same transaction as the matching
atomic counter UPDATE, so the two commit together or not at all.

Races between duplicate requests are resolved by the store:
- like:   the unique (user_id, post_id) constraint rejects the second insert
- unlike: the second DELETE affects zero rows
Both losers roll back and report the current state; neither touches the counter.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from models import storage
from models.post import Post
from models.post_like import PostLike
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeState:
    liked: bool
    like_count: int


@dataclass(frozen=True)
class LikeCount:
    like_count: int
    actual_count: int

    @property
    def drifted(self) -> bool:
        return self.like_count != self.actual_count


def _get_post(post_id: str) -> Post:
    post = storage.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def _find_like(user_id: str, post_id: str) -> PostLike | None:
    session = storage.get_session()
    return session.query(PostLike).filter(PostLike.user_id == user_id, PostLike.post_id == post_id).first()


def _current_count(post_id: str) -> int:
    session = storage.get_session()
    count = session.query(Post.like_count).filter(Post.id == post_id).scalar()
    if count is None:
        raise NotFoundError("Post not found")
    return count


def _ledger_count(post_id: str) -> int:
    session = storage.get_session()
    return session.query(func.count(PostLike.id)).filter(PostLike.post_id == post_id).scalar() or 0


def like(user_id: str, post_id: str) -> LikeState:
    """Idempotent: the counter moves by exactly one however many times this runs."""
    post = _get_post(post_id)
    if _find_like(user_id, post_id):
        return LikeState(True, post.like_count)

    session = storage.get_session()
    try:
        storage.new(PostLike(user_id=user_id, post_id=post_id))
        session.flush()
        session.query(Post).filter(Post.id == post_id).update(
            {Post.like_count: Post.like_count + 1}, synchronize_session="fetch"
        )
        storage.save()
    except IntegrityError:
        storage.rollback()
        logger.info("duplicate like resolved idempotently user_id=%s post_id=%s", user_id, post_id)
        return LikeState(True, _current_count(post_id))

    return LikeState(True, _current_count(post_id))


def unlike(user_id: str, post_id: str) -> LikeState:
    """Idempotent mirror of like(); the counter never drops below zero."""
    post = _get_post(post_id)
    if not _find_like(user_id, post_id):
        return LikeState(False, post.like_count)

    session = storage.get_session()
    deleted = (
        session.query(PostLike)
        .filter(PostLike.user_id == user_id, PostLike.post_id == post_id)
        .delete(synchronize_session="fetch")
    )
    if deleted == 0:
        storage.rollback()
        logger.info("concurrent unlike resolved idempotently user_id=%s post_id=%s", user_id, post_id)
        return LikeState(False, _current_count(post_id))

    session.query(Post).filter(Post.id == post_id, Post.like_count > 0).update(
        {Post.like_count: Post.like_count - 1}, synchronize_session="fetch"
    )
    storage.save()
    return LikeState(False, _current_count(post_id))


def is_liked(user_id: str, post_id: str) -> LikeState:
    post = _get_post(post_id)
    return LikeState(_find_like(user_id, post_id) is not None, post.like_count)


def count_likes(post_id: str) -> LikeCount:
    """Denormalized counter next to the ledger's ground truth, for drift detection."""
    post = _get_post(post_id)
    return LikeCount(post.like_count, _ledger_count(post_id))


def reconcile_like_count(post_id: str) -> LikeCount:
    """
    Reset one post's counter to the ledger count in a single UPDATE.
    Returns the counts seen before the fix.
    """
    before = count_likes(post_id)
    if before.drifted:
        session = storage.get_session()
        ledger = (
            select(func.count(PostLike.id))
            .where(PostLike.post_id == Post.id)
            .scalar_subquery()
        )
        session.query(Post).filter(Post.id == post_id).update(
            {Post.like_count: ledger}, synchronize_session=False
        )
        storage.save()
        session.expire_all()
        logger.warning(
            "like_count drift corrected post_id=%s like_count=%s actual=%s",
            post_id, before.like_count, before.actual_count,
        )
    return before


def find_drifted() -> list[tuple[str, int, int]]:
    """(post_id, like_count, actual_count) for every post whose counter disagrees with the ledger."""
    session = storage.get_session()
    actual = func.count(PostLike.id)
    rows = (
        session.query(Post.id, Post.like_count, actual)
        .outerjoin(PostLike, PostLike.post_id == Post.id)
        .group_by(Post.id, Post.like_count)
        .having(Post.like_count != actual)
        .all()
    )
    return [(post_id, like_count, count) for post_id, like_count, count in rows]


def reconcile_all() -> list[tuple[str, int, int]]:
    corrections = []
    for post_id, _, _ in find_drifted():
        before = reconcile_like_count(post_id)
        if before.drifted:
            corrections.append((post_id, before.like_count, before.actual_count))
    return corrections
