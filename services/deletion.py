"""
Explicit cascade deletion for posts and users.
Ledger rows are removed in the same commit as their owner, and counters of
other posts are adjusted when a user's likes disappear with the account.
"""
from __future__ import annotations

import logging

from models import storage
from models.post import Post
from models.post_like import PostLike
from models.user import User

logger = logging.getLogger(__name__)


def delete_post(post: Post) -> None:
    session = storage.get_session()
    likes = session.query(PostLike).filter(PostLike.post_id == post.id).delete(synchronize_session="fetch")
    storage.delete(post)
    storage.save()
    logger.info("post deleted post_id=%s likes_removed=%s", post.id, likes)


def delete_user(user: User) -> None:
    session = storage.get_session()

    # likes the user gave: drop them and take one off each affected counter
    liked_post_ids = [
        post_id for (post_id,) in session.query(PostLike.post_id).filter(PostLike.user_id == user.id).all()
    ]
    if liked_post_ids:
        session.query(PostLike).filter(PostLike.user_id == user.id).delete(synchronize_session="fetch")
        session.query(Post).filter(Post.id.in_(liked_post_ids), Post.like_count > 0).update(
            {Post.like_count: Post.like_count - 1}, synchronize_session="fetch"
        )

    # the user's own posts and every like on them
    own_post_ids = [post_id for (post_id,) in session.query(Post.id).filter(Post.user_id == user.id).all()]
    if own_post_ids:
        session.query(PostLike).filter(PostLike.post_id.in_(own_post_ids)).delete(synchronize_session="fetch")
        session.query(Post).filter(Post.id.in_(own_post_ids)).delete(synchronize_session="fetch")

    storage.delete(user)
    storage.save()
    logger.info(
        "user deleted user_id=%s likes_removed=%s posts_removed=%s",
        user.id, len(liked_post_ids), len(own_post_ids),
    )
