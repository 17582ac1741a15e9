"""
Like endpoints. The liking user is always the bearer token's subject;
the count endpoint is public.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, g

from models.schemas.common import is_valid_id
from services import likes
from services.exceptions import ValidationError
from utils.decorators import jwt_required

bp = Blueprint("likes", __name__, url_prefix="/post")


def _check_post_id(post_id: str) -> str:
    if not is_valid_id(post_id):
        raise ValidationError("Invalid post_id format")
    return post_id


@bp.post("/<post_id>/like")
@jwt_required()
def like_post(post_id: str):
    """
    Like a post (idempotent)
    ---
    tags:
      - Likes
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200:
        description: Liked; repeated calls keep like_count unchanged
      400:
        description: Invalid post_id
      404:
        description: Post not found
    """
    state = likes.like(g.current_user.id, _check_post_id(post_id))
    return jsonify({"message": "Post liked", "liked": state.liked, "like_count": state.like_count}), 200


@bp.delete("/<post_id>/like")
@jwt_required()
def unlike_post(post_id: str):
    """
    Unlike a post (idempotent)
    ---
    tags:
      - Likes
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200:
        description: Not liked; like_count never goes below 0
      400:
        description: Invalid post_id
      404:
        description: Post not found
    """
    state = likes.unlike(g.current_user.id, _check_post_id(post_id))
    return jsonify({"message": "Post unliked", "liked": state.liked, "like_count": state.like_count}), 200


@bp.get("/<post_id>/like")
@jwt_required()
def like_status(post_id: str):
    """
    Whether the caller likes a post
    ---
    tags:
      - Likes
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      404: { description: Post not found }
    """
    state = likes.is_liked(g.current_user.id, _check_post_id(post_id))
    return jsonify({"liked": state.liked, "like_count": state.like_count}), 200


@bp.get("/<post_id>/likes/count")
def like_count(post_id: str):
    """
    Denormalized like count next to the ledger count
    ---
    tags:
      - Likes
    responses:
      200:
        description: like_count and actual_count (they differ only on drift)
      404:
        description: Post not found
    """
    counts = likes.count_likes(_check_post_id(post_id))
    return jsonify({"like_count": counts.like_count, "actual_count": counts.actual_count}), 200
