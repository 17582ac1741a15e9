from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from models import storage
from models.post import Post
from models.schemas.common import is_valid_id
from models.schemas.post import PostCreateSchema, PostOutSchema
from services.deletion import delete_post
from services.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from utils.decorators import jwt_required

bp = Blueprint("posts", __name__, url_prefix="/post")

post_create_schema = PostCreateSchema()
post_out_schema = PostOutSchema()


def get_post_or_404(post_id: str) -> Post:
    if not is_valid_id(post_id):
        raise ValidationError("Invalid post_id format")
    post = storage.get(Post, post_id)
    if not post:
        raise NotFoundError("Post not found")
    return post


@bp.post("")
@jwt_required()
def create_post():
    """
    Create a post owned by the caller
    ---
    tags:
      - Posts
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            content: { type: string }
    responses:
      201: { description: Created }
      400: { description: Validation error }
    """
    payload = request.get_json(silent=True) or {}
    data = post_create_schema.load(payload)
    post = Post(user_id=g.current_user.id, content=data["content"], like_count=0)
    post.save()
    return jsonify({"data": post_out_schema.dump(post)}), 201


@bp.get("/<post_id>")
def get_post(post_id: str):
    """
    Get a post
    ---
    tags:
      - Posts
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    return jsonify({"data": post_out_schema.dump(get_post_or_404(post_id))}), 200


@bp.delete("/<post_id>")
@jwt_required()
def remove_post(post_id: str):
    """
    Delete your own post and every like on it.
    ---
    tags:
      - Posts
    security:
      - Bearer: []
    responses:
      204: { description: Deleted }
      403: { description: Not your post }
      404: { description: Not found }
    """
    post = get_post_or_404(post_id)
    if post.user_id != g.current_user.id:
        raise PermissionDeniedError("You can only delete your own posts")
    delete_post(post)
    return ("", 204)
