from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from models import storage
from models.user import User
from models.schemas.common import is_valid_id
from models.schemas.user import UserCreateSchema, UserOutSchema
from services.deletion import delete_user
from services.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from services.sessions import find_user_by_email
from utils.decorators import jwt_required
from utils.security import hash_password

bp = Blueprint("users", __name__)

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()


def _get_user_or_404(user_id: str) -> User:
    if not is_valid_id(user_id):
        raise ValidationError("Invalid user_id format")
    user = storage.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@bp.post("/users")
def create_user():
    """
    Register a new user.
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            username: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: Email already exists
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    if find_user_by_email(data["email"]):
        raise ConflictError("Email already exists")

    user = User(
        username=data["username"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
    )
    storage.new(user)
    # a concurrent registration surfaces as IntegrityError -> 409
    storage.save()

    return jsonify({"data": user_out_schema.dump(user)}), 201


@bp.get("/users/<user_id>")
def get_user(user_id: str):
    """
    Get a user's public profile
    ---
    tags:
      - Users
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    return jsonify({"data": user_out_schema.dump(_get_user_or_404(user_id))}), 200


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"data": user_out_schema.dump(g.current_user)}), 200


@bp.delete("/users/<user_id>")
@jwt_required()
def remove_user(user_id: str):
    """
    Delete your own account, with its posts and likes.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      204: { description: Deleted }
      403: { description: Not your account }
      404: { description: Not found }
    """
    user = _get_user_or_404(user_id)
    if user.id != g.current_user.id:
        raise PermissionDeniedError("You can only delete your own account")
    delete_user(user)
    return ("", 204)
