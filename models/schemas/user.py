from marshmallow import Schema, fields, pre_load, validates, ValidationError

from models.schemas.common import normalize_email


class UserCreateSchema(Schema):
    username = fields.String(required=True, validate=lambda s: 1 <= len(s.strip()) <= 255)
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = normalize_email(data["email"])
        if isinstance(data, dict) and isinstance(data.get("username"), str):
            data["username"] = data["username"].strip()
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")


class UserLoginSchema(Schema):
    # presence is checked by the session manager so both fields share one message
    email = fields.String()
    password = fields.String()


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    username = fields.String()
    email = fields.String()
    created_at = fields.DateTime()
    linked_providers = fields.Method("get_linked_providers")

    def get_linked_providers(self, obj):
        return [name for name, value in (("google", obj.google_id), ("facebook", obj.facebook_id)) if value]
