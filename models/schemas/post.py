from marshmallow import Schema, fields, validate


class PostCreateSchema(Schema):
    content = fields.String(required=True, validate=validate.Length(min=1, max=5000))


class PostOutSchema(Schema):
    id = fields.String()
    user_id = fields.String()
    content = fields.String()
    like_count = fields.Integer()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
