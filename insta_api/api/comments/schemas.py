# insta_api/api/comments/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE


class CommentCreateSchema(Schema):
    """Validates POST /api/comment. The author is always the caller."""
    class Meta:
        unknown = EXCLUDE

    post_id = fields.Str(required=True, validate=validate.Length(min=1))
    content = fields.Str(required=True, validate=validate.Length(min=1, max=400))


class CommentUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    content = fields.Str(required=True, validate=validate.Length(min=1, max=400))


class ReplyCreateSchema(Schema):
    """`reply_id` is optional; one is generated when the client does not send it."""
    class Meta:
        unknown = EXCLUDE

    content = fields.Str(required=True, validate=validate.Length(min=1, max=400))
    reply_id = fields.Str(load_default=None, validate=validate.Length(min=1, max=64))


class ReplyDeleteSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    reply_id = fields.Str(required=True)


class ReplyResponseSchema(Schema):
    reply_id = fields.Str()
    user_id = fields.Str()
    content = fields.Str()
    created_at = fields.DateTime()


class CommentResponseSchema(Schema):
    comment_id = fields.Str()
    user_id = fields.Str()
    post_id = fields.Str()
    content = fields.Str()
    likes = fields.List(fields.Str())
    replies = fields.List(fields.Nested(ReplyResponseSchema))
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
