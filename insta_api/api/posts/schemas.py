# insta_api/api/posts/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE

from insta_api.api.users.schemas import UserSummarySchema
from insta_api.models.post import MediaType


class MediaSchema(Schema):
    type = fields.Str(required=True, validate=validate.OneOf([m.value for m in MediaType]))
    url = fields.Url(required=True)


class ShareSchema(Schema):
    user_id = fields.Str()
    date = fields.DateTime()


class PostCreateSchema(Schema):
    """Validates POST /api/post. The owner is always the caller."""
    class Meta:
        unknown = EXCLUDE

    caption = fields.Str(load_default='', validate=validate.Length(max=500))
    media = fields.List(fields.Nested(MediaSchema), required=True, validate=validate.Length(min=1))


class PostUpdateSchema(Schema):
    """Validates PUT /api/post/<id>. The slug is kept even if the caption changes."""
    class Meta:
        unknown = EXCLUDE

    caption = fields.Str(validate=validate.Length(max=500))
    media = fields.List(fields.Nested(MediaSchema), validate=validate.Length(min=1))


class PostResponseSchema(Schema):
    post_id = fields.Str()
    user_id = fields.Str()
    caption = fields.Str()
    media = fields.List(fields.Nested(MediaSchema))
    slug = fields.Str()
    likes = fields.List(fields.Str())
    shares = fields.List(fields.Nested(ShareSchema))
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class PostAuthorSchema(UserSummarySchema):
    followers = fields.List(fields.Str())
    followings = fields.List(fields.Str())
    created_at = fields.DateTime()


class TimelinePostSchema(PostResponseSchema):
    """Timeline entry with its author populated."""
    author = fields.Nested(PostAuthorSchema, allow_none=True)


class MediaItemSchema(Schema):
    """One entry of GET /api/post/medias/results."""
    post_id = fields.Str()
    type = fields.Str()
    url = fields.Str()
