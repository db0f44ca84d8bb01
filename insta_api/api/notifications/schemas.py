# insta_api/api/notifications/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE

from insta_api.models.notification import NotificationType


class NotificationCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    user_id = fields.Str(required=True, validate=validate.Length(min=1))
    type = fields.Enum(NotificationType, by_value=True, required=True)
    source_id = fields.Str(required=True, validate=validate.Length(min=1))
    target_id = fields.Str(load_default=None)
    seen = fields.Bool(load_default=False)


class NotificationResponseSchema(Schema):
    notification_id = fields.Str()
    user_id = fields.Str()
    type = fields.Str()
    source_id = fields.Str()
    target_id = fields.Str(allow_none=True)
    seen = fields.Bool()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
