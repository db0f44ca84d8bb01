# insta_api/api/users/schemas.py
from datetime import datetime, time, timezone

from marshmallow import Schema, fields, validate, EXCLUDE

from insta_api.utils.datetime_utils import DateTimeUtils


class BirthDate(fields.Field):
    """
    Calendar day given as an ISO date or datetime string, parsed by DateTimeUtils
    and stored as midnight UTC of that day. Dumped as YYYY-MM-DD.
    """
    default_error_messages = {"invalid": "Not a valid date."}

    def _serialize(self, value, attr, obj, **kwargs):
        if value is None:
            return None
        if isinstance(value, datetime):
            return DateTimeUtils.to_iso_string(value)[:10]
        return value.isoformat()

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, str):
            raise self.make_error("invalid")
        try:
            parsed = DateTimeUtils.parse_iso_datetime(value)
        except ValueError:
            raise self.make_error("invalid")
        return datetime.combine(parsed.date(), time.min, tzinfo=timezone.utc)


class UserResponseSchema(Schema):
    """
    Account as returned by the API.
    The password hash and the google id never leave the server.
    """
    user_id = fields.Str(dump_only=True)
    username = fields.Str()
    email = fields.Email()
    full_name = fields.Str()
    profile_image = fields.Str(allow_none=True)
    bio = fields.Str(allow_none=True)
    date_of_birth = BirthDate(allow_none=True)
    gender = fields.Str(allow_none=True)
    current_city = fields.Str(allow_none=True)
    hometown = fields.Str(data_key="from", allow_none=True)
    followers = fields.List(fields.Str())
    followings = fields.List(fields.Str())
    tick = fields.Bool()
    is_admin = fields.Bool(data_key="isAdmin")
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class UserSummarySchema(Schema):
    """Subset used when accounts are embedded in other documents (followers, post authors...)."""
    user_id = fields.Str()
    username = fields.Str()
    email = fields.Str()
    full_name = fields.Str()
    profile_image = fields.Str(allow_none=True)
    bio = fields.Str(allow_none=True)
    current_city = fields.Str(allow_none=True)
    tick = fields.Bool()


class UserProfileSchema(UserResponseSchema):
    """GET /api/user/profile/<username>: account plus its number of posts."""
    post_count = fields.Int()


class SuggestedUserSchema(UserSummarySchema):
    """Suggested account enriched with activity previews."""
    followers = fields.List(fields.Str())
    followings = fields.List(fields.Str())
    post_count = fields.Int()
    recent_images = fields.List(fields.Str())


class FollowersSchema(UserResponseSchema):
    """GET /api/user/followers/results: followers populated with their summaries."""
    followers = fields.List(fields.Nested(UserSummarySchema))


class FollowingsSchema(UserResponseSchema):
    followings = fields.List(fields.Nested(UserSummarySchema))


class UserUpdateSchema(Schema):
    """
    PUT /api/user/<id>
    Only profile attributes are editable here. Credentials, relationships and
    the admin/tick flags are changed through their dedicated operations.
    """
    class Meta:
        unknown = EXCLUDE

    username = fields.Str(validate=validate.Length(min=4, max=50))
    email = fields.Email()
    full_name = fields.Str(validate=validate.Length(min=4, max=50))
    profile_image = fields.Str(allow_none=True)
    bio = fields.Str(allow_none=True, validate=validate.Length(max=500))
    date_of_birth = BirthDate(allow_none=True)
    gender = fields.Str(allow_none=True)
    current_city = fields.Str(allow_none=True, validate=validate.Length(max=100))
    hometown = fields.Str(data_key="from", allow_none=True, validate=validate.Length(max=100))


class AdminUserUpdateSchema(UserUpdateSchema):
    """Admins may additionally grant the verified badge and the admin flag."""
    tick = fields.Bool()
    is_admin = fields.Bool(data_key="isAdmin")


class ChangePasswordSchema(Schema):
    """PUT /api/user/change/password"""
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=1))
    new_password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6))


class SearchQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    q = fields.Str(load_default='')
