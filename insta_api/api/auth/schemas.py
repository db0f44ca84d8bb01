# insta_api/api/auth/schemas.py
from marshmallow import Schema, fields, validate, EXCLUDE


class RegisterSchema(Schema):
    """Validates POST /api/auth/register."""
    username = fields.Str(required=True, validate=validate.Length(min=4, max=50))
    email = fields.Email(required=True, error_messages={"invalid": "Invalid email format"})
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6))
    full_name = fields.Str(required=True, validate=validate.Length(min=4, max=50))


class LoginSchema(Schema):
    """Validates POST /api/auth/login. `emailOrUsername` is classified by its format."""
    email_or_username = fields.Str(required=True, data_key="emailOrUsername", validate=validate.Length(min=1))
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=1))


class GoogleCallbackSchema(Schema):
    """Query string of the Google redirect."""
    class Meta:
        unknown = EXCLUDE

    code = fields.Str(required=True)
    state = fields.Str(load_default=None)
    scope = fields.Str(load_default=None)
    authuser = fields.Str(load_default=None)
    prompt = fields.Str(load_default=None)
