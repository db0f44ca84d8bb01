# insta_api/core/security.py
"""
Password hashing, token issuance and the per-request access-control guard.

Every protected blueprint runs the same guard before its handlers:

    Unauthenticated --(valid bearer access token)--> Authenticated
    Authenticated  --(handler is @admin_only, caller is admin)--> pass
    Authenticated  --(handler is @admin_only, caller is not admin)--> 401

Handlers marked `@public` skip the guard entirely.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import wraps
from typing import Any, Dict, List, Optional

from flask import Blueprint, Flask, current_app, g, request
from flask_jwt_extended import (
    JWTManager,
    create_access_token,
    create_refresh_token,
    get_jwt,
    get_jwt_identity,
    verify_jwt_in_request,
)
from werkzeug.security import check_password_hash, generate_password_hash

from insta_api.core.errors import ForbiddenError, UnauthorizedError
from insta_api.core.responses import failure
from insta_api.utils.datetime_utils import DateTimeUtils

# Account fields copied into the access token as the profile snapshot.
PROFILE_CLAIM_FIELDS = (
    'username', 'email', 'full_name', 'profile_image', 'bio', 'date_of_birth',
    'gender', 'current_city', 'hometown', 'followers', 'followings', 'tick', 'is_admin',
)


# =====================================================================================
# Passwords
# =====================================================================================
def hash_password(password: str) -> str:
    """Salted one-way hash. The plaintext is never stored."""
    return generate_password_hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


# =====================================================================================
# Tokens
# =====================================================================================
def profile_claims(account: Dict[str, Any]) -> Dict[str, Any]:
    """Builds the JSON-safe profile snapshot embedded in access tokens."""
    claims = {}
    for name in PROFILE_CLAIM_FIELDS:
        value = account.get(name)
        if isinstance(value, datetime):
            value = DateTimeUtils.to_iso_string(value)
        elif isinstance(value, date):
            value = value.isoformat()
        claims[name] = value
    claims['isAdmin'] = bool(claims.pop('is_admin', False))
    claims['from'] = claims.pop('hometown', '')
    claims['followers'] = list(claims.get('followers') or [])
    claims['followings'] = list(claims.get('followings') or [])
    return claims


def issue_token_pair(account: Dict[str, Any]) -> Dict[str, str]:
    """
    Signs a new access/refresh token pair for the account.

    The access token embeds the profile snapshot; the refresh token embeds only the account id.
    Lifetimes come from JWT_ACCESS_TOKEN_EXPIRES / JWT_REFRESH_TOKEN_EXPIRES.
    """
    user_id = account['user_id']
    return {
        'access_token': create_access_token(identity=user_id, additional_claims=profile_claims(account)),
        'refresh_token': create_refresh_token(identity=user_id),
    }


def init_jwt(app: Flask) -> JWTManager:
    """Creates the JWTManager and routes its failures through the error envelope."""
    jwt = JWTManager(app)

    @jwt.unauthorized_loader
    def missing_token_callback(reason: str):
        return failure("You`re not authenticate!", 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(reason: str):
        return failure(f"Invalid token: {reason}", 401)

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return failure("Token has expired", 401)

    @jwt.needs_fresh_token_loader
    def fresh_token_callback(jwt_header, jwt_payload):
        return failure("Fresh token required", 401)

    @jwt.revoked_token_loader
    def revoked_token_callback(jwt_header, jwt_payload):
        return failure("Token has been revoked", 401)

    @jwt.user_lookup_error_loader
    def user_lookup_error_callback(jwt_header, jwt_payload):
        return failure("Account no longer exists!", 401)

    return jwt


# =====================================================================================
# Request authentication context
# =====================================================================================
@dataclass
class AuthContext:
    """Who is calling, populated once per request from the verified access token."""
    user_id: str
    username: Optional[str] = None
    is_admin: bool = False
    followings: List[str] = field(default_factory=list)
    claims: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_claims(cls, identity: str, claims: Dict[str, Any]) -> 'AuthContext':
        return cls(
            user_id=identity,
            username=claims.get('username'),
            is_admin=bool(claims.get('isAdmin', False)),
            followings=list(claims.get('followings') or []),
            claims=dict(claims),
        )

    def may_act_for(self, owner_id: Optional[str]) -> bool:
        """True for the owner of a resource and for admins."""
        return self.is_admin or (owner_id is not None and owner_id == self.user_id)


def current_auth() -> AuthContext:
    auth = g.get('auth')
    if auth is None:
        raise UnauthorizedError("You`re not authenticate!")
    return auth


# =====================================================================================
# Access-control guard
# =====================================================================================
def public(view):
    """Marks a handler as reachable without an access token."""
    view._public = True
    return view


def admin_only(view):
    """Marks a handler as requiring an account with the admin flag."""
    view._admin_only = True
    return view


def _resolve_view():
    if request.endpoint is None:
        return None
    return current_app.view_functions.get(request.endpoint)


def authenticate_request() -> AuthContext:
    """Verifies the bearer access token and stores the AuthContext on `g`."""
    verify_jwt_in_request(locations=['headers'])
    auth = AuthContext.from_claims(get_jwt_identity(), get_jwt())
    g.auth = auth
    return auth


def protect_blueprint(bp: Blueprint):
    """Installs the guard in front of every handler of the blueprint."""

    @bp.before_request
    def _access_control_guard():
        if request.method == 'OPTIONS':
            return None
        view = _resolve_view()
        if view is None or getattr(view, '_public', False):
            return None

        auth = authenticate_request()

        if getattr(view, '_admin_only', False) and not auth.is_admin:
            return failure("You're not authorization!", 401)
        return None

    return bp


def require_owner_or_admin(owner_id: Optional[str], auth: Optional[AuthContext] = None,
                           error=ForbiddenError, message: str = "You're not allowed to modify this resource!"):
    """
    Raises `error(message)` unless the caller owns the resource or is an admin.
    `auth` defaults to the context of the current request.
    """
    auth = auth or current_auth()
    if not auth.may_act_for(owner_id):
        raise error(message)
    return auth


def require_self_or_admin(target_user_id: str):
    """Raises unless the caller is the target account or an admin."""
    return require_owner_or_admin(target_user_id, error=UnauthorizedError, message="You're not authorization!")


def with_auth(view):
    """Passes the AuthContext to the handler as its `auth` keyword argument."""
    @wraps(view)
    def decorated(*args, **kwargs):
        return view(*args, auth=current_auth(), **kwargs)
    return decorated
