# insta_api/api/auth/routes.py
import logging
from urllib.parse import urlencode

from flask import Blueprint, request, current_app, redirect
from flask_jwt_extended import (
    get_jwt_identity,
    set_refresh_cookies,
    unset_refresh_cookies,
    verify_jwt_in_request,
)

from insta_api.api.auth.schemas import RegisterSchema, LoginSchema, GoogleCallbackSchema
from insta_api.api.users.schemas import UserResponseSchema
from insta_api.core.responses import success
from insta_api.core.security import protect_blueprint, public

# Every handler here is reachable without an access token.
auth_bp = Blueprint('auth_bp', __name__)
protect_blueprint(auth_bp)


def _refresh_cookie_max_age() -> int:
    return int(current_app.config['JWT_REFRESH_TOKEN_EXPIRES'].total_seconds())


@auth_bp.route('/register', methods=['POST'])
@public
def register():
    auth_service = current_app.services['auth']
    data = RegisterSchema().load(request.get_json(silent=True) or {})
    user = auth_service.register(**data)
    return success(UserResponseSchema().dump(user))


@auth_bp.route('/login', methods=['POST'])
@public
def login():
    """
    Local login with an email or a username.
    The access token is returned in the body, the refresh token in the `refreshToken` cookie.
    """
    auth_service = current_app.services['auth']
    data = LoginSchema().load(request.get_json(silent=True) or {})
    _user, tokens = auth_service.login(data['email_or_username'], data['password'])

    response, status = success(accessToken=tokens['access_token'])
    set_refresh_cookies(response, tokens['refresh_token'], max_age=_refresh_cookie_max_age())
    return response, status


@auth_bp.route('/refreshToken', methods=['POST'])
@public
def refresh_token():
    """Issues a new token pair from the refresh token cookie."""
    # Missing, invalid or expired cookies are answered by the JWTManager loaders.
    verify_jwt_in_request(refresh=True, locations=['cookies'])
    auth_service = current_app.services['auth']
    tokens = auth_service.refresh(get_jwt_identity())

    response, status = success(accessToken=tokens['access_token'])
    set_refresh_cookies(response, tokens['refresh_token'], max_age=_refresh_cookie_max_age())
    return response, status


@auth_bp.route('/logout', methods=['DELETE'])
@public
def logout():
    response, status = success()
    unset_refresh_cookies(response)
    return response, status


@auth_bp.route('/google', methods=['GET'])
@public
def google_login():
    """Sends the browser to the Google consent screen."""
    google_auth_service = current_app.services['google_auth']
    return redirect(google_auth_service.get_authorization_url())


@auth_bp.route('/google/redirect', methods=['GET'])
@public
def google_redirect():
    """
    Google OAuth callback.
    Signs the account in, sets the refresh cookie and sends the browser back
    to the client with the access token in the query string.
    """
    google_auth_service = current_app.services['google_auth']
    auth_service = current_app.services['auth']

    params = GoogleCallbackSchema().load(request.args)
    google_user_info = google_auth_service.exchange_code_for_user_info(params['code'])
    user, tokens, is_new_user = auth_service.oauth_login(google_user_info)
    logging.info(f"Google login: {user['username']} (new: {is_new_user})")

    client_url = current_app.config['URL_CLIENT']
    response = redirect(f"{client_url}?{urlencode({'accessToken': tokens['access_token']})}")
    response.set_cookie(
        current_app.config['JWT_REFRESH_COOKIE_NAME'],
        tokens['refresh_token'],
        max_age=_refresh_cookie_max_age(),
        path='/',
        httponly=True,
        secure=current_app.config['JWT_COOKIE_SECURE'],
        samesite='Strict',
    )
    return response
