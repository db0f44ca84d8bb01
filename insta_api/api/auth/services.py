# insta_api/api/auth/services.py
import logging
import secrets
import uuid
from typing import Dict, Any, Tuple

from marshmallow import ValidationError, validate

from insta_api.core.errors import ConflictError, UnauthorizedError
from insta_api.core.security import hash_password, issue_token_pair, verify_password
from insta_api.models.user import User
from insta_api.utils.text_utils import get_last_name, normalize_text, random_string

_is_email = validate.Email()


def looks_like_email(identifier: str) -> bool:
    try:
        _is_email(identifier)
        return True
    except ValidationError:
        return False


class AuthService:
    """
    Credential checks and token issuance.
    Tokens are never stored server-side; they are only signed and handed to the client.
    """
    def __init__(self, user_service):
        self.user_service = user_service

    def register(self, username: str, email: str, password: str, full_name: str) -> Dict[str, Any]:
        """
        Creates a local account.
        - Fails with a conflict when the username or the email is already taken.
        - Only the password hash is stored.
        """
        if self.user_service.find_by_username(username):
            raise ConflictError("Username already exists!")
        if self.user_service.find_by_email(email):
            raise ConflictError("Email already exists!")

        new_user = User(
            user_id=str(uuid.uuid4()),
            username=username,
            email=email,
            password=hash_password(password),
            full_name=full_name,
        )
        return self.user_service.create_user(new_user)

    def login(self, email_or_username: str, password: str) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """
        :return: (account, {'access_token', 'refresh_token'})
        """
        if looks_like_email(email_or_username):
            user = self.user_service.find_by_email(email_or_username)
        else:
            user = self.user_service.find_by_username(email_or_username)

        # Same message for both cases, so the response does not reveal which accounts exist.
        if not user or not verify_password(password, user.get('password')):
            logging.info(f"Login failed for '{email_or_username}'")
            raise UnauthorizedError("Wrong username or password!")

        return user, issue_token_pair(user)

    def refresh(self, user_id: str) -> Dict[str, str]:
        """
        Re-issues both tokens for the account referenced by a verified refresh token.
        The superseded refresh token stays valid until it expires.
        """
        user = self.user_service.find_by_id(user_id)
        if not user:
            raise UnauthorizedError("Account no longer exists!")
        return issue_token_pair(user)

    def oauth_login(self, google_user_info: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, str], bool]:
        """
        Signs in with a Google profile.

        The account is looked up by google id first, then by email (the google
        id is then linked to it). If neither exists, a new account is created
        with a random password, since none is supplied.
        :return: (account, token pair, is_new_user)
        """
        google_id = google_user_info.get('sub')
        email = google_user_info.get('email')
        if not google_id or not email:
            raise UnauthorizedError("Google profile must contain an id and an email")

        user = self.user_service.find_by_google_id(google_id)
        if user:
            return user, issue_token_pair(user), False

        user = self.user_service.find_by_email(email)
        if user:
            user = self.user_service.update_user(user['user_id'], {'google_id': google_id})
            logging.info(f"Google account linked to existing user {user['username']}")
            return user, issue_token_pair(user), False

        full_name = google_user_info.get('name') or email.split('@')[0]
        new_user = User(
            user_id=str(uuid.uuid4()),
            username=self._available_username(google_user_info),
            email=email,
            password=hash_password(secrets.token_urlsafe(32)),
            full_name=full_name,
            google_id=google_id,
            profile_image=google_user_info.get('picture') or '',
        )
        user = self.user_service.create_user(new_user)
        return user, issue_token_pair(user), True

    def _available_username(self, google_user_info: Dict[str, Any]) -> str:
        base = (normalize_text(google_user_info.get('given_name') or '').replace(' ', '')
                or get_last_name(google_user_info.get('name') or '')
                or normalize_text(google_user_info['email'].split('@')[0]))
        username = base
        while len(username) < 4 or self.user_service.find_by_username(username):
            username = f"{base}{random_string(4).lower()}"
        return username
