# insta_api/services/google_auth_service.py

import logging
import requests
from google_auth_oauthlib.flow import Flow

from insta_api.core.errors import UnauthorizedError


class GoogleAuthService:
    """Handles the Google OAuth 2.0 authorization-code exchange."""
    _auth_uri = "https://accounts.google.com/o/oauth2/auth"
    _token_uri = "https://oauth2.googleapis.com/token"
    _user_info_url = "https://www.googleapis.com/oauth2/v3/userinfo"
    _scopes = [
        "https://www.googleapis.com/auth/userinfo.profile",
        "https://www.googleapis.com/auth/userinfo.email",
        "openid",
    ]

    def __init__(self, client_id: str = None, client_secret: str = None, redirect_uri: str = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    def init_app(self, app):
        self.client_id = app.config.get('GOOGLE_CLIENT_ID')
        self.client_secret = app.config.get('GOOGLE_CLIENT_SECRET')
        self.redirect_uri = f"{app.config.get('URL_SERVER', '').rstrip('/')}/auth/google/redirect"

    def _build_flow(self) -> Flow:
        if not self.client_id or not self.client_secret:
            raise ValueError("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET are not configured.")

        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self._auth_uri,
                "token_uri": self._token_uri,
                "redirect_uris": [self.redirect_uri],
            }
        }
        # The callback runs on a fresh Flow, so no PKCE verifier can be carried over.
        flow = Flow.from_client_config(client_config, scopes=self._scopes, autogenerate_code_verifier=False)
        flow.redirect_uri = self.redirect_uri
        return flow

    def get_authorization_url(self) -> str:
        """URL of the Google consent screen the browser is redirected to."""
        authorization_url, _state = self._build_flow().authorization_url(
            access_type="online",
            prompt="select_account",
        )
        return authorization_url

    def exchange_code_for_user_info(self, auth_code: str) -> dict:
        """
        Exchanges the authorization code for an access token and fetches the user profile.

        :return: Google userinfo payload (sub, email, name, given_name, picture, ...)
        """
        try:
            flow = self._build_flow()
            flow.fetch_token(code=auth_code)
            credentials = flow.credentials

            response = requests.get(
                self._user_info_url,
                headers={"Authorization": f"Bearer {credentials.token}"},
                timeout=10,
            )
            response.raise_for_status()
            return response.json()

        except Exception as e:
            logging.error(f"Google OAuth failed: {e}", exc_info=True)
            raise UnauthorizedError("Google authentication failed")
