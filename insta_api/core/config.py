# insta_api/core/config.py

import os
from datetime import timedelta


class Config:
    """Settings shared by every environment."""
    # Shared secret used to sign both access and refresh tokens.
    JWT_SECRET_KEY = os.getenv('SECRET_KEY_JWT')
    JWT_ALGORITHM = 'HS256'

    # Access tokens carry the profile snapshot and live for 10 minutes,
    # refresh tokens carry only the account id and live for a day.
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=10)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(hours=24)

    # Access token from the bearer header, refresh token from the cookie.
    JWT_TOKEN_LOCATION = ['headers', 'cookies']
    JWT_REFRESH_COOKIE_NAME = 'refreshToken'
    JWT_REFRESH_COOKIE_PATH = '/'
    JWT_COOKIE_SAMESITE = 'None'
    JWT_COOKIE_SECURE = False
    JWT_COOKIE_CSRF_PROTECT = False
    JWT_SESSION_COOKIE = False

    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    GOOGLE_CLIENT_ID = os.getenv('GOOGLE_CLIENT_ID')
    GOOGLE_CLIENT_SECRET = os.getenv('GOOGLE_CLIENT_SECRET')

    # Public base URLs: the OAuth callback is built from URL_SERVER and the
    # browser is sent back to URL_CLIENT after a Google login.
    URL_SERVER = os.getenv('URL_SERVER', 'http://localhost:8080/api')
    URL_CLIENT = os.getenv('URL_CLIENT', 'http://localhost:3000')

    UPLOAD_ROOT_FOLDER = 'insta'
    UPLOAD_ALLOWED_FORMATS = ('jpg', 'jpeg', 'png', 'gif', 'webp', 'pdf', 'mp4')
    UPLOAD_MAX_IMAGES = 6


class DevelopmentConfig(Config):
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH', Config.FIREBASE_CREDENTIALS_PATH)


class TestingConfig(Config):
    """Used by the test suite. Firestore and Storage are injected, never loaded from credentials."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('SECRET_KEY_JWT', 'testing-secret-key-with-enough-length')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = 'insta-test.appspot.com'
    GOOGLE_CLIENT_ID = 'test-client-id'
    GOOGLE_CLIENT_SECRET = 'test-client-secret'


class ProductionConfig(Config):
    DEBUG = False
    JWT_COOKIE_SECURE = True


# Maps FLASK_ENV values to configuration classes; create_app picks one of them.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
