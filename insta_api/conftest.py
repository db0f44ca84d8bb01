# insta_api/conftest.py
"""
Shared fixtures: an app wired to an in-memory Firestore and a mocked Storage bucket.

Usage: python -m pytest insta_api -v
"""
import threading
import uuid
from unittest.mock import MagicMock

import pytest
from flask_jwt_extended import create_access_token
from google.api_core.exceptions import AlreadyExists
from mockfirestore import CollectionReference, DocumentReference, MockFirestore, Query

from insta_api import create_app
from insta_api.core.security import hash_password, profile_claims
from insta_api.models.user import User

DEFAULT_PASSWORD = 'secret123'


# --- features the in-memory Firestore lacks ---
class _AggregationResult:
    def __init__(self, value):
        self.value = value


class _CountAggregation:
    """query.count(): get() returns [[AggregationResult]] like the real client."""
    def __init__(self, query):
        self._query = query

    def get(self):
        return [[_AggregationResult(sum(1 for _ in self._query.stream()))]]


def _count(self, alias=None):
    return _CountAggregation(self)


_create_lock = threading.Lock()


def _create(self, document_data):
    """DocumentReference.create(): fails with AlreadyExists instead of overwriting."""
    with _create_lock:
        snapshot = self.get()
        if snapshot.exists and snapshot.to_dict():
            raise AlreadyExists("Document already exists")
        self.set(document_data)


@pytest.fixture(autouse=True)
def firestore_client_features(monkeypatch):
    for query_class in (CollectionReference, Query):
        monkeypatch.setattr(query_class, 'count', _count, raising=False)
    monkeypatch.setattr(DocumentReference, 'create', _create, raising=False)


@pytest.fixture
def db():
    return MockFirestore()


@pytest.fixture
def bucket():
    return MagicMock(name='bucket')


@pytest.fixture
def app(db, bucket):
    app = create_app('testing', db=db, bucket=bucket)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Stores an account directly and returns its document."""
    def _make_user(username='alice', password=DEFAULT_PASSWORD, is_admin=False, **fields):
        new_user = User(
            user_id=str(uuid.uuid4()),
            username=username,
            email=fields.pop('email', f'{username}@example.com'),
            password=hash_password(password),
            full_name=fields.pop('full_name', f'{username.title()} Tester'),
            is_admin=is_admin,
            **fields,
        )
        return app.services['users'].create_user(new_user)
    return _make_user


@pytest.fixture
def auth_headers(app):
    """Bearer header carrying a fresh access token for the given account document."""
    def _auth_headers(user):
        with app.app_context():
            token = create_access_token(identity=user['user_id'], additional_claims=profile_claims(user))
        return {'Authorization': f'Bearer {token}'}
    return _auth_headers
