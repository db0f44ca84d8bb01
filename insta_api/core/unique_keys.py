# insta_api/core/unique_keys.py
"""
Reservations for unique fields (username, email, post slug).

Firestore has no unique indexes. Each unique value therefore owns a key
document in a collection of its own (`usernames`, `emails`, `slugs`), and
`DocumentReference.create()` fails with AlreadyExists when another request
reserved the value first, so the claim is atomic on the server.
"""
import logging
from typing import Optional
from urllib.parse import quote

from google.api_core.exceptions import AlreadyExists

from insta_api.core.errors import ConflictError


def key_id(value: str) -> str:
    # document ids cannot contain '/'
    return quote(value, safe='')


def claim_key(keys_ref, value: str, owner_id: str, message: str) -> None:
    """Reserves `value` for `owner_id`, or raises ConflictError(message) if it is taken."""
    try:
        keys_ref.document(key_id(value)).create({'value': value, 'owner_id': owner_id})
    except AlreadyExists:
        logging.info(f"Unique key already taken: {value}")
        raise ConflictError(message)


def release_key(keys_ref, value: Optional[str], owner_id: str) -> None:
    """Frees `value` when it is still reserved by `owner_id`."""
    if not value:
        return
    key_ref = keys_ref.document(key_id(value))
    snapshot = key_ref.get()
    if snapshot.exists and (snapshot.to_dict() or {}).get('owner_id') == owner_id:
        key_ref.delete()
