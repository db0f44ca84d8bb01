# insta_api/api/users/services.py
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List, Tuple

from firebase_admin import firestore

from insta_api.core.errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from insta_api.core.query import (
    FilterKind, ListOptions, find_document, paginate, paginate_list, stream_where_in, sort_documents,
)
from insta_api.core.security import hash_password, verify_password
from insta_api.core.unique_keys import claim_key, release_key
from insta_api.models.notification import NotificationType
from insta_api.models.user import User
from insta_api.utils.datetime_utils import DateTimeUtils
from insta_api.utils.text_utils import normalize_text, words

# Fields copied when an account is embedded in another response.
SUMMARY_FIELDS = ('user_id', 'username', 'email', 'full_name', 'profile_image', 'bio', 'current_city', 'tick')


def summarize(user_data: Dict[str, Any], fields=SUMMARY_FIELDS) -> Dict[str, Any]:
    return {name: user_data.get(name) for name in fields}


class UserService:
    """
    Account business logic: lookups, profile edits, the follow toggle and the
    read-only suggestion/search/profile views.
    """
    def __init__(self, db=None, post_service=None, notification_service=None):
        self.db = db if db is not None else firestore.client()
        self.users_ref = self.db.collection('users')
        self.usernames_ref = self.db.collection('usernames')
        self.emails_ref = self.db.collection('emails')
        self.post_service = post_service
        self.notification_service = notification_service

    # --- lookups ---
    def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return find_document(self.users_ref, 'user_id', user_id)

    def get_by_id(self, user_id: str) -> Dict[str, Any]:
        user = self.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found!")
        return user

    def _find_one(self, field_name: str, value: Any) -> Optional[Dict[str, Any]]:
        return find_document(self.users_ref, field_name, value)

    def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        return self._find_one('username', username)

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self._find_one('email', email.lower())

    def find_by_google_id(self, google_id: str) -> Optional[Dict[str, Any]]:
        return self._find_one('google_id', google_id)

    def find_many(self, user_ids: List[str]) -> List[Dict[str, Any]]:
        if not user_ids:
            return []
        found = {u['user_id']: u for u in stream_where_in(self.users_ref, 'user_id', user_ids)}
        # keep the order of the id list
        return [found[uid] for uid in user_ids if uid in found]

    # --- create / update / delete ---
    def _claim_identity(self, user_id: str, username: Optional[str], email: Optional[str]) -> None:
        """Reserves the username and the email together; neither stays reserved if the other is taken."""
        if username:
            claim_key(self.usernames_ref, username, user_id, "Username already exists!")
        if email:
            try:
                claim_key(self.emails_ref, email, user_id, "Email already exists!")
            except ConflictError:
                release_key(self.usernames_ref, username, user_id)
                raise

    def _release_identity(self, user_id: str, username: Optional[str], email: Optional[str]) -> None:
        release_key(self.usernames_ref, username, user_id)
        release_key(self.emails_ref, email, user_id)

    def create_user(self, new_user: User) -> Dict[str, Any]:
        """
        Stores a new account.
        The username and email are reserved first, so of two concurrent
        registrations with the same value only one is stored; the other fails with a conflict.
        """
        user_data = DateTimeUtils.for_firestore(asdict(new_user))
        user_data['email'] = user_data['email'].lower()
        self._claim_identity(new_user.user_id, user_data['username'], user_data['email'])

        try:
            self.users_ref.document(new_user.user_id).set(user_data)
        except Exception as e:
            logging.error(f"Failed to create user {new_user.username}: {e}", exc_info=True)
            self._release_identity(new_user.user_id, user_data['username'], user_data['email'])
            raise
        logging.info(f"User created: {new_user.username} ({new_user.user_id})")
        return user_data

    def list_users(self, options: ListOptions) -> Tuple[List[Dict[str, Any]], int]:
        return paginate(self.users_ref, options)

    def update_user(self, user_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Partially updates an account.
        Changing the username or email to one already taken by another account fails with a conflict.
        """
        current = self.get_by_id(user_id)
        update_data = dict(update_data)
        if update_data.get('email'):
            update_data['email'] = update_data['email'].lower()

        new_username = update_data.get('username')
        if new_username == current.get('username'):
            new_username = None
        new_email = update_data.get('email')
        if new_email == current.get('email'):
            new_email = None
        self._claim_identity(user_id, new_username, new_email)

        update_data = DateTimeUtils.for_firestore(update_data)
        update_data['updated_at'] = DateTimeUtils.now()

        user_ref = self.users_ref.document(user_id)
        try:
            user_ref.update(update_data)
        except Exception as e:
            logging.error(f"Failed to update user {user_id}: {e}", exc_info=True)
            self._release_identity(user_id, new_username, new_email)
            raise

        # the previous values become available to other accounts
        self._release_identity(user_id,
                               current.get('username') if new_username else None,
                               current.get('email') if new_email else None)
        return user_ref.get().to_dict()

    def delete_user(self, user_id: str) -> None:
        user = self.get_by_id(user_id)
        try:
            self.users_ref.document(user_id).delete()
        except Exception as e:
            logging.error(f"Failed to delete user {user_id}: {e}", exc_info=True)
            raise
        self._release_identity(user_id, user.get('username'), user.get('email'))
        logging.info(f"User deleted: {user_id}")

    def change_password(self, user_id: str, password: str, new_password: str) -> None:
        """Verifies the current password against the stored hash before replacing it."""
        user = self.get_by_id(user_id)
        if not verify_password(password, user.get('password')):
            raise UnauthorizedError("Old password is invalid!")

        try:
            self.users_ref.document(user_id).update({
                'password': hash_password(new_password),
                'updated_at': DateTimeUtils.now(),
            })
        except Exception as e:
            logging.error(f"Failed to change password (user_id: {user_id}): {e}", exc_info=True)
            raise
        logging.info(f"Password changed (user_id: {user_id})")

    # --- follow toggle ---
    def toggle_follow(self, actor_id: str, target_id: str) -> bool:
        """
        Follows `target_id` if the actor does not follow it yet, unfollows it otherwise.

        Both sides are updated: target.followers and actor.followings. The two
        writes are independent, so a failure between them leaves the
        relationship asymmetric until the next toggle.
        :return: True when the actor now follows the target
        """
        if actor_id == target_id:
            raise BadRequestError("You can't follow yourself!")

        target = self.get_by_id(target_id)
        actor = self.get_by_id(actor_id)

        target_ref = self.users_ref.document(target_id)
        actor_ref = self.users_ref.document(actor_id)
        now = DateTimeUtils.now()

        try:
            if actor_id not in (target.get('followers') or []):
                target_ref.update({'followers': firestore.ArrayUnion([actor_id]), 'updated_at': now})
                actor_ref.update({'followings': firestore.ArrayUnion([target_id]), 'updated_at': now})
                following = True
            else:
                target_ref.update({'followers': firestore.ArrayRemove([actor_id]), 'updated_at': now})
                actor_ref.update({'followings': firestore.ArrayRemove([target_id]), 'updated_at': now})
                following = False
        except Exception as e:
            logging.error(f"Follow toggle failed ({actor_id} -> {target_id}): {e}", exc_info=True)
            raise

        if not following:
            logging.info(f"{actor.get('username')} unfollowed {target.get('username')}")
            return False

        logging.info(f"{actor.get('username')} followed {target.get('username')}")
        if self.notification_service:
            self.notification_service.create_notification(
                recipient_id=target_id, sender_id=actor_id, n_type=NotificationType.FOLLOW
            )
        return True

    def get_followers(self, user_id: str) -> Dict[str, Any]:
        user = self.get_by_id(user_id)
        user['followers'] = [summarize(u) for u in self.find_many(user.get('followers') or [])]
        return user

    def get_followings(self, user_id: str) -> Dict[str, Any]:
        user = self.get_by_id(user_id)
        user['followings'] = [summarize(u) for u in self.find_many(user.get('followings') or [])]
        return user

    # --- read-only views ---
    def get_suggested(self, user_id: str, options: ListOptions) -> Tuple[List[Dict[str, Any]], int]:
        """
        Accounts one hop away from the ones the caller follows.

        A candidate is neither the caller nor already followed, and its
        followers or followings intersect the caller's followings.
        Each result carries its post count and up to 3 recent image URLs.
        """
        user = self.get_by_id(user_id)
        followings = list(user.get('followings') or [])
        if not followings:
            return [], 0

        excluded = set(followings) | {user_id}
        candidates = {}
        for field_name in ('followers', 'followings'):
            for doc in stream_where_in(self.users_ref, field_name, followings, FilterKind.ARRAY_CONTAINS_ANY):
                if doc['user_id'] not in excluded:
                    candidates[doc['user_id']] = doc

        ordered = sort_documents(list(candidates.values()), 'created_at', descending=True)
        page, total = paginate_list(ordered, options)

        results = []
        for candidate in page:
            item = summarize(candidate)
            item['followers'] = candidate.get('followers') or []
            item['followings'] = candidate.get('followings') or []
            if self.post_service:
                item['post_count'] = self.post_service.count_posts_by_user_id(candidate['user_id'])
                item['recent_images'] = self.post_service.recent_image_urls(candidate['user_id'], limit=3)
            else:
                item['post_count'] = 0
                item['recent_images'] = []
            results.append(item)
        return results, total

    def search(self, q: str, options: ListOptions) -> Tuple[List[Dict[str, Any]], int]:
        """
        Case- and diacritic-insensitive search over username and full_name.
        A user matches when any word of the query prefixes a word of either field.
        """
        terms = words(q)
        if not terms:
            return [], 0

        matches = []
        for doc in self.users_ref.stream():
            user = doc.to_dict()
            haystack = words(user.get('username', '')) + words(user.get('full_name', ''))
            haystack.append(normalize_text(user.get('username', '')))
            if any(word.startswith(term) for term in terms for word in haystack):
                matches.append(summarize(user))

        matches.sort(key=lambda u: normalize_text(u.get('username') or ''))
        return paginate_list(matches, options)

    def get_profile_by_username(self, username: str) -> Dict[str, Any]:
        user = self.find_by_username(username)
        if not user:
            raise NotFoundError("User not found!")
        user['post_count'] = self.post_service.count_posts_by_user_id(user['user_id']) if self.post_service else 0
        return user
