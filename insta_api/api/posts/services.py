# insta_api/api/posts/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

from firebase_admin import firestore

from insta_api.core.errors import ConflictError, NotFoundError
from insta_api.core.query import (
    FilterKind, ListOptions, count, find_document, paginate, paginate_list, sort_documents, stream_where_in,
)
from insta_api.core.security import AuthContext, require_owner_or_admin
from insta_api.core.unique_keys import claim_key, release_key
from insta_api.models.notification import NotificationType
from insta_api.models.post import Media, MediaType, Post, Share
from insta_api.utils.datetime_utils import DateTimeUtils
from insta_api.utils.text_utils import make_slug, with_random_suffix

# Author fields joined into timeline entries.
AUTHOR_FIELDS = ('user_id', 'username', 'profile_image', 'full_name', 'followers', 'followings', 'created_at')


class PostService:
    def __init__(self, db=None, notification_service=None):
        self.db = db if db is not None else firestore.client()
        self.posts_ref = self.db.collection('posts')
        self.slugs_ref = self.db.collection('slugs')
        self.users_ref = self.db.collection('users')
        self.notification_service = notification_service

    # --- reads ---
    def list_posts(self, options: ListOptions) -> Tuple[List[Dict[str, Any]], int]:
        return paginate(self.posts_ref, options)

    def get_post_by_id(self, post_id: str) -> Dict[str, Any]:
        post = find_document(self.posts_ref, 'post_id', post_id)
        if not post:
            raise NotFoundError("Post not found!")
        return post

    def find_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        return find_document(self.posts_ref, 'slug', slug)

    def get_post_by_slug(self, slug: str) -> Dict[str, Any]:
        post = self.find_by_slug(slug)
        if not post:
            raise NotFoundError("Post not found!")
        return post

    def _posts_of(self, user_id: str) -> List[Dict[str, Any]]:
        docs = self.posts_ref.where('user_id', FilterKind.EQUALS.value, user_id).stream()
        return sort_documents([doc.to_dict() for doc in docs], 'created_at', descending=True)

    def get_posts_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        """All posts of one account, newest first, each with a short author summary."""
        posts = self._posts_of(user_id)
        author = self._authors([user_id], fields=('user_id', 'username', 'email', 'full_name')).get(user_id)
        for post in posts:
            post['author'] = author
        return posts

    def get_medias(self, user_id: str) -> List[Dict[str, Any]]:
        """Media of every post of the account, flattened to {post_id, type, url}."""
        medias = []
        for post in self._posts_of(user_id):
            for media in post.get('media') or []:
                medias.append({'post_id': post['post_id'], 'type': media.get('type'), 'url': media.get('url')})
        return medias

    def count_posts_by_user_id(self, user_id: str) -> int:
        return count(self.posts_ref.where('user_id', FilterKind.EQUALS.value, user_id))

    def recent_image_urls(self, user_id: str, limit: int = 3) -> List[str]:
        urls = []
        for post in self._posts_of(user_id):
            for media in post.get('media') or []:
                if media.get('type') == MediaType.IMAGE.value:
                    urls.append(media.get('url'))
                if len(urls) >= limit:
                    return urls
        return urls

    def get_timeline(self, user_id: str, followings: List[str], options: ListOptions) -> Tuple[List[Dict[str, Any]], int]:
        """
        Posts of the account and of every account it follows, paginated, each
        with its author populated.
        """
        author_ids = [user_id] + [uid for uid in followings if uid != user_id]
        posts = stream_where_in(self.posts_ref, 'user_id', author_ids)
        posts = sort_documents(posts, options.sort, descending=options.order == 'desc')
        page, total = paginate_list(posts, options)

        authors = self._authors({post['user_id'] for post in page})
        for post in page:
            post['author'] = authors.get(post['user_id'])
        return page, total

    def _authors(self, user_ids, fields=AUTHOR_FIELDS) -> Dict[str, Dict[str, Any]]:
        users = stream_where_in(self.users_ref, 'user_id', list(user_ids))
        return {u['user_id']: {name: u.get(name) for name in fields} for u in users}

    # --- writes ---
    def _claim_slug(self, caption: str, post_id: str) -> str:
        """
        Reserves a slug derived from the caption. When it is taken, or the caption
        gives no slug at all, a random suffix is appended until a free one is reserved.
        """
        base = make_slug(caption)
        slug = base or with_random_suffix(base)
        while True:
            try:
                claim_key(self.slugs_ref, slug, post_id, "Slug already exists!")
                return slug
            except ConflictError:
                slug = with_random_suffix(base)

    def create_post(self, user_id: str, post_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Creates a post owned by `user_id`.
        The slug is derived from the caption; a random suffix is appended when it is already taken.
        """
        post_id = str(uuid.uuid4())
        new_post = Post(
            post_id=post_id,
            user_id=user_id,
            caption=post_data.get('caption', ''),
            media=[asdict(Media(type=m['type'], url=m['url'])) for m in post_data['media']],
            slug=self._claim_slug(post_data.get('caption', ''), post_id),
        )
        post_dict = DateTimeUtils.for_firestore(asdict(new_post))
        try:
            self.posts_ref.document(post_id).set(post_dict)
        except Exception as e:
            logging.error(f"Failed to create post (user_id: {user_id}): {e}", exc_info=True)
            release_key(self.slugs_ref, new_post.slug, post_id)
            raise
        logging.info(f"Post created: {post_id} by {user_id}")
        return post_dict

    def update_post(self, post_id: str, update_data: Dict[str, Any], auth: AuthContext) -> Dict[str, Any]:
        post = self.get_post_by_id(post_id)
        require_owner_or_admin(post['user_id'], auth, message="You're not allowed to modify this post!")

        update_data = dict(update_data)
        update_data['updated_at'] = DateTimeUtils.now()
        post_ref = self.posts_ref.document(post_id)
        try:
            post_ref.update(update_data)
        except Exception as e:
            logging.error(f"Failed to update post {post_id}: {e}", exc_info=True)
            raise
        return post_ref.get().to_dict()

    def delete_post(self, post_id: str, auth: AuthContext) -> None:
        post = self.get_post_by_id(post_id)
        require_owner_or_admin(post['user_id'], auth, message="You're not allowed to modify this post!")
        try:
            self.posts_ref.document(post_id).delete()
        except Exception as e:
            logging.error(f"Failed to delete post {post_id}: {e}", exc_info=True)
            raise
        release_key(self.slugs_ref, post.get('slug'), post_id)
        logging.info(f"Post deleted: {post_id}")

    def toggle_like(self, post_id: str, user_id: str) -> bool:
        """
        Likes the post, or removes the like when the caller already likes it.
        The owner is notified on like only.
        :return: True when the post is now liked by the caller
        """
        post = self.get_post_by_id(post_id)
        post_ref = self.posts_ref.document(post_id)
        liked = user_id not in (post.get('likes') or [])

        try:
            if liked:
                post_ref.update({'likes': firestore.ArrayUnion([user_id])})
            else:
                post_ref.update({'likes': firestore.ArrayRemove([user_id])})
        except Exception as e:
            logging.error(f"Post like toggle failed (user_id: {user_id}, post_id: {post_id}): {e}", exc_info=True)
            raise

        if not liked:
            logging.info(f"Post {post_id} unliked by {user_id}")
            return False

        logging.info(f"Post {post_id} liked by {user_id}")
        # written after the like, independently of it
        if self.notification_service:
            self.notification_service.create_notification(
                recipient_id=post['user_id'], sender_id=user_id,
                n_type=NotificationType.LIKE, target_id=post_id,
            )
        return True

    def share_post(self, post_id: str, user_id: str) -> Dict[str, Any]:
        """Appends a share entry. Sharing is not a toggle: every call adds one entry."""
        post = self.get_post_by_id(post_id)
        share = DateTimeUtils.for_firestore(asdict(Share(user_id=user_id)))

        post_ref = self.posts_ref.document(post_id)
        try:
            post_ref.update({'shares': firestore.ArrayUnion([share])})
        except Exception as e:
            logging.error(f"Post share failed (user_id: {user_id}, post_id: {post_id}): {e}", exc_info=True)
            raise
        logging.info(f"Post {post_id} shared by {user_id}")

        if self.notification_service:
            self.notification_service.create_notification(
                recipient_id=post['user_id'], sender_id=user_id,
                n_type=NotificationType.SHARE, target_id=post_id,
            )
        return post_ref.get().to_dict()
