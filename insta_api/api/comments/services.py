# insta_api/api/comments/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

from firebase_admin import firestore

from insta_api.core.errors import ConflictError, NotFoundError
from insta_api.core.query import FilterKind, ListOptions, find_document, paginate, paginate_list, sort_documents
from insta_api.core.security import AuthContext, require_owner_or_admin
from insta_api.models.comment import Comment, Reply
from insta_api.models.notification import NotificationType
from insta_api.utils.datetime_utils import DateTimeUtils


class CommentService:
    """
    Comments, their likes and their nested replies.
    Replies live inside the comment document, so adding or removing one rewrites that document only.
    """
    def __init__(self, db=None, notification_service=None):
        self.db = db if db is not None else firestore.client()
        self.comments_ref = self.db.collection('comments')
        self.posts_ref = self.db.collection('posts')
        self.notification_service = notification_service

    def _get_post(self, post_id: str) -> Dict[str, Any]:
        post = find_document(self.posts_ref, 'post_id', post_id)
        if not post:
            raise NotFoundError("Post not found!")
        return post

    def list_comments(self, options: ListOptions) -> Tuple[List[Dict[str, Any]], int]:
        return paginate(self.comments_ref, options)

    def get_comment_by_id(self, comment_id: str) -> Dict[str, Any]:
        comment = find_document(self.comments_ref, 'comment_id', comment_id)
        if not comment:
            raise NotFoundError("Comment not found!")
        return comment

    def get_comments_for_post(self, post_id: str, options: ListOptions) -> Tuple[List[Dict[str, Any]], int]:
        """Comments of a post, oldest first."""
        docs = self.comments_ref.where('post_id', FilterKind.EQUALS.value, post_id).stream()
        comments = sort_documents([doc.to_dict() for doc in docs], 'created_at')
        return paginate_list(comments, options)

    def create_comment(self, user_id: str, post_id: str, content: str) -> Dict[str, Any]:
        """Adds a comment to an existing post and notifies the post owner."""
        post = self._get_post(post_id)

        new_comment = Comment(
            comment_id=str(uuid.uuid4()),
            user_id=user_id,
            post_id=post_id,
            content=content,
        )
        comment_dict = DateTimeUtils.for_firestore(asdict(new_comment))
        try:
            self.comments_ref.document(new_comment.comment_id).set(comment_dict)
        except Exception as e:
            logging.error(f"Failed to create comment (user_id: {user_id}, post_id: {post_id}): {e}", exc_info=True)
            raise
        logging.info(f"Comment created on post {post_id} by {user_id}")

        if self.notification_service:
            self.notification_service.create_notification(
                recipient_id=post['user_id'], sender_id=user_id,
                n_type=NotificationType.COMMENT, target_id=post_id,
            )
        return comment_dict

    def _check_author(self, comment: Dict[str, Any], auth: AuthContext):
        require_owner_or_admin(comment['user_id'], auth, message="You're not allowed to modify this comment!")

    def update_comment(self, comment_id: str, content: str, auth: AuthContext) -> Dict[str, Any]:
        comment = self.get_comment_by_id(comment_id)
        self._check_author(comment, auth)

        comment_ref = self.comments_ref.document(comment_id)
        try:
            comment_ref.update({'content': content, 'updated_at': DateTimeUtils.now()})
        except Exception as e:
            logging.error(f"Failed to update comment {comment_id}: {e}", exc_info=True)
            raise
        return comment_ref.get().to_dict()

    def delete_comment(self, comment_id: str, auth: AuthContext) -> None:
        comment = self.get_comment_by_id(comment_id)
        self._check_author(comment, auth)
        try:
            self.comments_ref.document(comment_id).delete()
        except Exception as e:
            logging.error(f"Failed to delete comment {comment_id}: {e}", exc_info=True)
            raise
        logging.info(f"Comment deleted: {comment_id}")

    def toggle_like(self, comment_id: str, user_id: str) -> bool:
        """:return: True when the comment is now liked by the caller"""
        comment = self.get_comment_by_id(comment_id)
        comment_ref = self.comments_ref.document(comment_id)

        liked = user_id not in (comment.get('likes') or [])
        try:
            if liked:
                comment_ref.update({'likes': firestore.ArrayUnion([user_id])})
            else:
                comment_ref.update({'likes': firestore.ArrayRemove([user_id])})
        except Exception as e:
            logging.error(f"Comment like toggle failed (user_id: {user_id}, comment_id: {comment_id}): {e}", exc_info=True)
            raise

        if not liked:
            return False
        if self.notification_service:
            self.notification_service.create_notification(
                recipient_id=comment['user_id'], sender_id=user_id,
                n_type=NotificationType.LIKE, target_id=comment_id,
            )
        return True

    # --- replies ---
    def add_reply(self, comment_id: str, user_id: str, content: str, reply_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Appends a reply to the comment.
        `reply_id` must be unique within the comment; it is generated when omitted.
        """
        comment = self.get_comment_by_id(comment_id)
        existing_ids = {r.get('reply_id') for r in comment.get('replies') or []}

        if reply_id is None:
            reply_id = uuid.uuid4().hex
        elif reply_id in existing_ids:
            raise ConflictError("Reply id already exists in this comment!")

        reply = DateTimeUtils.for_firestore(asdict(Reply(reply_id=reply_id, user_id=user_id, content=content)))
        try:
            self.comments_ref.document(comment_id).update({
                'replies': firestore.ArrayUnion([reply]),
                'updated_at': DateTimeUtils.now(),
            })
        except Exception as e:
            logging.error(f"Failed to add reply to comment {comment_id}: {e}", exc_info=True)
            raise
        logging.info(f"Reply {reply_id} added to comment {comment_id} by {user_id}")
        return reply

    def can_delete_reply(self, comment: Dict[str, Any], reply: Dict[str, Any], auth: AuthContext) -> bool:
        """
        A reply may be removed by its author, by the owner of the post the
        comment belongs to, or by an admin.
        """
        if auth.may_act_for(reply.get('user_id')):
            return True
        post = find_document(self.posts_ref, 'post_id', comment['post_id'])
        return post is not None and auth.may_act_for(post.get('user_id'))

    def delete_reply(self, comment_id: str, reply_id: str, auth: AuthContext) -> bool:
        """
        :return: False when the caller may not remove the reply; nothing is written then
        """
        comment = self.get_comment_by_id(comment_id)
        replies = comment.get('replies') or []
        reply = next((r for r in replies if r.get('reply_id') == reply_id), None)
        if reply is None:
            raise NotFoundError("Reply not found!")

        if not self.can_delete_reply(comment, reply, auth):
            logging.info(f"Reply {reply_id} deletion refused for {auth.user_id}")
            return False

        # Read-modify-write of the whole array; a concurrent reply may be lost.
        remaining = [r for r in replies if r.get('reply_id') != reply_id]
        try:
            self.comments_ref.document(comment_id).update({'replies': remaining, 'updated_at': DateTimeUtils.now()})
        except Exception as e:
            logging.error(f"Failed to delete reply {reply_id} from comment {comment_id}: {e}", exc_info=True)
            raise
        logging.info(f"Reply {reply_id} deleted from comment {comment_id}")
        return True

    def get_replies(self, comment_id: str) -> List[Dict[str, Any]]:
        comment = self.get_comment_by_id(comment_id)
        return sort_documents(list(comment.get('replies') or []), 'created_at')
