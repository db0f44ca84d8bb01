# insta_api/services/notification_service.py
import logging
import uuid
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

from firebase_admin import firestore

from insta_api.core.errors import NotFoundError
from insta_api.core.query import FilterKind, ListOptions, find_document, paginate, paginate_list, sort_documents
from insta_api.core.security import require_owner_or_admin
from insta_api.models.notification import Notification, NotificationType
from insta_api.utils.datetime_utils import DateTimeUtils


class NotificationService:
    """
    Emits notifications as a side effect of relationship toggles and serves each account's inbox.
    Emission is fire-and-forget: a failure here is logged and never fails the caller.
    """
    def __init__(self, db=None):
        self.db = db if db is not None else firestore.client()
        self.notifications_ref = self.db.collection('notifications')

    def create_notification(self, recipient_id: str, sender_id: str, n_type: NotificationType,
                            target_id: Optional[str] = None) -> Optional[str]:
        """
        Stores a notification for `recipient_id`.
        - No notification is created for actions on one's own content.

        :param recipient_id: account that receives the notification
        :param sender_id: account that performed the action
        :param n_type: NotificationType of the action
        :param target_id: post or comment the action was about
        :return: the new notification id, or None when nothing was stored
        """
        if not recipient_id or recipient_id == sender_id:
            return None

        try:
            return self.add_notification(recipient_id, sender_id, n_type, target_id)['notification_id']
        except Exception as e:
            logging.error(f"Failed to create notification: {e}", exc_info=True)
            return None

    def add_notification(self, recipient_id: str, sender_id: str, n_type: NotificationType,
                         target_id: Optional[str] = None, seen: bool = False) -> Dict[str, Any]:
        """Writes a notification and lets failures propagate."""
        notification = Notification(
            notification_id=str(uuid.uuid4()),
            user_id=recipient_id,
            type=n_type,
            source_id=sender_id,
            target_id=target_id,
            seen=seen,
        )
        notification_dict = asdict(notification)
        notification_dict['type'] = notification.type.value

        self.notifications_ref.document(notification.notification_id).set(notification_dict)
        logging.info(f"{n_type.value} notification created: {sender_id} -> {recipient_id}")
        return notification_dict

    # --- inbox ---
    def list_notifications(self, options: ListOptions) -> Tuple[List[Dict[str, Any]], int]:
        return paginate(self.notifications_ref, options)

    def get_notification(self, notification_id: str, auth=None) -> Dict[str, Any]:
        notification = find_document(self.notifications_ref, 'notification_id', notification_id)
        if not notification:
            raise NotFoundError("Notification not found!")
        if auth is not None:
            require_owner_or_admin(notification['user_id'], auth, message="This notification belongs to another account!")
        return notification

    def _inbox(self, user_id: str) -> List[Dict[str, Any]]:
        docs = self.notifications_ref.where('user_id', FilterKind.EQUALS.value, user_id).stream()
        return [doc.to_dict() for doc in docs]

    def get_user_notifications(self, user_id: str, options: ListOptions) -> Tuple[List[Dict[str, Any]], int, int]:
        """
        Notifications received by the account, newest first.
        :return: (page, total, number of unseen notifications)
        """
        inbox = sort_documents(self._inbox(user_id), 'created_at', descending=True)
        unseen = sum(1 for n in inbox if not n.get('seen'))
        page, total = paginate_list(inbox, options)
        return page, total, unseen

    def mark_seen(self, notification_id: str, auth) -> Dict[str, Any]:
        self.get_notification(notification_id, auth)
        notification_ref = self.notifications_ref.document(notification_id)
        notification_ref.update({'seen': True, 'updated_at': DateTimeUtils.now()})
        return notification_ref.get().to_dict()

    def mark_all_seen(self, user_id: str) -> int:
        """:return: number of notifications that were unseen"""
        updated = 0
        now = DateTimeUtils.now()
        for notification in self._inbox(user_id):
            if not notification.get('seen'):
                self.notifications_ref.document(notification['notification_id']).update({'seen': True, 'updated_at': now})
                updated += 1
        logging.info(f"{updated} notifications marked as seen (user_id: {user_id})")
        return updated

    def delete_notification(self, notification_id: str, auth) -> None:
        self.get_notification(notification_id, auth)
        self.notifications_ref.document(notification_id).delete()
