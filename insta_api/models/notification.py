# insta_api/models/notification.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from insta_api.utils.datetime_utils import DateTimeUtils


class NotificationType(Enum):
    """What the actor did to the recipient."""
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"
    SHARE = "share"


@dataclass
class Notification:
    """
    Firestore 'notifications' collection document.
    """
    notification_id: str
    user_id: str           # recipient
    type: NotificationType
    source_id: str         # account that triggered it
    target_id: Optional[str] = None   # post or comment the action was about
    seen: bool = False
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)
